from pydantic import BaseModel
from typing import Optional


class ChatSessionCreate(BaseModel):
    inviteId: str


class ChatWebhookEvent(BaseModel):
    conversationId: Optional[str] = None
    messageText: Optional[str] = None
    senderId: Optional[str] = None
    type: str = "message"
