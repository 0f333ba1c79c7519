from pydantic import BaseModel, Field
from typing import List, Literal, Optional
from datetime import datetime
from .base import MongoBaseModel, PyObjectId


class LastMessage(BaseModel):
    text: str
    senderId: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class ChatSession(MongoBaseModel):
    participants: List[PyObjectId] = Field(min_length=2, max_length=2)
    talkjsConversationId: str
    inviteId: PyObjectId
    status: Literal["active", "archived", "blocked"] = "active"
    lastActivity: datetime = Field(default_factory=datetime.utcnow)
    lastMessage: Optional[LastMessage] = None
    messageCount: int = 0
    isGroupChat: bool = False
    createdAt: datetime = Field(default_factory=datetime.utcnow)
    updatedAt: datetime = Field(default_factory=datetime.utcnow)
