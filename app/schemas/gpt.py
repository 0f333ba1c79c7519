from pydantic import BaseModel
from typing import List, Literal, Optional


class ConvertRequest(BaseModel):
    convertTo: Optional[str] = None
    code: Optional[str] = None


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    message: Optional[str] = None
    conversationHistory: List[ChatMessage] = []
