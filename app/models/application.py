from pydantic import EmailStr, Field
from typing import Optional
from datetime import datetime
from .base import MongoBaseModel, PyObjectId


class Application(MongoBaseModel):
    jobId: PyObjectId
    userId: PyObjectId
    email: EmailStr
    coverLetter: Optional[str] = None
    resumeUrl: Optional[str] = None
    createdAt: datetime = Field(default_factory=datetime.utcnow)


class Contribution(MongoBaseModel):
    """A shared code snippet."""
    userId: PyObjectId
    email: EmailStr
    title: str
    language: str
    code: str
    status: str = "saved"
    createdAt: datetime = Field(default_factory=datetime.utcnow)
