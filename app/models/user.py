from pydantic import BaseModel, EmailStr, Field
from typing import Literal, Optional
from datetime import datetime
from .base import MongoBaseModel


class AdditionalInfo(BaseModel):
    phoneNumber: Optional[str] = None
    profileLink: Optional[str] = None
    companyName: Optional[str] = None
    companyWebsite: Optional[str] = None
    description: Optional[str] = None


class User(MongoBaseModel):
    name: str
    email: EmailStr
    password: Optional[str] = None  # OAuth-only accounts have no password
    userType: Literal["user", "recruiter"] = "user"
    country: Optional[str] = None
    isEmailVerified: bool = False
    isActive: bool = True
    isDeleted: bool = False
    isFeatured: bool = False
    isPinned: bool = False
    provider: Optional[str] = None
    providerAccountId: Optional[str] = None
    additionalInfo: AdditionalInfo = Field(default_factory=AdditionalInfo)
    createdAt: datetime = Field(default_factory=datetime.utcnow)


class Admin(MongoBaseModel):
    name: str
    email: EmailStr
    password: str
    role: Literal["admin"] = "admin"
    created_at: datetime = Field(default_factory=datetime.utcnow)
