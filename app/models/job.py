from pydantic import Field
from typing import Literal, Optional
from datetime import datetime
from .base import MongoBaseModel, PyObjectId


class Job(MongoBaseModel):
    title: str
    company: str
    recruiter: Optional[PyObjectId] = None
    description: Optional[str] = None
    responsibilities: Optional[str] = None
    requirements: Optional[str] = None
    jobLocation: Optional[str] = None
    salary: Optional[str] = None
    type: Optional[str] = None
    deadline: datetime
    howtoapply: Optional[str] = None

    # Geo-targeting
    country: Optional[str] = None
    countryCode: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    locationAccuracy: float = 50  # km
    timezone: Optional[str] = None
    ipAddress: Optional[str] = None
    locationSource: Literal["manual", "ip-auto", "coordinates", "text-parsed", "frontend-provided"] = "manual"
    locationDetectedAt: Optional[datetime] = None

    status: Literal["pending", "approved", "rejected"] = "pending"
    isVisible: bool = True
    isFeatured: bool = False
    isPinned: bool = False
    views: int = 0
    applicationCount: int = 0
    approvedAt: Optional[datetime] = None
    createdAt: datetime = Field(default_factory=datetime.utcnow)
    updatedAt: datetime = Field(default_factory=datetime.utcnow)
