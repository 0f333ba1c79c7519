# ========================================
# app/schemas/job.py - job postings
# ========================================

from pydantic import BaseModel
from typing import Optional
from datetime import datetime


# 1. Input: What the Recruiter sends
class JobCreate(BaseModel):
    title: Optional[str] = None
    company: Optional[str] = None
    deadline: Optional[datetime] = None
    recruiter: Optional[str] = None
    description: Optional[str] = None
    responsibilities: Optional[str] = None
    requirements: Optional[str] = None
    jobLocation: Optional[str] = None
    salary: Optional[str] = None
    type: Optional[str] = None
    howtoapply: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    isVisible: bool = True
    isPinned: bool = False


# 2. Input: Update existing job
class JobUpdate(BaseModel):
    """Schema for updating job details"""
    title: Optional[str] = None
    company: Optional[str] = None
    description: Optional[str] = None
    responsibilities: Optional[str] = None
    requirements: Optional[str] = None
    jobLocation: Optional[str] = None
    salary: Optional[str] = None
    type: Optional[str] = None
    deadline: Optional[datetime] = None
    howtoapply: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    isVisible: Optional[bool] = None


# 3. Input: Apply to a job
class JobApply(BaseModel):
    jobId: str
    coverLetter: Optional[str] = None
    resumeUrl: Optional[str] = None


# 4. Output: aggregate numbers
class JobStats(BaseModel):
    totalJobs: int = 0
    activeJobs: int = 0
    expiredJobs: int = 0
    totalApplications: int = 0
