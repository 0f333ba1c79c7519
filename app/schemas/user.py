from pydantic import BaseModel, EmailStr, field_validator
from typing import Optional, List, Literal, Any
from datetime import datetime

UserType = Literal["user", "recruiter"]
ProviderName = Literal["google", "linkedin"]


# 1. Credential registration (Input)
class UserRegister(BaseModel):
    name: str
    email: EmailStr
    password: str
    confirmPassword: str
    userType: UserType
    country: str
    profileLink: Optional[str] = None
    companyName: Optional[str] = None
    companyWebsite: Optional[str] = None
    phoneNumber: Optional[str] = None
    description: Optional[str] = None


# 2. Login (Input)
class UserLogin(BaseModel):
    email: str
    password: str
    userType: Optional[UserType] = None


# 3. Pending actions queued while anonymous, replayed after OTP
class PendingAction(BaseModel):
    type: Literal["apply_job", "add_code", "submit_contribution"]
    payload: dict = {}


# 4. OAuth: server-held state replacing the client's "pending" selections
class OAuthStateCreate(BaseModel):
    userType: UserType
    country: str
    pendingActions: List[PendingAction] = []


class OAuthStateResponse(BaseModel):
    success: bool = True
    state: str
    expiresAt: datetime


class OAuthIdentity(BaseModel):
    provider: ProviderName
    providerAccountId: str
    email: EmailStr
    name: Optional[str] = None
    state: str


class OAuthResponse(BaseModel):
    success: bool = True
    userId: str
    email: str


# 5. OTP
class VerifyOTPRequest(BaseModel):
    userId: str
    otpCode: str

    @field_validator('otpCode')
    @classmethod
    def validate_otp(cls, v):
        if not v.isdigit() or len(v) != 6:
            raise ValueError('OTP must be a 6-digit number')
        return v


class ResendOTPRequest(BaseModel):
    userId: str


# 6. Output
class UserOut(BaseModel):
    id: str
    name: str
    email: str
    role: str
    country: Optional[str] = None
    isEmailVerified: bool = False


class AuthResponse(BaseModel):
    success: bool = True
    token: str
    user: UserOut
    savedContributions: List[Any] = []


class VerifyOTPResponse(AuthResponse):
    replayed: List[dict] = []


# 7. Email verification link
class SendVerifyLinkRequest(BaseModel):
    email: EmailStr


class VerifyEmailRequest(BaseModel):
    token: str
    email: EmailStr


# 8. Profile edits (partial, only present fields change)
class UserProfileUpdate(BaseModel):
    name: Optional[str] = None
    country: Optional[str] = None
    phoneNumber: Optional[str] = None
    profileLink: Optional[str] = None
    companyName: Optional[str] = None
    companyWebsite: Optional[str] = None
    description: Optional[str] = None
