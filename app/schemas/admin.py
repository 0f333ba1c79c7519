# ========================================
# app/schemas/admin.py - admin panel accounts
# ========================================

from pydantic import BaseModel, EmailStr
from typing import Optional


# 1. Input: Registration (gated by the shared admin secret)
class AdminRegister(BaseModel):
    # Presence of the other fields is checked after the secret key
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    secretKey: Optional[str] = None


# 2. Input: Login
class AdminLogin(BaseModel):
    email: str
    password: str


# 3. Input: Profile update
class AdminProfileUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    currentPassword: Optional[str] = None
    newPassword: Optional[str] = None


# 4. Output
class AdminOut(BaseModel):
    id: str
    name: str
    email: str
    role: str = "admin"


class AdminAuthResponse(BaseModel):
    success: bool = True
    token: str
    user: AdminOut


class AdminProfileResponse(BaseModel):
    success: bool = True
    data: AdminOut
