from pydantic import BaseModel, EmailStr, field_validator


class SendCodeRequest(BaseModel):
    email: EmailStr


class MatchCodeRequest(BaseModel):
    email: EmailStr
    code: str

    @field_validator('code')
    @classmethod
    def validate_code(cls, v):
        if not v.isdigit() or len(v) != 6:
            raise ValueError('Code must be a 6-digit number')
        return v


class ResetPassRequest(BaseModel):
    email: EmailStr
    code: str
    password: str
    confirmPassword: str

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        if len(v) < 6:
            raise ValueError('Password must be at least 6 characters')
        return v


class MessageResponse(BaseModel):
    message: str
