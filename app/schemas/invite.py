from pydantic import BaseModel, Field, field_validator


class InviteCreate(BaseModel):
    recipientId: str
    message: str = Field(min_length=5, max_length=500)

    @field_validator('message')
    @classmethod
    def strip_message(cls, v):
        v = v.strip()
        if len(v) < 5:
            raise ValueError('Message must be between 5 and 500 characters')
        return v
