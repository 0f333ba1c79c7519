from pydantic import BaseModel, Field
from typing import Literal


class ContributionCreate(BaseModel):
    title: str = Field(min_length=1)
    language: str = Field(min_length=1)
    code: str = Field(min_length=1)
    status: Literal["saved", "published"] = "saved"
