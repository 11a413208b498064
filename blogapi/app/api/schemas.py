"""Request/response models shared by several routers."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class UserRegistrationInput(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=3, max_length=320)
    photo_url: str = Field("", max_length=2048)

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v or v.startswith("@") or v.endswith("@"):
            raise ValueError("invalid email")
        return v


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    photo_url: str = ""
    created_at: datetime
    updated_at: datetime
