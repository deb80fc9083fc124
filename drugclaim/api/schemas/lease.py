"""
Lease schemas (Pydantic).
"""
from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional


def normalize_resource_key(value: str) -> str:
    return str(value or "").strip().lower()


class LeaseAcquire(BaseModel):
    resource_key: str = Field(min_length=1, max_length=64)
    holder_token: Optional[str] = Field(default=None, max_length=128)  # absent on first acquisition

    @field_validator("resource_key")
    @classmethod
    def clean_resource_key(cls, value: str) -> str:
        value = normalize_resource_key(value)
        if not value:
            raise ValueError("resource_key is required")
        return value

    @field_validator("holder_token")
    @classmethod
    def clean_holder_token(cls, value: Optional[str]) -> Optional[str]:
        value = (value or "").strip()
        return value or None


class LeaseRelease(BaseModel):
    resource_key: str = Field(min_length=1, max_length=64)
    holder_token: str = Field(min_length=1, max_length=128)

    @field_validator("resource_key")
    @classmethod
    def clean_resource_key(cls, value: str) -> str:
        value = normalize_resource_key(value)
        if not value:
            raise ValueError("resource_key is required")
        return value

    @field_validator("holder_token")
    @classmethod
    def clean_holder_token(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("holder_token is required")
        return value


class LeaseResponse(BaseModel):
    resource_key: str
    holder_token: str
    expires_at: datetime

    class Config:
        from_attributes = True


class ReleaseResponse(BaseModel):
    released: bool  # informational only, release always succeeds
