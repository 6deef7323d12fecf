"""Client domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import validate_au_phone, validate_email
from ...utils.sanitization import clean_text


class ClientCreate(BaseModel):
    """Schema for creating a new client"""

    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        v = clean_text(v, 255)
        if not v:
            raise ValueError("Client name is required")
        return v

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return validate_email(v) if v else None

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return validate_au_phone(v)
        return v

    @field_validator("address", "notes")
    @classmethod
    def clean_long_text(cls, v):
        return clean_text(v, 5000)


class ClientUpdate(BaseModel):
    """Schema for updating an existing client"""

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return clean_text(v, 255)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return validate_email(v) if v else None

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return validate_au_phone(v)
        return v

    @field_validator("address", "notes")
    @classmethod
    def clean_long_text(cls, v):
        return clean_text(v, 5000)


class ClientResponse(BaseModel):
    """Schema for client response"""

    id: int
    name: str
    email: Optional[str]
    phone: Optional[str]
    address: Optional[str]
    notes: Optional[str]
    archivedAt: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
