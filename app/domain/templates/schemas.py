"""Template domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...utils.sanitization import clean_text


class TemplateCreate(BaseModel):
    """Schema for creating a business template"""

    family: str
    purpose: str = "general"
    name: str
    description: Optional[str] = None
    subject: Optional[str] = None
    content: str
    mergeFields: Optional[list[str]] = None
    isActive: bool = False

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        v = clean_text(v, max_length=255)
        if not v:
            raise ValueError("Template name is required")
        return v

    @field_validator("content")
    @classmethod
    def validate_content(cls, v):
        return clean_text(v, max_length=20000)


class TemplateUpdate(BaseModel):
    """Schema for updating a business template"""

    family: Optional[str] = None
    purpose: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    subject: Optional[str] = None
    content: Optional[str] = None
    mergeFields: Optional[list[str]] = None
    isActive: Optional[bool] = None

    @field_validator("content")
    @classmethod
    def validate_content(cls, v):
        return clean_text(v, max_length=20000)


class TemplateResponse(BaseModel):
    id: int
    family: str
    purpose: str
    name: str
    description: Optional[str] = None
    subject: Optional[str] = None
    content: str
    mergeFields: Optional[list[str]] = None
    isDefault: bool
    isActive: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ActivationResponse(BaseModel):
    activated: bool
    template: TemplateResponse


class ResolvedTemplateResponse(BaseModel):
    family: str
    purpose: str
    source: str  # tenant, system_default
    templateId: Optional[int] = None
    subject: Optional[str] = None
    content: str
