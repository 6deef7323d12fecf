"""Quote domain schemas - Pydantic models for validation"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, field_validator

from ...models import QUOTE_STATUSES
from ...utils.sanitization import clean_text


class LineItemInput(BaseModel):
    """One line on a quote or invoice. Totals are always computed server side."""

    description: str
    quantity: Decimal = Decimal("1")
    unitPrice: Decimal
    sortOrder: Optional[int] = None

    @field_validator("description")
    @classmethod
    def validate_description(cls, v):
        v = clean_text(v, 1000)
        if not v:
            raise ValueError("Line item description is required")
        return v


class LineItemResponse(BaseModel):
    id: int
    description: str
    quantity: Decimal
    unitPrice: Decimal
    total: Decimal
    sortOrder: Optional[int] = None


class LineItemsReplace(BaseModel):
    lineItems: list[LineItemInput]
    gstEnabled: Optional[bool] = None


class QuoteCreate(BaseModel):
    """Schema for creating a new quote"""

    clientId: int
    jobId: Optional[int] = None
    title: str
    description: Optional[str] = None
    notes: Optional[str] = None
    gstEnabled: bool = True
    validUntil: Optional[datetime] = None
    templateId: Optional[int] = None
    familyKey: Optional[str] = None
    lineItems: list[LineItemInput] = []

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        v = clean_text(v, 255)
        if not v:
            raise ValueError("Quote title is required")
        return v

    @field_validator("description", "notes")
    @classmethod
    def clean_long_text(cls, v):
        return clean_text(v, 5000)


class QuoteUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    notes: Optional[str] = None
    validUntil: Optional[datetime] = None
    jobId: Optional[int] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        return clean_text(v, 255)

    @field_validator("description", "notes")
    @classmethod
    def clean_long_text(cls, v):
        return clean_text(v, 5000)


class QuoteStatusUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v not in QUOTE_STATUSES:
            raise ValueError(f"Status must be one of: {', '.join(QUOTE_STATUSES)}")
        return v


class QuoteResponse(BaseModel):
    """Schema for quote response"""

    id: int
    clientId: int
    jobId: Optional[int] = None
    number: str
    title: str
    description: Optional[str] = None
    notes: Optional[str] = None
    status: str
    subtotal: Decimal
    gstAmount: Decimal
    total: Decimal
    gstEnabled: bool
    validUntil: Optional[datetime] = None
    sentAt: Optional[datetime] = None
    acceptedAt: Optional[datetime] = None
    declinedAt: Optional[datetime] = None
    templateId: Optional[int] = None
    familyKey: Optional[str] = None
    archivedAt: Optional[datetime] = None
    lineItems: list[LineItemResponse] = []
    created_at: Optional[datetime] = None
    automations: Optional[dict] = None

    class Config:
        from_attributes = True
