"""Invoice domain schemas - Pydantic models for validation"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from ...models import INVOICE_STATUSES
from ...utils.sanitization import clean_text
from ..quotes.schemas import LineItemInput, LineItemResponse
from ..recurring.schemas import RecurrenceSettings


class InvoiceCreate(BaseModel):
    """Schema for creating a new invoice"""

    clientId: int
    jobId: Optional[int] = None
    quoteId: Optional[int] = None
    title: str
    description: Optional[str] = None
    notes: Optional[str] = None
    terms: Optional[str] = None
    gstEnabled: bool = True
    issueDate: Optional[datetime] = None
    dueDate: Optional[datetime] = None
    templateId: Optional[int] = None
    familyKey: Optional[str] = None
    lineItems: list[LineItemInput] = []
    recurrence: Optional[RecurrenceSettings] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        v = clean_text(v, 255)
        if not v:
            raise ValueError("Invoice title is required")
        return v

    @field_validator("description", "notes", "terms")
    @classmethod
    def clean_long_text(cls, v):
        return clean_text(v, 10000)

    @model_validator(mode="after")
    def validate_dates(self):
        if self.issueDate and self.dueDate and self.dueDate.date() < self.issueDate.date():
            raise ValueError("Due date cannot be before the issue date")
        return self


class InvoiceUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    notes: Optional[str] = None
    terms: Optional[str] = None
    dueDate: Optional[datetime] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        return clean_text(v, 255)

    @field_validator("description", "notes", "terms")
    @classmethod
    def clean_long_text(cls, v):
        return clean_text(v, 10000)


class InvoiceStatusUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v not in INVOICE_STATUSES:
            raise ValueError(f"Status must be one of: {', '.join(INVOICE_STATUSES)}")
        return v


class InvoiceResponse(BaseModel):
    """Schema for invoice response"""

    id: int
    clientId: int
    jobId: Optional[int] = None
    quoteId: Optional[int] = None
    number: str
    title: str
    description: Optional[str] = None
    notes: Optional[str] = None
    terms: Optional[str] = None
    status: str
    subtotal: Decimal
    gstAmount: Decimal
    total: Decimal
    gstEnabled: bool
    issueDate: Optional[datetime] = None
    dueDate: Optional[datetime] = None
    sentAt: Optional[datetime] = None
    paidAt: Optional[datetime] = None
    templateId: Optional[int] = None
    familyKey: Optional[str] = None
    isRecurring: bool = False
    recurrencePattern: Optional[str] = None
    recurrenceInterval: Optional[int] = None
    recurrenceEndDate: Optional[datetime] = None
    nextRecurrenceDate: Optional[datetime] = None
    recurrenceStatus: Optional[str] = None
    parentInvoiceId: Optional[int] = None
    archivedAt: Optional[datetime] = None
    lineItems: list[LineItemResponse] = []
    created_at: Optional[datetime] = None
    automations: Optional[dict] = None

    class Config:
        from_attributes = True
