"""Recurring domain schemas - Pydantic models for recurrence settings and contracts"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, field_validator

from ...services.recurring_service import parse_recurrence_pattern
from ...shared.money import Money
from ...utils.sanitization import clean_text
from ..quotes.schemas import LineItemInput


class RecurrenceSettings(BaseModel):
    """Recurrence block accepted when creating a job or invoice"""

    pattern: str
    interval: int = 1
    endDate: Optional[datetime] = None

    @field_validator("pattern")
    @classmethod
    def validate_pattern(cls, v):
        return parse_recurrence_pattern(v).value

    @field_validator("interval")
    @classmethod
    def validate_interval(cls, v):
        if v < 1:
            raise ValueError("Recurrence interval must be at least 1")
        return v


class StopRecurringRequest(BaseModel):
    entityType: str
    entityId: int

    @field_validator("entityType")
    @classmethod
    def validate_entity_type(cls, v):
        if v not in ("job", "invoice"):
            raise ValueError("entityType must be job or invoice")
        return v


class ContractJobTemplate(BaseModel):
    """Fields copied onto every job a contract creates"""

    title: Optional[str] = None
    description: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    assignedTo: Optional[str] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        return clean_text(v, 255)

    @field_validator("description", "address", "notes")
    @classmethod
    def clean_long_text(cls, v):
        return clean_text(v, 5000)


class ContractInvoiceTemplate(BaseModel):
    """Fields copied onto every invoice a contract creates"""

    title: Optional[str] = None
    description: Optional[str] = None
    gstEnabled: bool = True
    lineItems: list[LineItemInput] = []

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        return clean_text(v, 255)

    @field_validator("description")
    @classmethod
    def clean_long_text(cls, v):
        return clean_text(v, 5000)


class ContractCreate(BaseModel):
    clientId: int
    title: str
    description: Optional[str] = None
    contractValue: Optional[Decimal] = None
    frequency: str
    interval: int = 1
    startDate: datetime
    endDate: Optional[datetime] = None
    autoCreateJobs: bool = True
    autoCreateInvoices: bool = False
    jobTemplate: Optional[ContractJobTemplate] = None
    invoiceTemplate: Optional[ContractInvoiceTemplate] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        v = clean_text(v, 255)
        if not v:
            raise ValueError("Contract title is required")
        return v

    @field_validator("frequency")
    @classmethod
    def validate_frequency(cls, v):
        return parse_recurrence_pattern(v).value

    @field_validator("contractValue")
    @classmethod
    def validate_contract_value(cls, v):
        if v is not None and v < 0:
            raise ValueError("Contract value cannot be negative")
        if v is not None:
            # Rejects fractions of a cent instead of letting the column round them
            Money.parse(v)
        return v


class ContractResponse(BaseModel):
    id: int
    clientId: int
    title: str
    description: Optional[str] = None
    contractValue: Optional[Decimal] = None
    frequency: str
    interval: int
    startDate: datetime
    endDate: Optional[datetime] = None
    nextJobDate: Optional[datetime] = None
    autoCreateJobs: bool
    autoCreateInvoices: bool
    jobTemplate: Optional[dict] = None
    invoiceTemplate: Optional[dict] = None
    status: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ScheduleResponse(BaseModel):
    id: int
    contractId: int
    jobId: Optional[int] = None
    invoiceId: Optional[int] = None
    scheduledDate: datetime
    completedDate: Optional[datetime] = None
    status: str
