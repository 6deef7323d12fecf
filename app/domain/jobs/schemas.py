"""Job domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...models import JOB_STATUSES
from ...utils.sanitization import clean_text
from ..recurring.schemas import RecurrenceSettings


class JobCreate(BaseModel):
    """Schema for creating a new job"""

    clientId: int
    title: str
    description: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    assignedTo: Optional[str] = None
    status: str = "pending"
    scheduledAt: Optional[datetime] = None
    recurrence: Optional[RecurrenceSettings] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        v = clean_text(v, 255)
        if not v:
            raise ValueError("Job title is required")
        return v

    @field_validator("description", "address", "notes")
    @classmethod
    def clean_long_text(cls, v):
        return clean_text(v, 5000)

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v not in ("pending", "scheduled"):
            raise ValueError("New jobs start as pending or scheduled")
        return v


class JobUpdate(BaseModel):
    """Schema for updating job details. Status changes go through /status."""

    title: Optional[str] = None
    description: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    assignedTo: Optional[str] = None
    scheduledAt: Optional[datetime] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        return clean_text(v, 255)

    @field_validator("description", "address", "notes")
    @classmethod
    def clean_long_text(cls, v):
        return clean_text(v, 5000)


class JobStatusUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v not in JOB_STATUSES:
            raise ValueError(f"Status must be one of: {', '.join(JOB_STATUSES)}")
        return v


class JobResponse(BaseModel):
    """Schema for job response"""

    id: int
    clientId: int
    title: str
    description: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    assignedTo: Optional[str] = None
    status: str
    scheduledAt: Optional[datetime] = None
    startedAt: Optional[datetime] = None
    completedAt: Optional[datetime] = None
    invoicedAt: Optional[datetime] = None
    isRecurring: bool = False
    recurrencePattern: Optional[str] = None
    recurrenceInterval: Optional[int] = None
    recurrenceEndDate: Optional[datetime] = None
    nextRecurrenceDate: Optional[datetime] = None
    recurrenceStatus: Optional[str] = None
    parentJobId: Optional[int] = None
    archivedAt: Optional[datetime] = None
    created_at: Optional[datetime] = None
    automations: Optional[dict] = None

    class Config:
        from_attributes = True
