"""Automation domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from ...models_automation import AUTOMATION_ENTITY_TYPES
from ...services.automation_service import ACTION_TYPES, TRIGGER_TYPES


class AutomationTrigger(BaseModel):
    type: str
    entityType: str
    fromStatus: Optional[str] = None
    toStatus: Optional[str] = None
    delayDays: Optional[int] = None

    @field_validator("type")
    @classmethod
    def validate_type(cls, v):
        if v not in TRIGGER_TYPES:
            raise ValueError(f"Trigger type must be one of: {', '.join(TRIGGER_TYPES)}")
        return v

    @field_validator("entityType")
    @classmethod
    def validate_entity_type(cls, v):
        if v not in AUTOMATION_ENTITY_TYPES:
            raise ValueError(f"Entity type must be one of: {', '.join(AUTOMATION_ENTITY_TYPES)}")
        return v

    @model_validator(mode="after")
    def validate_combination(self):
        if self.type == "payment_received" and self.entityType != "invoice":
            raise ValueError("payment_received triggers apply to invoices")
        if self.type == "no_response" and self.entityType != "quote":
            raise ValueError("no_response triggers apply to quotes")
        if self.type == "time_delay" and self.entityType == "quote":
            raise ValueError("time_delay triggers apply to jobs and invoices")
        return self


class AutomationAction(BaseModel):
    type: str
    template: Optional[str] = None  # template purpose, e.g. quote_sent / sms_quote_sent
    subject: Optional[str] = None
    message: Optional[str] = None
    title: Optional[str] = None
    newStatus: Optional[str] = None

    @field_validator("type")
    @classmethod
    def validate_type(cls, v):
        if v not in ACTION_TYPES:
            raise ValueError(f"Action type must be one of: {', '.join(ACTION_TYPES)}")
        return v

    @model_validator(mode="after")
    def validate_fields(self):
        if self.type == "update_status" and not self.newStatus:
            raise ValueError("update_status actions need newStatus")
        return self


class AutomationCreate(BaseModel):
    name: str
    description: Optional[str] = None
    isActive: bool = True
    trigger: AutomationTrigger
    actions: list[AutomationAction]

    @field_validator("actions")
    @classmethod
    def validate_actions(cls, v):
        if not v:
            raise ValueError("At least one action is required")
        return v


class AutomationUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    isActive: Optional[bool] = None
    trigger: Optional[AutomationTrigger] = None
    actions: Optional[list[AutomationAction]] = None


class AutomationResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    isActive: bool
    trigger: dict
    actions: list[dict]
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AutomationLogResponse(BaseModel):
    id: int
    automationId: int
    entityType: str
    entityId: int
    processedAt: Optional[datetime] = None
    result: Optional[str] = None
    errorMessage: Optional[str] = None
