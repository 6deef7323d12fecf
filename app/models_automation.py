"""
Automation rules and the processed-entity ledger
"""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from .database import Base

AUTOMATION_ENTITY_TYPES = ("job", "quote", "invoice")
AUTOMATION_RESULTS = ("success", "error")


class Automation(Base):
    __tablename__ = "automations"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # {"type": "status_change", "entityType": "quote", "fromStatus": ..., "toStatus": ..., "delayDays": ...}
    trigger = Column(JSON, nullable=False)
    # [{"type": "send_email", "template": "quote_sent", "message": ..., "newStatus": ...}, ...]
    actions = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class AutomationLog(Base):
    """One row per automation and entity. The unique key is what stops a second run."""

    __tablename__ = "automation_logs"
    __table_args__ = (
        UniqueConstraint(
            "automation_id", "entity_type", "entity_id", name="uq_automation_logs_entity"
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    automation_id = Column(
        Integer, ForeignKey("automations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    entity_type = Column(String(20), nullable=False)  # job, quote, invoice
    entity_id = Column(Integer, nullable=False)
    processed_at = Column(DateTime, server_default=func.now())
    result = Column(String(20), nullable=True)  # success, error - NULL while actions run
    error_message = Column(Text, nullable=True)
