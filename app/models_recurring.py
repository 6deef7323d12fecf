"""
Recurring service contracts and their occurrence history
"""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from .database import Base

CONTRACT_STATUSES = ("active", "paused", "completed", "cancelled")
SCHEDULE_STATUSES = ("scheduled", "completed", "skipped", "cancelled")


class RecurringContract(Base):
    __tablename__ = "recurring_contracts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    contract_value = Column(Numeric(10, 2), nullable=True)

    frequency = Column(String(20), nullable=False)  # weekly, fortnightly, monthly, quarterly, yearly
    interval = Column(Integer, default=1, nullable=False)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=True)
    next_job_date = Column(DateTime, nullable=True, index=True)

    auto_create_jobs = Column(Boolean, default=True, nullable=False)
    auto_create_invoices = Column(Boolean, default=False, nullable=False)
    job_template = Column(JSON, nullable=True)  # {"title", "description", "address", "notes", "assignedTo"}
    invoice_template = Column(JSON, nullable=True)  # {"title", "description", "lineItems", "gstEnabled"}

    status = Column(String(20), default="active", nullable=False)  # active, paused, completed, cancelled

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class RecurringSchedule(Base):
    """History row for one contract occurrence"""

    __tablename__ = "recurring_schedules"
    __table_args__ = (
        UniqueConstraint("contract_id", "scheduled_date", name="uq_recurring_schedules_occurrence"),
    )

    id = Column(Integer, primary_key=True, index=True)
    contract_id = Column(
        Integer, ForeignKey("recurring_contracts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    job_id = Column(Integer, ForeignKey("jobs.id", ondelete="SET NULL"), nullable=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id", ondelete="SET NULL"), nullable=True)
    scheduled_date = Column(DateTime, nullable=False)
    completed_date = Column(DateTime, nullable=True)
    status = Column(String(20), default="scheduled", nullable=False)
    created_at = Column(DateTime, server_default=func.now())
