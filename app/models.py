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
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base

SUBSCRIPTION_TIERS = ("free", "pro", "team", "trial")

# Ordered - a job only ever moves forward through these stages
JOB_STATUSES = ("pending", "scheduled", "in_progress", "done", "invoiced")
QUOTE_STATUSES = ("draft", "sent", "accepted", "declined")
INVOICE_STATUSES = ("draft", "sent", "paid", "overdue")

RECURRENCE_ACTIVE = "active"
RECURRENCE_COMPLETED = "completed"


class User(Base):
    """A tenant - the business account that owns every other row"""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    business_name = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    trade_type = Column(String(50), nullable=True)  # plumbing, electrical, ...

    # Subscription
    subscription_tier = Column(String(20), default="free", nullable=False)  # free, pro, team, trial
    trial_ends_at = Column(DateTime, nullable=True)

    # Monthly usage counters, reset when the calendar month rolls over
    jobs_created_this_month = Column(Integer, default=0, nullable=False)
    invoices_created_this_month = Column(Integer, default=0, nullable=False)
    quotes_created_this_month = Column(Integer, default=0, nullable=False)
    usage_reset_date = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Client(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    archived_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    jobs = relationship(
        "Job", back_populates="client", cascade="all, delete-orphan", passive_deletes=True
    )


class Job(Base):
    __tablename__ = "jobs"
    __table_args__ = (
        # One materialized occurrence per parent per date
        UniqueConstraint("parent_job_id", "scheduled_at", name="uq_jobs_parent_occurrence"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    address = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    assigned_to = Column(String(255), nullable=True)

    status = Column(String(20), default="pending", nullable=False)
    scheduled_at = Column(DateTime, nullable=True)
    # Stage timestamps - set on first entry into the stage
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    invoiced_at = Column(DateTime, nullable=True)

    # Recurring job settings
    is_recurring = Column(Boolean, default=False, nullable=False)
    recurrence_pattern = Column(String(20), nullable=True)  # weekly, fortnightly, monthly, ...
    recurrence_interval = Column(Integer, default=1, nullable=True)
    recurrence_end_date = Column(DateTime, nullable=True)
    next_recurrence_date = Column(DateTime, nullable=True, index=True)
    recurrence_status = Column(String(20), nullable=True)  # active, completed
    parent_job_id = Column(Integer, ForeignKey("jobs.id", ondelete="SET NULL"), nullable=True)

    archived_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    client = relationship("Client", back_populates="jobs")


class Quote(Base):
    __tablename__ = "quotes"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False)
    job_id = Column(Integer, ForeignKey("jobs.id", ondelete="SET NULL"), nullable=True)

    number = Column(String(50), unique=True, nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    status = Column(String(20), default="draft", nullable=False)  # draft, sent, accepted, declined

    # Pricing - subtotal + gst_amount == total at 2dp
    subtotal = Column(Numeric(10, 2), default=0, nullable=False)
    gst_amount = Column(Numeric(10, 2), default=0, nullable=False)
    total = Column(Numeric(10, 2), default=0, nullable=False)
    gst_enabled = Column(Boolean, default=True, nullable=False)

    valid_until = Column(DateTime, nullable=True)
    sent_at = Column(DateTime, nullable=True)
    accepted_at = Column(DateTime, nullable=True)
    declined_at = Column(DateTime, nullable=True)

    template_id = Column(Integer, nullable=True)
    family_key = Column(String(100), nullable=True)  # groups quote + invoice templates

    archived_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    line_items = relationship(
        "QuoteLineItem",
        order_by="QuoteLineItem.sort_order",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class QuoteLineItem(Base):
    __tablename__ = "quote_line_items"

    id = Column(Integer, primary_key=True, index=True)
    quote_id = Column(Integer, ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False)
    description = Column(Text, nullable=False)
    quantity = Column(Numeric(10, 2), default=1, nullable=False)
    unit_price = Column(Numeric(10, 2), default=0, nullable=False)
    total = Column(Numeric(10, 2), default=0, nullable=False)
    sort_order = Column(Integer, default=0)
    created_at = Column(DateTime, server_default=func.now())


class Invoice(Base):
    __tablename__ = "invoices"
    __table_args__ = (
        UniqueConstraint("parent_invoice_id", "issue_date", name="uq_invoices_parent_occurrence"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False)
    job_id = Column(Integer, ForeignKey("jobs.id", ondelete="SET NULL"), nullable=True)
    quote_id = Column(Integer, ForeignKey("quotes.id", ondelete="SET NULL"), nullable=True)

    number = Column(String(50), unique=True, nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    terms = Column(Text, nullable=True)
    status = Column(String(20), default="draft", nullable=False)  # draft, sent, paid, overdue

    subtotal = Column(Numeric(10, 2), default=0, nullable=False)
    gst_amount = Column(Numeric(10, 2), default=0, nullable=False)
    total = Column(Numeric(10, 2), default=0, nullable=False)
    gst_enabled = Column(Boolean, default=True, nullable=False)

    issue_date = Column(DateTime, nullable=True)
    due_date = Column(DateTime, nullable=True)
    sent_at = Column(DateTime, nullable=True)
    paid_at = Column(DateTime, nullable=True)

    template_id = Column(Integer, nullable=True)
    family_key = Column(String(100), nullable=True)

    # Recurring invoice settings
    is_recurring = Column(Boolean, default=False, nullable=False)
    recurrence_pattern = Column(String(20), nullable=True)
    recurrence_interval = Column(Integer, default=1, nullable=True)
    recurrence_end_date = Column(DateTime, nullable=True)
    next_recurrence_date = Column(DateTime, nullable=True, index=True)
    recurrence_status = Column(String(20), nullable=True)
    parent_invoice_id = Column(
        Integer, ForeignKey("invoices.id", ondelete="SET NULL"), nullable=True
    )

    archived_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    line_items = relationship(
        "InvoiceLineItem",
        order_by="InvoiceLineItem.sort_order",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class InvoiceLineItem(Base):
    __tablename__ = "invoice_line_items"

    id = Column(Integer, primary_key=True, index=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False)
    description = Column(Text, nullable=False)
    quantity = Column(Numeric(10, 2), default=1, nullable=False)
    unit_price = Column(Numeric(10, 2), default=0, nullable=False)
    total = Column(Numeric(10, 2), default=0, nullable=False)
    sort_order = Column(Integer, default=0)
    created_at = Column(DateTime, server_default=func.now())


class Notification(Base):
    """In-app notification shown to the tenant"""

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(50), nullable=False)  # automation, recurring, ...
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    entity_type = Column(String(20), nullable=True)
    entity_id = Column(Integer, nullable=True)
    data = Column(JSON, nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
