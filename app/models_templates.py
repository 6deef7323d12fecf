"""
Business document/message templates (terms, warranties, emails, SMS, ...)
"""

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.sql import expression, func

from .database import Base


class BusinessTemplate(Base):
    """A tenant's template for one family/purpose pair"""

    __tablename__ = "business_templates"
    __table_args__ = (
        # At most one active template per tenant, family and purpose
        Index(
            "uq_business_templates_active",
            "user_id",
            "family",
            "purpose",
            unique=True,
            postgresql_where=expression.column("is_active") == expression.true(),
            sqlite_where=expression.column("is_active") == expression.true(),
        ),
        Index("ix_business_templates_lookup", "user_id", "family", "purpose"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    family = Column(String(50), nullable=False)  # terms_conditions, warranty, email, sms, ...
    purpose = Column(String(50), default="general", nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    subject = Column(String(500), nullable=True)  # email only
    content = Column(Text, nullable=False)
    merge_fields = Column(JSON, nullable=True)  # ["client_name", "quote_number", ...]

    is_default = Column(Boolean, default=False, nullable=False)  # system-provided, cannot be deleted
    is_active = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
