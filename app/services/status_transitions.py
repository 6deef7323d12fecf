"""
Status changes for jobs, quotes and invoices, with their stage timestamps.

Stage timestamps record the first entry into a stage and are never
overwritten, so moving a job back and forth keeps the original dates.
"""

from datetime import datetime
from typing import Optional

from ..models import INVOICE_STATUSES, JOB_STATUSES, QUOTE_STATUSES
from ..shared.errors import ValidationError

JOB_STAGE_TIMESTAMPS = {
    "in_progress": "started_at",
    "done": "completed_at",
    "invoiced": "invoiced_at",
}
QUOTE_STAGE_TIMESTAMPS = {
    "sent": "sent_at",
    "accepted": "accepted_at",
    "declined": "declined_at",
}
INVOICE_STAGE_TIMESTAMPS = {
    "sent": "sent_at",
    "paid": "paid_at",
}

STATUSES = {
    "job": JOB_STATUSES,
    "quote": QUOTE_STATUSES,
    "invoice": INVOICE_STATUSES,
}
STAGE_TIMESTAMPS = {
    "job": JOB_STAGE_TIMESTAMPS,
    "quote": QUOTE_STAGE_TIMESTAMPS,
    "invoice": INVOICE_STAGE_TIMESTAMPS,
}


def validate_status(entity_type: str, status: str) -> str:
    allowed = STATUSES[entity_type]
    if status not in allowed:
        raise ValidationError(
            f"Invalid {entity_type} status: {status!r}. Allowed: {', '.join(allowed)}"
        )
    return status


def apply_status(entity_type: str, entity, status: str, now: Optional[datetime] = None) -> str:
    """
    Set a new status and stamp the stage timestamp on first entry.
    Returns the previous status. Does not commit.
    """
    validate_status(entity_type, status)
    now = now or datetime.utcnow()

    previous = entity.status
    entity.status = status

    column = STAGE_TIMESTAMPS[entity_type].get(status)
    if column and getattr(entity, column) is None:
        setattr(entity, column, now)

    return previous
