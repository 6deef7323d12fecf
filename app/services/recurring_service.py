"""
Recurring jobs, invoices and contracts.

A recurring parent carries a due date (``next_recurrence_date`` or, for
contracts, ``next_job_date``). Materializing an occurrence creates the child
for that due date, if it doesn't exist yet, and moves the parent on to the
next date or marks it completed. Child creation and the parent update are
committed together, so a crash or a failed child leaves the parent due and
the next run retries it. The per-parent unique keys on the child tables stop
two workers from creating the same occurrence.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from types import MappingProxyType
from typing import Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import RECURRENCE_MAX_CATCH_UP, RECURRING_INVOICE_DUE_DAYS
from ..domain.templates.service import resolve_template_content
from ..models import (
    RECURRENCE_ACTIVE,
    RECURRENCE_COMPLETED,
    Invoice,
    InvoiceLineItem,
    Job,
    Notification,
)
from ..models_recurring import RecurringContract, RecurringSchedule
from ..shared.errors import NotFoundError, ValidationError
from ..shared.validators import parse_calendar_date, parse_timestamp
from .document_totals import (
    INVOICE_PREFIX,
    apply_totals,
    generate_document_number,
    recalculate_totals,
)

logger = logging.getLogger(__name__)


class RecurrencePattern(str, Enum):
    WEEKLY = "weekly"
    FORTNIGHTLY = "fortnightly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


PATTERN_UNITS = MappingProxyType(
    {
        RecurrencePattern.WEEKLY: relativedelta(weeks=1),
        RecurrencePattern.FORTNIGHTLY: relativedelta(weeks=2),
        RecurrencePattern.MONTHLY: relativedelta(months=1),
        RecurrencePattern.QUARTERLY: relativedelta(months=3),
        RecurrencePattern.YEARLY: relativedelta(years=1),
    }
)


class RecurrenceState(str, Enum):
    SCHEDULED = "scheduled"  # next occurrence not yet due
    DUE = "due"
    MATERIALIZING = "materializing"  # transient, inside materialize_*
    ADVANCED = "advanced"  # child created, due date moved on
    COMPLETED = "completed"  # end date reached or recurrence stopped


@dataclass
class RecurringResult:
    type: str  # job, invoice, contract
    original_id: int
    new_id: Optional[int] = None
    success: bool = True
    skipped: bool = False
    completed: bool = False
    error: Optional[str] = None
    next_date: Optional[datetime] = None

    @property
    def state(self) -> Optional[RecurrenceState]:
        if not self.success:
            return None
        if self.completed:
            return RecurrenceState.COMPLETED
        return RecurrenceState.ADVANCED

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "originalId": self.original_id,
            "newId": self.new_id,
            "success": self.success,
            "skipped": self.skipped,
            "completed": self.completed,
            "error": self.error,
            "nextDate": self.next_date.isoformat() if self.next_date else None,
        }


def parse_recurrence_pattern(value) -> RecurrencePattern:
    if isinstance(value, RecurrencePattern):
        return value
    try:
        return RecurrencePattern(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(p.value for p in RecurrencePattern)
        raise ValidationError(f"Invalid recurrence pattern: {value!r}. Allowed: {allowed}")


def calculate_next_recurrence(current: datetime, pattern, interval: Optional[int] = 1) -> datetime:
    """
    current + interval x pattern unit. Month steps clamp to month end
    (31 Jan + 1 month = 28/29 Feb). Intervals below 1 count as 1.
    """
    unit = PATTERN_UNITS[parse_recurrence_pattern(pattern)]
    steps = max(1, int(interval or 1))
    return current + unit * steps


def validate_recurrence_settings(
    pattern,
    interval=1,
    end_date=None,
    start: Optional[datetime] = None,
) -> tuple:
    """
    Check recurrence input at the write boundary.
    Returns (pattern, interval, end_date) ready to store.
    """
    parsed_pattern = parse_recurrence_pattern(pattern)

    if interval is None:
        interval = 1
    if isinstance(interval, bool) or not isinstance(interval, int) or interval < 1:
        raise ValidationError("Recurrence interval must be a whole number of at least 1")

    parsed_end = None
    if end_date is not None:
        parsed_end = parse_timestamp(end_date)
        if start is not None and parse_calendar_date(parsed_end) < parse_calendar_date(start):
            raise ValidationError("Recurrence end date must not be before the first occurrence")

    return parsed_pattern, interval, parsed_end


def _is_past_end(due: datetime, end_date: Optional[datetime]) -> bool:
    """End dates are inclusive and compared as calendar dates"""
    return end_date is not None and parse_calendar_date(due) > parse_calendar_date(end_date)


def get_recurrence_state(entity, now: Optional[datetime] = None) -> RecurrenceState:
    """Persisted state of a recurring job, invoice or contract"""
    now = now or datetime.utcnow()

    if isinstance(entity, RecurringContract):
        if entity.status != "active" or entity.next_job_date is None:
            return RecurrenceState.COMPLETED
        due = entity.next_job_date
    else:
        if (
            not entity.is_recurring
            or entity.recurrence_status == RECURRENCE_COMPLETED
            or entity.next_recurrence_date is None
        ):
            return RecurrenceState.COMPLETED
        due = entity.next_recurrence_date

    return RecurrenceState.DUE if now >= due else RecurrenceState.SCHEDULED


def _complete(entity) -> None:
    entity.recurrence_status = RECURRENCE_COMPLETED
    entity.next_recurrence_date = None


def _advance(entity, due: datetime, end_date: Optional[datetime]) -> Optional[datetime]:
    """Move a job/invoice to its next due date, or complete it. Returns the new date."""
    next_date = calculate_next_recurrence(due, entity.recurrence_pattern, entity.recurrence_interval)
    if _is_past_end(next_date, end_date):
        _complete(entity)
        return None
    entity.next_recurrence_date = next_date
    return next_date


def _notify(db: Session, user_id: int, title: str, message: str, entity_type: str, entity_id: int):
    db.add(
        Notification(
            user_id=user_id,
            type="recurring",
            title=title,
            message=message,
            entity_type=entity_type,
            entity_id=entity_id,
        )
    )


def _not_due_result(kind: str, entity_id: int, state: RecurrenceState) -> RecurringResult:
    return RecurringResult(
        type=kind,
        original_id=entity_id,
        skipped=True,
        completed=state == RecurrenceState.COMPLETED,
    )


# ============================================================================
# JOBS
# ============================================================================


def _find_job_child(db: Session, parent_id: int, due: datetime) -> Optional[Job]:
    return (
        db.query(Job).filter(Job.parent_job_id == parent_id, Job.scheduled_at == due).first()
    )


def materialize_job_occurrence(
    db: Session, job: Job, now: Optional[datetime] = None
) -> RecurringResult:
    """Create the child job for the current due date and move the parent on"""
    job_id = job.id
    state = get_recurrence_state(job, now)
    if state != RecurrenceState.DUE:
        return _not_due_result("job", job_id, state)

    due = job.next_recurrence_date
    end_date = job.recurrence_end_date

    try:
        if _is_past_end(due, end_date):
            _complete(job)
            db.commit()
            logger.info(f"🏁 Recurring job {job_id} reached its end date")
            return RecurringResult(type="job", original_id=job_id, completed=True)

        child = _find_job_child(db, job_id, due)
        existed = child is not None
        if not existed:
            child = Job(
                user_id=job.user_id,
                client_id=job.client_id,
                title=job.title,
                description=job.description,
                address=job.address,
                notes=job.notes,
                assigned_to=job.assigned_to,
                status="pending",
                scheduled_at=due,
                parent_job_id=job_id,
                is_recurring=False,
            )
            db.add(child)
            db.flush()
            _notify(
                db,
                job.user_id,
                "Recurring job created",
                f"{job.title} scheduled for {due.strftime('%d/%m/%Y')}",
                "job",
                child.id,
            )

        next_date = _advance(job, due, end_date)
        new_id = child.id
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"⚠️ Recurring job {job_id} occurrence {due} already taken: {e.orig}")
        return RecurringResult(type="job", original_id=job_id, skipped=True)
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Failed to materialize recurring job {job_id} for {due}: {e}")
        return RecurringResult(type="job", original_id=job_id, success=False, error=str(e))

    if existed:
        logger.info(f"⏭️ Recurring job {job_id} already had child {new_id} for {due}")
    else:
        logger.info(f"✅ Recurring job {job_id} -> new job {new_id} for {due}")
    return RecurringResult(
        type="job",
        original_id=job_id,
        new_id=new_id,
        skipped=existed,
        completed=next_date is None,
        next_date=next_date,
    )


# ============================================================================
# INVOICES
# ============================================================================


def _find_invoice_child(db: Session, parent_id: int, due: datetime) -> Optional[Invoice]:
    return (
        db.query(Invoice)
        .filter(Invoice.parent_invoice_id == parent_id, Invoice.issue_date == due)
        .first()
    )


def _build_invoice(
    db: Session,
    user_id: int,
    client_id: int,
    title: str,
    line_items,
    gst_enabled: bool,
    issue_date: datetime,
    description: Optional[str] = None,
    notes: Optional[str] = None,
    fallback_mode: Optional[str] = None,
) -> Invoice:
    """Draft invoice with terms from the tenant's terms & conditions template"""
    terms = resolve_template_content(
        db, user_id, "terms_conditions", "general", fallback_mode=fallback_mode
    )
    totals = recalculate_totals(line_items, gst_enabled)

    invoice = Invoice(
        user_id=user_id,
        client_id=client_id,
        number=generate_document_number(db, Invoice, INVOICE_PREFIX),
        title=title,
        description=description,
        notes=notes,
        terms=terms.content,
        template_id=terms.template_id,
        status="draft",
        gst_enabled=gst_enabled,
        issue_date=issue_date,
        due_date=issue_date + timedelta(days=RECURRING_INVOICE_DUE_DAYS),
        is_recurring=False,
    )
    apply_totals(invoice, totals, InvoiceLineItem)
    return invoice


def materialize_invoice_occurrence(
    db: Session,
    invoice: Invoice,
    now: Optional[datetime] = None,
    fallback_mode: Optional[str] = None,
) -> RecurringResult:
    """Create the child invoice for the current due date and move the parent on"""
    invoice_id = invoice.id
    state = get_recurrence_state(invoice, now)
    if state != RecurrenceState.DUE:
        return _not_due_result("invoice", invoice_id, state)

    due = invoice.next_recurrence_date
    end_date = invoice.recurrence_end_date

    try:
        if _is_past_end(due, end_date):
            _complete(invoice)
            db.commit()
            logger.info(f"🏁 Recurring invoice {invoice_id} reached its end date")
            return RecurringResult(type="invoice", original_id=invoice_id, completed=True)

        child = _find_invoice_child(db, invoice_id, due)
        existed = child is not None
        if not existed:
            child = _build_invoice(
                db,
                user_id=invoice.user_id,
                client_id=invoice.client_id,
                title=invoice.title,
                line_items=list(invoice.line_items),
                gst_enabled=invoice.gst_enabled,
                issue_date=due,
                description=invoice.description,
                notes=invoice.notes,
                fallback_mode=fallback_mode,
            )
            child.job_id = invoice.job_id
            child.parent_invoice_id = invoice_id
            child.family_key = invoice.family_key
            db.add(child)
            db.flush()
            _notify(
                db,
                invoice.user_id,
                "Recurring invoice created",
                f"Invoice {child.number} for {invoice.title} is ready to send",
                "invoice",
                child.id,
            )

        next_date = _advance(invoice, due, end_date)
        new_id = child.id
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"⚠️ Recurring invoice {invoice_id} occurrence {due} already taken: {e.orig}")
        return RecurringResult(type="invoice", original_id=invoice_id, skipped=True)
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Failed to materialize recurring invoice {invoice_id} for {due}: {e}")
        return RecurringResult(type="invoice", original_id=invoice_id, success=False, error=str(e))

    if existed:
        logger.info(f"⏭️ Recurring invoice {invoice_id} already had child {new_id} for {due}")
    else:
        logger.info(f"✅ Recurring invoice {invoice_id} -> new invoice {new_id} for {due}")
    return RecurringResult(
        type="invoice",
        original_id=invoice_id,
        new_id=new_id,
        skipped=existed,
        completed=next_date is None,
        next_date=next_date,
    )


# ============================================================================
# CONTRACTS
# ============================================================================


def _contract_line_items(contract: RecurringContract, template: dict) -> list:
    line_items = template.get("lineItems")
    if line_items:
        return line_items
    if contract.contract_value is None:
        raise ValidationError(f"Contract {contract.id} has no invoice line items or contract value")
    return [{"description": contract.title, "quantity": 1, "unitPrice": contract.contract_value}]


def _find_contract_schedule(db: Session, contract_id: int, due: datetime) -> Optional[RecurringSchedule]:
    return (
        db.query(RecurringSchedule)
        .filter(
            RecurringSchedule.contract_id == contract_id,
            RecurringSchedule.scheduled_date == due,
        )
        .first()
    )


def materialize_contract_occurrence(
    db: Session,
    contract: RecurringContract,
    now: Optional[datetime] = None,
    fallback_mode: Optional[str] = None,
) -> RecurringResult:
    """
    Create the job and/or invoice for the contract's next date, record it in
    recurring_schedules and move the contract on. new_id is the schedule row.
    """
    contract_id = contract.id
    state = get_recurrence_state(contract, now)
    if state != RecurrenceState.DUE:
        return _not_due_result("contract", contract_id, state)

    due = contract.next_job_date
    end_date = contract.end_date

    try:
        if _is_past_end(due, end_date):
            contract.status = "completed"
            contract.next_job_date = None
            db.commit()
            logger.info(f"🏁 Contract {contract_id} reached its end date")
            return RecurringResult(type="contract", original_id=contract_id, completed=True)

        schedule = _find_contract_schedule(db, contract_id, due)
        existed = schedule is not None
        if not existed:
            schedule = RecurringSchedule(contract_id=contract_id, scheduled_date=due, status="scheduled")

            if contract.auto_create_jobs:
                job_template = contract.job_template or {}
                job = Job(
                    user_id=contract.user_id,
                    client_id=contract.client_id,
                    title=job_template.get("title") or contract.title,
                    description=job_template.get("description") or contract.description,
                    address=job_template.get("address"),
                    notes=job_template.get("notes"),
                    assigned_to=job_template.get("assignedTo"),
                    status="scheduled",
                    scheduled_at=due,
                )
                db.add(job)
                db.flush()
                schedule.job_id = job.id

            if contract.auto_create_invoices:
                invoice_template = contract.invoice_template or {}
                invoice = _build_invoice(
                    db,
                    user_id=contract.user_id,
                    client_id=contract.client_id,
                    title=invoice_template.get("title") or contract.title,
                    line_items=_contract_line_items(contract, invoice_template),
                    gst_enabled=invoice_template.get("gstEnabled", True),
                    issue_date=due,
                    description=invoice_template.get("description") or contract.description,
                    fallback_mode=fallback_mode,
                )
                invoice.job_id = schedule.job_id
                db.add(invoice)
                db.flush()
                schedule.invoice_id = invoice.id

            db.add(schedule)
            db.flush()
            _notify(
                db,
                contract.user_id,
                "Contract occurrence created",
                f"{contract.title} scheduled for {due.strftime('%d/%m/%Y')}",
                "job" if schedule.job_id else "invoice",
                schedule.job_id or schedule.invoice_id,
            )

        next_date = calculate_next_recurrence(due, contract.frequency, contract.interval)
        if _is_past_end(next_date, end_date):
            contract.status = "completed"
            contract.next_job_date = None
            next_date = None
        else:
            contract.next_job_date = next_date
        new_id = schedule.id
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"⚠️ Contract {contract_id} occurrence {due} already taken: {e.orig}")
        return RecurringResult(type="contract", original_id=contract_id, skipped=True)
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Failed to materialize contract {contract_id} for {due}: {e}")
        return RecurringResult(type="contract", original_id=contract_id, success=False, error=str(e))

    logger.info(f"✅ Contract {contract_id} occurrence {due} -> schedule {new_id}")
    return RecurringResult(
        type="contract",
        original_id=contract_id,
        new_id=new_id,
        skipped=existed,
        completed=next_date is None,
        next_date=next_date,
    )


# ============================================================================
# DUE QUERIES AND RUNS
# ============================================================================


def get_due_jobs(db: Session, now: Optional[datetime] = None, user_id: Optional[int] = None) -> list[Job]:
    now = now or datetime.utcnow()
    query = db.query(Job).filter(
        Job.is_recurring.is_(True),
        Job.recurrence_status == RECURRENCE_ACTIVE,
        Job.next_recurrence_date.isnot(None),
        Job.next_recurrence_date <= now,
        Job.archived_at.is_(None),
    )
    if user_id is not None:
        query = query.filter(Job.user_id == user_id)
    return query.order_by(Job.next_recurrence_date).all()


def get_due_invoices(
    db: Session, now: Optional[datetime] = None, user_id: Optional[int] = None
) -> list[Invoice]:
    now = now or datetime.utcnow()
    query = db.query(Invoice).filter(
        Invoice.is_recurring.is_(True),
        Invoice.recurrence_status == RECURRENCE_ACTIVE,
        Invoice.next_recurrence_date.isnot(None),
        Invoice.next_recurrence_date <= now,
        Invoice.archived_at.is_(None),
    )
    if user_id is not None:
        query = query.filter(Invoice.user_id == user_id)
    return query.order_by(Invoice.next_recurrence_date).all()


def get_due_contracts(
    db: Session, now: Optional[datetime] = None, user_id: Optional[int] = None
) -> list[RecurringContract]:
    now = now or datetime.utcnow()
    query = db.query(RecurringContract).filter(
        RecurringContract.status == "active",
        RecurringContract.next_job_date.isnot(None),
        RecurringContract.next_job_date <= now,
    )
    if user_id is not None:
        query = query.filter(RecurringContract.user_id == user_id)
    return query.order_by(RecurringContract.next_job_date).all()


def _catch_up(db: Session, entity, materialize, now: datetime) -> list[RecurringResult]:
    """Materialize every overdue occurrence of one entity, up to the catch-up limit"""
    results = []
    for _ in range(RECURRENCE_MAX_CATCH_UP):
        if get_recurrence_state(entity, now) != RecurrenceState.DUE:
            break
        result = materialize(db, entity, now)
        results.append(result)
        if not result.success or result.completed or (result.skipped and result.new_id is None):
            break
    return results


def _summarise(results: list[RecurringResult]) -> dict:
    created = [r for r in results if r.success and r.new_id is not None and not r.skipped]
    return {
        "jobs_created": sum(1 for r in created if r.type == "job"),
        "invoices_created": sum(1 for r in created if r.type == "invoice"),
        "contract_occurrences": sum(1 for r in created if r.type == "contract"),
        "completed": sum(1 for r in results if r.completed),
        "skipped": sum(1 for r in results if r.skipped),
        "failed": sum(1 for r in results if not r.success),
        "results": [r.to_dict() for r in results],
    }


def _process_due(db: Session, now: datetime, user_id: Optional[int]) -> list[RecurringResult]:
    results = []
    for job in get_due_jobs(db, now, user_id):
        results.extend(_catch_up(db, job, materialize_job_occurrence, now))
    for invoice in get_due_invoices(db, now, user_id):
        results.extend(_catch_up(db, invoice, materialize_invoice_occurrence, now))
    for contract in get_due_contracts(db, now, user_id):
        results.extend(_catch_up(db, contract, materialize_contract_occurrence, now))
    return results


def process_recurring_for_user(db: Session, user_id: int, now: Optional[datetime] = None) -> dict:
    """Materialize everything due for one tenant"""
    now = now or datetime.utcnow()
    summary = _summarise(_process_due(db, now, user_id))
    logger.info(
        f"🔁 Recurring run for user {user_id}: {summary['jobs_created']} jobs, "
        f"{summary['invoices_created']} invoices, {summary['contract_occurrences']} contract "
        f"occurrences, {summary['failed']} failed"
    )
    return summary


def process_all_due_recurrences(db: Session, now: Optional[datetime] = None) -> dict:
    """
    Background entry point: materialize everything due for every tenant.
    Failures are logged and counted, never raised.
    """
    now = now or datetime.utcnow()
    logger.info(f"🔄 Starting recurring run at {now.isoformat()}")

    summary = _summarise(_process_due(db, now, None))

    logger.info(
        f"✅ Recurring run complete: {summary['jobs_created']} jobs, "
        f"{summary['invoices_created']} invoices, {summary['contract_occurrences']} contract "
        f"occurrences, {summary['completed']} completed, {summary['failed']} failed"
    )
    return summary


# ============================================================================
# SETUP AND CONTROL
# ============================================================================


def _start_recurrence(entity, start: datetime, pattern, interval, end_date) -> None:
    entity.is_recurring = True
    entity.recurrence_pattern = pattern.value
    entity.recurrence_interval = interval
    entity.recurrence_end_date = end_date
    entity.recurrence_status = RECURRENCE_ACTIVE
    # The entity itself is the first occurrence
    entity.next_recurrence_date = start
    _advance(entity, start, end_date)


def create_recurring_job(db: Session, job: Job, pattern, interval=1, end_date=None) -> Job:
    """Turn a scheduled job into the parent of a recurring series"""
    if job.scheduled_at is None:
        raise ValidationError("A recurring job needs a scheduled date")
    pattern, interval, end_date = validate_recurrence_settings(
        pattern, interval, end_date, job.scheduled_at
    )

    _start_recurrence(job, job.scheduled_at, pattern, interval, end_date)
    db.commit()
    db.refresh(job)

    logger.info(
        f"🔁 Job {job.id} recurs {pattern.value} x{interval}, next {job.next_recurrence_date}"
    )
    return job


def reschedule_recurring_job(job: Job, scheduled_at: datetime) -> Optional[datetime]:
    """
    Move an active recurring parent to a new date. The parent stays the first
    occurrence, so the series restarts one step after the new date.
    Does not commit. Returns the new next date (None if that completes it).
    """
    validate_recurrence_settings(
        job.recurrence_pattern, job.recurrence_interval, job.recurrence_end_date, scheduled_at
    )
    job.scheduled_at = scheduled_at
    next_date = _advance(job, scheduled_at, job.recurrence_end_date)
    logger.info(f"📅 Recurring job {job.id} moved to {scheduled_at}, next {next_date}")
    return next_date


def create_recurring_invoice(db: Session, invoice: Invoice, pattern, interval=1, end_date=None) -> Invoice:
    """Turn an invoice into the parent of a recurring series"""
    if invoice.issue_date is None:
        invoice.issue_date = datetime.utcnow()
    pattern, interval, end_date = validate_recurrence_settings(
        pattern, interval, end_date, invoice.issue_date
    )

    _start_recurrence(invoice, invoice.issue_date, pattern, interval, end_date)
    db.commit()
    db.refresh(invoice)

    logger.info(
        f"🔁 Invoice {invoice.id} recurs {pattern.value} x{interval}, "
        f"next {invoice.next_recurrence_date}"
    )
    return invoice


def stop_recurring(db: Session, kind: str, entity_id: int, user_id: int):
    """Clear the recurrence settings of a job or invoice. Existing children stay."""
    models = {"job": Job, "invoice": Invoice}
    if kind not in models:
        raise ValidationError(f"Cannot stop recurrence on {kind!r}")

    model = models[kind]
    entity = db.query(model).filter(model.id == entity_id, model.user_id == user_id).first()
    if not entity:
        raise NotFoundError(f"{kind.capitalize()} not found")

    entity.is_recurring = False
    entity.recurrence_pattern = None
    entity.recurrence_interval = None
    entity.recurrence_end_date = None
    entity.next_recurrence_date = None
    entity.recurrence_status = None
    db.commit()
    db.refresh(entity)

    logger.info(f"⏹️ Stopped recurring {kind} {entity_id} for user {user_id}")
    return entity


def _get_contract(db: Session, contract_id: int, user_id: int) -> RecurringContract:
    contract = (
        db.query(RecurringContract)
        .filter(RecurringContract.id == contract_id, RecurringContract.user_id == user_id)
        .first()
    )
    if not contract:
        raise NotFoundError("Contract not found")
    return contract


def pause_contract(db: Session, contract_id: int, user_id: int) -> RecurringContract:
    contract = _get_contract(db, contract_id, user_id)
    if contract.status != "active":
        raise ValidationError(f"Only active contracts can be paused (status: {contract.status})")
    contract.status = "paused"
    db.commit()
    db.refresh(contract)
    logger.info(f"⏸️ Paused contract {contract_id}")
    return contract


def resume_contract(db: Session, contract_id: int, user_id: int) -> RecurringContract:
    contract = _get_contract(db, contract_id, user_id)
    if contract.status != "paused":
        raise ValidationError(f"Only paused contracts can be resumed (status: {contract.status})")
    contract.status = "active"
    db.commit()
    db.refresh(contract)
    logger.info(f"▶️ Resumed contract {contract_id}")
    return contract


def cancel_contract(db: Session, contract_id: int, user_id: int) -> RecurringContract:
    """Cancel a contract and any occurrences that haven't produced a job or invoice"""
    contract = _get_contract(db, contract_id, user_id)
    if contract.status in ("completed", "cancelled"):
        raise ValidationError(f"Contract is already {contract.status}")

    contract.status = "cancelled"
    contract.next_job_date = None
    db.query(RecurringSchedule).filter(
        RecurringSchedule.contract_id == contract_id,
        RecurringSchedule.status == "scheduled",
        RecurringSchedule.job_id.is_(None),
        RecurringSchedule.invoice_id.is_(None),
    ).update({RecurringSchedule.status: "cancelled"}, synchronize_session=False)
    db.commit()
    db.refresh(contract)
    logger.info(f"🛑 Cancelled contract {contract_id}")
    return contract
