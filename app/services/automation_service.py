"""
Automation rules: trigger matching and action execution.

Every run for an (automation, entity) pair is gated by the automation log.
The ledger row is claimed before any action runs and the outcome recorded
afterwards; a failed run keeps its row, so nothing is sent twice.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ..config import RECURRING_INVOICE_DUE_DAYS
from ..domain.templates.service import resolve_template_content
from ..models import Client, Invoice, InvoiceLineItem, Job, Notification, Quote, User
from ..models_automation import Automation
from ..shared.errors import TemplateNotFoundError
from .automation_log import has_processed, record_if_absent, record_result
from .document_totals import INVOICE_PREFIX, apply_totals, generate_document_number, recalculate_totals
from .notification_service import NotificationSender, get_notification_sender
from .status_transitions import apply_status
from .template_renderer import build_merge_context, format_money, render_template

logger = logging.getLogger(__name__)

TRIGGER_TYPES = ("status_change", "time_delay", "no_response", "payment_received")
ACTION_TYPES = (
    "send_email",
    "send_sms",
    "notification",
    "create_job",
    "create_invoice",
    "update_status",
)

DEFAULT_NO_RESPONSE_DAYS = 3
DEFAULT_TIME_DELAY_DAYS = 1

ENTITY_MODELS = {"job": Job, "quote": Quote, "invoice": Invoice}


class AutomationActionError(Exception):
    """An action could not be carried out"""


@dataclass
class ActionContext:
    user: User
    entity_type: str
    entity: object
    client: Optional[Client] = None

    @property
    def merge_fields(self) -> dict:
        return build_merge_context(
            user=self.user,
            client=self.client,
            job=self.entity if self.entity_type == "job" else None,
            quote=self.entity if self.entity_type == "quote" else None,
            invoice=self.entity if self.entity_type == "invoice" else None,
        )


@dataclass
class AutomationRunSummary:
    matched: int = 0
    processed: int = 0
    skipped: int = 0
    errors: int = 0
    details: list = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "matched": self.matched,
            "processed": self.processed,
            "skipped": self.skipped,
            "errors": self.errors,
            "details": self.details,
        }


# ============================================================================
# ACTIONS
# ============================================================================


def _fallback_email(ctx: ActionContext) -> tuple:
    """Subject and body used when an email action names no template or message"""
    if ctx.entity_type == "quote":
        return (
            "Following up on your quote - {quote_number}",
            "G'day {client_name},\n\nJust checking in on the quote I sent through. "
            "Let me know if you have any questions.\n\nCheers,\n{business_name}",
        )
    if ctx.entity_type == "invoice":
        return (
            "Payment Reminder - Invoice {invoice_number}",
            "Hi {client_name},\n\nThis is a friendly reminder about invoice {invoice_number}.\n\n"
            "Amount Due: {invoice_total}\n\nPlease arrange payment at your earliest convenience."
            "\n\nThanks,\n{business_name}",
        )
    return (
        "Job Update - {job_title}",
        "G'day {client_name},\n\nJust a quick update on your job: {job_title}.\n\nCheers,\n{business_name}",
    )


def _send_email(db: Session, ctx: ActionContext, action: dict, sender: NotificationSender) -> None:
    if not ctx.client or not ctx.client.email:
        logger.info(f"⏭️ Skipped email for {ctx.entity_type} {ctx.entity.id} - no client email")
        return

    if action.get("template"):
        resolved = resolve_template_content(db, ctx.user.id, "email", action["template"])
        subject, body = resolved.subject or "", resolved.content
    elif action.get("message"):
        subject, body = action.get("subject") or _fallback_email(ctx)[0], action["message"]
    else:
        subject, body = _fallback_email(ctx)

    fields = ctx.merge_fields
    result = sender.send_email(
        ctx.client.email, render_template(subject, fields), render_template(body, fields)
    )
    if not result.success:
        raise AutomationActionError(f"Email to {ctx.client.email} failed: {result.error}")


def _send_sms(db: Session, ctx: ActionContext, action: dict, sender: NotificationSender) -> None:
    if not ctx.client or not ctx.client.phone:
        logger.info(f"⏭️ Skipped SMS for {ctx.entity_type} {ctx.entity.id} - no client phone")
        return

    if action.get("template"):
        body = resolve_template_content(db, ctx.user.id, "sms", action["template"]).content
    else:
        body = action.get("message") or ""
    if not body.strip():
        raise AutomationActionError("SMS action has no template or message")

    result = sender.send_sms(ctx.client.phone, render_template(body, ctx.merge_fields))
    if not result.success:
        raise AutomationActionError(f"SMS to {ctx.client.phone} failed: {result.error}")


def _create_notification(db: Session, ctx: ActionContext, action: dict) -> None:
    message = render_template(action.get("message") or "Automation triggered", ctx.merge_fields)
    db.add(
        Notification(
            user_id=ctx.user.id,
            type="automation",
            title=action.get("title") or "Automation Alert",
            message=message,
            entity_type=ctx.entity_type,
            entity_id=ctx.entity.id,
        )
    )
    db.commit()


def _create_job_from_quote(db: Session, ctx: ActionContext) -> None:
    if ctx.entity_type != "quote":
        raise AutomationActionError("create_job needs a quote")

    quote = ctx.entity
    job = Job(
        user_id=quote.user_id,
        client_id=quote.client_id,
        title=quote.title or f"Job from Quote {quote.number}",
        description=quote.description,
        status="pending",
    )
    db.add(job)
    db.flush()
    if quote.job_id is None:
        quote.job_id = job.id
    db.commit()
    logger.info(f"🛠️ Created job {job.id} from quote {quote.id}")


def _create_invoice_from_job(db: Session, ctx: ActionContext) -> None:
    if ctx.entity_type != "job":
        raise AutomationActionError("create_invoice needs a job")

    job = ctx.entity
    accepted_quote = (
        db.query(Quote)
        .filter(Quote.job_id == job.id, Quote.status == "accepted")
        .order_by(Quote.accepted_at.desc())
        .first()
    )
    line_items = list(accepted_quote.line_items) if accepted_quote else []
    gst_enabled = accepted_quote.gst_enabled if accepted_quote else True

    try:
        terms = resolve_template_content(db, job.user_id, "terms_conditions", "general")
    except TemplateNotFoundError:
        terms = None

    now = datetime.utcnow()
    invoice = Invoice(
        user_id=job.user_id,
        client_id=job.client_id,
        job_id=job.id,
        quote_id=accepted_quote.id if accepted_quote else None,
        number=generate_document_number(db, Invoice, INVOICE_PREFIX),
        title=job.title,
        description=job.description,
        terms=terms.content if terms else None,
        status="draft",
        gst_enabled=gst_enabled,
        issue_date=now,
        due_date=now + timedelta(days=RECURRING_INVOICE_DUE_DAYS),
    )
    apply_totals(invoice, recalculate_totals(line_items, gst_enabled), InvoiceLineItem)
    db.add(invoice)
    db.commit()
    logger.info(f"🧾 Created invoice {invoice.id} ({format_money(invoice.total)}) from job {job.id}")


def _update_status(db: Session, ctx: ActionContext, action: dict) -> None:
    new_status = action.get("newStatus")
    if not new_status:
        raise AutomationActionError("update_status action has no newStatus")
    # Status set by an automation does not trigger further automations
    apply_status(ctx.entity_type, ctx.entity, new_status)
    db.commit()
    logger.info(f"🔀 {ctx.entity_type} {ctx.entity.id} status -> {new_status}")


def execute_automation_actions(
    db: Session, actions: list, ctx: ActionContext, sender: NotificationSender
) -> list[str]:
    """
    Run each action in order. A failing action is rolled back and reported;
    the remaining actions still run. Returns the error messages.
    """
    errors = []
    for action in actions or []:
        action_type = action.get("type")
        try:
            if action_type == "send_email":
                _send_email(db, ctx, action, sender)
            elif action_type == "send_sms":
                _send_sms(db, ctx, action, sender)
            elif action_type == "notification":
                _create_notification(db, ctx, action)
            elif action_type == "create_job":
                _create_job_from_quote(db, ctx)
            elif action_type == "create_invoice":
                _create_invoice_from_job(db, ctx)
            elif action_type == "update_status":
                _update_status(db, ctx, action)
            else:
                raise AutomationActionError(f"Unknown action type: {action_type}")
        except Exception as e:
            db.rollback()
            logger.error(f"❌ Action {action_type} failed for {ctx.entity_type} {ctx.entity.id}: {e}")
            errors.append(f"{action_type}: {e}")
    return errors


# ============================================================================
# TRIGGERS
# ============================================================================


def _build_context(db: Session, automation: Automation, entity_type: str, entity) -> ActionContext:
    user = db.query(User).filter(User.id == automation.user_id).first()
    client = db.query(Client).filter(Client.id == entity.client_id).first()
    return ActionContext(user=user, entity_type=entity_type, entity=entity, client=client)


def run_automation_for_entity(
    db: Session,
    automation: Automation,
    entity_type: str,
    entity,
    sender: NotificationSender,
    summary: AutomationRunSummary,
) -> None:
    """Claim the ledger row, run the actions, record the outcome"""
    automation_id, entity_id = automation.id, entity.id
    summary.matched += 1

    claim = record_if_absent(db, automation_id, entity_type, entity_id)
    if not claim.inserted:
        summary.skipped += 1
        return

    ctx = _build_context(db, automation, entity_type, entity)
    errors = execute_automation_actions(db, automation.actions, ctx, sender)

    if errors:
        record_result(db, claim.log_id, "error", "; ".join(errors))
        summary.errors += 1
        summary.details.append({"automationId": automation_id, "entityId": entity_id, "result": "error"})
        logger.warning(f"⚠️ Automation {automation_id} on {entity_type} {entity_id} finished with errors")
    else:
        record_result(db, claim.log_id, "success")
        summary.processed += 1
        summary.details.append({"automationId": automation_id, "entityId": entity_id, "result": "success"})
        logger.info(f"✅ Automation {automation_id} ran for {entity_type} {entity_id}")


def _active_automations(db: Session, trigger_types: tuple, user_id: Optional[int] = None) -> list[Automation]:
    query = db.query(Automation).filter(Automation.is_active.is_(True))
    if user_id is not None:
        query = query.filter(Automation.user_id == user_id)
    return [
        a for a in query.order_by(Automation.id).all() if (a.trigger or {}).get("type") in trigger_types
    ]


def _load_entity(db: Session, entity_type: str, entity_id: int, user_id: int):
    model = ENTITY_MODELS[entity_type]
    return db.query(model).filter(model.id == entity_id, model.user_id == user_id).first()


def process_status_change(
    db: Session,
    user_id: int,
    entity_type: str,
    entity_id: int,
    from_status: Optional[str],
    to_status: str,
    sender: Optional[NotificationSender] = None,
) -> dict:
    """Run the tenant's status_change automations that match this transition"""
    summary = AutomationRunSummary()
    if entity_type not in ENTITY_MODELS:
        return summary.to_dict()

    matching = [
        a
        for a in _active_automations(db, ("status_change",), user_id)
        if a.trigger.get("entityType") == entity_type
        and (not a.trigger.get("fromStatus") or a.trigger["fromStatus"] == from_status)
        and (not a.trigger.get("toStatus") or a.trigger["toStatus"] == to_status)
    ]
    if not matching:
        return summary.to_dict()

    sender = sender or get_notification_sender()
    for automation in matching:
        entity = _load_entity(db, entity_type, entity_id, user_id)
        if entity is None:
            break
        run_automation_for_entity(db, automation, entity_type, entity, sender, summary)

    return summary.to_dict()


def process_payment_received(
    db: Session, user_id: int, invoice_id: int, sender: Optional[NotificationSender] = None
) -> dict:
    """Run the tenant's payment_received automations for a paid invoice"""
    summary = AutomationRunSummary()
    matching = [
        a
        for a in _active_automations(db, ("payment_received",), user_id)
        if a.trigger.get("entityType", "invoice") == "invoice"
    ]
    if not matching:
        return summary.to_dict()

    sender = sender or get_notification_sender()
    for automation in matching:
        invoice = _load_entity(db, "invoice", invoice_id, user_id)
        if invoice is None:
            break
        run_automation_for_entity(db, automation, "invoice", invoice, sender, summary)

    return summary.to_dict()


def fire_status_automations(
    db: Session,
    user_id: int,
    entity_type: str,
    entity_id: int,
    from_status: Optional[str],
    to_status: str,
    sender: Optional[NotificationSender] = None,
) -> Optional[dict]:
    """
    Called by the entity services after a status change has been committed.
    Moving an invoice to paid also fires payment_received. Failures are logged,
    the status change itself stands.
    """
    if from_status == to_status:
        return None

    try:
        result = process_status_change(
            db, user_id, entity_type, entity_id, from_status, to_status, sender
        )
        if entity_type == "invoice" and to_status == "paid":
            paid = process_payment_received(db, user_id, entity_id, sender)
            for key in ("matched", "processed", "skipped", "errors"):
                result[key] += paid[key]
            result["details"].extend(paid["details"])
        return result
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Status automations failed for {entity_type} {entity_id}: {e}")
        return None


def _delay_days(trigger: dict, default: int) -> int:
    value = trigger.get("delayDays")
    return int(value) if value else default


def _no_response_candidates(db: Session, automation: Automation, now: datetime) -> tuple:
    """Quotes sent more than delayDays ago and still unanswered"""
    cutoff = now - timedelta(days=_delay_days(automation.trigger, DEFAULT_NO_RESPONSE_DAYS))
    quotes = (
        db.query(Quote)
        .filter(
            Quote.user_id == automation.user_id,
            Quote.status == "sent",
            Quote.archived_at.is_(None),
        )
        .all()
    )
    overdue = []
    for quote in quotes:
        sent = quote.sent_at or quote.created_at
        if sent and sent < cutoff:
            overdue.append(quote)
    return "quote", overdue


def _time_delay_candidates(db: Session, automation: Automation, now: datetime) -> tuple:
    """
    Jobs: a negative delay means "days before the scheduled date" (reminders
    for scheduled jobs on that day), a positive one "days overdue".
    Invoices: sent or overdue invoices past their due date by delayDays.
    """
    trigger = automation.trigger
    delay = _delay_days(trigger, DEFAULT_TIME_DELAY_DAYS)
    entity_type = trigger.get("entityType")

    if entity_type == "job":
        query = db.query(Job).filter(
            Job.user_id == automation.user_id,
            Job.scheduled_at.isnot(None),
            Job.archived_at.is_(None),
        )
        if delay < 0:
            target = (now + timedelta(days=abs(delay))).date()
            jobs = query.filter(Job.status == "scheduled").all()
            return "job", [j for j in jobs if j.scheduled_at.date() == target]
        cutoff = now - timedelta(days=delay)
        return "job", query.filter(
            Job.status.in_(("scheduled", "in_progress")), Job.scheduled_at < cutoff
        ).all()

    if entity_type == "invoice":
        cutoff = now - timedelta(days=delay)
        return "invoice", (
            db.query(Invoice)
            .filter(
                Invoice.user_id == automation.user_id,
                Invoice.status.in_(("sent", "overdue")),
                Invoice.due_date.isnot(None),
                Invoice.due_date < cutoff,
                Invoice.archived_at.is_(None),
            )
            .all()
        )

    return entity_type, []


def process_time_based_automations(
    db: Session,
    now: Optional[datetime] = None,
    sender: Optional[NotificationSender] = None,
    user_id: Optional[int] = None,
) -> dict:
    """
    Background entry point for no_response and time_delay automations across
    all tenants, or one tenant when user_id is given. Errors are logged and
    counted, never raised.
    """
    now = now or datetime.utcnow()
    summary = AutomationRunSummary()
    logger.info(f"⏰ Processing time-based automations at {now.isoformat()}")

    automations = _active_automations(db, ("no_response", "time_delay"), user_id)
    if not automations:
        return summary.to_dict()

    sender = sender or get_notification_sender()
    for automation in automations:
        automation_id = automation.id
        try:
            if automation.trigger["type"] == "no_response":
                entity_type, candidates = _no_response_candidates(db, automation, now)
            else:
                entity_type, candidates = _time_delay_candidates(db, automation, now)

            for entity in candidates:
                if has_processed(db, automation_id, entity_type, entity.id):
                    continue
                run_automation_for_entity(db, automation, entity_type, entity, sender, summary)
        except Exception as e:
            db.rollback()
            summary.errors += 1
            logger.error(f"❌ Time-based automation {automation_id} failed: {e}")

    logger.info(
        f"✅ Time-based automations: {summary.processed} processed, "
        f"{summary.skipped} skipped, {summary.errors} errors"
    )
    return summary.to_dict()
