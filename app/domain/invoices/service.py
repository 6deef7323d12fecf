"""Invoice service - Business logic for invoice operations"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import RECURRING_INVOICE_DUE_DAYS
from ..templates.service import resolve_template_content
from ...models import Invoice, InvoiceLineItem, User
from ...plan_limits import can_create, has_feature, increment_usage
from ...services.automation_service import fire_status_automations
from ...services.document_totals import (
    INVOICE_PREFIX,
    apply_totals,
    generate_document_number,
    recalculate_totals,
)
from ...services.recurring_service import (
    create_recurring_invoice,
    stop_recurring,
    validate_recurrence_settings,
)
from ...services.status_transitions import apply_status
from ...shared.errors import TemplateNotFoundError
from ..quotes.schemas import LineItemsReplace
from .repository import InvoiceRepository
from .schemas import InvoiceCreate, InvoiceUpdate

logger = logging.getLogger(__name__)


class InvoiceService:
    """Service layer for invoice business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = InvoiceRepository()

    def get_invoices(
        self, user: User, include_archived: bool = False, status: Optional[str] = None
    ) -> list[Invoice]:
        return self.repo.get_invoices(self.db, user.id, include_archived, status)

    def get_invoice(self, invoice_id: int, user: User) -> Invoice:
        invoice = self.repo.get_invoice_by_id(self.db, invoice_id, user.id)
        if not invoice:
            raise HTTPException(status_code=404, detail="Invoice not found")
        return invoice

    def _default_terms(self, user: User) -> Optional[str]:
        try:
            return resolve_template_content(self.db, user.id, "terms_conditions", "general").content
        except TemplateNotFoundError:
            return None

    def create_invoice(self, data: InvoiceCreate, user: User) -> Invoice:
        """Create an invoice, optionally as the first of a recurring series"""
        logger.info(f"📥 Creating invoice for user_id: {user.id}")

        if not self.repo.get_client(self.db, data.clientId, user.id):
            raise HTTPException(status_code=404, detail="Client not found")
        if data.jobId is not None and not self.repo.get_job(self.db, data.jobId, user.id):
            raise HTTPException(status_code=404, detail="Job not found")
        quote = None
        if data.quoteId is not None:
            quote = self.repo.get_quote(self.db, data.quoteId, user.id)
            if not quote:
                raise HTTPException(status_code=404, detail="Quote not found")

        allowed, error_message = can_create(user, self.db, "invoice")
        if not allowed:
            logger.warning(f"⚠️ User {user.id} reached invoice limit: {error_message}")
            raise HTTPException(status_code=403, detail=error_message)

        issue_date = data.issueDate or datetime.utcnow()
        recurrence = data.recurrence
        if recurrence:
            if not has_feature(user, "recurring"):
                raise HTTPException(
                    status_code=403, detail="Recurring invoices are available on the Pro plan."
                )
            validate_recurrence_settings(
                recurrence.pattern, recurrence.interval, recurrence.endDate, issue_date
            )

        # An invoice raised from a quote without its own lines bills the quoted lines
        line_items = data.lineItems
        if not line_items and quote is not None:
            line_items = list(quote.line_items)
        totals = recalculate_totals(line_items, data.gstEnabled)

        invoice = Invoice(
            user_id=user.id,
            client_id=data.clientId,
            job_id=data.jobId if data.jobId is not None else (quote.job_id if quote else None),
            quote_id=data.quoteId,
            number=generate_document_number(self.db, Invoice, INVOICE_PREFIX),
            title=data.title,
            description=data.description,
            notes=data.notes,
            terms=data.terms if data.terms is not None else self._default_terms(user),
            status="draft",
            gst_enabled=data.gstEnabled,
            issue_date=issue_date,
            due_date=data.dueDate or issue_date + timedelta(days=RECURRING_INVOICE_DUE_DAYS),
            template_id=data.templateId,
            family_key=data.familyKey or (quote.family_key if quote else None),
        )
        apply_totals(invoice, totals, InvoiceLineItem)
        self.db.add(invoice)
        self.db.flush()

        if recurrence:
            invoice = create_recurring_invoice(
                self.db, invoice, recurrence.pattern, recurrence.interval, recurrence.endDate
            )
        else:
            self.db.commit()
            self.db.refresh(invoice)

        increment_usage(user, self.db, "invoice")
        logger.info(f"✅ Invoice {invoice.number} created, total {totals.total}")
        return invoice

    def update_invoice(self, invoice_id: int, data: InvoiceUpdate, user: User) -> Invoice:
        invoice = self.get_invoice(invoice_id, user)
        updates = {
            "title": data.title,
            "description": data.description,
            "notes": data.notes,
            "terms": data.terms,
            "due_date": data.dueDate,
        }
        for key, value in updates.items():
            if value is not None:
                setattr(invoice, key, value)
        return self.repo.save(self.db, invoice)

    def replace_line_items(self, invoice_id: int, data: LineItemsReplace, user: User) -> Invoice:
        invoice = self.get_invoice(invoice_id, user)
        if invoice.status == "paid":
            raise HTTPException(status_code=400, detail="Paid invoices cannot be changed")
        if data.gstEnabled is not None:
            invoice.gst_enabled = data.gstEnabled

        totals = recalculate_totals(data.lineItems, invoice.gst_enabled)
        apply_totals(invoice, totals, InvoiceLineItem)
        return self.repo.save(self.db, invoice)

    def update_status(self, invoice_id: int, status: str, user: User) -> tuple:
        """Status change plus status_change automations, and payment_received ones on paid"""
        invoice = self.get_invoice(invoice_id, user)
        previous = apply_status("invoice", invoice, status)
        self.db.commit()
        self.db.refresh(invoice)
        logger.info(f"🔄 Invoice {invoice.number} status {previous} -> {status}")

        summary = fire_status_automations(self.db, user.id, "invoice", invoice_id, previous, status)
        if summary:
            self.db.refresh(invoice)
        return invoice, summary

    def archive_invoice(self, invoice_id: int, user: User) -> Invoice:
        invoice = self.get_invoice(invoice_id, user)
        if invoice.archived_at is not None:
            return invoice
        return self.repo.set_archived(self.db, invoice, datetime.utcnow())

    def unarchive_invoice(self, invoice_id: int, user: User) -> Invoice:
        invoice = self.get_invoice(invoice_id, user)
        return self.repo.set_archived(self.db, invoice, None)

    def stop_recurring(self, invoice_id: int, user: User) -> Invoice:
        self.get_invoice(invoice_id, user)
        return stop_recurring(self.db, "invoice", invoice_id, user.id)
