"""Quote service - Business logic for quote operations"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Quote, QuoteLineItem, User
from ...plan_limits import can_create, increment_usage
from ...services.automation_service import fire_status_automations
from ...services.document_totals import (
    QUOTE_PREFIX,
    apply_totals,
    generate_document_number,
    recalculate_totals,
)
from ...services.status_transitions import apply_status
from .repository import QuoteRepository
from .schemas import LineItemsReplace, QuoteCreate, QuoteUpdate

logger = logging.getLogger(__name__)


class QuoteService:
    """Service layer for quote business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = QuoteRepository()

    def get_quotes(
        self, user: User, include_archived: bool = False, status: Optional[str] = None
    ) -> list[Quote]:
        return self.repo.get_quotes(self.db, user.id, include_archived, status)

    def get_quote(self, quote_id: int, user: User) -> Quote:
        quote = self.repo.get_quote_by_id(self.db, quote_id, user.id)
        if not quote:
            raise HTTPException(status_code=404, detail="Quote not found")
        return quote

    def _check_job(self, job_id: Optional[int], user: User) -> None:
        if job_id is not None and not self.repo.get_job(self.db, job_id, user.id):
            raise HTTPException(status_code=404, detail="Job not found")

    def create_quote(self, data: QuoteCreate, user: User) -> Quote:
        logger.info(f"📥 Creating quote for user_id: {user.id}")

        if not self.repo.get_client(self.db, data.clientId, user.id):
            raise HTTPException(status_code=404, detail="Client not found")
        self._check_job(data.jobId, user)

        allowed, error_message = can_create(user, self.db, "quote")
        if not allowed:
            logger.warning(f"⚠️ User {user.id} reached quote limit: {error_message}")
            raise HTTPException(status_code=403, detail=error_message)

        totals = recalculate_totals(data.lineItems, data.gstEnabled)

        quote = Quote(
            user_id=user.id,
            client_id=data.clientId,
            job_id=data.jobId,
            number=generate_document_number(self.db, Quote, QUOTE_PREFIX),
            title=data.title,
            description=data.description,
            notes=data.notes,
            status="draft",
            gst_enabled=data.gstEnabled,
            valid_until=data.validUntil,
            template_id=data.templateId,
            family_key=data.familyKey,
        )
        apply_totals(quote, totals, QuoteLineItem)
        quote = self.repo.save(self.db, quote)

        increment_usage(user, self.db, "quote")
        logger.info(f"✅ Quote {quote.number} created, total {totals.total}")
        return quote

    def update_quote(self, quote_id: int, data: QuoteUpdate, user: User) -> Quote:
        quote = self.get_quote(quote_id, user)
        self._check_job(data.jobId, user)

        updates = {
            "title": data.title,
            "description": data.description,
            "notes": data.notes,
            "valid_until": data.validUntil,
            "job_id": data.jobId,
        }
        for key, value in updates.items():
            if value is not None:
                setattr(quote, key, value)
        return self.repo.save(self.db, quote)

    def replace_line_items(self, quote_id: int, data: LineItemsReplace, user: User) -> Quote:
        """Swap every line item and recompute subtotal, GST and total"""
        quote = self.get_quote(quote_id, user)
        if data.gstEnabled is not None:
            quote.gst_enabled = data.gstEnabled

        totals = recalculate_totals(data.lineItems, quote.gst_enabled)
        apply_totals(quote, totals, QuoteLineItem)
        return self.repo.save(self.db, quote)

    def update_status(self, quote_id: int, status: str, user: User) -> tuple:
        quote = self.get_quote(quote_id, user)
        previous = apply_status("quote", quote, status)
        self.db.commit()
        self.db.refresh(quote)
        logger.info(f"🔄 Quote {quote.number} status {previous} -> {status}")

        summary = fire_status_automations(self.db, user.id, "quote", quote_id, previous, status)
        if summary:
            self.db.refresh(quote)
        return quote, summary

    def archive_quote(self, quote_id: int, user: User) -> Quote:
        quote = self.get_quote(quote_id, user)
        if quote.archived_at is not None:
            return quote
        return self.repo.set_archived(self.db, quote, datetime.utcnow())

    def unarchive_quote(self, quote_id: int, user: User) -> Quote:
        quote = self.get_quote(quote_id, user)
        return self.repo.set_archived(self.db, quote, None)
