"""Invoice repository - Database operations for invoices"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session, selectinload

from ...models import Client, Invoice, Job, Quote


class InvoiceRepository:
    """Repository for invoice database operations"""

    @staticmethod
    def get_invoices(
        db: Session, user_id: int, include_archived: bool = False, status: Optional[str] = None
    ) -> list[Invoice]:
        query = (
            db.query(Invoice)
            .options(selectinload(Invoice.line_items))
            .filter(Invoice.user_id == user_id)
        )
        if not include_archived:
            query = query.filter(Invoice.archived_at.is_(None))
        if status:
            query = query.filter(Invoice.status == status)
        return query.order_by(Invoice.issue_date.desc(), Invoice.id.desc()).all()

    @staticmethod
    def get_invoice_by_id(db: Session, invoice_id: int, user_id: int) -> Optional[Invoice]:
        return (
            db.query(Invoice)
            .filter(Invoice.id == invoice_id, Invoice.user_id == user_id)
            .first()
        )

    @staticmethod
    def get_client(db: Session, client_id: int, user_id: int) -> Optional[Client]:
        return db.query(Client).filter(Client.id == client_id, Client.user_id == user_id).first()

    @staticmethod
    def get_job(db: Session, job_id: int, user_id: int) -> Optional[Job]:
        return db.query(Job).filter(Job.id == job_id, Job.user_id == user_id).first()

    @staticmethod
    def get_quote(db: Session, quote_id: int, user_id: int) -> Optional[Quote]:
        return db.query(Quote).filter(Quote.id == quote_id, Quote.user_id == user_id).first()

    @staticmethod
    def save(db: Session, invoice: Invoice) -> Invoice:
        db.add(invoice)
        db.commit()
        db.refresh(invoice)
        return invoice

    @staticmethod
    def set_archived(db: Session, invoice: Invoice, archived_at: Optional[datetime]) -> Invoice:
        invoice.archived_at = archived_at
        db.commit()
        db.refresh(invoice)
        return invoice
