"""Quote repository - Database operations for quotes"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session, selectinload

from ...models import Client, Job, Quote


class QuoteRepository:
    """Repository for quote database operations"""

    @staticmethod
    def get_quotes(
        db: Session, user_id: int, include_archived: bool = False, status: Optional[str] = None
    ) -> list[Quote]:
        query = (
            db.query(Quote)
            .options(selectinload(Quote.line_items))
            .filter(Quote.user_id == user_id)
        )
        if not include_archived:
            query = query.filter(Quote.archived_at.is_(None))
        if status:
            query = query.filter(Quote.status == status)
        return query.order_by(Quote.created_at.desc(), Quote.id.desc()).all()

    @staticmethod
    def get_quote_by_id(db: Session, quote_id: int, user_id: int) -> Optional[Quote]:
        return db.query(Quote).filter(Quote.id == quote_id, Quote.user_id == user_id).first()

    @staticmethod
    def get_client(db: Session, client_id: int, user_id: int) -> Optional[Client]:
        return db.query(Client).filter(Client.id == client_id, Client.user_id == user_id).first()

    @staticmethod
    def get_job(db: Session, job_id: int, user_id: int) -> Optional[Job]:
        return db.query(Job).filter(Job.id == job_id, Job.user_id == user_id).first()

    @staticmethod
    def save(db: Session, quote: Quote) -> Quote:
        db.add(quote)
        db.commit()
        db.refresh(quote)
        return quote

    @staticmethod
    def set_archived(db: Session, quote: Quote, archived_at: Optional[datetime]) -> Quote:
        quote.archived_at = archived_at
        db.commit()
        db.refresh(quote)
        return quote
