"""Recurring repository - Database operations for contracts and recurring series"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Client, Invoice, Job
from ...models_recurring import RecurringContract, RecurringSchedule


class RecurringRepository:
    """Repository for recurring contract database operations"""

    @staticmethod
    def get_contracts(db: Session, user_id: int, status: Optional[str] = None) -> list[RecurringContract]:
        query = db.query(RecurringContract).filter(RecurringContract.user_id == user_id)
        if status:
            query = query.filter(RecurringContract.status == status)
        return query.order_by(RecurringContract.created_at.desc(), RecurringContract.id.desc()).all()

    @staticmethod
    def get_contract_by_id(db: Session, contract_id: int, user_id: int) -> Optional[RecurringContract]:
        return (
            db.query(RecurringContract)
            .filter(RecurringContract.id == contract_id, RecurringContract.user_id == user_id)
            .first()
        )

    @staticmethod
    def get_schedules(db: Session, contract_id: int) -> list[RecurringSchedule]:
        return (
            db.query(RecurringSchedule)
            .filter(RecurringSchedule.contract_id == contract_id)
            .order_by(RecurringSchedule.scheduled_date)
            .all()
        )

    @staticmethod
    def get_client(db: Session, client_id: int, user_id: int) -> Optional[Client]:
        return db.query(Client).filter(Client.id == client_id, Client.user_id == user_id).first()

    @staticmethod
    def get_recurring_jobs(db: Session, user_id: int) -> list[Job]:
        return (
            db.query(Job)
            .filter(Job.user_id == user_id, Job.is_recurring.is_(True))
            .order_by(Job.next_recurrence_date)
            .all()
        )

    @staticmethod
    def get_recurring_invoices(db: Session, user_id: int) -> list[Invoice]:
        return (
            db.query(Invoice)
            .filter(Invoice.user_id == user_id, Invoice.is_recurring.is_(True))
            .order_by(Invoice.next_recurrence_date)
            .all()
        )

    @staticmethod
    def create_contract(db: Session, user_id: int, **contract_data) -> RecurringContract:
        contract = RecurringContract(user_id=user_id, **contract_data)
        db.add(contract)
        db.commit()
        db.refresh(contract)
        return contract
