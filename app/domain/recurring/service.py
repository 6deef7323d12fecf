"""Recurring service - Business logic for contracts and recurring series control"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import User
from ...models_recurring import RecurringContract, RecurringSchedule
from ...plan_limits import has_feature
from ...services import recurring_service
from ...services.document_totals import recalculate_totals
from ...shared.errors import ValidationError
from .repository import RecurringRepository
from .schemas import ContractCreate

logger = logging.getLogger(__name__)


class RecurringService:
    """Service layer for recurring contracts and series"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = RecurringRepository()

    def _require_feature(self, user: User) -> None:
        if not has_feature(user, "recurring"):
            raise HTTPException(
                status_code=403, detail="Recurring work is available on the Pro plan."
            )

    def get_contracts(self, user: User, status: Optional[str] = None) -> list[RecurringContract]:
        return self.repo.get_contracts(self.db, user.id, status)

    def get_contract(self, contract_id: int, user: User) -> RecurringContract:
        contract = self.repo.get_contract_by_id(self.db, contract_id, user.id)
        if not contract:
            raise HTTPException(status_code=404, detail="Contract not found")
        return contract

    def get_schedules(self, contract_id: int, user: User) -> list[RecurringSchedule]:
        contract = self.get_contract(contract_id, user)
        return self.repo.get_schedules(self.db, contract.id)

    def create_contract(self, data: ContractCreate, user: User) -> RecurringContract:
        """The first occurrence falls on the start date"""
        self._require_feature(user)
        if not self.repo.get_client(self.db, data.clientId, user.id):
            raise HTTPException(status_code=404, detail="Client not found")

        pattern, interval, end_date = recurring_service.validate_recurrence_settings(
            data.frequency, data.interval, data.endDate, data.startDate
        )
        if not data.autoCreateJobs and not data.autoCreateInvoices:
            raise ValidationError("A contract must create jobs, invoices or both")
        job_template = (
            data.jobTemplate.model_dump(mode="json", exclude_none=True) if data.jobTemplate else None
        )
        invoice_template = (
            data.invoiceTemplate.model_dump(mode="json", exclude_none=True) if data.invoiceTemplate else None
        )
        line_items = (invoice_template or {}).get("lineItems")
        if data.autoCreateInvoices and not line_items and data.contractValue is None:
            raise ValidationError("Invoicing contracts need line items or a contract value")
        if line_items:
            # Priced now so a bad line is rejected here, not on every scheduler tick
            recalculate_totals(line_items, invoice_template.get("gstEnabled", True))

        contract = self.repo.create_contract(
            self.db,
            user.id,
            client_id=data.clientId,
            title=data.title,
            description=data.description,
            contract_value=data.contractValue,
            frequency=pattern.value,
            interval=interval,
            start_date=data.startDate,
            end_date=end_date,
            next_job_date=data.startDate,
            auto_create_jobs=data.autoCreateJobs,
            auto_create_invoices=data.autoCreateInvoices,
            job_template=job_template,
            invoice_template=invoice_template,
            status="active",
        )
        logger.info(
            f"📝 Contract {contract.id} for user {user.id}: {pattern.value} x{interval} "
            f"from {data.startDate.date()}"
        )
        return contract

    def pause_contract(self, contract_id: int, user: User) -> RecurringContract:
        return recurring_service.pause_contract(self.db, contract_id, user.id)

    def resume_contract(self, contract_id: int, user: User) -> RecurringContract:
        return recurring_service.resume_contract(self.db, contract_id, user.id)

    def cancel_contract(self, contract_id: int, user: User) -> RecurringContract:
        return recurring_service.cancel_contract(self.db, contract_id, user.id)

    def get_series(self, user: User) -> dict:
        """Recurring jobs and invoices with their persisted state"""
        jobs = self.repo.get_recurring_jobs(self.db, user.id)
        invoices = self.repo.get_recurring_invoices(self.db, user.id)
        return {
            "jobs": [self._series_entry("job", j, j.title) for j in jobs],
            "invoices": [self._series_entry("invoice", i, i.number) for i in invoices],
        }

    @staticmethod
    def _series_entry(kind: str, entity, label: str) -> dict:
        return {
            "type": kind,
            "id": entity.id,
            "label": label,
            "pattern": entity.recurrence_pattern,
            "interval": entity.recurrence_interval,
            "endDate": entity.recurrence_end_date.isoformat() if entity.recurrence_end_date else None,
            "nextDate": entity.next_recurrence_date.isoformat() if entity.next_recurrence_date else None,
            "state": recurring_service.get_recurrence_state(entity).value,
        }

    def run_now(self, user: User) -> dict:
        logger.info(f"▶️ Manual recurring run requested by user {user.id}")
        return recurring_service.process_recurring_for_user(self.db, user.id)

    def stop(self, entity_type: str, entity_id: int, user: User):
        return recurring_service.stop_recurring(self.db, entity_type, entity_id, user.id)
