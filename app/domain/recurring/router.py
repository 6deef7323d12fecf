"""Recurring router - contracts, recurring series and manual runs"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ...models_recurring import RecurringContract
from .schemas import ContractCreate, ContractResponse, ScheduleResponse, StopRecurringRequest
from .service import RecurringService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/recurring", tags=["Recurring"])


def get_recurring_service(db: Session = Depends(get_db)) -> RecurringService:
    """Dependency injection for RecurringService"""
    return RecurringService(db)


def _to_response(c: RecurringContract) -> ContractResponse:
    return ContractResponse(
        id=c.id,
        clientId=c.client_id,
        title=c.title,
        description=c.description,
        contractValue=c.contract_value,
        frequency=c.frequency,
        interval=c.interval,
        startDate=c.start_date,
        endDate=c.end_date,
        nextJobDate=c.next_job_date,
        autoCreateJobs=c.auto_create_jobs,
        autoCreateInvoices=c.auto_create_invoices,
        jobTemplate=c.job_template,
        invoiceTemplate=c.invoice_template,
        status=c.status,
        created_at=c.created_at,
    )


@router.get("")
async def get_recurring_series(
    current_user: User = Depends(get_current_user),
    service: RecurringService = Depends(get_recurring_service),
):
    """Recurring jobs and invoices for the current user"""
    return service.get_series(current_user)


@router.post("/run")
async def run_recurring_now(
    current_user: User = Depends(get_current_user),
    service: RecurringService = Depends(get_recurring_service),
):
    """Materialize everything due now instead of waiting for the worker"""
    return service.run_now(current_user)


@router.post("/stop")
async def stop_recurring(
    data: StopRecurringRequest,
    current_user: User = Depends(get_current_user),
    service: RecurringService = Depends(get_recurring_service),
):
    entity = service.stop(data.entityType, data.entityId, current_user)
    return {"message": "Recurrence stopped", "entityType": data.entityType, "entityId": entity.id}


@router.get("/contracts", response_model=list[ContractResponse])
async def get_contracts(
    status: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: RecurringService = Depends(get_recurring_service),
):
    return [_to_response(c) for c in service.get_contracts(current_user, status)]


@router.post("/contracts", response_model=ContractResponse)
async def create_contract(
    data: ContractCreate,
    current_user: User = Depends(get_current_user),
    service: RecurringService = Depends(get_recurring_service),
):
    return _to_response(service.create_contract(data, current_user))


@router.get("/contracts/{contract_id}", response_model=ContractResponse)
async def get_contract(
    contract_id: int,
    current_user: User = Depends(get_current_user),
    service: RecurringService = Depends(get_recurring_service),
):
    return _to_response(service.get_contract(contract_id, current_user))


@router.get("/contracts/{contract_id}/schedules", response_model=list[ScheduleResponse])
async def get_contract_schedules(
    contract_id: int,
    current_user: User = Depends(get_current_user),
    service: RecurringService = Depends(get_recurring_service),
):
    return [
        ScheduleResponse(
            id=s.id,
            contractId=s.contract_id,
            jobId=s.job_id,
            invoiceId=s.invoice_id,
            scheduledDate=s.scheduled_date,
            completedDate=s.completed_date,
            status=s.status,
        )
        for s in service.get_schedules(contract_id, current_user)
    ]


@router.post("/contracts/{contract_id}/pause", response_model=ContractResponse)
async def pause_contract(
    contract_id: int,
    current_user: User = Depends(get_current_user),
    service: RecurringService = Depends(get_recurring_service),
):
    return _to_response(service.pause_contract(contract_id, current_user))


@router.post("/contracts/{contract_id}/resume", response_model=ContractResponse)
async def resume_contract(
    contract_id: int,
    current_user: User = Depends(get_current_user),
    service: RecurringService = Depends(get_recurring_service),
):
    return _to_response(service.resume_contract(contract_id, current_user))


@router.post("/contracts/{contract_id}/cancel", response_model=ContractResponse)
async def cancel_contract(
    contract_id: int,
    current_user: User = Depends(get_current_user),
    service: RecurringService = Depends(get_recurring_service),
):
    return _to_response(service.cancel_contract(contract_id, current_user))
