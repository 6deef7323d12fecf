"""Job router - FastAPI endpoints for job operations"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import Job, User
from .schemas import JobCreate, JobResponse, JobStatusUpdate, JobUpdate
from .service import JobService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs", tags=["Jobs"])


def get_job_service(db: Session = Depends(get_db)) -> JobService:
    """Dependency injection for JobService"""
    return JobService(db)


def _to_response(j: Job, automations: Optional[dict] = None) -> JobResponse:
    return JobResponse(
        id=j.id,
        clientId=j.client_id,
        title=j.title,
        description=j.description,
        address=j.address,
        notes=j.notes,
        assignedTo=j.assigned_to,
        status=j.status,
        scheduledAt=j.scheduled_at,
        startedAt=j.started_at,
        completedAt=j.completed_at,
        invoicedAt=j.invoiced_at,
        isRecurring=bool(j.is_recurring),
        recurrencePattern=j.recurrence_pattern,
        recurrenceInterval=j.recurrence_interval,
        recurrenceEndDate=j.recurrence_end_date,
        nextRecurrenceDate=j.next_recurrence_date,
        recurrenceStatus=j.recurrence_status,
        parentJobId=j.parent_job_id,
        archivedAt=j.archived_at,
        created_at=j.created_at,
        automations=automations,
    )


@router.get("", response_model=list[JobResponse])
async def get_jobs(
    include_archived: bool = Query(False, alias="includeArchived"),
    status: Optional[str] = Query(None),
    client_id: Optional[int] = Query(None, alias="clientId"),
    current_user: User = Depends(get_current_user),
    service: JobService = Depends(get_job_service),
):
    jobs = service.get_jobs(current_user, include_archived, status, client_id)
    return [_to_response(j) for j in jobs]


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(
    job_id: int,
    current_user: User = Depends(get_current_user),
    service: JobService = Depends(get_job_service),
):
    return _to_response(service.get_job(job_id, current_user))


@router.post("", response_model=JobResponse)
async def create_job(
    data: JobCreate,
    current_user: User = Depends(get_current_user),
    service: JobService = Depends(get_job_service),
):
    return _to_response(service.create_job(data, current_user))


@router.patch("/{job_id}", response_model=JobResponse)
async def update_job(
    job_id: int,
    data: JobUpdate,
    current_user: User = Depends(get_current_user),
    service: JobService = Depends(get_job_service),
):
    return _to_response(service.update_job(job_id, data, current_user))


@router.patch("/{job_id}/status", response_model=JobResponse)
async def update_job_status(
    job_id: int,
    data: JobStatusUpdate,
    current_user: User = Depends(get_current_user),
    service: JobService = Depends(get_job_service),
):
    """Change status, stamp the stage timestamp and fire matching automations"""
    job, automations = service.update_status(job_id, data.status, current_user)
    return _to_response(job, automations)


@router.post("/{job_id}/archive", response_model=JobResponse)
async def archive_job(
    job_id: int,
    current_user: User = Depends(get_current_user),
    service: JobService = Depends(get_job_service),
):
    return _to_response(service.archive_job(job_id, current_user))


@router.post("/{job_id}/unarchive", response_model=JobResponse)
async def unarchive_job(
    job_id: int,
    current_user: User = Depends(get_current_user),
    service: JobService = Depends(get_job_service),
):
    return _to_response(service.unarchive_job(job_id, current_user))


@router.post("/{job_id}/stop-recurring", response_model=JobResponse)
async def stop_recurring_job(
    job_id: int,
    current_user: User = Depends(get_current_user),
    service: JobService = Depends(get_job_service),
):
    return _to_response(service.stop_recurring(job_id, current_user))
