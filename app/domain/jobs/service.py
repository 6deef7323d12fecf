"""Job service - Business logic for job operations"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import RECURRENCE_ACTIVE, Job, User
from ...plan_limits import can_create, has_feature, increment_usage
from ...services.automation_service import fire_status_automations
from ...services.recurring_service import (
    create_recurring_job,
    reschedule_recurring_job,
    stop_recurring,
    validate_recurrence_settings,
)
from ...services.status_transitions import apply_status
from ...shared.errors import ValidationError
from .repository import JobRepository
from .schemas import JobCreate, JobUpdate

logger = logging.getLogger(__name__)


class JobService:
    """Service layer for job business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = JobRepository()

    def get_jobs(
        self,
        user: User,
        include_archived: bool = False,
        status: Optional[str] = None,
        client_id: Optional[int] = None,
    ) -> list[Job]:
        return self.repo.get_jobs(self.db, user.id, include_archived, status, client_id)

    def get_job(self, job_id: int, user: User) -> Job:
        job = self.repo.get_job_by_id(self.db, job_id, user.id)
        if not job:
            raise HTTPException(status_code=404, detail="Job not found")
        return job

    def create_job(self, data: JobCreate, user: User) -> Job:
        """Create a job, optionally as the first occurrence of a recurring series"""
        logger.info(f"📥 Creating job for user_id: {user.id}")

        if not self.repo.get_client(self.db, data.clientId, user.id):
            raise HTTPException(status_code=404, detail="Client not found")

        allowed, error_message = can_create(user, self.db, "job")
        if not allowed:
            logger.warning(f"⚠️ User {user.id} reached job limit: {error_message}")
            raise HTTPException(status_code=403, detail=error_message)

        recurrence = data.recurrence
        if recurrence:
            if not has_feature(user, "recurring"):
                raise HTTPException(
                    status_code=403, detail="Recurring jobs are available on the Pro plan."
                )
            if data.scheduledAt is None:
                raise ValidationError("A recurring job needs a scheduled date")
            # Reject bad settings before anything is written
            validate_recurrence_settings(
                recurrence.pattern, recurrence.interval, recurrence.endDate, data.scheduledAt
            )

        job = self.repo.add_job(
            self.db,
            user.id,
            client_id=data.clientId,
            title=data.title,
            description=data.description,
            address=data.address,
            notes=data.notes,
            assigned_to=data.assignedTo,
            status=data.status,
            scheduled_at=data.scheduledAt,
        )

        if recurrence:
            job = create_recurring_job(
                self.db, job, recurrence.pattern, recurrence.interval, recurrence.endDate
            )
        else:
            self.db.commit()
            self.db.refresh(job)

        increment_usage(user, self.db, "job")
        logger.info(f"✅ Job {job.id} created for user {user.id}")
        return job

    def update_job(self, job_id: int, data: JobUpdate, user: User) -> Job:
        job = self.get_job(job_id, user)
        if (
            data.scheduledAt is not None
            and job.is_recurring
            and job.recurrence_status == RECURRENCE_ACTIVE
        ):
            # Keeps the next occurrence after the parent's own date
            reschedule_recurring_job(job, data.scheduledAt)
        return self.repo.update_job(
            self.db,
            job,
            title=data.title,
            description=data.description,
            address=data.address,
            notes=data.notes,
            assigned_to=data.assignedTo,
            scheduled_at=data.scheduledAt,
        )

    def update_status(self, job_id: int, status: str, user: User) -> tuple:
        """Move a job to a new status. Returns (job, automation summary or None)."""
        job = self.get_job(job_id, user)
        previous = apply_status("job", job, status)
        self.db.commit()
        self.db.refresh(job)
        logger.info(f"🔄 Job {job_id} status {previous} -> {status}")

        summary = fire_status_automations(self.db, user.id, "job", job_id, previous, status)
        if summary:
            self.db.refresh(job)
        return job, summary

    def archive_job(self, job_id: int, user: User) -> Job:
        job = self.get_job(job_id, user)
        if job.archived_at is not None:
            return job
        return self.repo.set_archived(self.db, job, datetime.utcnow())

    def unarchive_job(self, job_id: int, user: User) -> Job:
        job = self.get_job(job_id, user)
        return self.repo.set_archived(self.db, job, None)

    def stop_recurring(self, job_id: int, user: User) -> Job:
        self.get_job(job_id, user)
        return stop_recurring(self.db, "job", job_id, user.id)
