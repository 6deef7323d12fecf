"""Job repository - Database operations for jobs"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Client, Job


class JobRepository:
    """Repository for job database operations"""

    @staticmethod
    def get_jobs(
        db: Session,
        user_id: int,
        include_archived: bool = False,
        status: Optional[str] = None,
        client_id: Optional[int] = None,
    ) -> list[Job]:
        query = db.query(Job).filter(Job.user_id == user_id)

        if not include_archived:
            query = query.filter(Job.archived_at.is_(None))
        if status:
            query = query.filter(Job.status == status)
        if client_id:
            query = query.filter(Job.client_id == client_id)

        return query.order_by(Job.scheduled_at.desc(), Job.id.desc()).all()

    @staticmethod
    def get_job_by_id(db: Session, job_id: int, user_id: int) -> Optional[Job]:
        return db.query(Job).filter(Job.id == job_id, Job.user_id == user_id).first()

    @staticmethod
    def get_client(db: Session, client_id: int, user_id: int) -> Optional[Client]:
        return db.query(Client).filter(Client.id == client_id, Client.user_id == user_id).first()

    @staticmethod
    def add_job(db: Session, user_id: int, **job_data) -> Job:
        """Stage a new job without committing"""
        job = Job(user_id=user_id, **job_data)
        db.add(job)
        db.flush()
        return job

    @staticmethod
    def update_job(db: Session, job: Job, **updates) -> Job:
        for key, value in updates.items():
            if value is not None and hasattr(job, key):
                setattr(job, key, value)

        db.commit()
        db.refresh(job)
        return job

    @staticmethod
    def set_archived(db: Session, job: Job, archived_at: Optional[datetime]) -> Job:
        job.archived_at = archived_at
        db.commit()
        db.refresh(job)
        return job
