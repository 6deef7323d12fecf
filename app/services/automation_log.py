"""
Processed-entity ledger for automations.

A row per (automation, entity type, entity id) is claimed before any action
runs. The unique key on automation_logs is the only thing deciding who gets
to run the actions, so any number of workers can race on the same entity.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models_automation import (
    AUTOMATION_ENTITY_TYPES,
    AUTOMATION_RESULTS,
    Automation,
    AutomationLog,
)
from ..shared.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

_UPSERT_INSERTS = {"postgresql": pg_insert, "sqlite": sqlite_insert}
_LOG_KEY = ["automation_id", "entity_type", "entity_id"]
MAX_ERROR_LENGTH = 1000


@dataclass(frozen=True)
class LogInsertResult:
    inserted: bool
    log_id: Optional[int] = None


def _validate_entity_type(entity_type: str) -> None:
    if entity_type not in AUTOMATION_ENTITY_TYPES:
        raise ValidationError(
            f"Invalid entity type: {entity_type!r}. Allowed: {', '.join(AUTOMATION_ENTITY_TYPES)}"
        )


def _existing_log_id(db: Session, automation_id: int, entity_type: str, entity_id: int) -> Optional[int]:
    row = (
        db.query(AutomationLog.id)
        .filter(
            AutomationLog.automation_id == automation_id,
            AutomationLog.entity_type == entity_type,
            AutomationLog.entity_id == entity_id,
        )
        .first()
    )
    return row[0] if row else None


def record_if_absent(
    db: Session, automation_id: int, entity_type: str, entity_id: int
) -> LogInsertResult:
    """
    Claim (automation, entity) for processing.

    inserted=True exactly once per triple. Every later or concurrent caller
    gets inserted=False and must skip the actions. The claim is committed
    before returning.
    """
    _validate_entity_type(entity_type)

    values = {
        "automation_id": automation_id,
        "entity_type": entity_type,
        "entity_id": entity_id,
        "processed_at": datetime.utcnow(),
    }

    insert = _UPSERT_INSERTS.get(db.get_bind().dialect.name)
    if insert is not None:
        stmt = (
            insert(AutomationLog)
            .values(**values)
            .on_conflict_do_nothing(index_elements=_LOG_KEY)
            .returning(AutomationLog.id)
        )
        log_id = db.execute(stmt).scalar()
        db.commit()
    else:
        # Other backends: plain insert, the unique key rejects the loser
        try:
            log = AutomationLog(**values)
            db.add(log)
            db.commit()
            log_id = log.id
        except IntegrityError:
            db.rollback()
            log_id = None

    if log_id is None:
        logger.debug(f"Automation {automation_id} already processed {entity_type} {entity_id}")
        return LogInsertResult(
            inserted=False, log_id=_existing_log_id(db, automation_id, entity_type, entity_id)
        )

    return LogInsertResult(inserted=True, log_id=log_id)


def record_result(
    db: Session, log_id: int, result: str, error_message: Optional[str] = None
) -> AutomationLog:
    """
    Store the outcome of the actions. An error row still counts as processed;
    a retry needs an explicit new trigger.
    """
    if result not in AUTOMATION_RESULTS:
        raise ValidationError(f"Invalid automation result: {result!r}")

    log = db.query(AutomationLog).filter(AutomationLog.id == log_id).first()
    if not log:
        raise NotFoundError(f"Automation log {log_id} not found")

    log.result = result
    log.error_message = error_message[:MAX_ERROR_LENGTH] if error_message else None
    db.commit()
    return log


def has_processed(db: Session, automation_id: int, entity_type: str, entity_id: int) -> bool:
    _validate_entity_type(entity_type)
    return _existing_log_id(db, automation_id, entity_type, entity_id) is not None


def get_automation_logs(db: Session, user_id: int, limit: int = 50) -> list[AutomationLog]:
    """Most recent ledger rows across a tenant's automations"""
    return (
        db.query(AutomationLog)
        .join(Automation, Automation.id == AutomationLog.automation_id)
        .filter(Automation.user_id == user_id)
        .order_by(AutomationLog.processed_at.desc(), AutomationLog.id.desc())
        .limit(limit)
        .all()
    )
