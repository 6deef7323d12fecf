"""Automation router - FastAPI endpoints for automation rules and their log"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ...models_automation import Automation
from ...services.automation_service import process_time_based_automations
from .schemas import (
    AutomationCreate,
    AutomationLogResponse,
    AutomationResponse,
    AutomationUpdate,
)
from .service import AutomationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/automations", tags=["Automations"])


def get_automation_service(db: Session = Depends(get_db)) -> AutomationService:
    """Dependency injection for AutomationService"""
    return AutomationService(db)


def _to_response(a: Automation) -> AutomationResponse:
    return AutomationResponse(
        id=a.id,
        name=a.name,
        description=a.description,
        isActive=a.is_active,
        trigger=a.trigger or {},
        actions=a.actions or [],
        created_at=a.created_at,
    )


@router.get("", response_model=list[AutomationResponse])
async def get_automations(
    current_user: User = Depends(get_current_user),
    service: AutomationService = Depends(get_automation_service),
):
    return [_to_response(a) for a in service.get_automations(current_user)]


@router.get("/logs", response_model=list[AutomationLogResponse])
async def get_automation_logs(
    limit: int = Query(50, ge=1, le=500),
    current_user: User = Depends(get_current_user),
    service: AutomationService = Depends(get_automation_service),
):
    """Recent automation runs, newest first"""
    return [
        AutomationLogResponse(
            id=log.id,
            automationId=log.automation_id,
            entityType=log.entity_type,
            entityId=log.entity_id,
            processedAt=log.processed_at,
            result=log.result,
            errorMessage=log.error_message,
        )
        for log in service.get_logs(current_user, limit)
    ]


@router.post("/run")
async def run_time_based_automations(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Run the time-based automations now instead of waiting for the worker"""
    logger.info(f"▶️ Manual automation run requested by user {current_user.id}")
    return process_time_based_automations(db, user_id=current_user.id)


@router.get("/{automation_id}", response_model=AutomationResponse)
async def get_automation(
    automation_id: int,
    current_user: User = Depends(get_current_user),
    service: AutomationService = Depends(get_automation_service),
):
    return _to_response(service.get_automation(automation_id, current_user))


@router.post("", response_model=AutomationResponse)
async def create_automation(
    data: AutomationCreate,
    current_user: User = Depends(get_current_user),
    service: AutomationService = Depends(get_automation_service),
):
    return _to_response(service.create_automation(data, current_user))


@router.patch("/{automation_id}", response_model=AutomationResponse)
async def update_automation(
    automation_id: int,
    data: AutomationUpdate,
    current_user: User = Depends(get_current_user),
    service: AutomationService = Depends(get_automation_service),
):
    return _to_response(service.update_automation(automation_id, data, current_user))


@router.delete("/{automation_id}")
async def delete_automation(
    automation_id: int,
    current_user: User = Depends(get_current_user),
    service: AutomationService = Depends(get_automation_service),
):
    return service.delete_automation(automation_id, current_user)
