"""Template router - FastAPI endpoints for business templates"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ...models_templates import BusinessTemplate
from .purposes import FAMILY_PURPOSES
from .schemas import (
    ActivationResponse,
    ResolvedTemplateResponse,
    TemplateCreate,
    TemplateResponse,
    TemplateUpdate,
)
from .service import TemplateService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/templates", tags=["Templates"])


def get_template_service(db: Session = Depends(get_db)) -> TemplateService:
    """Dependency injection for TemplateService"""
    return TemplateService(db)


def _to_response(t: BusinessTemplate) -> TemplateResponse:
    return TemplateResponse(
        id=t.id,
        family=t.family,
        purpose=t.purpose,
        name=t.name,
        description=t.description,
        subject=t.subject,
        content=t.content,
        mergeFields=t.merge_fields,
        isDefault=t.is_default,
        isActive=t.is_active,
        created_at=t.created_at,
    )


@router.get("", response_model=list[TemplateResponse])
async def get_templates(
    family: Optional[str] = Query(None),
    purpose: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
):
    return [_to_response(t) for t in service.get_templates(current_user, family, purpose)]


@router.get("/purposes")
async def get_family_purposes():
    """Allowed purposes for each template family"""
    return {family: sorted(purposes) for family, purposes in FAMILY_PURPOSES.items()}


@router.get("/resolve", response_model=ResolvedTemplateResponse)
async def resolve_template(
    family: str = Query(...),
    purpose: str = Query("general"),
    current_user: User = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
):
    """The template that would be used right now for a family/purpose"""
    resolved = service.resolve(family, purpose, current_user)
    return ResolvedTemplateResponse(
        family=resolved.family,
        purpose=resolved.purpose,
        source=resolved.source,
        templateId=resolved.template_id,
        subject=resolved.subject,
        content=resolved.content,
    )


@router.post("/seed", response_model=list[TemplateResponse])
async def seed_templates(
    current_user: User = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
):
    """Install the default template set for a tenant that has none"""
    return [_to_response(t) for t in service.seed_defaults(current_user)]


@router.get("/{template_id}", response_model=TemplateResponse)
async def get_template(
    template_id: int,
    current_user: User = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
):
    return _to_response(service.get_template(template_id, current_user))


@router.post("", response_model=TemplateResponse)
async def create_template(
    data: TemplateCreate,
    current_user: User = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
):
    return _to_response(service.create_template(data, current_user))


@router.patch("/{template_id}", response_model=TemplateResponse)
async def update_template(
    template_id: int,
    data: TemplateUpdate,
    current_user: User = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
):
    return _to_response(service.update_template(template_id, data, current_user))


@router.post("/{template_id}/activate", response_model=ActivationResponse)
async def activate_template(
    template_id: int,
    current_user: User = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
):
    """Make this the active template for its family/purpose"""
    result = service.activate_template(template_id, current_user)
    return ActivationResponse(activated=result.activated, template=_to_response(result.template))


@router.delete("/{template_id}")
async def delete_template(
    template_id: int,
    current_user: User = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
):
    return service.delete_template(template_id, current_user)
