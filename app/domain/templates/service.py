"""Template service - Resolution, activation and CRUD for business templates"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...config import TEMPLATE_FALLBACK_MODE
from ...models import User
from ...models_templates import BusinessTemplate
from ...plan_limits import can_create
from ...services.default_templates import SYSTEM_DEFAULT_TEMPLATES, get_system_default_template
from ...shared.errors import ConflictError, NotFoundError, TemplateNotFoundError, ValidationError
from .purposes import get_valid_purposes_for_family, is_known_family, is_valid_purpose_for_family
from .repository import TemplateRepository
from .schemas import TemplateCreate, TemplateUpdate

logger = logging.getLogger(__name__)

FALLBACK_SYSTEM_DEFAULT = "system_default"
FALLBACK_NONE = "none"


class UseDefault:
    """Returned by resolve_active_template when the tenant has no active template"""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self):
        return False

    def __repr__(self):
        return "USE_DEFAULT"


USE_DEFAULT = UseDefault()


@dataclass(frozen=True)
class ActivationResult:
    activated: bool
    template: BusinessTemplate


@dataclass(frozen=True)
class ResolvedTemplate:
    family: str
    purpose: str
    source: str  # tenant, system_default
    content: str
    subject: Optional[str] = None
    template_id: Optional[int] = None


def validate_family_purpose(family: str, purpose: str) -> None:
    """Reject unknown families and purposes the family does not allow"""
    if not is_known_family(family):
        raise ValidationError(f"Unknown template family: {family}")
    if not is_valid_purpose_for_family(family, purpose):
        allowed = ", ".join(sorted(get_valid_purposes_for_family(family)))
        raise ValidationError(
            f"Purpose '{purpose}' is not valid for family '{family}'. Allowed: {allowed}"
        )


def resolve_active_template(
    db: Session, user_id: int, family: str, purpose: str
) -> Union[BusinessTemplate, UseDefault]:
    """The tenant's active template, or USE_DEFAULT when there is none"""
    validate_family_purpose(family, purpose)
    template = TemplateRepository.get_active_template(db, user_id, family, purpose)
    return template if template is not None else USE_DEFAULT


def resolve_template_content(
    db: Session,
    user_id: int,
    family: str,
    purpose: str,
    fallback_mode: Optional[str] = None,
) -> ResolvedTemplate:
    """
    Content to use for a family/purpose.

    With the system_default fallback a tenant without an active template gets
    the built-in one. With fallback "none", or when there is no built-in
    template either, TemplateNotFoundError is raised.
    """
    template = resolve_active_template(db, user_id, family, purpose)
    if template is not USE_DEFAULT:
        return ResolvedTemplate(
            family=family,
            purpose=purpose,
            source="tenant",
            content=template.content,
            subject=template.subject,
            template_id=template.id,
        )

    mode = fallback_mode or TEMPLATE_FALLBACK_MODE
    if mode == FALLBACK_SYSTEM_DEFAULT:
        default = get_system_default_template(family, purpose)
        if default is not None:
            return ResolvedTemplate(
                family=family,
                purpose=purpose,
                source=FALLBACK_SYSTEM_DEFAULT,
                content=default["content"],
                subject=default["subject"],
            )

    logger.warning(f"⚠️ No template for user {user_id}: {family}/{purpose} (fallback={mode})")
    raise TemplateNotFoundError(family, purpose)


def activate_template(db: Session, user_id: int, template_id: int) -> ActivationResult:
    """
    Make a template the only active one for its family/purpose.

    Siblings are deactivated and the target activated in one transaction,
    under a lock on the tenant row. A writer that still loses to the partial
    unique index gets activated=False and nothing changes.
    """
    template = TemplateRepository.get_template_by_id(db, template_id, user_id)
    if not template:
        raise NotFoundError("Template not found")

    try:
        TemplateRepository.lock_tenant(db, user_id)
        deactivated = TemplateRepository.deactivate_siblings(
            db, user_id, template.family, template.purpose, exclude_id=template.id
        )
        template.is_active = True
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning(
            f"⚠️ Template activation lost a race for user {user_id} "
            f"({template.family}/{template.purpose}): {e.orig}"
        )
        db.refresh(template)
        return ActivationResult(activated=False, template=template)

    db.refresh(template)
    logger.info(
        f"✅ Activated template {template.id} for user {user_id} "
        f"({template.family}/{template.purpose}), deactivated {deactivated}"
    )
    return ActivationResult(activated=True, template=template)


def seed_default_templates(db: Session, user: User) -> list[BusinessTemplate]:
    """Give a tenant the built-in template set. Tenants with templates are left alone."""
    existing = TemplateRepository.get_templates(db, user.id)
    if existing:
        return existing

    for (family, purpose), default in SYSTEM_DEFAULT_TEMPLATES.items():
        TemplateRepository.add_template(
            db,
            user.id,
            family=family,
            purpose=purpose,
            name=default["name"],
            description=default["description"],
            subject=default["subject"],
            content=default["content"],
            merge_fields=list(default["merge_fields"]),
            is_default=True,
            is_active=True,
        )
    db.commit()

    logger.info(f"🌱 Seeded {len(SYSTEM_DEFAULT_TEMPLATES)} default templates for user {user.id}")
    return TemplateRepository.get_templates(db, user.id)


class TemplateService:
    """Service layer for template business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = TemplateRepository()

    def get_templates(
        self, user: User, family: Optional[str] = None, purpose: Optional[str] = None
    ) -> list[BusinessTemplate]:
        return self.repo.get_templates(self.db, user.id, family, purpose)

    def get_template(self, template_id: int, user: User) -> BusinessTemplate:
        template = self.repo.get_template_by_id(self.db, template_id, user.id)
        if not template:
            raise HTTPException(status_code=404, detail="Template not found")
        return template

    def create_template(self, data: TemplateCreate, user: User) -> BusinessTemplate:
        validate_family_purpose(data.family, data.purpose)

        allowed, error_message = can_create(user, self.db, "template")
        if not allowed:
            logger.warning(f"⚠️ User {user.id} reached template limit: {error_message}")
            raise HTTPException(status_code=403, detail=error_message)

        if data.isActive:
            self.repo.lock_tenant(self.db, user.id)
            self.repo.deactivate_siblings(self.db, user.id, data.family, data.purpose)

        template = self.repo.add_template(
            self.db,
            user.id,
            family=data.family,
            purpose=data.purpose,
            name=data.name,
            description=data.description,
            subject=data.subject,
            content=data.content,
            merge_fields=data.mergeFields,
            is_default=False,
            is_active=data.isActive,
        )
        self._commit_or_conflict(data.family, data.purpose)
        self.db.refresh(template)

        logger.info(f"📝 Created template {template.id} ({template.family}/{template.purpose})")
        return template

    def update_template(self, template_id: int, data: TemplateUpdate, user: User) -> BusinessTemplate:
        template = self.get_template(template_id, user)

        family = data.family if data.family is not None else template.family
        purpose = data.purpose if data.purpose is not None else template.purpose
        validate_family_purpose(family, purpose)

        becomes_active = data.isActive if data.isActive is not None else template.is_active
        if becomes_active:
            self.repo.lock_tenant(self.db, user.id)
            self.repo.deactivate_siblings(self.db, user.id, family, purpose, exclude_id=template.id)

        updates = {
            "family": family,
            "purpose": purpose,
            "name": data.name,
            "description": data.description,
            "subject": data.subject,
            "content": data.content,
            "merge_fields": data.mergeFields,
            "is_active": data.isActive,
        }
        for key, value in updates.items():
            if value is not None:
                setattr(template, key, value)

        self._commit_or_conflict(family, purpose)
        self.db.refresh(template)
        return template

    def activate_template(self, template_id: int, user: User) -> ActivationResult:
        return activate_template(self.db, user.id, template_id)

    def delete_template(self, template_id: int, user: User) -> dict:
        template = self.get_template(template_id, user)
        if template.is_default:
            raise ValidationError("System default templates cannot be deleted")

        self.repo.delete_template(self.db, template)
        logger.info(f"🗑️ Deleted template {template_id} for user {user.id}")
        return {"message": "Template deleted"}

    def resolve(self, family: str, purpose: str, user: User) -> ResolvedTemplate:
        return resolve_template_content(self.db, user.id, family, purpose)

    def seed_defaults(self, user: User) -> list[BusinessTemplate]:
        return seed_default_templates(self.db, user)

    def _commit_or_conflict(self, family: str, purpose: str) -> None:
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.warning(f"⚠️ Concurrent activation on {family}/{purpose}")
            raise ConflictError(
                f"Another {family}/{purpose} template was activated at the same time, please retry"
            )
