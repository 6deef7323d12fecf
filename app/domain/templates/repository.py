"""Template repository - Database operations for business templates"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import User
from ...models_templates import BusinessTemplate


class TemplateRepository:
    """Repository for business template database operations"""

    @staticmethod
    def get_templates(
        db: Session,
        user_id: int,
        family: Optional[str] = None,
        purpose: Optional[str] = None,
    ) -> list[BusinessTemplate]:
        query = db.query(BusinessTemplate).filter(BusinessTemplate.user_id == user_id)

        if family:
            query = query.filter(BusinessTemplate.family == family)
        if purpose:
            query = query.filter(BusinessTemplate.purpose == purpose)

        return query.order_by(
            BusinessTemplate.family, BusinessTemplate.purpose, BusinessTemplate.id
        ).all()

    @staticmethod
    def get_template_by_id(db: Session, template_id: int, user_id: int) -> Optional[BusinessTemplate]:
        return (
            db.query(BusinessTemplate)
            .filter(BusinessTemplate.id == template_id, BusinessTemplate.user_id == user_id)
            .first()
        )

    @staticmethod
    def get_active_template(
        db: Session, user_id: int, family: str, purpose: str
    ) -> Optional[BusinessTemplate]:
        """The active template for a tenant/family/purpose, if any"""
        return (
            db.query(BusinessTemplate)
            .filter(
                BusinessTemplate.user_id == user_id,
                BusinessTemplate.family == family,
                BusinessTemplate.purpose == purpose,
                BusinessTemplate.is_active.is_(True),
            )
            .first()
        )

    @staticmethod
    def lock_tenant(db: Session, user_id: int) -> Optional[User]:
        """
        Row-lock the tenant so template swaps for one tenant run one at a time.
        No-op on SQLite, which serialises writers anyway.
        """
        return db.query(User).filter(User.id == user_id).with_for_update().first()

    @staticmethod
    def deactivate_siblings(
        db: Session,
        user_id: int,
        family: str,
        purpose: str,
        exclude_id: Optional[int] = None,
    ) -> int:
        """Clear is_active on every other template sharing the key. Does not commit."""
        query = db.query(BusinessTemplate).filter(
            BusinessTemplate.user_id == user_id,
            BusinessTemplate.family == family,
            BusinessTemplate.purpose == purpose,
            BusinessTemplate.is_active.is_(True),
        )
        if exclude_id is not None:
            query = query.filter(BusinessTemplate.id != exclude_id)
        return query.update({BusinessTemplate.is_active: False}, synchronize_session="fetch")

    @staticmethod
    def add_template(db: Session, user_id: int, **template_data) -> BusinessTemplate:
        """Stage a new template in the session. The caller commits."""
        template = BusinessTemplate(user_id=user_id, **template_data)
        db.add(template)
        return template

    @staticmethod
    def delete_template(db: Session, template: BusinessTemplate) -> None:
        db.delete(template)
        db.commit()
