"""Automation repository - Database operations for automation rules"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models_automation import Automation


class AutomationRepository:
    """Repository for automation database operations"""

    @staticmethod
    def get_automations(db: Session, user_id: int) -> list[Automation]:
        return (
            db.query(Automation)
            .filter(Automation.user_id == user_id)
            .order_by(Automation.created_at.desc(), Automation.id.desc())
            .all()
        )

    @staticmethod
    def get_automation_by_id(db: Session, automation_id: int, user_id: int) -> Optional[Automation]:
        return (
            db.query(Automation)
            .filter(Automation.id == automation_id, Automation.user_id == user_id)
            .first()
        )

    @staticmethod
    def create_automation(db: Session, user_id: int, **automation_data) -> Automation:
        automation = Automation(user_id=user_id, **automation_data)
        db.add(automation)
        db.commit()
        db.refresh(automation)
        return automation

    @staticmethod
    def update_automation(db: Session, automation: Automation, **updates) -> Automation:
        for key, value in updates.items():
            if value is not None and hasattr(automation, key):
                setattr(automation, key, value)

        db.commit()
        db.refresh(automation)
        return automation

    @staticmethod
    def delete_automation(db: Session, automation: Automation) -> None:
        db.delete(automation)
        db.commit()
