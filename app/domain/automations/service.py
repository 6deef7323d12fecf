"""Automation service - Business logic for automation rules"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import User
from ...models_automation import Automation, AutomationLog
from ...plan_limits import has_feature
from ...services.automation_log import get_automation_logs
from .repository import AutomationRepository
from .schemas import AutomationCreate, AutomationUpdate

logger = logging.getLogger(__name__)


class AutomationService:
    """Service layer for automation business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AutomationRepository()

    def get_automations(self, user: User) -> list[Automation]:
        return self.repo.get_automations(self.db, user.id)

    def get_automation(self, automation_id: int, user: User) -> Automation:
        automation = self.repo.get_automation_by_id(self.db, automation_id, user.id)
        if not automation:
            raise HTTPException(status_code=404, detail="Automation not found")
        return automation

    def create_automation(self, data: AutomationCreate, user: User) -> Automation:
        if not has_feature(user, "automations"):
            raise HTTPException(
                status_code=403, detail="Automations are available on the Pro plan. Upgrade to use them."
            )

        automation = self.repo.create_automation(
            self.db,
            user.id,
            name=data.name,
            description=data.description,
            is_active=data.isActive,
            trigger=data.trigger.model_dump(exclude_none=True),
            actions=[a.model_dump(exclude_none=True) for a in data.actions],
        )
        logger.info(
            f"⚙️ Created automation {automation.id} ({automation.trigger['type']}) for user {user.id}"
        )
        return automation

    def update_automation(self, automation_id: int, data: AutomationUpdate, user: User) -> Automation:
        automation = self.get_automation(automation_id, user)

        updates = {
            "name": data.name,
            "description": data.description,
            "is_active": data.isActive,
        }
        if data.trigger is not None:
            updates["trigger"] = data.trigger.model_dump(exclude_none=True)
        if data.actions is not None:
            updates["actions"] = [a.model_dump(exclude_none=True) for a in data.actions]

        return self.repo.update_automation(self.db, automation, **updates)

    def delete_automation(self, automation_id: int, user: User) -> dict:
        automation = self.get_automation(automation_id, user)
        self.repo.delete_automation(self.db, automation)
        logger.info(f"🗑️ Deleted automation {automation_id} for user {user.id}")
        return {"message": "Automation deleted"}

    def get_logs(self, user: User, limit: int = 50) -> list[AutomationLog]:
        return get_automation_logs(self.db, user.id, limit)
