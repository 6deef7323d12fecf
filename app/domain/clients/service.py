"""Client service - Business logic for client operations"""

import logging
from datetime import datetime

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Client, User
from ...plan_limits import can_create
from .repository import ClientRepository
from .schemas import ClientCreate, ClientUpdate

logger = logging.getLogger(__name__)


class ClientService:
    """Service layer for client business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = ClientRepository()

    def get_clients(self, user: User, include_archived: bool = False) -> list[Client]:
        return self.repo.get_clients(self.db, user.id, include_archived)

    def get_client(self, client_id: int, user: User) -> Client:
        client = self.repo.get_client_by_id(self.db, client_id, user.id)
        if not client:
            raise HTTPException(status_code=404, detail="Client not found")
        return client

    def create_client(self, data: ClientCreate, user: User) -> Client:
        """Create a new client with validation"""
        logger.info(f"📥 Creating client for user_id: {user.id}")

        allowed, error_message = can_create(user, self.db, "client")
        if not allowed:
            logger.warning(f"⚠️ User {user.id} reached client limit: {error_message}")
            raise HTTPException(status_code=403, detail=error_message)

        return self.repo.create_client(
            self.db,
            user.id,
            name=data.name,
            email=data.email,
            phone=data.phone,
            address=data.address,
            notes=data.notes,
        )

    def update_client(self, client_id: int, data: ClientUpdate, user: User) -> Client:
        client = self.get_client(client_id, user)
        return self.repo.update_client(
            self.db,
            client,
            name=data.name,
            email=data.email,
            phone=data.phone,
            address=data.address,
            notes=data.notes,
        )

    def archive_client(self, client_id: int, user: User) -> Client:
        client = self.get_client(client_id, user)
        if client.archived_at is not None:
            return client
        logger.info(f"📦 Archiving client {client_id} for user {user.id}")
        return self.repo.set_archived(self.db, client, datetime.utcnow())

    def unarchive_client(self, client_id: int, user: User) -> Client:
        client = self.get_client(client_id, user)
        return self.repo.set_archived(self.db, client, None)

    def delete_client(self, client_id: int, user: User) -> dict:
        client = self.get_client(client_id, user)
        self.repo.delete_client(self.db, client)
        logger.info(f"🗑️ Deleted client {client_id} for user {user.id}")
        return {"message": "Client deleted"}
