"""Client repository - Database operations for clients"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Client


class ClientRepository:
    """Repository for client database operations"""

    @staticmethod
    def get_clients(db: Session, user_id: int, include_archived: bool = False) -> list[Client]:
        """Get all clients for a user, newest first"""
        query = db.query(Client).filter(Client.user_id == user_id)

        if not include_archived:
            query = query.filter(Client.archived_at.is_(None))

        return query.order_by(Client.created_at.desc(), Client.id.desc()).all()

    @staticmethod
    def get_client_by_id(db: Session, client_id: int, user_id: int) -> Optional[Client]:
        return (
            db.query(Client)
            .filter(Client.id == client_id, Client.user_id == user_id)
            .first()
        )

    @staticmethod
    def create_client(db: Session, user_id: int, **client_data) -> Client:
        client = Client(user_id=user_id, **client_data)
        db.add(client)
        db.commit()
        db.refresh(client)
        return client

    @staticmethod
    def update_client(db: Session, client: Client, **updates) -> Client:
        """Update a client with provided fields"""
        for key, value in updates.items():
            if value is not None and hasattr(client, key):
                setattr(client, key, value)

        db.commit()
        db.refresh(client)
        return client

    @staticmethod
    def set_archived(db: Session, client: Client, archived_at: Optional[datetime]) -> Client:
        client.archived_at = archived_at
        db.commit()
        db.refresh(client)
        return client

    @staticmethod
    def delete_client(db: Session, client: Client) -> None:
        """Delete a client. Jobs, quotes and invoices go with it through FK cascades."""
        db.delete(client)
        db.commit()
