import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from .config import TENANT_HEADER
from .database import get_db
from .models import User

logger = logging.getLogger(__name__)


def parse_tenant_id(raw: Optional[str]) -> int:
    """Turn the tenant header value into a user id, or 401"""
    if not raw or not raw.strip():
        raise HTTPException(
            status_code=401,
            detail=f"Not authenticated. Please provide the {TENANT_HEADER} header.",
        )

    try:
        tenant_id = int(raw.strip())
    except ValueError as e:
        logger.warning(f"⚠️ Malformed tenant header received: '{raw[:20]}'")
        raise HTTPException(status_code=401, detail="Invalid tenant id") from e

    if tenant_id <= 0:
        raise HTTPException(status_code=401, detail="Invalid tenant id")
    return tenant_id


async def get_current_user(
    tenant_id: Optional[str] = Header(None, alias=TENANT_HEADER),
    db: Session = Depends(get_db),
) -> User:
    """
    Resolve the tenant (business owner) for this request.

    Every entity belongs to exactly one tenant, so all routers depend on this
    and scope their queries by the returned user's id.
    """
    user_id = parse_tenant_id(tenant_id)

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        logger.warning(f"⚠️ Unknown tenant {user_id}")
        raise HTTPException(status_code=404, detail="Tenant not found")

    logger.debug(f"✅ Tenant resolved: {user.email}")
    return user
