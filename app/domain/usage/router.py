"""Usage router - plan limits and current usage for the tenant"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ...plan_limits import get_usage_stats

router = APIRouter(prefix="/usage", tags=["Usage"])


@router.get("")
async def get_usage(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Quota usage for the current month, limits and enabled features"""
    return get_usage_stats(current_user, db)
