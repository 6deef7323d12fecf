"""
Subscription tier quotas and feature flags.
"""

from datetime import datetime
from types import MappingProxyType
from typing import Optional

from sqlalchemy.orm import Session

from .models import Client, User
from .models_templates import BusinessTemplate

UNLIMITED = -1

# Usage limits per tier (-1 means unlimited)
TIER_LIMITS = MappingProxyType(
    {
        "free": MappingProxyType(
            {
                "jobs_per_month": 5,
                "invoices_per_month": 5,
                "quotes_per_month": 10,
                "clients": 10,
                "team_members": 0,
                "templates": 3,
            }
        ),
        "pro": MappingProxyType(
            {
                "jobs_per_month": UNLIMITED,
                "invoices_per_month": UNLIMITED,
                "quotes_per_month": UNLIMITED,
                "clients": UNLIMITED,
                "team_members": 0,
                "templates": UNLIMITED,
            }
        ),
        "team": MappingProxyType(
            {
                "jobs_per_month": UNLIMITED,
                "invoices_per_month": UNLIMITED,
                "quotes_per_month": UNLIMITED,
                "clients": UNLIMITED,
                "team_members": UNLIMITED,
                "templates": UNLIMITED,
            }
        ),
        "trial": MappingProxyType(
            {
                "jobs_per_month": UNLIMITED,
                "invoices_per_month": UNLIMITED,
                "quotes_per_month": UNLIMITED,
                "clients": UNLIMITED,
                "team_members": 0,
                "templates": UNLIMITED,
            }
        ),
    }
)

TIER_FEATURES = MappingProxyType(
    {
        "free": frozenset({"basic_invoicing", "basic_quotes", "basic_jobs"}),
        "pro": frozenset(
            {
                "basic_invoicing",
                "basic_quotes",
                "basic_jobs",
                "recurring",
                "auto_reminders",
                "automations",
                "custom_templates",
                "ai_assistant",
            }
        ),
        "team": frozenset(
            {
                "basic_invoicing",
                "basic_quotes",
                "basic_jobs",
                "recurring",
                "auto_reminders",
                "automations",
                "custom_templates",
                "ai_assistant",
                "team_management",
                "time_tracking",
            }
        ),
        "trial": frozenset(
            {
                "basic_invoicing",
                "basic_quotes",
                "basic_jobs",
                "recurring",
                "auto_reminders",
                "automations",
                "custom_templates",
                "ai_assistant",
            }
        ),
    }
)

TRIAL_DAYS = 14

# kind -> (limit key, monthly counter column or None for a live count)
USAGE_KINDS = MappingProxyType(
    {
        "job": ("jobs_per_month", "jobs_created_this_month"),
        "invoice": ("invoices_per_month", "invoices_created_this_month"),
        "quote": ("quotes_per_month", "quotes_created_this_month"),
        "client": ("clients", None),
        "template": ("templates", None),
    }
)


def effective_tier(user: User, now: Optional[datetime] = None) -> str:
    """The tier quotas are checked against. Expired trials fall back to free."""
    now = now or datetime.utcnow()
    tier = (user.subscription_tier or "free").lower()
    if tier not in TIER_LIMITS:
        return "free"
    if tier == "trial" and user.trial_ends_at and user.trial_ends_at < now:
        return "free"
    return tier


def get_tier_limits(tier: Optional[str]):
    """Read-only limits for a tier; unknown tiers get the free limits"""
    return TIER_LIMITS.get((tier or "free").lower(), TIER_LIMITS["free"])


def has_feature(user: User, feature: str, now: Optional[datetime] = None) -> bool:
    return feature in TIER_FEATURES[effective_tier(user, now)]


def is_unlimited(limit: Optional[int]) -> bool:
    return limit is None or limit == UNLIMITED


def check_and_reset_monthly_usage(user: User, db: Session, now: Optional[datetime] = None) -> bool:
    """
    Reset the monthly counters once the calendar month has rolled over.
    Returns True when a reset happened.
    """
    now = now or datetime.utcnow()
    last_reset = user.usage_reset_date

    if last_reset is not None and (last_reset.year, last_reset.month) >= (now.year, now.month):
        return False

    user.jobs_created_this_month = 0
    user.invoices_created_this_month = 0
    user.quotes_created_this_month = 0
    user.usage_reset_date = now
    db.commit()
    return True


def _current_usage(user: User, db: Session, kind: str) -> int:
    _, counter = USAGE_KINDS[kind]
    if counter is not None:
        return getattr(user, counter) or 0
    if kind == "template":
        # System defaults don't count against the allowance
        return (
            db.query(BusinessTemplate)
            .filter(BusinessTemplate.user_id == user.id, BusinessTemplate.is_default.is_(False))
            .count()
        )
    return (
        db.query(Client)
        .filter(Client.user_id == user.id, Client.archived_at.is_(None))
        .count()
    )


def can_create(user: User, db: Session, kind: str, now: Optional[datetime] = None) -> tuple:
    """
    Check whether the tenant may create another ``kind`` (job, invoice, quote, client).
    Returns (allowed, error_message).
    """
    if kind not in USAGE_KINDS:
        raise ValueError(f"Unknown usage kind: {kind}")

    check_and_reset_monthly_usage(user, db, now)

    limit_key, counter = USAGE_KINDS[kind]
    tier = effective_tier(user, now)
    limit = get_tier_limits(tier)[limit_key]

    if is_unlimited(limit):
        return (True, None)

    if _current_usage(user, db, kind) < limit:
        return (True, None)

    period = " this month" if counter else ""
    return (
        False,
        f"You've reached your {tier} plan limit of {limit} {kind}s{period}. "
        "Upgrade to Pro for unlimited usage.",
    )


def increment_usage(user: User, db: Session, kind: str) -> None:
    """Count a newly created entity against the monthly quota. Clients are counted live."""
    _, counter = USAGE_KINDS[kind]
    if counter is None:
        return
    check_and_reset_monthly_usage(user, db)
    setattr(user, counter, (getattr(user, counter) or 0) + 1)
    db.commit()


def get_usage_stats(user: User, db: Session, now: Optional[datetime] = None) -> dict:
    """Current usage, limits and remaining allowance for each quota kind"""
    check_and_reset_monthly_usage(user, db, now)

    tier = effective_tier(user, now)
    limits = get_tier_limits(tier)

    usage = {}
    for kind, (limit_key, _) in USAGE_KINDS.items():
        limit = limits[limit_key]
        current = _current_usage(user, db, kind)
        usage[kind] = {
            "current": current,
            "limit": None if is_unlimited(limit) else limit,
            "remaining": None if is_unlimited(limit) else max(0, limit - current),
        }

    return {
        "tier": tier,
        "usage": usage,
        "features": sorted(TIER_FEATURES[tier]),
        "trial_ends_at": user.trial_ends_at.isoformat() if user.trial_ends_at else None,
        "reset_date": user.usage_reset_date.isoformat() if user.usage_reset_date else None,
    }
