"""
Which purposes each template family may be bound to.

The map is static and read-only. Families missing from it only accept the
``general`` purpose, so a new family works before it gets its own entry.
"""

from types import MappingProxyType

GENERAL_PURPOSE = "general"

TEMPLATE_FAMILIES = (
    "terms_conditions",
    "warranty",
    "email",
    "sms",
    "safety_form",
    "checklist",
    "payment_notice",
)

EMAIL_PURPOSES = frozenset(
    {
        "quote_sent",
        "invoice_sent",
        "payment_reminder",
        "job_confirmation",
        "job_completed",
        "quote_accepted",
        "quote_declined",
    }
)

SMS_PURPOSES = frozenset(
    {
        "sms_quote_sent",
        "sms_invoice_sent",
        "sms_payment_reminder",
        "sms_job_confirmation",
        "sms_job_completed",
    }
)

FAMILY_PURPOSES = MappingProxyType(
    {
        "terms_conditions": frozenset({GENERAL_PURPOSE}),
        "warranty": frozenset({GENERAL_PURPOSE}),
        "safety_form": frozenset({GENERAL_PURPOSE}),
        "checklist": frozenset({GENERAL_PURPOSE}),
        "payment_notice": frozenset({GENERAL_PURPOSE}),
        "email": EMAIL_PURPOSES,
        "sms": SMS_PURPOSES,
    }
)

_DEFAULT_PURPOSES = frozenset({GENERAL_PURPOSE})


def get_valid_purposes_for_family(family: str) -> frozenset:
    return FAMILY_PURPOSES.get(family, _DEFAULT_PURPOSES)


def is_valid_purpose_for_family(family: str, purpose: str) -> bool:
    return purpose in get_valid_purposes_for_family(family)


def is_known_family(family: str) -> bool:
    return family in FAMILY_PURPOSES
