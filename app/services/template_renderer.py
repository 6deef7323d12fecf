"""
Merge-field rendering for templates.

Placeholders look like ``{client_name}``. Unknown placeholders are left as
they are so a half-configured template still reads sensibly.
"""

import re
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from ..shared.money import Money

MERGE_FIELD = re.compile(r"\{([a-z_][a-z0-9_]*)\}")


def format_date(value: Optional[Any]) -> str:
    """en-AU calendar date (dd/mm/yyyy)"""
    if value is None:
        return ""
    if isinstance(value, (datetime, date)):
        return value.strftime("%d/%m/%Y")
    return str(value)


def format_money(value: Optional[Any]) -> str:
    if value is None:
        return str(Money.zero())
    if isinstance(value, Money):
        return str(value)
    if isinstance(value, Decimal):
        return str(Money.from_decimal(value))
    return str(Money.parse(value))


def render_template(text: Optional[str], context: dict) -> str:
    """Replace every known {field} in text with its value from context"""
    if not text:
        return ""

    def _replace(match: re.Match) -> str:
        key = match.group(1)
        if key not in context or context[key] is None:
            return match.group(0)
        return str(context[key])

    return MERGE_FIELD.sub(_replace, text)


def build_merge_context(user=None, client=None, job=None, quote=None, invoice=None) -> dict:
    """Collect merge values from whichever entities are at hand"""
    context: dict = {}

    if user is not None:
        context["business_name"] = user.business_name or "Your tradie"
    if client is not None:
        context["client_name"] = client.name or "there"
        context["client_email"] = client.email or ""
        context["client_phone"] = client.phone or ""
    if job is not None:
        context["job_title"] = job.title
        context["job_address"] = job.address or ""
        context["scheduled_date"] = format_date(job.scheduled_at)
    if quote is not None:
        context["quote_number"] = quote.number
        context["quote_total"] = format_money(quote.total)
        context.setdefault("job_title", quote.title)
    if invoice is not None:
        context["invoice_number"] = invoice.number
        context["invoice_total"] = format_money(invoice.total)
        context["due_date"] = format_date(invoice.due_date)
        context.setdefault("job_title", invoice.title)

    return context
