"""Shared validation utilities"""

import re
from datetime import date, datetime
from typing import Optional, Union

from .errors import ValidationError


def validate_au_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate and normalize an Australian phone number to E.164 format.

    Accepts local mobiles/landlines (04xx xxx xxx, 02 xxxx xxxx) and numbers
    already carrying the +61 / 61 prefix.

    Returns:
        Normalized phone number in E.164 format (+61XXXXXXXXX)

    Raises:
        ValidationError: If phone number is invalid
    """
    if not phone:
        return phone

    # Remove all non-digit characters
    digits = re.sub(r"\D", "", phone)

    if digits.startswith("61") and len(digits) == 11:
        digits = digits[2:]
    elif digits.startswith("0") and len(digits) == 10:
        digits = digits[1:]

    # National significant number is 9 digits
    if len(digits) != 9:
        raise ValidationError("Phone number must be a valid Australian number")

    return f"+61{digits}"


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Returns:
        Lowercase email address

    Raises:
        ValidationError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    # Basic email validation pattern
    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if not re.match(email_pattern, email):
        raise ValidationError("Invalid email format")

    return email


def parse_calendar_date(value: Union[date, datetime, str, None]) -> date:
    """
    Coerce a date, datetime or ISO-8601 string into a calendar date.

    Raises:
        ValidationError: If the value is missing or not a date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            pass
    raise ValidationError(f"Invalid date: {value!r}")


def parse_timestamp(value: Union[date, datetime, str, None]) -> datetime:
    """Like parse_calendar_date but keeps the time of day (midnight for plain dates)"""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str) and value.strip():
        try:
            return datetime.fromisoformat(value.strip())
        except ValueError:
            pass
    raise ValidationError(f"Invalid timestamp: {value!r}")
