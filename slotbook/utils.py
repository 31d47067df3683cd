"""Shared utilities used across the booking package."""

import re
from datetime import datetime, tzinfo


def normalize_phone(value: str) -> str:
    """Normalize a phone number by stripping everything except digits and a leading +.

    Examples:
        >>> normalize_phone("0917 123 4567")
        '09171234567'
        >>> normalize_phone("+63 (917) 123-4567")
        '+639171234567'
    """
    value = value.strip()
    if value.startswith("+"):
        return "+" + re.sub(r"[^\d]", "", value[1:])
    return re.sub(r"[^\d]", "", value)


def to_business_time(value: datetime, tz: tzinfo) -> datetime:
    """Express a datetime in the business timezone.

    Naive values are taken to already be business-local wall time.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value.astimezone(tz)


def truncate_to_minute(value: datetime) -> datetime:
    return value.replace(second=0, microsecond=0)
