"""Shared parsing helpers for aggregator payloads.

GoCardless returns dates as ``YYYY-MM-DD`` strings (occasionally full ISO
timestamps) and amounts as decimal strings. These helpers normalise both.
"""

from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation


def parse_iso_date(value) -> date | None:
    """Parse a date string (or date/datetime object) into a ``date``.

    Handles:
    - Date-only strings ("2024-06-28")
    - Full timestamps with Z suffix ("2024-06-28T10:30:00Z")
    - date/datetime objects passed through

    Returns:
        A date, or None if the value cannot be parsed.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    value_str = str(value).strip()
    if not value_str:
        return None

    try:
        return date.fromisoformat(value_str[:10])
    except ValueError:
        return None


def parse_decimal(value) -> Decimal | None:
    """Parse an amount (string, int or float) into a Decimal.

    Floats go through ``str()`` so binary rounding noise is not carried
    into the stored value.
    """
    if value is None:
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def utc_today() -> date:
    """Current calendar date in UTC."""
    return datetime.now(timezone.utc).date()
