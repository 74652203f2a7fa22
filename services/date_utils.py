"""Utilities for parsing and checking date answers."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from config.constants import LOCAL_TIMEZONE


def parse_iso_date(date_str: str) -> Optional[date]:
    """Return the date for a ``YYYY-MM-DD`` string, or None if it is not one."""
    try:
        return datetime.strptime(date_str.strip(), "%Y-%m-%d").date()
    except ValueError:
        return None


def is_valid_iso_date(date_str: str) -> bool:
    """Return True if ``date_str`` is a valid ``YYYY-MM-DD`` date."""
    return parse_iso_date(date_str) is not None


def local_today() -> date:
    """Today's date in the configured local timezone."""
    return datetime.now(LOCAL_TIMEZONE).date()


def is_future_date(date_str: str, today: Optional[date] = None) -> bool:
    """Return True if ``date_str`` falls after ``today`` (local date by default)."""
    parsed = parse_iso_date(date_str)
    if parsed is None:
        return False
    return parsed > (today or local_today())
