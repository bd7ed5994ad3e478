from __future__ import annotations

from datetime import date
from typing import Optional

DATE_FORMAT_HINT = "DD/MM/YYYY"


def today() -> date:
    return date.today()


def format_dmy(value: date) -> str:
    return f"{value.day:02d}/{value.month:02d}/{value.year:04d}"


def today_dmy(*, today: Optional[date] = None) -> str:
    return format_dmy(today or date.today())


def parse_dmy(text: Optional[str]) -> Optional[date]:
    """
    Parse a DD/MM/YYYY string.

    Returns None for anything that is not three numeric segments forming a
    real calendar date. Never raises.
    """
    if not text or not isinstance(text, str):
        return None
    parts = text.strip().split("/")
    if len(parts) != 3:
        return None
    # ASCII only: str.isdigit() also accepts superscripts that int() rejects.
    if not all(part.strip().isascii() and part.strip().isdigit() for part in parts):
        return None
    dd, mm, yy = (int(part) for part in parts)
    try:
        return date(yy, mm, dd)
    except (ValueError, OverflowError):
        return None


def is_future(text: Optional[str], *, today: Optional[date] = None) -> bool:
    parsed = parse_dmy(text)
    if parsed is None:
        return False
    return parsed > (today or date.today())


def is_before(text_a: Optional[str], text_b: Optional[str]) -> bool:
    a = parse_dmy(text_a)
    b = parse_dmy(text_b)
    if a is None or b is None:
        return False
    return a < b


def days_until(text: Optional[str], *, today: Optional[date] = None) -> Optional[int]:
    # date arithmetic is already whole-day, so a same-day target is 0
    target = parse_dmy(text)
    if target is None:
        return None
    return (target - (today or date.today())).days
