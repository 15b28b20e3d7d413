"""Domain helpers for record dates and reporting periods."""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Optional, Tuple

MONTH_NAMES = (
    "Januari",
    "Februari",
    "Maret",
    "April",
    "Mei",
    "Juni",
    "Juli",
    "Agustus",
    "September",
    "Oktober",
    "November",
    "Desember",
)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def today_iso() -> str:
    return datetime.now(timezone.utc).date().isoformat()


def normalize_date(value: Any) -> Optional[str]:
    """Convert date/datetime objects to ISO text; strings pass through stripped."""
    if value is None:
        return None
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    text = str(value).strip()
    return text or None


def year_month(value: Any) -> Optional[Tuple[int, int]]:
    """
    Return (year, month) for an ISO date/datetime string.

    Accepts "2025-03-14", "2025-03-14T08:00:00", "2025-03-14T08:00:00.000Z".
    Values that cannot be parsed return None so they never count toward a period.
    """
    if isinstance(value, (datetime, date)):
        return value.year, value.month
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
        return parsed.year, parsed.month
    except ValueError:
        pass
    try:
        parsed_date = date.fromisoformat(text[:10])
    except ValueError:
        return None
    return parsed_date.year, parsed_date.month


def in_month(value: Any, year: int, month: int) -> bool:
    return year_month(value) == (year, month)


def in_year(value: Any, year: int) -> bool:
    period = year_month(value)
    return period is not None and period[0] == year


def month_label(year: int, month: int) -> str:
    """Indonesian period label used on reports, e.g. "Maret 2025"."""
    if not 1 <= month <= 12:
        raise ValueError(f"month must be between 1 and 12, got {month}")
    return f"{MONTH_NAMES[month - 1]} {year}"
