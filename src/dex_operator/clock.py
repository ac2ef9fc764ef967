"""Time helpers shared by expiry calculations."""

from __future__ import annotations
import calendar
from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return the current timezone-aware UTC time."""
    return datetime.now(tz=UTC)


def add_months(moment: datetime, months: int) -> datetime:
    """Shift ``moment`` by calendar months, clamping to the last day of month."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def isoformat_z(moment: datetime) -> str:
    """Render ``moment`` as an RFC 3339 UTC timestamp with a ``Z`` suffix."""
    return moment.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


__all__ = ["add_months", "isoformat_z", "utcnow"]
