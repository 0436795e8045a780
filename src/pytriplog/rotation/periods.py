"""Which accumulator identities should be open at a given instant."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from enum import StrEnum

from pytriplog._constants import CURRENT_IDENTITY, TOTAL_IDENTITY


class PeriodWindow(StrEnum):
    TOTAL = "total"
    ANNUAL = "annual"
    MONTHLY = "monthly"
    DAILY = "daily"


def year_identity(now: datetime) -> str:
    return f"{now.year:04d}"


def month_identity(now: datetime) -> str:
    return f"{now.year:04d}-{now.month:02d}"


def day_identity(now: datetime) -> str:
    return now.date().isoformat()


def resolve_periods(now: datetime, windows: Iterable[PeriodWindow]) -> tuple[str, ...]:
    """Return the ordered identities that must be open at *now*.

    ``"current"`` is always first, followed by ``"total"``, the year, the
    month and the day for whichever windows are enabled.  Calendar
    boundaries follow the timezone of *now*.
    """
    enabled = frozenset(PeriodWindow(window) for window in windows)
    identities = [CURRENT_IDENTITY]
    if PeriodWindow.TOTAL in enabled:
        identities.append(TOTAL_IDENTITY)
    if PeriodWindow.ANNUAL in enabled:
        identities.append(year_identity(now))
    if PeriodWindow.MONTHLY in enabled:
        identities.append(month_identity(now))
    if PeriodWindow.DAILY in enabled:
        identities.append(day_identity(now))
    return tuple(identities)
