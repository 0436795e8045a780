from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

from pytriplog.rotation.periods import PeriodWindow, resolve_periods


def test_current_always_first() -> None:
    assert resolve_periods(datetime(2024, 3, 17, tzinfo=UTC), []) == ("current",)


def test_all_windows_in_order() -> None:
    now = datetime(2024, 3, 7, 23, 59, tzinfo=UTC)
    assert resolve_periods(now, PeriodWindow) == ("current", "total", "2024", "2024-03", "2024-03-07")


def test_window_subset() -> None:
    now = datetime(2024, 12, 31, 12, tzinfo=UTC)
    assert resolve_periods(now, {PeriodWindow.DAILY, PeriodWindow.ANNUAL}) == ("current", "2024", "2024-12-31")


def test_accepts_window_names() -> None:
    now = datetime(2024, 1, 2, tzinfo=UTC)
    assert resolve_periods(now, ["monthly"]) == ("current", "2024-01")


def test_calendar_follows_timezone_of_instant() -> None:
    # 23:30 UTC on New Year's Eve is already next year two hours east.
    instant = datetime(2024, 12, 31, 23, 30, tzinfo=UTC)
    local = instant.astimezone(timezone(timedelta(hours=2)))

    assert resolve_periods(instant, PeriodWindow)[2:] == ("2024", "2024-12", "2024-12-31")
    assert resolve_periods(local, PeriodWindow)[2:] == ("2025", "2025-01", "2025-01-01")


def test_pure_function() -> None:
    now = datetime(2024, 6, 1, tzinfo=UTC)
    assert resolve_periods(now, PeriodWindow) == resolve_periods(now, PeriodWindow)
