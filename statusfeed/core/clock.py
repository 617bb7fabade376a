"""Wall-clock source and calendar-day helpers.

All day keys are local calendar dates; the flush lock expiry is measured
against the next local midnight.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Protocol

DAY_FORMAT = "%Y-%m-%d"


class Clock(Protocol):
    """Time provider interface."""

    def now(self) -> datetime:
        """Current local wall-clock time."""
        ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now()


def day_key(moment: datetime | date) -> str:
    return moment.strftime(DAY_FORMAT)


def parse_day(value: str) -> date:
    return datetime.strptime(value, DAY_FORMAT).date()


def shifted_day(clock: Clock, offset_days: int) -> str:
    """Day key ``offset_days`` before today (0 = today, 1 = yesterday)."""
    return day_key(clock.now() - timedelta(days=offset_days))


def seconds_until_next_midnight(moment: datetime) -> int:
    tomorrow = (moment + timedelta(days=1)).date()
    midnight = datetime.combine(tomorrow, datetime.min.time(), tzinfo=moment.tzinfo)
    return int((midnight - moment).total_seconds())


def lock_expiry_seconds(moment: datetime, grace_seconds: int) -> int:
    """Lifetime of a flush lock taken at ``moment``: until next midnight plus grace."""
    return max(1, seconds_until_next_midnight(moment) + grace_seconds)
