"""Calendar resolver: the single source of week and registration-window truth.

Weeks are Monday-aligned. All arithmetic is done on calendar dates taken from
the caller's local time, never on timestamps, so a week boundary cannot drift
across time zones.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import List, Union

from ..common.datetime_utils import format_iso_date
from ..core.constants import DEFAULT_REGISTRATION_OPEN_WEEKDAY

DateLike = Union[date, datetime]


def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def week_start_of(day: DateLike) -> date:
    """Monday of the week containing ``day`` (Sunday belongs to the week before)."""
    d = _as_date(day)
    return d - timedelta(days=d.weekday())


def current_week_start(now: DateLike) -> date:
    return week_start_of(now)


def next_week_start(now: DateLike) -> date:
    return current_week_start(now) + timedelta(days=7)


def can_register_next_week(now: DateLike, *, open_weekday: int = DEFAULT_REGISTRATION_OPEN_WEEKDAY) -> bool:
    """True from ``open_weekday`` of the current week through the end of Sunday."""
    return _as_date(now).weekday() >= int(open_weekday)


def week_dates(week_start: date) -> List[date]:
    return [week_start + timedelta(days=i) for i in range(7)]


@dataclass(frozen=True)
class Week:
    start: date

    def __post_init__(self):
        if self.start.weekday() != 0:
            raise ValueError(f"Week must start on a Monday, got {self.start.isoformat()}")

    @classmethod
    def containing(cls, day: DateLike) -> "Week":
        return cls(week_start_of(day))

    @property
    def end(self) -> date:
        return self.start + timedelta(days=6)

    @property
    def dates(self) -> List[date]:
        return week_dates(self.start)

    @property
    def key(self) -> str:
        return format_iso_date(self.start)

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def next(self) -> "Week":
        return Week(self.start + timedelta(days=7))
