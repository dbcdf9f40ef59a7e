"""Nominal weekly obligations and the off slots derived from them.

A user's schedule type says which day periods they are expected to cover on
every working weekday. Each (date, period) obligation is represented by the
earliest-starting available shift of that period; it counts as covered when
any registered shift of the same period falls on that date. Evening shifts
are never obligations, so registering them is extra work, not a substitute.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Sequence, Tuple

from ..core.constants import DEFAULT_WORKING_WEEKDAYS
from ..core.enums import ScheduleType, ShiftPeriod
from ..shifts.model import WorkShift
from ..weeks.week import Week
from .model import OffSlot

PERIODS_BY_SCHEDULE: Dict[ScheduleType, Tuple[ShiftPeriod, ...]] = {
    ScheduleType.BOTH_SHIFTS: (ShiftPeriod.MORNING, ShiftPeriod.AFTERNOON),
    ScheduleType.MORNING_ONLY: (ShiftPeriod.MORNING,),
    ScheduleType.AFTERNOON_ONLY: (ShiftPeriod.AFTERNOON,),
}


@dataclass(frozen=True)
class NominalSlot:
    work_date: date
    period: ShiftPeriod
    work_shift_id: int


def representative_shifts(shifts: Iterable[WorkShift]) -> Dict[ShiftPeriod, WorkShift]:
    reps: Dict[ShiftPeriod, WorkShift] = {}
    for shift in sorted(shifts, key=lambda s: (s.start_time, s.shift_id)):
        reps.setdefault(shift.period, shift)
    return reps


def nominal_slots(
    schedule_type: ScheduleType,
    week: Week,
    shifts: Sequence[WorkShift],
    *,
    working_weekdays: Iterable[int] = DEFAULT_WORKING_WEEKDAYS,
) -> List[NominalSlot]:
    reps = representative_shifts(shifts)
    weekdays = set(working_weekdays)
    out: List[NominalSlot] = []
    for day in week.dates:
        if day.weekday() not in weekdays:
            continue
        for period in PERIODS_BY_SCHEDULE[schedule_type]:
            shift = reps.get(period)
            if shift is not None:
                out.append(NominalSlot(work_date=day, period=period, work_shift_id=shift.shift_id))
    return out


def off_slots(
    schedule_type: ScheduleType,
    week: Week,
    shifts: Sequence[WorkShift],
    covered: Iterable[Tuple[date, int]],
    *,
    working_weekdays: Iterable[int] = DEFAULT_WORKING_WEEKDAYS,
) -> List[OffSlot]:
    """Nominal slots not covered by any of the ``(work_date, work_shift_id)`` pairs."""

    by_id = {s.shift_id: s for s in shifts}
    covered_periods = {(day, by_id[shift_id].period) for day, shift_id in covered if shift_id in by_id}
    return [
        OffSlot(work_date=slot.work_date, work_shift_id=slot.work_shift_id)
        for slot in nominal_slots(schedule_type, week, shifts, working_weekdays=working_weekdays)
        if (slot.work_date, slot.period) not in covered_periods
    ]
