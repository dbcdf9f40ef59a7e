from __future__ import annotations

from dataclasses import dataclass
from datetime import time
from typing import Optional

from ..core.constants import AFTERNOON_START_HOUR, DEFAULT_LATE_THRESHOLD_MINUTES, EVENING_START_HOUR
from ..core.enums import ShiftPeriod


@dataclass(frozen=True)
class WorkShift:
    """Domain entity: a work shift from the catalog."""

    shift_id: int
    name: str
    start_time: time
    end_time: time
    late_threshold_minutes: int = DEFAULT_LATE_THRESHOLD_MINUTES
    department_id: Optional[int] = None

    @property
    def period(self) -> ShiftPeriod:
        if self.start_time.hour < AFTERNOON_START_HOUR:
            return ShiftPeriod.MORNING
        if self.start_time.hour < EVENING_START_HOUR:
            return ShiftPeriod.AFTERNOON
        return ShiftPeriod.EVENING

    def is_available_to(self, department_id: Optional[int]) -> bool:
        return self.department_id is None or self.department_id == department_id

    @property
    def label(self) -> str:
        return f"{self.name} ({self.start_time.strftime('%H:%M')}-{self.end_time.strftime('%H:%M')})"

    def to_dict(self) -> dict:
        return {
            "id": self.shift_id,
            "name": self.name,
            "start_time": self.start_time.strftime("%H:%M"),
            "end_time": self.end_time.strftime("%H:%M"),
            "late_threshold": self.late_threshold_minutes,
            "department_id": self.department_id,
            "period": self.period.value,
        }
