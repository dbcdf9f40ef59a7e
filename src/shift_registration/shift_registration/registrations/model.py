from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional, Tuple

from ..common.datetime_utils import format_iso_date
from ..core.enums import FailureType, RegistrationStatus
from ..weeks.week import week_start_of

# (user_id, work_shift_id, work_date)
NaturalKey = Tuple[int, int, date]


@dataclass(frozen=True)
class ShiftRegistration:
    registration_id: int
    user_id: int
    work_shift_id: int
    work_date: date
    status: RegistrationStatus
    created_at: datetime
    note: Optional[str] = None
    admin_note: Optional[str] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    rejected_reason: Optional[str] = None

    @property
    def natural_key(self) -> NaturalKey:
        return (self.user_id, self.work_shift_id, self.work_date)

    @property
    def slot(self) -> Tuple[date, int]:
        return (self.work_date, self.work_shift_id)

    @property
    def week_start(self) -> date:
        return week_start_of(self.work_date)

    @property
    def is_active(self) -> bool:
        """Non-rejected rows hold the natural key."""
        return self.status != RegistrationStatus.REJECTED

    def to_dict(self) -> dict:
        return {
            "id": self.registration_id,
            "user_id": self.user_id,
            "work_shift_id": self.work_shift_id,
            "work_date": format_iso_date(self.work_date),
            "week_start": format_iso_date(self.week_start),
            "status": self.status.value,
            "note": self.note,
            "admin_note": self.admin_note,
            "approved_by_id": self.approved_by,
            "approved_at": self.approved_at.isoformat() if self.approved_at else None,
            "rejected_reason": self.rejected_reason,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass(frozen=True)
class PlanItem:
    """One shift the user intends to work in the target week."""

    work_date: date
    work_shift_id: int
    note: Optional[str] = None

    @property
    def slot(self) -> Tuple[date, int]:
        return (self.work_date, self.work_shift_id)


@dataclass(frozen=True)
class OffSlot:
    """A nominally expected shift the plan leaves uncovered."""

    work_date: date
    work_shift_id: int


@dataclass(frozen=True)
class ValidationFailure:
    type: FailureType
    message: str
    work_date: Optional[date] = None
    work_shift_id: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "date": format_iso_date(self.work_date) if self.work_date else None,
            "shift_id": self.work_shift_id,
            "message": self.message,
        }


@dataclass
class SubmitResult:
    success_count: int = 0
    error_count: int = 0
    errors: List[ValidationFailure] = field(default_factory=list)
    created: List[ShiftRegistration] = field(default_factory=list)
    removed: int = 0

    @property
    def ok(self) -> bool:
        return self.error_count == 0

    def to_dict(self) -> dict:
        return {
            "success_count": self.success_count,
            "error_count": self.error_count,
            "errors": [e.to_dict() for e in self.errors],
            "created": [r.to_dict() for r in self.created],
            "removed": self.removed,
        }


@dataclass
class BatchResult:
    """Per-row report of a best-effort bulk operation."""

    succeeded: List[int] = field(default_factory=list)
    errors: List[dict] = field(default_factory=list)

    def add_error(self, registration_id: int, reason: str) -> None:
        self.errors.append({"id": registration_id, "reason": reason})
