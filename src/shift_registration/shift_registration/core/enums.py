from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User role used for authorization."""

    ADMIN = "admin"
    STAFF = "staff"


class RegistrationStatus(str, Enum):
    """Lifecycle of a shift registration row."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ScheduleType(str, Enum):
    """Which shifts a user is nominally expected to work every week."""

    BOTH_SHIFTS = "both_shifts"
    MORNING_ONLY = "morning_only"
    AFTERNOON_ONLY = "afternoon_only"

    @property
    def is_dual(self) -> bool:
        return self is ScheduleType.BOTH_SHIFTS


class ShiftPeriod(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"


class FailureType(str, Enum):
    """Machine-readable categories of a rejected submission."""

    USER_OFF_LIMIT = "user_off_limit"
    SHIFT_OFF_LIMIT = "shift_off_limit"
    INVALID_PLAN = "invalid_plan"
    REGISTRATION_WINDOW = "registration_window"
    COMMIT_FAILED = "commit_failed"
