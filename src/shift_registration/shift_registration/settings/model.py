from __future__ import annotations

from dataclasses import asdict, dataclass

from ..core.constants import (
    DEFAULT_MAX_SHIFT_OFF_COUNT_PER_DAY_POSITION,
    DEFAULT_MAX_USER_OFF_DAYS_PER_WEEK,
    DEFAULT_MAX_USER_OFF_SHIFTS_PER_WEEK,
)


@dataclass(frozen=True)
class QuotaPolicy:
    """Tenant-wide caps on how much a person or a position cohort may be off.

    ``max_user_off_days_per_week`` applies to single-shift schedule types,
    ``max_user_off_shifts_per_week`` to dual-shift ones.
    """

    max_user_off_days_per_week: int = DEFAULT_MAX_USER_OFF_DAYS_PER_WEEK
    max_user_off_shifts_per_week: int = DEFAULT_MAX_USER_OFF_SHIFTS_PER_WEEK
    max_shift_off_count_per_day_position: int = DEFAULT_MAX_SHIFT_OFF_COUNT_PER_DAY_POSITION

    def to_dict(self) -> dict:
        return asdict(self)


QUOTA_POLICY_KEYS = tuple(QuotaPolicy.__dataclass_fields__)

# Older clients send the per-day cap without the position suffix.
LEGACY_KEY_ALIASES = {"max_shift_off_count_per_day": "max_shift_off_count_per_day_position"}
