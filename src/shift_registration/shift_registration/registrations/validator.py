from __future__ import annotations

from datetime import date, datetime
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..common.datetime_utils import format_iso_date
from ..common.validators import optional_text
from ..core.constants import DEFAULT_REGISTRATION_OPEN_WEEKDAY, DEFAULT_WORKING_WEEKDAYS
from ..core.enums import FailureType, Role
from ..core.exceptions import InvalidPlanError, QuotaExceededError, RegistrationWindowError
from ..settings.model import QuotaPolicy
from ..shifts.model import WorkShift
from ..users.model import User
from ..weeks.week import Week, can_register_next_week, next_week_start
from .model import OffSlot, PlanItem, ValidationFailure
from .obligations import off_slots

WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


class RegistrationValidator:
    """Decides whether a weekly plan may be written, before any write happens.

    Every check collects all of its failures and raises them together, so a
    rejected plan never comes back with only the first problem.
    """

    def __init__(
        self,
        *,
        open_weekday: int = DEFAULT_REGISTRATION_OPEN_WEEKDAY,
        working_weekdays: Iterable[int] = DEFAULT_WORKING_WEEKDAYS,
    ):
        self.open_weekday = int(open_weekday)
        self.working_weekdays = tuple(sorted(set(int(d) for d in working_weekdays)))

    def is_window_open(self, now: datetime) -> bool:
        return can_register_next_week(now, open_weekday=self.open_weekday)

    def check_window(self, *, current_role: Role, week: Week, now: datetime) -> None:
        if current_role == Role.ADMIN:
            return

        expected = next_week_start(now)
        if week.start != expected:
            failure = ValidationFailure(
                type=FailureType.REGISTRATION_WINDOW,
                message=f"Only next week ({format_iso_date(expected)}) can be registered",
            )
            raise RegistrationWindowError(failure.message, [failure])
        if not self.is_window_open(now):
            failure = ValidationFailure(
                type=FailureType.REGISTRATION_WINDOW,
                message=f"Registration for next week opens on {WEEKDAY_NAMES[self.open_weekday]}",
            )
            raise RegistrationWindowError(failure.message, [failure])

    def normalize_plan(self, *, week: Week, plan: Iterable[PlanItem], shifts: Sequence[WorkShift]) -> List[PlanItem]:
        """Drop duplicate slots and reject dates/shifts the user may not register."""

        available = {s.shift_id for s in shifts}
        failures: List[ValidationFailure] = []
        seen: Dict[Tuple[date, int], PlanItem] = {}
        for item in plan:
            if not week.contains(item.work_date):
                failures.append(
                    ValidationFailure(
                        type=FailureType.INVALID_PLAN,
                        message=f"{format_iso_date(item.work_date)} is outside the week of {week.key}",
                        work_date=item.work_date,
                        work_shift_id=item.work_shift_id,
                    )
                )
                continue
            if item.work_shift_id not in available:
                failures.append(
                    ValidationFailure(
                        type=FailureType.INVALID_PLAN,
                        message=f"Shift {item.work_shift_id} is not available to this user",
                        work_date=item.work_date,
                        work_shift_id=item.work_shift_id,
                    )
                )
                continue
            seen.setdefault(item.slot, PlanItem(item.work_date, item.work_shift_id, optional_text(item.note)))

        if failures:
            raise InvalidPlanError("The submitted plan contains invalid shifts", failures)
        return sorted(seen.values(), key=lambda i: (i.work_date, i.work_shift_id))

    def off_slots_for(self, *, user: User, week: Week, shifts: Sequence[WorkShift], covered: Iterable[Tuple[date, int]]) -> List[OffSlot]:
        return off_slots(user.schedule_type, week, shifts, covered, working_weekdays=self.working_weekdays)

    def check_quota(
        self,
        *,
        user: User,
        week: Week,
        shifts: Sequence[WorkShift],
        covered: Iterable[Tuple[date, int]],
        policy: QuotaPolicy,
        others_off: Optional[Mapping[Tuple[date, int], int]] = None,
    ) -> List[OffSlot]:
        """Return the plan's off slots, or raise QuotaExceededError with every breach.

        ``covered`` is the full set of slots the user will work that week,
        including registrations already approved. ``others_off`` counts
        colleagues with the same position already off per (date, shift).
        """

        offs = self.off_slots_for(user=user, week=week, shifts=shifts, covered=covered)
        names = {s.shift_id: s.label for s in shifts}
        failures: List[ValidationFailure] = []

        if user.schedule_type.is_dual:
            cap = policy.max_user_off_shifts_per_week
            if len(offs) > cap:
                failures.append(
                    ValidationFailure(
                        type=FailureType.USER_OFF_LIMIT,
                        message=f"You can take at most {cap} shift(s) off per week; this plan leaves {len(offs)} uncovered",
                    )
                )
        else:
            cap = policy.max_user_off_days_per_week
            off_days = sorted({o.work_date for o in offs})
            if len(off_days) > cap:
                failures.append(
                    ValidationFailure(
                        type=FailureType.USER_OFF_LIMIT,
                        message=f"You can take at most {cap} day(s) off per week; this plan leaves {len(off_days)} uncovered",
                    )
                )

        if user.position_id is not None and others_off is not None:
            cap = policy.max_shift_off_count_per_day_position
            for off in offs:
                already = int(others_off.get((off.work_date, off.work_shift_id), 0))
                if already + 1 > cap:
                    failures.append(
                        ValidationFailure(
                            type=FailureType.SHIFT_OFF_LIMIT,
                            message=(
                                f"{names.get(off.work_shift_id, f'Shift #{off.work_shift_id}')} on "
                                f"{WEEKDAY_NAMES[off.work_date.weekday()]} {format_iso_date(off.work_date)}: "
                                f"{already} colleague(s) in your position are already off (limit {cap})"
                            ),
                            work_date=off.work_date,
                            work_shift_id=off.work_shift_id,
                        )
                    )

        if failures:
            raise QuotaExceededError("The plan exceeds the off quota", failures)
        return offs
