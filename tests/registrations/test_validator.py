from __future__ import annotations

from datetime import date, time

import pytest

from src.shift_registration.shift_registration.core.enums import FailureType, Role, ScheduleType
from src.shift_registration.shift_registration.core.exceptions import (
    InvalidPlanError,
    QuotaExceededError,
    RegistrationWindowError,
)
from src.shift_registration.shift_registration.registrations.model import OffSlot, PlanItem
from src.shift_registration.shift_registration.registrations.obligations import nominal_slots, representative_shifts
from src.shift_registration.shift_registration.registrations.validator import RegistrationValidator
from src.shift_registration.shift_registration.settings.model import QuotaPolicy
from src.shift_registration.shift_registration.shifts.model import WorkShift
from src.shift_registration.shift_registration.weeks.week import Week

from tests.fakes import AFTERNOON, EVENING, FRIDAY_MORNING, MORNING, NEXT_WEEK, THURSDAY_EVENING, make_user, week_days

SHIFTS = [MORNING, AFTERNOON, EVENING]
WEEK = Week(NEXT_WEEK)
POLICY = QuotaPolicy(max_user_off_days_per_week=1, max_user_off_shifts_per_week=2, max_shift_off_count_per_day_position=1)


def covered(shift, weekdays):
    return {(d, shift.shift_id) for d in week_days(NEXT_WEEK, weekdays)}


def test_morning_only_with_four_of_five_mornings_is_accepted():
    validator = RegistrationValidator()
    user = make_user(2, schedule_type=ScheduleType.MORNING_ONLY)

    offs = validator.check_quota(
        user=user, week=WEEK, shifts=SHIFTS, covered=covered(MORNING, [0, 1, 2, 3]), policy=POLICY, others_off={}
    )

    assert offs == [OffSlot(work_date=date(2026, 10, 23), work_shift_id=MORNING.shift_id)]


def test_morning_only_with_three_of_five_mornings_is_rejected():
    validator = RegistrationValidator()
    user = make_user(2, schedule_type=ScheduleType.MORNING_ONLY)

    with pytest.raises(QuotaExceededError) as exc:
        validator.check_quota(
            user=user, week=WEEK, shifts=SHIFTS, covered=covered(MORNING, [0, 1, 2]), policy=POLICY, others_off={}
        )

    failures = exc.value.failures
    assert [f.type for f in failures] == [FailureType.USER_OFF_LIMIT]
    assert "2 uncovered" in failures[0].message


def test_evening_shift_does_not_replace_a_morning_obligation():
    validator = RegistrationValidator()
    user = make_user(2, schedule_type=ScheduleType.MORNING_ONLY)
    plan = covered(MORNING, [0, 1, 2]) | covered(EVENING, [3, 4])

    with pytest.raises(QuotaExceededError):
        validator.check_quota(user=user, week=WEEK, shifts=SHIFTS, covered=plan, policy=POLICY, others_off={})


def test_afternoon_only_is_measured_on_afternoons():
    validator = RegistrationValidator()
    user = make_user(5, schedule_type=ScheduleType.AFTERNOON_ONLY, position_id=None)

    offs = validator.check_quota(
        user=user, week=WEEK, shifts=SHIFTS, covered=covered(AFTERNOON, [1, 2, 3, 4]), policy=POLICY
    )

    assert offs == [OffSlot(work_date=NEXT_WEEK, work_shift_id=AFTERNOON.shift_id)]


def test_dual_shift_cap_counts_shifts_not_days():
    validator = RegistrationValidator()
    user = make_user(4, schedule_type=ScheduleType.BOTH_SHIFTS, position_id=None)
    two_off = covered(MORNING, [0, 1, 2, 3, 4]) | covered(AFTERNOON, [0, 1, 2])
    three_off = covered(MORNING, [0, 1, 2, 3]) | covered(AFTERNOON, [0, 1, 2])

    assert len(validator.check_quota(user=user, week=WEEK, shifts=SHIFTS, covered=two_off, policy=POLICY)) == 2
    with pytest.raises(QuotaExceededError) as exc:
        validator.check_quota(user=user, week=WEEK, shifts=SHIFTS, covered=three_off, policy=POLICY)
    assert exc.value.failures[0].type == FailureType.USER_OFF_LIMIT


def test_position_cap_reports_every_full_slot():
    validator = RegistrationValidator()
    user = make_user(4, schedule_type=ScheduleType.BOTH_SHIFTS)
    plan = covered(MORNING, [1, 2, 3, 4]) | covered(AFTERNOON, [1, 2, 3, 4])
    monday = NEXT_WEEK
    others_off = {(monday, MORNING.shift_id): 1, (monday, AFTERNOON.shift_id): 1}

    with pytest.raises(QuotaExceededError) as exc:
        validator.check_quota(user=user, week=WEEK, shifts=SHIFTS, covered=plan, policy=POLICY, others_off=others_off)

    failures = exc.value.failures
    assert [f.type for f in failures] == [FailureType.SHIFT_OFF_LIMIT, FailureType.SHIFT_OFF_LIMIT]
    assert {(f.work_date, f.work_shift_id) for f in failures} == {(monday, 1), (monday, 2)}
    assert "Monday" in failures[0].message


def test_user_and_position_breaches_are_reported_together():
    validator = RegistrationValidator()
    user = make_user(2, schedule_type=ScheduleType.MORNING_ONLY)

    with pytest.raises(QuotaExceededError) as exc:
        validator.check_quota(
            user=user,
            week=WEEK,
            shifts=SHIFTS,
            covered=covered(MORNING, [2, 3, 4]),
            policy=POLICY,
            others_off={(NEXT_WEEK, MORNING.shift_id): 1},
        )

    types = [f.type for f in exc.value.failures]
    assert types == [FailureType.USER_OFF_LIMIT, FailureType.SHIFT_OFF_LIMIT]


def test_user_without_position_skips_position_cap():
    validator = RegistrationValidator()
    user = make_user(2, schedule_type=ScheduleType.MORNING_ONLY, position_id=None)

    offs = validator.check_quota(
        user=user,
        week=WEEK,
        shifts=SHIFTS,
        covered=covered(MORNING, [1, 2, 3, 4]),
        policy=POLICY,
        others_off={(NEXT_WEEK, MORNING.shift_id): 5},
    )

    assert len(offs) == 1


def test_earliest_shift_of_a_period_represents_it():
    early = WorkShift(4, "Early", time(6, 0), time(10, 0))
    reps = representative_shifts([MORNING, early, AFTERNOON, EVENING])

    assert reps[MORNING.period] == early
    slots = nominal_slots(ScheduleType.MORNING_ONLY, WEEK, [MORNING, early])
    assert {s.work_shift_id for s in slots} == {4}
    assert len(slots) == 5


def test_any_shift_of_the_period_covers_the_slot():
    early = WorkShift(4, "Early", time(6, 0), time(10, 0))
    validator = RegistrationValidator()
    user = make_user(2, schedule_type=ScheduleType.MORNING_ONLY, position_id=None)

    offs = validator.check_quota(
        user=user, week=WEEK, shifts=[MORNING, early], covered=covered(MORNING, [0, 1, 2, 3, 4]), policy=POLICY
    )

    assert offs == []


def test_working_weekdays_limit_obligations():
    validator = RegistrationValidator(working_weekdays=(0, 1, 2))
    user = make_user(2, schedule_type=ScheduleType.MORNING_ONLY, position_id=None)

    offs = validator.check_quota(user=user, week=WEEK, shifts=SHIFTS, covered=covered(MORNING, [0, 1]), policy=POLICY)

    assert offs == [OffSlot(work_date=date(2026, 10, 21), work_shift_id=MORNING.shift_id)]


def test_normalize_plan_dedupes_and_sorts():
    validator = RegistrationValidator()
    plan = [
        PlanItem(date(2026, 10, 21), MORNING.shift_id, "  "),
        PlanItem(date(2026, 10, 19), MORNING.shift_id, " first "),
        PlanItem(date(2026, 10, 19), MORNING.shift_id, "again"),
    ]

    items = validator.normalize_plan(week=WEEK, plan=plan, shifts=SHIFTS)

    assert [i.work_date for i in items] == [date(2026, 10, 19), date(2026, 10, 21)]
    assert items[0].note == "first"
    assert items[1].note is None


def test_normalize_plan_reports_every_invalid_item():
    validator = RegistrationValidator()
    plan = [
        PlanItem(date(2026, 10, 26), MORNING.shift_id),
        PlanItem(date(2026, 10, 20), 99),
        PlanItem(date(2026, 10, 21), MORNING.shift_id),
    ]

    with pytest.raises(InvalidPlanError) as exc:
        validator.normalize_plan(week=WEEK, plan=plan, shifts=SHIFTS)

    assert len(exc.value.failures) == 2
    assert all(f.type == FailureType.INVALID_PLAN for f in exc.value.failures)


def test_window_checks_for_staff():
    validator = RegistrationValidator()

    validator.check_window(current_role=Role.STAFF, week=WEEK, now=FRIDAY_MORNING)
    with pytest.raises(RegistrationWindowError):
        validator.check_window(current_role=Role.STAFF, week=WEEK, now=THURSDAY_EVENING)
    with pytest.raises(RegistrationWindowError):
        validator.check_window(current_role=Role.STAFF, week=Week(date(2026, 10, 12)), now=FRIDAY_MORNING)
    with pytest.raises(RegistrationWindowError):
        validator.check_window(current_role=Role.STAFF, week=Week(date(2026, 10, 26)), now=FRIDAY_MORNING)


def test_admin_is_not_bound_by_the_window():
    validator = RegistrationValidator()

    validator.check_window(current_role=Role.ADMIN, week=Week(date(2026, 10, 12)), now=THURSDAY_EVENING)
