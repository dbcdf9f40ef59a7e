from __future__ import annotations

from datetime import date

import pytest

from src.shift_registration.shift_registration.core.enums import RegistrationStatus, Role
from src.shift_registration.shift_registration.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    StateError,
)
from src.shift_registration.shift_registration.registrations.approval import ApprovalService

from tests.fakes import AFTERNOON, FRIDAY_MORNING, InMemoryRegistrations, MORNING, NEXT_WEEK


def make_service(store):
    return ApprovalService(store, clock=lambda: FRIDAY_MORNING)


def test_admin_approves_pending_registration():
    store = InMemoryRegistrations()
    reg = store.seed(user_id=2, work_shift_id=MORNING.shift_id, work_date=NEXT_WEEK)

    make_service(store).approve(current_role=Role.ADMIN, registration_id=reg.registration_id, approver_id=1)

    saved = store.get_by_id(reg.registration_id)
    assert saved.status == RegistrationStatus.APPROVED
    assert saved.approved_by == 1
    assert saved.approved_at == FRIDAY_MORNING


def test_approving_twice_is_a_state_error():
    store = InMemoryRegistrations()
    reg = store.seed(user_id=2, work_shift_id=MORNING.shift_id, work_date=NEXT_WEEK)
    svc = make_service(store)
    svc.approve(current_role=Role.ADMIN, registration_id=reg.registration_id, approver_id=1)

    with pytest.raises(StateError):
        svc.approve(current_role=Role.ADMIN, registration_id=reg.registration_id, approver_id=1)
    with pytest.raises(StateError):
        svc.reject(current_role=Role.ADMIN, registration_id=reg.registration_id, approver_id=1)


def test_staff_cannot_approve():
    store = InMemoryRegistrations()
    reg = store.seed(user_id=2, work_shift_id=MORNING.shift_id, work_date=NEXT_WEEK)

    with pytest.raises(AuthorizationError):
        make_service(store).approve(current_role=Role.STAFF, registration_id=reg.registration_id, approver_id=2)


def test_approving_unknown_registration():
    with pytest.raises(NotFoundError):
        make_service(InMemoryRegistrations()).approve(current_role=Role.ADMIN, registration_id=404, approver_id=1)


def test_reject_records_reason_and_frees_the_slot():
    store = InMemoryRegistrations()
    reg = store.seed(user_id=2, work_shift_id=MORNING.shift_id, work_date=NEXT_WEEK)

    make_service(store).reject(
        current_role=Role.ADMIN, registration_id=reg.registration_id, approver_id=1, reason="  Too many off  "
    )

    saved = store.get_by_id(reg.registration_id)
    assert saved.status == RegistrationStatus.REJECTED
    assert saved.rejected_reason == "Too many off"
    again = store.seed(user_id=2, work_shift_id=MORNING.shift_id, work_date=NEXT_WEEK)
    assert again.status == RegistrationStatus.PENDING


class LosingRaceRegistrations(InMemoryRegistrations):
    """Another administrator decides the row between our read and our update."""

    def decide(self, **kwargs):
        return False


def test_concurrent_decision_is_a_conflict():
    store = LosingRaceRegistrations()
    reg = store.seed(user_id=2, work_shift_id=MORNING.shift_id, work_date=NEXT_WEEK)

    with pytest.raises(ConflictError):
        make_service(store).approve(current_role=Role.ADMIN, registration_id=reg.registration_id, approver_id=1)


def test_bulk_approve_reports_each_failure():
    store = InMemoryRegistrations()
    a = store.seed(user_id=2, work_shift_id=MORNING.shift_id, work_date=NEXT_WEEK)
    b = store.seed(
        user_id=3, work_shift_id=MORNING.shift_id, work_date=NEXT_WEEK, status=RegistrationStatus.APPROVED
    )

    out = make_service(store).bulk_approve(
        current_role=Role.ADMIN, registration_ids=[a.registration_id, b.registration_id, 999], approver_id=1
    )

    assert out["approved"] == [a.registration_id]
    assert [e["id"] for e in out["errors"]] == [b.registration_id, 999]
    assert store.get_by_id(a.registration_id).status == RegistrationStatus.APPROVED


def test_bulk_reject_stays_within_one_user_and_week():
    store = InMemoryRegistrations()
    mine = [
        store.seed(user_id=2, work_shift_id=MORNING.shift_id, work_date=NEXT_WEEK),
        store.seed(user_id=2, work_shift_id=AFTERNOON.shift_id, work_date=NEXT_WEEK),
    ]
    other_user = store.seed(user_id=3, work_shift_id=MORNING.shift_id, work_date=NEXT_WEEK)
    other_week = store.seed(user_id=2, work_shift_id=MORNING.shift_id, work_date=date(2026, 10, 26))
    ids = [r.registration_id for r in mine] + [other_user.registration_id, other_week.registration_id]

    out = make_service(store).bulk_reject_for_user(
        current_role=Role.ADMIN, registration_ids=ids, approver_id=1, reason="Plan does not fit"
    )

    assert out["rejected"] == [r.registration_id for r in mine]
    assert [e["id"] for e in out["errors"]] == [other_user.registration_id, other_week.registration_id]
    assert store.get_by_id(other_user.registration_id).status == RegistrationStatus.PENDING
    assert store.get_by_id(mine[0].registration_id).rejected_reason == "Plan does not fit"
