from __future__ import annotations

from datetime import date, datetime

import pytest

from src.shift_registration.shift_registration.container import build_services
from src.shift_registration.shift_registration.core.enums import RegistrationStatus
from src.shift_registration.shift_registration.main import create_app

from tests.fakes import MORNING, NEXT_WEEK, InMemoryPositions, InMemoryShifts, week_days


@pytest.fixture
def client(monkeypatch, container):
    monkeypatch.setenv("APP_ENV", "testing")
    app = create_app(container=container)
    return app.test_client()


def login(client, user_id, role):
    with client.session_transaction() as sess:
        sess["user_id"] = user_id
        sess["role"] = role


def plan_body(weekdays):
    return {
        "week_start": NEXT_WEEK.isoformat(),
        "registrations": [
            {"work_date": d.isoformat(), "work_shift_id": MORNING.shift_id} for d in week_days(NEXT_WEEK, weekdays)
        ],
    }


def test_anonymous_requests_are_rejected(client):
    assert client.get("/shift_registrations/my_registrations").status_code == 401
    assert client.post("/shift_registrations/bulk_create", json=plan_body([0])).status_code == 401


def test_staff_submits_week_plan(client, store):
    login(client, 2, "staff")

    resp = client.post("/shift_registrations/bulk_create", json=plan_body([0, 1, 2, 3]))

    assert resp.status_code == 201
    body = resp.get_json()
    assert body["success_count"] == 4
    assert body["error_count"] == 0
    assert len(store.for_user(2)) == 4


def test_quota_breach_returns_every_failure(client, store):
    login(client, 2, "staff")

    resp = client.post("/shift_registrations/bulk_create", json=plan_body([0, 1]))

    assert resp.status_code == 422
    body = resp.get_json()
    assert body["error"] == "quota_exceeded"
    assert body["success_count"] == 0
    assert body["errors"][0]["type"] == "user_off_limit"
    assert store.rows == {}


def test_malformed_plan_is_a_validation_error(client):
    login(client, 2, "staff")

    resp = client.post(
        "/shift_registrations/bulk_create",
        json={"week_start": NEXT_WEEK.isoformat(), "registrations": [{"work_date": "19/10/2026", "work_shift_id": 1}]},
    )

    assert resp.status_code == 422


def test_my_registrations_splits_current_and_next_week(client):
    login(client, 2, "staff")
    client.post("/shift_registrations/bulk_create", json=plan_body([0, 1, 2, 3]))

    body = client.get("/shift_registrations/my_registrations").get_json()

    assert body["next_week_start"] == "2026-10-19"
    assert body["current_week_start"] == "2026-10-12"
    assert body["can_register_next_week"] is True
    assert len(body["next_week"]) == 4
    assert body["current_week"] == []


def test_staff_cannot_approve(client, store):
    reg = store.seed(user_id=2, work_shift_id=MORNING.shift_id, work_date=NEXT_WEEK)
    login(client, 2, "staff")

    assert client.post(f"/shift_registrations/{reg.registration_id}/approve").status_code == 403


def test_admin_approves_once(client, store):
    reg = store.seed(user_id=2, work_shift_id=MORNING.shift_id, work_date=NEXT_WEEK)
    login(client, 1, "admin")

    first = client.post(f"/shift_registrations/{reg.registration_id}/approve")
    second = client.post(f"/shift_registrations/{reg.registration_id}/approve")

    assert first.status_code == 200
    assert second.status_code == 409
    assert second.get_json()["error"] == "invalid_state"
    assert store.get_by_id(reg.registration_id).status == RegistrationStatus.APPROVED


def test_staff_cancels_own_pending_but_not_approved(client, store):
    pending = [
        store.seed(user_id=2, work_shift_id=MORNING.shift_id, work_date=d) for d in week_days(NEXT_WEEK, [0, 1, 2, 3])
    ]
    approved = store.seed(
        user_id=2, work_shift_id=MORNING.shift_id, work_date=week_days(NEXT_WEEK, [4])[0], status=RegistrationStatus.APPROVED
    )
    login(client, 2, "staff")

    assert client.delete(f"/shift_registrations/{pending[0].registration_id}").status_code == 200
    assert client.delete(f"/shift_registrations/{approved.registration_id}").status_code == 409
    assert store.get_by_id(pending[0].registration_id) is None


def test_cancel_past_the_off_day_cap_is_refused(client, store):
    login(client, 2, "staff")
    client.post("/shift_registrations/bulk_create", json=plan_body([0, 1, 2, 3]))
    monday = store.for_user(2)[0]

    resp = client.delete(f"/shift_registrations/{monday.registration_id}")

    assert resp.status_code == 422
    body = resp.get_json()
    assert body["error"] == "quota_exceeded"
    assert body["errors"][0]["type"] == "user_off_limit"
    assert store.get_by_id(monday.registration_id) is not None


def test_bulk_reject_route(client, store):
    a = store.seed(user_id=2, work_shift_id=MORNING.shift_id, work_date=NEXT_WEEK)
    b = store.seed(user_id=3, work_shift_id=MORNING.shift_id, work_date=NEXT_WEEK)
    login(client, 1, "admin")

    body = client.post(
        "/shift_registrations/bulk_reject", json={"ids": [a.registration_id, b.registration_id], "reason": "no"}
    ).get_json()

    assert body["rejected"] == [a.registration_id]
    assert [e["id"] for e in body["errors"]] == [b.registration_id]


def test_week_schedule_lists_approved_groups(client, store):
    store.seed(user_id=2, work_shift_id=MORNING.shift_id, work_date=NEXT_WEEK, status=RegistrationStatus.APPROVED)
    store.seed(user_id=3, work_shift_id=MORNING.shift_id, work_date=NEXT_WEEK)
    login(client, 2, "staff")

    groups = client.get(f"/shift_registrations/schedule?week_start={NEXT_WEEK.isoformat()}").get_json()

    assert len(groups) == 1
    assert groups[0]["headcount"] == 1
    assert groups[0]["members"][0]["user_id"] == 2


def test_pending_overview_groups_by_user(client, store):
    store.seed(user_id=2, work_shift_id=MORNING.shift_id, work_date=NEXT_WEEK)
    store.seed(user_id=3, work_shift_id=MORNING.shift_id, work_date=NEXT_WEEK)
    login(client, 1, "admin")

    rows = client.get(f"/shift_registrations/pending?week_start={NEXT_WEEK.isoformat()}").get_json()

    assert [r["user_id"] for r in rows] == [2, 3]
    assert rows[0]["full_name"] == "An"


def test_admin_quick_add_and_edit(client, store):
    login(client, 1, "admin")

    created = client.post(
        "/admin/shift_registrations", json={"user_id": 2, "work_shift_id": MORNING.shift_id, "work_date": "2026-10-13"}
    )
    assert created.status_code == 201
    reg_id = created.get_json()["id"]

    edited = client.patch(f"/admin/shift_registrations/{reg_id}", json={"admin_note": "covering"})
    assert edited.status_code == 200
    assert edited.get_json()["admin_note"] == "covering"
    assert edited.get_json()["status"] == "APPROVED"


def test_settings_read_and_update(client, settings):
    login(client, 2, "staff")
    assert client.get("/settings").get_json()["max_user_off_days_per_week"] == 1
    assert client.patch("/settings", json={"max_user_off_days_per_week": 2}).status_code == 403

    login(client, 1, "admin")
    resp = client.patch("/settings", json={"app_setting": {"max_user_off_days_per_week": 2}})

    assert resp.status_code == 200
    assert resp.get_json()["max_user_off_days_per_week"] == 2
    assert settings.values["max_user_off_days_per_week"] == "2"


def test_unknown_setting_is_rejected(client):
    login(client, 1, "admin")

    resp = client.patch("/settings", json={"max_weekly_hours": 40})

    assert resp.status_code == 422


def test_routes_default_to_the_week_after_the_service_clock(monkeypatch, store, users, settings):
    # a Friday well away from the real calendar
    friday = datetime(2025, 1, 3, 9, 0)
    following = date(2025, 1, 6)
    container = build_services(
        registrations=store,
        users=users,
        shifts=InMemoryShifts(),
        positions=InMemoryPositions(),
        settings=settings,
        clock=lambda: friday,
    )
    monkeypatch.setenv("APP_ENV", "testing")
    client = create_app(container=container).test_client()
    login(client, 2, "staff")
    days = week_days(following, [0, 1, 2, 3, 4])

    resp = client.post(
        "/shift_registrations/bulk_create",
        json={"registrations": [{"work_date": d.isoformat(), "work_shift_id": MORNING.shift_id} for d in days]},
    )
    summary = client.get("/shift_registrations/week_summary").get_json()

    assert resp.status_code == 201
    assert [r.work_date for r in store.for_user(2)] == days
    assert summary["week_start"] == following.isoformat()
