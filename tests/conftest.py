from __future__ import annotations

import pytest

from src.shift_registration.shift_registration.container import build_services
from src.shift_registration.shift_registration.core.enums import Role, ScheduleType

from tests.fakes import (
    FRIDAY_MORNING,
    InMemoryPositions,
    InMemoryRegistrations,
    InMemorySettings,
    InMemoryShifts,
    InMemoryUsers,
    make_user,
)


@pytest.fixture
def store():
    return InMemoryRegistrations(lock_timeout=2)


@pytest.fixture
def users():
    return InMemoryUsers(
        [
            make_user(1, role=Role.ADMIN, position_id=None, schedule_type=ScheduleType.BOTH_SHIFTS, name="Admin"),
            make_user(2, name="An"),
            make_user(3, name="Binh"),
            make_user(4, schedule_type=ScheduleType.BOTH_SHIFTS, name="Chi"),
            make_user(5, schedule_type=ScheduleType.AFTERNOON_ONLY, position_id=None, name="Dung"),
        ]
    )


@pytest.fixture
def settings():
    return InMemorySettings()


@pytest.fixture
def container(store, users, settings):
    return build_services(
        registrations=store,
        users=users,
        shifts=InMemoryShifts(),
        positions=InMemoryPositions(),
        settings=settings,
        clock=lambda: FRIDAY_MORNING,
    )
