from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from .core.constants import DEFAULT_LOCK_TIMEOUT_SECONDS, DEFAULT_REGISTRATION_OPEN_WEEKDAY, DEFAULT_WORKING_WEEKDAYS
from .database.connection import DBConfig, DatabaseConnection
from .positions.mysql_position_repository import MySQLPositionRepository
from .registrations.aggregator import ScheduleAggregator
from .registrations.approval import ApprovalService
from .registrations.mysql_registration_repository import MySQLRegistrationRepository
from .registrations.override import AdminOverrideService
from .registrations.service import RegistrationService
from .registrations.validator import RegistrationValidator
from .settings.model import QuotaPolicy
from .settings.mysql_settings_repository import MySQLSettingsRepository
from .settings.service import QuotaPolicyService
from .shifts.mysql_shift_repository import MySQLShiftRepository
from .users.mysql_user_repository import MySQLUserRepository


@dataclass(frozen=True)
class Container:
    registration_service: RegistrationService
    approval_service: ApprovalService
    override_service: AdminOverrideService
    quota_service: QuotaPolicyService


def build_services(
    *,
    registrations,
    users,
    shifts,
    positions,
    settings,
    quota_defaults: Optional[QuotaPolicy] = None,
    open_weekday: int = DEFAULT_REGISTRATION_OPEN_WEEKDAY,
    working_weekdays: Iterable[int] = DEFAULT_WORKING_WEEKDAYS,
    clock=None,
) -> Container:
    """Wire services on top of any repository implementation."""

    clock_kw = {"clock": clock} if clock else {}
    validator = RegistrationValidator(open_weekday=open_weekday, working_weekdays=working_weekdays)
    aggregator = ScheduleAggregator(working_weekdays=validator.working_weekdays)
    quota_service = QuotaPolicyService(settings, defaults=quota_defaults)

    return Container(
        registration_service=RegistrationService(
            registrations,
            users,
            shifts,
            positions,
            quota_service,
            validator=validator,
            aggregator=aggregator,
            **clock_kw,
        ),
        approval_service=ApprovalService(registrations, **clock_kw),
        override_service=AdminOverrideService(registrations, users, shifts, **clock_kw),
        quota_service=quota_service,
    )


def build_container(*, db_config: dict, settings=None) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_mapping(db_config))

    quota_defaults = QuotaPolicy(
        max_user_off_days_per_week=int(getattr(settings, "DEFAULT_MAX_USER_OFF_DAYS_PER_WEEK", QuotaPolicy.max_user_off_days_per_week)),
        max_user_off_shifts_per_week=int(getattr(settings, "DEFAULT_MAX_USER_OFF_SHIFTS_PER_WEEK", QuotaPolicy.max_user_off_shifts_per_week)),
        max_shift_off_count_per_day_position=int(
            getattr(settings, "DEFAULT_MAX_SHIFT_OFF_COUNT_PER_DAY_POSITION", QuotaPolicy.max_shift_off_count_per_day_position)
        ),
    )

    return build_services(
        registrations=MySQLRegistrationRepository(
            conn, lock_timeout=int(getattr(settings, "REGISTRATION_LOCK_TIMEOUT", DEFAULT_LOCK_TIMEOUT_SECONDS))
        ),
        users=MySQLUserRepository(conn),
        shifts=MySQLShiftRepository(conn),
        positions=MySQLPositionRepository(conn),
        settings=MySQLSettingsRepository(conn),
        quota_defaults=quota_defaults,
        open_weekday=int(getattr(settings, "REGISTRATION_OPEN_WEEKDAY", DEFAULT_REGISTRATION_OPEN_WEEKDAY)),
        working_weekdays=getattr(settings, "WORKING_WEEKDAYS", DEFAULT_WORKING_WEEKDAYS),
    )
