from __future__ import annotations

from datetime import date, datetime
from typing import ContextManager, Iterable, Optional, Protocol, Sequence, Set

from ..core.enums import RegistrationStatus
from .model import ShiftRegistration


class RegistrationTransaction(Protocol):
    """Reads and writes bound to one store transaction.

    ``insert`` raises ConflictError on a natural-key collision and
    NotFoundError when the user or shift no longer exists.
    """

    def list_active_between(self, *, user_ids: Iterable[int], start: date, end: date) -> Sequence[ShiftRegistration]:
        raise NotImplementedError

    def insert(
        self,
        *,
        user_id: int,
        work_shift_id: int,
        work_date: date,
        status: RegistrationStatus,
        note: Optional[str] = None,
        approved_by: Optional[int] = None,
        approved_at: Optional[datetime] = None,
    ) -> ShiftRegistration:
        raise NotImplementedError

    def delete_ids(self, registration_ids: Iterable[int]) -> int:
        raise NotImplementedError

    def mark_plan_submitted(self, *, user_id: int, week_start: date, submitted_at: datetime) -> None:
        """Record that the user has a plan for the week, even an empty one."""

        raise NotImplementedError

    def list_planned_user_ids(self, *, user_ids: Iterable[int], week_start: date) -> Set[int]:
        raise NotImplementedError


class RegistrationRepository(Protocol):
    def transaction(self, *, lock_names: Sequence[str] = ()) -> ContextManager[RegistrationTransaction]:
        """Open a transaction after acquiring ``lock_names`` in order.

        Commits when the block exits normally, rolls back on any exception.
        """

        raise NotImplementedError

    def get_by_id(self, registration_id: int) -> Optional[ShiftRegistration]:
        raise NotImplementedError

    def list_between(
        self,
        *,
        start: date,
        end: date,
        user_ids: Optional[Iterable[int]] = None,
        statuses: Optional[Iterable[RegistrationStatus]] = None,
    ) -> Sequence[ShiftRegistration]:
        raise NotImplementedError

    def list_rows(
        self,
        *,
        status: Optional[RegistrationStatus] = None,
        user_id: Optional[int] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        limit: int = 500,
    ) -> Sequence[dict]:
        """Return UI rows (joined with user/shift)."""

        raise NotImplementedError

    def create(
        self,
        *,
        user_id: int,
        work_shift_id: int,
        work_date: date,
        status: RegistrationStatus,
        note: Optional[str] = None,
        approved_by: Optional[int] = None,
        approved_at: Optional[datetime] = None,
    ) -> ShiftRegistration:
        raise NotImplementedError

    def decide(
        self,
        *,
        registration_id: int,
        expected_status: RegistrationStatus,
        status: RegistrationStatus,
        decided_by: int,
        decided_at: datetime,
        reason: Optional[str] = None,
    ) -> bool:
        """Conditional transition; False when the row is no longer in ``expected_status``."""

        raise NotImplementedError

    def update(
        self,
        *,
        registration_id: int,
        work_shift_id: int,
        work_date: date,
        note: Optional[str],
        admin_note: Optional[str],
    ) -> None:
        """Overwrite the editable fields. ConflictError on natural-key collision."""

        raise NotImplementedError

    def delete(self, registration_id: int) -> bool:
        raise NotImplementedError
