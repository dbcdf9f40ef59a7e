from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable, Iterable, Mapping, Optional

from ..common.datetime_utils import now_local, parse_iso_date
from ..common.validators import optional_text, require_positive_id
from ..core.enums import RegistrationStatus, Role
from ..core.exceptions import AuthorizationError, DomainError, NotFoundError
from ..shifts.repository import ShiftRepository
from ..users.repository import UserRepository
from .model import BatchResult, ShiftRegistration
from .repository import RegistrationRepository

logger = logging.getLogger(__name__)

_UNSET = object()


class AdminOverrideService:
    """Direct corrections to the committed schedule.

    Skips the registration window and every quota check; only the natural-key
    uniqueness and the existence of the referenced user/shift still apply.
    """

    def __init__(
        self,
        registrations: RegistrationRepository,
        users: UserRepository,
        shifts: ShiftRepository,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._registrations = registrations
        self._users = users
        self._shifts = shifts
        self._clock = clock

    @staticmethod
    def _require_admin(current_role: Role) -> None:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Only administrators can override registrations")

    def _require_registration(self, registration_id: int) -> ShiftRegistration:
        reg = self._registrations.get_by_id(int(registration_id))
        if not reg:
            raise NotFoundError(f"Registration {registration_id} not found")
        return reg

    def _require_shift(self, shift_id: int) -> None:
        if not self._shifts.get_by_id(int(shift_id)):
            raise NotFoundError(f"Shift {shift_id} not found")

    def quick_add(
        self,
        *,
        current_role: Role,
        admin_user_id: int,
        user_id: int,
        work_shift_id: int,
        work_date: date,
        note: Optional[str] = None,
    ) -> ShiftRegistration:
        self._require_admin(current_role)
        user_id = require_positive_id(user_id, "user_id")
        work_shift_id = require_positive_id(work_shift_id, "work_shift_id")
        if not self._users.get_by_id(user_id):
            raise NotFoundError(f"User {user_id} not found")
        self._require_shift(work_shift_id)

        reg = self._registrations.create(
            user_id=user_id,
            work_shift_id=work_shift_id,
            work_date=work_date,
            status=RegistrationStatus.APPROVED,
            note=optional_text(note),
            approved_by=int(admin_user_id),
            approved_at=self._clock(),
        )
        logger.info(
            "Admin %s added approved registration %s (user %s, shift %s, %s)",
            admin_user_id,
            reg.registration_id,
            user_id,
            work_shift_id,
            work_date.isoformat(),
        )
        return reg

    def quick_edit(
        self,
        *,
        current_role: Role,
        registration_id: int,
        work_shift_id=_UNSET,
        work_date=_UNSET,
        note=_UNSET,
        admin_note=_UNSET,
    ) -> ShiftRegistration:
        """Edit in place regardless of status. Omitted fields keep their value."""

        self._require_admin(current_role)
        reg = self._require_registration(registration_id)

        new_shift_id = reg.work_shift_id
        if work_shift_id is not _UNSET and work_shift_id is not None:
            new_shift_id = require_positive_id(work_shift_id, "work_shift_id")
            if new_shift_id != reg.work_shift_id:
                self._require_shift(new_shift_id)
        new_date = reg.work_date if work_date is _UNSET or work_date is None else work_date

        self._registrations.update(
            registration_id=reg.registration_id,
            work_shift_id=new_shift_id,
            work_date=new_date,
            note=reg.note if note is _UNSET else optional_text(note),
            admin_note=reg.admin_note if admin_note is _UNSET else optional_text(admin_note),
        )
        logger.info("Admin edited registration %s", reg.registration_id)
        return self._require_registration(reg.registration_id)

    def quick_delete(self, *, current_role: Role, registration_id: int) -> None:
        self._require_admin(current_role)
        if not self._registrations.delete(int(registration_id)):
            raise NotFoundError(f"Registration {registration_id} not found")
        logger.info("Admin deleted registration %s", registration_id)

    def bulk_edit(self, *, current_role: Role, updates: Iterable[Mapping[str, object]]) -> dict:
        """Apply several ``quick_edit`` calls; each row succeeds or fails on its own."""

        self._require_admin(current_role)
        result = BatchResult()
        for update in updates:
            raw_id = update.get("id")
            try:
                registration_id = require_positive_id(raw_id, "id")
                fields = {}
                if update.get("work_shift_id") is not None:
                    fields["work_shift_id"] = update["work_shift_id"]
                if update.get("work_date"):
                    fields["work_date"] = parse_iso_date(str(update["work_date"]))
                for key in ("note", "admin_note"):
                    if key in update:
                        fields[key] = update[key]
                self.quick_edit(current_role=current_role, registration_id=registration_id, **fields)
                result.succeeded.append(registration_id)
            except DomainError as exc:
                result.add_error(raw_id, str(exc))
        return {"updated": result.succeeded, "errors": result.errors}
