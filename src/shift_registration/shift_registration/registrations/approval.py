from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Iterable, Optional

from ..common.datetime_utils import now_local
from ..common.validators import optional_text
from ..core.enums import RegistrationStatus, Role
from ..core.exceptions import AuthorizationError, ConflictError, DomainError, NotFoundError, StateError
from .model import BatchResult, ShiftRegistration
from .repository import RegistrationRepository

logger = logging.getLogger(__name__)


class ApprovalService:
    """PENDING -> APPROVED | REJECTED.

    REJECTED is terminal for the row; the natural key becomes free for a new
    PENDING registration. Each transition is a conditional update on the
    expected status, so two administrators acting on the same row cannot both
    win. Bulk operations are best effort, reported per id.
    """

    def __init__(self, registrations: RegistrationRepository, *, clock: Callable[[], datetime] = now_local):
        self._registrations = registrations
        self._clock = clock

    @staticmethod
    def _require_admin(current_role: Role) -> None:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Only administrators can approve or reject registrations")

    def _require_pending(self, registration_id: int) -> ShiftRegistration:
        reg = self._registrations.get_by_id(int(registration_id))
        if not reg:
            raise NotFoundError(f"Registration {registration_id} not found")
        if reg.status != RegistrationStatus.PENDING:
            raise StateError(f"Registration {registration_id} is already {reg.status.value.lower()}")
        return reg

    def _transition(
        self,
        registration_id: int,
        *,
        status: RegistrationStatus,
        approver_id: int,
        reason: Optional[str] = None,
    ) -> None:
        self._require_pending(registration_id)
        ok = self._registrations.decide(
            registration_id=int(registration_id),
            expected_status=RegistrationStatus.PENDING,
            status=status,
            decided_by=int(approver_id),
            decided_at=self._clock(),
            reason=reason,
        )
        if not ok:
            raise ConflictError(f"Registration {registration_id} was decided by someone else")
        logger.info("Registration %s %s by %s", registration_id, status.value, approver_id)

    def approve(self, *, current_role: Role, registration_id: int, approver_id: int) -> None:
        self._require_admin(current_role)
        self._transition(registration_id, status=RegistrationStatus.APPROVED, approver_id=approver_id)

    def reject(self, *, current_role: Role, registration_id: int, approver_id: int, reason: Optional[str] = None) -> None:
        self._require_admin(current_role)
        self._transition(
            registration_id,
            status=RegistrationStatus.REJECTED,
            approver_id=approver_id,
            reason=optional_text(reason),
        )

    def bulk_approve(self, *, current_role: Role, registration_ids: Iterable[int], approver_id: int) -> dict:
        self._require_admin(current_role)
        result = BatchResult()
        for registration_id in registration_ids:
            try:
                self._transition(int(registration_id), status=RegistrationStatus.APPROVED, approver_id=approver_id)
                result.succeeded.append(int(registration_id))
            except DomainError as exc:
                result.add_error(int(registration_id), str(exc))
        logger.info("Bulk approve by %s: %d approved, %d failed", approver_id, len(result.succeeded), len(result.errors))
        return {"approved": result.succeeded, "errors": result.errors}

    def bulk_reject_for_user(
        self,
        *,
        current_role: Role,
        registration_ids: Iterable[int],
        approver_id: int,
        reason: Optional[str] = None,
    ) -> dict:
        """Reject one user's pending registrations for one week.

        The first resolvable id fixes the user and week; ids outside them are
        reported as errors and left untouched.
        """

        self._require_admin(current_role)
        reason = optional_text(reason)
        result = BatchResult()
        owner = None
        for registration_id in registration_ids:
            registration_id = int(registration_id)
            try:
                reg = self._require_pending(registration_id)
                key = (reg.user_id, reg.week_start)
                if owner is None:
                    owner = key
                elif key != owner:
                    raise StateError(f"Registration {registration_id} belongs to another user or week")
                self._transition(
                    registration_id, status=RegistrationStatus.REJECTED, approver_id=approver_id, reason=reason
                )
                result.succeeded.append(registration_id)
            except DomainError as exc:
                result.add_error(registration_id, str(exc))
        logger.info("Bulk reject by %s: %d rejected, %d failed", approver_id, len(result.succeeded), len(result.errors))
        return {"rejected": result.succeeded, "errors": result.errors}
