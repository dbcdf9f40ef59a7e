from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable, Iterable, List, Optional, Sequence

from ..common.datetime_utils import format_iso_date, now_local
from ..core.constants import DEFAULT_LIST_LIMIT
from ..core.enums import FailureType, RegistrationStatus, Role
from ..core.exceptions import (
    AuthorizationError,
    ConflictError,
    InvalidPlanError,
    NotFoundError,
    StateError,
    ValidationError,
)
from ..positions.repository import PositionRepository
from ..settings.service import QuotaPolicyService
from ..shifts.model import WorkShift
from ..shifts.repository import ShiftRepository
from ..users.model import User
from ..users.repository import UserRepository
from ..weeks.week import Week, current_week_start, next_week_start
from .aggregator import ACTIVE_STATUSES, ScheduleAggregator
from .model import PlanItem, ShiftRegistration, SubmitResult, ValidationFailure
from .repository import RegistrationRepository
from .validator import RegistrationValidator

logger = logging.getLogger(__name__)


class _SubmissionRolledBack(Exception):
    def __init__(self, failures: List[ValidationFailure]):
        super().__init__(f"{len(failures)} row(s) failed to commit")
        self.failures = failures


def user_week_lock(user_id: int, week: Week) -> str:
    return f"shift_reg:user:{int(user_id)}:{week.key}"


def position_week_lock(position_id: int, week: Week) -> str:
    return f"shift_reg:position:{int(position_id)}:{week.key}"


class RegistrationService:
    """User-facing registration use cases: weekly plan submission and views."""

    def __init__(
        self,
        registrations: RegistrationRepository,
        users: UserRepository,
        shifts: ShiftRepository,
        positions: PositionRepository,
        quota: QuotaPolicyService,
        *,
        validator: Optional[RegistrationValidator] = None,
        aggregator: Optional[ScheduleAggregator] = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._registrations = registrations
        self._users = users
        self._shifts = shifts
        self._positions = positions
        self._quota = quota
        self._validator = validator or RegistrationValidator()
        self._aggregator = aggregator or ScheduleAggregator(working_weekdays=self._validator.working_weekdays)
        self._clock = clock

    def _require_user(self, user_id: int) -> User:
        user = self._users.get_by_id(int(user_id))
        if not user:
            raise NotFoundError(f"User {user_id} not found")
        return user

    def available_shifts(self, *, user_id: int) -> Sequence[WorkShift]:
        user = self._require_user(user_id)
        return [s for s in self._shifts.list_all() if s.is_available_to(user.department_id)]

    def get_my_registrations(self, *, user_id: int, now: Optional[datetime] = None) -> dict:
        now = now or self._clock()
        current = Week(current_week_start(now))
        following = current.next()
        regs = self._registrations.list_between(start=current.start, end=following.end, user_ids=[int(user_id)])
        return {
            "current_week": [r for r in regs if current.contains(r.work_date)],
            "next_week": [r for r in regs if following.contains(r.work_date)],
            "current_week_start": current.start,
            "next_week_start": following.start,
            "can_register_next_week": self._validator.is_window_open(now),
        }

    def next_week_start(self, now: Optional[datetime] = None) -> date:
        """Week a plan targets when the caller names none."""

        return next_week_start(now or self._clock())

    def submit_week_plan(
        self,
        *,
        current_role: Role,
        current_user_id: int,
        user_id: int,
        plan: Iterable[PlanItem],
        week_start: Optional[date] = None,
        override_quota: bool = False,
        now: Optional[datetime] = None,
    ) -> SubmitResult:
        """Replace the user's registrations for one week with ``plan``, atomically.

        PENDING rows missing from the plan are removed, APPROVED rows stay
        (they count as covered), new slots are inserted as PENDING. Quota
        breaches raise QuotaExceededError before any write; a failure while
        writing rolls the whole week back and is reported in the result.
        An empty plan is a valid submission: the user is off all week.
        """

        now = now or self._clock()
        user_id = int(user_id)

        if current_role != Role.ADMIN and user_id != int(current_user_id):
            raise AuthorizationError("You can only register shifts for yourself")
        if override_quota and current_role != Role.ADMIN:
            raise AuthorizationError("Only administrators can bypass the quota")

        try:
            week = Week(week_start or self.next_week_start(now))
        except ValueError as exc:
            raise InvalidPlanError(str(exc))

        self._validator.check_window(current_role=current_role, week=week, now=now)

        user = self._require_user(user_id)
        all_shifts = list(self._shifts.list_all())
        catalog = [s for s in all_shifts if s.is_available_to(user.department_id)]
        items = self._validator.normalize_plan(week=week, plan=plan, shifts=catalog)

        return self._replace_week(
            user=user,
            week=week,
            all_shifts=all_shifts,
            plan_for=lambda mine: items,
            override_quota=override_quota,
            actor_id=current_user_id,
            now=now,
        )

    def _replace_week(
        self,
        *,
        user: User,
        week: Week,
        all_shifts: List[WorkShift],
        plan_for: Callable[[List[ShiftRegistration]], List[PlanItem]],
        override_quota: bool,
        actor_id: int,
        now: datetime,
    ) -> SubmitResult:
        """Write the plan ``plan_for`` derives from the user's current rows.

        Everything after the lock is taken sees the same store state: the
        user's own rows, the colleagues' rows and their plan markers.
        """

        user_id = user.user_id
        catalog = [s for s in all_shifts if s.is_available_to(user.department_id)]

        # Read once so every slot in this batch is checked against the same caps.
        policy = self._quota.get_policy()

        lock_names = [user_week_lock(user_id, week)]
        peers: List[User] = []
        if user.position_id is not None and not override_quota:
            lock_names.append(position_week_lock(user.position_id, week))
            peers = [p for p in self._users.list_by_position(user.position_id) if p.user_id != user_id]

        try:
            with self._registrations.transaction(lock_names=lock_names) as tx:
                existing = tx.list_active_between(
                    user_ids=[user_id] + [p.user_id for p in peers], start=week.start, end=week.end
                )
                mine = [r for r in existing if r.user_id == user_id]
                items = plan_for(mine)
                approved_slots = {r.slot for r in mine if r.status == RegistrationStatus.APPROVED}
                pending_by_slot = {r.slot: r for r in mine if r.status == RegistrationStatus.PENDING}
                planned_slots = {i.slot for i in items}

                if not override_quota:
                    planned_peers = (
                        tx.list_planned_user_ids(user_ids=[p.user_id for p in peers], week_start=week.start)
                        if peers
                        else set()
                    )
                    others_off = self._aggregator.off_slot_counts(
                        week=week,
                        peers=peers,
                        registrations=[r for r in existing if r.user_id != user_id],
                        shifts=all_shifts,
                        planned_user_ids=planned_peers,
                    )
                    self._validator.check_quota(
                        user=user,
                        week=week,
                        shifts=catalog,
                        covered=planned_slots | approved_slots,
                        policy=policy,
                        others_off=others_off,
                    )

                tx.mark_plan_submitted(user_id=user_id, week_start=week.start, submitted_at=now)

                stale = [r.registration_id for slot, r in pending_by_slot.items() if slot not in planned_slots]
                removed = tx.delete_ids(stale) if stale else 0

                created = []
                failures: List[ValidationFailure] = []
                for item in items:
                    if item.slot in pending_by_slot or item.slot in approved_slots:
                        continue
                    try:
                        created.append(
                            tx.insert(
                                user_id=user_id,
                                work_shift_id=item.work_shift_id,
                                work_date=item.work_date,
                                status=RegistrationStatus.PENDING,
                                note=item.note,
                            )
                        )
                    except (ConflictError, NotFoundError) as exc:
                        failures.append(
                            ValidationFailure(
                                type=FailureType.COMMIT_FAILED,
                                message=str(exc),
                                work_date=item.work_date,
                                work_shift_id=item.work_shift_id,
                            )
                        )
                if failures:
                    raise _SubmissionRolledBack(failures)
        except _SubmissionRolledBack as exc:
            logger.warning(
                "Week plan for user %s (%s) rolled back: %d row(s) failed", user_id, week.key, len(exc.failures)
            )
            return SubmitResult(success_count=0, error_count=len(exc.failures), errors=exc.failures)
        except ValidationError as exc:
            logger.info("Week plan for user %s (%s) rejected: %d failure(s)", user_id, week.key, len(exc.failures))
            raise

        logger.info(
            "Week plan for user %s (%s) saved by %s: %d created, %d removed",
            user_id,
            week.key,
            actor_id,
            len(created),
            removed,
        )
        return SubmitResult(success_count=len(items), error_count=0, created=created, removed=removed)

    def cancel_registration(
        self,
        *,
        current_role: Role,
        current_user_id: int,
        registration_id: int,
        now: Optional[datetime] = None,
    ) -> None:
        """Self-service removal of the caller's own, not yet approved, registration.

        Dropping a PENDING row resubmits the rest of that week's plan, so it is
        bound by the same registration window and quotas as ``submit_week_plan``.
        REJECTED rows cover nothing and are simply removed.
        """

        now = now or self._clock()
        reg = self._registrations.get_by_id(int(registration_id))
        if not reg:
            raise NotFoundError(f"Registration {registration_id} not found")
        if reg.user_id != int(current_user_id):
            raise AuthorizationError("You can only cancel your own registrations")
        if reg.status == RegistrationStatus.APPROVED:
            raise StateError("Approved registrations can only be changed by an administrator")

        if reg.status == RegistrationStatus.REJECTED:
            if not self._registrations.delete(reg.registration_id):
                raise ConflictError("Registration was changed by someone else, please reload")
            logger.info("User %s removed rejected registration %s", current_user_id, registration_id)
            return

        week = Week.containing(reg.work_date)
        self._validator.check_window(current_role=current_role, week=week, now=now)

        user = self._require_user(reg.user_id)

        def remaining(mine: List[ShiftRegistration]) -> List[PlanItem]:
            if not any(r.registration_id == reg.registration_id and r.status == reg.status for r in mine):
                raise ConflictError("Registration was changed by someone else, please reload")
            return [
                PlanItem(work_date=r.work_date, work_shift_id=r.work_shift_id, note=r.note)
                for r in mine
                if r.status == RegistrationStatus.PENDING and r.registration_id != reg.registration_id
            ]

        self._replace_week(
            user=user,
            week=week,
            all_shifts=list(self._shifts.list_all()),
            plan_for=remaining,
            override_quota=False,
            actor_id=current_user_id,
            now=now,
        )
        logger.info("User %s cancelled registration %s", current_user_id, registration_id)

    def list_registrations(
        self,
        *,
        current_role: Role,
        current_user_id: int,
        week_start: Optional[date] = None,
        status: Optional[RegistrationStatus] = None,
        user_id: Optional[int] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> Sequence[dict]:
        if current_role != Role.ADMIN:
            if user_id is not None and int(user_id) != int(current_user_id):
                raise AuthorizationError("You can only view your own registrations")
            user_id = int(current_user_id)

        if week_start is not None:
            week = Week.containing(week_start)
            start = max(start, week.start) if start else week.start
            end = min(end, week.end) if end else week.end

        return self._registrations.list_rows(status=status, user_id=user_id, start=start, end=end, limit=limit)

    def list_pending(self, *, current_role: Role) -> Sequence[dict]:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Only administrators can review registrations")
        return self._registrations.list_rows(status=RegistrationStatus.PENDING)

    def week_schedule(
        self,
        *,
        week_start: date,
        position_id: Optional[int] = None,
        include_pending: bool = False,
    ) -> List[dict]:
        week = Week.containing(week_start)
        statuses = ACTIVE_STATUSES if include_pending else (RegistrationStatus.APPROVED,)
        regs = self._registrations.list_between(start=week.start, end=week.end, statuses=statuses)
        users = {u.user_id: u for u in self._users.list_by_ids({r.user_id for r in regs})}
        shifts = {s.shift_id: s for s in self._shifts.list_all()}
        groups = self._aggregator.group_by_slot(
            regs,
            users=users,
            shifts=shifts,
            positions=self._positions.list_ordered(),
            position_id=position_id,
            statuses=statuses,
        )
        return [g.to_dict() for g in groups]

    def week_summary_for_user(self, *, user_id: int, week_start: date) -> dict:
        week = Week.containing(week_start)
        regs = self._registrations.list_between(start=week.start, end=week.end, user_ids=[int(user_id)])
        parts = self._aggregator.partition_by_status(regs)
        return {
            "user_id": int(user_id),
            "week_start": format_iso_date(week.start),
            **{status.value.lower(): [r.to_dict() for r in rows] for status, rows in parts.items()},
        }

    def pending_overview(self, *, current_role: Role, week_start: date) -> List[dict]:
        """Pending registrations of one week grouped per user, for bulk review."""

        if current_role != Role.ADMIN:
            raise AuthorizationError("Only administrators can review registrations")
        week = Week.containing(week_start)
        regs = self._registrations.list_between(
            start=week.start, end=week.end, statuses=(RegistrationStatus.PENDING,)
        )
        users = {u.user_id: u for u in self._users.list_by_ids({r.user_id for r in regs})}
        out: List[dict] = []
        for (user_id, start), parts in self._aggregator.group_by_user_week(regs).items():
            user = users.get(user_id)
            out.append(
                {
                    "user_id": user_id,
                    "full_name": user.full_name if user else None,
                    "week_start": format_iso_date(start),
                    "pending": [r.to_dict() for r in parts[RegistrationStatus.PENDING]],
                }
            )
        return out
