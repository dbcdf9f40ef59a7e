"""Read-side projections over the registration store.

Pure functions over already-loaded rows; the caller decides which statuses
and which transaction the rows come from.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..common.datetime_utils import format_iso_date
from ..core.constants import DEFAULT_WORKING_WEEKDAYS
from ..core.enums import RegistrationStatus
from ..positions.model import Position
from ..shifts.model import WorkShift
from ..users.model import User
from ..weeks.week import Week, week_start_of
from .model import ShiftRegistration
from .obligations import off_slots

ACTIVE_STATUSES = (RegistrationStatus.PENDING, RegistrationStatus.APPROVED)

_UNASSIGNED_ORDER = 1_000_000


@dataclass
class SlotGroup:
    week_start: date
    work_date: date
    shift: WorkShift
    members: List[dict] = field(default_factory=list)

    @property
    def headcount(self) -> int:
        return len(self.members)

    def to_dict(self) -> dict:
        return {
            "week_start": format_iso_date(self.week_start),
            "work_date": format_iso_date(self.work_date),
            "work_shift_id": self.shift.shift_id,
            "shift_name": self.shift.name,
            "start_time": self.shift.start_time.strftime("%H:%M"),
            "end_time": self.shift.end_time.strftime("%H:%M"),
            "headcount": self.headcount,
            "members": list(self.members),
        }


class ScheduleAggregator:
    def __init__(self, *, working_weekdays: Iterable[int] = DEFAULT_WORKING_WEEKDAYS):
        self.working_weekdays = tuple(working_weekdays)

    def group_by_slot(
        self,
        registrations: Iterable[ShiftRegistration],
        *,
        users: Mapping[int, User],
        shifts: Mapping[int, WorkShift],
        positions: Sequence[Position] = (),
        position_id: Optional[int] = None,
        statuses: Iterable[RegistrationStatus] = (RegistrationStatus.APPROVED,),
    ) -> List[SlotGroup]:
        """Group by (week_start, work_date, work_shift_id).

        Groups come out by date and shift start time; members by position
        display order, then name.
        """

        wanted = {RegistrationStatus(s) for s in statuses}
        order = {p.position_id: (p.display_order, p.name) for p in positions}
        names = {p.position_id: p.name for p in positions}
        groups: Dict[Tuple[date, int], SlotGroup] = {}

        for reg in registrations:
            if reg.status not in wanted:
                continue
            user = users.get(reg.user_id)
            shift = shifts.get(reg.work_shift_id)
            if shift is None:
                continue
            user_position = user.position_id if user else None
            if position_id is not None and user_position != position_id:
                continue

            group = groups.get(reg.slot)
            if group is None:
                group = groups[reg.slot] = SlotGroup(
                    week_start=week_start_of(reg.work_date), work_date=reg.work_date, shift=shift
                )
            group.members.append(
                {
                    "registration_id": reg.registration_id,
                    "user_id": reg.user_id,
                    "full_name": user.full_name if user else None,
                    "position_id": user_position,
                    "position_name": names.get(user_position),
                    "status": reg.status.value,
                }
            )

        for group in groups.values():
            group.members.sort(
                key=lambda m: (order.get(m["position_id"], (_UNASSIGNED_ORDER, "")), m["full_name"] or "", m["user_id"])
            )
        return sorted(groups.values(), key=lambda g: (g.work_date, g.shift.start_time, g.shift.shift_id))

    @staticmethod
    def partition_by_status(registrations: Iterable[ShiftRegistration]) -> Dict[RegistrationStatus, List[ShiftRegistration]]:
        parts: Dict[RegistrationStatus, List[ShiftRegistration]] = {s: [] for s in RegistrationStatus}
        for reg in sorted(registrations, key=lambda r: (r.work_date, r.work_shift_id)):
            parts[reg.status].append(reg)
        return parts

    def group_by_user_week(
        self, registrations: Iterable[ShiftRegistration]
    ) -> Dict[Tuple[int, date], Dict[RegistrationStatus, List[ShiftRegistration]]]:
        buckets: Dict[Tuple[int, date], List[ShiftRegistration]] = defaultdict(list)
        for reg in registrations:
            buckets[(reg.user_id, reg.week_start)].append(reg)
        return {key: self.partition_by_status(regs) for key, regs in sorted(buckets.items())}

    def off_slot_counts(
        self,
        *,
        week: Week,
        peers: Iterable[User],
        registrations: Iterable[ShiftRegistration],
        shifts: Sequence[WorkShift],
        planned_user_ids: Iterable[int] = (),
    ) -> Counter:
        """Count peers off per (work_date, work_shift_id) for ``week``.

        A peer counts once they have a plan for the week: a submission marker
        in ``planned_user_ids`` (an empty plan means off all week) or at least
        one PENDING or APPROVED row. Silence is not an absence.
        """

        covered: Dict[int, set] = defaultdict(set)
        for reg in registrations:
            if reg.status in ACTIVE_STATUSES and week.contains(reg.work_date):
                covered[reg.user_id].add(reg.slot)

        planned = {int(u) for u in planned_user_ids}
        counts: Counter = Counter()
        for peer in peers:
            slots = covered.get(peer.user_id, set())
            if not slots and peer.user_id not in planned:
                continue
            catalog = [s for s in shifts if s.is_available_to(peer.department_id)]
            for off in off_slots(peer.schedule_type, week, catalog, slots, working_weekdays=self.working_weekdays):
                counts[(off.work_date, off.work_shift_id)] += 1
        return counts
