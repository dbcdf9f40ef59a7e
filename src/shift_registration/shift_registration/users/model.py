from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import Role, ScheduleType


@dataclass(frozen=True)
class User:
    """Domain entity: User.

    Read-only here; accounts are managed by the identity collaborator.
    """

    user_id: int
    full_name: str
    username: str
    role: Role
    department_id: Optional[int] = None
    position_id: Optional[int] = None
    schedule_type: ScheduleType = ScheduleType.BOTH_SHIFTS
    is_active: bool = True
