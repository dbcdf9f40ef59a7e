from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Position:
    """Job position. ``display_order`` drives how schedule groups are listed."""

    position_id: int
    name: str
    department_id: Optional[int] = None
    level: str = "staff_level"
    display_order: int = 0
