from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import WorkShift


class ShiftRepository(Protocol):
    def list_all(self) -> Sequence[WorkShift]:
        raise NotImplementedError

    def get_by_id(self, shift_id: int) -> Optional[WorkShift]:
        raise NotImplementedError
