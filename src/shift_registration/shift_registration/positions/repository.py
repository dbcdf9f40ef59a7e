from __future__ import annotations

from typing import Protocol, Sequence

from .model import Position


class PositionRepository(Protocol):
    def list_ordered(self) -> Sequence[Position]:
        """All positions sorted by display order, then name."""

        raise NotImplementedError
