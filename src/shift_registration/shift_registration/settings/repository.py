from __future__ import annotations

from typing import Dict, Mapping, Protocol


class SettingsRepository(Protocol):
    """Plain key/value application settings."""

    def get_all(self) -> Dict[str, str]:
        raise NotImplementedError

    def upsert_many(self, values: Mapping[str, str]) -> None:
        raise NotImplementedError
