from __future__ import annotations

import logging
from typing import Mapping, Optional

from ..common.validators import require_non_negative_int
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, ValidationError
from .model import LEGACY_KEY_ALIASES, QUOTA_POLICY_KEYS, QuotaPolicy
from .repository import SettingsRepository

logger = logging.getLogger(__name__)


class QuotaPolicyService:
    """Reads and updates the quota policy stored as key/value settings.

    Missing or unparsable keys fall back to ``defaults``. The policy is read
    fresh on every call; callers that need one consistent cap across a batch
    read it once and pass it along.
    """

    def __init__(self, settings: SettingsRepository, defaults: Optional[QuotaPolicy] = None):
        self._settings = settings
        self._defaults = defaults or QuotaPolicy()

    def get_policy(self) -> QuotaPolicy:
        stored = self._settings.get_all()
        values = self._defaults.to_dict()
        for key in QUOTA_POLICY_KEYS:
            raw = stored.get(key)
            if raw is None or str(raw).strip() == "":
                continue
            try:
                values[key] = require_non_negative_int(raw, key)
            except ValidationError:
                logger.warning("Ignoring invalid stored setting %s=%r", key, raw)
        return QuotaPolicy(**values)

    def update_policy(self, *, current_role: Role, changes: Mapping[str, object]) -> QuotaPolicy:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Only administrators can change quota settings")

        changes = {LEGACY_KEY_ALIASES.get(key, key): value for key, value in changes.items()}
        unknown = sorted(set(changes) - set(QUOTA_POLICY_KEYS))
        if unknown:
            raise ValidationError(f"Unknown settings: {', '.join(unknown)}")

        cleaned = {key: require_non_negative_int(value, key) for key, value in changes.items() if value is not None}
        self._settings.upsert_many({key: str(value) for key, value in cleaned.items()})
        logger.info("Quota policy updated: %s", cleaned)
        return self.get_policy()
