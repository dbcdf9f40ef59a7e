from __future__ import annotations

from typing import Sequence


class DomainError(Exception):
    """Base exception for business rule violations."""

    kind = "domain_error"


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules.

    Batched validation carries every failure in ``failures`` so callers can
    show all violated rules at once.
    """

    kind = "validation_error"

    def __init__(self, message: str, failures: Sequence = ()):
        super().__init__(message)
        self.failures = list(failures)


class RegistrationWindowError(ValidationError):
    """Target week is not open for self-registration."""

    kind = "registration_window"


class InvalidPlanError(ValidationError):
    """A submitted plan references dates or shifts it may not use."""

    kind = "invalid_plan"


class QuotaExceededError(ValidationError):
    """A submitted plan takes more off slots than the quota policy allows."""

    kind = "quota_exceeded"


class ConflictError(DomainError):
    """Natural-key collision, stale update or lock contention. Safe to retry."""

    kind = "conflict"


class StateError(DomainError):
    """Transition not allowed from the registration's current status."""

    kind = "invalid_state"


class NotFoundError(DomainError):
    kind = "not_found"


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    kind = "forbidden"
