"""Typed domain errors shared by the schedule and booking services.

Services raise these instead of ``HTTPException`` so the same operations can
be driven from HTTP routers, the ARQ worker and tests. The HTTP mapping lives
in ``libs.common.error_handler``.
"""

from typing import Any, Optional


class DomainError(Exception):
    """Base class for expected, caller-facing failures."""

    code: str = "domain_error"
    status_code: int = 400
    default_message: str = "Request could not be processed"

    def __init__(self, message: Optional[str] = None, **context: Any):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.code, "detail": self.message}
        payload.update({k: v for k, v in self.context.items() if v is not None})
        return payload


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ValidationFailed(DomainError):
    code = "validation_failed"
    status_code = 422
    default_message = "Invalid input"


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------


class NotFound(DomainError):
    code = "not_found"
    status_code = 404
    default_message = "Resource not found"


# ---------------------------------------------------------------------------
# State conflicts
# ---------------------------------------------------------------------------


class StateConflict(DomainError):
    """The request is well-formed but the current state refuses it."""

    code = "state_conflict"
    status_code = 409
    default_message = "Request conflicts with the current state"


class InvalidTransition(StateConflict):
    code = "invalid_transition"
    default_message = "Registration is no longer in a state that allows this"
