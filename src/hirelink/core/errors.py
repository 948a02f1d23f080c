"""
Error taxonomy for the marketplace core.

Every error raised by a state machine derives from ``HireLinkError`` and
carries a stable ``kind`` (rendered into the API error envelope) and the HTTP
status the API layer answers with.
"""

from typing import Any, Dict, Optional


class HireLinkError(Exception):
    """Base exception for all business-rule errors."""

    kind = "HireLinkError"
    http_status = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the ``{kind, message}`` envelope."""
        payload: Dict[str, Any] = {"kind": self.kind, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(HireLinkError):
    """Malformed input."""

    kind = "ValidationError"
    http_status = 422

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}", details={"field": field})


class AuthenticationError(HireLinkError):
    """Missing, malformed or expired bearer credential."""

    kind = "AuthenticationError"
    http_status = 401


class AuthorizationError(HireLinkError):
    """Caller has the wrong role or does not own the record."""

    kind = "AuthorizationError"
    http_status = 403


class NotFoundError(HireLinkError):
    """Requested record does not exist."""

    kind = "NotFoundError"
    http_status = 404

    def __init__(self, resource_type: str, identifier: str):
        self.resource_type = resource_type
        self.identifier = identifier
        super().__init__(
            f"{resource_type} not found: {identifier}",
            details={"resource_type": resource_type, "id": identifier},
        )


class PreconditionFailed(HireLinkError):
    """A required prior state is absent."""

    kind = "PreconditionFailed"
    http_status = 412


class DuplicateError(HireLinkError):
    """A second application or link request for the same pair."""

    kind = "DuplicateError"
    http_status = 409


class Conflict(HireLinkError):
    """Version or state mismatch caused by a concurrent writer."""

    kind = "Conflict"
    http_status = 409


class StaleRound(Conflict):
    """Round update addressed a round the application is no longer on."""

    kind = "StaleRound"

    def __init__(self, expected_round: int, current_round: int):
        self.expected_round = expected_round
        self.current_round = current_round
        super().__init__(
            f"Round {expected_round} is stale; application is on round {current_round}",
            details={"round_number": expected_round, "current_round": current_round},
        )


class TerminalStateError(HireLinkError):
    """Action attempted on a record in a terminal status."""

    kind = "TerminalStateError"
    http_status = 409


__all__ = [
    "HireLinkError",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "PreconditionFailed",
    "DuplicateError",
    "Conflict",
    "StaleRound",
    "TerminalStateError",
]
