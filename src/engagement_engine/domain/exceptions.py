"""Domain exceptions for the Engagement Engine.

These exceptions are framework-agnostic and represent business rule violations
or failures of the external services the engine coordinates. They are caught
and translated to HTTP responses by the API layer's middleware.
"""

from __future__ import annotations


class EngagementError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, code: str = "ENGAGEMENT_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)

    def details(self) -> dict:
        """Structured detail for API responses (beyond code and message)."""
        return {}


class EngagementNotFoundError(EngagementError):
    """Raised when the ledger has no transaction with the given id."""

    def __init__(self, engagement_id: str) -> None:
        super().__init__(
            message=f"Engagement not found: {engagement_id}",
            code="ENGAGEMENT_NOT_FOUND",
        )
        self.engagement_id = engagement_id


# --- Transition errors (terminal, never retried) ---


class InvalidTransitionError(EngagementError):
    """The (state, transition) pair is not in the transition table.

    Example: ``mark-completed`` from ``applied`` (must be accepted first), or
    any transition from a terminal state.
    """

    def __init__(self, current_state: str, transition: str) -> None:
        super().__init__(
            message=f"Invalid transition '{transition}' from state '{current_state}'",
            code="INVALID_TRANSITION",
        )
        self.current_state = current_state
        self.transition = transition

    def details(self) -> dict:
        return {"current_state": self.current_state, "transition": self.transition}


class GateBlockedError(EngagementError):
    """A transition guard failed; the caller must act externally first."""

    def __init__(self, gate: str, reason: str) -> None:
        super().__init__(
            message=f"Blocked by {gate} gate: {reason}",
            code="GATE_BLOCKED",
        )
        self.gate = gate
        self.reason = reason

    def details(self) -> dict:
        return {"gate": self.gate, "reason": self.reason}


class UnauthorizedError(EngagementError):
    """The actor's role (or identity) does not permit the requested action."""

    def __init__(self, actor_role: str, action: str, reason: str = "role_not_allowed") -> None:
        super().__init__(
            message=f"Actor role '{actor_role}' may not perform '{action}' ({reason})",
            code="UNAUTHORIZED",
        )
        self.actor_role = actor_role
        self.action = action
        self.reason = reason

    def details(self) -> dict:
        return {"actor_role": self.actor_role, "action": self.action, "reason": self.reason}


class ConcurrencyConflictError(EngagementError):
    """Another transition on the same engagement won the race."""

    def __init__(self, engagement_id: str) -> None:
        super().__init__(
            message=f"Engagement {engagement_id} was modified concurrently; refresh and retry",
            code="CONCURRENCY_CONFLICT",
        )
        self.engagement_id = engagement_id


# --- External service errors ---


class ExternalServiceError(EngagementError):
    """An external service call failed.

    ``status_code`` is None for network-level failures (connection refused,
    DNS, reset), which are retryable just like 5xx responses.
    """

    def __init__(self, service: str, message: str, status_code: int | None = None) -> None:
        super().__init__(
            message=f"{service} call failed: {message}",
            code="EXTERNAL_SERVICE_ERROR",
        )
        self.service = service
        self.status_code = status_code

    @property
    def is_retryable(self) -> bool:
        return self.status_code is None or self.status_code >= 500

    def details(self) -> dict:
        return {"service": self.service, "status_code": self.status_code}


class VersionConflictError(EngagementError):
    """The ledger rejected a transition because the expected version was stale."""

    def __init__(self, engagement_id: str, expected_version: int) -> None:
        super().__init__(
            message=(
                f"Ledger version conflict on {engagement_id} "
                f"(expected version {expected_version})"
            ),
            code="VERSION_CONFLICT",
        )
        self.engagement_id = engagement_id
        self.expected_version = expected_version


class TransientError(EngagementError):
    """Retries against an external service were exhausted. Try again later."""

    def __init__(self, service: str, attempts: int) -> None:
        super().__init__(
            message=f"{service} is temporarily unavailable; please try again",
            code="TRANSIENT_FAILURE",
        )
        self.service = service
        self.attempts = attempts

    def details(self) -> dict:
        return {"service": self.service, "attempts": self.attempts}


# --- Gate entity errors ---


class EscrowOperationError(EngagementError):
    """An escrow admin operation is not valid for the hold's current status."""

    def __init__(self, engagement_id: str, message: str) -> None:
        super().__init__(message=message, code="ESCROW_OPERATION_INVALID")
        self.engagement_id = engagement_id


class NdaSignatureError(EngagementError):
    """An NDA request/sign operation is not valid right now."""

    def __init__(self, engagement_id: str, message: str) -> None:
        super().__init__(message=message, code="NDA_SIGNATURE_INVALID")
        self.engagement_id = engagement_id


class AssessmentError(EngagementError):
    """Assessment submission rejected (wrong state, duplicate, bad ratings)."""

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message=message, code="ASSESSMENT_INVALID")
        self.errors = errors or []

    def details(self) -> dict:
        return {"errors": self.errors} if self.errors else {}
