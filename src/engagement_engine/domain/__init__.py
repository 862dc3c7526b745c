"""Domain layer - pure business logic with zero framework dependencies."""

from engagement_engine.domain.enums import (
    ActorRole,
    EngagementState,
    EscrowStatus,
    EventType,
    GateName,
    NdaStatus,
    TransitionName,
)
from engagement_engine.domain.exceptions import (
    ConcurrencyConflictError,
    EngagementError,
    EngagementNotFoundError,
    GateBlockedError,
    InvalidTransitionError,
    TransientError,
    UnauthorizedError,
)
from engagement_engine.domain.models import (
    Assessment,
    Engagement,
    EngagementEvent,
    EscrowHold,
    GateResult,
    NdaSignatureRequest,
    TransitionResult,
    WorkspaceAccess,
)
from engagement_engine.domain.state_machine import EngagementStateMachine, next_state

__all__ = [
    "ActorRole",
    "EngagementState",
    "EscrowStatus",
    "EventType",
    "GateName",
    "NdaStatus",
    "TransitionName",
    "ConcurrencyConflictError",
    "EngagementError",
    "EngagementNotFoundError",
    "GateBlockedError",
    "InvalidTransitionError",
    "TransientError",
    "UnauthorizedError",
    "Assessment",
    "Engagement",
    "EngagementEvent",
    "EscrowHold",
    "GateResult",
    "NdaSignatureRequest",
    "TransitionResult",
    "WorkspaceAccess",
    "EngagementStateMachine",
    "next_state",
]
