"""Domain enumerations for the Engagement Engine.

These enums define the canonical states and names used throughout the system.
They are framework-agnostic (no SQLAlchemy, no FastAPI imports).
"""

import enum


class EngagementState(enum.StrEnum):
    """Lifecycle states of an engagement.

    The ledger only reports the last transition of a transaction; the state is
    derived from it through domain/transitions.py, the one place that maps
    ledger transition names to states.
    """

    INQUIRED = "inquired"
    APPLIED = "applied"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    COMPLETED = "completed"
    REVIEWED_BY_CUSTOMER = "reviewed_by_customer"
    REVIEWED_BY_PROVIDER = "reviewed_by_provider"
    REVIEWED = "reviewed"
    WITHDRAWN = "withdrawn"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES

    @property
    def is_completed_or_later(self) -> bool:
        return self in COMPLETED_OR_LATER


TERMINAL_STATES = frozenset(
    {
        EngagementState.DECLINED,
        EngagementState.REVIEWED,
        EngagementState.WITHDRAWN,
        EngagementState.CANCELLED,
    }
)

COMPLETED_OR_LATER = frozenset(
    {
        EngagementState.COMPLETED,
        EngagementState.REVIEWED_BY_CUSTOMER,
        EngagementState.REVIEWED_BY_PROVIDER,
        EngagementState.REVIEWED,
    }
)

# States in which the secure workspace may open (gates permitting)
WORKSPACE_STATES = frozenset({EngagementState.ACCEPTED}) | COMPLETED_OR_LATER


class TransitionName(enum.StrEnum):
    """Engine-level transition names requested by callers.

    A single name can map to several ledger transitions (e.g. ``review``
    becomes ``transition/review-1-by-customer`` or
    ``transition/review-2-by-provider`` depending on state and actor).
    """

    APPLY = "apply"
    ACCEPT = "accept"
    DECLINE = "decline"
    WITHDRAW = "withdraw"
    CANCEL = "cancel"
    MARK_COMPLETED = "mark-completed"
    REVIEW = "review"
    EXPIRE_REVIEW_PERIOD = "expire-review-period"


class ActorRole(enum.StrEnum):
    """Who is asking. Customer = student, provider = corporate partner."""

    CUSTOMER = "customer"
    PROVIDER = "provider"
    ADMIN = "admin"
    SYSTEM = "system"


class EscrowStatus(enum.StrEnum):
    NONE = "none"
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REVOKED = "revoked"


class NdaStatus(enum.StrEnum):
    NOT_REQUESTED = "not_requested"
    REQUESTED = "requested"
    PARTIALLY_SIGNED = "partially_signed"
    FULLY_SIGNED = "fully_signed"


class GateName(enum.StrEnum):
    ESCROW = "escrow"
    NDA = "nda"
    ASSESSMENT = "assessment"


class EventType(enum.StrEnum):
    """Types of audit events recorded by the emitter.

    Every committed transition and every gate-affecting write produces
    exactly one event.
    """

    # Lifecycle
    TRANSITION_COMMITTED = "TRANSITION_COMMITTED"

    # Escrow gate
    ESCROW_OPENED = "ESCROW_OPENED"
    DEPOSIT_CONFIRMED = "DEPOSIT_CONFIRMED"
    DEPOSIT_REVOKED = "DEPOSIT_REVOKED"
    WORK_HOLD_CLEARED = "WORK_HOLD_CLEARED"
    WORK_HOLD_REINSTATED = "WORK_HOLD_REINSTATED"

    # NDA gate
    NDA_REQUESTED = "NDA_REQUESTED"
    NDA_SIGNED = "NDA_SIGNED"
    NDA_FULLY_SIGNED = "NDA_FULLY_SIGNED"

    # Assessment gate
    ASSESSMENT_SUBMITTED = "ASSESSMENT_SUBMITTED"
