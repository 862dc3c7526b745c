"""Engagement Lifecycle State Machine Guard.

Uses python-statemachine to declare the legal lifecycle graph. Whatever the
API or a ledger client reports, the engine only moves an engagement along an
edge declared here. Wire-level details (ledger transition names, actor roles,
guards) live in domain/transitions.py; tests keep the two in agreement.

Transition table:
    inquired             -> applied               (apply)
    applied              -> accepted              (accept)
    applied              -> declined              (decline)
    inquired|applied|accepted -> withdrawn        (withdraw)
    inquired|applied|accepted -> cancelled        (cancel)
    accepted             -> completed             (mark_completed)
    completed            -> reviewed_by_customer  (review_by_customer)
    reviewed_by_provider -> reviewed              (review_by_customer)
    completed            -> reviewed_by_provider  (review_by_provider)
    reviewed_by_customer -> reviewed              (review_by_provider)
    completed|reviewed_by_* -> reviewed           (expire_review_period)
"""

from __future__ import annotations

from statemachine import State, StateMachine

from engagement_engine.domain.enums import EngagementState


class EngagementStateMachine(StateMachine):
    """State machine that guards engagement lifecycle transitions.

    Usage:
        sm = EngagementStateMachine(current_state="applied")
        sm.send("accept")
        sm.state  # "accepted"
    """

    # --- States ---
    INQUIRED = State("Inquired", value=EngagementState.INQUIRED.value, initial=True)
    APPLIED = State("Applied", value=EngagementState.APPLIED.value)
    ACCEPTED = State("Accepted", value=EngagementState.ACCEPTED.value)
    COMPLETED = State("Completed", value=EngagementState.COMPLETED.value)
    REVIEWED_BY_CUSTOMER = State(
        "Reviewed by customer", value=EngagementState.REVIEWED_BY_CUSTOMER.value
    )
    REVIEWED_BY_PROVIDER = State(
        "Reviewed by provider", value=EngagementState.REVIEWED_BY_PROVIDER.value
    )
    REVIEWED = State("Reviewed", value=EngagementState.REVIEWED.value, final=True)
    DECLINED = State("Declined", value=EngagementState.DECLINED.value, final=True)
    WITHDRAWN = State("Withdrawn", value=EngagementState.WITHDRAWN.value, final=True)
    CANCELLED = State("Cancelled", value=EngagementState.CANCELLED.value, final=True)

    # --- Events / Transitions ---

    # Application
    apply = INQUIRED.to(APPLIED)
    accept = APPLIED.to(ACCEPTED)
    decline = APPLIED.to(DECLINED)

    # Exits before completion
    withdraw = INQUIRED.to(WITHDRAWN) | APPLIED.to(WITHDRAWN) | ACCEPTED.to(WITHDRAWN)
    cancel = INQUIRED.to(CANCELLED) | APPLIED.to(CANCELLED) | ACCEPTED.to(CANCELLED)

    # Delivery
    mark_completed = ACCEPTED.to(COMPLETED)

    # Reviews (one per party; the second review closes the engagement)
    review_by_customer = COMPLETED.to(REVIEWED_BY_CUSTOMER) | REVIEWED_BY_PROVIDER.to(REVIEWED)
    review_by_provider = COMPLETED.to(REVIEWED_BY_PROVIDER) | REVIEWED_BY_CUSTOMER.to(REVIEWED)
    expire_review_period = (
        COMPLETED.to(REVIEWED)
        | REVIEWED_BY_CUSTOMER.to(REVIEWED)
        | REVIEWED_BY_PROVIDER.to(REVIEWED)
    )

    def __init__(self, current_state: str = EngagementState.INQUIRED.value) -> None:
        """Initialize the state machine at a given lifecycle state.

        Args:
            current_state: An EngagementState value (e.g., "applied").
        """
        valid_values = {s.value for s in self.states}
        if current_state not in valid_values:
            valid = ", ".join(sorted(valid_values))
            raise ValueError(f"Unknown state '{current_state}'. Valid states: {valid}")
        super().__init__(start_value=str(current_state))

    @property
    def state(self) -> str:
        """Return the current state value as a string (matches EngagementState)."""
        return str(self.current_state.value)


def next_state(current_state: str, event: str) -> EngagementState:
    """Fire ``event`` from ``current_state`` and return the resulting state.

    Raises:
        TransitionNotAllowed: If the event is not legal from ``current_state``.
        ValueError: If the state is unknown.
    """
    sm = EngagementStateMachine(current_state=current_state)
    sm.send(event)
    return EngagementState(sm.state)
