"""Canonical transition table.

The single source of truth for:
    * which (state, transition, role) triples are legal,
    * which ledger transition name each one commits,
    * which gates guard it,
    * which state a ledger ``last_transition`` name denotes.

No other module maps ledger names to states. The graph itself is declared in
domain/state_machine.py and every edge below must fire the named event there.
"""

from __future__ import annotations

from dataclasses import dataclass

from engagement_engine.domain.enums import (
    ActorRole,
    EngagementState,
    GateName,
    TransitionName,
)
from engagement_engine.domain.exceptions import InvalidTransitionError, UnauthorizedError

S = EngagementState
T = TransitionName
R = ActorRole

LEDGER_PREFIX = "transition/"
INITIAL_LEDGER_TRANSITION = "transition/inquire"

_PARTIES = frozenset({R.CUSTOMER, R.PROVIDER})
_SYSTEM = frozenset({R.SYSTEM, R.ADMIN})


@dataclass(frozen=True)
class Edge:
    """One row of the transition table."""

    transition: TransitionName
    source: EngagementState
    target: EngagementState
    roles: frozenset[ActorRole]
    ledger_name: str
    event: str
    guards: tuple[GateName, ...] = ()


def _edge(
    transition: TransitionName,
    source: EngagementState,
    target: EngagementState,
    roles: set[ActorRole] | frozenset[ActorRole],
    ledger: str,
    event: str,
    guards: tuple[GateName, ...] = (),
) -> Edge:
    return Edge(transition, source, target, frozenset(roles), LEDGER_PREFIX + ledger, event, guards)


TRANSITION_TABLE: tuple[Edge, ...] = (
    _edge(T.APPLY, S.INQUIRED, S.APPLIED, {R.CUSTOMER}, "apply", "apply"),
    _edge(T.ACCEPT, S.APPLIED, S.ACCEPTED, {R.PROVIDER}, "accept", "accept", (GateName.ESCROW,)),
    _edge(T.DECLINE, S.APPLIED, S.DECLINED, {R.PROVIDER}, "decline", "decline"),
    *(
        _edge(T.WITHDRAW, source, S.WITHDRAWN, {R.CUSTOMER}, "withdraw", "withdraw")
        for source in (S.INQUIRED, S.APPLIED, S.ACCEPTED)
    ),
    *(
        _edge(T.CANCEL, source, S.CANCELLED, {R.ADMIN}, "cancel", "cancel")
        for source in (S.INQUIRED, S.APPLIED, S.ACCEPTED)
    ),
    _edge(
        T.MARK_COMPLETED, S.ACCEPTED, S.COMPLETED, {R.PROVIDER}, "mark-completed", "mark_completed"
    ),
    # First review: the reviewer's role decides the intermediate state
    _edge(
        T.REVIEW, S.COMPLETED, S.REVIEWED_BY_CUSTOMER,
        {R.CUSTOMER}, "review-1-by-customer", "review_by_customer",
    ),
    _edge(
        T.REVIEW, S.COMPLETED, S.REVIEWED_BY_PROVIDER,
        {R.PROVIDER}, "review-1-by-provider", "review_by_provider",
    ),
    # Second review closes the engagement
    _edge(
        T.REVIEW, S.REVIEWED_BY_CUSTOMER, S.REVIEWED,
        {R.PROVIDER}, "review-2-by-provider", "review_by_provider",
    ),
    _edge(
        T.REVIEW, S.REVIEWED_BY_PROVIDER, S.REVIEWED,
        {R.CUSTOMER}, "review-2-by-customer", "review_by_customer",
    ),
    # Review window elapsed
    _edge(
        T.EXPIRE_REVIEW_PERIOD, S.COMPLETED, S.REVIEWED,
        _SYSTEM, "expire-review-period", "expire_review_period",
    ),
    _edge(
        T.EXPIRE_REVIEW_PERIOD, S.REVIEWED_BY_CUSTOMER, S.REVIEWED,
        _SYSTEM, "expire-provider-review-period", "expire_review_period",
    ),
    _edge(
        T.EXPIRE_REVIEW_PERIOD, S.REVIEWED_BY_PROVIDER, S.REVIEWED,
        _SYSTEM, "expire-customer-review-period", "expire_review_period",
    ),
)

_STATE_BY_LEDGER_NAME: dict[str, EngagementState] = {
    INITIAL_LEDGER_TRANSITION: S.INQUIRED,
    **{edge.ledger_name: edge.target for edge in TRANSITION_TABLE},
}


def edges_from(state: EngagementState, transition: str | None = None) -> list[Edge]:
    """All edges leaving ``state``, optionally for one transition name."""
    return [
        edge
        for edge in TRANSITION_TABLE
        if edge.source == state and (transition is None or edge.transition == transition)
    ]


def resolve(state: EngagementState, transition: str, role: ActorRole) -> Edge:
    """Find the edge ``role`` may take for ``transition`` from ``state``.

    Raises:
        InvalidTransitionError: No edge for (state, transition), including every
            request against a terminal state.
        UnauthorizedError: The edge exists but not for this role.
    """
    candidates = edges_from(state, transition)
    if not candidates:
        raise InvalidTransitionError(current_state=state.value, transition=transition)
    for edge in candidates:
        if role in edge.roles:
            return edge
    raise UnauthorizedError(actor_role=role.value, action=transition)


def roles_for(transition: str) -> frozenset[ActorRole]:
    """Every role that may request ``transition`` from some state."""
    roles: set[ActorRole] = set()
    for edge in TRANSITION_TABLE:
        if edge.transition == transition:
            roles |= edge.roles
    return frozenset(roles)


def replay_names(transition: str, role: ActorRole) -> frozenset[str]:
    """Ledger names that a (transition, role) request could have produced.

    Used to recognise a re-submission of a transition the ledger already holds.
    """
    return frozenset(
        edge.ledger_name
        for edge in TRANSITION_TABLE
        if edge.transition == transition and role in edge.roles
    )


def state_for_last_transition(ledger_name: str) -> EngagementState:
    """Derive the lifecycle state from the ledger's last transition name."""
    try:
        return _STATE_BY_LEDGER_NAME[ledger_name]
    except KeyError:
        raise ValueError(f"Unknown ledger transition '{ledger_name}'") from None


def allowed_transitions(state: EngagementState) -> dict[str, list[str]]:
    """Map each role to the transition names it may request from ``state``."""
    allowed: dict[str, list[str]] = {role.value: [] for role in ActorRole}
    for edge in edges_from(state):
        for role in sorted(edge.roles):
            if edge.transition.value not in allowed[role.value]:
                allowed[role.value].append(edge.transition.value)
    return allowed


def is_party_role(role: ActorRole) -> bool:
    return role in _PARTIES
