"""Transition Service - validates and commits engagement lifecycle transitions.

This is the application layer that coordinates between:
    - Domain transition table + state machine (what is legal, for whom)
    - Gate evaluators (guards, read fresh, never from the workspace cache)
    - The ledger (the only place state is written)
    - The workspace cache, escrow/NDA services and the emitter (post-commit)

Both REST routes and simulation.py call into this service, so it is the
single source of truth for lifecycle rules.

Idempotence: a re-submitted transition whose ledger name is already the
engagement's ``last_transition`` is answered from the ledger without a second
commit or a second event. If a different caller committed while this one
was waiting for the engagement's lock, that answer is refused with
ConcurrencyConflictError instead, so two concurrent identical requests can
never both report success.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from statemachine.exceptions import TransitionNotAllowed

from engagement_engine.domain.enums import ActorRole, EventType, GateName, TransitionName
from engagement_engine.domain.exceptions import (
    ConcurrencyConflictError,
    GateBlockedError,
    InvalidTransitionError,
    UnauthorizedError,
    VersionConflictError,
)
from engagement_engine.domain.models import (
    EngagementEvent,
    EngagementStatus,
    TransitionResult,
)
from engagement_engine.domain.state_machine import next_state
from engagement_engine.domain.transitions import (
    allowed_transitions,
    edges_from,
    is_party_role,
    replay_names,
    resolve,
    roles_for,
)
from engagement_engine.logging_config import engagement_context, get_logger

if TYPE_CHECKING:
    from engagement_engine.domain.models import Engagement
    from engagement_engine.domain.ports import LedgerClient
    from engagement_engine.domain.transitions import Edge
    from engagement_engine.infrastructure.retry import RetryPolicy
    from engagement_engine.services.emitter import AuditEmitter
    from engagement_engine.services.escrow_service import EscrowService
    from engagement_engine.services.gates import AssessmentGate, EscrowGate, NdaGate
    from engagement_engine.services.locks import EngagementLocks
    from engagement_engine.services.nda_service import NdaService
    from engagement_engine.services.workspace import WorkspaceAccessController

logger = get_logger(__name__)


class TransitionService:
    """Manages the engagement lifecycle."""

    def __init__(
        self,
        ledger: LedgerClient,
        ledger_retry: RetryPolicy,
        escrow_gate: EscrowGate,
        nda_gate: NdaGate,
        assessment_gate: AssessmentGate,
        locks: EngagementLocks,
        workspace: WorkspaceAccessController,
        emitter: AuditEmitter,
        escrow_service: EscrowService,
        nda_service: NdaService,
    ) -> None:
        self._ledger = ledger
        self._ledger_retry = ledger_retry
        self._gates = {
            GateName.ESCROW: escrow_gate,
            GateName.NDA: nda_gate,
            GateName.ASSESSMENT: assessment_gate,
        }
        self._locks = locks
        self._workspace = workspace
        self._emitter = emitter
        self._escrow_service = escrow_service
        self._nda_service = nda_service

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def authorize_viewer(self, engagement_id: str, actor_role: str, actor_id: str) -> Engagement:
        """Allow reads by the engagement's own parties and by admin/system actors.

        Raises:
            UnauthorizedError: The actor is a customer or provider of some other engagement.
        """
        role = ActorRole(actor_role)
        engagement = await self._fetch(engagement_id)
        if not self._is_actor_party(engagement, role, actor_id):
            logger.info(
                "engagement.read_denied",
                engagement_id=engagement_id,
                actor_role=role.value,
                actor_id=actor_id,
            )
            raise UnauthorizedError(role.value, "view-engagement", reason="not_a_party")
        return engagement

    async def get_status(self, engagement_id: str) -> EngagementStatus:
        engagement = await self._fetch(engagement_id)
        gates = tuple([await gate.evaluate_for(engagement) for gate in self._gates.values()])
        return EngagementStatus(
            engagement=engagement,
            allowed_transitions=allowed_transitions(engagement.state),
            gates=gates,
        )

    # ------------------------------------------------------------------
    # apply_transition
    # ------------------------------------------------------------------

    async def apply_transition(
        self,
        engagement_id: str,
        transition_name: str,
        actor_role: str,
        actor_id: str,
    ) -> TransitionResult:
        """Validate and commit one transition.

        Raises:
            InvalidTransitionError: No such edge from the current state.
            UnauthorizedError: Role or identity not allowed.
            GateBlockedError: A guard gate failed.
            ConcurrencyConflictError: Lost a race to another commit.
            TransientError: The ledger stayed unavailable through all retries.
        """
        role = ActorRole(actor_role)

        with engagement_context(engagement_id, transition=transition_name, actor_role=role.value):
            async with self._locks.hold(engagement_id) as handle:
                engagement = await self._fetch(engagement_id)

                replay = self._replay(engagement, transition_name, role, actor_id)
                if replay is not None:
                    if handle.raced:
                        logger.warning("engagement.replay_refused_after_race")
                        raise ConcurrencyConflictError(engagement_id)
                    logger.info("engagement.transition_replayed", state=engagement.state.value)
                    return replay

                edge = await self._validate(engagement, transition_name, role, actor_id)
                try:
                    committed = await self._commit(engagement, edge)
                except VersionConflictError:
                    logger.warning("engagement.version_conflict", version=engagement.version)
                    fresh = await self._fetch(engagement_id)
                    if self._is_own_commit(engagement, fresh, edge):
                        # An earlier attempt landed but its response was lost
                        logger.warning("engagement.commit_recovered", version=fresh.version)
                        committed = fresh
                    else:
                        # Another process moved the ledger; re-evaluate once on fresh state
                        engagement = fresh
                        edge = await self._validate(engagement, transition_name, role, actor_id)
                        try:
                            committed = await self._commit(engagement, edge)
                        except VersionConflictError as exc:
                            raise ConcurrencyConflictError(engagement_id) from exc
                handle.mark_committed()

                await self._after_commit(engagement, committed, edge, role, actor_id)

        logger.info(
            "engagement.transition_committed",
            engagement_id=engagement_id,
            ledger_transition=edge.ledger_name,
            previous_state=engagement.state.value,
            state=committed.state.value,
            version=committed.version,
        )
        return TransitionResult(
            engagement_id=engagement_id,
            transition=transition_name,
            ledger_transition=edge.ledger_name,
            previous_state=engagement.state,
            state=committed.state,
            committed=True,
        )

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _fetch(self, engagement_id: str) -> Engagement:
        return await self._ledger_retry.run(self._ledger.get_transaction, engagement_id)

    def _replay(
        self, engagement: Engagement, transition_name: str, role: ActorRole, actor_id: str
    ) -> TransitionResult | None:
        """Answer a re-submission from ``last_transition``, if it is one."""
        if engagement.state.is_terminal:
            return None
        if engagement.last_transition not in replay_names(transition_name, role):
            return None
        if not self._is_actor_party(engagement, role, actor_id):
            return None
        return TransitionResult(
            engagement_id=engagement.id,
            transition=transition_name,
            ledger_transition=engagement.last_transition,
            previous_state=engagement.state,
            state=engagement.state,
            committed=False,
        )

    async def _validate(
        self, engagement: Engagement, transition_name: str, role: ActorRole, actor_id: str
    ) -> Edge:
        # (state, transition) decides validity before any role is considered
        if not edges_from(engagement.state, transition_name):
            raise InvalidTransitionError(engagement.state.value, transition_name)
        if role not in roles_for(transition_name):
            raise UnauthorizedError(role.value, transition_name)
        if not self._is_actor_party(engagement, role, actor_id):
            raise UnauthorizedError(role.value, transition_name, reason="not_a_party")

        edge = resolve(engagement.state, transition_name, role)
        try:
            next_state(engagement.state.value, edge.event)
        except TransitionNotAllowed as exc:
            raise InvalidTransitionError(engagement.state.value, transition_name) from exc

        for gate_name in edge.guards:
            result = await self._gates[gate_name].evaluate_for(engagement)
            if not result.passed:
                logger.info("engagement.gate_blocked", gate=gate_name.value, reason=result.reason)
                raise GateBlockedError(gate_name.value, result.reason or "blocked")
        return edge

    async def _commit(self, engagement: Engagement, edge: Edge) -> Engagement:
        return await self._ledger_retry.run(
            self._ledger.transition, engagement.id, edge.ledger_name, engagement.version
        )

    async def _after_commit(
        self,
        before: Engagement,
        after: Engagement,
        edge: Edge,
        role: ActorRole,
        actor_id: str,
    ) -> None:
        self._workspace.invalidate(after.id)

        if edge.transition == TransitionName.APPLY and after.requires_deposit:
            try:
                await self._escrow_service.open_hold(after, role.value, actor_id)
            except Exception:
                logger.exception("engagement.escrow_open_failed")

        if edge.transition == TransitionName.ACCEPT and after.requires_nda:
            try:
                await self._nda_service.ensure_requested(after, ActorRole.SYSTEM.value, actor_id)
            except Exception:
                logger.exception("engagement.nda_request_failed")

        self._emitter.emit(
            EngagementEvent(
                engagement_id=after.id,
                event_type=EventType.TRANSITION_COMMITTED,
                name=edge.ledger_name,
                actor_role=role.value,
                actor_id=actor_id,
                before=before.state.value,
                after=after.state.value,
                metadata={"transition": edge.transition.value, "version": after.version},
            )
        )

    @staticmethod
    def _is_own_commit(before: Engagement, fresh: Engagement, edge: Edge) -> bool:
        """True when the ledger holds exactly one commit past ``before``, and it is ``edge``."""
        return fresh.last_transition == edge.ledger_name and fresh.version == before.version + 1

    @staticmethod
    def _is_actor_party(engagement: Engagement, role: ActorRole, actor_id: str) -> bool:
        if is_party_role(role):
            return engagement.party_id(role) == actor_id
        return True
