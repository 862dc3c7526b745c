"""In-memory backends for simulation mode, local development and tests.

Each class satisfies the matching Protocol in domain/ports.py. The ledger
behaves like the hosted one where it matters to the engine: it bumps the
version on every commit, rejects stale versions with VersionConflictError
and rejects ledger names that are not legal from the current state.
"""

from __future__ import annotations

import asyncio
import dataclasses
from datetime import datetime
from typing import Any

from engagement_engine.domain.enums import ActorRole
from engagement_engine.domain.exceptions import (
    EngagementNotFoundError,
    ExternalServiceError,
    VersionConflictError,
)
from engagement_engine.domain.models import (
    Assessment,
    Engagement,
    EscrowHold,
    NdaSignatureRequest,
    NdaSigner,
    utcnow,
)
from engagement_engine.domain.transitions import (
    INITIAL_LEDGER_TRANSITION,
    edges_from,
    state_for_last_transition,
)
from engagement_engine.logging_config import get_logger

logger = get_logger(__name__)


class InMemoryLedger:
    """Ledger stand-in holding engagements in a dict."""

    def __init__(self) -> None:
        self._transactions: dict[str, Engagement] = {}
        self.commits: list[tuple[str, str]] = []

    def create_engagement(
        self,
        engagement_id: str,
        customer_id: str,
        provider_id: str,
        listing_id: str = "listing-1",
        requires_deposit: bool = False,
        requires_nda: bool = False,
        last_transition: str = INITIAL_LEDGER_TRANSITION,
    ) -> Engagement:
        """Seed an engagement (the ledger's own ``inquire`` step)."""
        engagement = Engagement(
            id=engagement_id,
            customer_id=customer_id,
            provider_id=provider_id,
            listing_id=listing_id,
            state=state_for_last_transition(last_transition),
            last_transition=last_transition,
            last_transitioned_at=utcnow(),
            requires_deposit=requires_deposit,
            requires_nda=requires_nda,
            version=1,
        )
        self._transactions[engagement_id] = engagement
        return engagement

    async def get_transaction(self, engagement_id: str) -> Engagement:
        try:
            return self._transactions[engagement_id]
        except KeyError:
            raise EngagementNotFoundError(engagement_id) from None

    async def transition(
        self, engagement_id: str, ledger_transition: str, expected_version: int
    ) -> Engagement:
        # Yield like a network round-trip so concurrent callers interleave
        await asyncio.sleep(0)
        current = await self.get_transaction(engagement_id)
        if current.version != expected_version:
            raise VersionConflictError(engagement_id, expected_version)
        if not any(edge.ledger_name == ledger_transition for edge in edges_from(current.state)):
            raise ExternalServiceError(
                "ledger",
                f"transition '{ledger_transition}' not allowed from '{current.state}'",
                status_code=400,
            )
        updated = dataclasses.replace(
            current,
            state=state_for_last_transition(ledger_transition),
            last_transition=ledger_transition,
            last_transitioned_at=utcnow(),
            version=current.version + 1,
        )
        self._transactions[engagement_id] = updated
        self.commits.append((engagement_id, ledger_transition))
        logger.debug(
            "ledger.memory_committed",
            engagement_id=engagement_id,
            transition=ledger_transition,
            version=updated.version,
        )
        return updated

    async def query_transactions(
        self, provider_id: str | None = None, last_transition: str | None = None
    ) -> list[Engagement]:
        return [
            e
            for e in self._transactions.values()
            if (provider_id is None or e.provider_id == provider_id)
            and (last_transition is None or e.last_transition == last_transition)
        ]


class InMemoryEscrowStore:
    def __init__(self) -> None:
        self._holds: dict[str, EscrowHold] = {}

    async def get_hold(self, engagement_id: str) -> EscrowHold | None:
        return self._holds.get(engagement_id)

    async def save_hold(self, hold: EscrowHold) -> EscrowHold:
        self._holds[hold.engagement_id] = hold
        return hold


class InMemoryNdaClient:
    def __init__(self) -> None:
        self._requests: dict[str, NdaSignatureRequest] = {}
        self.signature_data: dict[tuple[str, ActorRole], dict[str, Any]] = {}

    async def create_request(
        self, engagement_id: str, document_id: str, signer_roles: tuple[ActorRole, ...]
    ) -> NdaSignatureRequest:
        request = NdaSignatureRequest(
            engagement_id=engagement_id,
            document_id=document_id,
            signers=tuple(NdaSigner(role) for role in signer_roles),
            requested_at=utcnow(),
        )
        self._requests[engagement_id] = request
        return request

    async def get_request(self, engagement_id: str) -> NdaSignatureRequest | None:
        return self._requests.get(engagement_id)

    async def record_signature(
        self,
        engagement_id: str,
        signer_role: ActorRole,
        signature_data: dict[str, Any],
        signed_at: datetime,
    ) -> NdaSignatureRequest:
        request = self._requests.get(engagement_id)
        if request is None:
            raise ExternalServiceError("nda", f"no signature request for {engagement_id}", 404)
        updated = request.with_signature(signer_role, signed_at)
        self._requests[engagement_id] = updated
        self.signature_data[(engagement_id, signer_role)] = signature_data
        return updated


class InMemoryAssessmentStore:
    def __init__(self) -> None:
        self._assessments: dict[str, Assessment] = {}

    async def get_assessment(self, engagement_id: str) -> Assessment | None:
        return self._assessments.get(engagement_id)

    async def save_assessment(self, assessment: Assessment) -> Assessment:
        self._assessments[assessment.engagement_id] = assessment
        return assessment


class RecordingNotificationChannel:
    """Keeps every payload it is asked to deliver."""

    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []

    async def notify(self, payload: dict[str, Any]) -> None:
        self.sent.append(payload)
