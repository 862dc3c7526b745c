"""External Service Ports.

Defines the interfaces the engine needs from the services it coordinates.
These are Protocols (structural subtyping) so the HTTP clients and the
in-memory backends don't need to inherit from a base class, they just need
to match the shape.

The domain layer has ZERO imports from httpx, SQLAlchemy, or any transport.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from engagement_engine.domain.enums import ActorRole
from engagement_engine.domain.models import (
    Assessment,
    Engagement,
    EscrowHold,
    NdaSignatureRequest,
)


@runtime_checkable
class LedgerClient(Protocol):
    """The hosted marketplace ledger that owns engagement (transaction) state.

    Implementations:
        - infrastructure/http_clients.py  (HttpLedgerClient)
        - infrastructure/memory.py        (InMemoryLedger)
    """

    async def get_transaction(self, engagement_id: str) -> Engagement:
        """Fetch an engagement.

        Raises:
            EngagementNotFoundError: The ledger has no such transaction.
        """
        ...

    async def transition(
        self, engagement_id: str, ledger_transition: str, expected_version: int
    ) -> Engagement:
        """Commit a transition and return the updated engagement.

        Raises:
            VersionConflictError: ``expected_version`` is stale.
        """
        ...

    async def query_transactions(
        self, provider_id: str | None = None, last_transition: str | None = None
    ) -> list[Engagement]:
        """Engagements matching every filter given (provider, last ledger transition)."""
        ...


@runtime_checkable
class EscrowStore(Protocol):
    async def get_hold(self, engagement_id: str) -> EscrowHold | None: ...

    async def save_hold(self, hold: EscrowHold) -> EscrowHold: ...


@runtime_checkable
class NdaClient(Protocol):
    """E-signature provider for engagement NDAs."""

    async def create_request(
        self, engagement_id: str, document_id: str, signer_roles: tuple[ActorRole, ...]
    ) -> NdaSignatureRequest: ...

    async def get_request(self, engagement_id: str) -> NdaSignatureRequest | None: ...

    async def record_signature(
        self,
        engagement_id: str,
        signer_role: ActorRole,
        signature_data: dict[str, Any],
        signed_at: datetime,
    ) -> NdaSignatureRequest: ...


@runtime_checkable
class AssessmentStore(Protocol):
    async def get_assessment(self, engagement_id: str) -> Assessment | None: ...

    async def save_assessment(self, assessment: Assessment) -> Assessment: ...


@runtime_checkable
class NotificationChannel(Protocol):
    async def notify(self, payload: dict[str, Any]) -> None: ...
