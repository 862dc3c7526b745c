"""NDA Service - e-signature requests and signatures for engagement NDAs.

Both parties (provider first, then customer, in any order) sign one request.
Signatures only move forward: nobody can un-sign and nobody signs twice.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from engagement_engine.domain.enums import (
    COMPLETED_OR_LATER,
    ActorRole,
    EngagementState,
    EventType,
    NdaStatus,
)
from engagement_engine.domain.exceptions import NdaSignatureError, UnauthorizedError
from engagement_engine.domain.models import EngagementEvent, nda_status, utcnow
from engagement_engine.logging_config import engagement_context, get_logger

if TYPE_CHECKING:
    from engagement_engine.domain.models import Engagement, NdaSignatureRequest
    from engagement_engine.domain.ports import LedgerClient, NdaClient
    from engagement_engine.infrastructure.retry import RetryPolicy
    from engagement_engine.services.emitter import AuditEmitter
    from engagement_engine.services.locks import EngagementLocks
    from engagement_engine.services.workspace import WorkspaceAccessController

logger = get_logger(__name__)

SIGNER_ROLES: tuple[ActorRole, ...] = (ActorRole.PROVIDER, ActorRole.CUSTOMER)
REQUESTER_ROLES = frozenset({ActorRole.PROVIDER, ActorRole.ADMIN, ActorRole.SYSTEM})

# An NDA can be requested from application onwards
REQUESTABLE_STATES = frozenset({EngagementState.APPLIED, EngagementState.ACCEPTED}) | COMPLETED_OR_LATER


class NdaService:
    def __init__(
        self,
        ledger: LedgerClient,
        client: NdaClient,
        locks: EngagementLocks,
        workspace: WorkspaceAccessController,
        emitter: AuditEmitter,
        ledger_retry: RetryPolicy,
        nda_retry: RetryPolicy,
        document_id: str,
    ) -> None:
        self._ledger = ledger
        self._client = client
        self._locks = locks
        self._workspace = workspace
        self._emitter = emitter
        self._ledger_retry = ledger_retry
        self._nda_retry = nda_retry
        self._document_id = document_id

    async def get_signature_status(self, engagement_id: str) -> tuple[NdaStatus, NdaSignatureRequest | None]:
        await self._ledger_retry.run(self._ledger.get_transaction, engagement_id)
        request = await self._nda_retry.run(self._client.get_request, engagement_id)
        return nda_status(request), request

    async def request_signature(
        self, engagement_id: str, actor_role: str, actor_id: str
    ) -> NdaSignatureRequest:
        """Open the signature request. Idempotent once a request exists."""
        role = ActorRole(actor_role)
        if role not in REQUESTER_ROLES:
            raise UnauthorizedError(actor_role=role.value, action="request-nda")

        with engagement_context(engagement_id, action="request-nda"):
            async with self._locks.hold(engagement_id):
                engagement = await self._ledger_retry.run(self._ledger.get_transaction, engagement_id)
                if role == ActorRole.PROVIDER and engagement.provider_id != actor_id:
                    raise UnauthorizedError(role.value, "request-nda", reason="not_a_party")
                return await self.ensure_requested(engagement, role.value, actor_id)

    async def ensure_requested(
        self, engagement: Engagement, actor_role: str, actor_id: str
    ) -> NdaSignatureRequest:
        """Create the request if missing. Caller holds the engagement lock."""
        if not engagement.requires_nda:
            raise NdaSignatureError(engagement.id, "Engagement does not require an NDA")
        if engagement.state not in REQUESTABLE_STATES:
            raise NdaSignatureError(
                engagement.id, f"Cannot request an NDA while the engagement is {engagement.state}"
            )

        existing = await self._nda_retry.run(self._client.get_request, engagement.id)
        if existing is not None:
            return existing

        request = await self._nda_retry.run(
            self._client.create_request, engagement.id, self._document_id, SIGNER_ROLES
        )
        self._workspace.invalidate(engagement.id)
        self._emitter.emit(
            EngagementEvent(
                engagement_id=engagement.id,
                event_type=EventType.NDA_REQUESTED,
                name="nda/request",
                actor_role=str(actor_role),
                actor_id=actor_id,
                before=NdaStatus.NOT_REQUESTED.value,
                after=request.status.value,
                metadata={"document_id": request.document_id},
            )
        )
        logger.info("nda.requested", engagement_id=engagement.id, document_id=request.document_id)
        return request

    async def sign(
        self,
        engagement_id: str,
        signer_role: str,
        signature_data: dict[str, Any],
        actor_role: str,
        actor_id: str,
    ) -> NdaSignatureRequest:
        """Record one party's signature.

        Raises:
            UnauthorizedError: The actor is not the signing party.
            NdaSignatureError: No open request, already signed, or not agreed.
        """
        role = ActorRole(signer_role)
        if role not in SIGNER_ROLES or actor_role != role:
            raise UnauthorizedError(actor_role=str(actor_role), action="sign-nda", reason="not_the_signer")
        if signature_data.get("agreed") is not True:
            raise NdaSignatureError(engagement_id, "Signature must confirm agreement to the NDA")

        with engagement_context(engagement_id, action="sign-nda", signer_role=role.value):
            async with self._locks.hold(engagement_id):
                engagement = await self._ledger_retry.run(self._ledger.get_transaction, engagement_id)
                if engagement.party_id(role) != actor_id:
                    raise UnauthorizedError(role.value, "sign-nda", reason="not_a_party")

                request = await self._nda_retry.run(self._client.get_request, engagement_id)
                if request is None:
                    raise NdaSignatureError(engagement_id, "No NDA signature request is open")
                signer = request.signer(role)
                if signer is None:
                    raise NdaSignatureError(engagement_id, f"{role.value} is not a signer of this NDA")
                if signer.signed:
                    raise NdaSignatureError(engagement_id, f"{role.value} has already signed the NDA")

                signed_at: datetime = utcnow()
                updated = await self._nda_retry.run(
                    self._client.record_signature, engagement_id, role, signature_data, signed_at
                )
                fully_signed = updated.status == NdaStatus.FULLY_SIGNED
                self._workspace.invalidate(engagement_id)
                self._emitter.emit(
                    EngagementEvent(
                        engagement_id=engagement_id,
                        event_type=EventType.NDA_FULLY_SIGNED if fully_signed else EventType.NDA_SIGNED,
                        name="nda/sign",
                        actor_role=role.value,
                        actor_id=actor_id,
                        before=request.status.value,
                        after=updated.status.value,
                        metadata={"signer_role": role.value, "document_id": updated.document_id},
                    )
                )

        logger.info(
            "nda.signed",
            engagement_id=engagement_id,
            signer_role=role.value,
            status=updated.status.value,
        )
        return updated
