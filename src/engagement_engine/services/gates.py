"""Gate evaluators.

Each gate answers one question about an engagement and never mutates
anything. ``check`` is the pure rule; ``evaluate_for`` reads the gate's
entity fresh (through the retry policy) and applies it; ``evaluate`` also
reads the engagement from the ledger first.

A missing entity means "not yet required" unless the engagement's flag
requires it, in which case absence fails the gate.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from engagement_engine.domain.enums import EscrowStatus, GateName, NdaStatus
from engagement_engine.domain.models import GateResult

if TYPE_CHECKING:
    from engagement_engine.domain.models import (
        Assessment,
        Engagement,
        EscrowHold,
        NdaSignatureRequest,
    )
    from engagement_engine.domain.ports import (
        AssessmentStore,
        EscrowStore,
        LedgerClient,
        NdaClient,
    )
    from engagement_engine.infrastructure.retry import RetryPolicy

DEPOSIT_PENDING = "deposit_pending"
DEPOSIT_REVOKED = "deposit_revoked"
WORK_HOLD_ACTIVE = "work_hold_active"
NDA_NOT_REQUESTED = "nda_not_requested"
NDA_SIGNATURES_PENDING = "nda_signatures_pending"
ASSESSMENT_PENDING = "assessment_pending"


class _Gate:
    gate: GateName

    def __init__(self, ledger: LedgerClient, ledger_retry: RetryPolicy, store_retry: RetryPolicy) -> None:
        self._ledger = ledger
        self._ledger_retry = ledger_retry
        self._store_retry = store_retry

    def _pass(self) -> GateResult:
        return GateResult(self.gate, passed=True)

    def _fail(self, reason: str) -> GateResult:
        return GateResult(self.gate, passed=False, reason=reason)

    def applies_to(self, engagement: Engagement) -> bool:
        raise NotImplementedError

    def check(self, engagement: Engagement, entity: Any) -> GateResult:
        raise NotImplementedError

    async def _load(self, engagement_id: str) -> Any:
        raise NotImplementedError

    async def evaluate_for(self, engagement: Engagement) -> GateResult:
        entity = await self._load(engagement.id) if self.applies_to(engagement) else None
        return self.check(engagement, entity)

    async def evaluate(self, engagement_id: str) -> GateResult:
        engagement = await self._ledger_retry.run(self._ledger.get_transaction, engagement_id)
        return await self.evaluate_for(engagement)


class EscrowGate(_Gate):
    """Passes when no deposit is required, or it is confirmed and the work hold cleared."""

    gate = GateName.ESCROW

    def __init__(
        self,
        ledger: LedgerClient,
        store: EscrowStore,
        ledger_retry: RetryPolicy,
        store_retry: RetryPolicy,
    ) -> None:
        super().__init__(ledger, ledger_retry, store_retry)
        self._store = store

    def applies_to(self, engagement: Engagement) -> bool:
        return engagement.requires_deposit

    def check(self, engagement: Engagement, entity: EscrowHold | None) -> GateResult:
        if not engagement.requires_deposit:
            return self._pass()
        if entity is None or entity.status in (EscrowStatus.NONE, EscrowStatus.PENDING):
            return self._fail(DEPOSIT_PENDING)
        if entity.status == EscrowStatus.REVOKED:
            return self._fail(DEPOSIT_REVOKED)
        if entity.hold_active:
            return self._fail(WORK_HOLD_ACTIVE)
        return self._pass()

    async def _load(self, engagement_id: str) -> EscrowHold | None:
        return await self._store_retry.run(self._store.get_hold, engagement_id)


class NdaGate(_Gate):
    """Passes when no NDA is required, or every party has signed."""

    gate = GateName.NDA

    def __init__(
        self,
        ledger: LedgerClient,
        client: NdaClient,
        ledger_retry: RetryPolicy,
        store_retry: RetryPolicy,
    ) -> None:
        super().__init__(ledger, ledger_retry, store_retry)
        self._client = client

    def applies_to(self, engagement: Engagement) -> bool:
        return engagement.requires_nda

    def check(self, engagement: Engagement, entity: NdaSignatureRequest | None) -> GateResult:
        if not engagement.requires_nda:
            return self._pass()
        if entity is None:
            return self._fail(NDA_NOT_REQUESTED)
        if entity.status != NdaStatus.FULLY_SIGNED:
            return self._fail(NDA_SIGNATURES_PENDING)
        return self._pass()

    async def _load(self, engagement_id: str) -> NdaSignatureRequest | None:
        return await self._store_retry.run(self._client.get_request, engagement_id)


class AssessmentGate(_Gate):
    """Reporting only: fails while a completed engagement has no assessment."""

    gate = GateName.ASSESSMENT

    def __init__(
        self,
        ledger: LedgerClient,
        store: AssessmentStore,
        ledger_retry: RetryPolicy,
        store_retry: RetryPolicy,
    ) -> None:
        super().__init__(ledger, ledger_retry, store_retry)
        self._store = store

    def applies_to(self, engagement: Engagement) -> bool:
        return engagement.state.is_completed_or_later

    def check(self, engagement: Engagement, entity: Assessment | None) -> GateResult:
        if engagement.state.is_completed_or_later and entity is None:
            return self._fail(ASSESSMENT_PENDING)
        return self._pass()

    async def _load(self, engagement_id: str) -> Assessment | None:
        return await self._store_retry.run(self._store.get_assessment, engagement_id)
