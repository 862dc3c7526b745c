"""Escrow Service - admin operations on an engagement's deposit and work hold.

This is the application layer that coordinates between:
    - The escrow store (hold records, through the retry policy)
    - The per-engagement lock shared with transitions
    - The workspace cache (invalidated on every write)
    - The emitter (one gate-change event per write)

Hold lifecycle:
    none/pending --confirm--> confirmed (work hold cleared)
    confirmed    --clear-hold / reinstate-hold--> confirmed (hold cleared / active)
    confirmed    --revoke--> revoked (work hold active again)
    revoked      --confirm--> confirmed
    none/pending/confirmed --clear-all-holds (accepted only)--> confirmed, cleared

Backward moves (revoke, reinstate) never change the engagement's state; they
only block gated operations that come after them.
"""

from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING

from engagement_engine.domain.enums import ActorRole, EngagementState, EscrowStatus, EventType
from engagement_engine.domain.exceptions import EscrowOperationError, UnauthorizedError
from engagement_engine.domain.models import (
    BulkHoldClearResult,
    EngagementDeposit,
    EngagementEvent,
    EscrowHold,
    utcnow,
)
from engagement_engine.logging_config import engagement_context, get_logger

if TYPE_CHECKING:
    from engagement_engine.domain.models import Engagement
    from engagement_engine.domain.ports import EscrowStore, LedgerClient
    from engagement_engine.infrastructure.retry import RetryPolicy
    from engagement_engine.services.emitter import AuditEmitter
    from engagement_engine.services.locks import EngagementLocks
    from engagement_engine.services.workspace import WorkspaceAccessController

logger = get_logger(__name__)

DEFAULT_PAYMENT_METHOD = "offline"
BULK_CLEAR_NOTE = "Bulk clear by admin"
APPLY_TRANSITION = "transition/apply"


class EscrowService:
    """Manages deposit confirmation and the derived work hold."""

    def __init__(
        self,
        ledger: LedgerClient,
        store: EscrowStore,
        locks: EngagementLocks,
        workspace: WorkspaceAccessController,
        emitter: AuditEmitter,
        ledger_retry: RetryPolicy,
        store_retry: RetryPolicy,
    ) -> None:
        self._ledger = ledger
        self._store = store
        self._locks = locks
        self._workspace = workspace
        self._emitter = emitter
        self._ledger_retry = ledger_retry
        self._store_retry = store_retry

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_status(self, engagement_id: str) -> EscrowHold:
        """Current hold; a ``none`` hold when the engagement has none yet."""
        await self._ledger_retry.run(self._ledger.get_transaction, engagement_id)
        hold = await self._store_retry.run(self._store.get_hold, engagement_id)
        return hold if hold is not None else EscrowHold(engagement_id=engagement_id)

    async def list_pending_deposits(self, actor_role: str) -> list[EngagementDeposit]:
        """Applied engagements still waiting for their deposit to be confirmed."""
        self._require_admin(actor_role, "list-pending-deposits")
        engagements = await self._ledger_retry.run(
            self._ledger.query_transactions, last_transition=APPLY_TRANSITION
        )
        pending = []
        for engagement in engagements:
            if not engagement.requires_deposit:
                continue
            hold = await self.get_status(engagement.id)
            if hold.status != EscrowStatus.CONFIRMED:
                pending.append(EngagementDeposit(engagement, hold))
        return pending

    async def list_partner_deposits(self, partner_id: str, actor_role: str) -> list[EngagementDeposit]:
        """Every deposit-requiring engagement where ``partner_id`` is the provider."""
        self._require_admin(actor_role, "list-partner-deposits")
        engagements = await self._ledger_retry.run(
            self._ledger.query_transactions, provider_id=partner_id
        )
        return [
            EngagementDeposit(engagement, await self.get_status(engagement.id))
            for engagement in engagements
            if engagement.requires_deposit
        ]

    # ------------------------------------------------------------------
    # Hold creation (called by the transition service under the lock)
    # ------------------------------------------------------------------

    async def open_hold(self, engagement: Engagement, actor_role: str, actor_id: str) -> EscrowHold:
        """Create the pending hold for a deposit-requiring engagement.

        The caller must already hold the engagement's lock. An existing hold
        is returned unchanged.
        """
        existing = await self._store_retry.run(self._store.get_hold, engagement.id)
        if existing is not None and existing.status != EscrowStatus.NONE:
            return existing
        hold = EscrowHold(
            engagement_id=engagement.id,
            status=EscrowStatus.PENDING,
            payment_method=DEFAULT_PAYMENT_METHOD,
        )
        hold = await self._store_retry.run(self._store.save_hold, hold)
        self._after_write(EventType.ESCROW_OPENED, "escrow/open", existing, hold, actor_role, actor_id)
        logger.info("escrow.hold_opened", engagement_id=engagement.id)
        return hold

    # ------------------------------------------------------------------
    # Admin writes
    # ------------------------------------------------------------------

    async def confirm_deposit(
        self,
        engagement_id: str,
        amount: int | None,
        payment_method: str | None,
        notes: str | None,
        actor_role: str,
        actor_id: str,
    ) -> EscrowHold:
        """Record the deposit as received; this also clears the work hold."""
        self._require_admin(actor_role, "confirm-deposit")
        if amount is not None and amount < 0:
            raise EscrowOperationError(engagement_id, "Deposit amount cannot be negative")

        with engagement_context(engagement_id, action="confirm-deposit"):
            async with self._locks.hold(engagement_id):
                hold = await self._load_for_write(engagement_id)
                if hold.status == EscrowStatus.CONFIRMED:
                    raise EscrowOperationError(engagement_id, "Deposit is already confirmed")
                now = utcnow()
                updated = dataclasses.replace(
                    hold,
                    status=EscrowStatus.CONFIRMED,
                    amount=amount,
                    payment_method=payment_method or DEFAULT_PAYMENT_METHOD,
                    notes=notes or hold.notes,
                    confirmed_by=actor_id,
                    confirmed_at=now,
                    hold_cleared=True,
                    hold_cleared_by=actor_id,
                    hold_cleared_at=now,
                )
                updated = await self._store_retry.run(self._store.save_hold, updated)
                self._after_write(
                    EventType.DEPOSIT_CONFIRMED, "escrow/confirm", hold, updated, actor_role, actor_id
                )

        logger.info(
            "escrow.deposit_confirmed",
            engagement_id=engagement_id,
            amount=amount,
            payment_method=updated.payment_method,
        )
        return updated

    async def revoke_deposit(
        self, engagement_id: str, reason: str, actor_role: str, actor_id: str
    ) -> EscrowHold:
        """Withdraw a confirmation; the work hold becomes active again."""
        self._require_admin(actor_role, "revoke-deposit")
        self._require_reason(engagement_id, reason)

        with engagement_context(engagement_id, action="revoke-deposit"):
            async with self._locks.hold(engagement_id):
                hold = await self._load_for_write(engagement_id)
                if hold.status != EscrowStatus.CONFIRMED:
                    raise EscrowOperationError(
                        engagement_id, f"Cannot revoke a deposit that is {hold.status.value}"
                    )
                updated = dataclasses.replace(
                    hold,
                    status=EscrowStatus.REVOKED,
                    revoked_by=actor_id,
                    revoked_at=utcnow(),
                    revoke_reason=reason,
                    hold_cleared=False,
                )
                updated = await self._store_retry.run(self._store.save_hold, updated)
                self._after_write(
                    EventType.DEPOSIT_REVOKED, "escrow/revoke", hold, updated, actor_role, actor_id,
                    reason=reason,
                )

        logger.warning("escrow.deposit_revoked", engagement_id=engagement_id, reason=reason)
        return updated

    async def clear_hold(
        self, engagement_id: str, notes: str | None, actor_role: str, actor_id: str
    ) -> EscrowHold:
        self._require_admin(actor_role, "clear-hold")

        with engagement_context(engagement_id, action="clear-hold"):
            async with self._locks.hold(engagement_id):
                hold = await self._load_for_write(engagement_id)
                self._require_confirmed(hold, "clear the work hold")
                if hold.hold_cleared:
                    raise EscrowOperationError(engagement_id, "Work hold is already cleared")
                updated = dataclasses.replace(
                    hold,
                    hold_cleared=True,
                    hold_cleared_by=actor_id,
                    hold_cleared_at=utcnow(),
                    notes=notes or hold.notes,
                )
                updated = await self._store_retry.run(self._store.save_hold, updated)
                self._after_write(
                    EventType.WORK_HOLD_CLEARED, "escrow/clear-hold", hold, updated, actor_role, actor_id
                )

        logger.info("escrow.work_hold_cleared", engagement_id=engagement_id)
        return updated

    async def reinstate_hold(
        self, engagement_id: str, reason: str, actor_role: str, actor_id: str
    ) -> EscrowHold:
        self._require_admin(actor_role, "reinstate-hold")
        self._require_reason(engagement_id, reason)

        with engagement_context(engagement_id, action="reinstate-hold"):
            async with self._locks.hold(engagement_id):
                hold = await self._load_for_write(engagement_id)
                self._require_confirmed(hold, "reinstate the work hold")
                if not hold.hold_cleared:
                    raise EscrowOperationError(engagement_id, "Work hold is already active")
                updated = dataclasses.replace(
                    hold,
                    hold_cleared=False,
                    reinstated_by=actor_id,
                    reinstated_at=utcnow(),
                    reinstate_reason=reason,
                )
                updated = await self._store_retry.run(self._store.save_hold, updated)
                self._after_write(
                    EventType.WORK_HOLD_REINSTATED, "escrow/reinstate-hold", hold, updated,
                    actor_role, actor_id, reason=reason,
                )

        logger.warning("escrow.work_hold_reinstated", engagement_id=engagement_id, reason=reason)
        return updated

    async def clear_all_holds_for_partner(
        self, partner_id: str, notes: str | None, actor_role: str, actor_id: str
    ) -> BulkHoldClearResult:
        """Clear the work hold on each of a partner's accepted engagements.

        Used when a partner has paid deposits for all of their projects. An
        unconfirmed deposit is confirmed along the way; revoked deposits are
        left alone. Each engagement is written under its own lock.
        """
        self._require_admin(actor_role, "clear-all-holds")
        engagements = await self._ledger_retry.run(
            self._ledger.query_transactions, provider_id=partner_id
        )

        cleared: list[str] = []
        skipped: dict[str, str] = {}
        for candidate in engagements:
            if not candidate.requires_deposit or candidate.state != EngagementState.ACCEPTED:
                continue
            with engagement_context(candidate.id, action="clear-all-holds"):
                async with self._locks.hold(candidate.id):
                    engagement = await self._ledger_retry.run(
                        self._ledger.get_transaction, candidate.id
                    )
                    if engagement.state != EngagementState.ACCEPTED:
                        skipped[engagement.id] = "not_accepted"
                        continue
                    hold = await self._load_for_write(engagement.id)
                    if hold.status == EscrowStatus.REVOKED:
                        skipped[engagement.id] = "deposit_revoked"
                        continue
                    if hold.status == EscrowStatus.CONFIRMED and hold.hold_cleared:
                        skipped[engagement.id] = "already_cleared"
                        continue

                    now = utcnow()
                    updated = dataclasses.replace(
                        hold,
                        status=EscrowStatus.CONFIRMED,
                        confirmed_by=hold.confirmed_by or actor_id,
                        confirmed_at=hold.confirmed_at or now,
                        hold_cleared=True,
                        hold_cleared_by=actor_id,
                        hold_cleared_at=now,
                        notes=notes or hold.notes or BULK_CLEAR_NOTE,
                    )
                    updated = await self._store_retry.run(self._store.save_hold, updated)
                    self._after_write(
                        EventType.WORK_HOLD_CLEARED, "escrow/clear-all-holds", hold, updated,
                        actor_role, actor_id, bulk=True,
                    )
                    cleared.append(engagement.id)

        logger.info(
            "escrow.partner_holds_cleared",
            partner_id=partner_id,
            cleared=len(cleared),
            skipped=len(skipped),
        )
        return BulkHoldClearResult(provider_id=partner_id, cleared=tuple(cleared), skipped=skipped)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _load_for_write(self, engagement_id: str) -> EscrowHold:
        engagement = await self._ledger_retry.run(self._ledger.get_transaction, engagement_id)
        if not engagement.requires_deposit:
            raise EscrowOperationError(engagement_id, "Engagement does not require a deposit")
        hold = await self._store_retry.run(self._store.get_hold, engagement_id)
        return hold if hold is not None else EscrowHold(engagement_id=engagement_id)

    def _after_write(
        self,
        event_type: EventType,
        name: str,
        before: EscrowHold | None,
        after: EscrowHold,
        actor_role: str,
        actor_id: str,
        **metadata: object,
    ) -> None:
        self._workspace.invalidate(after.engagement_id)
        self._emitter.emit(
            EngagementEvent(
                engagement_id=after.engagement_id,
                event_type=event_type,
                name=name,
                actor_role=str(actor_role),
                actor_id=actor_id,
                before=before.status.value if before is not None else None,
                after=after.status.value,
                metadata={
                    "hold_active": after.hold_active,
                    "amount": after.amount,
                    "payment_method": after.payment_method,
                    **metadata,
                },
            )
        )

    @staticmethod
    def _require_admin(actor_role: str, action: str) -> None:
        if actor_role != ActorRole.ADMIN:
            raise UnauthorizedError(actor_role=str(actor_role), action=action)

    @staticmethod
    def _require_reason(engagement_id: str, reason: str) -> None:
        if not reason or not reason.strip():
            raise EscrowOperationError(engagement_id, "A reason is required")

    @staticmethod
    def _require_confirmed(hold: EscrowHold, action: str) -> None:
        if hold.status != EscrowStatus.CONFIRMED:
            raise EscrowOperationError(
                hold.engagement_id,
                f"Deposit must be confirmed to {action} (status: {hold.status.value})",
            )
