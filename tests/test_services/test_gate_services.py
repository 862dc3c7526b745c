"""Tests for the escrow, NDA and assessment services and the workspace controller."""

from __future__ import annotations

import pytest
from conftest import ADMIN, CUSTOMER, PROVIDER

from engagement_engine.bootstrap import build_engine
from engagement_engine.domain.enums import (
    EngagementState,
    EscrowStatus,
    EventType,
    GateName,
    NdaStatus,
)
from engagement_engine.domain.exceptions import (
    AssessmentError,
    EscrowOperationError,
    NdaSignatureError,
    UnauthorizedError,
)
from engagement_engine.domain.models import EscrowHold, WorkspaceAccess
from engagement_engine.services.workspace import GateCache

AGREED = {"agreed": True, "full_name": "Test Signer"}


# ============================================================
# Escrow
# ============================================================


class TestEscrowService:
    async def test_confirm_clears_work_hold(self, engine, seed, sink) -> None:
        seed("E1", requires_deposit=True)
        hold = await engine.escrow.confirm_deposit("E1", 50000, "wire", None, "admin", ADMIN)

        assert hold.status == EscrowStatus.CONFIRMED
        assert hold.hold_active is False
        assert hold.confirmed_by == ADMIN
        await engine.emitter.drain()
        (event,) = sink.of_type(EventType.DEPOSIT_CONFIRMED)
        assert event.metadata["amount"] == 50000

    async def test_only_admin_confirms(self, engine, seed) -> None:
        seed("E1", requires_deposit=True)
        with pytest.raises(UnauthorizedError):
            await engine.escrow.confirm_deposit("E1", 100, "wire", None, "provider", PROVIDER)

    async def test_negative_amount_rejected(self, engine, seed) -> None:
        seed("E1", requires_deposit=True)
        with pytest.raises(EscrowOperationError):
            await engine.escrow.confirm_deposit("E1", -1, "wire", None, "admin", ADMIN)

    async def test_confirm_twice_rejected(self, engine, seed) -> None:
        seed("E1", requires_deposit=True)
        await engine.escrow.confirm_deposit("E1", 100, "wire", None, "admin", ADMIN)
        with pytest.raises(EscrowOperationError, match="already confirmed"):
            await engine.escrow.confirm_deposit("E1", 100, "wire", None, "admin", ADMIN)

    async def test_not_required(self, engine, seed) -> None:
        seed("E1")
        with pytest.raises(EscrowOperationError, match="does not require"):
            await engine.escrow.confirm_deposit("E1", 100, "wire", None, "admin", ADMIN)

    async def test_missing_hold_reads_as_none(self, engine, seed) -> None:
        seed("E1", requires_deposit=True)
        hold = await engine.escrow.get_status("E1")
        assert hold.status == EscrowStatus.NONE
        assert hold.hold_active is True

    async def test_revoke_then_reconfirm(self, engine, seed) -> None:
        seed("E1", requires_deposit=True)
        await engine.escrow.confirm_deposit("E1", 100, "wire", None, "admin", ADMIN)

        revoked = await engine.escrow.revoke_deposit("E1", "chargeback", "admin", ADMIN)
        assert revoked.status == EscrowStatus.REVOKED
        assert revoked.hold_active is True

        again = await engine.escrow.confirm_deposit("E1", 100, "wire", None, "admin", ADMIN)
        assert again.status == EscrowStatus.CONFIRMED
        assert again.hold_active is False

    async def test_revoke_requires_confirmation_and_reason(self, engine, seed) -> None:
        seed("E1", requires_deposit=True)
        with pytest.raises(EscrowOperationError):
            await engine.escrow.revoke_deposit("E1", "chargeback", "admin", ADMIN)
        with pytest.raises(EscrowOperationError, match="reason"):
            await engine.escrow.revoke_deposit("E1", "  ", "admin", ADMIN)

    async def test_reinstate_and_clear(self, engine, seed) -> None:
        seed("E1", requires_deposit=True)
        await engine.escrow.confirm_deposit("E1", 100, "wire", None, "admin", ADMIN)

        reinstated = await engine.escrow.reinstate_hold("E1", "scope dispute", "admin", ADMIN)
        assert reinstated.hold_active is True
        assert reinstated.status == EscrowStatus.CONFIRMED
        with pytest.raises(EscrowOperationError, match="already active"):
            await engine.escrow.reinstate_hold("E1", "again", "admin", ADMIN)

        cleared = await engine.escrow.clear_hold("E1", "resolved", "admin", ADMIN)
        assert cleared.hold_active is False
        with pytest.raises(EscrowOperationError, match="already cleared"):
            await engine.escrow.clear_hold("E1", None, "admin", ADMIN)

    async def test_reinstate_does_not_revert_state(self, engine, seed, ledger) -> None:
        seed("E1", last_transition="transition/apply", requires_deposit=True)
        await engine.escrow.confirm_deposit("E1", 100, "wire", None, "admin", ADMIN)
        await engine.transitions.apply_transition("E1", "accept", "provider", PROVIDER)

        await engine.escrow.reinstate_hold("E1", "scope dispute", "admin", ADMIN)

        assert (await ledger.get_transaction("E1")).state == EngagementState.ACCEPTED
        access = await engine.workspace.get_access("E1")
        assert access.unlocked is False
        assert access.denied_reason == "deposit_pending"


class TestEscrowAdminListings:
    async def test_pending_deposits(self, engine, seed) -> None:
        seed("E1", last_transition="transition/apply", requires_deposit=True)
        seed("E2", last_transition="transition/apply", requires_deposit=True)
        seed("E3", last_transition="transition/apply")
        seed("E4", last_transition="transition/accept", requires_deposit=True)
        await engine.escrow.confirm_deposit("E2", 100, "wire", None, "admin", ADMIN)

        pending = await engine.escrow.list_pending_deposits("admin")

        assert [d.engagement.id for d in pending] == ["E1"]
        assert pending[0].hold.status == EscrowStatus.NONE

    async def test_revoked_deposit_is_pending_again(self, engine, seed) -> None:
        seed("E1", last_transition="transition/apply", requires_deposit=True)
        await engine.escrow.confirm_deposit("E1", 100, "wire", None, "admin", ADMIN)
        await engine.escrow.revoke_deposit("E1", "chargeback", "admin", ADMIN)

        (deposit,) = await engine.escrow.list_pending_deposits("admin")
        assert deposit.hold.status == EscrowStatus.REVOKED

    async def test_partner_deposits(self, engine, seed, ledger) -> None:
        seed("E1", last_transition="transition/apply", requires_deposit=True)
        seed("E2", last_transition="transition/accept", requires_deposit=True)
        seed("E3", last_transition="transition/accept")
        ledger.create_engagement(
            "E9", CUSTOMER, "partner-2", requires_deposit=True, last_transition="transition/apply"
        )

        deposits = await engine.escrow.list_partner_deposits(PROVIDER, "admin")

        assert sorted(d.engagement.id for d in deposits) == ["E1", "E2"]

    @pytest.mark.parametrize("role", ["provider", "customer", "system"])
    async def test_listings_are_admin_only(self, engine, role) -> None:
        with pytest.raises(UnauthorizedError):
            await engine.escrow.list_pending_deposits(role)
        with pytest.raises(UnauthorizedError):
            await engine.escrow.list_partner_deposits(PROVIDER, role)
        with pytest.raises(UnauthorizedError):
            await engine.escrow.clear_all_holds_for_partner(PROVIDER, None, role, "someone")


class TestClearAllHoldsForPartner:
    async def test_clears_accepted_engagements(self, engine, seed, ledger, sink) -> None:
        seed("E1", last_transition="transition/accept", requires_deposit=True)
        seed("E2", last_transition="transition/accept", requires_deposit=True)
        await engine.escrow.confirm_deposit("E2", 100, "wire", None, "admin", ADMIN)
        await engine.escrow.reinstate_hold("E2", "scope dispute", "admin", ADMIN)
        seed("E3", last_transition="transition/apply", requires_deposit=True)
        ledger.create_engagement(
            "E9", CUSTOMER, "partner-2", requires_deposit=True, last_transition="transition/accept"
        )

        result = await engine.escrow.clear_all_holds_for_partner(PROVIDER, None, "admin", ADMIN)

        assert sorted(result.cleared) == ["E1", "E2"]
        assert result.skipped == {}
        first = await engine.escrow.get_status("E1")
        assert first.status == EscrowStatus.CONFIRMED
        assert first.hold_active is False
        assert first.confirmed_by == ADMIN
        assert first.notes == "Bulk clear by admin"
        assert (await engine.escrow.get_status("E3")).status == EscrowStatus.NONE
        assert (await engine.escrow.get_status("E9")).status == EscrowStatus.NONE

        await engine.emitter.drain()
        bulk = [e for e in sink.of_type(EventType.WORK_HOLD_CLEARED) if e.metadata.get("bulk")]
        assert sorted(e.engagement_id for e in bulk) == ["E1", "E2"]

    async def test_revoked_and_cleared_are_skipped(self, engine, seed) -> None:
        seed("E1", last_transition="transition/accept", requires_deposit=True)
        seed("E2", last_transition="transition/accept", requires_deposit=True)
        await engine.escrow.confirm_deposit("E1", 100, "wire", None, "admin", ADMIN)
        await engine.escrow.revoke_deposit("E1", "chargeback", "admin", ADMIN)
        await engine.escrow.confirm_deposit("E2", 100, "wire", None, "admin", ADMIN)

        result = await engine.escrow.clear_all_holds_for_partner(
            PROVIDER, "paid in full", "admin", ADMIN
        )

        assert result.cleared == ()
        assert result.skipped == {"E1": "deposit_revoked", "E2": "already_cleared"}
        revoked = await engine.escrow.get_status("E1")
        assert revoked.status == EscrowStatus.REVOKED
        assert revoked.hold_active is True

    async def test_unlocks_workspace(self, engine, seed) -> None:
        seed("E1", last_transition="transition/accept", requires_deposit=True)
        assert (await engine.workspace.get_access("E1")).unlocked is False

        await engine.escrow.clear_all_holds_for_partner(PROVIDER, None, "admin", ADMIN)

        assert (await engine.workspace.get_access("E1")).unlocked is True

    async def test_partner_without_engagements(self, engine) -> None:
        result = await engine.escrow.clear_all_holds_for_partner("nobody", None, "admin", ADMIN)
        assert result.cleared == ()
        assert result.skipped == {}


# ============================================================
# NDA
# ============================================================


class TestNdaService:
    async def test_sign_both_parties(self, engine, seed, sink) -> None:
        seed("E1", last_transition="transition/apply", requires_nda=True)
        request = await engine.nda.request_signature("E1", "provider", PROVIDER)
        assert request.status == NdaStatus.REQUESTED

        partial = await engine.nda.sign("E1", "provider", AGREED, "provider", PROVIDER)
        assert partial.status == NdaStatus.PARTIALLY_SIGNED
        full = await engine.nda.sign("E1", "customer", AGREED, "customer", CUSTOMER)
        assert full.status == NdaStatus.FULLY_SIGNED

        await engine.emitter.drain()
        assert len(sink.of_type(EventType.NDA_REQUESTED)) == 1
        assert len(sink.of_type(EventType.NDA_SIGNED)) == 1
        assert len(sink.of_type(EventType.NDA_FULLY_SIGNED)) == 1

    async def test_request_is_idempotent(self, engine, seed, sink) -> None:
        seed("E1", last_transition="transition/apply", requires_nda=True)
        first = await engine.nda.request_signature("E1", "provider", PROVIDER)
        second = await engine.nda.request_signature("E1", "admin", ADMIN)
        assert first == second
        await engine.emitter.drain()
        assert len(sink.of_type(EventType.NDA_REQUESTED)) == 1

    async def test_customer_cannot_request(self, engine, seed) -> None:
        seed("E1", last_transition="transition/apply", requires_nda=True)
        with pytest.raises(UnauthorizedError):
            await engine.nda.request_signature("E1", "customer", CUSTOMER)

    async def test_not_requestable_before_application(self, engine, seed) -> None:
        seed("E1", requires_nda=True)
        with pytest.raises(NdaSignatureError):
            await engine.nda.request_signature("E1", "admin", ADMIN)

    async def test_sign_without_request(self, engine, seed) -> None:
        seed("E1", last_transition="transition/apply", requires_nda=True)
        with pytest.raises(NdaSignatureError, match="No NDA"):
            await engine.nda.sign("E1", "customer", AGREED, "customer", CUSTOMER)

    async def test_must_agree(self, engine, seed) -> None:
        seed("E1", last_transition="transition/apply", requires_nda=True)
        await engine.nda.request_signature("E1", "admin", ADMIN)
        with pytest.raises(NdaSignatureError, match="agreement"):
            await engine.nda.sign("E1", "customer", {"agreed": "yes"}, "customer", CUSTOMER)

    async def test_cannot_sign_for_the_other_party(self, engine, seed) -> None:
        seed("E1", last_transition="transition/apply", requires_nda=True)
        await engine.nda.request_signature("E1", "admin", ADMIN)
        with pytest.raises(UnauthorizedError) as exc_info:
            await engine.nda.sign("E1", "provider", AGREED, "customer", CUSTOMER)
        assert exc_info.value.reason == "not_the_signer"

    async def test_cannot_sign_twice(self, engine, seed) -> None:
        seed("E1", last_transition="transition/apply", requires_nda=True)
        await engine.nda.request_signature("E1", "admin", ADMIN)
        await engine.nda.sign("E1", "customer", AGREED, "customer", CUSTOMER)
        with pytest.raises(NdaSignatureError, match="already signed"):
            await engine.nda.sign("E1", "customer", AGREED, "customer", CUSTOMER)

    async def test_status_before_request(self, engine, seed) -> None:
        seed("E1", requires_nda=True)
        status, request = await engine.nda.get_signature_status("E1")
        assert status == NdaStatus.NOT_REQUESTED
        assert request is None


# ============================================================
# Assessment
# ============================================================


class TestAssessmentService:
    async def test_submit_after_completion(self, engine, seed, full_ratings, sink) -> None:
        seed("E1", last_transition="transition/mark-completed")
        assessment = await engine.assessments.submit_assessment(
            "E1", full_ratings, "provider", PROVIDER, student_id=CUSTOMER, strengths="Thorough"
        )
        assert assessment.student_id == CUSTOMER
        assert assessment.section_averages["communication"] == 4.5
        assert await engine.assessments.get_assessment("E1") == assessment
        await engine.emitter.drain()
        assert len(sink.of_type(EventType.ASSESSMENT_SUBMITTED)) == 1

    async def test_before_completion_rejected(self, engine, seed, full_ratings) -> None:
        seed("E1", last_transition="transition/accept")
        with pytest.raises(AssessmentError, match="completed"):
            await engine.assessments.submit_assessment("E1", full_ratings, "provider", PROVIDER)

    async def test_duplicate_rejected(self, engine, seed, full_ratings) -> None:
        seed("E1", last_transition="transition/mark-completed")
        await engine.assessments.submit_assessment("E1", full_ratings, "provider", PROVIDER)
        with pytest.raises(AssessmentError, match="already"):
            await engine.assessments.submit_assessment("E1", full_ratings, "provider", PROVIDER)

    async def test_invalid_ratings_listed(self, engine, seed) -> None:
        seed("E1", last_transition="transition/mark-completed")
        with pytest.raises(AssessmentError) as exc_info:
            await engine.assessments.submit_assessment(
                "E1", {"accuracy": 9, "charisma": 3}, "provider", PROVIDER
            )
        assert len(exc_info.value.errors) == 2

    async def test_only_the_engagement_provider(self, engine, seed, full_ratings) -> None:
        seed("E1", last_transition="transition/mark-completed")
        with pytest.raises(UnauthorizedError):
            await engine.assessments.submit_assessment("E1", full_ratings, "customer", CUSTOMER)
        with pytest.raises(UnauthorizedError):
            await engine.assessments.submit_assessment("E1", full_ratings, "provider", "partner-2")

    async def test_student_must_match(self, engine, seed, full_ratings) -> None:
        seed("E1", last_transition="transition/mark-completed")
        with pytest.raises(AssessmentError, match="Student"):
            await engine.assessments.submit_assessment(
                "E1", full_ratings, "provider", PROVIDER, student_id="student-9"
            )

    async def test_pending_assessments(self, engine, seed, full_ratings) -> None:
        seed("done", last_transition="transition/mark-completed")
        seed("reviewed", last_transition="transition/review-1-by-customer")
        seed("assessed", last_transition="transition/mark-completed")
        seed("active", last_transition="transition/accept")
        await engine.assessments.submit_assessment("assessed", full_ratings, "provider", PROVIDER)

        pending = await engine.assessments.get_pending_assessments(PROVIDER)

        assert sorted(e.id for e in pending) == ["done", "reviewed"]
        assert await engine.assessments.get_pending_assessments("partner-2") == []


# ============================================================
# Workspace access
# ============================================================


class TestWorkspaceAccess:
    async def test_not_accepted(self, engine, seed) -> None:
        seed("E1", last_transition="transition/apply")
        access = await engine.workspace.get_access("E1")
        assert access.unlocked is False
        assert access.denied_reason == "not_accepted"

    async def test_unlocks_when_all_gates_pass(self, engine, seed) -> None:
        seed("E1", last_transition="transition/apply", requires_deposit=True, requires_nda=True)
        await engine.escrow.confirm_deposit("E1", 100, "wire", None, "admin", ADMIN)
        await engine.transitions.apply_transition("E1", "accept", "provider", PROVIDER)

        access = await engine.workspace.get_access("E1")
        assert access.denied_reason == "nda_pending"

        await engine.nda.sign("E1", "provider", AGREED, "provider", PROVIDER)
        await engine.nda.sign("E1", "customer", AGREED, "customer", CUSTOMER)

        assert await engine.workspace.is_workspace_unlocked("E1") is True

    async def test_result_is_cached_until_a_write(self, engine, seed, escrow_store) -> None:
        seed("E1", last_transition="transition/accept", requires_deposit=True)
        first = await engine.workspace.get_access("E1")
        assert first.denied_reason == "deposit_pending"
        assert "E1" in engine.workspace.cache

        # A write behind the engine's back is not seen until invalidation
        await escrow_store.save_hold(EscrowHold("E1", status=EscrowStatus.CONFIRMED, hold_cleared=True))
        assert await engine.workspace.get_access("E1") is first

        engine.workspace.invalidate("E1")
        assert (await engine.workspace.get_access("E1")).unlocked is True

    async def test_every_engine_write_invalidates(self, engine, seed) -> None:
        seed("E1", last_transition="transition/apply", requires_deposit=True)
        await engine.workspace.get_access("E1")

        await engine.escrow.confirm_deposit("E1", 100, "wire", None, "admin", ADMIN)
        assert "E1" not in engine.workspace.cache

        await engine.workspace.get_access("E1")
        await engine.transitions.apply_transition("E1", "accept", "provider", PROVIDER)
        assert "E1" not in engine.workspace.cache

        assert (await engine.workspace.get_access("E1")).unlocked is True

    async def test_stale_read_not_stored(self, engine, seed) -> None:
        seed("E1", last_transition="transition/accept")
        cache = engine.workspace.cache

        with cache.reading("E1") as generation:
            access = await engine.workspace.get_access("E1")
            cache.invalidate("E1")
            assert cache.put("E1", access, generation) is False
            assert "E1" not in cache

    @pytest.mark.parametrize(
        "last_transition",
        [
            "transition/mark-completed",
            "transition/review-1-by-customer",
            "transition/review-1-by-provider",
            "transition/review-2-by-customer",
        ],
    )
    @pytest.mark.parametrize("hold_status", [EscrowStatus.PENDING, EscrowStatus.REVOKED])
    async def test_unconfirmed_deposit_locks_any_state(
        self, engine, seed, escrow_store, last_transition: str, hold_status: EscrowStatus
    ) -> None:
        seed("E1", last_transition=last_transition, requires_deposit=True)
        await escrow_store.save_hold(EscrowHold("E1", status=hold_status))

        access = await engine.workspace.get_access("E1")

        assert access.unlocked is False
        assert access.denied_reason == "deposit_pending"

    @pytest.mark.parametrize(
        "last_transition",
        [
            "transition/accept",
            "transition/mark-completed",
            "transition/review-1-by-provider",
            "transition/review-2-by-provider",
        ],
    )
    async def test_partially_signed_nda_locks_any_state(
        self, engine, seed, last_transition: str
    ) -> None:
        seed("E1", last_transition=last_transition, requires_nda=True)
        await engine.nda.request_signature("E1", "admin", ADMIN)
        await engine.nda.sign("E1", "provider", AGREED, "provider", PROVIDER)

        access = await engine.workspace.get_access("E1")

        assert access.unlocked is False
        assert access.denied_reason == "nda_pending"


class TestGateCache:
    def _access(self, engagement_id: str) -> WorkspaceAccess:
        return WorkspaceAccess(
            engagement_id=engagement_id,
            unlocked=False,
            state=EngagementState.APPLIED,
            gates=(),
            denied_reason="not_accepted",
        )

    def test_least_recently_used_entry_is_evicted(self) -> None:
        cache = GateCache(max_entries=2)
        cache.put("E1", self._access("E1"), 0)
        cache.put("E2", self._access("E2"), 0)
        assert cache.get("E1") is not None

        cache.put("E3", self._access("E3"), 0)

        assert len(cache) == 2
        assert "E1" in cache
        assert "E2" not in cache
        assert "E3" in cache

    def test_generations_dropped_once_reads_finish(self) -> None:
        cache = GateCache()
        for n in range(50):
            with cache.reading(f"E{n}") as generation:
                cache.invalidate(f"E{n}")
                cache.put(f"E{n}", self._access(f"E{n}"), generation)
            cache.invalidate(f"E{n}")

        assert cache.tracked_generations() == 0
        assert len(cache) == 0

    def test_overlapping_reads_share_the_generation(self) -> None:
        cache = GateCache()
        with cache.reading("E1") as first:
            cache.invalidate("E1")
            with cache.reading("E1") as second:
                assert second == first + 1
                assert cache.put("E1", self._access("E1"), second) is True
            assert cache.tracked_generations() == 1
            assert cache.put("E1", self._access("E1"), first) is False
        assert cache.tracked_generations() == 0

    def test_controller_respects_bound(self, settings, ledger) -> None:
        bounded = settings.model_copy(update={"workspace_cache_max_entries": 3})
        engine = build_engine(bounded, ledger=ledger)
        assert engine.workspace.cache.max_entries == 3

    async def test_controller_reads_leave_no_generations(self, engine, seed) -> None:
        for n in range(5):
            seed(f"E{n}", last_transition="transition/accept")
            await engine.workspace.get_access(f"E{n}")
            engine.workspace.invalidate(f"E{n}")

        assert engine.workspace.cache.tracked_generations() == 0
        assert len(engine.workspace.cache) == 0


# ============================================================
# Gate evaluators
# ============================================================


class TestGateEvaluate:
    async def test_escrow_missing_hold_fails_when_required(self, engine, seed) -> None:
        seed("E1", last_transition="transition/apply", requires_deposit=True)
        result = await engine.escrow_gate.evaluate("E1")
        assert result.gate == GateName.ESCROW
        assert result.passed is False
        assert result.reason == "deposit_pending"

    async def test_escrow_missing_hold_passes_when_not_required(self, engine, seed) -> None:
        seed("E1", last_transition="transition/apply")
        result = await engine.escrow_gate.evaluate("E1")
        assert result.passed is True
        assert result.reason is None

    async def test_escrow_reasons(self, engine, seed, escrow_store) -> None:
        seed("E1", last_transition="transition/accept", requires_deposit=True)

        await escrow_store.save_hold(EscrowHold("E1", status=EscrowStatus.REVOKED))
        assert (await engine.escrow_gate.evaluate("E1")).reason == "deposit_revoked"

        await escrow_store.save_hold(EscrowHold("E1", status=EscrowStatus.CONFIRMED))
        assert (await engine.escrow_gate.evaluate("E1")).reason == "work_hold_active"

        await escrow_store.save_hold(EscrowHold("E1", status=EscrowStatus.CONFIRMED, hold_cleared=True))
        assert (await engine.escrow_gate.evaluate("E1")).passed is True

    async def test_nda_missing_request(self, engine, seed) -> None:
        seed("E1", last_transition="transition/accept", requires_nda=True)
        seed("E2", last_transition="transition/accept")

        required = await engine.nda_gate.evaluate("E1")
        assert required.gate == GateName.NDA
        assert required.passed is False
        assert required.reason == "nda_not_requested"
        assert (await engine.nda_gate.evaluate("E2")).passed is True

    async def test_nda_signatures(self, engine, seed) -> None:
        seed("E1", last_transition="transition/accept", requires_nda=True)
        await engine.nda.request_signature("E1", "admin", ADMIN)
        assert (await engine.nda_gate.evaluate("E1")).reason == "nda_signatures_pending"

        await engine.nda.sign("E1", "provider", AGREED, "provider", PROVIDER)
        await engine.nda.sign("E1", "customer", AGREED, "customer", CUSTOMER)
        assert (await engine.nda_gate.evaluate("E1")).passed is True

    async def test_assessment_gate(self, engine, seed, full_ratings) -> None:
        seed("active", last_transition="transition/accept")
        seed("done", last_transition="transition/mark-completed")

        assert (await engine.assessment_gate.evaluate("active")).passed is True
        pending = await engine.assessment_gate.evaluate("done")
        assert pending.gate == GateName.ASSESSMENT
        assert pending.passed is False
        assert pending.reason == "assessment_pending"

        await engine.assessments.submit_assessment("done", full_ratings, "provider", PROVIDER)
        assert (await engine.assessment_gate.evaluate("done")).passed is True
