"""Tests for domain value objects and the assessment criteria catalogue."""

from __future__ import annotations

from datetime import UTC, datetime

from engagement_engine.domain.assessment_criteria import (
    CRITERION_KEYS,
    criteria_catalogue,
    overall_average,
    section_averages,
    validate_ratings,
)
from engagement_engine.domain.enums import ActorRole, EngagementState, EscrowStatus, NdaStatus
from engagement_engine.domain.models import (
    Engagement,
    EscrowHold,
    NdaSignatureRequest,
    NdaSigner,
    nda_status,
)

SIGNED_AT = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


class TestEscrowHold:
    def test_hold_active_until_confirmed_and_cleared(self) -> None:
        assert EscrowHold("e").hold_active
        assert EscrowHold("e", status=EscrowStatus.CONFIRMED).hold_active
        assert not EscrowHold("e", status=EscrowStatus.CONFIRMED, hold_cleared=True).hold_active
        assert EscrowHold("e", status=EscrowStatus.REVOKED, hold_cleared=True).hold_active

    def test_dict_shape(self) -> None:
        hold = EscrowHold(
            "e", status=EscrowStatus.CONFIRMED, amount=500, confirmed_at=SIGNED_AT, hold_cleared=True
        )
        data = hold.to_dict()
        assert data["status"] == "confirmed"
        assert data["hold_active"] is False
        assert data["confirmed_at"] == SIGNED_AT.isoformat()
        assert EscrowHold.from_dict(data) == hold


class TestNdaSignatureRequest:
    def _request(self) -> NdaSignatureRequest:
        return NdaSignatureRequest(
            engagement_id="e",
            document_id="nda-1",
            signers=(NdaSigner(ActorRole.PROVIDER), NdaSigner(ActorRole.CUSTOMER)),
        )

    def test_status_derives_from_signers(self) -> None:
        request = self._request()
        assert request.status == NdaStatus.REQUESTED
        request = request.with_signature(ActorRole.PROVIDER, SIGNED_AT)
        assert request.status == NdaStatus.PARTIALLY_SIGNED
        request = request.with_signature(ActorRole.CUSTOMER, SIGNED_AT)
        assert request.status == NdaStatus.FULLY_SIGNED

    def test_signature_is_not_overwritten(self) -> None:
        later = datetime(2026, 4, 1, tzinfo=UTC)
        request = self._request().with_signature(ActorRole.PROVIDER, SIGNED_AT)
        request = request.with_signature(ActorRole.PROVIDER, later)
        assert request.signer(ActorRole.PROVIDER).signed_at == SIGNED_AT

    def test_missing_request_is_not_requested(self) -> None:
        assert nda_status(None) == NdaStatus.NOT_REQUESTED


class TestEngagement:
    def test_party_id(self) -> None:
        engagement = Engagement("e", "stu", "corp", "l", EngagementState.APPLIED)
        assert engagement.party_id(ActorRole.CUSTOMER) == "stu"
        assert engagement.party_id(ActorRole.PROVIDER) == "corp"
        assert engagement.party_id(ActorRole.ADMIN) is None


class TestAssessmentCriteria:
    def test_valid_ratings(self, full_ratings) -> None:
        assert validate_ratings(full_ratings) == []
        assert set(full_ratings) == CRITERION_KEYS

    def test_rejects_bad_values(self) -> None:
        errors = validate_ratings(
            {"accuracy": 6, "teamwork": True, "reliability": "5", "charisma": 3}
        )
        assert len(errors) == 4
        assert any("charisma" in e for e in errors)

    def test_rejects_empty(self) -> None:
        assert validate_ratings({}) == ["At least one rating is required"]

    def test_averages(self) -> None:
        ratings = {"deliverable_quality": 5, "accuracy": 3, "overall_rating": 4}
        averages = section_averages(ratings)
        assert averages["work_quality"] == 4.0
        assert averages["communication"] is None
        assert averages["overall_performance"] == 4.0
        assert overall_average(ratings) == 4.0

    def test_catalogue_shape(self) -> None:
        catalogue = criteria_catalogue()
        assert [s["key"] for s in catalogue["sections"]] == [
            "work_quality",
            "communication",
            "professionalism",
            "overall_performance",
        ]
        assert set(catalogue["rating_scale"]) == {"1", "2", "3", "4", "5"}
