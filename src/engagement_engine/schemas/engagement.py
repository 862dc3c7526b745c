"""Pydantic schemas for the Engagement API.

These schemas define the request/response shapes for the REST API. They are
separate from the domain dataclasses to keep the wire format independent of
the engine's internals.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from engagement_engine.domain.enums import (
    ActorRole,
    EngagementState,
    EscrowStatus,
    GateName,
    NdaStatus,
)

if TYPE_CHECKING:
    from engagement_engine.domain.models import EngagementDeposit

# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------


class TransitionRequest(BaseModel):
    """Request body for applying a lifecycle transition."""

    transition: str = Field(
        ...,
        min_length=1,
        max_length=64,
        description="Engine transition name",
        examples=["accept", "mark-completed", "review"],
    )


class ConfirmDepositRequest(BaseModel):
    amount: int | None = Field(
        default=None,
        ge=0,
        description="Deposit amount in minor currency units",
        examples=[50000],
    )
    payment_method: str = Field(default="offline", max_length=64, examples=["wire"])
    notes: str | None = Field(default=None, max_length=2000)


class RevokeDepositRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=2000)


class ClearHoldRequest(BaseModel):
    notes: str | None = Field(default=None, max_length=2000)


class ReinstateHoldRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=2000)


class SignNdaRequest(BaseModel):
    """Request body for signing the engagement NDA."""

    signer_role: ActorRole = Field(..., description="provider or customer")
    signature_data: dict[str, Any] = Field(
        ...,
        description='Signature payload; must include "agreed": true',
        examples=[{"agreed": True, "full_name": "Ada Lovelace"}],
    )


class SubmitAssessmentRequest(BaseModel):
    """Request body for a provider's assessment of the student."""

    # Values are checked by the service so bad scores get a per-criterion error list
    ratings: dict[str, Any] = Field(..., examples=[{"deliverable_quality": 5, "overall_rating": 4}])
    student_id: str | None = None
    comments: dict[str, str] = Field(default_factory=dict)
    overall_comments: str = Field(default="", max_length=5000)
    strengths: str = Field(default="", max_length=5000)
    areas_for_improvement: str = Field(default="", max_length=5000)
    recommend_for_future: bool = False


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------


class TransitionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    engagement_id: str
    transition: str
    ledger_transition: str
    previous_state: EngagementState
    state: EngagementState
    committed: bool


class GateResultResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    gate: GateName
    passed: bool
    reason: str | None = None


class EngagementStatusResponse(BaseModel):
    """Current lifecycle state, what each role may do next, and gate verdicts."""

    engagement_id: str
    state: EngagementState
    last_transition: str | None
    last_transitioned_at: datetime | None
    version: int
    requires_deposit: bool
    requires_nda: bool
    allowed_transitions: dict[str, list[str]]
    gates: list[GateResultResponse]


class WorkspaceAccessResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    engagement_id: str
    unlocked: bool
    state: EngagementState
    denied_reason: str | None
    gates: list[GateResultResponse]


class EscrowHoldResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    engagement_id: str
    status: EscrowStatus
    hold_active: bool
    amount: int | None = None
    payment_method: str | None = None
    notes: str | None = None
    confirmed_by: str | None = None
    confirmed_at: datetime | None = None
    revoked_by: str | None = None
    revoked_at: datetime | None = None
    revoke_reason: str | None = None
    hold_cleared: bool = False
    hold_cleared_by: str | None = None
    hold_cleared_at: datetime | None = None
    reinstated_by: str | None = None
    reinstated_at: datetime | None = None
    reinstate_reason: str | None = None


class EngagementDepositResponse(BaseModel):
    """One engagement in an admin deposit listing."""

    engagement_id: str
    customer_id: str
    provider_id: str
    listing_id: str
    state: EngagementState
    last_transition: str | None
    escrow: EscrowHoldResponse

    @classmethod
    def from_deposit(cls, deposit: EngagementDeposit) -> EngagementDepositResponse:
        engagement = deposit.engagement
        return cls(
            engagement_id=engagement.id,
            customer_id=engagement.customer_id,
            provider_id=engagement.provider_id,
            listing_id=engagement.listing_id,
            state=engagement.state,
            last_transition=engagement.last_transition,
            escrow=EscrowHoldResponse.model_validate(deposit.hold),
        )


class BulkHoldClearResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    provider_id: str
    cleared: list[str]
    skipped: dict[str, str]


class NdaSignerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    party_role: ActorRole
    signed: bool
    signed_at: datetime | None = None


class NdaStatusResponse(BaseModel):
    engagement_id: str
    status: NdaStatus
    document_id: str | None = None
    requested_at: datetime | None = None
    signers: list[NdaSignerResponse] = Field(default_factory=list)


class AssessmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    engagement_id: str
    submitted_by: str
    student_id: str
    ratings: dict[str, int]
    section_averages: dict[str, float | None]
    overall_average: float | None
    comments: dict[str, str]
    overall_comments: str
    strengths: str
    areas_for_improvement: str
    recommend_for_future: bool
    submitted_at: datetime


class PendingAssessmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    customer_id: str
    listing_id: str
    state: EngagementState
    last_transitioned_at: datetime | None = None


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str = Field(..., examples=["ok"])
    version: str = Field(..., examples=["0.1.0"])
    database: str = Field(..., examples=["healthy"])
    simulated: bool
