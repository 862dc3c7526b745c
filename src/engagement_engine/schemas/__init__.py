"""Pydantic API schemas."""

from engagement_engine.schemas.engagement import (
    AssessmentResponse,
    ClearHoldRequest,
    ConfirmDepositRequest,
    EngagementStatusResponse,
    EscrowHoldResponse,
    GateResultResponse,
    HealthResponse,
    NdaStatusResponse,
    PendingAssessmentResponse,
    ReinstateHoldRequest,
    RevokeDepositRequest,
    SignNdaRequest,
    SubmitAssessmentRequest,
    TransitionRequest,
    TransitionResponse,
    WorkspaceAccessResponse,
)

__all__ = [
    "AssessmentResponse",
    "ClearHoldRequest",
    "ConfirmDepositRequest",
    "EngagementStatusResponse",
    "EscrowHoldResponse",
    "GateResultResponse",
    "HealthResponse",
    "NdaStatusResponse",
    "PendingAssessmentResponse",
    "ReinstateHoldRequest",
    "RevokeDepositRequest",
    "SignNdaRequest",
    "SubmitAssessmentRequest",
    "TransitionRequest",
    "TransitionResponse",
    "WorkspaceAccessResponse",
]
