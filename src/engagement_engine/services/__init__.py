"""Application services - use case orchestration."""

from engagement_engine.services.assessment_service import AssessmentService
from engagement_engine.services.emitter import AuditEmitter
from engagement_engine.services.escrow_service import EscrowService
from engagement_engine.services.nda_service import NdaService
from engagement_engine.services.transition_service import TransitionService
from engagement_engine.services.workspace import GateCache, WorkspaceAccessController

__all__ = [
    "AssessmentService",
    "AuditEmitter",
    "EscrowService",
    "GateCache",
    "NdaService",
    "TransitionService",
    "WorkspaceAccessController",
]
