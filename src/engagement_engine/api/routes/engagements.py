"""Engagement lifecycle REST API routes.

Routes:
    POST   /api/v1/engagements/{id}/transitions - Apply a lifecycle transition
    GET    /api/v1/engagements/{id}/status      - State, allowed transitions, gates
    GET    /api/v1/engagements/{id}/workspace   - Secure workspace access decision
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from engagement_engine.api.deps import Actor, get_actor, get_engine, get_viewer
from engagement_engine.bootstrap import EngagementEngine
from engagement_engine.schemas.engagement import (
    EngagementStatusResponse,
    GateResultResponse,
    TransitionRequest,
    TransitionResponse,
    WorkspaceAccessResponse,
)

router = APIRouter(prefix="/api/v1/engagements", tags=["Engagements"])


@router.post(
    "/{engagement_id}/transitions",
    response_model=TransitionResponse,
    summary="Apply a lifecycle transition",
)
async def apply_transition(
    engagement_id: str,
    request: TransitionRequest,
    actor: Actor = Depends(get_actor),
    engine: EngagementEngine = Depends(get_engine),
) -> TransitionResponse:
    """Validate the transition against the table and gates, then commit it to the ledger.

    Re-submitting a transition that already took effect returns
    ``committed: false`` instead of committing again.
    """
    result = await engine.transitions.apply_transition(
        engagement_id, request.transition, actor.role, actor.id
    )
    return TransitionResponse.model_validate(result)


@router.get(
    "/{engagement_id}/status",
    response_model=EngagementStatusResponse,
    summary="Get lifecycle status",
)
async def get_status(
    engagement_id: str,
    _viewer: Actor = Depends(get_viewer),
    engine: EngagementEngine = Depends(get_engine),
) -> EngagementStatusResponse:
    status = await engine.transitions.get_status(engagement_id)
    engagement = status.engagement
    return EngagementStatusResponse(
        engagement_id=engagement.id,
        state=engagement.state,
        last_transition=engagement.last_transition,
        last_transitioned_at=engagement.last_transitioned_at,
        version=engagement.version,
        requires_deposit=engagement.requires_deposit,
        requires_nda=engagement.requires_nda,
        allowed_transitions=status.allowed_transitions,
        gates=[GateResultResponse.model_validate(gate) for gate in status.gates],
    )


@router.get(
    "/{engagement_id}/workspace",
    response_model=WorkspaceAccessResponse,
    summary="Check secure workspace access",
)
async def get_workspace_access(
    engagement_id: str,
    _viewer: Actor = Depends(get_viewer),
    engine: EngagementEngine = Depends(get_engine),
) -> WorkspaceAccessResponse:
    access = await engine.workspace.get_access(engagement_id)
    return WorkspaceAccessResponse.model_validate(access)
