"""Assessment REST API routes.

Routes:
    GET    /api/v1/assessments/criteria              - Criteria catalogue and rating scale
    GET    /api/v1/assessments/pending?provider_id=  - Completed engagements owing an assessment
    POST   /api/v1/engagements/{id}/assessment       - Submit the provider's assessment
    GET    /api/v1/engagements/{id}/assessment       - The assessment, or null
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from engagement_engine.api.deps import Actor, get_actor, get_engine, get_viewer
from engagement_engine.bootstrap import EngagementEngine
from engagement_engine.domain.enums import ActorRole
from engagement_engine.domain.exceptions import UnauthorizedError
from engagement_engine.schemas.engagement import (
    AssessmentResponse,
    PendingAssessmentResponse,
    SubmitAssessmentRequest,
)

router = APIRouter(tags=["Assessments"])


@router.get("/api/v1/assessments/criteria", summary="Get assessment criteria")
async def get_criteria(engine: EngagementEngine = Depends(get_engine)) -> dict:
    return engine.assessments.get_criteria()


@router.get(
    "/api/v1/assessments/pending",
    response_model=list[PendingAssessmentResponse],
    summary="List engagements awaiting an assessment",
)
async def get_pending_assessments(
    provider_id: str = Query(..., min_length=1),
    actor: Actor = Depends(get_actor),
    engine: EngagementEngine = Depends(get_engine),
) -> list[PendingAssessmentResponse]:
    # Providers see their own queue; admins may look at anyone's
    if actor.role != ActorRole.ADMIN and not (
        actor.role == ActorRole.PROVIDER and actor.id == provider_id
    ):
        raise UnauthorizedError(actor.role.value, "list-pending-assessments", reason="not_a_party")
    pending = await engine.assessments.get_pending_assessments(provider_id)
    return [PendingAssessmentResponse.model_validate(engagement) for engagement in pending]


@router.post(
    "/api/v1/engagements/{engagement_id}/assessment",
    response_model=AssessmentResponse,
    status_code=201,
    summary="Submit an assessment",
)
async def submit_assessment(
    engagement_id: str,
    request: SubmitAssessmentRequest,
    actor: Actor = Depends(get_actor),
    engine: EngagementEngine = Depends(get_engine),
) -> AssessmentResponse:
    assessment = await engine.assessments.submit_assessment(
        engagement_id,
        request.ratings,
        actor.role,
        actor.id,
        student_id=request.student_id,
        comments=request.comments,
        overall_comments=request.overall_comments,
        strengths=request.strengths,
        areas_for_improvement=request.areas_for_improvement,
        recommend_for_future=request.recommend_for_future,
    )
    return AssessmentResponse.model_validate(assessment)


@router.get(
    "/api/v1/engagements/{engagement_id}/assessment",
    response_model=AssessmentResponse | None,
    summary="Get the engagement's assessment",
)
async def get_assessment(
    engagement_id: str,
    _viewer: Actor = Depends(get_viewer),
    engine: EngagementEngine = Depends(get_engine),
) -> AssessmentResponse | None:
    assessment = await engine.assessments.get_assessment(engagement_id)
    return AssessmentResponse.model_validate(assessment) if assessment is not None else None
