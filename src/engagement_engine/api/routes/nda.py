"""NDA signature REST API routes.

Routes:
    POST   /api/v1/engagements/{id}/nda/request - Open the signature request
    GET    /api/v1/engagements/{id}/nda         - Signature status
    POST   /api/v1/engagements/{id}/nda/sign    - Sign as provider or customer
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends

from engagement_engine.api.deps import Actor, get_actor, get_engine, get_viewer
from engagement_engine.bootstrap import EngagementEngine
from engagement_engine.domain.models import nda_status
from engagement_engine.schemas.engagement import (
    NdaSignerResponse,
    NdaStatusResponse,
    SignNdaRequest,
)

if TYPE_CHECKING:
    from engagement_engine.domain.models import NdaSignatureRequest

router = APIRouter(prefix="/api/v1/engagements", tags=["NDA"])


def _to_response(engagement_id: str, request: NdaSignatureRequest | None) -> NdaStatusResponse:
    if request is None:
        return NdaStatusResponse(engagement_id=engagement_id, status=nda_status(None))
    return NdaStatusResponse(
        engagement_id=engagement_id,
        status=request.status,
        document_id=request.document_id,
        requested_at=request.requested_at,
        signers=[NdaSignerResponse.model_validate(signer) for signer in request.signers],
    )


@router.post(
    "/{engagement_id}/nda/request",
    response_model=NdaStatusResponse,
    summary="Request NDA signatures",
)
async def request_nda(
    engagement_id: str,
    actor: Actor = Depends(get_actor),
    engine: EngagementEngine = Depends(get_engine),
) -> NdaStatusResponse:
    request = await engine.nda.request_signature(engagement_id, actor.role, actor.id)
    return _to_response(engagement_id, request)


@router.get("/{engagement_id}/nda", response_model=NdaStatusResponse, summary="Get NDA status")
async def get_nda_status(
    engagement_id: str,
    _viewer: Actor = Depends(get_viewer),
    engine: EngagementEngine = Depends(get_engine),
) -> NdaStatusResponse:
    _, request = await engine.nda.get_signature_status(engagement_id)
    return _to_response(engagement_id, request)


@router.post("/{engagement_id}/nda/sign", response_model=NdaStatusResponse, summary="Sign the NDA")
async def sign_nda(
    engagement_id: str,
    body: SignNdaRequest,
    actor: Actor = Depends(get_actor),
    engine: EngagementEngine = Depends(get_engine),
) -> NdaStatusResponse:
    request = await engine.nda.sign(
        engagement_id, body.signer_role, body.signature_data, actor.role, actor.id
    )
    return _to_response(engagement_id, request)
