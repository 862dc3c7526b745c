"""Escrow admin REST API routes.

All routes require the admin role.

Routes:
    GET    /api/v1/admin/escrow/pending                     - Applied engagements awaiting a deposit
    GET    /api/v1/admin/escrow/partners/{pid}              - A partner's deposits
    POST   /api/v1/admin/escrow/partners/{pid}/clear-all-holds - Clear each eligible hold
    GET    /api/v1/admin/escrow/{id}                - Current deposit and work hold
    POST   /api/v1/admin/escrow/{id}/confirm        - Confirm the deposit (clears the hold)
    POST   /api/v1/admin/escrow/{id}/revoke         - Revoke a confirmation
    POST   /api/v1/admin/escrow/{id}/clear-hold     - Clear the work hold
    POST   /api/v1/admin/escrow/{id}/reinstate-hold - Reinstate the work hold
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from engagement_engine.api.deps import Actor, get_admin, get_engine
from engagement_engine.bootstrap import EngagementEngine
from engagement_engine.schemas.engagement import (
    BulkHoldClearResponse,
    ClearHoldRequest,
    ConfirmDepositRequest,
    EngagementDepositResponse,
    EscrowHoldResponse,
    ReinstateHoldRequest,
    RevokeDepositRequest,
)

router = APIRouter(prefix="/api/v1/admin/escrow", tags=["Escrow Admin"])


# Declared before /{engagement_id} so "pending" is not taken for an id
@router.get(
    "/pending",
    response_model=list[EngagementDepositResponse],
    summary="List pending deposits",
)
async def list_pending_deposits(
    admin: Actor = Depends(get_admin),
    engine: EngagementEngine = Depends(get_engine),
) -> list[EngagementDepositResponse]:
    deposits = await engine.escrow.list_pending_deposits(admin.role)
    return [EngagementDepositResponse.from_deposit(d) for d in deposits]


@router.get(
    "/partners/{partner_id}",
    response_model=list[EngagementDepositResponse],
    summary="List a partner's deposits",
)
async def list_partner_deposits(
    partner_id: str,
    admin: Actor = Depends(get_admin),
    engine: EngagementEngine = Depends(get_engine),
) -> list[EngagementDepositResponse]:
    deposits = await engine.escrow.list_partner_deposits(partner_id, admin.role)
    return [EngagementDepositResponse.from_deposit(d) for d in deposits]


@router.post(
    "/partners/{partner_id}/clear-all-holds",
    response_model=BulkHoldClearResponse,
    summary="Clear all of a partner's work holds",
)
async def clear_all_holds_for_partner(
    partner_id: str,
    request: ClearHoldRequest,
    admin: Actor = Depends(get_admin),
    engine: EngagementEngine = Depends(get_engine),
) -> BulkHoldClearResponse:
    result = await engine.escrow.clear_all_holds_for_partner(
        partner_id, request.notes, admin.role, admin.id
    )
    return BulkHoldClearResponse.model_validate(result)



@router.get("/{engagement_id}", response_model=EscrowHoldResponse, summary="Get escrow status")
async def get_escrow_status(
    engagement_id: str,
    _admin: Actor = Depends(get_admin),
    engine: EngagementEngine = Depends(get_engine),
) -> EscrowHoldResponse:
    hold = await engine.escrow.get_status(engagement_id)
    return EscrowHoldResponse.model_validate(hold)


@router.post(
    "/{engagement_id}/confirm", response_model=EscrowHoldResponse, summary="Confirm deposit"
)
async def confirm_deposit(
    engagement_id: str,
    request: ConfirmDepositRequest,
    admin: Actor = Depends(get_admin),
    engine: EngagementEngine = Depends(get_engine),
) -> EscrowHoldResponse:
    hold = await engine.escrow.confirm_deposit(
        engagement_id,
        amount=request.amount,
        payment_method=request.payment_method,
        notes=request.notes,
        actor_role=admin.role,
        actor_id=admin.id,
    )
    return EscrowHoldResponse.model_validate(hold)


@router.post(
    "/{engagement_id}/revoke", response_model=EscrowHoldResponse, summary="Revoke deposit"
)
async def revoke_deposit(
    engagement_id: str,
    request: RevokeDepositRequest,
    admin: Actor = Depends(get_admin),
    engine: EngagementEngine = Depends(get_engine),
) -> EscrowHoldResponse:
    hold = await engine.escrow.revoke_deposit(engagement_id, request.reason, admin.role, admin.id)
    return EscrowHoldResponse.model_validate(hold)


@router.post(
    "/{engagement_id}/clear-hold", response_model=EscrowHoldResponse, summary="Clear work hold"
)
async def clear_hold(
    engagement_id: str,
    request: ClearHoldRequest,
    admin: Actor = Depends(get_admin),
    engine: EngagementEngine = Depends(get_engine),
) -> EscrowHoldResponse:
    hold = await engine.escrow.clear_hold(engagement_id, request.notes, admin.role, admin.id)
    return EscrowHoldResponse.model_validate(hold)


@router.post(
    "/{engagement_id}/reinstate-hold",
    response_model=EscrowHoldResponse,
    summary="Reinstate work hold",
)
async def reinstate_hold(
    engagement_id: str,
    request: ReinstateHoldRequest,
    admin: Actor = Depends(get_admin),
    engine: EngagementEngine = Depends(get_engine),
) -> EscrowHoldResponse:
    hold = await engine.escrow.reinstate_hold(engagement_id, request.reason, admin.role, admin.id)
    return EscrowHoldResponse.model_validate(hold)
