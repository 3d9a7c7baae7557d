"""Commission ledger endpoints."""

from fastapi import APIRouter, Depends, Query

from src.api.dependencies import (
    Actor,
    ensure_owner,
    get_manage_commission_use_case,
    require_admin,
    require_seller,
)
from src.application.dto.requests import ChangePayStatusRequest
from src.application.dto.responses import (
    CommissionListResponse,
    CommissionResponse,
    ErrorResponse,
)
from src.application.use_cases import ManageCommissionUseCase
from src.core.entities.commission import CommissionPayStatus

router = APIRouter(prefix="/api/commissions", tags=["commissions"])

_ERRORS = {
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


@router.get("", response_model=CommissionListResponse)
async def list_commissions(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    seller_id: str | None = None,
    pay_status: CommissionPayStatus | None = None,
    actor: Actor = Depends(require_seller),
    use_case: ManageCommissionUseCase = Depends(get_manage_commission_use_case),
) -> CommissionListResponse:
    """List commissions. Sellers only see their own."""
    commissions = await use_case.list(
        limit=limit,
        offset=offset,
        seller_id=actor.scope_seller(seller_id),
        pay_status=pay_status,
    )
    return CommissionListResponse(
        commissions=[CommissionResponse.model_validate(c) for c in commissions],
        limit=limit,
        offset=offset,
    )


@router.get("/sales/{sale_id}", response_model=CommissionResponse, responses=_ERRORS)
async def get_sale_commission(
    sale_id: int,
    actor: Actor = Depends(require_seller),
    use_case: ManageCommissionUseCase = Depends(get_manage_commission_use_case),
) -> CommissionResponse:
    """The active commission of a sale."""
    commission = await use_case.get_for_sale(sale_id)
    ensure_owner(actor, commission.seller_id)
    return CommissionResponse.model_validate(commission)


@router.post(
    "/sales/{sale_id}/retrigger",
    response_model=CommissionResponse,
    responses=_ERRORS,
)
async def retrigger_commission(
    sale_id: int,
    actor: Actor = Depends(require_admin),
    use_case: ManageCommissionUseCase = Depends(get_manage_commission_use_case),
) -> CommissionResponse:
    """Resolve and record a commission for a sale that has none active."""
    return CommissionResponse.model_validate(await use_case.retrigger(sale_id))


@router.get("/{commission_id}", response_model=CommissionResponse, responses=_ERRORS)
async def get_commission(
    commission_id: int,
    actor: Actor = Depends(require_seller),
    use_case: ManageCommissionUseCase = Depends(get_manage_commission_use_case),
) -> CommissionResponse:
    commission = await use_case.get(commission_id)
    ensure_owner(actor, commission.seller_id)
    return CommissionResponse.model_validate(commission)


@router.put(
    "/{commission_id}/pay-status",
    response_model=CommissionResponse,
    responses=_ERRORS,
)
async def change_pay_status(
    commission_id: int,
    request: ChangePayStatusRequest,
    actor: Actor = Depends(require_admin),
    use_case: ManageCommissionUseCase = Depends(get_manage_commission_use_case),
) -> CommissionResponse:
    """Move pending -> approved -> paid, or cancel before paid."""
    commission = await use_case.change_pay_status(commission_id, request)
    return CommissionResponse.model_validate(commission)
