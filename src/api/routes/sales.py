"""Sales endpoints: direct sales, edits, payment flag and cancellation."""

from fastapi import APIRouter, Depends, Query, status

from src.api.dependencies import (
    Actor,
    ensure_owner,
    get_build_snapshot_use_case,
    get_create_sale_use_case,
    get_manage_sale_use_case,
    require_admin,
    require_seller,
)
from src.application.dto.requests import (
    CreateSaleRequest,
    PaymentReceivedRequest,
    UpdateSaleRequest,
)
from src.application.dto.responses import (
    CommissionResponse,
    CreateSaleResponse,
    ErrorResponse,
    SaleListResponse,
    SaleResponse,
)
from src.application.use_cases import BuildSnapshotUseCase, CreateSaleUseCase, ManageSaleUseCase
from src.core.entities.sale import SaleStatus
from src.core.entities.snapshot import DocumentSnapshot

router = APIRouter(prefix="/api/sales", tags=["sales"])

_ERRORS = {
    400: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


async def _check_owner(sale_id: int, actor: Actor, use_case: ManageSaleUseCase) -> None:
    sale = await use_case.get(sale_id)
    ensure_owner(actor, sale.seller_id)


@router.post(
    "",
    response_model=CreateSaleResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
)
async def create_sale(
    request: CreateSaleRequest,
    actor: Actor = Depends(require_seller),
    use_case: CreateSaleUseCase = Depends(get_create_sale_use_case),
) -> CreateSaleResponse:
    """
    Direct sale without an opportunity.

    Sending the same idempotency_key again returns the first sale with
    `created: false`.
    """
    seller_id = request.seller_id if actor.is_admin and request.seller_id else actor.user_id
    result = await use_case.execute(request, seller_id)
    return CreateSaleResponse(
        sale=SaleResponse.model_validate(result.sale),
        commission=(
            CommissionResponse.model_validate(result.commission) if result.commission else None
        ),
        created=result.created,
    )


@router.get("", response_model=SaleListResponse)
async def list_sales(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    seller_id: str | None = None,
    sale_status: SaleStatus | None = Query(None, alias="status"),
    actor: Actor = Depends(require_seller),
    use_case: ManageSaleUseCase = Depends(get_manage_sale_use_case),
) -> SaleListResponse:
    """List sales. Sellers only see their own."""
    sales = await use_case.list(
        limit=limit,
        offset=offset,
        seller_id=actor.scope_seller(seller_id),
        status=sale_status,
    )
    return SaleListResponse(
        sales=[SaleResponse.model_validate(s) for s in sales],
        limit=limit,
        offset=offset,
    )


@router.get("/{sale_id}", response_model=SaleResponse, responses=_ERRORS)
async def get_sale(
    sale_id: int,
    actor: Actor = Depends(require_seller),
    use_case: ManageSaleUseCase = Depends(get_manage_sale_use_case),
) -> SaleResponse:
    sale = await use_case.get(sale_id)
    ensure_owner(actor, sale.seller_id)
    return SaleResponse.model_validate(sale)


@router.patch("/{sale_id}", response_model=SaleResponse, responses=_ERRORS)
async def update_sale(
    sale_id: int,
    request: UpdateSaleRequest,
    actor: Actor = Depends(require_seller),
    use_case: ManageSaleUseCase = Depends(get_manage_sale_use_case),
) -> SaleResponse:
    """Recompute the sale. The recorded commission is left as it is."""
    await _check_owner(sale_id, actor, use_case)
    return SaleResponse.model_validate(await use_case.update(sale_id, request))


@router.put("/{sale_id}/payment-received", response_model=SaleResponse, responses=_ERRORS)
async def set_payment_received(
    sale_id: int,
    request: PaymentReceivedRequest,
    actor: Actor = Depends(require_seller),
    use_case: ManageSaleUseCase = Depends(get_manage_sale_use_case),
) -> SaleResponse:
    await _check_owner(sale_id, actor, use_case)
    sale = await use_case.set_payment_received(sale_id, request.received)
    return SaleResponse.model_validate(sale)


@router.post("/{sale_id}/cancel", response_model=SaleResponse, responses=_ERRORS)
async def cancel_sale(
    sale_id: int,
    actor: Actor = Depends(require_admin),
    use_case: ManageSaleUseCase = Depends(get_manage_sale_use_case),
) -> SaleResponse:
    """Cancel the sale and its unpaid commission."""
    return SaleResponse.model_validate(await use_case.cancel(sale_id))


@router.get("/{sale_id}/snapshot", response_model=DocumentSnapshot, responses=_ERRORS)
async def sale_snapshot(
    sale_id: int,
    actor: Actor = Depends(require_seller),
    sales: ManageSaleUseCase = Depends(get_manage_sale_use_case),
    use_case: BuildSnapshotUseCase = Depends(get_build_snapshot_use_case),
) -> DocumentSnapshot:
    """Sale document data for PDF rendering."""
    await _check_owner(sale_id, actor, sales)
    return await use_case.for_sale(sale_id)
