"""Opportunity pipeline endpoints: proposals, line items and stage changes."""

from fastapi import APIRouter, Depends, Query, Response, status

from src.api.dependencies import (
    Actor,
    ensure_owner,
    get_build_snapshot_use_case,
    get_change_stage_use_case,
    get_edit_proposal_use_case,
    get_manage_opportunity_use_case,
    require_seller,
)
from src.application.dto.requests import (
    ChangeStageRequest,
    CreateOpportunityRequest,
    LineItemRequest,
    UpdateLineItemRequest,
    UpdateOpportunityRequest,
)
from src.application.dto.responses import (
    CommissionResponse,
    ErrorResponse,
    OpportunityListResponse,
    OpportunityResponse,
    SaleResponse,
    StageChangeResponse,
)
from src.application.use_cases import (
    BuildSnapshotUseCase,
    ChangeStageUseCase,
    EditProposalUseCase,
    ManageOpportunityUseCase,
)
from src.core.entities.opportunity import OpportunityStage
from src.core.entities.snapshot import DocumentSnapshot

router = APIRouter(prefix="/api/opportunities", tags=["opportunities"])

_ERRORS = {
    400: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


async def _check_owner(
    opportunity_id: int, actor: Actor, use_case: ManageOpportunityUseCase
) -> None:
    opportunity = await use_case.get(opportunity_id)
    ensure_owner(actor, opportunity.seller_id)


@router.post(
    "",
    response_model=OpportunityResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
)
async def create_opportunity(
    request: CreateOpportunityRequest,
    actor: Actor = Depends(require_seller),
    use_case: ManageOpportunityUseCase = Depends(get_manage_opportunity_use_case),
) -> OpportunityResponse:
    """Open a lead. Admins may open it on behalf of another seller."""
    seller_id = request.seller_id if actor.is_admin and request.seller_id else actor.user_id
    opportunity = await use_case.create(request, seller_id)
    return OpportunityResponse.model_validate(opportunity)


@router.get("", response_model=OpportunityListResponse)
async def list_opportunities(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    seller_id: str | None = None,
    client_id: str | None = None,
    stage: OpportunityStage | None = None,
    actor: Actor = Depends(require_seller),
    use_case: ManageOpportunityUseCase = Depends(get_manage_opportunity_use_case),
) -> OpportunityListResponse:
    """List opportunities. Sellers only see their own."""
    opportunities = await use_case.list(
        limit=limit,
        offset=offset,
        seller_id=actor.scope_seller(seller_id),
        client_id=client_id,
        stage=stage,
    )
    return OpportunityListResponse(
        opportunities=[OpportunityResponse.model_validate(o) for o in opportunities],
        limit=limit,
        offset=offset,
    )


@router.get("/{opportunity_id}", response_model=OpportunityResponse, responses=_ERRORS)
async def get_opportunity(
    opportunity_id: int,
    actor: Actor = Depends(require_seller),
    use_case: ManageOpportunityUseCase = Depends(get_manage_opportunity_use_case),
) -> OpportunityResponse:
    opportunity = await use_case.get(opportunity_id)
    ensure_owner(actor, opportunity.seller_id)
    return OpportunityResponse.model_validate(opportunity)


@router.patch("/{opportunity_id}", response_model=OpportunityResponse, responses=_ERRORS)
async def update_opportunity(
    opportunity_id: int,
    request: UpdateOpportunityRequest,
    actor: Actor = Depends(require_seller),
    use_case: ManageOpportunityUseCase = Depends(get_manage_opportunity_use_case),
) -> OpportunityResponse:
    """Set value adjustment, manual gross value or metadata."""
    await _check_owner(opportunity_id, actor, use_case)
    opportunity = await use_case.update(opportunity_id, request)
    return OpportunityResponse.model_validate(opportunity)


@router.delete(
    "/{opportunity_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses=_ERRORS,
)
async def delete_opportunity(
    opportunity_id: int,
    actor: Actor = Depends(require_seller),
    use_case: ManageOpportunityUseCase = Depends(get_manage_opportunity_use_case),
) -> Response:
    await _check_owner(opportunity_id, actor, use_case)
    await use_case.delete(opportunity_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{opportunity_id}/items",
    response_model=OpportunityResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
)
async def add_line_item(
    opportunity_id: int,
    request: LineItemRequest,
    actor: Actor = Depends(require_seller),
    opportunities: ManageOpportunityUseCase = Depends(get_manage_opportunity_use_case),
    use_case: EditProposalUseCase = Depends(get_edit_proposal_use_case),
) -> OpportunityResponse:
    await _check_owner(opportunity_id, actor, opportunities)
    result = await use_case.add_item(opportunity_id, request)
    return OpportunityResponse.model_validate(result.opportunity)


@router.patch(
    "/{opportunity_id}/items/{item_id}",
    response_model=OpportunityResponse,
    responses=_ERRORS,
)
async def update_line_item(
    opportunity_id: int,
    item_id: str,
    request: UpdateLineItemRequest,
    actor: Actor = Depends(require_seller),
    opportunities: ManageOpportunityUseCase = Depends(get_manage_opportunity_use_case),
    use_case: EditProposalUseCase = Depends(get_edit_proposal_use_case),
) -> OpportunityResponse:
    await _check_owner(opportunity_id, actor, opportunities)
    result = await use_case.update_item(opportunity_id, item_id, request)
    return OpportunityResponse.model_validate(result.opportunity)


@router.delete(
    "/{opportunity_id}/items/{item_id}",
    response_model=OpportunityResponse,
    responses=_ERRORS,
)
async def remove_line_item(
    opportunity_id: int,
    item_id: str,
    actor: Actor = Depends(require_seller),
    opportunities: ManageOpportunityUseCase = Depends(get_manage_opportunity_use_case),
    use_case: EditProposalUseCase = Depends(get_edit_proposal_use_case),
) -> OpportunityResponse:
    await _check_owner(opportunity_id, actor, opportunities)
    result = await use_case.remove_item(opportunity_id, item_id)
    return OpportunityResponse.model_validate(result.opportunity)


@router.post(
    "/{opportunity_id}/stage",
    response_model=StageChangeResponse,
    responses=_ERRORS,
)
async def change_stage(
    opportunity_id: int,
    request: ChangeStageRequest,
    actor: Actor = Depends(require_seller),
    opportunities: ManageOpportunityUseCase = Depends(get_manage_opportunity_use_case),
    use_case: ChangeStageUseCase = Depends(get_change_stage_use_case),
) -> StageChangeResponse:
    """
    Move the opportunity to another stage.

    Moving to won creates the sale atomically and returns it. Repeating
    the request returns the same sale with `changed: false`.
    """
    await _check_owner(opportunity_id, actor, opportunities)
    result = await use_case.execute(opportunity_id, request, is_admin=actor.is_admin)
    return StageChangeResponse(
        opportunity=OpportunityResponse.model_validate(result.opportunity),
        sale=SaleResponse.model_validate(result.sale) if result.sale else None,
        commission=(
            CommissionResponse.model_validate(result.commission) if result.commission else None
        ),
        changed=result.changed,
    )


@router.get(
    "/{opportunity_id}/snapshot",
    response_model=DocumentSnapshot,
    responses=_ERRORS,
)
async def opportunity_snapshot(
    opportunity_id: int,
    actor: Actor = Depends(require_seller),
    opportunities: ManageOpportunityUseCase = Depends(get_manage_opportunity_use_case),
    use_case: BuildSnapshotUseCase = Depends(get_build_snapshot_use_case),
) -> DocumentSnapshot:
    """Proposal document data for PDF rendering."""
    await _check_owner(opportunity_id, actor, opportunities)
    return await use_case.for_opportunity(opportunity_id)
