"""Commission rule administration endpoints."""

from fastapi import APIRouter, Depends, status

from src.api.dependencies import (
    Actor,
    get_manage_commission_rules_use_case,
    require_admin,
)
from src.application.dto.requests import CommissionRuleRequest, UpdateCommissionRuleRequest
from src.application.dto.responses import CommissionRuleResponse, ErrorResponse
from src.application.use_cases import ManageCommissionRulesUseCase

router = APIRouter(prefix="/api/commission-rules", tags=["commission-rules"])


@router.post(
    "",
    response_model=CommissionRuleResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
async def create_rule(
    request: CommissionRuleRequest,
    actor: Actor = Depends(require_admin),
    use_case: ManageCommissionRulesUseCase = Depends(get_manage_commission_rules_use_case),
) -> CommissionRuleResponse:
    """Add a product, category or global rule. Applies to sales finalized afterwards."""
    return CommissionRuleResponse.model_validate(await use_case.create(request))


@router.get("", response_model=list[CommissionRuleResponse])
async def list_rules(
    active_only: bool = False,
    actor: Actor = Depends(require_admin),
    use_case: ManageCommissionRulesUseCase = Depends(get_manage_commission_rules_use_case),
) -> list[CommissionRuleResponse]:
    rules = await use_case.list(active_only=active_only)
    return [CommissionRuleResponse.model_validate(r) for r in rules]


@router.patch(
    "/{rule_id}",
    response_model=CommissionRuleResponse,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_rule(
    rule_id: int,
    request: UpdateCommissionRuleRequest,
    actor: Actor = Depends(require_admin),
    use_case: ManageCommissionRulesUseCase = Depends(get_manage_commission_rules_use_case),
) -> CommissionRuleResponse:
    return CommissionRuleResponse.model_validate(await use_case.update(rule_id, request))
