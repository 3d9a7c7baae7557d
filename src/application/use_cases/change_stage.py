"""Change Stage Use Case: pipeline moves, including conversion to a sale."""

from src.application.dto.requests import ChangeStageRequest
from src.config import get_logger
from src.core.services.opportunity_state_machine import (
    OpportunityStateMachine,
    StageTransitionResult,
)

logger = get_logger(__name__)


class ChangeStageUseCase:
    """Move an opportunity to another stage.

    Moving to won creates the sale and its items atomically; the
    commission is recorded afterwards and may be absent when no rule
    applies.
    """

    def __init__(self, state_machine: OpportunityStateMachine | None = None):
        self._state_machine = state_machine

    async def _get_state_machine(self) -> OpportunityStateMachine:
        if self._state_machine is None:
            from src.application.services import get_opportunity_state_machine

            self._state_machine = await get_opportunity_state_machine()
        return self._state_machine

    async def execute(
        self,
        opportunity_id: int,
        request: ChangeStageRequest,
        is_admin: bool = False,
    ) -> StageTransitionResult:
        """Execute change stage use case."""
        logger.info(
            "change_stage_started",
            opportunity_id=opportunity_id,
            to_stage=request.stage.value,
            payment_methods=len(request.payment_methods),
        )

        machine = await self._get_state_machine()
        result = await machine.transition(
            opportunity_id,
            request.stage,
            payment_methods=request.payment_methods,
            payment_values=request.payment_values,
            final_discount_percent=request.final_discount_percent,
            idempotency_key=request.idempotency_key,
            loss_reason=request.loss_reason,
            region=request.region,
            tax_percent=request.tax_percent,
            sold_at=request.sold_at,
            is_admin=is_admin,
        )

        logger.info(
            "change_stage_completed",
            opportunity_id=opportunity_id,
            stage=result.opportunity.stage.value,
            changed=result.changed,
            sale_id=result.sale.id if result.sale else None,
            commission_id=result.commission.id if result.commission else None,
        )
        return result
