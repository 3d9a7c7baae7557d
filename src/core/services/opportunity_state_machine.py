"""
Opportunity lifecycle.

lead → qualified → proposal → closing → {won | lost}

Any open stage may move to any other open stage or to lost. Entering won
goes through the sale finalizer: the sale write and the stage change
commit together or not at all. Won is absorbing; an admin may reopen a
lost opportunity into an open stage.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from src.config import get_logger
from src.core.entities.commission import Commission
from src.core.entities.opportunity import Opportunity, OpportunityStage
from src.core.entities.sale import Sale
from src.core.exceptions import (
    InvalidStageTransitionError,
    MissingPaymentMethodError,
    OpportunityClosedError,
    OpportunityNotFoundError,
)
from src.core.interfaces.opportunity_store import IOpportunityStore
from src.core.interfaces.unit_of_work import UnitOfWorkFactory
from src.core.services.proposal_aggregator import recalculate
from src.core.services.sale_finalizer import SaleFinalizer

logger = get_logger(__name__)


@dataclass
class StageTransitionResult:
    """Outcome of a stage change. `sale` is set only for won."""

    opportunity: Opportunity
    sale: Sale | None = None
    commission: Commission | None = None
    changed: bool = True


def ensure_editable(opportunity: Opportunity) -> None:
    """Content edits are only allowed while the opportunity is open."""
    if opportunity.is_closed:
        raise OpportunityClosedError(opportunity.id, opportunity.stage.value)


def check_transition(
    opportunity: Opportunity, to_stage: OpportunityStage, is_admin: bool = False
) -> None:
    """Raise InvalidStageTransitionError unless `to_stage` is reachable."""
    from_stage = opportunity.stage
    if from_stage == OpportunityStage.WON:
        raise InvalidStageTransitionError(
            opportunity.id, from_stage.value, to_stage.value, "opportunity already won"
        )
    if from_stage == OpportunityStage.LOST:
        if to_stage == OpportunityStage.WON:
            raise InvalidStageTransitionError(
                opportunity.id, from_stage.value, to_stage.value, "reopen the opportunity first"
            )
        if not is_admin:
            raise InvalidStageTransitionError(
                opportunity.id, from_stage.value, to_stage.value, "only an admin can reopen"
            )


def check_can_win(opportunity: Opportunity, payment_methods: list[str] | None) -> Decimal:
    """
    Preconditions for entering won. Returns the gross value.

    Raises:
        MissingPaymentMethodError: no payment method chosen.
        NoItemsNoManualValueError: no items and no manual gross value.
    """
    if not payment_methods or not any(m and m.strip() for m in payment_methods):
        raise MissingPaymentMethodError(opportunity.id)
    return recalculate(
        opportunity.items,
        opportunity.value_adjustment,
        opportunity.manual_gross_value,
        opportunity_id=opportunity.id,
    )


class OpportunityStateMachine:
    """
    Stage transitions; delegates the won conversion to the sale finalizer.

    Every other stage change re-reads the opportunity inside a unit of work
    and checks the transition there, so a conversion that committed in the
    meantime is seen rather than overwritten.
    """

    def __init__(
        self,
        opportunity_store: IOpportunityStore,
        sale_finalizer: SaleFinalizer,
        uow_factory: UnitOfWorkFactory | None = None,
    ) -> None:
        self._opportunities = opportunity_store
        self._finalizer = sale_finalizer
        self._uow_factory = uow_factory or sale_finalizer.uow_factory

    async def transition(
        self,
        opportunity_id: int,
        to_stage: OpportunityStage,
        *,
        payment_methods: list[str] | None = None,
        payment_values: dict[str, Any] | None = None,
        final_discount_percent: Any = 0,
        idempotency_key: str | None = None,
        loss_reason: str | None = None,
        region: str | None = None,
        tax_percent: Any = None,
        sold_at: datetime | None = None,
        is_admin: bool = False,
    ) -> StageTransitionResult:
        opportunity = await self._opportunities.get_opportunity(opportunity_id)
        if not opportunity:
            raise OpportunityNotFoundError(opportunity_id)

        if to_stage == OpportunityStage.WON:
            if opportunity.stage == OpportunityStage.WON:
                # Retried conversion: hand back the sale that already exists.
                sale, commission = await self._finalizer.existing_conversion(opportunity)
                return StageTransitionResult(
                    opportunity=opportunity, sale=sale, commission=commission, changed=False
                )
            check_transition(opportunity, to_stage, is_admin)
            check_can_win(opportunity, payment_methods)
            result = await self._finalizer.convert_opportunity(
                opportunity_id,
                payment_methods=payment_methods or [],
                payment_values=payment_values,
                final_discount_percent=final_discount_percent,
                idempotency_key=idempotency_key,
                region=region,
                tax_percent=tax_percent,
                sold_at=sold_at,
            )
            return StageTransitionResult(
                opportunity=result.opportunity,
                sale=result.sale,
                commission=result.commission,
                changed=result.created,
            )

        async with self._uow_factory() as uow:
            opportunity = await uow.opportunities.get_opportunity(opportunity_id)
            if not opportunity:
                raise OpportunityNotFoundError(opportunity_id)
            if opportunity.stage == to_stage:
                return StageTransitionResult(opportunity=opportunity, changed=False)

            check_transition(opportunity, to_stage, is_admin)

            previous = opportunity.stage
            opportunity.stage = to_stage
            if to_stage == OpportunityStage.LOST:
                opportunity.loss_reason = loss_reason
            elif previous == OpportunityStage.LOST:
                opportunity.loss_reason = None
            opportunity.updated_at = datetime.utcnow()

            updated = await uow.opportunities.update_opportunity(opportunity)
        logger.info(
            "opportunity_stage_changed",
            opportunity_id=opportunity_id,
            from_stage=previous.value,
            to_stage=to_stage.value,
        )
        return StageTransitionResult(opportunity=updated)
