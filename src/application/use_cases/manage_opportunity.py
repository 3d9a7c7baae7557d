"""Manage Opportunity Use Case: create, read, edit header fields, delete."""

from datetime import datetime

from src.application.dto.requests import CreateOpportunityRequest, UpdateOpportunityRequest
from src.config import get_logger
from src.core.entities.opportunity import Opportunity, OpportunityStage
from src.core.exceptions import (
    ManualValueNotAllowedError,
    OpportunityClosedError,
    OpportunityNotFoundError,
)
from src.core.interfaces.opportunity_store import IOpportunityStore
from src.core.interfaces.unit_of_work import UnitOfWorkFactory
from src.core.money import to_decimal
from src.core.services.line_item_pricing import validate_percent, validate_price
from src.core.services.opportunity_state_machine import ensure_editable

logger = get_logger(__name__)


class ManageOpportunityUseCase:
    """
    Opportunity lifecycle outside of line items and stage changes.

    Edits and deletes re-read the row inside a unit of work.
    """

    def __init__(
        self,
        opportunity_store: IOpportunityStore | None = None,
        uow_factory: UnitOfWorkFactory | None = None,
    ):
        self._opportunity_store = opportunity_store
        self._uow_factory = uow_factory

    async def _get_opportunity_store(self) -> IOpportunityStore:
        if self._opportunity_store is None:
            from src.infrastructure.storage.sqlite import get_opportunity_store

            self._opportunity_store = await get_opportunity_store()
        return self._opportunity_store

    def _get_uow_factory(self) -> UnitOfWorkFactory:
        if self._uow_factory is None:
            from src.infrastructure.storage.sqlite import sqlite_unit_of_work

            self._uow_factory = sqlite_unit_of_work
        return self._uow_factory

    async def create(self, request: CreateOpportunityRequest, seller_id: str) -> Opportunity:
        """Open a lead for `seller_id`."""
        logger.info("create_opportunity_started", client_id=request.client_id, seller_id=seller_id)

        store = await self._get_opportunity_store()
        margin = (
            validate_percent(request.estimated_margin_percent, "estimated_margin_percent")
            if request.estimated_margin_percent is not None
            else None
        )
        opportunity = Opportunity(
            client_id=request.client_id,
            seller_id=seller_id,
            stage=OpportunityStage.LEAD,
            probability=request.probability,
            estimated_margin_percent=margin,
            expected_close_date=request.expected_close_date,
            notes=request.notes,
        )
        created = await store.create_opportunity(opportunity)

        logger.info("opportunity_created", opportunity_id=created.id, seller_id=seller_id)
        return created

    async def get(self, opportunity_id: int) -> Opportunity:
        store = await self._get_opportunity_store()
        opportunity = await store.get_opportunity(opportunity_id)
        if opportunity is None:
            raise OpportunityNotFoundError(opportunity_id)
        return opportunity

    async def list(
        self,
        limit: int = 50,
        offset: int = 0,
        seller_id: str | None = None,
        client_id: str | None = None,
        stage: OpportunityStage | None = None,
    ) -> list[Opportunity]:
        store = await self._get_opportunity_store()
        return await store.list_opportunities(
            limit=limit,
            offset=offset,
            seller_id=seller_id,
            client_id=client_id,
            stage=stage,
        )

    async def update(
        self, opportunity_id: int, request: UpdateOpportunityRequest
    ) -> Opportunity:
        """
        Apply the fields present in the request.

        A manual gross value is only accepted while the proposal has no
        items; items always take precedence over it.
        """
        logger.info(
            "update_opportunity_started",
            opportunity_id=opportunity_id,
            fields=sorted(request.model_fields_set),
        )

        async with self._get_uow_factory()() as uow:
            opportunity = await uow.opportunities.get_opportunity(opportunity_id)
            if opportunity is None:
                raise OpportunityNotFoundError(opportunity_id)
            ensure_editable(opportunity)
            fields = request.model_fields_set

            if "value_adjustment" in fields and request.value_adjustment is not None:
                opportunity.value_adjustment = to_decimal(
                    request.value_adjustment, "value_adjustment"
                )
            if "manual_gross_value" in fields:
                if request.manual_gross_value is not None:
                    if opportunity.items:
                        raise ManualValueNotAllowedError(opportunity_id, len(opportunity.items))
                    opportunity.manual_gross_value = validate_price(
                        request.manual_gross_value, "manual_gross_value"
                    )
                else:
                    opportunity.manual_gross_value = None
            if "probability" in fields and request.probability is not None:
                opportunity.probability = request.probability
            if "estimated_margin_percent" in fields:
                opportunity.estimated_margin_percent = (
                    validate_percent(request.estimated_margin_percent, "estimated_margin_percent")
                    if request.estimated_margin_percent is not None
                    else None
                )
            if "expected_close_date" in fields:
                opportunity.expected_close_date = request.expected_close_date
            if "notes" in fields:
                opportunity.notes = request.notes

            opportunity.updated_at = datetime.utcnow()
            return await uow.opportunities.update_opportunity(opportunity)

    async def delete(self, opportunity_id: int) -> bool:
        """Delete an open opportunity. Won and lost ones are kept for history."""
        async with self._get_uow_factory()() as uow:
            opportunity = await uow.opportunities.get_opportunity(opportunity_id)
            if opportunity is None:
                raise OpportunityNotFoundError(opportunity_id)
            if opportunity.is_closed:
                raise OpportunityClosedError(opportunity_id, opportunity.stage.value)
            deleted = await uow.opportunities.delete_opportunity(opportunity_id)
        logger.info("opportunity_deleted", opportunity_id=opportunity_id)
        return deleted
