"""Edit Proposal Use Case: add, reprice and remove proposal line items."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.application.dto.requests import LineItemRequest, UpdateLineItemRequest
from src.config import get_logger
from src.core.entities.catalog import Product
from src.core.entities.opportunity import Opportunity, ProposalLineItem
from src.core.exceptions import (
    LineItemNotFoundError,
    OpportunityNotFoundError,
    ProductNotFoundError,
    ValidationError,
)
from src.core.interfaces.catalog import ICatalogService
from src.core.interfaces.opportunity_store import IOpportunityStore
from src.core.interfaces.unit_of_work import IUnitOfWork, UnitOfWorkFactory
from src.core.services import line_item_pricing as pricing
from src.core.services.opportunity_state_machine import ensure_editable

logger = get_logger(__name__)


@dataclass
class EditProposalResult:
    """Result of a line item edit."""

    opportunity: Opportunity
    item: ProposalLineItem | None = None


class EditProposalUseCase:
    """
    Line item edits on an open proposal.

    The product's discount limit is read from the catalog on every edit,
    so a limit lowered after the row was added applies to later edits.

    Catalog lookups happen first. The opportunity is then re-read, checked
    and saved inside one unit of work, so an edit racing a conversion
    fails with OpportunityClosedError instead of reopening the won row.
    """

    def __init__(
        self,
        opportunity_store: IOpportunityStore | None = None,
        catalog: ICatalogService | None = None,
        uow_factory: UnitOfWorkFactory | None = None,
    ):
        self._opportunity_store = opportunity_store
        self._catalog = catalog
        self._uow_factory = uow_factory

    async def _get_opportunity_store(self) -> IOpportunityStore:
        if self._opportunity_store is None:
            from src.infrastructure.storage.sqlite import get_opportunity_store

            self._opportunity_store = await get_opportunity_store()
        return self._opportunity_store

    async def _get_catalog(self) -> ICatalogService:
        if self._catalog is None:
            from src.infrastructure.storage.sqlite import get_catalog_store

            self._catalog = await get_catalog_store()
        return self._catalog

    def _get_uow_factory(self) -> UnitOfWorkFactory:
        if self._uow_factory is None:
            from src.infrastructure.storage.sqlite import sqlite_unit_of_work

            self._uow_factory = sqlite_unit_of_work
        return self._uow_factory

    async def _peek(self, opportunity_id: int) -> Opportunity:
        """Unlocked read, used only to plan catalog lookups."""
        store = await self._get_opportunity_store()
        opportunity = await store.get_opportunity(opportunity_id)
        if opportunity is None:
            raise OpportunityNotFoundError(opportunity_id)
        ensure_editable(opportunity)
        return opportunity

    @staticmethod
    async def _load_editable(uow: IUnitOfWork, opportunity_id: int) -> Opportunity:
        opportunity = await uow.opportunities.get_opportunity(opportunity_id)
        if opportunity is None:
            raise OpportunityNotFoundError(opportunity_id)
        ensure_editable(opportunity)
        return opportunity

    async def _get_product(self, product_id: str) -> Product:
        catalog = await self._get_catalog()
        product = await catalog.get_product(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        return product

    @staticmethod
    async def _save(uow: IUnitOfWork, opportunity: Opportunity) -> Opportunity:
        opportunity.updated_at = datetime.utcnow()
        return await uow.opportunities.update_opportunity(opportunity)

    async def add_item(
        self, opportunity_id: int, request: LineItemRequest
    ) -> EditProposalResult:
        """Price a catalog product and append it to the proposal."""
        logger.info(
            "add_line_item_started",
            opportunity_id=opportunity_id,
            product_id=request.product_id,
            quantity=request.quantity,
        )

        await self._peek(opportunity_id)
        product = await self._get_product(request.product_id)
        item = pricing.add_item(
            product,
            request.quantity,
            override_price=request.unit_price,
            override_discount=request.discount_percent,
        )
        item.opportunity_id = opportunity_id

        async with self._get_uow_factory()() as uow:
            opportunity = await self._load_editable(uow, opportunity_id)
            opportunity.items.append(item)
            saved = await self._save(uow, opportunity)

        logger.info(
            "line_item_added",
            opportunity_id=opportunity_id,
            item_id=item.id,
            subtotal=str(item.subtotal),
            gross_value=str(saved.gross_value),
        )
        return EditProposalResult(opportunity=saved, item=item)

    async def update_item(
        self, opportunity_id: int, item_id: str, request: UpdateLineItemRequest
    ) -> EditProposalResult:
        """Change quantity and either the unit price or the discount."""
        if request.unit_price is not None and request.discount_percent is not None:
            raise ValidationError(
                "unit_price",
                "set either unit_price or discount_percent, not both",
            )

        current = (await self._peek(opportunity_id)).find_item(item_id)
        if current is None:
            raise LineItemNotFoundError(opportunity_id, item_id)
        max_discount = None
        if request.unit_price is not None or request.discount_percent is not None:
            max_discount = await self._max_discount(current.product_id)

        async with self._get_uow_factory()() as uow:
            opportunity = await self._load_editable(uow, opportunity_id)
            item = opportunity.find_item(item_id)
            if item is None:
                raise LineItemNotFoundError(opportunity_id, item_id)

            updated = item
            if request.quantity is not None:
                updated = pricing.set_quantity(updated, request.quantity)
            if request.unit_price is not None:
                updated = pricing.set_unit_price(updated, request.unit_price, max_discount)
            elif request.discount_percent is not None:
                updated = pricing.set_discount_percent(
                    updated, request.discount_percent, max_discount
                )

            opportunity.items = [updated if i.id == item_id else i for i in opportunity.items]
            saved = await self._save(uow, opportunity)

        logger.info(
            "line_item_updated",
            opportunity_id=opportunity_id,
            item_id=item_id,
            subtotal=str(updated.subtotal),
        )
        return EditProposalResult(opportunity=saved, item=updated)

    async def remove_item(self, opportunity_id: int, item_id: str) -> EditProposalResult:
        async with self._get_uow_factory()() as uow:
            opportunity = await self._load_editable(uow, opportunity_id)
            if opportunity.find_item(item_id) is None:
                raise LineItemNotFoundError(opportunity_id, item_id)

            opportunity.items = [i for i in opportunity.items if i.id != item_id]
            saved = await self._save(uow, opportunity)
        logger.info("line_item_removed", opportunity_id=opportunity_id, item_id=item_id)
        return EditProposalResult(opportunity=saved)

    async def _max_discount(self, product_id: str) -> Decimal:
        product = await self._get_product(product_id)
        return product.max_discount_percent
