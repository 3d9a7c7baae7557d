"""
Sale finalization.

Turns a won opportunity (or a walk-in order) into a Sale with frozen
SaleLineItem copies. The sale row, its items and, for conversions, the
opportunity's move to won are written in one unit of work. The commission
step runs after that commit, so a commission failure never undoes a sale.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from src.config import get_logger, get_settings
from src.core.entities.commission import Commission, CommissionPayStatus
from src.core.entities.events import OpportunityWon, SaleCreated
from src.core.entities.opportunity import Opportunity, OpportunityStage, ProposalLineItem
from src.core.entities.sale import Sale, SaleLineItem, SaleStatus
from src.core.exceptions import (
    ConversionFailedError,
    DatabaseError,
    DiscountExceedsLimitError,
    EngineError,
    InvalidStageTransitionError,
    MissingPaymentMethodError,
    NoItemsNoManualValueError,
    OpportunityNotFoundError,
    ProductNotFoundError,
    SaleCanceledError,
    SaleNotFoundError,
    ServiceRecordNotFoundError,
    ValidationError,
)
from src.core.interfaces.catalog import ICatalogService
from src.core.interfaces.events import IEventPublisher
from src.core.interfaces.unit_of_work import IUnitOfWork, UnitOfWorkFactory
from src.core.money import ZERO, apply_discount, percent_of, round_money, sum_money, to_decimal
from src.core.services.commission_ledger import CommissionLedger, next_pay_status
from src.core.services.line_item_pricing import add_item, validate_percent

logger = get_logger(__name__)


@dataclass
class SaleItemInput:
    """One requested line on a direct sale or sale edit."""

    product_id: str
    quantity: int
    unit_price: Any = None
    discount_percent: Any = None


@dataclass
class FinalizeResult:
    sale: Sale
    commission: Commission | None = None
    created: bool = True
    opportunity: Opportunity | None = None


def validate_payment_methods(
    payment_methods: Sequence[str] | None,
    payment_values: dict[str, Any] | None = None,
    max_methods: int = 2,
    opportunity_id: int | None = None,
) -> tuple[list[str], dict[str, Decimal]]:
    """
    Normalize payment methods (1..max, non-blank, distinct) and their
    optional amounts.
    """
    if not payment_methods:
        raise MissingPaymentMethodError(opportunity_id)

    methods = [m.strip() for m in payment_methods if isinstance(m, str)]
    if len(methods) != len(payment_methods) or not all(methods):
        raise ValidationError("payment_methods", "names must be non-empty strings", payment_methods)
    if len(methods) > max_methods:
        raise ValidationError(
            "payment_methods", f"at most {max_methods} payment methods", payment_methods
        )
    if len(set(methods)) != len(methods):
        raise ValidationError("payment_methods", "duplicate payment method", payment_methods)

    values: dict[str, Decimal] = {}
    for method, raw in (payment_values or {}).items():
        if method not in methods:
            raise ValidationError("payment_values", f"unknown payment method '{method}'", method)
        amount = to_decimal(raw, "payment_values")
        if amount < ZERO:
            raise ValidationError("payment_values", "must not be negative", raw)
        values[method] = amount
    return methods, values


def compute_totals(
    items: Sequence[SaleLineItem],
    final_discount_percent: Decimal,
    value_adjustment: Decimal = ZERO,
    manual_gross_value: Decimal | None = None,
    estimated_margin_percent: Decimal | None = None,
    service_total: Decimal | None = None,
    opportunity_id: int | None = None,
) -> tuple[Decimal, Decimal, Decimal]:
    """
    (gross_value, total_cost, estimated_profit) of a sale.

    With items: gross = round((Σ subtotal + adjustment) × (1 − fd/100), 2)
    and profit = gross − Σ quantity × unit_cost. Without items the gross
    comes from the service total or the manual value; a service sale has
    no cost, a manual-value sale estimates profit from the margin percent.
    """
    if items:
        base = sum_money([item.subtotal for item in items]) + value_adjustment
        gross = round_money(apply_discount(base, final_discount_percent))
        cost = sum_money([item.line_cost for item in items])
        profit = gross - cost
    elif service_total is not None:
        gross = round_money(apply_discount(service_total, final_discount_percent))
        cost = round_money(ZERO)
        profit = gross
    elif manual_gross_value is not None:
        gross = round_money(apply_discount(manual_gross_value, final_discount_percent))
        cost = round_money(ZERO)
        profit = round_money(percent_of(gross, estimated_margin_percent or ZERO))
    else:
        raise NoItemsNoManualValueError(opportunity_id)

    if gross < ZERO:
        raise ValidationError("gross_value", "must not be negative", gross)
    return gross, cost, profit


class SaleFinalizer:
    """Builds, persists and edits sales."""

    def __init__(
        self,
        catalog: ICatalogService,
        uow_factory: UnitOfWorkFactory,
        commission_ledger: CommissionLedger | None = None,
        event_publisher: IEventPublisher | None = None,
        max_payment_methods: int | None = None,
    ) -> None:
        self._catalog = catalog
        self._uow_factory = uow_factory
        self._ledger = commission_ledger
        self._events = event_publisher
        if max_payment_methods is None:
            max_payment_methods = get_settings().pricing.max_payment_methods
        self._max_payment_methods = max_payment_methods

    # Line items

    @property
    def uow_factory(self) -> UnitOfWorkFactory:
        return self._uow_factory

    async def snapshot_items(
        self,
        items: Sequence[ProposalLineItem],
        recheck_limits: bool = True,
        catalog: ICatalogService | None = None,
    ) -> list[SaleLineItem]:
        """
        Copy proposal lines into sale lines, reading name, category, cost
        and discount limit from the catalog now rather than from the proposal.

        Inside a unit of work pass `uow.catalog` so the reads share its
        connection.
        """
        if catalog is None:
            catalog = self._catalog
        lines = []
        for item in items:
            product = await catalog.get_product(item.product_id)
            if product is None:
                raise ProductNotFoundError(item.product_id)
            if recheck_limits and item.discount_percent > product.max_discount_percent:
                raise DiscountExceedsLimitError(
                    product.id, item.discount_percent, product.max_discount_percent
                )
            lines.append(
                SaleLineItem(
                    product_id=product.id,
                    product_name=product.name,
                    category=product.category,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    discount_percent=item.discount_percent,
                    unit_cost=product.unit_cost,
                )
            )
        return lines

    async def price_items(self, requested: Sequence[SaleItemInput]) -> list[ProposalLineItem]:
        """Price walk-in lines the same way proposal lines are priced."""
        priced = []
        for line in requested:
            product = await self._catalog.get_product(line.product_id)
            if product is None:
                raise ProductNotFoundError(line.product_id)
            priced.append(add_item(product, line.quantity, line.unit_price, line.discount_percent))
        return priced

    async def _service_total(
        self, service_id: str | None, catalog: ICatalogService | None = None
    ) -> Decimal | None:
        if not service_id:
            return None
        if catalog is None:
            catalog = self._catalog
        record = await catalog.get_service_item(service_id)
        if record is None:
            raise ServiceRecordNotFoundError(service_id)
        return record.total_value

    # Build

    async def finalize(
        self,
        *,
        client_id: str,
        seller_id: str,
        items: Sequence[ProposalLineItem],
        payment_methods: Sequence[str] | None,
        final_discount_percent: Any = 0,
        payment_values: dict[str, Any] | None = None,
        value_adjustment: Decimal = ZERO,
        manual_gross_value: Decimal | None = None,
        estimated_margin_percent: Decimal | None = None,
        service_id: str | None = None,
        opportunity_id: int | None = None,
        idempotency_key: str | None = None,
        region: str | None = None,
        tax_percent: Any = None,
        sold_at: datetime | None = None,
        catalog: ICatalogService | None = None,
    ) -> Sale:
        """
        Build an unsaved Sale. Every input is validated here, before any
        write is attempted.
        """
        final_discount = validate_percent(final_discount_percent, "final_discount_percent")
        methods, values = validate_payment_methods(
            payment_methods, payment_values, self._max_payment_methods, opportunity_id
        )
        tax = validate_percent(tax_percent, "tax_percent") if tax_percent is not None else None

        lines = await self.snapshot_items(items, catalog=catalog)
        service_total = await self._service_total(service_id, catalog)
        if not lines and service_id and service_total is None:
            raise ValidationError("service_id", "service record has no total value", service_id)

        adjustment = value_adjustment if lines else ZERO
        gross, cost, profit = compute_totals(
            lines,
            final_discount,
            value_adjustment=adjustment,
            manual_gross_value=manual_gross_value,
            estimated_margin_percent=estimated_margin_percent,
            service_total=service_total,
            opportunity_id=opportunity_id,
        )

        return Sale(
            client_id=client_id,
            seller_id=seller_id,
            opportunity_id=opportunity_id,
            service_id=service_id,
            items=lines,
            value_adjustment=adjustment,
            final_discount_percent=final_discount,
            manual_gross_value=None if lines else manual_gross_value,
            estimated_margin_percent=estimated_margin_percent,
            gross_value=gross,
            total_cost=cost,
            estimated_profit=profit,
            payment_methods=methods,
            payment_values=values,
            region=region,
            tax_percent=tax,
            idempotency_key=idempotency_key,
            sold_at=sold_at or datetime.utcnow(),
        )

    # Persist

    async def create_direct(
        self,
        *,
        client_id: str,
        seller_id: str,
        items: Sequence[SaleItemInput],
        payment_methods: Sequence[str] | None,
        final_discount_percent: Any = 0,
        payment_values: dict[str, Any] | None = None,
        manual_gross_value: Any = None,
        estimated_margin_percent: Any = None,
        service_id: str | None = None,
        idempotency_key: str | None = None,
        region: str | None = None,
        tax_percent: Any = None,
        sold_at: datetime | None = None,
    ) -> FinalizeResult:
        """Walk-in sale bypassing the opportunity pipeline."""
        priced = await self.price_items(items)
        sale = await self.finalize(
            client_id=client_id,
            seller_id=seller_id,
            items=priced,
            payment_methods=payment_methods,
            final_discount_percent=final_discount_percent,
            payment_values=payment_values,
            manual_gross_value=(
                to_decimal(manual_gross_value, "manual_gross_value")
                if manual_gross_value is not None
                else None
            ),
            estimated_margin_percent=(
                validate_percent(estimated_margin_percent, "estimated_margin_percent")
                if estimated_margin_percent is not None
                else None
            ),
            service_id=service_id,
            idempotency_key=idempotency_key,
            region=region,
            tax_percent=tax_percent,
            sold_at=sold_at,
        )

        existing = None
        try:
            async with self._uow_factory() as uow:
                if idempotency_key:
                    existing = await uow.sales.get_sale_by_idempotency_key(idempotency_key)
                if existing is None:
                    saved = await uow.sales.create_sale(sale)
        except EngineError:
            raise
        except Exception as e:
            logger.error("sale_write_failed", seller_id=seller_id, error=str(e))
            raise DatabaseError("create_sale", str(e)) from e

        if existing is not None:
            logger.info("sale_resubmitted", sale_id=existing.id, idempotency_key=idempotency_key)
            commission = await self._after_commit(existing, emit=False)
            return FinalizeResult(sale=existing, commission=commission, created=False)

        logger.info(
            "sale_created",
            sale_id=saved.id,
            seller_id=seller_id,
            items=len(saved.items),
            gross_value=str(saved.gross_value),
        )
        commission = await self._after_commit(saved)
        return FinalizeResult(sale=saved, commission=commission)

    async def convert_opportunity(
        self,
        opportunity_id: int,
        *,
        payment_methods: Sequence[str],
        final_discount_percent: Any = 0,
        payment_values: dict[str, Any] | None = None,
        idempotency_key: str | None = None,
        region: str | None = None,
        tax_percent: Any = None,
        sold_at: datetime | None = None,
    ) -> FinalizeResult:
        """
        Write the sale, its items and the opportunity's move to won as
        one unit. Validation failures surface as themselves; any failure
        during the write is wrapped in ConversionFailedError. Either way
        the opportunity keeps its previous stage.
        """
        existing = None
        try:
            async with self._uow_factory() as uow:
                opportunity = await uow.opportunities.get_opportunity(opportunity_id)
                if opportunity is None:
                    raise OpportunityNotFoundError(opportunity_id)

                if opportunity.stage == OpportunityStage.WON:
                    # Lost the race to a concurrent conversion.
                    existing = await self._find_converted_sale(uow, opportunity)
                else:
                    if opportunity.is_closed:
                        raise InvalidStageTransitionError(
                            opportunity_id,
                            opportunity.stage.value,
                            OpportunityStage.WON.value,
                            "reopen the opportunity first",
                        )
                    sale = await self.finalize(
                        client_id=opportunity.client_id,
                        seller_id=opportunity.seller_id,
                        items=opportunity.items,
                        payment_methods=payment_methods,
                        final_discount_percent=final_discount_percent,
                        payment_values=payment_values,
                        value_adjustment=opportunity.value_adjustment,
                        manual_gross_value=opportunity.manual_gross_value,
                        estimated_margin_percent=opportunity.estimated_margin_percent,
                        opportunity_id=opportunity_id,
                        idempotency_key=idempotency_key,
                        region=region,
                        tax_percent=tax_percent,
                        sold_at=sold_at,
                        catalog=uow.catalog,
                    )
                    try:
                        saved = await uow.sales.create_sale(sale)
                        opportunity.stage = OpportunityStage.WON
                        opportunity.sale_id = saved.id
                        opportunity.updated_at = datetime.utcnow()
                        opportunity = await uow.opportunities.update_opportunity(opportunity)
                    except EngineError as e:
                        raise ConversionFailedError(opportunity_id, e.message) from e
                    except Exception as e:
                        raise ConversionFailedError(opportunity_id, str(e)) from e
        except ConversionFailedError as e:
            logger.error(
                "conversion_failed",
                opportunity_id=opportunity_id,
                reason=e.details.get("reason"),
            )
            raise
        except EngineError:
            raise
        except Exception as e:
            # Commit itself failed.
            logger.error("conversion_failed", opportunity_id=opportunity_id, reason=str(e))
            raise ConversionFailedError(opportunity_id, str(e)) from e

        if existing is not None:
            commission = await self._after_commit(existing, emit=False)
            return FinalizeResult(
                sale=existing, commission=commission, created=False, opportunity=opportunity
            )

        logger.info(
            "opportunity_converted",
            opportunity_id=opportunity_id,
            sale_id=saved.id,
            gross_value=str(saved.gross_value),
        )
        if self._events:
            await self._events.publish(
                OpportunityWon(
                    opportunity_id=opportunity_id,
                    sale_id=saved.id,
                    seller_id=saved.seller_id,
                    client_id=saved.client_id,
                    gross_value=saved.gross_value,
                )
            )
        commission = await self._after_commit(saved)
        return FinalizeResult(sale=saved, commission=commission, opportunity=opportunity)

    async def existing_conversion(
        self, opportunity: Opportunity
    ) -> tuple[Sale, Commission | None]:
        """Sale (and commission) of an already-won opportunity."""
        async with self._uow_factory() as uow:
            sale = await self._find_converted_sale(uow, opportunity)
        return sale, await self._after_commit(sale, emit=False)

    @staticmethod
    async def _find_converted_sale(uow: IUnitOfWork, opportunity: Opportunity) -> Sale:
        sale = None
        if opportunity.sale_id is not None:
            sale = await uow.sales.get_sale(opportunity.sale_id)
        if sale is None:
            sale = await uow.sales.get_sale_by_opportunity(opportunity.id)
        if sale is None:
            raise SaleNotFoundError(opportunity.sale_id or 0)
        return sale

    async def _after_commit(self, sale: Sale, emit: bool = True) -> Commission | None:
        """Publish SaleCreated and run the commission step."""
        if emit and self._events:
            await self._events.publish(
                SaleCreated(
                    sale_id=sale.id,
                    seller_id=sale.seller_id,
                    client_id=sale.client_id,
                    gross_value=sale.gross_value,
                    opportunity_id=sale.opportunity_id,
                )
            )
        if self._ledger is None or sale.is_canceled:
            return None
        return await self._ledger.ensure_commission(sale)

    # Edit

    async def update_sale(
        self,
        sale_id: int,
        *,
        items: Sequence[SaleItemInput] | None = None,
        payment_methods: Sequence[str] | None = None,
        final_discount_percent: Any = None,
        payment_values: dict[str, Any] | None = None,
        manual_gross_value: Any = None,
        region: str | None = None,
        tax_percent: Any = None,
    ) -> Sale:
        """
        Recompute totals and replace the sale's item set. Fields left as
        None keep their current value. The commission is not touched.
        """
        # Price outside the write lock; catalog reads use their own connection.
        priced = await self.price_items(items) if items is not None else None
        lines = await self.snapshot_items(priced, recheck_limits=False) if priced is not None else None

        async with self._uow_factory() as uow:
            sale = await uow.sales.get_sale(sale_id)
            if sale is None:
                raise SaleNotFoundError(sale_id)
            if sale.is_canceled:
                raise SaleCanceledError(sale_id)

            if lines is None:
                lines = sale.items
            final_discount = (
                validate_percent(final_discount_percent, "final_discount_percent")
                if final_discount_percent is not None
                else sale.final_discount_percent
            )
            methods, values = validate_payment_methods(
                payment_methods if payment_methods is not None else sale.payment_methods,
                payment_values if payment_values is not None else sale.payment_values,
                self._max_payment_methods,
            )
            manual = (
                to_decimal(manual_gross_value, "manual_gross_value")
                if manual_gross_value is not None
                else sale.manual_gross_value
            )
            service_total = (
                None if lines else await self._service_total(sale.service_id, uow.catalog)
            )
            adjustment = sale.value_adjustment if lines else ZERO

            gross, cost, profit = compute_totals(
                lines,
                final_discount,
                value_adjustment=adjustment,
                manual_gross_value=manual,
                estimated_margin_percent=sale.estimated_margin_percent,
                service_total=service_total,
                opportunity_id=sale.opportunity_id,
            )

            sale = sale.model_copy(
                update={
                    "items": lines,
                    "value_adjustment": adjustment,
                    "final_discount_percent": final_discount,
                    "manual_gross_value": None if lines else manual,
                    "gross_value": gross,
                    "total_cost": cost,
                    "estimated_profit": profit,
                    "payment_methods": methods,
                    "payment_values": values,
                    "region": region if region is not None else sale.region,
                    "tax_percent": (
                        validate_percent(tax_percent, "tax_percent")
                        if tax_percent is not None
                        else sale.tax_percent
                    ),
                    "updated_at": datetime.utcnow(),
                }
            )
            saved = await uow.sales.update_sale(sale)

        logger.info(
            "sale_updated",
            sale_id=sale_id,
            items=len(saved.items),
            gross_value=str(saved.gross_value),
        )
        return saved

    async def set_payment_received(self, sale_id: int, received: bool) -> Sale:
        async with self._uow_factory() as uow:
            sale = await uow.sales.get_sale(sale_id)
            if sale is None:
                raise SaleNotFoundError(sale_id)
            if sale.is_canceled:
                raise SaleCanceledError(sale_id)
            if sale.payment_received == received:
                return sale
            sale = sale.model_copy(
                update={"payment_received": received, "updated_at": datetime.utcnow()}
            )
            saved = await uow.sales.update_sale(sale)

        logger.info("sale_payment_received_set", sale_id=sale_id, payment_received=received)
        return saved

    async def cancel_sale(self, sale_id: int) -> Sale:
        """
        Cancel a sale and, in the same transaction, its pending or
        approved commission. A paid commission stays paid.
        """
        async with self._uow_factory() as uow:
            sale = await uow.sales.get_sale(sale_id)
            if sale is None:
                raise SaleNotFoundError(sale_id)
            if sale.is_canceled:
                return sale

            sale = sale.model_copy(
                update={"status": SaleStatus.CANCELED, "updated_at": datetime.utcnow()}
            )
            saved = await uow.sales.update_sale(sale)

            commission = await uow.commissions.get_active_commission(sale_id)
            if commission is not None:
                if commission.pay_status == CommissionPayStatus.PAID:
                    logger.warning(
                        "paid_commission_on_canceled_sale",
                        sale_id=sale_id,
                        commission_id=commission.id,
                    )
                else:
                    await uow.commissions.update_commission(
                        next_pay_status(commission, CommissionPayStatus.CANCELED)
                    )

        logger.info("sale_canceled", sale_id=sale_id)
        return saved
