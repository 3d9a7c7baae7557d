"""Document snapshots for export/PDF consumers. No rendering here."""

from collections.abc import Mapping

from src.core.entities.opportunity import Opportunity
from src.core.entities.sale import Sale
from src.core.entities.snapshot import DocumentSnapshot, SnapshotLine, SnapshotTotals
from src.core.money import ZERO, round_money, sum_money
from src.core.services.proposal_aggregator import items_total


def opportunity_snapshot(
    opportunity: Opportunity,
    currency: str,
    product_names: Mapping[str, str] | None = None,
    payment_methods: list[str] | None = None,
) -> DocumentSnapshot:
    names = product_names or {}
    return DocumentSnapshot(
        source="opportunity",
        source_id=opportunity.id,
        client_id=opportunity.client_id,
        seller_id=opportunity.seller_id,
        items=[
            SnapshotLine(
                product_id=item.product_id,
                product_name=names.get(item.product_id),
                quantity=item.quantity,
                unit_price=item.unit_price,
                discount_percent=item.discount_percent,
                subtotal=item.subtotal,
            )
            for item in opportunity.items
        ],
        totals=SnapshotTotals(
            items_total=items_total(opportunity.items),
            value_adjustment=opportunity.value_adjustment,
            gross_value=opportunity.gross_value,
        ),
        payment_methods=payment_methods or [],
        currency=currency,
    )


def sale_snapshot(sale: Sale, currency: str) -> DocumentSnapshot:
    subtotal = sum_money([item.subtotal for item in sale.items])
    if sale.items:
        before_discount = subtotal + sale.value_adjustment
    elif sale.manual_gross_value is not None:
        before_discount = sale.manual_gross_value
    else:
        before_discount = sale.gross_value
    discount_amount = round_money(before_discount - sale.gross_value) if before_discount else ZERO

    return DocumentSnapshot(
        source="sale",
        source_id=sale.id,
        client_id=sale.client_id,
        seller_id=sale.seller_id,
        items=[
            SnapshotLine(
                product_id=item.product_id,
                product_name=item.product_name,
                quantity=item.quantity,
                unit_price=item.unit_price,
                discount_percent=item.discount_percent,
                subtotal=item.subtotal,
            )
            for item in sale.items
        ],
        totals=SnapshotTotals(
            items_total=subtotal,
            value_adjustment=sale.value_adjustment,
            final_discount_percent=sale.final_discount_percent,
            final_discount_amount=discount_amount,
            gross_value=sale.gross_value,
            total_cost=sale.total_cost,
            estimated_profit=sale.estimated_profit,
        ),
        payment_methods=sale.payment_methods,
        currency=currency,
    )
