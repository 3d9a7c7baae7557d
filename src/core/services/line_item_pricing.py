"""
Line-item pricing.

Pure functions over an explicit anchor price (the product's list price
when the row was added). Editing the unit price re-derives the discount
percent and vice versa; editing the quantity touches neither. Only the
subtotal is rounded, so repeated edits never compound rounding error.
"""

from decimal import Decimal
from typing import Any

from src.config import get_logger
from src.core.entities.catalog import Product
from src.core.entities.opportunity import ProposalLineItem
from src.core.exceptions import (
    DiscountExceedsLimitError,
    ProductInactiveError,
    ValidationError,
)
from src.core.money import HUNDRED, ZERO, apply_discount, to_decimal

logger = get_logger(__name__)


def validate_quantity(quantity: Any) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("quantity", "must be an integer", quantity)
    if quantity < 1:
        raise ValidationError("quantity", "must be at least 1", quantity)
    return quantity


def validate_percent(value: Any, field: str = "discount_percent") -> Decimal:
    percent = to_decimal(value, field)
    if percent < ZERO or percent > HUNDRED:
        raise ValidationError(field, "must be between 0 and 100", value)
    return percent


def validate_price(value: Any, field: str = "unit_price") -> Decimal:
    price = to_decimal(value, field)
    if price < ZERO:
        raise ValidationError(field, "must not be negative", value)
    return price


def derive_discount(anchor: Decimal | None, unit_price: Decimal) -> Decimal:
    """(anchor − unit_price) / anchor × 100, floored at 0. Unrounded."""
    if not anchor:
        return ZERO
    return max(ZERO, (anchor - unit_price) / anchor * HUNDRED)


def derive_unit_price(anchor: Decimal, discount_percent: Decimal) -> Decimal:
    """anchor × (1 − discount/100). Unrounded."""
    return apply_discount(anchor, discount_percent)


def _check_limit(product_id: str, discount: Decimal, max_discount: Decimal) -> None:
    if discount > max_discount:
        raise DiscountExceedsLimitError(product_id, discount, max_discount)


def _rebuild(item: ProposalLineItem, **changes: Any) -> ProposalLineItem:
    """Return a new item with the subtotal recomputed by the model validator."""
    return ProposalLineItem.model_validate({**item.model_dump(), **changes})


def add_item(
    product: Product,
    quantity: int,
    override_price: Any = None,
    override_discount: Any = None,
) -> ProposalLineItem:
    """
    Price a new proposal row for a product.

    With no overrides the row takes the list price and no discount. An
    override price alone derives the discount from the list price; an
    override discount is stored as given.

    Raises:
        ValidationError: quantity < 1, percent outside 0..100, negative price.
        ProductInactiveError: the product is not sellable.
        DiscountExceedsLimitError: discount above product.max_discount_percent.
    """
    quantity = validate_quantity(quantity)
    if not product.is_active:
        raise ProductInactiveError(product.id)

    anchor = product.unit_price
    unit_price = anchor if override_price is None else validate_price(override_price)

    if override_discount is not None:
        discount = validate_percent(override_discount)
    elif override_price is not None:
        discount = derive_discount(anchor, unit_price)
    else:
        discount = ZERO

    _check_limit(product.id, discount, product.max_discount_percent)

    return ProposalLineItem(
        product_id=product.id,
        quantity=quantity,
        unit_price=unit_price,
        discount_percent=discount,
        anchor_price=anchor,
    )


def set_unit_price(
    item: ProposalLineItem, new_price: Any, max_discount_percent: Decimal
) -> ProposalLineItem:
    """New unit price; discount re-derived against the anchor."""
    price = validate_price(new_price)
    discount = derive_discount(item.anchor_price, price)
    _check_limit(item.product_id, discount, max_discount_percent)

    logger.debug(
        "line_item_price_set",
        item_id=item.id,
        unit_price=str(price),
        discount_percent=str(discount),
    )
    return _rebuild(item, unit_price=price, discount_percent=discount)


def set_discount_percent(
    item: ProposalLineItem, new_discount: Any, max_discount_percent: Decimal
) -> ProposalLineItem:
    """New discount; unit price re-derived from the anchor."""
    discount = validate_percent(new_discount)
    _check_limit(item.product_id, discount, max_discount_percent)

    anchor = item.anchor_price if item.anchor_price is not None else item.unit_price
    price = derive_unit_price(anchor, discount)

    logger.debug(
        "line_item_discount_set",
        item_id=item.id,
        unit_price=str(price),
        discount_percent=str(discount),
    )
    return _rebuild(item, unit_price=price, discount_percent=discount, anchor_price=anchor)


def set_quantity(item: ProposalLineItem, quantity: Any) -> ProposalLineItem:
    """New quantity; price and discount untouched."""
    return _rebuild(item, quantity=validate_quantity(quantity))
