"""
Proposal aggregation.

grossValue = round(Σ subtotal, 2) + valueAdjustment when the proposal has
items; otherwise the caller-supplied manual gross value. There is no
silent zero default.
"""

from collections.abc import Sequence
from decimal import Decimal

from src.core.entities.opportunity import ProposalLineItem
from src.core.exceptions import NoItemsNoManualValueError
from src.core.money import ZERO, proposal_gross, sum_money


def items_total(items: Sequence[ProposalLineItem]) -> Decimal:
    """round(Σ subtotal, 2)."""
    return sum_money([item.subtotal for item in items])


def derive_gross_value(
    items: Sequence[ProposalLineItem],
    value_adjustment: Decimal = ZERO,
    manual_gross_value: Decimal | None = None,
) -> Decimal | None:
    """Gross value, or None when there is nothing to derive it from."""
    return proposal_gross([item.subtotal for item in items], value_adjustment, manual_gross_value)


def recalculate(
    items: Sequence[ProposalLineItem],
    value_adjustment: Decimal = ZERO,
    manual_gross_value: Decimal | None = None,
    opportunity_id: int | None = None,
) -> Decimal:
    """
    Authoritative gross value of a proposal.

    Raises:
        NoItemsNoManualValueError: no items and no manual gross value.
    """
    gross = derive_gross_value(items, value_adjustment, manual_gross_value)
    if gross is None:
        raise NoItemsNoManualValueError(opportunity_id)
    return gross
