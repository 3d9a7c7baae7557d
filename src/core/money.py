"""
Decimal money helpers.

Currency amounts are quantized to two places with ROUND_HALF_UP. Callers
round only at the points the pricing rules name (line subtotal, proposal
total, sale gross, commission amount); intermediate prices and percents
keep full precision.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from src.core.exceptions import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value: Any, field: str = "amount") -> Decimal:
    """Convert int/float/str/Decimal to Decimal without binary float noise."""
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool) or value is None:
        raise ValidationError(field, "must be a number", value)
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError):
            raise ValidationError(field, "must be a number", value) from None

    if not result.is_finite():
        raise ValidationError(field, "must be a finite number", value)
    return result


def round_money(value: Any) -> Decimal:
    """Round a currency amount to cents, half-up."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def percent_of(amount: Decimal, percent: Decimal) -> Decimal:
    """Unrounded `amount × percent / 100`."""
    return amount * percent / HUNDRED


def apply_discount(amount: Decimal, percent: Decimal) -> Decimal:
    """Unrounded `amount × (1 − percent / 100)`."""
    return amount * (1 - percent / HUNDRED)


def sum_money(values: list[Decimal]) -> Decimal:
    """Sum then round to cents."""
    return round_money(sum(values, ZERO))


def proposal_gross(
    subtotals: list[Decimal],
    value_adjustment: Decimal = ZERO,
    manual_gross_value: Decimal | None = None,
) -> Decimal | None:
    """round(Σ subtotal, 2) + adjustment; the manual value when there are no lines."""
    if subtotals:
        return sum_money(subtotals) + value_adjustment
    return manual_gross_value
