"""Plain read model handed to document/export consumers."""

from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field


class SnapshotLine(BaseModel):
    product_id: str
    product_name: str | None = None
    quantity: int
    unit_price: Decimal
    discount_percent: Decimal
    subtotal: Decimal


class SnapshotTotals(BaseModel):
    items_total: Decimal
    value_adjustment: Decimal = Decimal("0")
    final_discount_percent: Decimal = Decimal("0")
    final_discount_amount: Decimal = Decimal("0.00")
    gross_value: Decimal | None = None
    total_cost: Decimal | None = None
    estimated_profit: Decimal | None = None


class DocumentSnapshot(BaseModel):
    """`{client, items, totals, payment_methods}` for PDF/export rendering."""

    source: Literal["opportunity", "sale"]
    source_id: int | None = None
    client_id: str
    seller_id: str
    items: list[SnapshotLine] = Field(default_factory=list)
    totals: SnapshotTotals
    payment_methods: list[str] = Field(default_factory=list)
    currency: str
