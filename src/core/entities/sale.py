"""Sale domain entities."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field, model_validator

from src.core.money import ZERO, apply_discount, round_money


class SaleStatus(str, Enum):
    """Lifecycle of a confirmed sale."""

    CLOSED = "closed"
    CANCELED = "canceled"


class SaleLineItem(BaseModel):
    """A frozen copy of a line item at the moment the sale was finalized."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    sale_id: int | None = None
    product_id: str
    product_name: str | None = None
    category: str | None = None
    quantity: int = Field(ge=1)
    unit_price: Decimal = Field(ge=0)
    discount_percent: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    unit_cost: Decimal = Field(default=Decimal("0"), ge=0)  # catalog cost at finalize time
    subtotal: Decimal = Decimal("0.00")

    @model_validator(mode="after")
    def compute_subtotal(self) -> "SaleLineItem":
        self.subtotal = round_money(
            apply_discount(self.quantity * self.unit_price, self.discount_percent)
        )
        return self

    @property
    def line_cost(self) -> Decimal:
        return self.quantity * self.unit_cost


class Sale(BaseModel):
    """
    Confirmed commercial record.

    Totals are computed once by the sale finalizer and stored as-is;
    `gross_value`, `total_cost` and `estimated_profit` are not recomputed
    on read.
    """

    id: int | None = None
    client_id: str
    seller_id: str
    opportunity_id: int | None = None
    service_id: str | None = None
    items: list[SaleLineItem] = Field(default_factory=list)
    value_adjustment: Decimal = Decimal("0")
    final_discount_percent: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    manual_gross_value: Decimal | None = None  # before the final discount
    estimated_margin_percent: Decimal | None = None
    gross_value: Decimal = ZERO
    total_cost: Decimal = ZERO
    estimated_profit: Decimal = ZERO
    payment_methods: list[str] = Field(default_factory=list)
    payment_values: dict[str, Decimal] = Field(default_factory=dict)
    payment_received: bool = False
    status: SaleStatus = SaleStatus.CLOSED
    region: str | None = None
    tax_percent: Decimal | None = None
    idempotency_key: str | None = None
    sold_at: datetime = Field(default_factory=datetime.utcnow)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def is_canceled(self) -> bool:
        return self.status == SaleStatus.CANCELED

    @property
    def product_ids(self) -> list[str]:
        return [item.product_id for item in self.items]
