"""Request DTOs for API endpoints.

Pydantic v2 models for API request validation.
These are the ONLY contracts between API and use cases.

Money and percent fields are left unconstrained here: the engine owns
those rules and reports them as domain validation errors.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from src.core.entities.catalog import ProductStatus, ServiceType
from src.core.entities.commission import CommissionBase, CommissionPayStatus, CommissionScope
from src.core.entities.opportunity import OpportunityStage


class CreateOpportunityRequest(BaseModel):
    """Open a new opportunity at the lead stage."""

    client_id: str = Field(..., min_length=1, description="Client identifier")
    seller_id: str | None = Field(
        default=None,
        description="Owning seller; defaults to the calling user",
    )
    probability: int = Field(default=0, ge=0, le=100, description="Win probability (%)")
    estimated_margin_percent: Decimal | None = Field(
        default=None,
        description="Margin used for manual-value proposals",
        examples=["25"],
    )
    expected_close_date: date | None = Field(default=None)
    notes: str | None = Field(default=None, max_length=2000)


class UpdateOpportunityRequest(BaseModel):
    """Partial update of proposal-level values and metadata.

    Sending `manual_gross_value: null` explicitly clears it; omitting the
    field leaves it untouched.
    """

    value_adjustment: Decimal | None = Field(
        default=None,
        description="Signed amount added to the sum of line subtotals",
        examples=["-20", "15.50"],
    )
    manual_gross_value: Decimal | None = Field(
        default=None,
        description="Gross value for proposals without items",
    )
    probability: int | None = Field(default=None, ge=0, le=100)
    estimated_margin_percent: Decimal | None = None
    expected_close_date: date | None = None
    notes: str | None = Field(default=None, max_length=2000)


class LineItemRequest(BaseModel):
    """Add a catalog product to a proposal or sale."""

    product_id: str = Field(..., min_length=1)
    quantity: int = Field(..., description="Units, at least 1")
    unit_price: Decimal | None = Field(
        default=None,
        description="Override price; the discount is derived from the list price",
    )
    discount_percent: Decimal | None = Field(
        default=None,
        description="Override discount (%); must not exceed the product maximum",
    )


class UpdateLineItemRequest(BaseModel):
    """Edit one proposal row. Set at most one of unit_price / discount_percent."""

    quantity: int | None = None
    unit_price: Decimal | None = None
    discount_percent: Decimal | None = None


class ChangeStageRequest(BaseModel):
    """Move an opportunity through the pipeline.

    Payment and discount fields are only read when moving to `won`.
    """

    stage: OpportunityStage
    payment_methods: list[str] = Field(
        default_factory=list,
        description="One or two payment method names",
        examples=[["pix"], ["card", "boleto"]],
    )
    payment_values: dict[str, Decimal] | None = Field(
        default=None,
        description="Optional amount per payment method",
    )
    final_discount_percent: Decimal = Field(default=Decimal("0"))
    idempotency_key: str | None = Field(default=None, max_length=128)
    loss_reason: str | None = Field(default=None, max_length=500)
    region: str | None = None
    tax_percent: Decimal | None = None
    sold_at: datetime | None = None


class CreateSaleRequest(BaseModel):
    """Direct sale that bypasses the opportunity pipeline."""

    client_id: str = Field(..., min_length=1)
    seller_id: str | None = Field(
        default=None,
        description="Selling seller; defaults to the calling user",
    )
    items: list[LineItemRequest] = Field(default_factory=list)
    payment_methods: list[str] = Field(default_factory=list)
    payment_values: dict[str, Decimal] | None = None
    final_discount_percent: Decimal = Field(default=Decimal("0"))
    manual_gross_value: Decimal | None = None
    estimated_margin_percent: Decimal | None = None
    service_id: str | None = Field(
        default=None,
        description="Service record backing a maintenance/revision/spraying sale",
    )
    idempotency_key: str | None = Field(default=None, max_length=128)
    region: str | None = None
    tax_percent: Decimal | None = None
    sold_at: datetime | None = None


class UpdateSaleRequest(BaseModel):
    """Edit a closed sale. Omitted fields keep their value; items are replaced."""

    items: list[LineItemRequest] | None = None
    payment_methods: list[str] | None = None
    payment_values: dict[str, Decimal] | None = None
    final_discount_percent: Decimal | None = None
    manual_gross_value: Decimal | None = None
    region: str | None = None
    tax_percent: Decimal | None = None


class PaymentReceivedRequest(BaseModel):
    """Mark whether the client has paid."""

    received: bool


class ChangePayStatusRequest(BaseModel):
    """Advance a commission's pay status."""

    pay_status: CommissionPayStatus
    notes: str | None = Field(default=None, max_length=1000)
    receipt_url: str | None = Field(default=None, max_length=500)


class ProductRequest(BaseModel):
    """Create or replace a catalog product."""

    id: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=200)
    unit_price: Decimal = Field(..., ge=0)
    unit_cost: Decimal = Field(default=Decimal("0"), ge=0)
    max_discount_percent: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    category: str | None = None
    status: ProductStatus = ProductStatus.ACTIVE


class ServiceRecordRequest(BaseModel):
    """Create or replace a service record."""

    id: str = Field(..., min_length=1, max_length=64)
    client_id: str | None = None
    service_type: ServiceType
    total_value: Decimal | None = Field(default=None, ge=0)


class CommissionRuleRequest(BaseModel):
    """Create a commission rule."""

    scope: CommissionScope
    product_id: str | None = None
    category: str | None = None
    base: CommissionBase = CommissionBase.PROFIT
    percent: Decimal = Field(..., ge=0, le=100)
    active: bool = True


class UpdateCommissionRuleRequest(BaseModel):
    """Change a rule's percent or toggle it."""

    percent: Decimal | None = Field(default=None, ge=0, le=100)
    base: CommissionBase | None = None
    active: bool | None = None
