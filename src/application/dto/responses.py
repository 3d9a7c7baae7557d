"""Response DTOs for API endpoints.

Pydantic v2 models for API response serialization.
These are the ONLY contracts between use cases and API layer.

Decimal fields serialize as strings in JSON so amounts stay exact.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from src.core.entities.catalog import ProductStatus, ServiceType
from src.core.entities.commission import CommissionBase, CommissionPayStatus, CommissionScope
from src.core.entities.opportunity import OpportunityStage
from src.core.entities.sale import SaleStatus


class _EntityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class ProposalLineItemResponse(_EntityResponse):
    """Line item on a proposal."""

    id: str
    product_id: str
    quantity: int
    unit_price: Decimal
    discount_percent: Decimal
    anchor_price: Decimal | None = None
    subtotal: Decimal = Field(..., description="quantity × unit_price × (1 − discount/100)")


class OpportunityResponse(_EntityResponse):
    """Opportunity with its proposal."""

    id: int
    client_id: str
    seller_id: str
    stage: OpportunityStage
    items: list[ProposalLineItemResponse] = Field(default_factory=list)
    value_adjustment: Decimal
    manual_gross_value: Decimal | None = None
    gross_value: Decimal | None = Field(
        default=None,
        description="Σ subtotal + adjustment, or the manual value when there are no items",
    )
    probability: int
    estimated_margin_percent: Decimal | None = None
    expected_close_date: date | None = None
    loss_reason: str | None = None
    notes: str | None = None
    sale_id: int | None = None
    created_at: datetime
    updated_at: datetime


class OpportunityListResponse(BaseModel):
    """List of opportunities."""

    opportunities: list[OpportunityResponse]
    limit: int
    offset: int


class SaleLineItemResponse(_EntityResponse):
    """Frozen line on a sale."""

    id: str
    product_id: str
    product_name: str | None = None
    category: str | None = None
    quantity: int
    unit_price: Decimal
    discount_percent: Decimal
    unit_cost: Decimal
    subtotal: Decimal


class SaleResponse(_EntityResponse):
    """Closed or canceled sale."""

    id: int
    client_id: str
    seller_id: str
    opportunity_id: int | None = None
    service_id: str | None = None
    items: list[SaleLineItemResponse] = Field(default_factory=list)
    value_adjustment: Decimal
    final_discount_percent: Decimal
    manual_gross_value: Decimal | None = None
    gross_value: Decimal
    total_cost: Decimal
    estimated_profit: Decimal
    payment_methods: list[str]
    payment_values: dict[str, Decimal] = Field(default_factory=dict)
    payment_received: bool
    status: SaleStatus
    region: str | None = None
    tax_percent: Decimal | None = None
    sold_at: datetime
    created_at: datetime
    updated_at: datetime


class SaleListResponse(BaseModel):
    """List of sales."""

    sales: list[SaleResponse]
    limit: int
    offset: int


class CommissionResponse(_EntityResponse):
    """Commission ledger entry."""

    id: int
    sale_id: int
    seller_id: str
    rule_id: int | None = None
    base: CommissionBase
    percent: Decimal
    base_amount: Decimal
    amount: Decimal
    pay_status: CommissionPayStatus
    pay_status_date: datetime | None = None
    notes: str | None = None
    receipt_url: str | None = None
    created_at: datetime


class CommissionListResponse(BaseModel):
    """List of commissions."""

    commissions: list[CommissionResponse]
    limit: int
    offset: int


class StageChangeResponse(BaseModel):
    """Outcome of a stage transition. `sale` is set once the opportunity is won."""

    opportunity: OpportunityResponse
    sale: SaleResponse | None = None
    commission: CommissionResponse | None = None
    changed: bool = Field(..., description="False when the request was a no-op or a retry")


class CreateSaleResponse(BaseModel):
    """Outcome of a direct sale."""

    sale: SaleResponse
    commission: CommissionResponse | None = None
    created: bool = Field(..., description="False when the idempotency key matched an existing sale")


class ProductResponse(_EntityResponse):
    """Catalog product."""

    id: str
    name: str
    unit_price: Decimal
    unit_cost: Decimal
    max_discount_percent: Decimal
    category: str | None = None
    status: ProductStatus


class ServiceRecordResponse(_EntityResponse):
    """Service record."""

    id: str
    client_id: str | None = None
    service_type: ServiceType
    total_value: Decimal | None = None


class CommissionRuleResponse(_EntityResponse):
    """Commission rule."""

    id: int
    scope: CommissionScope
    product_id: str | None = None
    category: str | None = None
    base: CommissionBase
    percent: Decimal
    active: bool
    created_at: datetime


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str = "1.0.0"
    uptime_seconds: float
    database: bool
    schema_version: str | None = None


class ErrorResponse(BaseModel):
    """Standardized error response DTO.

    Every error response includes:
    - error_code: machine-readable code (e.g. OPPORTUNITY_NOT_FOUND)
    - message: human-readable description
    - hint: suggested recovery action
    - path: request path that triggered the error
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error description")
    hint: str | None = Field(default=None, description="Suggested recovery action")
    detail: str | None = Field(default=None, description="Additional details")
    path: str | None = Field(default=None, description="Request path")
    timestamp: datetime = Field(default_factory=datetime.now)
