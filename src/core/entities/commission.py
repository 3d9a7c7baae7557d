"""Commission rule and commission ledger entities."""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field, model_validator


class CommissionScope(str, Enum):
    """Matching granularity of a commission rule, lowest precedence last."""

    PRODUCT = "product"
    CATEGORY = "category"
    GLOBAL = "global"


class CommissionBase(str, Enum):
    """Which monetary figure a commission percent is applied to."""

    PROFIT = "profit"
    GROSS = "gross"
    MAINTENANCE = "maintenance"
    REVISION = "revision"
    SPRAYING = "spraying"

    @property
    def is_service_base(self) -> bool:
        return self in (
            CommissionBase.MAINTENANCE,
            CommissionBase.REVISION,
            CommissionBase.SPRAYING,
        )


class CommissionPayStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    PAID = "paid"
    CANCELED = "canceled"


# Allowed pay-status moves. Paid and canceled are final.
PAY_STATUS_TRANSITIONS: dict[CommissionPayStatus, frozenset[CommissionPayStatus]] = {
    CommissionPayStatus.PENDING: frozenset(
        {CommissionPayStatus.APPROVED, CommissionPayStatus.CANCELED}
    ),
    CommissionPayStatus.APPROVED: frozenset(
        {CommissionPayStatus.PAID, CommissionPayStatus.CANCELED}
    ),
    CommissionPayStatus.PAID: frozenset(),
    CommissionPayStatus.CANCELED: frozenset(),
}


class CommissionRule(BaseModel):
    """Admin-configured commission rule."""

    id: int | None = None
    scope: CommissionScope
    product_id: str | None = None
    category: str | None = None
    base: CommissionBase
    percent: Decimal = Field(ge=0, le=100)
    active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @model_validator(mode="after")
    def check_scope_target(self) -> "CommissionRule":
        """Product rules need a product_id, category rules need a category."""
        if self.scope == CommissionScope.PRODUCT and not self.product_id:
            raise ValueError("product-scoped rule requires product_id")
        if self.scope == CommissionScope.CATEGORY and not self.category:
            raise ValueError("category-scoped rule requires category")
        return self


class CommissionResolution(BaseModel):
    """Outcome of rule resolution for one sale."""

    rule_id: int | None = None
    scope: CommissionScope
    base: CommissionBase
    percent: Decimal
    base_amount: Decimal


class Commission(BaseModel):
    """One commission per sale per seller."""

    id: int | None = None
    sale_id: int
    seller_id: str
    rule_id: int | None = None
    base: CommissionBase
    percent: Decimal
    base_amount: Decimal
    amount: Decimal
    pay_status: CommissionPayStatus = CommissionPayStatus.PENDING
    pay_status_date: datetime | None = None
    notes: str | None = None
    receipt_url: str | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def is_active(self) -> bool:
        return self.pay_status != CommissionPayStatus.CANCELED
