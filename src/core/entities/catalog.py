"""Catalog entities read by the engine: products and service records."""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field


class ProductStatus(str, Enum):
    """Catalog availability of a product."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class ServiceType(str, Enum):
    """Field services that can carry their own commission base."""

    MAINTENANCE = "maintenance"
    REVISION = "revision"
    SPRAYING = "spraying"


class Product(BaseModel):
    """Catalog entry. `unit_price` is the list price used as the discount anchor."""

    id: str
    name: str
    unit_price: Decimal = Field(ge=0)
    unit_cost: Decimal = Field(default=Decimal("0"), ge=0)
    max_discount_percent: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    category: str | None = None
    status: ProductStatus = ProductStatus.ACTIVE
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def is_active(self) -> bool:
        return self.status == ProductStatus.ACTIVE


class ServiceRecord(BaseModel):
    """A field service whose total backs maintenance/revision/spraying commissions."""

    id: str
    client_id: str | None = None
    service_type: ServiceType
    total_value: Decimal | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
