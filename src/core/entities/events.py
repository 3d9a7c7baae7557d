"""
Domain events published to notification consumers.

Each event carries a literal `kind` tag so consumers can dispatch on a
closed set of payload types instead of an open metadata map.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter


class _Event(BaseModel):
    occurred_at: datetime = Field(default_factory=datetime.utcnow)


class OpportunityWon(_Event):
    kind: Literal["opportunity_won"] = "opportunity_won"
    opportunity_id: int
    sale_id: int
    seller_id: str
    client_id: str
    gross_value: Decimal


class SaleCreated(_Event):
    kind: Literal["sale_created"] = "sale_created"
    sale_id: int
    seller_id: str
    client_id: str
    gross_value: Decimal
    opportunity_id: int | None = None


class CommissionCreated(_Event):
    kind: Literal["commission_created"] = "commission_created"
    commission_id: int
    sale_id: int
    seller_id: str
    amount: Decimal


class CommissionPayStatusChanged(_Event):
    kind: Literal["commission_pay_status_changed"] = "commission_pay_status_changed"
    commission_id: int
    sale_id: int
    seller_id: str
    from_status: str
    to_status: str


DomainEvent = Annotated[
    Union[OpportunityWon, SaleCreated, CommissionCreated, CommissionPayStatusChanged],
    Field(discriminator="kind"),
]

domain_event_adapter: TypeAdapter[DomainEvent] = TypeAdapter(DomainEvent)
