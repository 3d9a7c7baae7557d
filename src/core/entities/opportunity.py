"""Opportunity (proposal) domain entities."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field, computed_field, model_validator

from src.core.money import apply_discount, proposal_gross, round_money


class OpportunityStage(str, Enum):
    """Sales pipeline stages."""

    LEAD = "lead"
    QUALIFIED = "qualified"
    PROPOSAL = "proposal"
    CLOSING = "closing"
    WON = "won"
    LOST = "lost"

    @property
    def is_terminal(self) -> bool:
        return self in (OpportunityStage.WON, OpportunityStage.LOST)


OPEN_STAGES = (
    OpportunityStage.LEAD,
    OpportunityStage.QUALIFIED,
    OpportunityStage.PROPOSAL,
    OpportunityStage.CLOSING,
)


class ProposalLineItem(BaseModel):
    """
    One product row on a proposal.

    `unit_price` and `discount_percent` are kept consistent against
    `anchor_price` (the list price when the row was added) by the pricing
    service. `subtotal` is always recomputed from the three stored values.
    """

    id: str = Field(default_factory=lambda: uuid4().hex)
    opportunity_id: int | None = None
    product_id: str
    quantity: int = Field(ge=1)
    unit_price: Decimal = Field(ge=0)
    discount_percent: Decimal = Field(default=Decimal("0"), ge=0, le=100)
    anchor_price: Decimal | None = None
    subtotal: Decimal = Decimal("0.00")
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @model_validator(mode="after")
    def compute_subtotal(self) -> "ProposalLineItem":
        """subtotal = round(quantity × unit_price × (1 − discount/100), 2)."""
        self.subtotal = round_money(
            apply_discount(self.quantity * self.unit_price, self.discount_percent)
        )
        return self


class Opportunity(BaseModel):
    """A prospective sale moving through the pipeline."""

    id: int | None = None
    client_id: str
    seller_id: str
    stage: OpportunityStage = OpportunityStage.LEAD
    items: list[ProposalLineItem] = Field(default_factory=list)
    value_adjustment: Decimal = Decimal("0")
    manual_gross_value: Decimal | None = None
    probability: int = Field(default=0, ge=0, le=100)
    estimated_margin_percent: Decimal | None = None
    expected_close_date: date | None = None
    loss_reason: str | None = None
    notes: str | None = None
    sale_id: int | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def gross_value(self) -> Decimal | None:
        """Σ subtotal + adjustment; the manual value when there are no items."""
        return proposal_gross(
            [item.subtotal for item in self.items],
            self.value_adjustment,
            self.manual_gross_value,
        )

    @property
    def is_closed(self) -> bool:
        return self.stage.is_terminal

    def find_item(self, item_id: str) -> ProposalLineItem | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None
