"""Tests for opportunity entities."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from src.core.entities.opportunity import (
    OPEN_STAGES,
    Opportunity,
    OpportunityStage,
    ProposalLineItem,
)


def _item(**overrides) -> ProposalLineItem:
    data = {
        "product_id": "P1",
        "quantity": 3,
        "unit_price": Decimal("100"),
        "discount_percent": Decimal("10"),
        "anchor_price": Decimal("100"),
    }
    data.update(overrides)
    return ProposalLineItem(**data)


class TestProposalLineItem:
    def test_subtotal_is_computed(self):
        assert _item().subtotal == Decimal("270.00")

    def test_supplied_subtotal_is_ignored(self):
        item = _item(subtotal=Decimal("1"))
        assert item.subtotal == Decimal("270.00")

    def test_subtotal_rounds_half_up(self):
        item = _item(quantity=1, unit_price=Decimal("0.125"), discount_percent=Decimal("0"))
        assert item.subtotal == Decimal("0.13")

    def test_ids_are_unique(self):
        assert _item().id != _item().id

    def test_quantity_must_be_positive(self):
        with pytest.raises(ValidationError):
            _item(quantity=0)

    def test_discount_range(self):
        with pytest.raises(ValidationError):
            _item(discount_percent=Decimal("101"))


class TestOpportunity:
    def test_defaults(self):
        opp = Opportunity(client_id="c1", seller_id="s1")
        assert opp.stage == OpportunityStage.LEAD
        assert opp.items == []
        assert opp.value_adjustment == Decimal("0")
        assert opp.gross_value is None
        assert not opp.is_closed

    def test_gross_value_sums_items_and_adjustment(self):
        opp = Opportunity(
            client_id="c1",
            seller_id="s1",
            items=[
                _item(),
                _item(product_id="P2", quantity=1, unit_price=Decimal("50"),
                      discount_percent=Decimal("0"), anchor_price=Decimal("50")),
            ],
        )
        assert opp.gross_value == Decimal("320.00")

        opp.value_adjustment = Decimal("-20")
        assert opp.gross_value == Decimal("300.00")

    def test_manual_value_only_without_items(self):
        opp = Opportunity(client_id="c1", seller_id="s1", manual_gross_value=Decimal("1500"))
        assert opp.gross_value == Decimal("1500")

        opp.items.append(_item())
        assert opp.gross_value == Decimal("270.00")

    def test_gross_value_is_serialized(self):
        opp = Opportunity(client_id="c1", seller_id="s1", items=[_item()])
        assert opp.model_dump()["gross_value"] == Decimal("270.00")

    def test_find_item(self):
        item = _item()
        opp = Opportunity(client_id="c1", seller_id="s1", items=[item])
        assert opp.find_item(item.id) is item
        assert opp.find_item("missing") is None

    @pytest.mark.parametrize("stage", [OpportunityStage.WON, OpportunityStage.LOST])
    def test_terminal_stages_are_closed(self, stage):
        assert Opportunity(client_id="c1", seller_id="s1", stage=stage).is_closed

    def test_open_stages(self):
        assert all(not s.is_terminal for s in OPEN_STAGES)
        assert len(OPEN_STAGES) == 4
