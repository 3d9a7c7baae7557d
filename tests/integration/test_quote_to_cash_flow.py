"""Integration test for the quote-to-cash flow.

Tests the full flow on a real SQLite database: proposal → won → sale →
commission → pay status → cancellation.
"""

from decimal import Decimal
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from src.core.entities import (
    CommissionBase,
    CommissionPayStatus,
    CommissionRule,
    CommissionScope,
    Opportunity,
    OpportunityStage,
    Product,
    SaleStatus,
)
from src.core.exceptions import (
    MissingPaymentMethodError,
    NoItemsNoManualValueError,
)
from src.core.services import (
    CommissionLedger,
    CommissionResolver,
    OpportunityStateMachine,
    SaleFinalizer,
)
from src.core.services import line_item_pricing as pricing
from src.core.services.sale_finalizer import SaleItemInput
from src.infrastructure.notifications import ALL_KINDS, InProcessEventBus
from src.infrastructure.storage.sqlite import (
    SQLiteCatalogStore,
    SQLiteCommissionRuleStore,
    SQLiteCommissionStore,
    SQLiteOpportunityStore,
    SQLiteSalesStore,
    sqlite_unit_of_work,
)
from src.infrastructure.storage.sqlite.migrations.migrator import initialize_database

SEED = Product(
    id="P1",
    name="Soybean seed 40kg",
    unit_price=Decimal("100"),
    unit_cost=Decimal("60"),
    max_discount_percent=Decimal("15"),
    category="seeds",
)
HERBICIDE = Product(
    id="P2",
    name="Glyphosate 20L",
    unit_price=Decimal("50"),
    unit_cost=Decimal("30"),
    max_discount_percent=Decimal("10"),
    category="chemicals",
)


@pytest.fixture
async def database(tmp_path: Path):
    """Migrated database behind the global pool."""
    import src.infrastructure.storage.sqlite.connection as conn_module

    db_path = tmp_path / "crm.db"
    await initialize_database(db_path, create_backup_before=False)

    settings = MagicMock()
    settings.storage.db_path = db_path
    settings.storage.pool_size = 3
    settings.storage.busy_timeout = 5000

    conn_module._pool = None
    with patch.object(conn_module, "get_settings", return_value=settings):
        await conn_module.get_pool()
        try:
            catalog = SQLiteCatalogStore()
            await catalog.save_product(SEED.model_copy())
            await catalog.save_product(HERBICIDE.model_copy())
            yield db_path
        finally:
            await conn_module.close_pool()


@pytest.fixture
async def global_rule(database) -> CommissionRule:
    return await SQLiteCommissionRuleStore().create_rule(
        CommissionRule(scope=CommissionScope.GLOBAL, base=CommissionBase.GROSS, percent=Decimal("10"))
    )


@pytest.fixture
def events() -> list[str]:
    return []


@pytest.fixture
def engine(database, events):
    """Services wired to the SQLite stores."""
    bus = InProcessEventBus()

    async def record(event):
        events.append(event.kind)

    bus.subscribe(ALL_KINDS, record)

    catalog = SQLiteCatalogStore()
    ledger = CommissionLedger(
        commission_store=SQLiteCommissionStore(),
        resolver=CommissionResolver(rule_store=SQLiteCommissionRuleStore(), catalog=catalog),
        event_publisher=bus,
    )
    finalizer = SaleFinalizer(
        catalog=catalog,
        uow_factory=sqlite_unit_of_work,
        commission_ledger=ledger,
        event_publisher=bus,
        max_payment_methods=2,
    )
    machine = OpportunityStateMachine(
        opportunity_store=SQLiteOpportunityStore(),
        sale_finalizer=finalizer,
    )
    return machine, finalizer, ledger


async def _closing_opportunity() -> Opportunity:
    items = [
        pricing.add_item(SEED, 3, override_discount=10),
        pricing.add_item(HERBICIDE, 1),
    ]
    return await SQLiteOpportunityStore().create_opportunity(
        Opportunity(
            client_id="client-1",
            seller_id="seller-1",
            stage=OpportunityStage.CLOSING,
            items=items,
            value_adjustment=Decimal("-20"),
        )
    )


class TestQuoteToCash:
    async def test_proposal_to_paid_commission(self, engine, global_rule, events):
        machine, _, ledger = engine
        opportunity = await _closing_opportunity()
        assert opportunity.gross_value == Decimal("300.00")

        result = await machine.transition(
            opportunity.id,
            OpportunityStage.WON,
            payment_methods=["pix"],
            final_discount_percent=Decimal("5"),
        )

        sale = await SQLiteSalesStore().get_sale(result.sale.id)
        assert sale.opportunity_id == opportunity.id
        assert sale.gross_value == Decimal("285.00")
        assert sale.total_cost == Decimal("210.00")
        assert sale.estimated_profit == Decimal("75.00")
        assert [i.product_name for i in sale.items] == ["Soybean seed 40kg", "Glyphosate 20L"]
        assert {i.id for i in sale.items}.isdisjoint({i.id for i in opportunity.items})

        stored = await SQLiteOpportunityStore().get_opportunity(opportunity.id)
        assert stored.stage == OpportunityStage.WON
        assert stored.sale_id == sale.id

        commission = await ledger.get_for_sale(sale.id)
        assert commission.amount == Decimal("28.50")
        assert commission.rule_id == global_rule.id
        assert commission.pay_status == CommissionPayStatus.PENDING
        assert events == ["opportunity_won", "sale_created", "commission_created"]

        await ledger.change_pay_status(commission.id, CommissionPayStatus.APPROVED)
        paid = await ledger.change_pay_status(commission.id, CommissionPayStatus.PAID)
        assert paid.pay_status_date is not None
        assert events[-2:] == ["commission_pay_status_changed"] * 2

    async def test_category_rule_beats_global(self, engine, global_rule):
        machine, _, ledger = engine
        category_rule = await SQLiteCommissionRuleStore().create_rule(
            CommissionRule(
                scope=CommissionScope.CATEGORY,
                category="seeds",
                base=CommissionBase.PROFIT,
                percent=Decimal("20"),
            )
        )
        opportunity = await _closing_opportunity()

        result = await machine.transition(
            opportunity.id,
            OpportunityStage.WON,
            payment_methods=["pix"],
            final_discount_percent=Decimal("5"),
        )

        commission = await ledger.get_for_sale(result.sale.id)
        assert commission.rule_id == category_rule.id
        assert commission.base_amount == Decimal("75.00")
        assert commission.amount == Decimal("15.00")

    async def test_repeated_win_creates_one_sale(self, engine, global_rule):
        machine, _, _ = engine
        opportunity = await _closing_opportunity()

        first = await machine.transition(
            opportunity.id, OpportunityStage.WON, payment_methods=["pix"]
        )
        second = await machine.transition(
            opportunity.id, OpportunityStage.WON, payment_methods=["pix"]
        )

        assert second.changed is False
        assert second.sale.id == first.sale.id
        assert len(await SQLiteSalesStore().list_sales()) == 1
        assert len(await SQLiteCommissionStore().list_sale_commissions(first.sale.id)) == 1

    async def test_win_without_payment_method_changes_nothing(self, engine, global_rule):
        machine, _, _ = engine
        opportunity = await _closing_opportunity()

        with pytest.raises(MissingPaymentMethodError):
            await machine.transition(opportunity.id, OpportunityStage.WON, payment_methods=[])

        stored = await SQLiteOpportunityStore().get_opportunity(opportunity.id)
        assert stored.stage == OpportunityStage.CLOSING
        assert stored.sale_id is None
        assert await SQLiteSalesStore().list_sales() == []

    async def test_empty_proposal_cannot_be_won(self, engine, global_rule):
        machine, _, _ = engine
        opportunity = await SQLiteOpportunityStore().create_opportunity(
            Opportunity(client_id="client-1", seller_id="seller-1")
        )

        with pytest.raises(NoItemsNoManualValueError):
            await machine.transition(opportunity.id, OpportunityStage.WON, payment_methods=["pix"])

        assert (await SQLiteOpportunityStore().get_opportunity(opportunity.id)).stage == (
            OpportunityStage.LEAD
        )

    async def test_cancel_sale_cancels_pending_commission(self, engine, global_rule):
        _, finalizer, _ = engine
        created = await finalizer.create_direct(
            client_id="client-7",
            seller_id="seller-1",
            items=[SaleItemInput("P1", 2), SaleItemInput("P2", 1, discount_percent=10)],
            payment_methods=["pix"],
        )
        assert created.sale.gross_value == Decimal("245.00")
        assert created.commission.amount == Decimal("24.50")

        canceled = await finalizer.cancel_sale(created.sale.id)

        assert canceled.status == SaleStatus.CANCELED
        commission = await SQLiteCommissionStore().get_commission(created.commission.id)
        assert commission.pay_status == CommissionPayStatus.CANCELED
        assert await SQLiteCommissionStore().get_active_commission(created.sale.id) is None

    async def test_direct_sale_idempotency_key(self, engine, global_rule):
        _, finalizer, _ = engine
        kwargs = dict(
            client_id="client-7",
            seller_id="seller-1",
            items=[SaleItemInput("P1", 1)],
            payment_methods=["pix", "boleto"],
            idempotency_key="order-77",
        )

        first = await finalizer.create_direct(**kwargs)
        second = await finalizer.create_direct(**kwargs)

        assert second.created is False
        assert second.sale.id == first.sale.id
        assert len(await SQLiteSalesStore().list_sales()) == 1
