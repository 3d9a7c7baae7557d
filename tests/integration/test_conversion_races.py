"""Integration tests for conversions racing other writes.

Runs on a real migrated SQLite database behind a small pool: concurrent
conversions, edits interleaved with a conversion, and a sale write that
fails halfway through.
"""

import asyncio
from contextlib import asynccontextmanager
from decimal import Decimal
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import aiosqlite
import pytest

from src.application.dto.requests import LineItemRequest, UpdateOpportunityRequest
from src.application.use_cases.edit_proposal import EditProposalUseCase
from src.application.use_cases.manage_opportunity import ManageOpportunityUseCase
from src.core.entities import (
    CommissionBase,
    CommissionRule,
    CommissionScope,
    Opportunity,
    OpportunityStage,
    Product,
)
from src.core.exceptions import ConversionFailedError, OpportunityClosedError
from src.core.services import (
    CommissionLedger,
    CommissionResolver,
    OpportunityStateMachine,
    SaleFinalizer,
)
from src.core.services import line_item_pricing as pricing
from src.core.services.sale_finalizer import SaleItemInput
from src.infrastructure.storage.sqlite import (
    SQLiteCatalogStore,
    SQLiteCommissionRuleStore,
    SQLiteCommissionStore,
    SQLiteOpportunityStore,
    SQLiteSalesStore,
    sqlite_unit_of_work,
)
from src.infrastructure.storage.sqlite.connection import get_connection
from src.infrastructure.storage.sqlite.migrations.migrator import initialize_database

SEED = Product(
    id="P1",
    name="Soybean seed 40kg",
    unit_price=Decimal("100"),
    unit_cost=Decimal("60"),
    max_discount_percent=Decimal("15"),
    category="seeds",
)


@asynccontextmanager
async def migrated_pool(db_path: Path, pool_size: int, busy_timeout: int = 5000):
    """Global pool of `pool_size` connections over a fresh database."""
    import src.infrastructure.storage.sqlite.connection as conn_module

    await initialize_database(db_path, create_backup_before=False)

    settings = MagicMock()
    settings.storage.db_path = db_path
    settings.storage.pool_size = pool_size
    settings.storage.busy_timeout = busy_timeout

    conn_module._pool = None
    with patch.object(conn_module, "get_settings", return_value=settings):
        await conn_module.get_pool()
        try:
            await SQLiteCatalogStore().save_product(SEED.model_copy())
            await SQLiteCommissionRuleStore().create_rule(
                CommissionRule(
                    scope=CommissionScope.GLOBAL,
                    base=CommissionBase.GROSS,
                    percent=Decimal("10"),
                )
            )
            yield
        finally:
            await conn_module.close_pool()


@pytest.fixture
async def database(tmp_path: Path):
    async with migrated_pool(tmp_path / "crm.db", pool_size=2):
        yield


def build_finalizer() -> SaleFinalizer:
    catalog = SQLiteCatalogStore()
    ledger = CommissionLedger(
        commission_store=SQLiteCommissionStore(),
        resolver=CommissionResolver(rule_store=SQLiteCommissionRuleStore(), catalog=catalog),
    )
    return SaleFinalizer(
        catalog=catalog,
        uow_factory=sqlite_unit_of_work,
        commission_ledger=ledger,
        max_payment_methods=2,
    )


async def closing_opportunity() -> Opportunity:
    return await SQLiteOpportunityStore().create_opportunity(
        Opportunity(
            client_id="client-1",
            seller_id="seller-1",
            stage=OpportunityStage.CLOSING,
            items=[pricing.add_item(SEED, 2)],
        )
    )


async def count(sql: str, *params) -> int:
    async with get_connection() as conn:
        cursor = await conn.execute(sql, params)
        return (await cursor.fetchone())[0]


class ConvertingCatalog:
    """Catalog that lets a conversion commit while a product is looked up."""

    def __init__(self, finalizer: SaleFinalizer, opportunity_id: int):
        self._inner = SQLiteCatalogStore()
        self._finalizer = finalizer
        self._opportunity_id = opportunity_id
        self.conversion = None

    async def get_product(self, product_id: str):
        if self.conversion is None:
            self.conversion = await self._finalizer.convert_opportunity(
                self._opportunity_id, payment_methods=["pix"]
            )
        return await self._inner.get_product(product_id)


class TestEditsDuringConversion:
    async def test_add_item_does_not_reopen_won_opportunity(self, database):
        finalizer = build_finalizer()
        opportunity = await closing_opportunity()
        catalog = ConvertingCatalog(finalizer, opportunity.id)
        use_case = EditProposalUseCase(
            opportunity_store=SQLiteOpportunityStore(),
            catalog=catalog,
            uow_factory=sqlite_unit_of_work,
        )

        with pytest.raises(OpportunityClosedError):
            await use_case.add_item(opportunity.id, LineItemRequest(product_id="P1", quantity=1))

        sale = catalog.conversion.sale
        stored = await SQLiteOpportunityStore().get_opportunity(opportunity.id)
        assert stored.stage == OpportunityStage.WON
        assert stored.sale_id == sale.id
        assert len(stored.items) == 1
        assert (await SQLiteSalesStore().get_sale(sale.id)).opportunity_id == opportunity.id

    async def test_header_edit_after_conversion_is_rejected(self, database):
        finalizer = build_finalizer()
        opportunity = await closing_opportunity()
        await finalizer.convert_opportunity(opportunity.id, payment_methods=["pix"])

        with pytest.raises(OpportunityClosedError):
            await ManageOpportunityUseCase(uow_factory=sqlite_unit_of_work).update(
                opportunity.id, UpdateOpportunityRequest(notes="late edit")
            )

        stored = await SQLiteOpportunityStore().get_opportunity(opportunity.id)
        assert stored.stage == OpportunityStage.WON
        assert stored.notes is None


class TestPoolUsage:
    async def test_conversion_fits_in_a_single_connection(self, tmp_path):
        async with migrated_pool(tmp_path / "crm.db", pool_size=1):
            finalizer = build_finalizer()
            opportunity = await closing_opportunity()

            result = await asyncio.wait_for(
                finalizer.convert_opportunity(opportunity.id, payment_methods=["pix"]),
                timeout=5,
            )

            assert result.created is True
            assert result.commission is not None
            assert result.sale.gross_value == Decimal("200.00")

    async def test_locked_edits_fit_in_a_single_connection(self, tmp_path):
        async with migrated_pool(tmp_path / "crm.db", pool_size=1):
            opportunity = await closing_opportunity()
            machine = OpportunityStateMachine(SQLiteOpportunityStore(), build_finalizer())
            use_case = EditProposalUseCase(
                opportunity_store=SQLiteOpportunityStore(),
                catalog=SQLiteCatalogStore(),
                uow_factory=sqlite_unit_of_work,
            )

            added = await asyncio.wait_for(
                use_case.add_item(opportunity.id, LineItemRequest(product_id="P1", quantity=1)),
                timeout=5,
            )
            moved = await asyncio.wait_for(
                machine.transition(opportunity.id, OpportunityStage.PROPOSAL),
                timeout=5,
            )

            assert len(added.opportunity.items) == 2
            assert moved.opportunity.stage == OpportunityStage.PROPOSAL


class TestConcurrentConversions:
    async def test_parallel_conversions_produce_one_sale(self, database):
        finalizer = build_finalizer()
        opportunity = await closing_opportunity()

        first, second = await asyncio.gather(
            finalizer.convert_opportunity(opportunity.id, payment_methods=["pix"]),
            finalizer.convert_opportunity(opportunity.id, payment_methods=["pix"]),
        )

        assert sorted([first.created, second.created]) == [False, True]
        assert first.sale.id == second.sale.id
        sales = await count("SELECT COUNT(*) FROM sales WHERE opportunity_id = ?", opportunity.id)
        commissions = await count("SELECT COUNT(*) FROM commissions WHERE sale_id = ?", first.sale.id)
        assert (sales, commissions) == (1, 1)

    async def test_parallel_transitions_to_won(self, database):
        finalizer = build_finalizer()
        machine = OpportunityStateMachine(SQLiteOpportunityStore(), finalizer)
        opportunity = await closing_opportunity()

        results = await asyncio.gather(
            machine.transition(opportunity.id, OpportunityStage.WON, payment_methods=["pix"]),
            machine.transition(opportunity.id, OpportunityStage.WON, payment_methods=["cash"]),
        )

        assert [r.changed for r in results].count(True) == 1
        assert {r.sale.id for r in results} == {results[0].sale.id}
        assert await count("SELECT COUNT(*) FROM sales") == 1
        assert await count("SELECT COUNT(*) FROM commissions") == 1

    async def test_parallel_direct_sales_with_one_key(self, database):
        finalizer = build_finalizer()

        async def submit():
            return await finalizer.create_direct(
                client_id="client-9",
                seller_id="seller-1",
                items=[SaleItemInput(product_id="P1", quantity=1)],
                payment_methods=["pix"],
                idempotency_key="order-42",
            )

        results = await asyncio.gather(submit(), submit())

        assert sorted(r.created for r in results) == [False, True]
        assert await count("SELECT COUNT(*) FROM sales") == 1
        assert await count("SELECT COUNT(*) FROM commissions") == 1


class TestFailedConversionWrite:
    async def test_failure_after_sale_insert_leaves_nothing(self, database):
        finalizer = build_finalizer()
        opportunity = await closing_opportunity()
        failing = AsyncMock(side_effect=aiosqlite.OperationalError("disk I/O error"))

        with patch.object(SQLiteOpportunityStore, "update_opportunity", failing):
            with pytest.raises(ConversionFailedError) as exc_info:
                await finalizer.convert_opportunity(opportunity.id, payment_methods=["pix"])

        assert exc_info.value.details["reason"] == "disk I/O error"
        failing.assert_awaited_once()
        stored = await SQLiteOpportunityStore().get_opportunity(opportunity.id)
        assert stored.stage == OpportunityStage.CLOSING
        assert stored.sale_id is None
        assert await count("SELECT COUNT(*) FROM sales") == 0
        assert await count("SELECT COUNT(*) FROM sale_items") == 0
        assert await count("SELECT COUNT(*) FROM commissions") == 0

    async def test_key_collision_rolls_back_conversion(self, database):
        finalizer = build_finalizer()
        direct = await finalizer.create_direct(
            client_id="client-9",
            seller_id="seller-1",
            items=[SaleItemInput(product_id="P1", quantity=1)],
            payment_methods=["pix"],
            idempotency_key="order-42",
        )
        opportunity = await closing_opportunity()

        with pytest.raises(ConversionFailedError):
            await finalizer.convert_opportunity(
                opportunity.id, payment_methods=["pix"], idempotency_key="order-42"
            )

        stored = await SQLiteOpportunityStore().get_opportunity(opportunity.id)
        assert stored.stage == OpportunityStage.CLOSING
        assert await SQLiteSalesStore().get_sale_by_opportunity(opportunity.id) is None
        assert await count("SELECT COUNT(*) FROM sales") == 1
        assert await count(
            "SELECT COUNT(*) FROM sale_items WHERE sale_id <> ?", direct.sale.id
        ) == 0
