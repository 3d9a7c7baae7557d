"""Unit tests for SQLiteSalesStore."""

from datetime import datetime
from decimal import Decimal

import aiosqlite
import pytest

from src.core.entities import SaleLineItem, SaleStatus
from src.infrastructure.storage.sqlite.opportunity_store import SQLiteOpportunityStore
from src.infrastructure.storage.sqlite.sales_store import SQLiteSalesStore


class TestCreateSale:
    """Tests for create_sale() and the lookups."""

    async def test_round_trip(self, db_pool, make_sale):
        store = SQLiteSalesStore()
        sale = make_sale(
            payment_methods=["pix", "boleto"],
            payment_values={"pix": Decimal("200"), "boleto": Decimal("70.00")},
            final_discount_percent=Decimal("2.5"),
            tax_percent=Decimal("12"),
            region="south",
        )

        created = await store.create_sale(sale)
        loaded = await store.get_sale(created.id)

        assert loaded.payment_methods == ["pix", "boleto"]
        assert loaded.payment_values == {"pix": Decimal("200"), "boleto": Decimal("70.00")}
        assert loaded.final_discount_percent == Decimal("2.5")
        assert loaded.gross_value == Decimal("270.00")
        assert loaded.tax_percent == Decimal("12")
        assert loaded.status == SaleStatus.CLOSED
        assert loaded.items[0].product_name == "Soybean seed 40kg"
        assert loaded.items[0].unit_cost == Decimal("60")
        assert loaded.items[0].sale_id == created.id

    async def test_lookup_by_opportunity(self, db_pool, make_sale, make_opportunity):
        opp = await SQLiteOpportunityStore().create_opportunity(make_opportunity())
        store = SQLiteSalesStore()
        created = await store.create_sale(make_sale(opportunity_id=opp.id))

        found = await store.get_sale_by_opportunity(opp.id)

        assert found.id == created.id

    async def test_lookup_by_idempotency_key(self, db_pool, make_sale):
        store = SQLiteSalesStore()
        created = await store.create_sale(make_sale(idempotency_key="order-77"))

        assert (await store.get_sale_by_idempotency_key("order-77")).id == created.id
        assert await store.get_sale_by_idempotency_key("order-78") is None

    async def test_idempotency_key_is_unique(self, db_pool, make_sale):
        store = SQLiteSalesStore()
        await store.create_sale(make_sale(idempotency_key="order-77"))

        with pytest.raises(aiosqlite.IntegrityError):
            await store.create_sale(make_sale(idempotency_key="order-77"))


class TestUpdateSale:
    """Tests for update_sale()."""

    async def test_replaces_items_and_header(self, db_pool, make_sale):
        store = SQLiteSalesStore()
        created = await store.create_sale(make_sale())

        created.items = [
            SaleLineItem(product_id="P2", quantity=2, unit_price=Decimal("50")),
        ]
        created.gross_value = Decimal("100.00")
        created.status = SaleStatus.CANCELED
        created.payment_received = True
        await store.update_sale(created)

        loaded = await store.get_sale(created.id)
        assert [i.product_id for i in loaded.items] == ["P2"]
        assert loaded.gross_value == Decimal("100.00")
        assert loaded.status == SaleStatus.CANCELED
        assert loaded.payment_received is True


class TestListSales:
    """Tests for list_sales()."""

    async def test_newest_sold_first_with_status_filter(self, db_pool, make_sale):
        store = SQLiteSalesStore()
        old = await store.create_sale(make_sale(sold_at=datetime(2024, 1, 10)))
        new = await store.create_sale(make_sale(sold_at=datetime(2024, 3, 5)))
        canceled = await store.create_sale(
            make_sale(sold_at=datetime(2024, 2, 1), status=SaleStatus.CANCELED)
        )

        everything = await store.list_sales()
        closed = await store.list_sales(status=SaleStatus.CLOSED)

        assert [s.id for s in everything] == [new.id, canceled.id, old.id]
        assert [s.id for s in closed] == [new.id, old.id]

    async def test_seller_filter(self, db_pool, make_sale):
        store = SQLiteSalesStore()
        await store.create_sale(make_sale(seller_id="seller-1"))
        await store.create_sale(make_sale(seller_id="seller-2"))

        assert len(await store.list_sales(seller_id="seller-2")) == 1
