"""SQLite implementation of sale storage."""

import json
from datetime import datetime

import aiosqlite

from src.config import get_logger
from src.core.entities.sale import Sale, SaleLineItem, SaleStatus
from src.core.interfaces.sales_store import ISalesStore
from src.infrastructure.storage.sqlite.connection import (
    SQLiteStore,
    dec_from_db,
    dec_to_db,
    dt_from_db,
)

logger = get_logger(__name__)


class SQLiteSalesStore(SQLiteStore, ISalesStore):
    """SQLite implementation of sale storage."""

    async def create_sale(self, sale: Sale) -> Sale:
        """Create a sale with all its items."""
        now = datetime.utcnow()
        sale.created_at = now
        sale.updated_at = now
        async with self._transaction() as conn:
            cursor = await conn.execute(
                """
                INSERT INTO sales (
                    client_id, seller_id, opportunity_id, service_id,
                    value_adjustment, final_discount_percent,
                    manual_gross_value, estimated_margin_percent,
                    gross_value, total_cost, estimated_profit,
                    payment_methods, payment_values, payment_received,
                    status, region, tax_percent, idempotency_key,
                    sold_at, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    sale.client_id,
                    sale.seller_id,
                    sale.opportunity_id,
                    sale.service_id,
                    *self._sale_values(sale),
                    sale.idempotency_key,
                    sale.sold_at.isoformat(),
                    sale.created_at.isoformat(),
                    sale.updated_at.isoformat(),
                ),
            )
            sale.id = cursor.lastrowid
            await self._insert_items(conn, sale)

        logger.info(
            "sale_persisted",
            sale_id=sale.id,
            items=len(sale.items),
            gross_value=str(sale.gross_value),
        )
        return sale

    async def get_sale(self, sale_id: int) -> Sale | None:
        return await self._get_one("SELECT * FROM sales WHERE id = ?", (sale_id,))

    async def get_sale_by_opportunity(self, opportunity_id: int) -> Sale | None:
        return await self._get_one(
            "SELECT * FROM sales WHERE opportunity_id = ?", (opportunity_id,)
        )

    async def get_sale_by_idempotency_key(self, key: str) -> Sale | None:
        return await self._get_one("SELECT * FROM sales WHERE idempotency_key = ?", (key,))

    async def update_sale(self, sale: Sale) -> Sale:
        """Update the header and replace the item set."""
        async with self._transaction() as conn:
            await conn.execute(
                """
                UPDATE sales SET
                    value_adjustment = ?, final_discount_percent = ?,
                    manual_gross_value = ?, estimated_margin_percent = ?,
                    gross_value = ?, total_cost = ?, estimated_profit = ?,
                    payment_methods = ?, payment_values = ?, payment_received = ?,
                    status = ?, region = ?, tax_percent = ?, updated_at = ?
                WHERE id = ?
                """,
                (*self._sale_values(sale), sale.updated_at.isoformat(), sale.id),
            )
            await conn.execute("DELETE FROM sale_items WHERE sale_id = ?", (sale.id,))
            await self._insert_items(conn, sale)
        return sale

    async def list_sales(
        self,
        limit: int = 100,
        offset: int = 0,
        seller_id: str | None = None,
        status: SaleStatus | None = None,
    ) -> list[Sale]:
        clauses = []
        params: list = []
        if seller_id is not None:
            clauses.append("seller_id = ?")
            params.append(seller_id)
        if status is not None:
            clauses.append("status = ?")
            params.append(status.value)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        async with self._connection() as conn:
            cursor = await conn.execute(
                f"""
                SELECT * FROM sales
                {where}
                ORDER BY sold_at DESC, id DESC
                LIMIT ? OFFSET ?
                """,
                (*params, limit, offset),
            )
            rows = await cursor.fetchall()
            return [
                self._row_to_sale(row, await self._load_items(conn, row["id"]))
                for row in rows
            ]

    async def _get_one(self, query: str, params: tuple) -> Sale | None:
        async with self._connection() as conn:
            cursor = await conn.execute(query, params)
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_sale(row, await self._load_items(conn, row["id"]))

    @staticmethod
    def _sale_values(sale: Sale) -> tuple:
        """Mutable columns, in the order shared by INSERT and UPDATE."""
        return (
            dec_to_db(sale.value_adjustment),
            dec_to_db(sale.final_discount_percent),
            dec_to_db(sale.manual_gross_value),
            dec_to_db(sale.estimated_margin_percent),
            dec_to_db(sale.gross_value),
            dec_to_db(sale.total_cost),
            dec_to_db(sale.estimated_profit),
            json.dumps(sale.payment_methods),
            json.dumps({k: str(v) for k, v in sale.payment_values.items()}),
            int(sale.payment_received),
            sale.status.value,
            sale.region,
            dec_to_db(sale.tax_percent),
        )

    @staticmethod
    async def _insert_items(conn: aiosqlite.Connection, sale: Sale) -> None:
        for position, item in enumerate(sale.items):
            item.sale_id = sale.id
            await conn.execute(
                """
                INSERT INTO sale_items (
                    id, sale_id, position, product_id, product_name, category,
                    quantity, unit_price, discount_percent, unit_cost, subtotal
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    item.id,
                    sale.id,
                    position,
                    item.product_id,
                    item.product_name,
                    item.category,
                    item.quantity,
                    dec_to_db(item.unit_price),
                    dec_to_db(item.discount_percent),
                    dec_to_db(item.unit_cost),
                    dec_to_db(item.subtotal),
                ),
            )

    async def _load_items(self, conn: aiosqlite.Connection, sale_id: int) -> list[SaleLineItem]:
        cursor = await conn.execute(
            "SELECT * FROM sale_items WHERE sale_id = ? ORDER BY position",
            (sale_id,),
        )
        return [self._row_to_item(r) for r in await cursor.fetchall()]

    @staticmethod
    def _row_to_item(row: aiosqlite.Row) -> SaleLineItem:
        return SaleLineItem(
            id=row["id"],
            sale_id=row["sale_id"],
            product_id=row["product_id"],
            product_name=row["product_name"],
            category=row["category"],
            quantity=row["quantity"],
            unit_price=dec_from_db(row["unit_price"]),
            discount_percent=dec_from_db(row["discount_percent"]),
            unit_cost=dec_from_db(row["unit_cost"]),
        )

    @staticmethod
    def _row_to_sale(row: aiosqlite.Row, items: list[SaleLineItem]) -> Sale:
        payment_values = json.loads(row["payment_values"] or "{}")
        return Sale(
            id=row["id"],
            client_id=row["client_id"],
            seller_id=row["seller_id"],
            opportunity_id=row["opportunity_id"],
            service_id=row["service_id"],
            items=items,
            value_adjustment=dec_from_db(row["value_adjustment"]),
            final_discount_percent=dec_from_db(row["final_discount_percent"]),
            manual_gross_value=dec_from_db(row["manual_gross_value"]),
            estimated_margin_percent=dec_from_db(row["estimated_margin_percent"]),
            gross_value=dec_from_db(row["gross_value"]),
            total_cost=dec_from_db(row["total_cost"]),
            estimated_profit=dec_from_db(row["estimated_profit"]),
            payment_methods=json.loads(row["payment_methods"]),
            payment_values={k: dec_from_db(v) for k, v in payment_values.items()},
            payment_received=bool(row["payment_received"]),
            status=SaleStatus(row["status"]),
            region=row["region"],
            tax_percent=dec_from_db(row["tax_percent"]),
            idempotency_key=row["idempotency_key"],
            sold_at=dt_from_db(row["sold_at"]),
            created_at=dt_from_db(row["created_at"]),
            updated_at=dt_from_db(row["updated_at"]),
        )
