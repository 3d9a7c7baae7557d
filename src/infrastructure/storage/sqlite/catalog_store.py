"""SQLite implementation of the product and service catalog."""

from datetime import datetime

import aiosqlite

from src.config import get_logger
from src.core.entities.catalog import Product, ProductStatus, ServiceRecord, ServiceType
from src.core.interfaces.catalog import ICatalogStore
from src.infrastructure.storage.sqlite.connection import (
    SQLiteStore,
    dec_from_db,
    dec_to_db,
    dt_from_db,
)

logger = get_logger(__name__)


class SQLiteCatalogStore(SQLiteStore, ICatalogStore):
    """Products and service records. Reads always hit the database."""

    async def get_product(self, product_id: str) -> Product | None:
        async with self._connection() as conn:
            cursor = await conn.execute("SELECT * FROM products WHERE id = ?", (product_id,))
            row = await cursor.fetchone()
            return self._row_to_product(row) if row else None

    async def save_product(self, product: Product) -> Product:
        product.updated_at = datetime.utcnow()
        async with self._transaction() as conn:
            await conn.execute(
                """
                INSERT INTO products (
                    id, name, unit_price, unit_cost, max_discount_percent,
                    category, status, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name = excluded.name,
                    unit_price = excluded.unit_price,
                    unit_cost = excluded.unit_cost,
                    max_discount_percent = excluded.max_discount_percent,
                    category = excluded.category,
                    status = excluded.status,
                    updated_at = excluded.updated_at
                """,
                (
                    product.id,
                    product.name,
                    dec_to_db(product.unit_price),
                    dec_to_db(product.unit_cost),
                    dec_to_db(product.max_discount_percent),
                    product.category,
                    product.status.value,
                    product.created_at.isoformat(),
                    product.updated_at.isoformat(),
                ),
            )
        logger.info("product_saved", product_id=product.id, status=product.status.value)
        return product

    async def list_products(
        self,
        limit: int = 100,
        offset: int = 0,
        category: str | None = None,
        active_only: bool = False,
    ) -> list[Product]:
        clauses = []
        params: list = []
        if category is not None:
            clauses.append("category = ?")
            params.append(category)
        if active_only:
            clauses.append("status = 'active'")
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        async with self._connection() as conn:
            cursor = await conn.execute(
                f"SELECT * FROM products {where} ORDER BY name LIMIT ? OFFSET ?",
                (*params, limit, offset),
            )
            return [self._row_to_product(r) for r in await cursor.fetchall()]

    async def get_service_item(self, service_id: str) -> ServiceRecord | None:
        async with self._connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM service_records WHERE id = ?", (service_id,)
            )
            row = await cursor.fetchone()
            return self._row_to_service(row) if row else None

    async def save_service_item(self, record: ServiceRecord) -> ServiceRecord:
        async with self._transaction() as conn:
            await conn.execute(
                """
                INSERT INTO service_records (id, client_id, service_type, total_value, created_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    client_id = excluded.client_id,
                    service_type = excluded.service_type,
                    total_value = excluded.total_value
                """,
                (
                    record.id,
                    record.client_id,
                    record.service_type.value,
                    dec_to_db(record.total_value),
                    record.created_at.isoformat(),
                ),
            )
        return record

    @staticmethod
    def _row_to_product(row: aiosqlite.Row) -> Product:
        return Product(
            id=row["id"],
            name=row["name"],
            unit_price=dec_from_db(row["unit_price"]),
            unit_cost=dec_from_db(row["unit_cost"]),
            max_discount_percent=dec_from_db(row["max_discount_percent"]),
            category=row["category"],
            status=ProductStatus(row["status"]),
            created_at=dt_from_db(row["created_at"]),
            updated_at=dt_from_db(row["updated_at"]),
        )

    @staticmethod
    def _row_to_service(row: aiosqlite.Row) -> ServiceRecord:
        return ServiceRecord(
            id=row["id"],
            client_id=row["client_id"],
            service_type=ServiceType(row["service_type"]),
            total_value=dec_from_db(row["total_value"]),
            created_at=dt_from_db(row["created_at"]),
        )
