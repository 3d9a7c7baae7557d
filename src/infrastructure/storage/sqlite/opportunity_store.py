"""SQLite implementation of opportunity storage."""

from datetime import datetime

import aiosqlite

from src.config import get_logger
from src.core.entities.opportunity import Opportunity, OpportunityStage, ProposalLineItem
from src.core.exceptions import OpportunityClosedError, OpportunityNotFoundError
from src.core.interfaces.opportunity_store import IOpportunityStore
from src.infrastructure.storage.sqlite.connection import (
    SQLiteStore,
    date_from_db,
    dec_from_db,
    dec_to_db,
    dt_from_db,
)

logger = get_logger(__name__)


class SQLiteOpportunityStore(SQLiteStore, IOpportunityStore):
    """Opportunities with their proposal line items."""

    async def create_opportunity(self, opportunity: Opportunity) -> Opportunity:
        now = datetime.utcnow()
        opportunity.created_at = now
        opportunity.updated_at = now
        async with self._transaction() as conn:
            cursor = await conn.execute(
                """
                INSERT INTO opportunities (
                    client_id, seller_id, stage, value_adjustment,
                    manual_gross_value, probability, estimated_margin_percent,
                    expected_close_date, loss_reason, notes, sale_id,
                    created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    opportunity.client_id,
                    opportunity.seller_id,
                    opportunity.stage.value,
                    dec_to_db(opportunity.value_adjustment),
                    dec_to_db(opportunity.manual_gross_value),
                    opportunity.probability,
                    dec_to_db(opportunity.estimated_margin_percent),
                    opportunity.expected_close_date.isoformat()
                    if opportunity.expected_close_date
                    else None,
                    opportunity.loss_reason,
                    opportunity.notes,
                    opportunity.sale_id,
                    opportunity.created_at.isoformat(),
                    opportunity.updated_at.isoformat(),
                ),
            )
            opportunity.id = cursor.lastrowid
            await self._insert_items(conn, opportunity)

        logger.info(
            "opportunity_created",
            opportunity_id=opportunity.id,
            seller_id=opportunity.seller_id,
            items=len(opportunity.items),
        )
        return opportunity

    async def get_opportunity(self, opportunity_id: int) -> Opportunity | None:
        async with self._connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM opportunities WHERE id = ?",
                (opportunity_id,),
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            items = await self._load_items(conn, opportunity_id)
            return self._row_to_opportunity(row, items)

    async def update_opportunity(self, opportunity: Opportunity) -> Opportunity:
        """
        Rewrite the row and its item set.

        Raises:
            OpportunityClosedError: the stored row is already won.
            OpportunityNotFoundError: no such row.
        """
        async with self._transaction() as conn:
            # Won rows are frozen whatever the caller read earlier
            cursor = await conn.execute(
                """
                UPDATE opportunities SET
                    client_id = ?, seller_id = ?, stage = ?, value_adjustment = ?,
                    manual_gross_value = ?, probability = ?,
                    estimated_margin_percent = ?, expected_close_date = ?,
                    loss_reason = ?, notes = ?, sale_id = ?, updated_at = ?
                WHERE id = ? AND stage <> 'won'
                """,
                (
                    opportunity.client_id,
                    opportunity.seller_id,
                    opportunity.stage.value,
                    dec_to_db(opportunity.value_adjustment),
                    dec_to_db(opportunity.manual_gross_value),
                    opportunity.probability,
                    dec_to_db(opportunity.estimated_margin_percent),
                    opportunity.expected_close_date.isoformat()
                    if opportunity.expected_close_date
                    else None,
                    opportunity.loss_reason,
                    opportunity.notes,
                    opportunity.sale_id,
                    opportunity.updated_at.isoformat(),
                    opportunity.id,
                ),
            )
            if cursor.rowcount == 0:
                await self._reject_update(conn, opportunity.id)
            # Item set is replaced wholesale; ids are stable uuids.
            await conn.execute(
                "DELETE FROM opportunity_items WHERE opportunity_id = ?",
                (opportunity.id,),
            )
            await self._insert_items(conn, opportunity)
        return opportunity

    async def delete_opportunity(self, opportunity_id: int) -> bool:
        async with self._transaction() as conn:
            cursor = await conn.execute(
                "DELETE FROM opportunities WHERE id = ?",
                (opportunity_id,),
            )
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info("opportunity_deleted", opportunity_id=opportunity_id)
        return deleted

    async def list_opportunities(
        self,
        limit: int = 100,
        offset: int = 0,
        seller_id: str | None = None,
        client_id: str | None = None,
        stage: OpportunityStage | None = None,
    ) -> list[Opportunity]:
        clauses = []
        params: list = []
        if seller_id is not None:
            clauses.append("seller_id = ?")
            params.append(seller_id)
        if client_id is not None:
            clauses.append("client_id = ?")
            params.append(client_id)
        if stage is not None:
            clauses.append("stage = ?")
            params.append(stage.value)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        async with self._connection() as conn:
            cursor = await conn.execute(
                f"""
                SELECT * FROM opportunities
                {where}
                ORDER BY created_at DESC, id DESC
                LIMIT ? OFFSET ?
                """,
                (*params, limit, offset),
            )
            rows = await cursor.fetchall()
            return [
                self._row_to_opportunity(row, await self._load_items(conn, row["id"]))
                for row in rows
            ]

    @staticmethod
    async def _reject_update(conn: aiosqlite.Connection, opportunity_id: int) -> None:
        cursor = await conn.execute(
            "SELECT stage FROM opportunities WHERE id = ?",
            (opportunity_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            raise OpportunityNotFoundError(opportunity_id)
        logger.warning("frozen_opportunity_write_rejected", opportunity_id=opportunity_id)
        raise OpportunityClosedError(opportunity_id, row["stage"])

    @staticmethod
    async def _insert_items(conn: aiosqlite.Connection, opportunity: Opportunity) -> None:
        for position, item in enumerate(opportunity.items):
            item.opportunity_id = opportunity.id
            await conn.execute(
                """
                INSERT INTO opportunity_items (
                    id, opportunity_id, position, product_id, quantity,
                    unit_price, discount_percent, anchor_price, subtotal, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    item.id,
                    opportunity.id,
                    position,
                    item.product_id,
                    item.quantity,
                    dec_to_db(item.unit_price),
                    dec_to_db(item.discount_percent),
                    dec_to_db(item.anchor_price),
                    dec_to_db(item.subtotal),
                    item.created_at.isoformat(),
                ),
            )

    async def _load_items(
        self, conn: aiosqlite.Connection, opportunity_id: int
    ) -> list[ProposalLineItem]:
        cursor = await conn.execute(
            """
            SELECT * FROM opportunity_items
            WHERE opportunity_id = ?
            ORDER BY position
            """,
            (opportunity_id,),
        )
        return [self._row_to_item(r) for r in await cursor.fetchall()]

    @staticmethod
    def _row_to_item(row: aiosqlite.Row) -> ProposalLineItem:
        # subtotal is recomputed by the model validator
        return ProposalLineItem(
            id=row["id"],
            opportunity_id=row["opportunity_id"],
            product_id=row["product_id"],
            quantity=row["quantity"],
            unit_price=dec_from_db(row["unit_price"]),
            discount_percent=dec_from_db(row["discount_percent"]),
            anchor_price=dec_from_db(row["anchor_price"]),
            created_at=dt_from_db(row["created_at"]),
        )

    @staticmethod
    def _row_to_opportunity(
        row: aiosqlite.Row, items: list[ProposalLineItem]
    ) -> Opportunity:
        return Opportunity(
            id=row["id"],
            client_id=row["client_id"],
            seller_id=row["seller_id"],
            stage=OpportunityStage(row["stage"]),
            items=items,
            value_adjustment=dec_from_db(row["value_adjustment"]),
            manual_gross_value=dec_from_db(row["manual_gross_value"]),
            probability=row["probability"],
            estimated_margin_percent=dec_from_db(row["estimated_margin_percent"]),
            expected_close_date=date_from_db(row["expected_close_date"]),
            loss_reason=row["loss_reason"],
            notes=row["notes"],
            sale_id=row["sale_id"],
            created_at=dt_from_db(row["created_at"]),
            updated_at=dt_from_db(row["updated_at"]),
        )
