"""SQLite implementations of the commission ledger and rule stores."""

from datetime import datetime

import aiosqlite

from src.config import get_logger
from src.core.entities.commission import (
    Commission,
    CommissionBase,
    CommissionPayStatus,
    CommissionRule,
    CommissionScope,
)
from src.core.exceptions import DuplicateCommissionError
from src.core.interfaces.commission_store import ICommissionRuleStore, ICommissionStore
from src.infrastructure.storage.sqlite.connection import (
    SQLiteStore,
    dec_from_db,
    dec_to_db,
    dt_from_db,
)

logger = get_logger(__name__)


class SQLiteCommissionStore(SQLiteStore, ICommissionStore):
    """Commission ledger rows."""

    async def create_commission(self, commission: Commission) -> Commission:
        now = datetime.utcnow()
        commission.created_at = now
        commission.updated_at = now
        try:
            async with self._transaction() as conn:
                cursor = await conn.execute(
                    """
                    INSERT INTO commissions (
                        sale_id, seller_id, rule_id, base, percent, base_amount,
                        amount, pay_status, pay_status_date, notes, receipt_url,
                        created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        commission.sale_id,
                        commission.seller_id,
                        commission.rule_id,
                        commission.base.value,
                        dec_to_db(commission.percent),
                        dec_to_db(commission.base_amount),
                        dec_to_db(commission.amount),
                        commission.pay_status.value,
                        commission.pay_status_date.isoformat()
                        if commission.pay_status_date
                        else None,
                        commission.notes,
                        commission.receipt_url,
                        commission.created_at.isoformat(),
                        commission.updated_at.isoformat(),
                    ),
                )
        except aiosqlite.IntegrityError as e:
            if "commissions.sale_id" not in str(e):
                raise
            raise DuplicateCommissionError(commission.sale_id) from e

        commission.id = cursor.lastrowid
        return commission

    async def get_commission(self, commission_id: int) -> Commission | None:
        async with self._connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM commissions WHERE id = ?",
                (commission_id,),
            )
            row = await cursor.fetchone()
            return self._row_to_commission(row) if row else None

    async def get_active_commission(self, sale_id: int) -> Commission | None:
        async with self._connection() as conn:
            cursor = await conn.execute(
                """
                SELECT * FROM commissions
                WHERE sale_id = ? AND pay_status <> 'canceled'
                """,
                (sale_id,),
            )
            row = await cursor.fetchone()
            return self._row_to_commission(row) if row else None

    async def list_sale_commissions(self, sale_id: int) -> list[Commission]:
        async with self._connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM commissions WHERE sale_id = ? ORDER BY id",
                (sale_id,),
            )
            return [self._row_to_commission(r) for r in await cursor.fetchall()]

    async def update_commission(self, commission: Commission) -> Commission:
        async with self._transaction() as conn:
            await conn.execute(
                """
                UPDATE commissions SET
                    pay_status = ?,
                    pay_status_date = COALESCE(pay_status_date, ?),
                    notes = ?, receipt_url = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    commission.pay_status.value,
                    commission.pay_status_date.isoformat()
                    if commission.pay_status_date
                    else None,
                    commission.notes,
                    commission.receipt_url,
                    commission.updated_at.isoformat(),
                    commission.id,
                ),
            )
        return commission

    async def list_commissions(
        self,
        limit: int = 100,
        offset: int = 0,
        seller_id: str | None = None,
        pay_status: CommissionPayStatus | None = None,
    ) -> list[Commission]:
        clauses = []
        params: list = []
        if seller_id is not None:
            clauses.append("seller_id = ?")
            params.append(seller_id)
        if pay_status is not None:
            clauses.append("pay_status = ?")
            params.append(pay_status.value)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        async with self._connection() as conn:
            cursor = await conn.execute(
                f"""
                SELECT * FROM commissions
                {where}
                ORDER BY created_at DESC, id DESC
                LIMIT ? OFFSET ?
                """,
                (*params, limit, offset),
            )
            return [self._row_to_commission(r) for r in await cursor.fetchall()]

    @staticmethod
    def _row_to_commission(row: aiosqlite.Row) -> Commission:
        return Commission(
            id=row["id"],
            sale_id=row["sale_id"],
            seller_id=row["seller_id"],
            rule_id=row["rule_id"],
            base=CommissionBase(row["base"]),
            percent=dec_from_db(row["percent"]),
            base_amount=dec_from_db(row["base_amount"]),
            amount=dec_from_db(row["amount"]),
            pay_status=CommissionPayStatus(row["pay_status"]),
            pay_status_date=(
                datetime.fromisoformat(row["pay_status_date"])
                if row["pay_status_date"]
                else None
            ),
            notes=row["notes"],
            receipt_url=row["receipt_url"],
            created_at=dt_from_db(row["created_at"]),
            updated_at=dt_from_db(row["updated_at"]),
        )


class SQLiteCommissionRuleStore(SQLiteStore, ICommissionRuleStore):
    """Commission rule configuration. Always read fresh, never cached."""

    async def list_active_rules(self) -> list[CommissionRule]:
        return await self._list("WHERE active = 1")

    async def list_rules(self) -> list[CommissionRule]:
        return await self._list("")

    async def get_rule(self, rule_id: int) -> CommissionRule | None:
        async with self._connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM commission_rules WHERE id = ?",
                (rule_id,),
            )
            row = await cursor.fetchone()
            return self._row_to_rule(row) if row else None

    async def create_rule(self, rule: CommissionRule) -> CommissionRule:
        async with self._transaction() as conn:
            cursor = await conn.execute(
                """
                INSERT INTO commission_rules (
                    scope, product_id, category, base, percent, active, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    rule.scope.value,
                    rule.product_id,
                    rule.category,
                    rule.base.value,
                    dec_to_db(rule.percent),
                    int(rule.active),
                    rule.created_at.isoformat(),
                ),
            )
            rule.id = cursor.lastrowid

        logger.info(
            "commission_rule_created",
            rule_id=rule.id,
            scope=rule.scope.value,
            base=rule.base.value,
            percent=str(rule.percent),
        )
        return rule

    async def update_rule(self, rule: CommissionRule) -> CommissionRule:
        async with self._transaction() as conn:
            await conn.execute(
                """
                UPDATE commission_rules SET
                    scope = ?, product_id = ?, category = ?, base = ?,
                    percent = ?, active = ?
                WHERE id = ?
                """,
                (
                    rule.scope.value,
                    rule.product_id,
                    rule.category,
                    rule.base.value,
                    dec_to_db(rule.percent),
                    int(rule.active),
                    rule.id,
                ),
            )
        return rule

    async def _list(self, where: str) -> list[CommissionRule]:
        async with self._connection() as conn:
            cursor = await conn.execute(
                f"SELECT * FROM commission_rules {where} ORDER BY created_at, id"
            )
            return [self._row_to_rule(r) for r in await cursor.fetchall()]

    @staticmethod
    def _row_to_rule(row: aiosqlite.Row) -> CommissionRule:
        return CommissionRule(
            id=row["id"],
            scope=CommissionScope(row["scope"]),
            product_id=row["product_id"],
            category=row["category"],
            base=CommissionBase(row["base"]),
            percent=dec_from_db(row["percent"]),
            active=bool(row["active"]),
            created_at=dt_from_db(row["created_at"]),
        )
