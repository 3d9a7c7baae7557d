"""SQLite unit of work: one pooled connection, one IMMEDIATE transaction."""

from contextlib import AbstractAsyncContextManager

import aiosqlite

from src.config import get_logger
from src.core.interfaces.unit_of_work import IUnitOfWork
from src.infrastructure.storage.sqlite.catalog_store import SQLiteCatalogStore
from src.infrastructure.storage.sqlite.commission_store import SQLiteCommissionStore
from src.infrastructure.storage.sqlite.connection import ConnectionPool, get_pool
from src.infrastructure.storage.sqlite.opportunity_store import SQLiteOpportunityStore
from src.infrastructure.storage.sqlite.sales_store import SQLiteSalesStore

logger = get_logger(__name__)


class SQLiteUnitOfWork(IUnitOfWork):
    """
    Binds the opportunity, sale, commission and catalog stores to a single
    connection inside BEGIN IMMEDIATE. The unit of work never borrows a
    second pooled connection, so N concurrent units need only N connections.

    A clean exit commits; any exception rolls back every write made
    through the bound stores and propagates.
    """

    def __init__(self, pool: ConnectionPool | None = None) -> None:
        self._pool = pool
        self._tx: AbstractAsyncContextManager[aiosqlite.Connection] | None = None

    async def __aenter__(self) -> "SQLiteUnitOfWork":
        pool = self._pool or await get_pool()
        self._tx = pool.transaction(immediate=True)
        conn = await self._tx.__aenter__()
        self.opportunities = SQLiteOpportunityStore(conn)
        self.sales = SQLiteSalesStore(conn)
        self.commissions = SQLiteCommissionStore(conn)
        self.catalog = SQLiteCatalogStore(conn)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        tx, self._tx = self._tx, None
        if exc_type is not None:
            logger.warning("unit_of_work_rolled_back", error=str(exc))
        await tx.__aexit__(exc_type, exc, tb)


def sqlite_unit_of_work() -> SQLiteUnitOfWork:
    """UnitOfWorkFactory bound to the global pool."""
    return SQLiteUnitOfWork()
