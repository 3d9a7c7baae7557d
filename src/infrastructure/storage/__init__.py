"""Storage infrastructure implementations."""

from src.infrastructure.storage.sqlite import (
    SQLiteCatalogStore,
    SQLiteCommissionRuleStore,
    SQLiteCommissionStore,
    SQLiteOpportunityStore,
    SQLiteSalesStore,
    SQLiteUnitOfWork,
    close_pool,
    get_connection,
    get_pool,
    get_transaction,
)

__all__ = [
    # SQLite stores
    "SQLiteCatalogStore",
    "SQLiteOpportunityStore",
    "SQLiteSalesStore",
    "SQLiteCommissionStore",
    "SQLiteCommissionRuleStore",
    "SQLiteUnitOfWork",
    # Connection pool
    "get_pool",
    "close_pool",
    "get_connection",
    "get_transaction",
]
