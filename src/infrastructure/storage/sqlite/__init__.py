"""SQLite storage implementations."""

from src.infrastructure.storage.sqlite.catalog_store import SQLiteCatalogStore
from src.infrastructure.storage.sqlite.commission_store import (
    SQLiteCommissionRuleStore,
    SQLiteCommissionStore,
)
from src.infrastructure.storage.sqlite.connection import (
    ConnectionPool,
    SQLiteStore,
    close_pool,
    get_connection,
    get_pool,
    get_transaction,
)
from src.infrastructure.storage.sqlite.opportunity_store import SQLiteOpportunityStore
from src.infrastructure.storage.sqlite.sales_store import SQLiteSalesStore
from src.infrastructure.storage.sqlite.unit_of_work import SQLiteUnitOfWork, sqlite_unit_of_work

# Singleton instances
_catalog_store: SQLiteCatalogStore | None = None
_opportunity_store: SQLiteOpportunityStore | None = None
_sales_store: SQLiteSalesStore | None = None
_commission_store: SQLiteCommissionStore | None = None
_commission_rule_store: SQLiteCommissionRuleStore | None = None


async def get_catalog_store() -> SQLiteCatalogStore:
    """Get singleton catalog store instance."""
    global _catalog_store
    if _catalog_store is None:
        _catalog_store = SQLiteCatalogStore()
    return _catalog_store


async def get_opportunity_store() -> SQLiteOpportunityStore:
    """Get singleton opportunity store instance."""
    global _opportunity_store
    if _opportunity_store is None:
        _opportunity_store = SQLiteOpportunityStore()
    return _opportunity_store


async def get_sales_store() -> SQLiteSalesStore:
    """Get singleton sales store instance."""
    global _sales_store
    if _sales_store is None:
        _sales_store = SQLiteSalesStore()
    return _sales_store


async def get_commission_store() -> SQLiteCommissionStore:
    """Get singleton commission store instance."""
    global _commission_store
    if _commission_store is None:
        _commission_store = SQLiteCommissionStore()
    return _commission_store


async def get_commission_rule_store() -> SQLiteCommissionRuleStore:
    """Get singleton commission rule store instance."""
    global _commission_rule_store
    if _commission_rule_store is None:
        _commission_rule_store = SQLiteCommissionRuleStore()
    return _commission_rule_store


__all__ = [
    # Connection
    "ConnectionPool",
    "SQLiteStore",
    "get_pool",
    "close_pool",
    "get_connection",
    "get_transaction",
    # Store classes
    "SQLiteCatalogStore",
    "SQLiteOpportunityStore",
    "SQLiteSalesStore",
    "SQLiteCommissionStore",
    "SQLiteCommissionRuleStore",
    # Unit of work
    "SQLiteUnitOfWork",
    "sqlite_unit_of_work",
    # Factory functions
    "get_catalog_store",
    "get_opportunity_store",
    "get_sales_store",
    "get_commission_store",
    "get_commission_rule_store",
]
