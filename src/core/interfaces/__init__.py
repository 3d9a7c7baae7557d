"""Core interfaces (ports) for dependency injection."""

from src.core.interfaces.catalog import ICatalogService, ICatalogStore
from src.core.interfaces.commission_store import ICommissionRuleStore, ICommissionStore
from src.core.interfaces.events import IEventPublisher
from src.core.interfaces.opportunity_store import IOpportunityStore
from src.core.interfaces.sales_store import ISalesStore
from src.core.interfaces.unit_of_work import IUnitOfWork, UnitOfWorkFactory

__all__ = [
    # Catalog
    "ICatalogService",
    "ICatalogStore",
    # Storage interfaces
    "IOpportunityStore",
    "ISalesStore",
    "ICommissionStore",
    "ICommissionRuleStore",
    # Transactions
    "IUnitOfWork",
    "UnitOfWorkFactory",
    # Events
    "IEventPublisher",
]
