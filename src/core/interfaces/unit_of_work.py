"""Abstract unit of work spanning the opportunity, sale and commission stores."""

from abc import ABC, abstractmethod
from typing import Callable

from src.core.interfaces.catalog import ICatalogService
from src.core.interfaces.commission_store import ICommissionStore
from src.core.interfaces.opportunity_store import IOpportunityStore
from src.core.interfaces.sales_store import ISalesStore


class IUnitOfWork(ABC):
    """
    One atomic write boundary.

    Usage:
        async with uow_factory() as uow:
            sale = await uow.sales.create_sale(sale)
            await uow.opportunities.update_opportunity(opportunity)

    Leaving the block normally commits; an exception rolls every write
    back and propagates. Reads needed while the block is open (catalog
    included) go through the bound stores, never through a second
    connection.
    """

    opportunities: IOpportunityStore
    sales: ISalesStore
    commissions: ICommissionStore
    catalog: ICatalogService

    @abstractmethod
    async def __aenter__(self) -> "IUnitOfWork":
        pass

    @abstractmethod
    async def __aexit__(self, exc_type, exc, tb) -> None:
        pass


UnitOfWorkFactory = Callable[[], IUnitOfWork]
