"""Abstract interface for sale storage."""

from abc import ABC, abstractmethod

from src.core.entities.sale import Sale, SaleStatus


class ISalesStore(ABC):
    """Interface for sale and sale line item persistence."""

    @abstractmethod
    async def create_sale(self, sale: Sale) -> Sale:
        """Create a sale with all its items."""
        pass

    @abstractmethod
    async def get_sale(self, sale_id: int) -> Sale | None:
        """Get sale by ID with items."""
        pass

    @abstractmethod
    async def get_sale_by_opportunity(self, opportunity_id: int) -> Sale | None:
        """Get the sale converted from an opportunity."""
        pass

    @abstractmethod
    async def get_sale_by_idempotency_key(self, key: str) -> Sale | None:
        """Get a sale previously submitted with this key."""
        pass

    @abstractmethod
    async def update_sale(self, sale: Sale) -> Sale:
        """Update the sale row and replace its item set (delete-then-reinsert)."""
        pass

    @abstractmethod
    async def list_sales(
        self,
        limit: int = 100,
        offset: int = 0,
        seller_id: str | None = None,
        status: SaleStatus | None = None,
    ) -> list[Sale]:
        """List sales with pagination, newest first."""
        pass
