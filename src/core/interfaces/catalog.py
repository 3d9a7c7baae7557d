"""Abstract interfaces for the product and service catalog."""

from abc import ABC, abstractmethod

from src.core.entities.catalog import Product, ServiceRecord


class ICatalogService(ABC):
    """
    Read access to the catalog.

    The engine reads prices, costs and discount limits at the moment of
    computation; implementations must not serve them from a stale cache.
    """

    @abstractmethod
    async def get_product(self, product_id: str) -> Product | None:
        """Get product by ID."""
        pass

    @abstractmethod
    async def get_service_item(self, service_id: str) -> ServiceRecord | None:
        """Get service record by ID."""
        pass


class ICatalogStore(ICatalogService):
    """Catalog administration on top of the read contract."""

    @abstractmethod
    async def save_product(self, product: Product) -> Product:
        """Insert or update a product."""
        pass

    @abstractmethod
    async def list_products(
        self,
        limit: int = 100,
        offset: int = 0,
        category: str | None = None,
        active_only: bool = False,
    ) -> list[Product]:
        """List products with optional filters."""
        pass

    @abstractmethod
    async def save_service_item(self, record: ServiceRecord) -> ServiceRecord:
        """Insert or update a service record."""
        pass
