"""Manage Catalog Use Case: products and service records."""

from src.application.dto.requests import ProductRequest, ServiceRecordRequest
from src.config import get_logger
from src.core.entities.catalog import Product, ServiceRecord
from src.core.exceptions import ProductNotFoundError, ServiceRecordNotFoundError
from src.core.interfaces.catalog import ICatalogStore

logger = get_logger(__name__)


class ManageCatalogUseCase:
    """Catalog administration. Price and limit changes never touch existing sales."""

    def __init__(self, catalog_store: ICatalogStore | None = None):
        self._catalog_store = catalog_store

    async def _get_catalog_store(self) -> ICatalogStore:
        if self._catalog_store is None:
            from src.infrastructure.storage.sqlite import get_catalog_store

            self._catalog_store = await get_catalog_store()
        return self._catalog_store

    async def save_product(self, request: ProductRequest) -> Product:
        logger.info("save_product_started", product_id=request.id)

        store = await self._get_catalog_store()
        existing = await store.get_product(request.id)
        product = Product(**request.model_dump())
        if existing is not None:
            product.created_at = existing.created_at
        return await store.save_product(product)

    async def get_product(self, product_id: str) -> Product:
        store = await self._get_catalog_store()
        product = await store.get_product(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        return product

    async def list_products(
        self,
        limit: int = 100,
        offset: int = 0,
        category: str | None = None,
        active_only: bool = False,
    ) -> list[Product]:
        store = await self._get_catalog_store()
        return await store.list_products(
            limit=limit, offset=offset, category=category, active_only=active_only
        )

    async def save_service_record(self, request: ServiceRecordRequest) -> ServiceRecord:
        logger.info(
            "save_service_record_started",
            service_id=request.id,
            service_type=request.service_type.value,
        )
        store = await self._get_catalog_store()
        return await store.save_service_item(ServiceRecord(**request.model_dump()))

    async def get_service_record(self, service_id: str) -> ServiceRecord:
        store = await self._get_catalog_store()
        record = await store.get_service_item(service_id)
        if record is None:
            raise ServiceRecordNotFoundError(service_id)
        return record
