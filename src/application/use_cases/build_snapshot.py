"""Build Snapshot Use Case: serializable document data for proposals and sales."""

from src.config import get_logger, get_settings
from src.core.entities.snapshot import DocumentSnapshot
from src.core.exceptions import OpportunityNotFoundError, SaleNotFoundError
from src.core.interfaces.catalog import ICatalogService
from src.core.interfaces.opportunity_store import IOpportunityStore
from src.core.interfaces.sales_store import ISalesStore
from src.core.services.snapshot_builder import opportunity_snapshot, sale_snapshot

logger = get_logger(__name__)


class BuildSnapshotUseCase:
    """Snapshot an opportunity's proposal or a sale for PDF/export consumers."""

    def __init__(
        self,
        opportunity_store: IOpportunityStore | None = None,
        sales_store: ISalesStore | None = None,
        catalog: ICatalogService | None = None,
        currency: str | None = None,
    ):
        self._opportunity_store = opportunity_store
        self._sales_store = sales_store
        self._catalog = catalog
        self._currency = currency or get_settings().pricing.currency

    async def _get_opportunity_store(self) -> IOpportunityStore:
        if self._opportunity_store is None:
            from src.infrastructure.storage.sqlite import get_opportunity_store

            self._opportunity_store = await get_opportunity_store()
        return self._opportunity_store

    async def _get_sales_store(self) -> ISalesStore:
        if self._sales_store is None:
            from src.infrastructure.storage.sqlite import get_sales_store

            self._sales_store = await get_sales_store()
        return self._sales_store

    async def _get_catalog(self) -> ICatalogService:
        if self._catalog is None:
            from src.infrastructure.storage.sqlite import get_catalog_store

            self._catalog = await get_catalog_store()
        return self._catalog

    async def for_opportunity(self, opportunity_id: int) -> DocumentSnapshot:
        store = await self._get_opportunity_store()
        opportunity = await store.get_opportunity(opportunity_id)
        if opportunity is None:
            raise OpportunityNotFoundError(opportunity_id)

        # Product names are display-only; a product removed from the catalog
        # leaves its name blank.
        catalog = await self._get_catalog()
        names: dict[str, str] = {}
        for product_id in {item.product_id for item in opportunity.items}:
            product = await catalog.get_product(product_id)
            if product is not None:
                names[product_id] = product.name

        logger.info("snapshot_built", source="opportunity", source_id=opportunity_id)
        return opportunity_snapshot(opportunity, self._currency, product_names=names)

    async def for_sale(self, sale_id: int) -> DocumentSnapshot:
        store = await self._get_sales_store()
        sale = await store.get_sale(sale_id)
        if sale is None:
            raise SaleNotFoundError(sale_id)

        logger.info("snapshot_built", source="sale", source_id=sale_id)
        return sale_snapshot(sale, self._currency)
