"""Manage Sale Use Case: read, edit, payment flag and cancellation."""

from src.application.dto.requests import UpdateSaleRequest
from src.config import get_logger
from src.core.entities.sale import Sale, SaleStatus
from src.core.exceptions import SaleNotFoundError
from src.core.interfaces.sales_store import ISalesStore
from src.core.services.sale_finalizer import SaleFinalizer, SaleItemInput

logger = get_logger(__name__)


class ManageSaleUseCase:
    """Operations on sales that already exist."""

    def __init__(
        self,
        sales_store: ISalesStore | None = None,
        sale_finalizer: SaleFinalizer | None = None,
    ):
        self._sales_store = sales_store
        self._sale_finalizer = sale_finalizer

    async def _get_sales_store(self) -> ISalesStore:
        if self._sales_store is None:
            from src.infrastructure.storage.sqlite import get_sales_store

            self._sales_store = await get_sales_store()
        return self._sales_store

    async def _get_sale_finalizer(self) -> SaleFinalizer:
        if self._sale_finalizer is None:
            from src.application.services import get_sale_finalizer

            self._sale_finalizer = await get_sale_finalizer()
        return self._sale_finalizer

    async def get(self, sale_id: int) -> Sale:
        store = await self._get_sales_store()
        sale = await store.get_sale(sale_id)
        if sale is None:
            raise SaleNotFoundError(sale_id)
        return sale

    async def list(
        self,
        limit: int = 50,
        offset: int = 0,
        seller_id: str | None = None,
        status: SaleStatus | None = None,
    ) -> list[Sale]:
        store = await self._get_sales_store()
        return await store.list_sales(
            limit=limit, offset=offset, seller_id=seller_id, status=status
        )

    async def update(self, sale_id: int, request: UpdateSaleRequest) -> Sale:
        """Recompute a sale from edited items, discount or payment details."""
        logger.info(
            "update_sale_started",
            sale_id=sale_id,
            fields=sorted(request.model_fields_set),
        )

        finalizer = await self._get_sale_finalizer()
        items = (
            [
                SaleItemInput(
                    product_id=item.product_id,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    discount_percent=item.discount_percent,
                )
                for item in request.items
            ]
            if request.items is not None
            else None
        )
        return await finalizer.update_sale(
            sale_id,
            items=items,
            payment_methods=request.payment_methods,
            final_discount_percent=request.final_discount_percent,
            payment_values=request.payment_values,
            manual_gross_value=request.manual_gross_value,
            region=request.region,
            tax_percent=request.tax_percent,
        )

    async def set_payment_received(self, sale_id: int, received: bool) -> Sale:
        finalizer = await self._get_sale_finalizer()
        return await finalizer.set_payment_received(sale_id, received)

    async def cancel(self, sale_id: int) -> Sale:
        logger.info("cancel_sale_started", sale_id=sale_id)
        finalizer = await self._get_sale_finalizer()
        return await finalizer.cancel_sale(sale_id)
