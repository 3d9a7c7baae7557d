"""Create Sale Use Case: direct sale outside the opportunity pipeline."""

from src.application.dto.requests import CreateSaleRequest
from src.config import get_logger
from src.core.services.sale_finalizer import FinalizeResult, SaleFinalizer, SaleItemInput

logger = get_logger(__name__)


class CreateSaleUseCase:
    """Price the requested items, persist the sale and record its commission."""

    def __init__(self, sale_finalizer: SaleFinalizer | None = None):
        self._sale_finalizer = sale_finalizer

    async def _get_sale_finalizer(self) -> SaleFinalizer:
        if self._sale_finalizer is None:
            from src.application.services import get_sale_finalizer

            self._sale_finalizer = await get_sale_finalizer()
        return self._sale_finalizer

    async def execute(self, request: CreateSaleRequest, seller_id: str) -> FinalizeResult:
        """Execute create sale use case."""
        logger.info(
            "create_sale_started",
            client_id=request.client_id,
            seller_id=seller_id,
            items=len(request.items),
            service_id=request.service_id,
        )

        finalizer = await self._get_sale_finalizer()
        return await finalizer.create_direct(
            client_id=request.client_id,
            seller_id=seller_id,
            items=[
                SaleItemInput(
                    product_id=item.product_id,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    discount_percent=item.discount_percent,
                )
                for item in request.items
            ],
            payment_methods=request.payment_methods,
            final_discount_percent=request.final_discount_percent,
            payment_values=request.payment_values,
            manual_gross_value=request.manual_gross_value,
            estimated_margin_percent=request.estimated_margin_percent,
            service_id=request.service_id,
            idempotency_key=request.idempotency_key,
            region=request.region,
            tax_percent=request.tax_percent,
            sold_at=request.sold_at,
        )
