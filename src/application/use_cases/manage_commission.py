"""Manage Commission Use Case: ledger reads, pay status moves, re-trigger."""

from src.application.dto.requests import ChangePayStatusRequest
from src.config import get_logger
from src.core.entities.commission import Commission, CommissionPayStatus
from src.core.exceptions import CommissionNotFoundError, SaleNotFoundError
from src.core.interfaces.commission_store import ICommissionStore
from src.core.interfaces.sales_store import ISalesStore
from src.core.services.commission_ledger import CommissionLedger

logger = get_logger(__name__)


class ManageCommissionUseCase:
    """Commission ledger operations."""

    def __init__(
        self,
        commission_ledger: CommissionLedger | None = None,
        commission_store: ICommissionStore | None = None,
        sales_store: ISalesStore | None = None,
    ):
        self._commission_ledger = commission_ledger
        self._commission_store = commission_store
        self._sales_store = sales_store

    async def _get_ledger(self) -> CommissionLedger:
        if self._commission_ledger is None:
            from src.application.services import get_commission_ledger

            self._commission_ledger = await get_commission_ledger()
        return self._commission_ledger

    async def _get_commission_store(self) -> ICommissionStore:
        if self._commission_store is None:
            from src.infrastructure.storage.sqlite import get_commission_store

            self._commission_store = await get_commission_store()
        return self._commission_store

    async def _get_sales_store(self) -> ISalesStore:
        if self._sales_store is None:
            from src.infrastructure.storage.sqlite import get_sales_store

            self._sales_store = await get_sales_store()
        return self._sales_store

    async def get(self, commission_id: int) -> Commission:
        store = await self._get_commission_store()
        commission = await store.get_commission(commission_id)
        if commission is None:
            raise CommissionNotFoundError(commission_id)
        return commission

    async def get_for_sale(self, sale_id: int) -> Commission:
        """The active (non-canceled) commission of a sale."""
        ledger = await self._get_ledger()
        return await ledger.get_for_sale(sale_id)

    async def list(
        self,
        limit: int = 50,
        offset: int = 0,
        seller_id: str | None = None,
        pay_status: CommissionPayStatus | None = None,
    ) -> list[Commission]:
        store = await self._get_commission_store()
        return await store.list_commissions(
            limit=limit, offset=offset, seller_id=seller_id, pay_status=pay_status
        )

    async def change_pay_status(
        self, commission_id: int, request: ChangePayStatusRequest
    ) -> Commission:
        logger.info(
            "change_pay_status_started",
            commission_id=commission_id,
            to_status=request.pay_status.value,
        )
        ledger = await self._get_ledger()
        return await ledger.change_pay_status(
            commission_id,
            request.pay_status,
            notes=request.notes,
            receipt_url=request.receipt_url,
        )

    async def retrigger(self, sale_id: int) -> Commission:
        """
        Resolve and record a commission for a sale that has none active,
        e.g. after the previous one was canceled or a rule was added.
        Resolution errors propagate to the caller here.
        """
        logger.info("commission_retrigger_started", sale_id=sale_id)

        sales_store = await self._get_sales_store()
        sale = await sales_store.get_sale(sale_id)
        if sale is None:
            raise SaleNotFoundError(sale_id)

        ledger = await self._get_ledger()
        return await ledger.record_for_sale(sale)
