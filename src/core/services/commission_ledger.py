"""
Commission ledger.

At most one active (non-canceled) commission per sale. The store's
unique index is the real guard; the read-before-insert only saves a
round trip in the common case.
"""

from datetime import datetime

from src.config import get_logger
from src.core.entities.commission import (
    PAY_STATUS_TRANSITIONS,
    Commission,
    CommissionPayStatus,
    CommissionResolution,
)
from src.core.entities.events import CommissionCreated, CommissionPayStatusChanged
from src.core.entities.sale import Sale
from src.core.exceptions import (
    CommissionNotFoundError,
    CommissionResolutionError,
    DuplicateCommissionError,
    InvalidPayStatusTransitionError,
    SaleCanceledError,
)
from src.core.interfaces.commission_store import ICommissionStore
from src.core.interfaces.events import IEventPublisher
from src.core.money import percent_of, round_money
from src.core.services.commission_resolver import CommissionResolver

logger = get_logger(__name__)


def next_pay_status(
    commission: Commission, new_status: CommissionPayStatus
) -> Commission:
    """
    Apply a pay-status move to a commission copy.

    pending → approved → paid, pending|approved → canceled. Setting the
    current status again returns the commission unchanged. The pay-status
    date is stamped on the move to paid and never overwritten.
    """
    if commission.pay_status == new_status:
        return commission
    if new_status not in PAY_STATUS_TRANSITIONS[commission.pay_status]:
        raise InvalidPayStatusTransitionError(
            commission.id, commission.pay_status.value, new_status.value
        )

    now = datetime.utcnow()
    changes: dict = {"pay_status": new_status, "updated_at": now}
    if new_status == CommissionPayStatus.PAID and commission.pay_status_date is None:
        changes["pay_status_date"] = now
    return commission.model_copy(update=changes)


class CommissionLedger:
    """Records commissions idempotently and moves their pay status."""

    def __init__(
        self,
        commission_store: ICommissionStore,
        resolver: CommissionResolver,
        event_publisher: IEventPublisher | None = None,
    ) -> None:
        self._store = commission_store
        self._resolver = resolver
        self._events = event_publisher

    async def record(
        self,
        sale: Sale,
        seller_id: str,
        resolution: CommissionResolution,
    ) -> Commission:
        """
        Record the commission of a sale. A second call for the same sale
        returns the existing active record instead of inserting.
        """
        existing = await self._store.get_active_commission(sale.id)
        if existing:
            return existing

        commission = Commission(
            sale_id=sale.id,
            seller_id=seller_id,
            rule_id=resolution.rule_id,
            base=resolution.base,
            percent=resolution.percent,
            base_amount=resolution.base_amount,
            amount=round_money(percent_of(resolution.base_amount, resolution.percent)),
        )
        try:
            created = await self._store.create_commission(commission)
        except DuplicateCommissionError:
            winner = await self._store.get_active_commission(sale.id)
            if winner is None:
                raise
            logger.info("commission_insert_lost_race", sale_id=sale.id, commission_id=winner.id)
            return winner

        logger.info(
            "commission_recorded",
            commission_id=created.id,
            sale_id=sale.id,
            seller_id=seller_id,
            base=created.base.value,
            amount=str(created.amount),
        )
        if self._events:
            await self._events.publish(
                CommissionCreated(
                    commission_id=created.id,
                    sale_id=sale.id,
                    seller_id=seller_id,
                    amount=created.amount,
                )
            )
        return created

    async def record_for_sale(self, sale: Sale) -> Commission:
        """
        Resolve and record. Used for explicit re-triggering after a cancel.

        Raises:
            SaleCanceledError: the sale itself is canceled.
            NoApplicableRuleError / CommissionBaseUnavailableError.
        """
        if sale.is_canceled:
            raise SaleCanceledError(sale.id)
        existing = await self._store.get_active_commission(sale.id)
        if existing:
            return existing
        resolution = await self._resolver.resolve(sale)
        return await self.record(sale, sale.seller_id, resolution)

    async def ensure_commission(self, sale: Sale) -> Commission | None:
        """
        Commission step that follows a sale write.

        Skips sales that already went through the ledger, so a canceled
        commission is not regenerated by a retried conversion. Resolution
        failures are logged and the sale stands without a commission.
        """
        history = await self._store.list_sale_commissions(sale.id)
        if history:
            return next((c for c in history if c.is_active), None)
        try:
            resolution = await self._resolver.resolve(sale)
        except CommissionResolutionError as e:
            logger.warning(
                "commission_skipped",
                sale_id=sale.id,
                seller_id=sale.seller_id,
                reason=e.code,
                error=e.message,
            )
            return None
        return await self.record(sale, sale.seller_id, resolution)

    async def get_for_sale(self, sale_id: int) -> Commission:
        commission = await self._store.get_active_commission(sale_id)
        if commission is None:
            raise CommissionNotFoundError(sale_id=sale_id)
        return commission

    async def change_pay_status(
        self,
        commission_id: int,
        new_status: CommissionPayStatus,
        notes: str | None = None,
        receipt_url: str | None = None,
    ) -> Commission:
        commission = await self._store.get_commission(commission_id)
        if commission is None:
            raise CommissionNotFoundError(commission_id)

        updated = next_pay_status(commission, new_status)
        if notes is not None or receipt_url is not None:
            updated = updated.model_copy(
                update={
                    "notes": notes if notes is not None else updated.notes,
                    "receipt_url": receipt_url if receipt_url is not None else updated.receipt_url,
                    "updated_at": datetime.utcnow(),
                }
            )
        if updated is commission:
            return commission

        saved = await self._store.update_commission(updated)
        if saved.pay_status != commission.pay_status:
            logger.info(
                "commission_pay_status_changed",
                commission_id=commission_id,
                from_status=commission.pay_status.value,
                to_status=saved.pay_status.value,
            )
            if self._events:
                await self._events.publish(
                    CommissionPayStatusChanged(
                        commission_id=commission_id,
                        sale_id=saved.sale_id,
                        seller_id=saved.seller_id,
                        from_status=commission.pay_status.value,
                        to_status=saved.pay_status.value,
                    )
                )
        return saved
