"""
Commission rule resolution.

Precedence, highest first:
1. active product rule matching any product on the sale
2. active category rule matching the sale's dominant category
3. active global rule

Within a tier the earliest rule (created_at, then id) wins.
"""

from collections.abc import Sequence
from decimal import Decimal

from src.config import get_logger
from src.core.entities.commission import (
    CommissionBase,
    CommissionResolution,
    CommissionRule,
    CommissionScope,
)
from src.core.entities.sale import Sale, SaleLineItem
from src.core.exceptions import CommissionBaseUnavailableError, NoApplicableRuleError
from src.core.interfaces.catalog import ICatalogService
from src.core.interfaces.commission_store import ICommissionRuleStore

logger = get_logger(__name__)


def dominant_category(items: Sequence[SaleLineItem]) -> str | None:
    """Category with the largest summed subtotal. Ties go to the first seen."""
    totals: dict[str, Decimal] = {}
    for item in items:
        if item.category:
            totals[item.category] = totals.get(item.category, Decimal("0")) + item.subtotal
    best: str | None = None
    for category, total in totals.items():
        if best is None or total > totals[best]:
            best = category
    return best


def _creation_order(rule: CommissionRule) -> tuple:
    return (rule.created_at, rule.id if rule.id is not None else 0)


def select_rule(sale: Sale, rules: Sequence[CommissionRule]) -> CommissionRule:
    """
    Pick the applicable rule for a sale.

    Raises:
        NoApplicableRuleError: no active rule matches.
    """
    active = sorted((r for r in rules if r.active), key=_creation_order)
    product_ids = set(sale.product_ids)
    category = dominant_category(sale.items)

    for rule in active:
        if rule.scope == CommissionScope.PRODUCT and rule.product_id in product_ids:
            return rule
    if category is not None:
        for rule in active:
            if rule.scope == CommissionScope.CATEGORY and rule.category == category:
                return rule
    for rule in active:
        if rule.scope == CommissionScope.GLOBAL:
            return rule

    raise NoApplicableRuleError(sale.id)


class CommissionResolver:
    """Selects a rule and computes the amount it applies to."""

    def __init__(
        self,
        rule_store: ICommissionRuleStore,
        catalog: ICatalogService,
    ) -> None:
        self._rules = rule_store
        self._catalog = catalog

    async def base_amount(self, sale: Sale, base: CommissionBase) -> Decimal:
        """Monetary figure the rule percent is applied to."""
        if base == CommissionBase.PROFIT:
            return sale.estimated_profit
        if base == CommissionBase.GROSS:
            return sale.gross_value

        if not sale.service_id:
            raise CommissionBaseUnavailableError(sale.id, base.value, "sale has no service record")
        record = await self._catalog.get_service_item(sale.service_id)
        if record is None or record.total_value is None:
            raise CommissionBaseUnavailableError(
                sale.id, base.value, f"service record {sale.service_id} has no total"
            )
        return record.total_value

    async def resolve(
        self, sale: Sale, rules: Sequence[CommissionRule] | None = None
    ) -> CommissionResolution:
        """
        Resolve the commission rule for a sale.

        Rules are read from the rule store at call time unless given.

        Raises:
            NoApplicableRuleError: no rule matches.
            CommissionBaseUnavailableError: the rule's base cannot be computed.
        """
        if rules is None:
            rules = await self._rules.list_active_rules()

        rule = select_rule(sale, rules)
        amount = await self.base_amount(sale, rule.base)

        logger.debug(
            "commission_rule_resolved",
            sale_id=sale.id,
            rule_id=rule.id,
            scope=rule.scope.value,
            base=rule.base.value,
            percent=str(rule.percent),
        )
        return CommissionResolution(
            rule_id=rule.id,
            scope=rule.scope,
            base=rule.base,
            percent=rule.percent,
            base_amount=amount,
        )
