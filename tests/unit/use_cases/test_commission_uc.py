"""Unit tests for ManageCommissionUseCase and ManageCommissionRulesUseCase."""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from src.application.dto.requests import (
    ChangePayStatusRequest,
    CommissionRuleRequest,
    UpdateCommissionRuleRequest,
)
from src.application.use_cases.manage_commission import ManageCommissionUseCase
from src.application.use_cases.manage_commission_rules import ManageCommissionRulesUseCase
from src.core.entities import (
    Commission,
    CommissionBase,
    CommissionPayStatus,
    CommissionScope,
    Sale,
)
from src.core.exceptions import (
    CommissionNotFoundError,
    CommissionRuleNotFoundError,
    SaleNotFoundError,
    ValidationError,
)


@pytest.fixture
def commission():
    return Commission(
        id=2,
        sale_id=4,
        seller_id="seller-1",
        base=CommissionBase.GROSS,
        percent=Decimal("10"),
        base_amount=Decimal("285.00"),
        amount=Decimal("28.50"),
    )


@pytest.fixture
def mock_ledger(commission):
    ledger = AsyncMock()
    ledger.record_for_sale = AsyncMock(return_value=commission)
    ledger.change_pay_status = AsyncMock(return_value=commission)
    return ledger


@pytest.fixture
def mock_commission_store():
    return AsyncMock()


@pytest.fixture
def mock_sales_store():
    return AsyncMock()


@pytest.fixture
def commission_uc(mock_ledger, mock_commission_store, mock_sales_store):
    return ManageCommissionUseCase(
        commission_ledger=mock_ledger,
        commission_store=mock_commission_store,
        sales_store=mock_sales_store,
    )


@pytest.fixture
def mock_rule_store():
    store = AsyncMock()

    async def create(rule):
        rule.id = 8
        return rule

    store.create_rule = AsyncMock(side_effect=create)
    store.update_rule = AsyncMock(side_effect=lambda r: r)
    return store


@pytest.fixture
def rules_uc(mock_rule_store):
    return ManageCommissionRulesUseCase(rule_store=mock_rule_store)


@pytest.mark.asyncio
class TestManageCommissionUseCase:
    """Tests for ManageCommissionUseCase."""

    async def test_get_missing(self, commission_uc, mock_commission_store):
        mock_commission_store.get_commission = AsyncMock(return_value=None)
        with pytest.raises(CommissionNotFoundError):
            await commission_uc.get(2)

    async def test_retrigger(self, commission_uc, mock_sales_store, mock_ledger, commission):
        sale = Sale(id=4, client_id="c", seller_id="seller-1")
        mock_sales_store.get_sale = AsyncMock(return_value=sale)

        result = await commission_uc.retrigger(4)

        assert result is commission
        mock_ledger.record_for_sale.assert_awaited_once_with(sale)

    async def test_retrigger_unknown_sale(self, commission_uc, mock_sales_store, mock_ledger):
        mock_sales_store.get_sale = AsyncMock(return_value=None)

        with pytest.raises(SaleNotFoundError):
            await commission_uc.retrigger(4)
        mock_ledger.record_for_sale.assert_not_awaited()

    async def test_change_pay_status(self, commission_uc, mock_ledger):
        request = ChangePayStatusRequest(
            pay_status=CommissionPayStatus.PAID, notes="March payroll"
        )

        await commission_uc.change_pay_status(2, request)

        mock_ledger.change_pay_status.assert_awaited_once_with(
            2, CommissionPayStatus.PAID, notes="March payroll", receipt_url=None
        )


@pytest.mark.asyncio
class TestManageCommissionRulesUseCase:
    """Tests for ManageCommissionRulesUseCase."""

    async def test_create(self, rules_uc):
        rule = await rules_uc.create(
            CommissionRuleRequest(
                scope=CommissionScope.CATEGORY, category="seeds", percent=Decimal("8")
            )
        )

        assert rule.id == 8
        assert rule.base == CommissionBase.PROFIT
        assert rule.active is True

    async def test_product_rule_needs_product(self, rules_uc, mock_rule_store):
        with pytest.raises(ValidationError):
            await rules_uc.create(
                CommissionRuleRequest(scope=CommissionScope.PRODUCT, percent=Decimal("5"))
            )
        mock_rule_store.create_rule.assert_not_awaited()

    async def test_toggle_rule(self, rules_uc, mock_rule_store, global_gross_rule):
        mock_rule_store.get_rule = AsyncMock(return_value=global_gross_rule)

        updated = await rules_uc.update(1, UpdateCommissionRuleRequest(active=False))

        assert updated.active is False
        assert updated.percent == Decimal("10")

    async def test_empty_update_is_a_no_op(self, rules_uc, mock_rule_store, global_gross_rule):
        mock_rule_store.get_rule = AsyncMock(return_value=global_gross_rule)

        assert await rules_uc.update(1, UpdateCommissionRuleRequest()) is global_gross_rule
        mock_rule_store.update_rule.assert_not_awaited()

    async def test_update_missing(self, rules_uc, mock_rule_store):
        mock_rule_store.get_rule = AsyncMock(return_value=None)
        with pytest.raises(CommissionRuleNotFoundError):
            await rules_uc.update(9, UpdateCommissionRuleRequest(active=False))

    async def test_list_active_only(self, rules_uc, mock_rule_store):
        mock_rule_store.list_active_rules = AsyncMock(return_value=[])

        await rules_uc.list(active_only=True)

        mock_rule_store.list_active_rules.assert_awaited_once()
        mock_rule_store.list_rules.assert_not_awaited()
