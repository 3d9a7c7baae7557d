"""Manage Commission Rules Use Case: admin rule configuration."""

from pydantic import ValidationError as PydanticValidationError

from src.application.dto.requests import CommissionRuleRequest, UpdateCommissionRuleRequest
from src.config import get_logger
from src.core.entities.commission import CommissionRule
from src.core.exceptions import CommissionRuleNotFoundError, ValidationError
from src.core.interfaces.commission_store import ICommissionRuleStore

logger = get_logger(__name__)


class ManageCommissionRulesUseCase:
    """
    Create, edit and toggle commission rules.

    Changes apply to sales finalized afterwards; recorded commissions keep
    the percent and base they were created with.
    """

    def __init__(self, rule_store: ICommissionRuleStore | None = None):
        self._rule_store = rule_store

    async def _get_rule_store(self) -> ICommissionRuleStore:
        if self._rule_store is None:
            from src.infrastructure.storage.sqlite import get_commission_rule_store

            self._rule_store = await get_commission_rule_store()
        return self._rule_store

    async def create(self, request: CommissionRuleRequest) -> CommissionRule:
        logger.info(
            "create_commission_rule_started",
            scope=request.scope.value,
            product_id=request.product_id,
            category=request.category,
        )
        try:
            rule = CommissionRule(**request.model_dump())
        except PydanticValidationError as e:
            raise ValidationError("scope", e.errors()[0]["msg"], request.scope.value) from e

        store = await self._get_rule_store()
        return await store.create_rule(rule)

    async def update(self, rule_id: int, request: UpdateCommissionRuleRequest) -> CommissionRule:
        store = await self._get_rule_store()
        rule = await store.get_rule(rule_id)
        if rule is None:
            raise CommissionRuleNotFoundError(rule_id)

        changes = request.model_dump(exclude_none=True)
        if not changes:
            return rule

        updated = await store.update_rule(rule.model_copy(update=changes))
        logger.info("commission_rule_updated", rule_id=rule_id, changes=sorted(changes))
        return updated

    async def list(self, active_only: bool = False) -> list[CommissionRule]:
        store = await self._get_rule_store()
        if active_only:
            return await store.list_active_rules()
        return await store.list_rules()
