"""Pytest configuration for core service tests.

Services run against in-memory implementations of the storage ports. The
in-memory unit of work snapshots the stores on entry and restores them
when the block raises, so atomicity can be asserted without SQLite.
"""

import copy
from datetime import datetime, timedelta

import pytest

from src.core.entities import (
    Commission,
    CommissionRule,
    Opportunity,
    OpportunityStage,
    Product,
    Sale,
    ServiceRecord,
)
from src.core.exceptions import DuplicateCommissionError
from src.core.interfaces import (
    ICatalogService,
    ICommissionRuleStore,
    ICommissionStore,
    IEventPublisher,
    IOpportunityStore,
    ISalesStore,
    IUnitOfWork,
)
from src.core.services import (
    CommissionLedger,
    CommissionResolver,
    OpportunityStateMachine,
    SaleFinalizer,
)


class InMemoryCatalog(ICatalogService):
    def __init__(self, products=(), services=()):
        self.products = {p.id: p for p in products}
        self.services = {s.id: s for s in services}

    async def get_product(self, product_id: str) -> Product | None:
        return self.products.get(product_id)

    async def get_service_item(self, service_id: str) -> ServiceRecord | None:
        return self.services.get(service_id)


class InMemoryOpportunityStore(IOpportunityStore):
    def __init__(self):
        self.rows: dict[int, Opportunity] = {}
        self._next_id = 1

    async def create_opportunity(self, opportunity):
        opportunity.id = self._next_id
        self._next_id += 1
        self.rows[opportunity.id] = opportunity.model_copy(deep=True)
        return opportunity

    async def get_opportunity(self, opportunity_id):
        row = self.rows.get(opportunity_id)
        return row.model_copy(deep=True) if row else None

    async def update_opportunity(self, opportunity):
        self.rows[opportunity.id] = opportunity.model_copy(deep=True)
        return opportunity

    async def delete_opportunity(self, opportunity_id):
        return self.rows.pop(opportunity_id, None) is not None

    async def list_opportunities(
        self, limit=100, offset=0, seller_id=None, client_id=None, stage=None
    ):
        rows = [
            r
            for r in self.rows.values()
            if (seller_id is None or r.seller_id == seller_id)
            and (client_id is None or r.client_id == client_id)
            and (stage is None or r.stage == stage)
        ]
        return rows[offset : offset + limit]


class InMemorySalesStore(ISalesStore):
    def __init__(self):
        self.rows: dict[int, Sale] = {}
        self._next_id = 1
        self.fail_on_create: Exception | None = None

    async def create_sale(self, sale):
        if self.fail_on_create is not None:
            raise self.fail_on_create
        sale.id = self._next_id
        self._next_id += 1
        for item in sale.items:
            item.sale_id = sale.id
        self.rows[sale.id] = sale.model_copy(deep=True)
        return sale

    async def get_sale(self, sale_id):
        row = self.rows.get(sale_id)
        return row.model_copy(deep=True) if row else None

    async def get_sale_by_opportunity(self, opportunity_id):
        for row in self.rows.values():
            if row.opportunity_id == opportunity_id:
                return row.model_copy(deep=True)
        return None

    async def get_sale_by_idempotency_key(self, key):
        for row in self.rows.values():
            if row.idempotency_key == key:
                return row.model_copy(deep=True)
        return None

    async def update_sale(self, sale):
        self.rows[sale.id] = sale.model_copy(deep=True)
        return sale

    async def list_sales(self, limit=100, offset=0, seller_id=None, status=None):
        rows = [
            r
            for r in self.rows.values()
            if (seller_id is None or r.seller_id == seller_id)
            and (status is None or r.status == status)
        ]
        return rows[offset : offset + limit]


class InMemoryCommissionStore(ICommissionStore):
    def __init__(self):
        self.rows: dict[int, Commission] = {}
        self._next_id = 1

    async def create_commission(self, commission):
        if any(c.sale_id == commission.sale_id and c.is_active for c in self.rows.values()):
            raise DuplicateCommissionError(commission.sale_id)
        commission.id = self._next_id
        self._next_id += 1
        self.rows[commission.id] = commission.model_copy(deep=True)
        return commission

    async def get_commission(self, commission_id):
        row = self.rows.get(commission_id)
        return row.model_copy(deep=True) if row else None

    async def get_active_commission(self, sale_id):
        for row in self.rows.values():
            if row.sale_id == sale_id and row.is_active:
                return row.model_copy(deep=True)
        return None

    async def list_sale_commissions(self, sale_id):
        return [r.model_copy(deep=True) for r in self.rows.values() if r.sale_id == sale_id]

    async def update_commission(self, commission):
        self.rows[commission.id] = commission.model_copy(deep=True)
        return commission

    async def list_commissions(self, limit=100, offset=0, seller_id=None, pay_status=None):
        rows = [
            r
            for r in self.rows.values()
            if (seller_id is None or r.seller_id == seller_id)
            and (pay_status is None or r.pay_status == pay_status)
        ]
        return rows[offset : offset + limit]


class InMemoryRuleStore(ICommissionRuleStore):
    def __init__(self, rules=()):
        self.rows: dict[int, CommissionRule] = {}
        for rule in rules:
            self.rows[rule.id] = rule

    async def list_active_rules(self):
        return [r for r in await self.list_rules() if r.active]

    async def list_rules(self):
        return sorted(self.rows.values(), key=lambda r: (r.created_at, r.id))

    async def get_rule(self, rule_id):
        return self.rows.get(rule_id)

    async def create_rule(self, rule):
        rule.id = max(self.rows, default=0) + 1
        self.rows[rule.id] = rule
        return rule

    async def update_rule(self, rule):
        self.rows[rule.id] = rule
        return rule


class InMemoryUnitOfWork(IUnitOfWork):
    def __init__(self, opportunities, sales, commissions, catalog=None):
        self.opportunities = opportunities
        self.sales = sales
        self.commissions = commissions
        self.catalog = catalog
        self.committed = 0
        self.rolled_back = 0

    def __call__(self) -> "InMemoryUnitOfWork":
        return self

    async def __aenter__(self):
        self._snapshot = [
            (store, copy.deepcopy(store.__dict__))
            for store in (self.opportunities, self.sales, self.commissions)
        ]
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if exc_type is None:
            self.committed += 1
            return
        for store, state in self._snapshot:
            store.__dict__.clear()
            store.__dict__.update(state)
        self.rolled_back += 1


class RecordingPublisher(IEventPublisher):
    def __init__(self):
        self.events = []

    async def publish(self, event):
        self.events.append(event)

    def kinds(self) -> list[str]:
        return [e.kind for e in self.events]


def _make_rule(rule_id: int, minutes: int = 0, **fields) -> CommissionRule:
    """Rule created `minutes` after a fixed epoch, for ordering tests."""
    return CommissionRule(
        id=rule_id,
        created_at=datetime(2024, 1, 1) + timedelta(minutes=minutes),
        **fields,
    )


@pytest.fixture
def make_rule():
    return _make_rule


@pytest.fixture
def catalog(seed_product, herbicide_product, inactive_product, spraying_record):
    return InMemoryCatalog(
        products=[seed_product, herbicide_product, inactive_product],
        services=[spraying_record],
    )


@pytest.fixture
def opportunity_store():
    return InMemoryOpportunityStore()


@pytest.fixture
def sales_store():
    return InMemorySalesStore()


@pytest.fixture
def commission_store():
    return InMemoryCommissionStore()


@pytest.fixture
def rule_store(global_gross_rule):
    return InMemoryRuleStore([global_gross_rule])


@pytest.fixture
def events():
    return RecordingPublisher()


@pytest.fixture
def uow(opportunity_store, sales_store, commission_store, catalog):
    return InMemoryUnitOfWork(opportunity_store, sales_store, commission_store, catalog)


@pytest.fixture
def resolver(rule_store, catalog):
    return CommissionResolver(rule_store=rule_store, catalog=catalog)


@pytest.fixture
def ledger(commission_store, resolver, events):
    return CommissionLedger(commission_store, resolver, event_publisher=events)


@pytest.fixture
def finalizer(catalog, uow, ledger, events):
    return SaleFinalizer(
        catalog=catalog,
        uow_factory=uow,
        commission_ledger=ledger,
        event_publisher=events,
        max_payment_methods=2,
    )


@pytest.fixture
def state_machine(opportunity_store, finalizer):
    return OpportunityStateMachine(opportunity_store, finalizer)


@pytest.fixture
def closing_opportunity(opportunity_store, seed_product, herbicide_product):
    """
    Proposal in closing: 3 × P1 at 10% off plus 1 × P2, adjusted by −20.

    Gross value 300.00.
    """
    from src.core.services import line_item_pricing as pricing

    async def _create(**fields) -> Opportunity:
        data = {
            "client_id": "client-1",
            "seller_id": "seller-1",
            "stage": OpportunityStage.CLOSING,
            "items": [
                pricing.add_item(seed_product, 3, override_discount=10),
                pricing.add_item(herbicide_product, 1),
            ],
            "value_adjustment": -20,
        }
        data.update(fields)
        return await opportunity_store.create_opportunity(Opportunity(**data))

    return _create

