"""
Service factory functions for dependency injection.

This module provides factory functions that wire infrastructure
implementations to core services. Use cases should import from here.

Clean Architecture: Application layer orchestrates DI, not core layer.
"""

from typing import TYPE_CHECKING

from src.core.services import (
    CommissionLedger,
    CommissionResolver,
    OpportunityStateMachine,
    SaleFinalizer,
)

if TYPE_CHECKING:
    from src.core.interfaces import (
        ICatalogService,
        ICommissionRuleStore,
        ICommissionStore,
        IEventPublisher,
        IOpportunityStore,
        UnitOfWorkFactory,
    )


# Singleton service instances
_commission_resolver: CommissionResolver | None = None
_commission_ledger: CommissionLedger | None = None
_sale_finalizer: SaleFinalizer | None = None
_state_machine: OpportunityStateMachine | None = None


async def get_commission_resolver(
    rule_store: "ICommissionRuleStore | None" = None,
    catalog: "ICatalogService | None" = None,
) -> CommissionResolver:
    """
    Get or create CommissionResolver instance.

    Args:
        rule_store: Optional commission rule store override
        catalog: Optional catalog override (service records)

    Returns:
        Configured CommissionResolver
    """
    global _commission_resolver

    if _commission_resolver is not None and rule_store is None:
        return _commission_resolver

    # Lazy import infrastructure
    from src.infrastructure.storage.sqlite import get_catalog_store, get_commission_rule_store

    resolver = CommissionResolver(
        rule_store=rule_store or await get_commission_rule_store(),
        catalog=catalog or await get_catalog_store(),
    )

    if rule_store is None:
        _commission_resolver = resolver

    return resolver


async def get_commission_ledger(
    commission_store: "ICommissionStore | None" = None,
    resolver: CommissionResolver | None = None,
    event_publisher: "IEventPublisher | None" = None,
) -> CommissionLedger:
    """
    Get or create CommissionLedger instance.

    Args:
        commission_store: Optional commission store override
        resolver: Optional resolver override
        event_publisher: Optional event publisher override

    Returns:
        Configured CommissionLedger
    """
    global _commission_ledger

    if _commission_ledger is not None and commission_store is None:
        return _commission_ledger

    # Lazy import infrastructure
    from src.infrastructure.notifications import get_event_bus
    from src.infrastructure.storage.sqlite import get_commission_store

    ledger = CommissionLedger(
        commission_store=commission_store or await get_commission_store(),
        resolver=resolver or await get_commission_resolver(),
        event_publisher=event_publisher or get_event_bus(),
    )

    if commission_store is None:
        _commission_ledger = ledger

    return ledger


async def get_sale_finalizer(
    catalog: "ICatalogService | None" = None,
    uow_factory: "UnitOfWorkFactory | None" = None,
    commission_ledger: CommissionLedger | None = None,
    event_publisher: "IEventPublisher | None" = None,
) -> SaleFinalizer:
    """
    Get or create SaleFinalizer instance.

    The unit of work factory opens one SQLite transaction per call, so the
    sale, its items and the opportunity update commit or roll back together.

    Args:
        catalog: Optional catalog override
        uow_factory: Optional unit of work factory override
        commission_ledger: Optional ledger override
        event_publisher: Optional event publisher override

    Returns:
        Configured SaleFinalizer
    """
    global _sale_finalizer

    if _sale_finalizer is not None and uow_factory is None:
        return _sale_finalizer

    # Lazy import infrastructure
    from src.infrastructure.notifications import get_event_bus
    from src.infrastructure.storage.sqlite import get_catalog_store, sqlite_unit_of_work

    finalizer = SaleFinalizer(
        catalog=catalog or await get_catalog_store(),
        uow_factory=uow_factory or sqlite_unit_of_work,
        commission_ledger=commission_ledger or await get_commission_ledger(),
        event_publisher=event_publisher or get_event_bus(),
    )

    if uow_factory is None:
        _sale_finalizer = finalizer

    return finalizer


async def get_opportunity_state_machine(
    opportunity_store: "IOpportunityStore | None" = None,
    sale_finalizer: SaleFinalizer | None = None,
) -> OpportunityStateMachine:
    """
    Get or create OpportunityStateMachine instance.

    Args:
        opportunity_store: Optional opportunity store override
        sale_finalizer: Optional finalizer override

    Returns:
        Configured OpportunityStateMachine
    """
    global _state_machine

    if _state_machine is not None and opportunity_store is None:
        return _state_machine

    # Lazy import infrastructure
    from src.infrastructure.storage.sqlite import get_opportunity_store

    machine = OpportunityStateMachine(
        opportunity_store=opportunity_store or await get_opportunity_store(),
        sale_finalizer=sale_finalizer or await get_sale_finalizer(),
    )

    if opportunity_store is None:
        _state_machine = machine

    return machine


def reset_services() -> None:
    """
    Reset all singleton service instances.

    Useful for testing or when configuration changes.
    """
    global _commission_resolver
    global _commission_ledger
    global _sale_finalizer
    global _state_machine

    _commission_resolver = None
    _commission_ledger = None
    _sale_finalizer = None
    _state_machine = None


__all__ = [
    # Factory functions
    "get_commission_resolver",
    "get_commission_ledger",
    "get_sale_finalizer",
    "get_opportunity_state_machine",
    # Reset
    "reset_services",
]
