"""
Core business logic services.

Layer-pure services that depend only on:
- src/core/entities/*
- src/core/interfaces/*
- src/core/exceptions.py, src/core/money.py

NO infrastructure imports. All dependencies injected via constructor.
"""

from src.core.services import line_item_pricing, proposal_aggregator
from src.core.services.commission_ledger import CommissionLedger, next_pay_status
from src.core.services.commission_resolver import (
    CommissionResolver,
    dominant_category,
    select_rule,
)
from src.core.services.opportunity_state_machine import (
    OpportunityStateMachine,
    StageTransitionResult,
    check_can_win,
    check_transition,
    ensure_editable,
)
from src.core.services.sale_finalizer import (
    FinalizeResult,
    SaleFinalizer,
    SaleItemInput,
    compute_totals,
    validate_payment_methods,
)
from src.core.services.snapshot_builder import opportunity_snapshot, sale_snapshot

__all__ = [
    # Pricing
    "line_item_pricing",
    "proposal_aggregator",
    # Lifecycle
    "OpportunityStateMachine",
    "StageTransitionResult",
    "check_can_win",
    "check_transition",
    "ensure_editable",
    # Sales
    "SaleFinalizer",
    "SaleItemInput",
    "FinalizeResult",
    "compute_totals",
    "validate_payment_methods",
    # Commissions
    "CommissionResolver",
    "CommissionLedger",
    "dominant_category",
    "select_rule",
    "next_pay_status",
    # Snapshots
    "opportunity_snapshot",
    "sale_snapshot",
]
