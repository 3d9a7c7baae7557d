"""Core domain entities."""

from src.core.entities.catalog import (
    Product,
    ProductStatus,
    ServiceRecord,
    ServiceType,
)
from src.core.entities.commission import (
    PAY_STATUS_TRANSITIONS,
    Commission,
    CommissionBase,
    CommissionPayStatus,
    CommissionResolution,
    CommissionRule,
    CommissionScope,
)
from src.core.entities.events import (
    CommissionCreated,
    CommissionPayStatusChanged,
    DomainEvent,
    OpportunityWon,
    SaleCreated,
    domain_event_adapter,
)
from src.core.entities.opportunity import (
    OPEN_STAGES,
    Opportunity,
    OpportunityStage,
    ProposalLineItem,
)
from src.core.entities.sale import (
    Sale,
    SaleLineItem,
    SaleStatus,
)
from src.core.entities.snapshot import (
    DocumentSnapshot,
    SnapshotLine,
    SnapshotTotals,
)

__all__ = [
    # Catalog entities
    "Product",
    "ProductStatus",
    "ServiceRecord",
    "ServiceType",
    # Opportunity entities
    "Opportunity",
    "OpportunityStage",
    "OPEN_STAGES",
    "ProposalLineItem",
    # Sale entities
    "Sale",
    "SaleLineItem",
    "SaleStatus",
    # Commission entities
    "Commission",
    "CommissionBase",
    "CommissionPayStatus",
    "CommissionResolution",
    "CommissionRule",
    "CommissionScope",
    "PAY_STATUS_TRANSITIONS",
    # Events
    "DomainEvent",
    "OpportunityWon",
    "SaleCreated",
    "CommissionCreated",
    "CommissionPayStatusChanged",
    "domain_event_adapter",
    # Snapshot
    "DocumentSnapshot",
    "SnapshotLine",
    "SnapshotTotals",
]
