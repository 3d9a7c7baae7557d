"""
Application layer - Use cases, DTOs, and service factories.

This layer orchestrates business logic by:
1. Defining request/response DTOs for API contracts
2. Implementing use cases that coordinate core services
3. Providing factory functions for dependency injection

Use cases are the only entry point for API handlers.
"""

from src.application.services import (
    get_commission_ledger,
    get_commission_resolver,
    get_opportunity_state_machine,
    get_sale_finalizer,
    reset_services,
)
from src.application.use_cases import (
    BuildSnapshotUseCase,
    ChangeStageUseCase,
    CreateSaleUseCase,
    EditProposalUseCase,
    ManageCatalogUseCase,
    ManageCommissionRulesUseCase,
    ManageCommissionUseCase,
    ManageOpportunityUseCase,
    ManageSaleUseCase,
)

__all__ = [
    # Use Cases
    "ManageOpportunityUseCase",
    "EditProposalUseCase",
    "ChangeStageUseCase",
    "CreateSaleUseCase",
    "ManageSaleUseCase",
    "ManageCommissionUseCase",
    "ManageCommissionRulesUseCase",
    "ManageCatalogUseCase",
    "BuildSnapshotUseCase",
    # Service factories
    "get_commission_resolver",
    "get_commission_ledger",
    "get_sale_finalizer",
    "get_opportunity_state_machine",
    "reset_services",
]
