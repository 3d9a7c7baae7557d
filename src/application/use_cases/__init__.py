"""Application use cases.

Each use case orchestrates core services and stores for one family of
operations. Infrastructure is resolved lazily so tests can inject mocks.
"""

from src.application.use_cases.build_snapshot import BuildSnapshotUseCase
from src.application.use_cases.change_stage import ChangeStageUseCase
from src.application.use_cases.create_sale import CreateSaleUseCase
from src.application.use_cases.edit_proposal import EditProposalResult, EditProposalUseCase
from src.application.use_cases.manage_catalog import ManageCatalogUseCase
from src.application.use_cases.manage_commission import ManageCommissionUseCase
from src.application.use_cases.manage_commission_rules import ManageCommissionRulesUseCase
from src.application.use_cases.manage_opportunity import ManageOpportunityUseCase
from src.application.use_cases.manage_sale import ManageSaleUseCase

__all__ = [
    # Opportunities
    "ManageOpportunityUseCase",
    "EditProposalUseCase",
    "EditProposalResult",
    "ChangeStageUseCase",
    # Sales
    "CreateSaleUseCase",
    "ManageSaleUseCase",
    # Commissions
    "ManageCommissionUseCase",
    "ManageCommissionRulesUseCase",
    # Catalog
    "ManageCatalogUseCase",
    # Documents
    "BuildSnapshotUseCase",
]
