"""
Dependency injection container for FastAPI.

Provides the calling user and use case instances to route handlers.

Identity comes from the X-User-Id and X-User-Role headers set by the
gateway in front of this service; this module only enforces roles and
ownership.
"""

from dataclasses import dataclass
from enum import Enum
from functools import lru_cache

from fastapi import Depends, Header, HTTPException, status

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
from src.config import Settings, get_settings


class UserRole(str, Enum):
    """Roles known to the API."""

    ADMIN = "admin"
    SELLER = "seller"
    TECHNICIAN = "technician"


@dataclass(frozen=True)
class Actor:
    """The user making the request."""

    user_id: str
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def scope_seller(self, seller_id: str | None = None) -> str | None:
        """Seller filter for listings: admins choose, everyone else sees their own."""
        return seller_id if self.is_admin else self.user_id


@lru_cache
def get_app_settings() -> Settings:
    """Get cached application settings."""
    return get_settings()


# Identity
async def get_actor(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
    x_user_role: str | None = Header(default=None, alias="X-User-Role"),
) -> Actor:
    """Resolve the caller from the identity headers."""
    if not x_user_id or not x_user_role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User-Id and X-User-Role headers are required",
        )
    try:
        role = UserRole(x_user_role.lower())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Unknown role: {x_user_role}",
        )
    return Actor(user_id=x_user_id, role=role)


def require_roles(*allowed: UserRole):
    """Enforce actor.role is in allowed."""

    async def _checker(actor: Actor = Depends(get_actor)) -> Actor:
        if actor.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{actor.role.value}' may not perform this operation",
            )
        return actor

    return _checker


require_admin = require_roles(UserRole.ADMIN)
require_seller = require_roles(UserRole.ADMIN, UserRole.SELLER)


def ensure_owner(actor: Actor, seller_id: str) -> None:
    """Sellers may only touch their own opportunities and sales."""
    if not actor.is_admin and actor.user_id != seller_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This record belongs to another seller",
        )


# Use case dependencies
def get_manage_opportunity_use_case() -> ManageOpportunityUseCase:
    """Get manage opportunity use case."""
    return ManageOpportunityUseCase()


def get_edit_proposal_use_case() -> EditProposalUseCase:
    """Get edit proposal use case."""
    return EditProposalUseCase()


def get_change_stage_use_case() -> ChangeStageUseCase:
    """Get change stage use case."""
    return ChangeStageUseCase()


def get_create_sale_use_case() -> CreateSaleUseCase:
    """Get create sale use case."""
    return CreateSaleUseCase()


def get_manage_sale_use_case() -> ManageSaleUseCase:
    """Get manage sale use case."""
    return ManageSaleUseCase()


def get_manage_commission_use_case() -> ManageCommissionUseCase:
    """Get manage commission use case."""
    return ManageCommissionUseCase()


def get_manage_commission_rules_use_case() -> ManageCommissionRulesUseCase:
    """Get manage commission rules use case."""
    return ManageCommissionRulesUseCase()


def get_manage_catalog_use_case() -> ManageCatalogUseCase:
    """Get manage catalog use case."""
    return ManageCatalogUseCase()


def get_build_snapshot_use_case() -> BuildSnapshotUseCase:
    """Get build snapshot use case."""
    return BuildSnapshotUseCase()
