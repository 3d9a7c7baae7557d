"""API route modules."""

from src.api.routes.catalog import router as catalog_router
from src.api.routes.commission_rules import router as commission_rules_router
from src.api.routes.commissions import router as commissions_router
from src.api.routes.health import router as health_router
from src.api.routes.opportunities import router as opportunities_router
from src.api.routes.sales import router as sales_router

__all__ = [
    "health_router",
    "opportunities_router",
    "sales_router",
    "commissions_router",
    "commission_rules_router",
    "catalog_router",
]
