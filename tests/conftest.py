"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.core.entities import (
    CommissionBase,
    CommissionRule,
    CommissionScope,
    Product,
    ProductStatus,
    ServiceRecord,
    ServiceType,
)


@pytest_asyncio.fixture
async def async_client() -> AsyncGenerator[AsyncClient, None]:
    """Create async test client."""
    from src.api.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def seed_product() -> Product:
    """List price 100, cost 60, up to 15% discount."""
    return Product(
        id="P1",
        name="Soybean seed 40kg",
        unit_price=Decimal("100"),
        unit_cost=Decimal("60"),
        max_discount_percent=Decimal("15"),
        category="seeds",
    )


@pytest.fixture
def herbicide_product() -> Product:
    return Product(
        id="P2",
        name="Glyphosate 20L",
        unit_price=Decimal("50"),
        unit_cost=Decimal("30"),
        max_discount_percent=Decimal("10"),
        category="chemicals",
    )


@pytest.fixture
def inactive_product() -> Product:
    return Product(
        id="P9",
        name="Discontinued fertilizer",
        unit_price=Decimal("80"),
        category="fertilizers",
        status=ProductStatus.INACTIVE,
    )


@pytest.fixture
def spraying_record() -> ServiceRecord:
    return ServiceRecord(
        id="SRV-1",
        client_id="client-1",
        service_type=ServiceType.SPRAYING,
        total_value=Decimal("400"),
    )


@pytest.fixture
def global_gross_rule() -> CommissionRule:
    """Global 10% of gross."""
    return CommissionRule(
        id=1,
        scope=CommissionScope.GLOBAL,
        base=CommissionBase.GROSS,
        percent=Decimal("10"),
    )
