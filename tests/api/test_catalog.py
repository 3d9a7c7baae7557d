"""API tests for catalog endpoints."""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from src.api.dependencies import get_manage_catalog_use_case
from src.api.main import app
from src.application.use_cases import ManageCatalogUseCase
from src.core.entities import ServiceRecord, ServiceType
from src.core.exceptions import ProductNotFoundError

SELLER = {"X-User-Id": "seller-1", "X-User-Role": "seller"}
TECHNICIAN = {"X-User-Id": "tech-1", "X-User-Role": "technician"}
ADMIN = {"X-User-Id": "boss", "X-User-Role": "admin"}


@pytest.fixture
def catalog_uc(seed_product):
    uc = AsyncMock(spec=ManageCatalogUseCase)
    uc.save_product.return_value = seed_product
    uc.get_product.return_value = seed_product
    uc.list_products.return_value = [seed_product]
    uc.save_service_record.return_value = ServiceRecord(
        id="SRV-2", service_type=ServiceType.REVISION, total_value=Decimal("150")
    )
    return uc


@pytest.fixture
async def client(catalog_uc):
    app.dependency_overrides[get_manage_catalog_use_case] = lambda: catalog_uc
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.pop(get_manage_catalog_use_case, None)


class TestCatalogAPI:
    async def test_admin_saves_product(self, client: AsyncClient, catalog_uc):
        response = await client.put(
            "/api/catalog/products",
            json={
                "id": "P1",
                "name": "Soybean seed 40kg",
                "unit_price": "100",
                "unit_cost": "60",
                "max_discount_percent": "15",
                "category": "seeds",
            },
            headers=ADMIN,
        )

        assert response.status_code == 200
        assert response.json()["max_discount_percent"] == "15"
        assert catalog_uc.save_product.call_args.args[0].unit_cost == Decimal("60")

    async def test_seller_cannot_edit_catalog(self, client: AsyncClient):
        response = await client.put(
            "/api/catalog/products",
            json={"id": "P1", "name": "x", "unit_price": "1"},
            headers=SELLER,
        )
        assert response.status_code == 403

    async def test_any_role_reads_catalog(self, client: AsyncClient, catalog_uc):
        response = await client.get(
            "/api/catalog/products?category=seeds&active_only=true", headers=TECHNICIAN
        )

        assert response.status_code == 200
        assert [p["id"] for p in response.json()] == ["P1"]
        kwargs = catalog_uc.list_products.call_args.kwargs
        assert kwargs["category"] == "seeds"
        assert kwargs["active_only"] is True

    async def test_missing_product_is_404(self, client: AsyncClient, catalog_uc):
        catalog_uc.get_product.side_effect = ProductNotFoundError("P404")

        response = await client.get("/api/catalog/products/P404", headers=SELLER)

        assert response.status_code == 404
        assert response.json()["error_code"] == "PRODUCT_NOT_FOUND"

    async def test_technician_records_service(self, client: AsyncClient):
        response = await client.put(
            "/api/catalog/services",
            json={"id": "SRV-2", "service_type": "revision", "total_value": "150"},
            headers=TECHNICIAN,
        )

        assert response.status_code == 200
        assert response.json()["service_type"] == "revision"

    async def test_unknown_service_type_is_422(self, client: AsyncClient):
        response = await client.put(
            "/api/catalog/services",
            json={"id": "SRV-3", "service_type": "harvest"},
            headers=TECHNICIAN,
        )
        assert response.status_code == 422
