"""API tests for sales endpoints."""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from src.api.dependencies import (
    get_build_snapshot_use_case,
    get_create_sale_use_case,
    get_manage_sale_use_case,
)
from src.api.main import app
from src.application.use_cases import BuildSnapshotUseCase, CreateSaleUseCase, ManageSaleUseCase
from src.core.entities import (
    DocumentSnapshot,
    Sale,
    SaleLineItem,
    SaleStatus,
    SnapshotLine,
    SnapshotTotals,
)
from src.core.exceptions import (
    DatabaseError,
    ProductInactiveError,
    SaleCanceledError,
    SaleNotFoundError,
    ValidationError,
)
from src.core.services.sale_finalizer import FinalizeResult

SELLER = {"X-User-Id": "seller-1", "X-User-Role": "seller"}
OTHER_SELLER = {"X-User-Id": "seller-2", "X-User-Role": "seller"}
ADMIN = {"X-User-Id": "boss", "X-User-Role": "admin"}


def _sale(**fields) -> Sale:
    data = {
        "id": 3,
        "client_id": "client-7",
        "seller_id": "seller-1",
        "items": [
            SaleLineItem(
                product_id="P1",
                product_name="Soybean seed 40kg",
                quantity=2,
                unit_price=Decimal("100"),
                unit_cost=Decimal("60"),
            )
        ],
        "gross_value": Decimal("200.00"),
        "total_cost": Decimal("120.00"),
        "estimated_profit": Decimal("80.00"),
        "payment_methods": ["pix"],
    }
    data.update(fields)
    return Sale(**data)


@pytest.fixture
def create_uc():
    uc = AsyncMock(spec=CreateSaleUseCase)
    uc.execute.return_value = FinalizeResult(sale=_sale())
    return uc


@pytest.fixture
def manage_uc():
    uc = AsyncMock(spec=ManageSaleUseCase)
    uc.get.return_value = _sale()
    uc.list.return_value = [_sale()]
    uc.cancel.return_value = _sale(status=SaleStatus.CANCELED)
    return uc


@pytest.fixture
def snapshot_uc():
    return AsyncMock(spec=BuildSnapshotUseCase)


@pytest.fixture
async def client(create_uc, manage_uc, snapshot_uc):
    app.dependency_overrides[get_create_sale_use_case] = lambda: create_uc
    app.dependency_overrides[get_manage_sale_use_case] = lambda: manage_uc
    app.dependency_overrides[get_build_snapshot_use_case] = lambda: snapshot_uc
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.pop(get_create_sale_use_case, None)
    app.dependency_overrides.pop(get_manage_sale_use_case, None)
    app.dependency_overrides.pop(get_build_snapshot_use_case, None)


class TestCreateSale:
    async def test_direct_sale(self, client: AsyncClient, create_uc):
        response = await client.post(
            "/api/sales",
            json={
                "client_id": "client-7",
                "items": [{"product_id": "P1", "quantity": 2}],
                "payment_methods": ["pix"],
                "idempotency_key": "order-77",
            },
            headers=SELLER,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["created"] is True
        assert data["commission"] is None
        assert data["sale"]["estimated_profit"] == "80.00"
        request, seller_id = create_uc.execute.call_args.args
        assert request.idempotency_key == "order-77"
        assert seller_id == "seller-1"

    async def test_replayed_key_reports_not_created(self, client: AsyncClient, create_uc):
        create_uc.execute.return_value = FinalizeResult(sale=_sale(), created=False)

        response = await client.post(
            "/api/sales",
            json={"client_id": "client-7", "payment_methods": ["pix"], "idempotency_key": "k"},
            headers=SELLER,
        )

        assert response.json()["created"] is False

    async def test_inactive_product_is_409(self, client: AsyncClient, create_uc):
        create_uc.execute.side_effect = ProductInactiveError("P9")

        response = await client.post(
            "/api/sales",
            json={"client_id": "c", "items": [{"product_id": "P9", "quantity": 1}]},
            headers=SELLER,
        )

        assert response.status_code == 409
        assert response.json()["error_code"] == "PRODUCT_INACTIVE"

    async def test_too_many_payment_methods_is_400(self, client: AsyncClient, create_uc):
        create_uc.execute.side_effect = ValidationError(
            "payment_methods", "at most 2 payment methods", ["pix", "card", "boleto"]
        )

        response = await client.post(
            "/api/sales",
            json={"client_id": "c", "payment_methods": ["pix", "card", "boleto"]},
            headers=SELLER,
        )

        assert response.status_code == 400

    async def test_storage_failure_is_500(self, client: AsyncClient, create_uc):
        create_uc.execute.side_effect = DatabaseError("create_sale", "disk I/O error")

        response = await client.post(
            "/api/sales", json={"client_id": "c", "payment_methods": ["pix"]}, headers=SELLER
        )

        assert response.status_code == 500
        assert response.json()["error_code"] == "DATABASE_ERROR"


class TestManageSale:
    async def test_get_own_sale(self, client: AsyncClient):
        response = await client.get("/api/sales/3", headers=SELLER)

        assert response.status_code == 200
        assert response.json()["items"][0]["unit_cost"] == "60"

    async def test_other_sellers_sale_is_403(self, client: AsyncClient):
        response = await client.get("/api/sales/3", headers=OTHER_SELLER)
        assert response.status_code == 403

    async def test_missing_sale_is_404(self, client: AsyncClient, manage_uc):
        manage_uc.get.side_effect = SaleNotFoundError(404)

        response = await client.get("/api/sales/404", headers=ADMIN)

        assert response.status_code == 404
        assert response.json()["error_code"] == "SALE_NOT_FOUND"

    async def test_list_status_filter(self, client: AsyncClient, manage_uc):
        response = await client.get("/api/sales?status=canceled", headers=SELLER)

        assert response.status_code == 200
        kwargs = manage_uc.list.call_args.kwargs
        assert kwargs["status"] == SaleStatus.CANCELED
        assert kwargs["seller_id"] == "seller-1"

    async def test_update_canceled_sale_is_409(self, client: AsyncClient, manage_uc):
        manage_uc.update.side_effect = SaleCanceledError(3)

        response = await client.patch(
            "/api/sales/3", json={"final_discount_percent": "10"}, headers=SELLER
        )

        assert response.status_code == 409

    async def test_payment_received(self, client: AsyncClient, manage_uc):
        manage_uc.set_payment_received.return_value = _sale(payment_received=True)

        response = await client.put(
            "/api/sales/3/payment-received", json={"received": True}, headers=SELLER
        )

        assert response.status_code == 200
        assert response.json()["payment_received"] is True
        manage_uc.set_payment_received.assert_awaited_once_with(3, True)

    async def test_only_admin_cancels(self, client: AsyncClient, manage_uc):
        forbidden = await client.post("/api/sales/3/cancel", headers=SELLER)
        allowed = await client.post("/api/sales/3/cancel", headers=ADMIN)

        assert forbidden.status_code == 403
        assert allowed.status_code == 200
        assert allowed.json()["status"] == "canceled"
        manage_uc.cancel.assert_awaited_once_with(3)

    async def test_snapshot(self, client: AsyncClient, snapshot_uc):
        snapshot_uc.for_sale.return_value = DocumentSnapshot(
            source="sale",
            source_id=3,
            client_id="client-7",
            seller_id="seller-1",
            items=[
                SnapshotLine(
                    product_id="P1",
                    product_name="Soybean seed 40kg",
                    quantity=2,
                    unit_price=Decimal("100"),
                    discount_percent=Decimal("0"),
                    subtotal=Decimal("200.00"),
                )
            ],
            totals=SnapshotTotals(items_total=Decimal("200.00"), gross_value=Decimal("200.00")),
            payment_methods=["pix"],
            currency="BRL",
        )

        response = await client.get("/api/sales/3/snapshot", headers=SELLER)

        assert response.status_code == 200
        data = response.json()
        assert data["currency"] == "BRL"
        assert data["items"][0]["product_name"] == "Soybean seed 40kg"
