"""Pytest fixtures for SQLite storage tests."""

from collections.abc import AsyncGenerator
from decimal import Decimal
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from src.core.entities import Opportunity, Sale, SaleLineItem
from src.infrastructure.storage.sqlite.migrations.migrator import initialize_database


@pytest.fixture
def temp_db_path(tmp_path: Path) -> Path:
    """Create a temporary database path."""
    return tmp_path / "test.db"


@pytest.fixture
async def initialized_db(temp_db_path: Path) -> Path:
    """Temporary database with every migration applied."""
    await initialize_database(temp_db_path, create_backup_before=False)
    return temp_db_path


@pytest.fixture
def mock_settings(temp_db_path: Path):
    """Mock settings with temp database path."""
    mock = MagicMock()
    mock.storage.db_path = temp_db_path
    mock.storage.pool_size = 3
    mock.storage.busy_timeout = 5000
    return mock


@pytest.fixture
async def db_pool(initialized_db, mock_settings) -> AsyncGenerator:
    """Global pool pointed at the temporary database."""
    import src.infrastructure.storage.sqlite.connection as conn_module

    conn_module._pool = None
    with patch.object(conn_module, "get_settings", return_value=mock_settings):
        pool = await conn_module.get_pool()
        try:
            yield pool
        finally:
            await conn_module.close_pool()


@pytest.fixture
def make_sale():
    """Closed sale with one P1 line; override any field."""

    def _make(**fields) -> Sale:
        data = {
            "client_id": "client-1",
            "seller_id": "seller-1",
            "items": [
                SaleLineItem(
                    product_id="P1",
                    product_name="Soybean seed 40kg",
                    category="seeds",
                    quantity=3,
                    unit_price=Decimal("100"),
                    discount_percent=Decimal("10"),
                    unit_cost=Decimal("60"),
                )
            ],
            "gross_value": Decimal("270.00"),
            "total_cost": Decimal("180.00"),
            "estimated_profit": Decimal("90.00"),
            "payment_methods": ["pix"],
        }
        data.update(fields)
        return Sale(**data)

    return _make


@pytest.fixture
def make_opportunity():
    def _make(**fields) -> Opportunity:
        data = {"client_id": "client-1", "seller_id": "seller-1"}
        data.update(fields)
        return Opportunity(**data)

    return _make
