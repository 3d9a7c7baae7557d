"""Fixtures shared by the use case unit tests."""

import pytest

from src.core.interfaces.unit_of_work import IUnitOfWork


class StoreUnitOfWork(IUnitOfWork):
    """Unit of work over a mocked opportunity store; counts commits."""

    def __init__(self, opportunities):
        self.opportunities = opportunities
        self.committed = 0
        self.rolled_back = 0

    def __call__(self) -> "StoreUnitOfWork":
        return self

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if exc_type is None:
            self.committed += 1
        else:
            self.rolled_back += 1


@pytest.fixture
def store_uow(mock_store):
    return StoreUnitOfWork(mock_store)
