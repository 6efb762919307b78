"""
Shared fixtures: every ledger test runs against both local storage backends
"""

import pytest

from ledger_service.storage import InMemoryStorage, SQLiteStorage
from ledger_service.ledger import LedgerEngine
from ledger_service.accounts import AccountDirectory


@pytest.fixture(params=["memory", "sqlite"])
def storage(request, tmp_path):
    """Initialized storage backend"""
    if request.param == "memory":
        backend = InMemoryStorage()
    else:
        backend = SQLiteStorage(tmp_path / "ledger.db")
    backend.initialize()
    yield backend
    backend.close()


@pytest.fixture
def engine(storage):
    return LedgerEngine(storage)


@pytest.fixture
def directory(storage):
    return AccountDirectory(storage)
