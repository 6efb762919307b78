"""
Ledger system wiring and FastAPI dependencies
"""

import threading
from typing import Optional

from ..accounts import AccountDirectory
from ..config import LedgerConfig, get_config
from ..ledger import LedgerEngine
from ..storage import StorageInterface, create_storage


class LedgerSystem:
    """Ledger engine and account directory sharing one storage backend"""

    def __init__(self, storage: StorageInterface, recent_entries_limit: int = 20):
        self.storage = storage
        self.storage.initialize()
        self.ledger = LedgerEngine(self.storage)
        self.accounts = AccountDirectory(self.storage, recent_entries_limit=recent_entries_limit)

    @classmethod
    def from_config(cls, config: Optional[LedgerConfig] = None) -> 'LedgerSystem':
        config = config or get_config()
        storage = create_storage(
            config.database_url,
            lock_timeout=config.lock_timeout_seconds,
            pool_size=config.database_pool_size,
        )
        return cls(storage, recent_entries_limit=config.recent_entries_limit)

    def close(self) -> None:
        self.storage.close()


# Global ledger system instance, built from configuration on first request
ledger_system: Optional[LedgerSystem] = None
_ledger_system_lock = threading.Lock()


def get_ledger_system() -> LedgerSystem:
    global ledger_system
    if ledger_system is None:
        with _ledger_system_lock:
            if ledger_system is None:
                ledger_system = LedgerSystem.from_config()
    return ledger_system


def shutdown_ledger_system() -> None:
    global ledger_system
    with _ledger_system_lock:
        if ledger_system is not None:
            ledger_system.close()
            ledger_system = None
