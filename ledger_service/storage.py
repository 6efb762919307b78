"""
Storage Backend Module

Provides the unit-of-work storage interface and implementations for in-memory
(testing), SQLite (single node persistence) and PostgreSQL (production).

Every read and write happens inside `StorageInterface.atomic()`, which opens a
unit of work, takes exclusive row locks on the requested accounts in sorted
order, and commits on success or rolls back on any exception. All monetary
values are Decimal; SQLite keeps them as decimal TEXT.
"""

from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Any, Sequence, Union
from decimal import Decimal
from datetime import datetime
import sqlite3
import json
import threading
from pathlib import Path
from contextlib import contextmanager

from .errors import ConfigurationError, LockTimeout
from .models import Account, Entry, EntryWithTransaction, Transaction, money_add
from .logging_config import get_logger


logger = get_logger("ledger.storage")


class UnitOfWork(ABC):
    """
    Operations available inside a single atomic unit of work.
    Writes become visible to other units of work only at commit.
    """

    @abstractmethod
    def lock_account(self, account_id: str) -> Optional[Account]:
        """Take an exclusive row lock (SELECT ... FOR UPDATE) and return the row"""
        pass

    @abstractmethod
    def get_account(self, account_id: str) -> Optional[Account]:
        """Read an account without locking it"""
        pass

    def account_exists(self, account_id: str) -> bool:
        return self.get_account(account_id) is not None

    @abstractmethod
    def list_accounts(self) -> List[Account]:
        """All accounts, newest first"""
        pass

    @abstractmethod
    def insert_account(self, account: Account) -> None:
        pass

    @abstractmethod
    def insert_transaction(self, transaction: Transaction) -> None:
        pass

    @abstractmethod
    def insert_entries(self, entries: Sequence[Entry]) -> None:
        pass

    @abstractmethod
    def adjust_balance(self, account_id: str, delta: Decimal, now: datetime) -> Optional[Account]:
        """
        Atomically add delta to the balance; returns the updated row or None if absent.
        After commit the returned Account carries the committed balance.
        """
        pass

    @abstractmethod
    def recent_entries(self, account_id: str, limit: int) -> List[EntryWithTransaction]:
        """Most recent entries of an account joined with their transaction, newest first"""
        pass

    @abstractmethod
    def commit(self) -> None:
        pass

    @abstractmethod
    def rollback(self) -> None:
        pass


class StorageInterface(ABC):
    """Abstract interface for storage backends"""

    lock_timeout: Optional[float] = None

    @abstractmethod
    def initialize(self) -> None:
        """Create the schema if it does not exist"""
        pass

    @abstractmethod
    def begin(self) -> UnitOfWork:
        """Open a new unit of work"""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close storage connection"""
        pass

    @contextmanager
    def atomic(self, lock_ids: Iterable[str] = ()):
        """
        Context manager for atomic operations.

        Row locks for `lock_ids` are acquired in sorted order before the body
        runs, so two units of work locking the same accounts never deadlock.
        """
        ordered = sorted(set(lock_ids))
        uow = self.begin()
        try:
            for account_id in ordered:
                uow.lock_account(account_id)
            yield uow
        except Exception:
            uow.rollback()
            raise
        uow.commit()


def _copy(record: Dict[str, Any]) -> Dict[str, Any]:
    # Deep copy to prevent external mutation
    return json.loads(json.dumps(record))


class InMemoryStorage(StorageInterface):
    """In-memory storage implementation for testing"""

    def __init__(self, lock_timeout: Optional[float] = None):
        self.lock_timeout = lock_timeout
        self._accounts: Dict[str, Dict[str, Any]] = {}
        self._transactions: Dict[str, Dict[str, Any]] = {}
        self._entries: List[Dict[str, Any]] = []
        self._lock = threading.RLock()
        self._row_locks: Dict[str, threading.Lock] = {}

    def initialize(self) -> None:
        """Nothing to create for in-memory storage"""
        pass

    def begin(self) -> UnitOfWork:
        return _InMemoryUnitOfWork(self)

    def close(self) -> None:
        """Close storage (no-op for in-memory)"""
        pass

    def row_lock(self, account_id: str) -> threading.Lock:
        with self._lock:
            lock = self._row_locks.get(account_id)
            if lock is None:
                lock = threading.Lock()
                self._row_locks[account_id] = lock
            return lock

    def get_all_data(self) -> Dict[str, Any]:
        """Get all committed data for debugging/inspection"""
        with self._lock:
            return _copy({
                "accounts": self._accounts,
                "transactions": self._transactions,
                "entries": self._entries,
            })


class _InMemoryUnitOfWork(UnitOfWork):
    """Stages writes locally and applies them under the storage lock at commit"""

    def __init__(self, storage: InMemoryStorage):
        self._storage = storage
        self._held: Dict[str, threading.Lock] = {}
        self._new_accounts: Dict[str, Dict[str, Any]] = {}
        self._new_transactions: Dict[str, Dict[str, Any]] = {}
        self._new_entries: List[Dict[str, Any]] = []
        self._deltas: Dict[str, Decimal] = {}
        self._touched: Dict[str, datetime] = {}
        # Snapshots handed out by adjust_balance, refreshed with the committed row
        self._adjusted: Dict[str, Account] = {}
        self._closed = False

    def _committed_row(self, account_id: str) -> Optional[Dict[str, Any]]:
        with self._storage._lock:
            row = self._storage._accounts.get(account_id)
            return _copy(row) if row else None

    def _project(self, account_id: str) -> Optional[Account]:
        row = self._new_accounts.get(account_id) or self._committed_row(account_id)
        if row is None:
            return None
        account = Account.from_dict(row)
        if account_id in self._deltas:
            account.balance = money_add(account.balance, self._deltas[account_id])
            account.updated_at = self._touched[account_id]
        return account

    def lock_account(self, account_id: str) -> Optional[Account]:
        # Like FOR UPDATE, a missing row locks nothing; rows are never deleted
        if account_id not in self._held and self._project(account_id) is None:
            return None
        if account_id not in self._held:
            lock = self._storage.row_lock(account_id)
            timeout = self._storage.lock_timeout
            acquired = lock.acquire(timeout=timeout if timeout is not None else -1)
            if not acquired:
                raise LockTimeout(account_id)
            self._held[account_id] = lock
        return self._project(account_id)

    def get_account(self, account_id: str) -> Optional[Account]:
        return self._project(account_id)

    def list_accounts(self) -> List[Account]:
        with self._storage._lock:
            ids = list(self._storage._accounts.keys())
        ids.extend(i for i in self._new_accounts if i not in ids)
        accounts = [a for a in (self._project(i) for i in ids) if a is not None]
        accounts.reverse()
        return sorted(accounts, key=lambda a: a.created_at, reverse=True)

    def insert_account(self, account: Account) -> None:
        self._new_accounts[account.id] = account.to_dict()

    def insert_transaction(self, transaction: Transaction) -> None:
        self._new_transactions[transaction.id] = transaction.to_dict()

    def insert_entries(self, entries: Sequence[Entry]) -> None:
        self._new_entries.extend(entry.to_dict() for entry in entries)

    def adjust_balance(self, account_id: str, delta: Decimal, now: datetime) -> Optional[Account]:
        if self._project(account_id) is None:
            return None
        self._deltas[account_id] = money_add(self._deltas.get(account_id, Decimal('0')), delta)
        self._touched[account_id] = now
        account = self._project(account_id)
        self._adjusted[account_id] = account
        return account

    def recent_entries(self, account_id: str, limit: int) -> List[EntryWithTransaction]:
        with self._storage._lock:
            rows = [_copy(e) for e in self._storage._entries if e['account_id'] == account_id]
            transactions = {e['transaction_id']: self._storage._transactions.get(e['transaction_id'])
                            for e in rows}
        rows.extend(e for e in self._new_entries if e['account_id'] == account_id)
        transactions.update(self._new_transactions)

        entries = [Entry.from_dict(row) for row in rows]
        entries.reverse()
        entries.sort(key=lambda e: e.created_at, reverse=True)
        return [
            EntryWithTransaction(entry=e, transaction=Transaction.from_dict(transactions[e.transaction_id]))
            for e in entries[:limit]
        ]

    def commit(self) -> None:
        try:
            with self._storage._lock:
                accounts = self._storage._accounts
                # Compute every new balance before touching shared state
                balances = {}
                for account_id, delta in self._deltas.items():
                    row = self._new_accounts.get(account_id) or accounts[account_id]
                    balances[account_id] = money_add(Decimal(row['balance']), delta)

                accounts.update(self._new_accounts)
                self._storage._transactions.update(self._new_transactions)
                self._storage._entries.extend(self._new_entries)
                for account_id, balance in balances.items():
                    row = accounts[account_id]
                    row['balance'] = str(balance)
                    row['updated_at'] = self._touched[account_id].isoformat()
                    snapshot = self._adjusted.get(account_id)
                    if snapshot is not None:
                        snapshot.balance = balance
        finally:
            self._release()

    def rollback(self) -> None:
        self._release()

    def _release(self) -> None:
        if self._closed:
            return
        self._closed = True
        for lock in self._held.values():
            lock.release()
        self._held.clear()


class SQLiteStorage(StorageInterface):
    """
    SQLite storage implementation for persistence.

    SQLite has no row locks; each unit of work runs under BEGIN IMMEDIATE,
    which holds the database write lock and serializes every writer.
    """

    def __init__(self, db_path: Union[str, Path] = ":memory:", lock_timeout: Optional[float] = None):
        self.db_path = str(db_path)
        self.lock_timeout = lock_timeout
        # isolation_level=None: transactions are issued explicitly
        self._connection = sqlite3.connect(
            self.db_path,
            check_same_thread=False,
            isolation_level=None,
            timeout=lock_timeout if lock_timeout is not None else 3600.0,
        )
        self._connection.row_factory = sqlite3.Row
        self._lock = threading.RLock()

        # Enable WAL mode for better concurrent access
        if self.db_path != ":memory:":
            with self._lock:
                self._connection.execute("PRAGMA journal_mode = WAL")
                self._connection.execute("PRAGMA synchronous = NORMAL")
        self._connection.execute("PRAGMA foreign_keys = ON")

    def initialize(self) -> None:
        """Ensure tables exist with proper schema"""
        with self._lock:
            self._connection.executescript("""
                CREATE TABLE IF NOT EXISTS accounts (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    balance TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );
                CREATE TABLE IF NOT EXISTS transactions (
                    id TEXT PRIMARY KEY,
                    description TEXT,
                    created_at TEXT NOT NULL
                );
                CREATE TABLE IF NOT EXISTS entries (
                    id TEXT PRIMARY KEY,
                    amount TEXT NOT NULL,
                    type TEXT NOT NULL CHECK (type IN ('DEBIT', 'CREDIT')),
                    account_id TEXT NOT NULL REFERENCES accounts(id),
                    transaction_id TEXT NOT NULL REFERENCES transactions(id),
                    created_at TEXT NOT NULL
                );
                CREATE INDEX IF NOT EXISTS idx_accounts_created_at ON accounts(created_at);
                CREATE INDEX IF NOT EXISTS idx_entries_account_created_at
                    ON entries(account_id, created_at);
                CREATE INDEX IF NOT EXISTS idx_entries_transaction_id ON entries(transaction_id);
            """)

    def begin(self) -> UnitOfWork:
        timeout = self.lock_timeout
        if not self._lock.acquire(timeout=timeout if timeout is not None else -1):
            raise LockTimeout()
        try:
            self._connection.execute("BEGIN IMMEDIATE")
        except sqlite3.OperationalError as e:
            self._lock.release()
            if "locked" in str(e):
                raise LockTimeout() from e
            raise
        except Exception:
            self._lock.release()
            raise
        return _SQLiteUnitOfWork(self)

    def close(self) -> None:
        """Close SQLite connection"""
        with self._lock:
            if self._connection:
                self._connection.close()
                self._connection = None


class _SQLiteUnitOfWork(UnitOfWork):

    def __init__(self, storage: SQLiteStorage):
        self._storage = storage
        self._conn = storage._connection
        self._closed = False

    @staticmethod
    def _account(row) -> Optional[Account]:
        return Account.from_dict(dict(row)) if row else None

    def lock_account(self, account_id: str) -> Optional[Account]:
        # The write lock taken by BEGIN IMMEDIATE already covers every row
        return self.get_account(account_id)

    def get_account(self, account_id: str) -> Optional[Account]:
        row = self._conn.execute(
            "SELECT id, name, balance, created_at, updated_at FROM accounts WHERE id = ?",
            (account_id,),
        ).fetchone()
        return self._account(row)

    def account_exists(self, account_id: str) -> bool:
        row = self._conn.execute(
            "SELECT 1 FROM accounts WHERE id = ? LIMIT 1", (account_id,)
        ).fetchone()
        return row is not None

    def list_accounts(self) -> List[Account]:
        rows = self._conn.execute("""
            SELECT id, name, balance, created_at, updated_at FROM accounts
            ORDER BY created_at DESC, rowid DESC
        """).fetchall()
        return [self._account(row) for row in rows]

    def insert_account(self, account: Account) -> None:
        data = account.to_dict()
        self._conn.execute(
            "INSERT INTO accounts (id, name, balance, created_at, updated_at) VALUES (?, ?, ?, ?, ?)",
            (data['id'], data['name'], data['balance'], data['created_at'], data['updated_at']),
        )

    def insert_transaction(self, transaction: Transaction) -> None:
        data = transaction.to_dict()
        self._conn.execute(
            "INSERT INTO transactions (id, description, created_at) VALUES (?, ?, ?)",
            (data['id'], data['description'], data['created_at']),
        )

    def insert_entries(self, entries: Sequence[Entry]) -> None:
        self._conn.executemany(
            """INSERT INTO entries (id, amount, type, account_id, transaction_id, created_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            [
                (d['id'], d['amount'], d['type'], d['account_id'], d['transaction_id'], d['created_at'])
                for d in (entry.to_dict() for entry in entries)
            ],
        )

    def adjust_balance(self, account_id: str, delta: Decimal, now: datetime) -> Optional[Account]:
        # SQLite arithmetic on TEXT goes through REAL, so add in Decimal here
        account = self.get_account(account_id)
        if account is None:
            return None
        account.balance = money_add(account.balance, delta)
        account.updated_at = now
        self._conn.execute(
            "UPDATE accounts SET balance = ?, updated_at = ? WHERE id = ?",
            (str(account.balance), now.isoformat(), account_id),
        )
        return account

    def recent_entries(self, account_id: str, limit: int) -> List[EntryWithTransaction]:
        rows = self._conn.execute("""
            SELECT e.id, e.amount, e.type, e.account_id, e.transaction_id, e.created_at,
                   t.description AS transaction_description,
                   t.created_at AS transaction_created_at
            FROM entries e JOIN transactions t ON t.id = e.transaction_id
            WHERE e.account_id = ?
            ORDER BY e.created_at DESC, e.rowid DESC
            LIMIT ?
        """, (account_id, limit)).fetchall()
        return [_joined_entry(dict(row)) for row in rows]

    def commit(self) -> None:
        try:
            self._conn.execute("COMMIT")
        except Exception:
            self._finish("ROLLBACK")
            raise
        self._finish(None)

    def rollback(self) -> None:
        self._finish("ROLLBACK")

    def _finish(self, statement: Optional[str]) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            if statement and self._conn.in_transaction:
                self._conn.execute(statement)
        finally:
            self._storage._lock.release()


def _joined_entry(row: Dict[str, Any]) -> EntryWithTransaction:
    transaction = Transaction.from_dict({
        'id': row['transaction_id'],
        'description': row['transaction_description'],
        'created_at': row['transaction_created_at'],
    })
    return EntryWithTransaction(entry=Entry.from_dict(row), transaction=transaction)


class PostgreSQLStorage(StorageInterface):
    """
    PostgreSQL storage backend with ACID transaction support.

    Each unit of work runs on its own pooled connection; account rows are
    locked with SELECT ... FOR UPDATE and balances change through
    `balance = balance + delta` so concurrent increments never lose updates.
    """

    def __init__(self, connection_string: str, pool_size: int = 10,
                 lock_timeout: Optional[float] = None):
        try:
            import psycopg2
            import psycopg2.errors
            import psycopg2.extras
            import psycopg2.pool
            self.psycopg2 = psycopg2
            self.extras = psycopg2.extras
        except ImportError:
            raise ImportError("psycopg2 is required for PostgreSQL storage. Install with: pip install psycopg2-binary")

        self.connection_string = connection_string
        self.lock_timeout = lock_timeout
        self._pool = psycopg2.pool.ThreadedConnectionPool(
            1, pool_size, connection_string,
            cursor_factory=self.extras.RealDictCursor
        )
        # ThreadedConnectionPool raises when exhausted; this makes callers wait instead
        self._slots = threading.BoundedSemaphore(pool_size)

    def initialize(self) -> None:
        """Ensure tables exist with proper schema"""
        with self.atomic() as uow:
            with uow.cursor() as cursor:
                cursor.execute("""
                    CREATE TABLE IF NOT EXISTS accounts (
                        id TEXT PRIMARY KEY,
                        name TEXT NOT NULL,
                        balance NUMERIC NOT NULL DEFAULT 0,
                        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                    )
                """)
                cursor.execute("""
                    CREATE TABLE IF NOT EXISTS transactions (
                        id TEXT PRIMARY KEY,
                        description TEXT,
                        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                    )
                """)
                cursor.execute("""
                    CREATE TABLE IF NOT EXISTS entries (
                        id TEXT PRIMARY KEY,
                        amount NUMERIC NOT NULL CHECK (amount > 0),
                        type TEXT NOT NULL CHECK (type IN ('DEBIT', 'CREDIT')),
                        account_id TEXT NOT NULL REFERENCES accounts(id),
                        transaction_id TEXT NOT NULL REFERENCES transactions(id),
                        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                    )
                """)
                cursor.execute("""
                    CREATE INDEX IF NOT EXISTS idx_accounts_created_at
                    ON accounts(created_at)
                """)
                cursor.execute("""
                    CREATE INDEX IF NOT EXISTS idx_entries_account_created_at
                    ON entries(account_id, created_at)
                """)
                cursor.execute("""
                    CREATE INDEX IF NOT EXISTS idx_entries_transaction_id
                    ON entries(transaction_id)
                """)

    def begin(self) -> UnitOfWork:
        self._slots.acquire()
        try:
            connection = self._pool.getconn()
        except Exception:
            self._slots.release()
            raise
        try:
            connection.autocommit = False
            if self.lock_timeout is not None:
                with connection.cursor() as cursor:
                    cursor.execute(
                        "SELECT set_config('lock_timeout', %s, true)",
                        (f"{int(self.lock_timeout * 1000)}ms",),
                    )
        except Exception:
            self._release(connection)
            raise
        return _PostgreSQLUnitOfWork(self, connection)

    def _release(self, connection) -> None:
        try:
            self._pool.putconn(connection, close=bool(connection.closed))
        finally:
            self._slots.release()

    def close(self) -> None:
        """Close PostgreSQL connection pool"""
        if self._pool is not None:
            self._pool.closeall()
            self._pool = None


class _PostgreSQLUnitOfWork(UnitOfWork):

    _ACCOUNT_COLUMNS = "id, name, balance, created_at, updated_at"

    def __init__(self, storage: PostgreSQLStorage, connection):
        self._storage = storage
        self._conn = connection
        self._closed = False

    def cursor(self):
        return self._conn.cursor()

    @staticmethod
    def _account(row) -> Optional[Account]:
        return Account.from_dict(dict(row)) if row else None

    def lock_account(self, account_id: str) -> Optional[Account]:
        with self.cursor() as cursor:
            try:
                cursor.execute(
                    f"SELECT {self._ACCOUNT_COLUMNS} FROM accounts WHERE id = %s FOR UPDATE",
                    (account_id,),
                )
            except self._storage.psycopg2.errors.LockNotAvailable as e:
                raise LockTimeout(account_id) from e
            return self._account(cursor.fetchone())

    def get_account(self, account_id: str) -> Optional[Account]:
        with self.cursor() as cursor:
            cursor.execute(
                f"SELECT {self._ACCOUNT_COLUMNS} FROM accounts WHERE id = %s",
                (account_id,),
            )
            return self._account(cursor.fetchone())

    def account_exists(self, account_id: str) -> bool:
        with self.cursor() as cursor:
            cursor.execute("SELECT 1 FROM accounts WHERE id = %s LIMIT 1", (account_id,))
            return cursor.fetchone() is not None

    def list_accounts(self) -> List[Account]:
        with self.cursor() as cursor:
            cursor.execute(
                f"SELECT {self._ACCOUNT_COLUMNS} FROM accounts ORDER BY created_at DESC"
            )
            return [self._account(row) for row in cursor.fetchall()]

    def insert_account(self, account: Account) -> None:
        with self.cursor() as cursor:
            cursor.execute(
                """INSERT INTO accounts (id, name, balance, created_at, updated_at)
                   VALUES (%s, %s, %s, %s, %s)""",
                (account.id, account.name, account.balance, account.created_at, account.updated_at),
            )

    def insert_transaction(self, transaction: Transaction) -> None:
        with self.cursor() as cursor:
            cursor.execute(
                "INSERT INTO transactions (id, description, created_at) VALUES (%s, %s, %s)",
                (transaction.id, transaction.description, transaction.created_at),
            )

    def insert_entries(self, entries: Sequence[Entry]) -> None:
        with self.cursor() as cursor:
            self._storage.extras.execute_values(
                cursor,
                """INSERT INTO entries (id, amount, type, account_id, transaction_id, created_at)
                   VALUES %s""",
                [
                    (e.id, e.amount, e.type.value, e.account_id, e.transaction_id, e.created_at)
                    for e in entries
                ],
            )

    def adjust_balance(self, account_id: str, delta: Decimal, now: datetime) -> Optional[Account]:
        with self.cursor() as cursor:
            try:
                cursor.execute(
                    f"""UPDATE accounts SET balance = balance + %s, updated_at = %s
                        WHERE id = %s RETURNING {self._ACCOUNT_COLUMNS}""",
                    (delta, now, account_id),
                )
            except self._storage.psycopg2.errors.LockNotAvailable as e:
                raise LockTimeout(account_id) from e
            return self._account(cursor.fetchone())

    def recent_entries(self, account_id: str, limit: int) -> List[EntryWithTransaction]:
        with self.cursor() as cursor:
            cursor.execute("""
                SELECT e.id, e.amount, e.type, e.account_id, e.transaction_id, e.created_at,
                       t.description AS transaction_description,
                       t.created_at AS transaction_created_at
                FROM entries e JOIN transactions t ON t.id = e.transaction_id
                WHERE e.account_id = %s
                ORDER BY e.created_at DESC, e.id DESC
                LIMIT %s
            """, (account_id, limit))
            return [_joined_entry(dict(row)) for row in cursor.fetchall()]

    def commit(self) -> None:
        if self._closed:
            return
        try:
            self._conn.commit()
        except Exception:
            self.rollback()
            raise
        self._closed = True
        self._storage._release(self._conn)

    def rollback(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            if not self._conn.closed:
                self._conn.rollback()
        finally:
            self._storage._release(self._conn)


def create_storage(database_url: str, lock_timeout: Optional[float] = None,
                   pool_size: int = 10) -> StorageInterface:
    """
    Select a storage backend from a database URL.

    memory://                  in-memory (tests, demos)
    sqlite:///path/to/file.db  SQLite file; sqlite:// for an in-memory database
    postgresql://...           PostgreSQL through psycopg2
    """
    url = database_url.strip()
    if url.startswith("memory://"):
        storage = InMemoryStorage(lock_timeout=lock_timeout)
    elif url.startswith("sqlite://"):
        path = url[len("sqlite:///"):] if url.startswith("sqlite:///") else ""
        storage = SQLiteStorage(path or ":memory:", lock_timeout=lock_timeout)
    elif url.startswith(("postgresql://", "postgres://", "postgresql+psycopg2://")):
        dsn = url.replace("postgresql+psycopg2://", "postgresql://", 1)
        storage = PostgreSQLStorage(dsn, pool_size=pool_size, lock_timeout=lock_timeout)
    else:
        raise ConfigurationError(
            "Unsupported DATABASE_URL scheme",
            details={"database_url": url.split("://", 1)[0]},
        )

    logger.debug("Storage backend selected", extra={"extra": {"backend": type(storage).__name__}})
    return storage
