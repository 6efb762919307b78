"""
Account Management Module

Creates accounts and serves read views of them: the account list and a single
account with its most recent ledger entries. Balances are only ever changed
by the ledger engine; this module writes the opening balance and reads.
"""

from decimal import Decimal
from typing import Any, List

from .errors import AccountNotFound, InvalidAmount, InvalidRequest
from .models import Account, AccountWithEntries, new_id, require_money, to_decimal, utcnow
from .storage import StorageInterface
from .logging_config import get_logger, log_action


class AccountDirectory:
    """
    Account lifecycle and read access
    """

    def __init__(self, storage: StorageInterface, recent_entries_limit: int = 20):
        self.storage = storage
        self.recent_entries_limit = recent_entries_limit
        self.logger = get_logger("ledger.accounts")

    def create_account(self, name: Any, initial_balance: Any = 0) -> Account:
        """
        Create a new account

        The opening balance is written directly and is not backed by a
        ledger entry.

        Args:
            name: Display name, must not be blank
            initial_balance: Opening balance, zero or positive

        Returns:
            Created Account

        Raises:
            InvalidRequest: If name is missing
            InvalidAmount: If initial_balance is negative or out of range
        """
        if not isinstance(name, str) or not name.strip():
            raise InvalidRequest("Name is required")

        balance = Decimal('0') if initial_balance is None else to_decimal(initial_balance, "initialBalance")
        if not balance.is_finite() or balance < 0:
            raise InvalidAmount("Initial balance cannot be negative")
        require_money(balance)

        now = utcnow()
        account = Account(
            id=new_id(),
            name=name.strip(),
            balance=balance,
            created_at=now,
            updated_at=now,
        )

        with self.storage.atomic() as uow:
            uow.insert_account(account)

        log_action(
            self.logger, "info", "Account created",
            action="create_account", resource=f"account:{account.id}",
            extra={"name": account.name, "initial_balance": str(balance)}
        )
        return account

    def get_all_accounts(self) -> List[Account]:
        """Get all accounts, most recently created first"""
        with self.storage.atomic() as uow:
            return uow.list_accounts()

    def get_account_by_id(self, account_id: str) -> AccountWithEntries:
        """
        Get account by ID with its most recent entries

        Raises:
            InvalidRequest: If account_id is empty
            AccountNotFound: If no such account exists
        """
        if not account_id:
            raise InvalidRequest("Account ID is required")

        with self.storage.atomic() as uow:
            account = uow.get_account(account_id)
            if account is None:
                raise AccountNotFound(account_id)
            entries = uow.recent_entries(account_id, self.recent_entries_limit)

        return AccountWithEntries(account=account, entries=entries)

    def account_exists(self, account_id: str) -> bool:
        """Check if account exists"""
        if not account_id:
            return False
        with self.storage.atomic() as uow:
            return uow.account_exists(account_id)
