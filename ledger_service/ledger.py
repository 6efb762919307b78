"""
Double-Entry Ledger Engine

Withdrawals, deposits and transfers as atomic units of work. Every movement
writes one Transaction with its DEBIT and/or CREDIT entries and updates the
cached account balances in the same unit of work, so either everything is
committed or nothing is.

Withdrawals and transfers hold exclusive row locks on every account they
debit or credit for the whole unit of work; concurrent operations on the same
account queue behind the lock holder and always see its committed balance.
"""

from decimal import Decimal
from typing import Any, List, Optional

from .errors import (
    AccountNotFound, InsufficientFunds, InvalidRequest, LedgerError
)
from .models import (
    Entry, EntryType, LedgerResult, Transaction,
    new_id, require_positive, to_decimal, utcnow
)
from .storage import StorageInterface, UnitOfWork
from .logging_config import get_logger, log_action


class LedgerEngine:
    """
    Owns the write path to account balances, transactions and entries
    """

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.logger = get_logger("ledger.engine")

    @staticmethod
    def _validate_amount(amount: Any) -> Decimal:
        return require_positive(to_decimal(amount))

    @staticmethod
    def _require_id(value: Optional[str], label: str) -> str:
        if not value or not str(value).strip():
            raise InvalidRequest(f"{label} is required")
        return str(value)

    def _record(self, uow: UnitOfWork, description: str,
                legs: List[tuple]) -> tuple:
        """Write the transaction and one entry per (account_id, entry_type, amount) leg"""
        now = utcnow()
        transaction = Transaction(id=new_id(), description=description, created_at=now)
        entries = [
            Entry(
                id=new_id(),
                amount=amount,
                type=entry_type,
                account_id=account_id,
                transaction_id=transaction.id,
                created_at=now,
            )
            for account_id, entry_type, amount in legs
        ]
        uow.insert_transaction(transaction)
        uow.insert_entries(entries)
        return transaction, entries, now

    def _rejected(self, operation: str, error: LedgerError, **fields) -> None:
        log_action(
            self.logger, "warning", f"{operation} rejected: {error.message}",
            action=operation, resource=f"account:{fields.get('account_id') or fields.get('from_account_id')}",
            extra={"code": error.code, **{k: str(v) for k, v in fields.items()}}
        )

    def withdraw(self, account_id: str, amount: Any) -> LedgerResult:
        """
        Withdraw money from an account with row-level locking.

        Args:
            account_id: Account to debit
            amount: Positive decimal amount

        Returns:
            LedgerResult with the transaction and the updated account

        Raises:
            InvalidAmount: If amount is not positive
            AccountNotFound: If the account does not exist
            InsufficientFunds: If the balance is lower than amount
        """
        try:
            amount = self._validate_amount(amount)
            account_id = self._require_id(account_id, "Account ID")

            with self.storage.atomic(lock_ids=[account_id]) as uow:
                account = uow.lock_account(account_id)
                if account is None:
                    raise AccountNotFound(account_id)
                if account.balance < amount:
                    raise InsufficientFunds(account_id)

                transaction, entries, now = self._record(
                    uow, f"Withdrawal from {account_id}",
                    [(account_id, EntryType.DEBIT, amount)]
                )
                updated = uow.adjust_balance(account_id, -amount, now)
        except LedgerError as e:
            self._rejected("withdraw", e, account_id=account_id, amount=amount)
            raise

        log_action(
            self.logger, "info", "Withdrawal completed",
            action="withdraw", resource=f"account:{account_id}",
            extra={"transaction_id": transaction.id, "amount": str(amount),
                   "balance": str(updated.balance)}
        )
        return LedgerResult(transaction=transaction, account=updated, entries=entries)

    def deposit(self, account_id: str, amount: Any) -> LedgerResult:
        """
        Deposit money into an account.

        No read lock is taken; the balance changes through an atomic
        increment so concurrent deposits never lose updates.
        """
        try:
            amount = self._validate_amount(amount)
            account_id = self._require_id(account_id, "Account ID")

            with self.storage.atomic() as uow:
                if not uow.account_exists(account_id):
                    raise AccountNotFound(account_id)

                transaction, entries, now = self._record(
                    uow, f"Deposit to {account_id}",
                    [(account_id, EntryType.CREDIT, amount)]
                )
                updated = uow.adjust_balance(account_id, amount, now)
                if updated is None:
                    raise AccountNotFound(account_id)
        except LedgerError as e:
            self._rejected("deposit", e, account_id=account_id, amount=amount)
            raise

        log_action(
            self.logger, "info", "Deposit completed",
            action="deposit", resource=f"account:{account_id}",
            extra={"transaction_id": transaction.id, "amount": str(amount),
                   "balance": str(updated.balance)}
        )
        return LedgerResult(transaction=transaction, account=updated, entries=entries)

    def transfer(
        self,
        from_account_id: str,
        to_account_id: str,
        amount: Any,
        description: Optional[str] = None
    ) -> LedgerResult:
        """
        Transfer money between two accounts using double-entry bookkeeping.

        Both account rows are locked in sorted id order before either balance
        is read, so crossing transfers between the same pair cannot deadlock.

        Raises:
            InvalidAmount: If amount is not positive
            InvalidRequest: If an account id is missing or both ids are equal
            AccountNotFound: If the source or destination does not exist
            InsufficientFunds: If the source balance is lower than amount
        """
        try:
            amount = self._validate_amount(amount)
            from_account_id = self._require_id(from_account_id, "Source account ID")
            to_account_id = self._require_id(to_account_id, "Destination account ID")
            if from_account_id == to_account_id:
                raise InvalidRequest("Cannot transfer to the same account")

            with self.storage.atomic(lock_ids=[from_account_id, to_account_id]) as uow:
                source = uow.lock_account(from_account_id)
                destination = uow.lock_account(to_account_id)
                if source is None:
                    raise AccountNotFound(from_account_id, "Source account not found")
                if destination is None:
                    raise AccountNotFound(to_account_id, "Destination account not found")
                if source.balance < amount:
                    raise InsufficientFunds(from_account_id)

                transaction, entries, now = self._record(
                    uow, description or f"Transfer from {from_account_id} to {to_account_id}",
                    [
                        (from_account_id, EntryType.DEBIT, amount),
                        (to_account_id, EntryType.CREDIT, amount),
                    ]
                )
                source = uow.adjust_balance(from_account_id, -amount, now)
                destination = uow.adjust_balance(to_account_id, amount, now)
        except LedgerError as e:
            self._rejected("transfer", e, from_account_id=from_account_id,
                           to_account_id=to_account_id, amount=amount)
            raise

        log_action(
            self.logger, "info", "Transfer completed",
            action="transfer", resource=f"transaction:{transaction.id}",
            extra={"from_account": from_account_id, "to_account": to_account_id,
                   "amount": str(amount)}
        )
        return LedgerResult(transaction=transaction, entries=entries)
