"""
Ledger Records

Accounts, transactions and entries as stored by every backend. All monetary
values are Decimal; records serialize Decimals as strings and datetimes as
ISO-8601 strings so nothing passes through float.
"""

from decimal import Context, Decimal, Inexact, InvalidOperation, Overflow
from datetime import datetime, timezone
from dataclasses import dataclass, asdict, field
from typing import Any, Dict, List, Optional
from enum import Enum
import uuid

from .errors import InvalidAmount, InvalidRequest


# Amounts and opening balances
MAX_INTEGER_DIGITS = 18
MAX_DECIMAL_PLACES = 8

# Balance arithmetic; traps instead of rounding
MONEY_CONTEXT = Context(prec=38, traps=[InvalidOperation, Inexact, Overflow])


class EntryType(Enum):
    """Side of a ledger entry"""
    DEBIT = "DEBIT"    # Money leaving the account
    CREDIT = "CREDIT"  # Money entering the account


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def to_decimal(value: Any, field_name: str = "amount") -> Decimal:
    """
    Convert an API/primitive value into an exact Decimal.

    Floats are converted through their shortest repr so that 0.1 becomes
    Decimal('0.1'), not the binary approximation.

    Raises:
        InvalidRequest: If the value is missing or not numeric
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidRequest(f"{field_name} is required")
    if isinstance(value, bool):
        raise InvalidRequest(f"{field_name} must be a number")
    if isinstance(value, Decimal):
        return value
    try:
        if isinstance(value, float):
            return Decimal(repr(value))
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidRequest(f"{field_name} must be a number")


def require_money(amount: Decimal) -> Decimal:
    """
    Reject amounts outside MAX_INTEGER_DIGITS / MAX_DECIMAL_PLACES.

    Within these bounds every balance sum stays exact in MONEY_CONTEXT.
    """
    if not amount.is_finite():
        raise InvalidAmount()
    exponent = amount.as_tuple().exponent
    if amount and amount.adjusted() >= MAX_INTEGER_DIGITS:
        raise InvalidAmount(f"Amount must have at most {MAX_INTEGER_DIGITS} integer digits")
    if -exponent > MAX_DECIMAL_PLACES:
        raise InvalidAmount(f"Amount must have at most {MAX_DECIMAL_PLACES} decimal places")
    return amount


def require_positive(amount: Decimal) -> Decimal:
    """Reject zero, negative, NaN, infinite and out-of-range amounts"""
    if not amount.is_finite() or amount <= 0:
        raise InvalidAmount()
    return require_money(amount)


def money_add(balance: Decimal, delta: Decimal) -> Decimal:
    """Add exactly; a result that would need rounding is refused"""
    try:
        return MONEY_CONTEXT.add(balance, delta)
    except (Inexact, Overflow) as e:
        raise InvalidAmount("Balance exceeds supported precision") from e


@dataclass
class Account:
    """Account with a cached balance projection of its entries"""
    id: str
    name: str
    balance: Decimal
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result['balance'] = str(self.balance)
        result['created_at'] = self.created_at.isoformat()
        result['updated_at'] = self.updated_at.isoformat()
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Account':
        return cls(
            id=data['id'],
            name=data['name'],
            balance=Decimal(str(data['balance'])),
            created_at=_parse_datetime(data['created_at']),
            updated_at=_parse_datetime(data['updated_at']),
        )


@dataclass
class Transaction:
    """One logical money movement; immutable"""
    id: str
    description: Optional[str]
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'description': self.description,
            'created_at': self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Transaction':
        return cls(
            id=data['id'],
            description=data.get('description'),
            created_at=_parse_datetime(data['created_at']),
        )


@dataclass
class Entry:
    """
    Single debit or credit line against one account.
    Immutable once written; amount is always strictly positive.
    """
    id: str
    amount: Decimal
    type: EntryType
    account_id: str
    transaction_id: str
    created_at: datetime

    def __post_init__(self):
        if self.amount <= 0:
            raise ValueError("Entry amount must be positive")

    @property
    def signed_amount(self) -> Decimal:
        """Effect of this entry on the account balance"""
        return self.amount if self.type == EntryType.CREDIT else -self.amount

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'amount': str(self.amount),
            'type': self.type.value,
            'account_id': self.account_id,
            'transaction_id': self.transaction_id,
            'created_at': self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Entry':
        return cls(
            id=data['id'],
            amount=Decimal(str(data['amount'])),
            type=EntryType(data['type']),
            account_id=data['account_id'],
            transaction_id=data['transaction_id'],
            created_at=_parse_datetime(data['created_at']),
        )


@dataclass
class EntryWithTransaction:
    """Entry joined with its parent transaction"""
    entry: Entry
    transaction: Transaction


@dataclass
class AccountWithEntries:
    """Account plus its most recent entries, newest first"""
    account: Account
    entries: List[EntryWithTransaction] = field(default_factory=list)


@dataclass
class LedgerResult:
    """Outcome of a ledger operation"""
    transaction: Transaction
    account: Optional[Account] = None
    entries: List[Entry] = field(default_factory=list)
