"""
Pydantic schemas for API requests and JSON renderers for responses
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

from ..models import (
    Account, AccountWithEntries, Entry, EntryWithTransaction, LedgerResult, Transaction
)


class CreateAccountRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    initial_balance: Optional[Decimal] = Field(None, alias="initialBalance")


class AmountRequest(BaseModel):
    amount: Optional[Decimal] = Field(None, description="Positive decimal amount")


class TransferRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_account_id: Optional[str] = Field(None, alias="from")
    to_account_id: Optional[str] = Field(None, alias="to")
    amount: Optional[Decimal] = None
    description: Optional[str] = None


# Response renderers. Decimals are rendered as strings to keep them exact.

def render_account(account: Account) -> Dict[str, Any]:
    return {
        "id": account.id,
        "name": account.name,
        "balance": str(account.balance),
        "createdAt": account.created_at.isoformat(),
        "updatedAt": account.updated_at.isoformat(),
    }


def render_transaction(transaction: Transaction) -> Dict[str, Any]:
    return {
        "id": transaction.id,
        "description": transaction.description,
        "createdAt": transaction.created_at.isoformat(),
    }


def render_entry(entry: Entry) -> Dict[str, Any]:
    return {
        "id": entry.id,
        "amount": str(entry.amount),
        "type": entry.type.value,
        "accountId": entry.account_id,
        "transactionId": entry.transaction_id,
        "createdAt": entry.created_at.isoformat(),
    }


def render_entry_with_transaction(item: EntryWithTransaction) -> Dict[str, Any]:
    result = render_entry(item.entry)
    result["transaction"] = render_transaction(item.transaction)
    return result


def render_account_with_entries(view: AccountWithEntries) -> Dict[str, Any]:
    result = render_account(view.account)
    result["entries"] = [render_entry_with_transaction(item) for item in view.entries]
    return result


def render_ledger_result(result: LedgerResult) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "transaction": render_transaction(result.transaction),
        "entries": [render_entry(entry) for entry in result.entries],
    }
    if result.account is not None:
        data["account"] = render_account(result.account)
    return data


def success(data: Any) -> Dict[str, Any]:
    return {"success": True, "data": data}


def render_accounts(accounts: List[Account]) -> List[Dict[str, Any]]:
    return [render_account(account) for account in accounts]
