"""
Account and ledger endpoints
"""

from fastapi import APIRouter, Depends, status

from .dependencies import LedgerSystem, get_ledger_system
from .errors import ledger_context
from .schemas import (
    AmountRequest, CreateAccountRequest, TransferRequest,
    render_account, render_account_with_entries, render_accounts,
    render_ledger_result, success
)


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
def create_account(
    request: CreateAccountRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Create a new account"""
    account = system.accounts.create_account(
        name=request.name,
        initial_balance=request.initial_balance
    )
    return success(render_account(account))


@router.get("")
def list_accounts(system: LedgerSystem = Depends(get_ledger_system)):
    """Get all accounts, newest first"""
    return success(render_accounts(system.accounts.get_all_accounts()))


@router.post("/transfer")
def transfer(
    request: TransferRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Transfer money between two accounts"""
    with ledger_context():
        result = system.ledger.transfer(
            from_account_id=request.from_account_id,
            to_account_id=request.to_account_id,
            amount=request.amount,
            description=request.description
        )
    return success(render_ledger_result(result))


@router.get("/{account_id}")
def get_account(
    account_id: str,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Get account with its 20 most recent entries"""
    return success(render_account_with_entries(system.accounts.get_account_by_id(account_id)))


@router.post("/{account_id}/withdraw")
def withdraw(
    account_id: str,
    request: AmountRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Withdraw from an account"""
    with ledger_context():
        result = system.ledger.withdraw(account_id, request.amount)
    return success(render_ledger_result(result))


@router.post("/{account_id}/deposit")
def deposit(
    account_id: str,
    request: AmountRequest,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Deposit to an account"""
    with ledger_context():
        result = system.ledger.deposit(account_id, request.amount)
    return success(render_ledger_result(result))
