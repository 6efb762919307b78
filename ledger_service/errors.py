"""
Domain Errors

Every failure the ledger reports to its callers is a LedgerError carrying a
stable machine-readable code and the HTTP status the API renders it with.
"""

from typing import Any, Optional


class LedgerError(Exception):
    """Base class for all ledger domain errors"""

    code: str = "LEDGER_ERROR"
    status_code: int = 400

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class InvalidRequest(LedgerError):
    """Missing or malformed input"""

    code = "INVALID_REQUEST"
    status_code = 400


class InvalidAmount(LedgerError):
    """Amount is not a positive finite decimal"""

    code = "INVALID_AMOUNT"
    status_code = 400

    def __init__(self, message: str = "Amount must be positive", details: Optional[Any] = None):
        super().__init__(message, details)


class AccountNotFound(LedgerError):
    """
    Referenced account does not exist.

    Direct lookups render it as 404; ledger operations render it as 400.
    """

    code = "ACCOUNT_NOT_FOUND"
    status_code = 404

    def __init__(self, account_id: str, message: str = "Account not found"):
        self.account_id = account_id
        super().__init__(message, {"accountId": account_id})


class InsufficientFunds(LedgerError):
    """Debit would drive the account balance below zero"""

    code = "INSUFFICIENT_FUNDS"
    status_code = 400

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__("Insufficient funds", {"accountId": account_id})


class LockTimeout(LedgerError):
    """Row lock could not be acquired within the configured wait"""

    code = "LOCK_TIMEOUT"
    status_code = 409

    def __init__(self, account_id: Optional[str] = None):
        self.account_id = account_id
        details = {"accountId": account_id} if account_id else None
        super().__init__("Timed out waiting for account lock", details)


class ConfigurationError(LedgerError):
    """Invalid service configuration (raised at startup)"""

    code = "CONFIGURATION_ERROR"
    status_code = 500
