"""
Tests for ledger records, amount parsing and domain errors
"""

import pytest
from decimal import Decimal
from datetime import datetime, timezone

from ledger_service.errors import (
    AccountNotFound, InsufficientFunds, InvalidAmount, InvalidRequest, LedgerError, LockTimeout
)
from ledger_service.models import (
    Account, Entry, EntryType, Transaction, money_add, require_money, require_positive, to_decimal
)


class TestAmountParsing:
    """Test conversion of primitive amounts to Decimal"""

    def test_string_amount(self):
        assert to_decimal("12.34") == Decimal("12.34")

    def test_integer_amount(self):
        assert to_decimal(10) == Decimal("10")

    def test_float_amount_uses_shortest_repr(self):
        """0.1 must not become the binary approximation"""
        assert to_decimal(0.1) == Decimal("0.1")

    def test_decimal_passthrough(self):
        value = Decimal("5.005")
        assert to_decimal(value) is value

    def test_missing_amount(self):
        with pytest.raises(InvalidRequest, match="amount is required"):
            to_decimal(None)
        with pytest.raises(InvalidRequest, match="amount is required"):
            to_decimal("   ")

    def test_non_numeric_amount(self):
        with pytest.raises(InvalidRequest, match="must be a number"):
            to_decimal("ten")
        with pytest.raises(InvalidRequest, match="must be a number"):
            to_decimal(True)

    def test_field_name_in_message(self):
        with pytest.raises(InvalidRequest, match="initialBalance is required"):
            to_decimal(None, "initialBalance")

    def test_require_positive(self):
        assert require_positive(Decimal("0.01")) == Decimal("0.01")
        for bad in (Decimal("0"), Decimal("-1"), Decimal("NaN"), Decimal("Infinity")):
            with pytest.raises(InvalidAmount):
                require_positive(bad)


class TestAmountBounds:
    """Test the supported amount range and exact balance arithmetic"""

    def test_largest_supported_amount(self):
        amount = Decimal("999999999999999999.99999999")
        assert require_positive(amount) == amount

    def test_too_many_integer_digits(self):
        with pytest.raises(InvalidAmount, match="integer digits"):
            require_positive(Decimal("1000000000000000000"))

    def test_too_many_decimal_places(self):
        with pytest.raises(InvalidAmount, match="decimal places"):
            require_positive(Decimal("0.000000001"))

    def test_huge_exponent(self):
        with pytest.raises(InvalidAmount):
            require_positive(Decimal("1e999999999"))

    def test_require_money_allows_zero(self):
        assert require_money(Decimal("0")) == Decimal("0")

    def test_money_add_is_exact(self):
        assert money_add(Decimal("123456789012345678"), Decimal("0.01")) == Decimal("123456789012345678.01")

    def test_money_add_refuses_rounding(self):
        with pytest.raises(InvalidAmount, match="precision"):
            money_add(Decimal("1e37"), Decimal("0.01"))


class TestRecords:
    """Test record validation and serialization"""

    def setup_method(self):
        self.now = datetime.now(timezone.utc)

    def test_entry_requires_positive_amount(self):
        with pytest.raises(ValueError, match="must be positive"):
            Entry(
                id="E1", amount=Decimal("0"), type=EntryType.DEBIT,
                account_id="A1", transaction_id="T1", created_at=self.now
            )

    def test_entry_signed_amount(self):
        debit = Entry(id="E1", amount=Decimal("7.5"), type=EntryType.DEBIT,
                      account_id="A1", transaction_id="T1", created_at=self.now)
        credit = Entry(id="E2", amount=Decimal("7.5"), type=EntryType.CREDIT,
                       account_id="A2", transaction_id="T1", created_at=self.now)
        assert debit.signed_amount == Decimal("-7.5")
        assert credit.signed_amount == Decimal("7.5")
        assert debit.signed_amount + credit.signed_amount == 0

    def test_account_serializes_decimal_as_string(self):
        account = Account(id="A1", name="Cash", balance=Decimal("100.10"),
                          created_at=self.now, updated_at=self.now)
        data = account.to_dict()
        assert data["balance"] == "100.10"
        assert data["created_at"] == self.now.isoformat()
        assert Account.from_dict(data) == account

    def test_entry_from_row_ignores_join_columns(self):
        row = {
            "id": "E1", "amount": "3", "type": "CREDIT", "account_id": "A1",
            "transaction_id": "T1", "created_at": self.now.isoformat(),
            "transaction_description": "Deposit to A1",
        }
        entry = Entry.from_dict(row)
        assert entry.type == EntryType.CREDIT
        assert entry.amount == Decimal("3")

    def test_transaction_description_optional(self):
        txn = Transaction.from_dict({"id": "T1", "created_at": self.now.isoformat()})
        assert txn.description is None


class TestErrors:
    """Test error codes and HTTP statuses"""

    def test_codes_and_statuses(self):
        assert (InvalidRequest("x").code, InvalidRequest("x").status_code) == ("INVALID_REQUEST", 400)
        assert (InvalidAmount().code, InvalidAmount().status_code) == ("INVALID_AMOUNT", 400)
        assert (AccountNotFound("A1").code, AccountNotFound("A1").status_code) == ("ACCOUNT_NOT_FOUND", 404)
        assert (InsufficientFunds("A1").code, InsufficientFunds("A1").status_code) == ("INSUFFICIENT_FUNDS", 400)
        assert LockTimeout("A1").status_code == 409

    def test_all_errors_share_base(self):
        for error in (InvalidRequest("x"), InvalidAmount(), AccountNotFound("A1"),
                      InsufficientFunds("A1"), LockTimeout()):
            assert isinstance(error, LedgerError)

    def test_account_not_found_details(self):
        error = AccountNotFound("A1", "Source account not found")
        assert error.message == "Source account not found"
        assert error.details == {"accountId": "A1"}
        assert str(error) == "Source account not found"
