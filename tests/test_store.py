"""
Tests for the transaction store

Ids, retrieval, month listing, and rejection of bad input before
anything is written.
"""

from datetime import date
from decimal import Decimal

import pytest

from rexledger.exceptions import NotFoundError, OutOfRangeError, ValidationError
from rexledger.models.transaction import TransactionKind


class TestAddAndGet:
    """Tests for adding and reading back transactions."""

    def test_ids_are_sequential_and_never_reused(self, ledger):
        """Test that a deleted id is not handed out again."""
        assert ledger.add("2022-07-19", "a", "Cash", "1", "Income") == 1
        assert ledger.add("2022-07-19", "b", "Cash", "1", "Income") == 2
        ledger.delete(2)
        assert ledger.add("2022-07-19", "c", "Cash", "1", "Income") == 3

    def test_get_returns_stored_fields(self, ledger):
        """Test that get returns what was added, normalized."""
        tx_id = ledger.add("2022-07-19", "  Groceries  ", "Cash", "159", "Expense", "food, weekly")

        tx = ledger.get(tx_id)
        assert tx.id == tx_id
        assert tx.date == date(2022, 7, 19)
        assert tx.details == "Groceries"
        assert tx.method == "Cash"
        assert tx.amount == Decimal("159.00")
        assert tx.kind == TransactionKind.EXPENSE
        assert tx.tags == "food, weekly"

    def test_typed_input_accepted(self, ledger):
        """Test that date, Decimal and TransactionKind values work as well as text."""
        tx_id = ledger.add(
            date(2023, 1, 2), "", "Cash to Bank", Decimal("10.5"), TransactionKind.TRANSFER
        )
        tx = ledger.get(tx_id)
        assert tx.amount == Decimal("10.50")
        assert tx.method == "Cash to Bank"

    def test_kind_is_case_insensitive(self, ledger):
        """Test that 'income' is read as Income."""
        tx_id = ledger.add("2022-07-19", "", "Cash", "1", "income")
        assert ledger.get(tx_id).kind == TransactionKind.INCOME

    def test_tags_default_to_unknown(self, ledger):
        """Test the default tag."""
        tx_id = ledger.add("2022-07-19", "", "Cash", "1", "Income")
        assert ledger.get(tx_id).tags == "Unknown"

    def test_get_unknown_raises(self, ledger):
        """Test that an unknown id raises NotFoundError."""
        with pytest.raises(NotFoundError):
            ledger.get(42)

    def test_delete_unknown_raises(self, ledger):
        """Test that deleting an unknown id raises NotFoundError."""
        with pytest.raises(NotFoundError):
            ledger.delete(42)

    def test_delete_returns_removed_transaction(self, ledger):
        """Test that delete hands back the transaction it removed."""
        tx_id = ledger.add("2022-07-19", "rent", "Bank", "900", "Expense")
        removed = ledger.delete(tx_id)
        assert removed.id == tx_id
        assert removed.details == "rent"
        assert ledger.transactions.count() == 0


class TestListMonth:
    """Tests for listing a month's transactions."""

    def test_ordered_by_date_then_id(self, ledger):
        """Test the month listing order and boundaries."""
        late = ledger.add("2022-02-20", "late", "Cash", "1", "Income")
        early = ledger.add("2022-02-01", "early", "Cash", "1", "Income")
        same_day = ledger.add("2022-02-20", "same day", "Cash", "1", "Income")
        ledger.add("2022-01-31", "january", "Cash", "1", "Income")
        ledger.add("2022-03-01", "march", "Cash", "1", "Income")

        listed = ledger.transactions.list_month(2022, 2)
        assert [tx.id for tx in listed] == [early, late, same_day]

    def test_empty_month(self, ledger):
        """Test that a month without transactions lists nothing."""
        assert ledger.transactions.list_month(2024, 6) == []

    def test_month_outside_span(self, ledger):
        """Test that a month outside the span raises OutOfRangeError."""
        with pytest.raises(OutOfRangeError):
            ledger.transactions.list_month(2030, 1)


class TestRejectedInput:
    """Bad input raises before anything is written."""

    @pytest.mark.parametrize(
        "tx_date, method, amount, kind, field",
        [
            ("2022/07/19", "Cash", "1", "Income", "date"),
            ("2022-02-30", "Cash", "1", "Income", "date"),
            ("", "Cash", "1", "Income", "date"),
            ("2022-07-19", "Cash", "0", "Income", "amount"),
            ("2022-07-19", "Cash", "-5", "Expense", "amount"),
            ("2022-07-19", "Cash", "abc", "Expense", "amount"),
            ("2022-07-19", "Cash", "1.234", "Expense", "amount"),
            ("2022-07-19", "Cash", "1", "Loan", "kind"),
            ("2022-07-19", "Card", "1", "Income", "method"),
            ("2022-07-19", "Cash to Cash", "1", "Transfer", "method"),
            ("2022-07-19", "Cash", "1", "Transfer", "method"),
            ("2022-07-19", "Cash to Bank", "1", "Income", "method"),
            ("2022-07-19", "Cash to Card", "1", "Transfer", "method"),
        ],
    )
    def test_validation_error_names_field(self, ledger, tx_date, method, amount, kind, field):
        """Test that each malformed input is rejected with the field at fault."""
        with pytest.raises(ValidationError) as exc_info:
            ledger.add(tx_date, "details", method, amount, kind)

        assert exc_info.value.field == field
        assert ledger.transactions.count() == 0
        assert ledger.check_consistency() == []

    def test_float_amount_rejected(self, ledger):
        """Test that a float amount is refused."""
        with pytest.raises(ValidationError) as exc_info:
            ledger.add("2022-07-19", "", "Cash", 1.5, "Income")
        assert exc_info.value.field == "amount"

    @pytest.mark.parametrize("tx_date", ["2021-12-31", "2026-01-01"])
    def test_out_of_range_dates_rejected(self, ledger, tx_date):
        """Test that dates outside the span raise OutOfRangeError."""
        with pytest.raises(OutOfRangeError):
            ledger.add(tx_date, "", "Cash", "1", "Income")
        assert ledger.transactions.count() == 0

    def test_span_edges_accepted(self, ledger):
        """Test the first and last day of the span."""
        ledger.add("2022-01-01", "", "Cash", "1", "Income")
        ledger.add("2025-12-31", "", "Cash", "1", "Income")
        assert ledger.balance_as_of(1) == {"Cash": Decimal("1.00"), "Bank": Decimal("0.00")}
        assert ledger.all_time_balance()["Cash"] == Decimal("2.00")

    def test_details_too_long(self, ledger):
        """Test that overly long details are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            ledger.add("2022-07-19", "x" * 501, "Cash", "1", "Income")
        assert exc_info.value.field == "details"

    @pytest.mark.parametrize(
        "amount", ["1000000000000.01", "100000000000000000", "1e30", Decimal("1E+40")]
    )
    def test_oversized_amount_rejected(self, ledger, amount):
        """Test that amounts past the cap are a ValidationError on 'amount'."""
        with pytest.raises(ValidationError) as exc_info:
            ledger.add("2022-07-19", "", "Cash", amount, "Income")

        assert exc_info.value.field == "amount"
        assert ledger.transactions.count() == 0
        assert ledger.all_time_balance()["Cash"] == Decimal("0.00")

    def test_largest_amount_accepted(self, ledger):
        """Test that the cap itself is a valid amount and stays exact."""
        ledger.add("2022-07-19", "", "Cash", "1000000000000.00", "Income")
        ledger.add("2022-07-20", "", "Cash", "0.01", "Income")
        assert ledger.all_time_balance()["Cash"] == Decimal("1000000000000.01")

    @pytest.mark.parametrize("details", [42, ["lunch"]])
    def test_non_text_details_rejected(self, ledger, details):
        """Test that details must be a string."""
        with pytest.raises(ValidationError) as exc_info:
            ledger.add("2022-07-19", details, "Cash", "1", "Income")
        assert exc_info.value.field == "details"

    def test_error_carries_issues(self, ledger):
        """Test that the error lists every issue found."""
        with pytest.raises(ValidationError) as exc_info:
            ledger.add("bad date", "", "Cash", "abc", "Income")

        fields = {issue.field for issue in exc_info.value.issues}
        assert fields == {"date", "amount"}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
