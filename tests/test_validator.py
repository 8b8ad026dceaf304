"""
Tests for the two-stage transaction validator.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from rexledger.exceptions import OutOfRangeError, ValidationError
from rexledger.models.months import MonthSpan
from rexledger.models.transaction import TransactionKind
from rexledger.validation import TransactionValidator


@pytest.fixture
def validator():
    span = MonthSpan(start_year=2022, years=4)
    return TransactionValidator(span, lambda: ["Cash", "Bank", "test 2"])


class TestSchemaStage:
    """Stage 1: formats and shapes."""

    def test_valid_input_builds_transaction(self, validator):
        """Test that valid text input produces a NewTransaction."""
        result = validator.validate("2022-07-19", " Lunch ", "Cash", "12.5", "Expense", "food")

        assert result.is_valid
        assert result.issues == []
        tx = result.transaction
        assert tx.date == date(2022, 7, 19)
        assert tx.details == "Lunch"
        assert tx.amount == Decimal("12.50")
        assert tx.kind == TransactionKind.EXPENSE
        assert tx.tags == "food"

    def test_schema_errors_skip_semantic_stage(self, validator):
        """Test that stage 2 does not run when stage 1 fails."""
        result = validator.validate("2030-13-01", "", "Card", "1", "Income")

        assert result.schema_valid is False
        assert result.semantic_valid is False
        assert [issue.field for issue in result.issues] == ["date"]
        assert result.transaction is None

    def test_all_schema_issues_reported(self, validator):
        """Test that every stage 1 problem is listed, not just the first."""
        result = validator.validate("19-07-2022", "", "Cash", "-1", "Gift")

        assert {issue.field for issue in result.issues} == {"date", "amount", "kind"}
        assert result.error_count == 3

    def test_transfer_shape(self, validator):
        """Test that a transfer needs 'A to B'."""
        result = validator.validate("2022-07-19", "", "Cash", "1", "Transfer")
        assert result.first_error.field == "method"
        assert result.first_error.issue_type == "invalid_format"

    def test_amount_cap(self, validator):
        """Test that amounts over MAX_AMOUNT are reported, not quantized."""
        result = validator.validate("2022-07-19", "", "Cash", "1e30", "Income")

        assert result.first_error.field == "amount"
        assert result.first_error.issue_type == "too_large"
        assert result.transaction is None

    def test_details_must_be_text(self, validator):
        """Test that non-string details are a details issue."""
        result = validator.validate("2022-07-19", 12, "Cash", "1", "Income")
        assert result.first_error.field == "details"
        assert result.first_error.issue_type == "invalid_format"


class TestSemanticStage:
    """Stage 2: registry and span."""

    def test_unregistered_methods(self, validator):
        """Test that each unregistered method in a transfer is reported."""
        result = validator.validate("2022-07-19", "", "Card to Wallet", "1", "Transfer")

        assert result.schema_valid is True
        assert result.semantic_valid is False
        assert [issue.issue_type for issue in result.issues] == ["unregistered", "unregistered"]

    def test_method_with_spaces(self, validator):
        """Test that a registered name containing spaces is accepted."""
        result = validator.validate("2022-07-19", "", "Cash to test 2", "1", "Transfer")
        assert result.is_valid

    def test_out_of_range_alone_raises_out_of_range(self, validator):
        """Test that a date outside the span raises OutOfRangeError."""
        with pytest.raises(OutOfRangeError):
            validator.validate_or_raise("2026-01-01", "", "Cash", "1", "Income")

    def test_out_of_range_with_other_errors_raises_validation(self, validator):
        """Test that a bad method wins over the date range."""
        with pytest.raises(ValidationError) as exc_info:
            validator.validate_or_raise("2026-01-01", "", "Card", "1", "Income")

        assert exc_info.value.field == "method"
        assert {issue.issue_type for issue in exc_info.value.issues} == {"unregistered", "out_of_range"}

    def test_future_date_is_warning_only(self):
        """Test that a future date inside the span is accepted with a warning."""
        today = date.today()
        validator = TransactionValidator(
            MonthSpan(start_year=today.year, years=2),
            lambda: ["Cash"],
        )
        result = validator.validate(today + timedelta(days=30), "", "Cash", "1", "Income")

        assert result.is_valid
        assert len(result.warnings) == 1
        assert result.issues[0].issue_type == "future_date"


class TestSummary:
    """Tests for the user-facing summary text."""

    def test_summary_for_valid_input(self, validator):
        """Test the summary when nothing is wrong."""
        result = validator.validate("2022-07-19", "", "Cash", "1", "Income")
        assert validator.get_user_friendly_summary(result) == "Transaction data accepted."

    def test_summary_lists_errors_and_fixes(self, validator):
        """Test that the summary shows each error and its suggested fix."""
        result = validator.validate("2022-07-19", "", "Card", "1", "Income")
        summary = validator.get_user_friendly_summary(result)

        assert "Some fields need fixing:" in summary
        assert "Transaction method 'Card' does not exist" in summary
        assert "Registered methods: Bank, Cash, test 2" in summary


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
