"""
Two-Stage Validation Pipeline

DESIGN DECISION: Transaction input is validated in two distinct stages
before anything touches the database:

STAGE 1 - SCHEMA VALIDATION:
- Date format (YYYY-MM-DD, real calendar day)
- Amount is a number, positive, at most MAX_AMOUNT, at most two decimal places
- Kind is Income, Expense or Transfer
- Method descriptor shape matches the kind ("A to B" for transfers)

STAGE 2 - SEMANTIC VALIDATION:
- Every named method is registered
- A transfer moves between two different methods
- The date falls inside the ledger's month span
- Future dates are flagged (warning only)

WHY TWO STAGES:
1. Stage 2 needs a parsed date, kind and descriptor to work on
2. Better error messages (know exactly what kind of issue)
3. Stage 2 needs the method registry

IMPORTANT: Validation NEVER silently fixes input. Whitespace is
trimmed and "159" becomes 159.00; anything else is reported.
"""

import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional, Union

import structlog
from pydantic import ValidationError as PydanticValidationError

from rexledger.exceptions import OutOfRangeError, ValidationError
from rexledger.models.money import CENT, MAX_AMOUNT, has_cent_precision, parse_amount
from rexledger.models.months import MonthSpan
from rexledger.models.transaction import (
    DEFAULT_TAG,
    MethodDescriptor,
    NewTransaction,
    TransactionKind,
    ValidationIssue,
    ValidationResult,
)

logger = structlog.get_logger(__name__)

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
MAX_DETAILS_LENGTH = 500


class TransactionValidator:
    """
    Validates raw transaction input through a two-stage pipeline.

    Stage 1: Schema validation (no database access)
    Stage 2: Semantic validation (needs registered methods and the span)
    """

    def __init__(
        self,
        span: MonthSpan,
        list_methods: Callable[[], list[str]],
    ):
        """
        Initialize validator.

        Args:
            span: Month span of the open ledger
            list_methods: Returns the registered method names
        """
        self._span = span
        self._list_methods = list_methods

    @staticmethod
    def _error(field: str, issue_type: str, message: str, fix: Optional[str] = None) -> ValidationIssue:
        return ValidationIssue(
            field=field,
            issue_type=issue_type,
            message=message,
            severity="error",
            suggested_fix=fix,
        )

    def _validate_schema(
        self,
        tx_date: Union[str, date],
        details: str,
        method: str,
        amount: Union[str, int, Decimal],
        kind: Union[str, TransactionKind],
    ) -> tuple[dict, list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (parsed_fields, list_of_issues)
        """
        issues = []
        parsed = {}

        # Date
        if isinstance(tx_date, date):
            parsed["date"] = tx_date
        elif not isinstance(tx_date, str) or not DATE_PATTERN.match(tx_date.strip()):
            issues.append(self._error(
                "date", "invalid_format",
                f"Date must be in YYYY-MM-DD format, got '{tx_date}'",
                "Example: 2022-05-12",
            ))
        else:
            try:
                parsed["date"] = date.fromisoformat(tx_date.strip())
            except ValueError:
                issues.append(self._error(
                    "date", "invalid_value",
                    f"'{tx_date}' is not a valid calendar date",
                    "Check the day exists in that month",
                ))

        # Details
        if details is not None and not isinstance(details, str):
            issues.append(self._error(
                "details", "invalid_format",
                f"Details must be text, got {type(details).__name__}",
            ))
        elif details is not None and len(details.strip()) > MAX_DETAILS_LENGTH:
            issues.append(self._error(
                "details", "too_long",
                f"Details cannot be longer than {MAX_DETAILS_LENGTH} characters",
            ))

        # Amount
        try:
            value = parse_amount(amount)
        except ValueError:
            issues.append(self._error(
                "amount", "invalid_format",
                f"Amount must be a number, got '{amount}'",
                "Example: 1000 or 159.19",
            ))
        else:
            if value <= 0:
                issues.append(self._error(
                    "amount", "invalid_value",
                    "Amount must be greater than zero",
                ))
            elif value > MAX_AMOUNT:
                issues.append(self._error(
                    "amount", "too_large",
                    f"Amount cannot be more than {MAX_AMOUNT}",
                ))
            else:
                try:
                    exact = has_cent_precision(value)
                except InvalidOperation:
                    exact = False
                if exact:
                    parsed["amount"] = value.quantize(CENT)
                else:
                    issues.append(self._error(
                        "amount", "invalid_format",
                        f"Amount {value} has more than two decimal places",
                    ))

        # Kind
        try:
            parsed["kind"] = self._parse_kind(kind)
        except ValueError:
            issues.append(self._error(
                "kind", "invalid_value",
                f"Transaction type must be Income, Expense or Transfer, got '{kind}'",
            ))

        # Method descriptor shape (needs the kind)
        if "kind" in parsed:
            try:
                parsed["descriptor"] = MethodDescriptor.parse(method or "", parsed["kind"])
            except ValueError as e:
                issues.append(self._error(
                    "method", "invalid_format", str(e),
                    "Transfers look like 'Cash to Bank'",
                ))

        return parsed, issues

    @staticmethod
    def _parse_kind(kind: Union[str, TransactionKind]) -> TransactionKind:
        if isinstance(kind, TransactionKind):
            return kind
        text = str(kind).strip().lower()
        for member in TransactionKind:
            if member.value.lower() == text:
                return member
        raise ValueError(kind)

    def _validate_semantic(self, parsed: dict) -> list[ValidationIssue]:
        """
        Stage 2: Semantic validation.

        Checks:
        - Methods are registered
        - Transfers use two different methods
        - Date inside the month span
        - Future dates (warning)
        """
        issues = []
        descriptor: MethodDescriptor = parsed["descriptor"]
        registered = set(self._list_methods())

        for name in descriptor.methods:
            if name not in registered:
                issues.append(self._error(
                    "method", "unregistered",
                    f"Transaction method '{name}' does not exist",
                    f"Registered methods: {', '.join(sorted(registered))}",
                ))

        if descriptor.is_transfer and descriptor.source == descriptor.destination:
            issues.append(self._error(
                "method", "same_method",
                f"Cannot transfer from '{descriptor.source}' to itself",
            ))

        tx_date: date = parsed["date"]
        if not self._span.contains(tx_date):
            issues.append(self._error(
                "date", "out_of_range",
                f"Date {tx_date} is outside the ledger range "
                f"{self._span.start_year}-{self._span.end_year}",
            ))
        elif tx_date > date.today():
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Date ({tx_date}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        return issues

    def validate(
        self,
        tx_date: Union[str, date],
        details: str,
        method: str,
        amount: Union[str, int, Decimal],
        kind: Union[str, TransactionKind],
        tags: str = "",
    ) -> ValidationResult:
        """
        Run full two-stage validation pipeline.

        Returns:
            ValidationResult with all issues found, and the validated
            NewTransaction when there are no errors
        """
        parsed, issues = self._validate_schema(tx_date, details, method, amount, kind)
        schema_valid = not any(issue.severity == "error" for issue in issues)

        # Only run stage 2 if stage 1 passes
        semantic_valid = False
        if schema_valid:
            semantic_issues = self._validate_semantic(parsed)
            issues.extend(semantic_issues)
            semantic_valid = not any(issue.severity == "error" for issue in semantic_issues)

        transaction = None
        if schema_valid and semantic_valid:
            try:
                transaction = NewTransaction(
                    date=parsed["date"],
                    details=(details or "").strip(),
                    method=str(parsed["descriptor"]),
                    amount=parsed["amount"],
                    kind=parsed["kind"],
                    tags=tags or DEFAULT_TAG,
                )
            except PydanticValidationError as e:
                semantic_valid = False
                for error in e.errors():
                    location = error["loc"][0] if error["loc"] else "transaction"
                    issues.append(self._error(str(location), "invalid_value", error["msg"]))

        return ValidationResult(
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            issues=issues,
            transaction=transaction,
        )

    def validate_or_raise(
        self,
        tx_date: Union[str, date],
        details: str,
        method: str,
        amount: Union[str, int, Decimal],
        kind: Union[str, TransactionKind],
        tags: str = "",
    ) -> NewTransaction:
        """
        Validate and return the NewTransaction, or raise.

        Raises:
            OutOfRangeError: If the only problem is the date's range
            ValidationError: For every other error, with the field at fault
        """
        result = self.validate(tx_date, details, method, amount, kind, tags)
        if result.transaction is not None:
            return result.transaction

        first = result.first_error
        logger.info(
            "transaction_rejected",
            field=first.field if first else None,
            issues=[issue.model_dump() for issue in result.issues],
        )
        if first is not None and first.issue_type == "out_of_range" and result.error_count == 1:
            raise OutOfRangeError(first.message)
        raise ValidationError(
            first.message if first else "Invalid transaction",
            field=first.field if first else None,
            issues=result.issues,
        )

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of validation results.

        This is what the status box of the add-transaction page shows.
        """
        if result.is_valid and not result.warnings:
            return "Transaction data accepted."

        lines = []

        if result.has_errors:
            lines.append("Some fields need fixing:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
