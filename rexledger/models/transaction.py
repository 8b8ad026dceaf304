"""
Core Data Models for Rex Ledger

These models define the schemas for everything that flows between the
front end, the transaction store and the snapshot engine:
1. Transactions as the user enters them and as they are stored
2. The method descriptor ("Cash" or "Cash to Bank")
3. Validation issues reported back to the user
4. Read-only query results

DESIGN DECISION: Amounts are Decimal at this layer and integer cents
below it. The signed per-method deltas a transaction produces are
computed here, once, so insertion and deletion can never disagree.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

from rexledger.models.money import CENT, MAX_AMOUNT, from_cents, has_cent_precision, to_cents

TRANSFER_SEPARATOR = " to "
DEFAULT_TAG = "Unknown"


def breaks_transfer_syntax(name: str) -> bool:
    """
    True when a method name could not be read back out of "A to B".

    "Cash to" or "to Bank" would split on the wrong " to ".
    """
    keyword = TRANSFER_SEPARATOR.strip()
    return (
        TRANSFER_SEPARATOR in name
        or name.startswith(keyword + " ")
        or name.endswith(" " + keyword)
    )


# =============================================================================
# ENUMS
# =============================================================================

class TransactionKind(str, Enum):
    """
    Transaction kinds.

    The values match what the front end and the database store.
    """
    INCOME = "Income"
    EXPENSE = "Expense"
    TRANSFER = "Transfer"


# =============================================================================
# METHOD DESCRIPTOR
# =============================================================================

class MethodDescriptor(BaseModel):
    """
    Which method(s) a transaction touches.

    Income/Expense: a single method, e.g. "Cash".
    Transfer: "A to B", value leaves A and arrives in B.
    """
    model_config = ConfigDict(frozen=True)

    source: str = Field(..., min_length=1)
    destination: Optional[str] = None

    @classmethod
    def parse(cls, text: str, kind: TransactionKind) -> "MethodDescriptor":
        """
        Parse the stored/entered descriptor text for a given kind.

        Raises ValueError if the shape does not match the kind.
        """
        text = text.strip()
        if kind == TransactionKind.TRANSFER:
            parts = text.split(TRANSFER_SEPARATOR)
            if len(parts) != 2 or not parts[0].strip() or not parts[1].strip():
                raise ValueError(
                    f"Transfer method must look like 'A to B', got '{text}'"
                )
            return cls(source=parts[0].strip(), destination=parts[1].strip())

        if not text:
            raise ValueError("Method is required")
        if TRANSFER_SEPARATOR in text:
            raise ValueError(
                f"'{text}' looks like a transfer but kind is {kind.value}"
            )
        return cls(source=text)

    @property
    def is_transfer(self) -> bool:
        return self.destination is not None

    @property
    def methods(self) -> list[str]:
        """Every method named, in descriptor order."""
        if self.destination is None:
            return [self.source]
        return [self.source, self.destination]

    def __str__(self) -> str:
        if self.destination is None:
            return self.source
        return f"{self.source}{TRANSFER_SEPARATOR}{self.destination}"


# =============================================================================
# TRANSACTIONS
# =============================================================================

class NewTransaction(BaseModel):
    """
    A validated transaction that has not been stored yet.

    Built by the validator from raw user input; the store assigns the id.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    date: date
    details: str = Field(
        default="",
        max_length=500,
        description="Free-text description"
    )
    method: str = Field(
        ...,
        min_length=1,
        description="Method descriptor: 'Cash' or 'Cash to Bank'"
    )
    amount: Annotated[
        Decimal,
        Field(gt=0, le=MAX_AMOUNT, description="Amount, exactly two decimal places")
    ]
    kind: TransactionKind
    tags: str = Field(
        default=DEFAULT_TAG,
        description="Comma separated tags"
    )

    @field_validator("amount")
    @classmethod
    def validate_precision(cls, v: Decimal) -> Decimal:
        if not has_cent_precision(v):
            raise ValueError("Amount cannot have more than two decimal places")
        return v.quantize(CENT)

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v: str) -> str:
        tags = [tag.strip() for tag in v.split(",") if tag.strip()]
        return ", ".join(tags) if tags else DEFAULT_TAG

    @model_validator(mode="after")
    def validate_method_shape(self) -> "NewTransaction":
        descriptor = MethodDescriptor.parse(self.method, self.kind)
        if descriptor.is_transfer and descriptor.source == descriptor.destination:
            raise ValueError("Cannot transfer to the same method")
        return self

    @property
    def descriptor(self) -> MethodDescriptor:
        return MethodDescriptor.parse(self.method, self.kind)

    @property
    def tag_list(self) -> list[str]:
        return [tag.strip() for tag in self.tags.split(",")]

    def deltas(self) -> dict[str, int]:
        """
        Signed per-method change in cents.

        Income adds to its method, Expense subtracts. A transfer
        subtracts from the source and adds to the destination, so
        expenses and outgoing transfers are both negative.
        """
        cents = to_cents(self.amount)
        descriptor = self.descriptor

        if self.kind == TransactionKind.INCOME:
            return {descriptor.source: cents}
        if self.kind == TransactionKind.EXPENSE:
            return {descriptor.source: -cents}
        return {
            descriptor.source: -cents,
            descriptor.destination: cents,
        }


class Transaction(NewTransaction):
    """A stored transaction with its permanent sequence id."""

    id: int = Field(..., ge=1, description="Sequence id, never reused")

    @classmethod
    def from_row(cls, row) -> "Transaction":
        """Build from a tx_all row (sqlite3.Row or mapping)."""
        return cls(
            id=row["id_num"],
            date=date.fromisoformat(row["date"]),
            details=row["details"],
            method=row["tx_method"],
            amount=from_cents(row["amount_cents"]),
            kind=TransactionKind(row["tx_type"]),
            tags=row["tags"],
        )


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_format', 'out_of_range')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage validation.

    Stage 1: Schema validation (formats, required fields)
    Stage 2: Semantic validation (registered methods, month span)
    """

    validated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    schema_valid: bool
    semantic_valid: bool

    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )

    # Set only when both stages pass
    transaction: Optional[NewTransaction] = None

    @property
    def is_valid(self) -> bool:
        return self.schema_valid and self.semantic_valid

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "warning"]

    @property
    def first_error(self) -> Optional[ValidationIssue]:
        for issue in self.issues:
            if issue.severity == "error":
                return issue
        return None


# =============================================================================
# QUERY MODELS
# =============================================================================

class MonthTotals(BaseModel):
    """Income and expense totals for one month (transfers excluded)."""

    year: int
    month: int = Field(..., ge=1, le=12)
    income: Decimal = Decimal("0.00")
    expense: Decimal = Decimal("0.00")
    transaction_count: int = Field(default=0, ge=0)

    @computed_field
    @property
    def net(self) -> Decimal:
        return self.income - self.expense


class TransactionRow(BaseModel):
    """
    One row of the month table: the transaction plus the balances
    right after it and the change it made.
    """

    transaction: Transaction
    balance_after: dict[str, Decimal]
    changes: dict[str, Decimal]
