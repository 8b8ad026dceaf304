"""
Data Models Package

This package contains all Pydantic models used in Rex Ledger.
All data crossing the ledger API must conform to these schemas.
"""

from rexledger.models.transaction import (
    DEFAULT_TAG,
    TRANSFER_SEPARATOR,
    MethodDescriptor,
    MonthTotals,
    NewTransaction,
    Transaction,
    TransactionKind,
    TransactionRow,
    ValidationIssue,
    ValidationResult,
)
from rexledger.models.audit import (
    AUDIT_COLUMNS,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from rexledger.models.months import OPENING_INDEX, MonthSpan
from rexledger.models.money import (
    CENT,
    MAX_AMOUNT,
    format_amount,
    from_cents,
    parse_amount,
    to_cents,
)

__all__ = [
    # Transaction models
    "DEFAULT_TAG",
    "TRANSFER_SEPARATOR",
    "MethodDescriptor",
    "MonthTotals",
    "NewTransaction",
    "Transaction",
    "TransactionKind",
    "TransactionRow",
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AUDIT_COLUMNS",
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Month span
    "OPENING_INDEX",
    "MonthSpan",
    # Money helpers
    "CENT",
    "MAX_AMOUNT",
    "format_amount",
    "from_cents",
    "parse_amount",
    "to_cents",
]
