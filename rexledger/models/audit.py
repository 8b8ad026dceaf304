"""
Audit Models for Rex Ledger

Every mutation of the ledger is recorded for audit purposes:
1. Traceability of what was added, deleted or registered
2. Debugging information when a unit of work is rolled back
3. A history the user can inspect independently of the balances

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
Deleting a transaction does not delete its TRANSACTION_ADDED event.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Ledger lifecycle
    LEDGER_CREATED = "ledger_created"
    LEDGER_OPENED = "ledger_opened"

    # Method registry
    METHOD_REGISTERED = "method_registered"

    # Transactions
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_DELETED = "transaction_deleted"
    VALIDATION_FAILED = "validation_failed"

    # System events
    OPERATION_FAILED = "operation_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


# Column order of the audit_log table
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "description",
    "details_json",
    "error_message",
]


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every ledger mutation creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'method', 'ledger')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }

    def to_row(self) -> tuple:
        """
        Convert to a row for the audit_log table, in AUDIT_COLUMNS order.
        """
        return (
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type,
            self.entity_id,
            self.description,
            json.dumps(self.details) if self.details else None,
            self.error_message,
        )

    @classmethod
    def from_row(cls, row) -> "AuditEvent":
        return cls(
            event_id=UUID(row["event_id"]),
            timestamp=datetime.fromisoformat(row["timestamp"]),
            event_type=AuditEventType(row["event_type"]),
            severity=AuditSeverity(row["severity"]),
            entity_type=row["entity_type"],
            entity_id=row["entity_id"],
            description=row["description"],
            details=json.loads(row["details_json"]) if row["details_json"] else {},
            error_message=row["error_message"],
        )


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.method_registered("Card", 3)
        event = AuditEventBuilder.operation_failed("add_transaction", "StorageError", "disk I/O error")
    """

    @staticmethod
    def ledger_created(
        database_path: str,
        start_year: int,
        years: int,
        methods: list[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_CREATED,
            entity_type="ledger",
            entity_id=database_path,
            description=f"Ledger created for {start_year}-{start_year + years - 1}",
            details={
                "start_year": start_year,
                "years": years,
                "methods": methods,
            },
        )

    @staticmethod
    def ledger_opened(database_path: str, transaction_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_OPENED,
            severity=AuditSeverity.DEBUG,
            entity_type="ledger",
            entity_id=database_path,
            description="Ledger opened",
            details={"transaction_count": transaction_count},
        )

    @staticmethod
    def method_registered(name: str, position: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.METHOD_REGISTERED,
            entity_type="method",
            entity_id=name,
            description=f"Transaction method registered: {name}",
            details={"position": position},
        )

    @staticmethod
    def transaction_added(
        tx_id: int,
        tx_date: str,
        method: str,
        amount: str,
        kind: str,
        from_index: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            entity_type="transaction",
            entity_id=str(tx_id),
            description=f"{kind} of {amount} via {method} on {tx_date}",
            details={
                "date": tx_date,
                "method": method,
                "amount": amount,
                "kind": kind,
                "cascade_from_month": from_index,
            },
        )

    @staticmethod
    def transaction_deleted(
        tx_id: int,
        method: str,
        amount: str,
        kind: str,
        from_index: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=str(tx_id),
            description=f"Deleted {kind} of {amount} via {method}",
            details={
                "method": method,
                "amount": amount,
                "kind": kind,
                "cascade_from_month": from_index,
            },
        )

    @staticmethod
    def validation_failed(field: Optional[str], issues: list[dict]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="transaction",
            description=f"Transaction rejected with {len(issues)} issues",
            details={
                "field": field,
                "issues": issues,
            },
        )

    @staticmethod
    def operation_failed(
        operation: str,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OPERATION_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="ledger",
            description=f"{operation} failed: {error_type}",
            details={"operation": operation, **(details or {})},
            error_message=error_message,
        )
