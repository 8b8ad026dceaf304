"""
Audit Logger

DESIGN DECISION: Every ledger mutation leaves an audit record:
1. Which transaction was added or deleted, and from which month the
   cascade ran
2. Which methods were registered and when
3. Why an input was rejected or a unit of work rolled back

The audit logger:
- Runs after the mutation has committed, never inside its unit of work
- Never fails the ledger operation it describes; a failed audit write
  is logged and reported as False
"""

import logging
import sys
from typing import Optional

import structlog

from rexledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from rexledger.models.transaction import Transaction
from rexledger.services.storage import AuditStorageInterface

_LEVELS = {
    AuditSeverity.DEBUG: logging.DEBUG,
    AuditSeverity.INFO: logging.INFO,
    AuditSeverity.WARNING: logging.WARNING,
    AuditSeverity.ERROR: logging.ERROR,
    AuditSeverity.CRITICAL: logging.CRITICAL,
}


def configure_logging(level: str = "INFO", json_logs: bool = True) -> None:
    """
    Configure structlog over the stdlib logging backend.

    Called once at startup by create_ledger().
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper(), logging.INFO),
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


class AuditLogger:
    """
    Writes audit events to the structured log and, when a backend is
    given, to the audit_log table.
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Args:
            storage: Where events are persisted. Without one, events
                only go to the structured log.
        """
        self._storage = storage
        self._logger = structlog.get_logger("rexledger.audit")

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

    def log(self, event: AuditEvent) -> bool:
        """
        Record one event.

        Returns False only when the storage write failed.
        """
        self._logger.log(_LEVELS[event.severity], "audit_event", **event.to_log_dict())

        if self._storage is None:
            return True

        try:
            return self._storage.append_event(event)
        except Exception as e:
            # The mutation has already committed; keep going
            self._logger.error(
                "audit_storage_failed",
                event_id=str(event.event_id),
                event_type=event.event_type.value,
                error=str(e),
            )
            return False

    # -------------------------------------------------------------------------
    # Convenience methods for ledger events
    # -------------------------------------------------------------------------

    def log_method_registered(self, name: str, position: int) -> bool:
        return self.log(AuditEventBuilder.method_registered(name, position))

    def log_transaction_added(self, tx: Transaction, from_index: int) -> bool:
        return self.log(AuditEventBuilder.transaction_added(
            tx_id=tx.id,
            tx_date=tx.date.isoformat(),
            method=tx.method,
            amount=str(tx.amount),
            kind=tx.kind.value,
            from_index=from_index,
        ))

    def log_transaction_deleted(self, tx: Transaction, from_index: int) -> bool:
        return self.log(AuditEventBuilder.transaction_deleted(
            tx_id=tx.id,
            method=tx.method,
            amount=str(tx.amount),
            kind=tx.kind.value,
            from_index=from_index,
        ))

    def log_validation_failed(self, error: Exception) -> bool:
        """Record rejected input; OutOfRangeError carries no field, so it maps to 'date'."""
        issues = [issue.model_dump() for issue in getattr(error, "issues", [])]
        return self.log(AuditEventBuilder.validation_failed(
            field=getattr(error, "field", None) or "date",
            issues=issues or [{"message": str(error)}],
        ))

    def log_error(
        self,
        operation: str,
        error: Exception,
        details: Optional[dict] = None,
    ) -> bool:
        """Record a failed ledger operation."""
        return self.log(AuditEventBuilder.operation_failed(
            operation=operation,
            error_type=type(error).__name__,
            error_message=str(error),
            details=details,
        ))
