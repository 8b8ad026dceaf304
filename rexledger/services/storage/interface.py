"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep the snapshot engine free of connection handling
2. Use a throwaway database file per test
3. Swap SQLite for another embedded store later

The interface is intentionally small. The ledger components run their
own SQL against the connection a unit of work hands them; the storage
backend owns opening, schema creation, atomicity and error translation.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Any

from rexledger.exceptions import (
    DatabaseConnectionError,
    DuplicateError,
    NotFoundError,
    StorageError,
)
from rexledger.models.months import MonthSpan
from rexledger.models.audit import AuditEvent


class LedgerStorageInterface(ABC):
    """
    Abstract interface for the ledger database.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    def is_initialized(self) -> bool:
        """
        Check whether the ledger schema exists.

        Returns:
            True if the database holds a ledger
        """
        pass

    @abstractmethod
    def unit_of_work(self) -> AbstractContextManager[Any]:
        """
        Open an all-or-nothing write transaction.

        Yields a connection. Everything executed on it is committed when
        the block exits normally and rolled back when it raises.

        Raises:
            StorageError: If the database fails mid-transaction
            DatabaseConnectionError: If the database cannot be opened
        """
        pass

    @abstractmethod
    def read(self) -> AbstractContextManager[Any]:
        """
        Open a read-only connection.

        Raises:
            DatabaseConnectionError: If the database cannot be opened
        """
        pass

    @abstractmethod
    def create_schema(self, conn: Any, span: MonthSpan) -> None:
        """
        Create all ledger tables and record the month span.

        Must run inside a unit of work. Does not create snapshot rows;
        those belong to the snapshot engine.
        """
        pass

    @abstractmethod
    def load_span(self) -> MonthSpan:
        """
        Read the month span fixed at creation time.

        Raises:
            StorageError: If the ledger metadata is missing
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Args:
            event: The audit event to log

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Args:
            entity_type: Type of entity (e.g., 'transaction', 'method')
            entity_id: The entity's ID

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Args:
            limit: Maximum number of events to return

        Returns:
            List of recent events (newest first)
        """
        pass


__all__ = [
    "AuditStorageInterface",
    "DatabaseConnectionError",
    "DuplicateError",
    "LedgerStorageInterface",
    "NotFoundError",
    "StorageError",
]
