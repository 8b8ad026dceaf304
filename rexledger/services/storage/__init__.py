"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Currently implements SQLite as the backend, but designed to be swappable.
"""

from rexledger.services.storage.interface import (
    AuditStorageInterface,
    DatabaseConnectionError,
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
)
from rexledger.services.storage.sqlite import (
    SQLiteAuditStorage,
    SQLiteLedgerStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "LedgerStorageInterface",
    # Exceptions
    "DatabaseConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # SQLite implementation
    "SQLiteAuditStorage",
    "SQLiteLedgerStorage",
]
