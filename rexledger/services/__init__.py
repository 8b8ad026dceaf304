"""Services package."""

from rexledger.services.storage import (
    AuditStorageInterface,
    DatabaseConnectionError,
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
    SQLiteAuditStorage,
    SQLiteLedgerStorage,
    StorageError,
)

__all__ = [
    # Storage services
    "AuditStorageInterface",
    "DatabaseConnectionError",
    "DuplicateError",
    "LedgerStorageInterface",
    "NotFoundError",
    "SQLiteAuditStorage",
    "SQLiteLedgerStorage",
    "StorageError",
]
