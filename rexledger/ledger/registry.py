"""
Method Registry

The ordered set of transaction methods (Cash, Bank, Card, ...).
Append-only: a method can be registered but never removed, since its
snapshot history would be orphaned.
"""

from typing import Optional

import structlog

from rexledger.audit import AuditLogger
from rexledger.exceptions import DuplicateError, ValidationError
from rexledger.ledger.engine import SnapshotEngine
from rexledger.models.transaction import TRANSFER_SEPARATOR, ValidationIssue, breaks_transfer_syntax
from rexledger.services.storage.interface import LedgerStorageInterface

logger = structlog.get_logger(__name__)

MAX_METHOD_NAME_LENGTH = 50


def check_method_name(name: str) -> str:
    """
    Validate and normalize a method name.

    Raises:
        ValidationError: field 'method'
    """
    cleaned = name.strip() if isinstance(name, str) else ""
    problem = None
    if not cleaned:
        problem = "Method name cannot be empty"
    elif breaks_transfer_syntax(cleaned):
        problem = (
            f"Method name cannot contain '{TRANSFER_SEPARATOR.strip()}' as a separate word "
            "at its start, its end or surrounded by spaces"
        )
    elif len(cleaned) > MAX_METHOD_NAME_LENGTH:
        problem = f"Method name cannot be longer than {MAX_METHOD_NAME_LENGTH} characters"

    if problem:
        raise ValidationError(
            problem,
            field="method",
            issues=[ValidationIssue(
                field="method",
                issue_type="invalid_value",
                message=problem,
                severity="error",
            )],
        )
    return cleaned


class MethodRegistry:
    """Registered transaction methods, in registration order."""

    def __init__(
        self,
        storage: LedgerStorageInterface,
        engine: SnapshotEngine,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._engine = engine
        self._audit = audit_logger

    def list(self) -> list[str]:
        """Method names in registration order."""
        with self._storage.read() as conn:
            rows = conn.execute("SELECT name FROM tx_methods ORDER BY position").fetchall()
        return [row["name"] for row in rows]

    def contains(self, name: str) -> bool:
        with self._storage.read() as conn:
            row = conn.execute(
                "SELECT 1 FROM tx_methods WHERE name = ?", (name,)
            ).fetchone()
        return row is not None

    def add_in(self, conn, name: str) -> int:
        """
        Register a method on an open unit of work.

        Inserts the name and extends every snapshot row with a zero
        cell for it. Returns the method's position.
        """
        name = check_method_name(name)
        if conn.execute("SELECT 1 FROM tx_methods WHERE name = ?", (name,)).fetchone():
            raise DuplicateError(f"Transaction method '{name}' already exists")

        cursor = conn.execute("INSERT INTO tx_methods (name) VALUES (?)", (name,))
        self._engine.extend_method(conn, name)
        return cursor.lastrowid

    def register(self, name: str) -> str:
        """
        Register a new method.

        Raises:
            ValidationError: If the name is empty or would break "A to B"
            DuplicateError: If the method already exists

        Returns the normalized name.
        """
        name = check_method_name(name)
        try:
            with self._storage.unit_of_work() as conn:
                position = self.add_in(conn, name)
        except DuplicateError:
            logger.warning("method_already_registered", method=name)
            raise

        logger.info("method_registered", method=name, position=position)
        if self._audit:
            self._audit.log_method_registered(name, position)
        return name
