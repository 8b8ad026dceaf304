"""
Transaction Store

Owns tx_all. Every add and delete runs in a single unit of work
together with the snapshot cascade, so the log, the change rows and
the snapshots either all change or none do.
"""

from datetime import date
from decimal import Decimal
from typing import Optional, Union

import structlog

from rexledger.audit import AuditLogger
from rexledger.exceptions import NotFoundError, OutOfRangeError, ValidationError
from rexledger.ledger.engine import SnapshotEngine
from rexledger.models.money import to_cents
from rexledger.models.transaction import Transaction, TransactionKind
from rexledger.services.storage.interface import LedgerStorageInterface
from rexledger.validation import TransactionValidator

logger = structlog.get_logger(__name__)

TX_COLUMNS = "id_num, date, details, tx_method, amount_cents, tx_type, tags"


class TransactionStore:
    """Append/delete access to the transaction log."""

    def __init__(
        self,
        storage: LedgerStorageInterface,
        engine: SnapshotEngine,
        validator: TransactionValidator,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._engine = engine
        self._validator = validator
        self._audit = audit_logger

    def add(
        self,
        tx_date: Union[str, date],
        details: str,
        method: str,
        amount: Union[str, int, Decimal],
        kind: Union[str, TransactionKind],
        tags: str = "",
    ) -> int:
        """
        Validate, store and propagate a new transaction.

        Returns the new transaction id. Nothing is written when
        validation fails.

        Raises:
            ValidationError: Malformed input, unknown method
            OutOfRangeError: Date outside the ledger's years
            StorageError: The unit of work failed and was rolled back
        """
        try:
            new_tx = self._validator.validate_or_raise(
                tx_date, details, method, amount, kind, tags
            )
        except (ValidationError, OutOfRangeError) as e:
            if self._audit:
                self._audit.log_validation_failed(e)
            raise

        try:
            with self._storage.unit_of_work() as conn:
                cursor = conn.execute(
                    "INSERT INTO tx_all (date, details, tx_method, amount_cents, tx_type, tags) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    (
                        new_tx.date.isoformat(),
                        new_tx.details,
                        new_tx.method,
                        to_cents(new_tx.amount),
                        new_tx.kind.value,
                        new_tx.tags,
                    ),
                )
                tx = Transaction(id=cursor.lastrowid, **new_tx.model_dump())
                from_index = self._engine.propagate(conn, tx)
        except Exception as e:
            logger.error("transaction_add_failed", method=new_tx.method, error=str(e))
            if self._audit:
                self._audit.log_error("add_transaction", e, {"method": new_tx.method})
            raise

        logger.info(
            "transaction_added",
            tx_id=tx.id,
            date=tx.date.isoformat(),
            method=tx.method,
            kind=tx.kind.value,
            from_index=from_index,
        )
        if self._audit:
            self._audit.log_transaction_added(tx, from_index)
        return tx.id

    def delete(self, tx_id: int) -> Transaction:
        """
        Reverse and remove a transaction.

        Returns the removed transaction.

        Raises:
            NotFoundError: No transaction with that id (including one
                that was already deleted)
        """
        try:
            with self._storage.unit_of_work() as conn:
                tx = self._get_on(conn, tx_id)
                from_index = self._engine.reverse(conn, tx)
                conn.execute("DELETE FROM tx_all WHERE id_num = ?", (tx_id,))
        except NotFoundError:
            logger.warning("transaction_not_found", tx_id=tx_id)
            raise
        except Exception as e:
            logger.error("transaction_delete_failed", tx_id=tx_id, error=str(e))
            if self._audit:
                self._audit.log_error("delete_transaction", e, {"tx_id": tx_id})
            raise

        logger.info("transaction_deleted", tx_id=tx_id, from_index=from_index)
        if self._audit:
            self._audit.log_transaction_deleted(tx, from_index)
        return tx

    @staticmethod
    def _get_on(conn, tx_id: int) -> Transaction:
        row = conn.execute(
            f"SELECT {TX_COLUMNS} FROM tx_all WHERE id_num = ?", (tx_id,)
        ).fetchone()
        if row is None:
            raise NotFoundError(f"Transaction {tx_id} does not exist")
        return Transaction.from_row(row)

    def get(self, tx_id: int) -> Transaction:
        """Raises NotFoundError for unknown ids."""
        with self._storage.read() as conn:
            return self._get_on(conn, tx_id)

    def list_month(self, year: int, month: int, conn=None) -> list[Transaction]:
        """Transactions dated in a calendar month, by date then id."""
        first, last = self._engine.span.bounds(self._engine.span.month_index(year, month))
        query = (
            f"SELECT {TX_COLUMNS} FROM tx_all WHERE date BETWEEN ? AND ? "
            "ORDER BY date, id_num"
        )
        params = (first.isoformat(), last.isoformat())
        if conn is not None:
            rows = conn.execute(query, params).fetchall()
        else:
            with self._storage.read() as conn:
                rows = conn.execute(query, params).fetchall()
        return [Transaction.from_row(row) for row in rows]

    def count(self) -> int:
        with self._storage.read() as conn:
            return conn.execute("SELECT COUNT(*) FROM tx_all").fetchone()[0]
