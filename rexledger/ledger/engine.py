"""
Ledger Snapshot Engine

Keeps balance_all consistent with tx_all and changes_all.

balance_all holds, for every method, the cumulative balance as of the
end of each month row 1..M, plus the all-time total at M + 1. A
transaction dated in month m therefore shifts rows m..M+1 and nothing
before m. Insertion adds its deltas over that range, deletion subtracts
exactly the same deltas over exactly the same range.

RULES:
1. Only this module writes to balance_all
2. Every write happens on a connection handed out by a unit of work;
   the engine never commits
3. All arithmetic is on integer cents
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Optional

import structlog
from pydantic import BaseModel

from rexledger.exceptions import StorageError
from rexledger.models.months import OPENING_INDEX, MonthSpan
from rexledger.models.money import from_cents
from rexledger.models.transaction import Transaction
from rexledger.services.storage.interface import LedgerStorageInterface

logger = structlog.get_logger(__name__)


class SnapshotMismatch(BaseModel):
    """One snapshot cell that disagrees with the change log."""

    month_index: int
    method: str
    stored: Decimal
    expected: Decimal


class SnapshotEngine:
    """
    Propagation and reversal of transaction deltas over monthly snapshots.

    Point-in-time reads are O(1): one row per method at one index.
    """

    def __init__(self, storage: LedgerStorageInterface, span: MonthSpan):
        self._storage = storage
        self._span = span

    @property
    def span(self) -> MonthSpan:
        return self._span

    # -------------------------------------------------------------------------
    # Snapshot table lifecycle
    # -------------------------------------------------------------------------

    def materialize(self, conn, methods: list[str]) -> None:
        """Create the all-zero snapshot rows for a new ledger."""
        for name in methods:
            self.extend_method(conn, name)

    def extend_method(self, conn, name: str) -> None:
        """
        Add a zero cell for `name` to every month row and the terminal row.

        The method must already be in tx_methods and must not have any
        snapshot cells yet.
        """
        existing = conn.execute(
            "SELECT COUNT(*) FROM balance_all WHERE method = ?", (name,)
        ).fetchone()[0]
        if existing:
            raise StorageError(f"Snapshot cells for method '{name}' already exist")

        conn.executemany(
            "INSERT INTO balance_all (month_index, method, balance_cents) VALUES (?, ?, 0)",
            [(index, name) for index in range(1, self._span.terminal_index + 1)],
        )
        logger.debug(
            "snapshot_method_extended",
            method=name,
            rows=self._span.terminal_index,
        )

    # -------------------------------------------------------------------------
    # Propagation / reversal
    # -------------------------------------------------------------------------

    def _apply(self, conn, deltas: dict[str, int], from_index: int) -> None:
        """
        Add each method's delta to every row from `from_index` through
        the terminal row. One UPDATE per touched method.

        A sum outside the 64-bit range violates the balance_all CHECK;
        the unit of work turns that into StorageError.
        """
        expected_rows = self._span.terminal_index - from_index + 1

        for method, delta in deltas.items():
            if delta == 0:
                continue
            cursor = conn.execute(
                "UPDATE balance_all SET balance_cents = balance_cents + ? "
                "WHERE method = ? AND month_index >= ?",
                (delta, method, from_index),
            )
            if cursor.rowcount != expected_rows:
                raise StorageError(
                    f"Snapshot rows for method '{method}' are incomplete: "
                    f"updated {cursor.rowcount} of {expected_rows}"
                )

    def propagate(self, conn, tx: Transaction) -> int:
        """
        Apply a newly inserted transaction to the snapshots.

        Records the applied deltas in changes_all and returns the month
        index the cascade started from.

        Raises:
            OutOfRangeError: If the transaction date is outside the span
        """
        from_index = self._span.index_for(tx.date)
        deltas = tx.deltas()

        self._apply(conn, deltas, from_index)
        conn.executemany(
            "INSERT INTO changes_all (id_num, method, delta_cents) VALUES (?, ?, ?)",
            [(tx.id, method, delta) for method, delta in deltas.items()],
        )

        logger.debug(
            "cascade_applied",
            tx_id=tx.id,
            from_index=from_index,
            deltas=deltas,
        )
        return from_index

    def reverse(self, conn, tx: Transaction) -> int:
        """
        Undo a transaction's effect on the snapshots.

        The deltas are recomputed from the stored transaction and must
        match what was recorded in changes_all when it was inserted.
        The caller removes the transaction row; its change row goes
        with it through the foreign key cascade.

        Returns the month index the reversal started from.
        """
        from_index = self._span.index_for(tx.date)
        deltas = tx.deltas()

        recorded = {
            row["method"]: row["delta_cents"]
            for row in conn.execute(
                "SELECT method, delta_cents FROM changes_all WHERE id_num = ?",
                (tx.id,),
            )
        }
        if recorded != deltas:
            raise StorageError(
                f"Change log for transaction {tx.id} does not match the "
                f"transaction itself: {recorded} != {deltas}"
            )

        self._apply(conn, {method: -delta for method, delta in deltas.items()}, from_index)

        logger.debug(
            "cascade_reversed",
            tx_id=tx.id,
            from_index=from_index,
            deltas=deltas,
        )
        return from_index

    # -------------------------------------------------------------------------
    # Point-in-time queries
    # -------------------------------------------------------------------------

    def _read_row(self, conn, month_index: int) -> dict[str, Decimal]:
        rows = conn.execute(
            "SELECT m.name, COALESCE(b.balance_cents, 0) AS balance_cents "
            "FROM tx_methods m "
            "LEFT JOIN balance_all b ON b.method = m.name AND b.month_index = ? "
            "ORDER BY m.position",
            (month_index,),
        ).fetchall()
        return {row["name"]: from_cents(row["balance_cents"]) for row in rows}

    def balance_as_of(self, month_index: int, conn=None) -> dict[str, Decimal]:
        """
        Balance per method at the end of a month row.

        0 is the opening balance (all zero), M + 1 is the all-time row.

        Raises:
            OutOfRangeError: If the index is outside 0..M+1
        """
        self._span.check_index(month_index)
        if conn is not None:
            return self._balance_on(conn, month_index)
        with self._storage.read() as conn:
            return self._balance_on(conn, month_index)

    def _balance_on(self, conn, month_index: int) -> dict[str, Decimal]:
        if month_index == OPENING_INDEX:
            names = conn.execute("SELECT name FROM tx_methods ORDER BY position")
            return {row["name"]: Decimal("0.00") for row in names}
        return self._read_row(conn, month_index)

    def balance_as_of_month(self, year: int, month: int) -> dict[str, Decimal]:
        """Balance per method at the end of a calendar month."""
        return self.balance_as_of(self._span.month_index(year, month))

    def all_time_balance(self) -> dict[str, Decimal]:
        """Balance per method across every transaction (terminal row)."""
        return self.balance_as_of(self._span.terminal_index)

    def changes_for(self, tx_id: Optional[int], conn=None) -> dict[str, Decimal]:
        """
        Signed delta per method made by one transaction.

        An unknown id, or None for "nothing selected", gives all zeros.
        """
        if conn is not None:
            return self._changes_on(conn, tx_id)
        with self._storage.read() as conn:
            return self._changes_on(conn, tx_id)

    def _changes_on(self, conn, tx_id: Optional[int]) -> dict[str, Decimal]:
        rows = conn.execute(
            "SELECT m.name, COALESCE(c.delta_cents, 0) AS delta_cents "
            "FROM tx_methods m "
            "LEFT JOIN changes_all c ON c.method = m.name AND c.id_num = ? "
            "ORDER BY m.position",
            (tx_id if tx_id is not None else -1,),
        ).fetchall()
        return {row["name"]: from_cents(row["delta_cents"]) for row in rows}

    # -------------------------------------------------------------------------
    # Diagnostics
    # -------------------------------------------------------------------------

    def check_consistency(self) -> list[SnapshotMismatch]:
        """
        Recompute every snapshot cell from the change log and report
        the cells that disagree. An empty list means the snapshots are
        exact.
        """
        with self._storage.read() as conn:
            methods = [
                row["name"]
                for row in conn.execute("SELECT name FROM tx_methods ORDER BY position")
            ]
            monthly: dict[int, dict[str, int]] = defaultdict(lambda: defaultdict(int))
            for row in conn.execute(
                "SELECT t.date, c.method, c.delta_cents "
                "FROM changes_all c JOIN tx_all t ON t.id_num = c.id_num"
            ):
                index = self._span.index_for(date.fromisoformat(row["date"]))
                monthly[index][row["method"]] += row["delta_cents"]

            stored = {
                (row["month_index"], row["method"]): row["balance_cents"]
                for row in conn.execute(
                    "SELECT month_index, method, balance_cents FROM balance_all"
                )
            }

        mismatches = []
        running = {method: 0 for method in methods}
        for index in range(1, self._span.terminal_index + 1):
            if index <= self._span.total_months:
                for method, delta in monthly.get(index, {}).items():
                    running[method] += delta
            for method in methods:
                actual = stored.get((index, method))
                if actual != running[method]:
                    mismatches.append(SnapshotMismatch(
                        month_index=index,
                        method=method,
                        stored=from_cents(actual) if actual is not None else Decimal("0.00"),
                        expected=from_cents(running[method]),
                    ))

        if mismatches:
            logger.warning("snapshot_inconsistent", mismatch_count=len(mismatches))
        return mismatches
