"""
Ledger Queries

DESIGN DECISION: Month views are computed from stored data only.
The balance after each row of a month table is the snapshot of the
previous month plus the recorded changes of the rows so far; nothing
is re-summed from the whole transaction log.

All reads for one view share a single connection so the view is
consistent with itself.
"""

from collections import defaultdict
from decimal import Decimal

from rexledger.ledger.engine import SnapshotEngine
from rexledger.ledger.store import TransactionStore
from rexledger.models.money import from_cents
from rexledger.models.transaction import MonthTotals, Transaction, TransactionKind, TransactionRow
from rexledger.services.storage.interface import LedgerStorageInterface


class LedgerQueries:
    """
    Read-only month views for the front end.

    GUARANTEES:
    - Only returns real data from storage
    - An empty month gives an empty list / zero totals, never an error
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        engine: SnapshotEngine,
        store: TransactionStore,
    ):
        self._storage = storage
        self._engine = engine
        self._store = store

    def transactions_in_month(self, year: int, month: int) -> list[Transaction]:
        """Transactions dated in the month, by date then id."""
        return self._store.list_month(year, month)

    def month_rows(self, year: int, month: int) -> list[TransactionRow]:
        """
        The month table: each transaction with the change it made and
        the per-method balance right after it.
        """
        index = self._engine.span.month_index(year, month)

        with self._storage.read() as conn:
            transactions = self._store.list_month(year, month, conn=conn)
            running = self._engine.balance_as_of(index - 1, conn=conn)

            rows = []
            for tx in transactions:
                changes = self._engine.changes_for(tx.id, conn=conn)
                for method, delta in changes.items():
                    running[method] = running.get(method, Decimal("0.00")) + delta
                rows.append(TransactionRow(
                    transaction=tx,
                    balance_after=dict(running),
                    changes=changes,
                ))

        return rows

    def month_totals(self, year: int, month: int) -> MonthTotals:
        """
        Income and expense totals for a month.

        Transfers only move money between methods, so they count
        towards transaction_count but not towards either total.
        """
        index = self._engine.span.month_index(year, month)
        first, last = self._engine.span.bounds(index)

        with self._storage.read() as conn:
            rows = conn.execute(
                "SELECT tx_type, SUM(amount_cents) AS total, COUNT(*) AS n "
                "FROM tx_all WHERE date BETWEEN ? AND ? GROUP BY tx_type",
                (first.isoformat(), last.isoformat()),
            ).fetchall()

        totals: dict[str, int] = defaultdict(int)
        count = 0
        for row in rows:
            totals[row["tx_type"]] += row["total"]
            count += row["n"]

        return MonthTotals(
            year=year,
            month=month,
            income=from_cents(totals[TransactionKind.INCOME.value]),
            expense=from_cents(totals[TransactionKind.EXPENSE.value]),
            transaction_count=count,
        )
