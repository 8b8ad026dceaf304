"""
SQLite Storage Implementation

DESIGN DECISION: The ledger lives in one local SQLite file because:
1. Single user, single process, no server to run
2. Real transactions, so a cascade is all-or-nothing
3. Foreign keys with ON DELETE CASCADE for the change log

LAYOUT:
- tx_methods:  registered methods, `position` gives the display order
- tx_all:      the transaction log, AUTOINCREMENT ids are never reused
- changes_all: per-transaction signed delta per method (cascade deleted)
- balance_all: one cell per (month_index, method), cumulative balance
- ledger_meta: month span fixed at creation
- audit_log:   append-only audit trail

Balances are stored one method per row rather than one column per
method, so registering a method is an INSERT and method names never
appear in SQL text. All money columns hold integer cents; a balance
that overflows to REAL fails its CHECK and rolls the unit of work back.

A connection is opened per unit of work; the path must be a file,
not ":memory:".
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Union

import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from rexledger.models.months import MonthSpan
from rexledger.models.audit import AUDIT_COLUMNS, AuditEvent
from rexledger.services.storage.interface import (
    AuditStorageInterface,
    DatabaseConnectionError,
    LedgerStorageInterface,
    StorageError,
)

logger = structlog.get_logger(__name__)


SCHEMA_SQL = """
CREATE TABLE ledger_meta (
    key TEXT NOT NULL PRIMARY KEY,
    value TEXT NOT NULL
);

CREATE TABLE tx_methods (
    position INTEGER NOT NULL PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE
);

CREATE TABLE tx_all (
    id_num INTEGER NOT NULL PRIMARY KEY AUTOINCREMENT,
    date TEXT NOT NULL,
    details TEXT NOT NULL DEFAULT '',
    tx_method TEXT NOT NULL,
    amount_cents INTEGER NOT NULL CHECK (amount_cents > 0),
    tx_type TEXT NOT NULL CHECK (tx_type IN ('Income', 'Expense', 'Transfer')),
    tags TEXT NOT NULL DEFAULT 'Unknown'
);

CREATE INDEX tx_all_date_IDX ON tx_all (date, id_num);

CREATE TABLE changes_all (
    id_num INTEGER NOT NULL,
    method TEXT NOT NULL,
    delta_cents INTEGER NOT NULL,
    PRIMARY KEY (id_num, method),
    CONSTRAINT changes_all_FK FOREIGN KEY (id_num)
        REFERENCES tx_all (id_num) ON DELETE CASCADE,
    CONSTRAINT changes_all_method_FK FOREIGN KEY (method)
        REFERENCES tx_methods (name)
);

CREATE TABLE balance_all (
    month_index INTEGER NOT NULL,
    method TEXT NOT NULL,
    balance_cents INTEGER NOT NULL DEFAULT 0
        CHECK (typeof(balance_cents) = 'integer'),
    PRIMARY KEY (month_index, method),
    CONSTRAINT balance_all_method_FK FOREIGN KEY (method)
        REFERENCES tx_methods (name)
);

CREATE TABLE audit_log (
    event_id TEXT NOT NULL PRIMARY KEY,
    timestamp TEXT NOT NULL,
    event_type TEXT NOT NULL,
    severity TEXT NOT NULL,
    entity_type TEXT,
    entity_id TEXT,
    description TEXT NOT NULL,
    details_json TEXT,
    error_message TEXT
);

CREATE INDEX audit_log_entity_IDX ON audit_log (entity_type, entity_id);
"""

META_START_YEAR = "start_year"
META_YEARS = "years"
META_SCHEMA_VERSION = "schema_version"
SCHEMA_VERSION = "1"


class SQLiteLedgerStorage(LedgerStorageInterface):
    """
    SQLite implementation of the ledger storage.

    Handles connection setup, retries on open, and translation of
    sqlite3 errors into the ledger's StorageError family.
    """

    def __init__(
        self,
        database_path: Union[str, Path],
        busy_timeout_seconds: float = 10.0,
    ):
        self._path = Path(database_path)
        self._timeout = busy_timeout_seconds

    @property
    def path(self) -> Path:
        return self._path

    @retry(
        retry=retry_if_exception_type(sqlite3.OperationalError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
        reraise=True,
    )
    def _open(self) -> sqlite3.Connection:
        # isolation_level=None: transactions are started explicitly
        conn = sqlite3.connect(
            str(self._path),
            timeout=self._timeout,
            isolation_level=None,
        )
        try:
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
        except sqlite3.Error:
            conn.close()
            raise
        return conn

    def _connect(self) -> sqlite3.Connection:
        """Open a connection, translating failures."""
        try:
            return self._open()
        except sqlite3.Error as e:
            logger.error("database_open_failed", path=str(self._path), error=str(e))
            raise DatabaseConnectionError(
                f"Could not open ledger database at {self._path}: {e}"
            ) from e

    @staticmethod
    def _rollback(conn: sqlite3.Connection) -> None:
        if conn.in_transaction:
            try:
                conn.rollback()
            except sqlite3.Error as e:
                logger.error("rollback_failed", error=str(e))

    @contextmanager
    def unit_of_work(self) -> Iterator[sqlite3.Connection]:
        """
        Context manager for one atomic write.

        Usage:
            with storage.unit_of_work() as conn:
                conn.execute("INSERT INTO tx_all ...")
                conn.execute("UPDATE balance_all ...")

        BEGIN IMMEDIATE takes the write lock up front so readers never
        see a partial cascade.
        """
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            yield conn
            conn.execute("COMMIT")
        except sqlite3.IntegrityError as e:
            self._rollback(conn)
            logger.error("database_integrity_error", error=str(e))
            raise StorageError(f"Data integrity violation: {e}") from e
        except sqlite3.Error as e:
            self._rollback(conn)
            logger.error("database_error", error=str(e))
            raise StorageError(f"Database operation failed: {e}") from e
        except Exception:
            self._rollback(conn)
            raise
        finally:
            conn.close()

    @contextmanager
    def read(self) -> Iterator[sqlite3.Connection]:
        """Context manager for read-only access."""
        conn = self._connect()
        try:
            yield conn
        except sqlite3.Error as e:
            logger.error("database_read_failed", error=str(e))
            raise StorageError(f"Database read failed: {e}") from e
        finally:
            conn.close()

    def is_initialized(self) -> bool:
        if not self._path.exists():
            return False
        with self.read() as conn:
            row = conn.execute(
                "SELECT name FROM sqlite_master WHERE type = 'table' AND name = 'ledger_meta'"
            ).fetchone()
        return row is not None

    def create_schema(self, conn: sqlite3.Connection, span: MonthSpan) -> None:
        # executescript would COMMIT the open transaction, so run statements one by one
        for statement in SCHEMA_SQL.split(";"):
            if statement.strip():
                conn.execute(statement)
        conn.executemany(
            "INSERT INTO ledger_meta (key, value) VALUES (?, ?)",
            [
                (META_START_YEAR, str(span.start_year)),
                (META_YEARS, str(span.years)),
                (META_SCHEMA_VERSION, SCHEMA_VERSION),
            ],
        )
        logger.info(
            "ledger_schema_created",
            path=str(self._path),
            start_year=span.start_year,
            years=span.years,
        )

    def load_span(self) -> MonthSpan:
        with self.read() as conn:
            meta = {
                row["key"]: row["value"]
                for row in conn.execute("SELECT key, value FROM ledger_meta")
            }
        try:
            return MonthSpan(
                start_year=int(meta[META_START_YEAR]),
                years=int(meta[META_YEARS]),
            )
        except (KeyError, ValueError) as e:
            raise StorageError(f"Ledger metadata is missing or corrupt: {e}") from e


class SQLiteAuditStorage(AuditStorageInterface):
    """
    Audit trail stored in the ledger database's audit_log table.

    Each event is written in its own unit of work, after the ledger
    mutation it describes has committed.
    """

    def __init__(self, storage: SQLiteLedgerStorage):
        self._storage = storage

    def append_event(self, event: AuditEvent) -> bool:
        placeholders = ", ".join("?" for _ in AUDIT_COLUMNS)
        columns = ", ".join(AUDIT_COLUMNS)
        with self._storage.unit_of_work() as conn:
            conn.execute(
                f"INSERT INTO audit_log ({columns}) VALUES ({placeholders})",
                event.to_row(),
            )
        return True

    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        with self._storage.read() as conn:
            rows = conn.execute(
                "SELECT * FROM audit_log WHERE entity_type = ? AND entity_id = ? "
                "ORDER BY timestamp, rowid",
                (entity_type, entity_id),
            ).fetchall()
        return [AuditEvent.from_row(row) for row in rows]

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        with self._storage.read() as conn:
            rows = conn.execute(
                "SELECT * FROM audit_log ORDER BY timestamp DESC, rowid DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [AuditEvent.from_row(row) for row in rows]
