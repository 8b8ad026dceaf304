"""
Main Orchestrator for Rex Ledger

This module ties together all the components and is the one object
the front end talks to:
1. Open (create the database and materialize snapshots on first use)
2. Mutate (register methods, add and delete transactions)
3. Read (point-in-time balances, per-transaction changes, month views)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Every mutation goes through the validator and one unit of work
- The month span stored in the database wins over the settings
- Every mutation is audited after it commits
"""

from datetime import date
from decimal import Decimal
from typing import Optional, Union

import structlog

from rexledger.audit import AuditLogger, configure_logging
from rexledger.config import AppSettings, LedgerSettings, get_settings
from rexledger.ledger import MethodRegistry, SnapshotEngine, SnapshotMismatch, TransactionStore
from rexledger.models.audit import AuditEvent, AuditEventBuilder
from rexledger.models.months import MonthSpan
from rexledger.models.transaction import Transaction, TransactionKind
from rexledger.queries import LedgerQueries
from rexledger.services.storage import (
    LedgerStorageInterface,
    SQLiteAuditStorage,
    SQLiteLedgerStorage,
)
from rexledger.validation import TransactionValidator

logger = structlog.get_logger(__name__)


class Ledger:
    """
    Facade over one ledger database.

    Components are exposed as attributes for callers that need more
    than the convenience methods:
        ledger.methods       MethodRegistry
        ledger.transactions  TransactionStore
        ledger.engine        SnapshotEngine
        ledger.queries       LedgerQueries
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        span: MonthSpan,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self.storage = storage
        self.audit = audit_logger or AuditLogger()
        self.engine = SnapshotEngine(storage, span)
        self.methods = MethodRegistry(storage, self.engine, self.audit)
        self.validator = TransactionValidator(span, self.methods.list)
        self.transactions = TransactionStore(storage, self.engine, self.validator, self.audit)
        self.queries = LedgerQueries(storage, self.engine, self.transactions)

    @property
    def span(self) -> MonthSpan:
        return self.engine.span

    @classmethod
    def open(
        cls,
        ledger_settings: Optional[LedgerSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ) -> "Ledger":
        """
        Open the ledger database, creating it on first use.

        A new database gets the schema, the configured default methods
        and an all-zero snapshot row set, in one unit of work.
        """
        ledger_settings = ledger_settings or get_settings().ledger
        path = ledger_settings.path
        path.parent.mkdir(parents=True, exist_ok=True)

        storage = SQLiteLedgerStorage(path, ledger_settings.busy_timeout_seconds)
        if audit_logger is None:
            audit_logger = AuditLogger(
                SQLiteAuditStorage(storage) if ledger_settings.audit_enabled else None
            )

        if storage.is_initialized():
            span = storage.load_span()
            if (span.start_year, span.years) != (ledger_settings.start_year, ledger_settings.years):
                logger.warning(
                    "ledger_span_differs_from_settings",
                    stored_start_year=span.start_year,
                    stored_years=span.years,
                    configured_start_year=ledger_settings.start_year,
                    configured_years=ledger_settings.years,
                )
        else:
            span = MonthSpan(start_year=ledger_settings.start_year, years=ledger_settings.years)
            cls._create(storage, span, ledger_settings.default_methods_list, audit_logger, str(path))

        ledger = cls(storage, span, audit_logger)
        count = ledger.transactions.count()
        logger.info(
            "ledger_opened",
            path=str(path),
            start_year=span.start_year,
            years=span.years,
            transaction_count=count,
        )
        ledger.audit.log(AuditEventBuilder.ledger_opened(str(path), count))
        return ledger

    @staticmethod
    def _create(
        storage: LedgerStorageInterface,
        span: MonthSpan,
        methods: list[str],
        audit_logger: AuditLogger,
        database_path: str,
    ) -> None:
        engine = SnapshotEngine(storage, span)
        registry = MethodRegistry(storage, engine)

        with storage.unit_of_work() as conn:
            storage.create_schema(conn, span)
            for name in methods:
                registry.add_in(conn, name)

        logger.info(
            "ledger_created",
            start_year=span.start_year,
            years=span.years,
            methods=methods,
        )
        audit_logger.log(AuditEventBuilder.ledger_created(
            database_path=database_path,
            start_year=span.start_year,
            years=span.years,
            methods=methods,
        ))

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def register_method(self, name: str) -> str:
        return self.methods.register(name)

    def add(
        self,
        tx_date: Union[str, date],
        details: str,
        method: str,
        amount: Union[str, int, Decimal],
        kind: Union[str, TransactionKind],
        tags: str = "",
    ) -> int:
        return self.transactions.add(tx_date, details, method, amount, kind, tags)

    def delete(self, tx_id: int) -> Transaction:
        return self.transactions.delete(tx_id)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def list_methods(self) -> list[str]:
        return self.methods.list()

    def get(self, tx_id: int) -> Transaction:
        return self.transactions.get(tx_id)

    def balance_as_of(self, month_index: int) -> dict[str, Decimal]:
        return self.engine.balance_as_of(month_index)

    def balance_as_of_month(self, year: int, month: int) -> dict[str, Decimal]:
        return self.engine.balance_as_of_month(year, month)

    def all_time_balance(self) -> dict[str, Decimal]:
        return self.engine.all_time_balance()

    def changes_for(self, tx_id: Optional[int]) -> dict[str, Decimal]:
        return self.engine.changes_for(tx_id)

    def check_consistency(self) -> list[SnapshotMismatch]:
        return self.engine.check_consistency()

    def recent_activity(self, limit: int = 20) -> list[AuditEvent]:
        """Most recent audit events, newest first. Empty without audit storage."""
        if self.audit.storage is None:
            return []
        return self.audit.storage.get_recent_events(limit)


def create_ledger(
    ledger_settings: Optional[LedgerSettings] = None,
    app_settings: Optional[AppSettings] = None,
) -> Ledger:
    """
    Factory used by the front end at startup.

    Configures logging from the app settings, then opens the ledger.
    """
    settings = get_settings()
    app_settings = app_settings or settings.app
    configure_logging(app_settings.log_level, app_settings.log_json)
    return Ledger.open(ledger_settings or settings.ledger)
