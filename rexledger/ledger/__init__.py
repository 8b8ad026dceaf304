"""
Ledger core: snapshot engine, method registry and transaction store.
"""

from rexledger.ledger.engine import SnapshotEngine, SnapshotMismatch
from rexledger.ledger.registry import MethodRegistry, check_method_name
from rexledger.ledger.store import TransactionStore

__all__ = [
    "MethodRegistry",
    "SnapshotEngine",
    "SnapshotMismatch",
    "TransactionStore",
    "check_method_name",
]
