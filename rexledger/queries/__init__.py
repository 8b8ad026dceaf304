"""Query execution package."""

from rexledger.queries.executor import LedgerQueries

__all__ = ["LedgerQueries"]
