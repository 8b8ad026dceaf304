"""
Rex Ledger - Source Package

A personal finance ledger that keeps per-method monthly balance
snapshots exactly in step with its transaction log.

DESIGN PRINCIPLES:
1. Integer cents below the API, Decimal above it
2. Fail early, fail visibly
3. No silent corrections
4. Every mutation is one unit of work and is audited
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Rex Ledger Team"
