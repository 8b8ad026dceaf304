"""
Shared fixtures.

Every test gets its own ledger file under tmp_path; nothing touches the
working directory or the network.
"""

import pytest

from rexledger.config import LedgerSettings
from rexledger.orchestrator import Ledger


@pytest.fixture
def make_settings(tmp_path):
    """Build LedgerSettings for a fresh database file under tmp_path."""

    def _make(name: str = "data.sqlite", **overrides) -> LedgerSettings:
        values = {
            "database_path": str(tmp_path / name),
            "start_year": 2022,
            "years": 4,
            "default_methods": "Cash,Bank",
        }
        values.update(overrides)
        return LedgerSettings(**values)

    return _make


@pytest.fixture
def make_ledger(make_settings):
    """Open a ledger on a fresh database file; extra kwargs go to the settings."""

    def _make(name: str = "data.sqlite", **overrides) -> Ledger:
        return Ledger.open(make_settings(name, **overrides))

    return _make


@pytest.fixture
def ledger(make_ledger):
    """Ledger with Cash and Bank covering 2022-2025."""
    return make_ledger()


@pytest.fixture
def test_ledger(make_ledger):
    """Ledger with the method names 'test1' and 'test 2'."""
    return make_ledger("test.sqlite", default_methods="test1,test 2")
