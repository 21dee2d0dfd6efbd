"""
Shared fixtures and journal data builders.

Builders return plain model instances with sensible defaults so each test
only spells out the fields it cares about. The store fixture points at a
fresh SQLite file under pytest's tmp_path.
"""

from __future__ import annotations

import random
from typing import Any

import pytest
from fastapi.testclient import TestClient

from tradejournal.api.webapp import app
from tradejournal.journal.models import Activity, Trade
from tradejournal.journal.progress_service import ProgressService
from tradejournal.journal.store import JournalStore


# ─────────────────────────────────────────────────────────
# Builders
# ─────────────────────────────────────────────────────────

def build_trade(**overrides: Any) -> Trade:
    """Closed long trade on 2024-01-02 with no notes unless overridden."""
    fields: dict[str, Any] = {
        "user_id": "u1",
        "symbol": "ES",
        "direction": "long",
        "strategy": "breakout",
        "quantity": 1,
        "entry_price": 100.0,
        "exit_price": 101.0,
        "entry_date": "2024-01-02",
        "exit_date": "2024-01-02",
        "pnl": 50.0,
        "status": "closed",
        "notes": "",
    }
    fields.update(overrides)
    return Trade(**fields)


def build_open_trade(**overrides: Any) -> Trade:
    fields: dict[str, Any] = {"exit_price": None, "exit_date": None, "pnl": None, "status": "open"}
    fields.update(overrides)
    return build_trade(**fields)


def build_activity(**overrides: Any) -> Activity:
    fields: dict[str, Any] = {
        "user_id": "u1",
        "activity_type": "backtest",
        "date": "2024-01-02",
        "notes": "Replayed last week's opening range",
    }
    fields.update(overrides)
    return Activity(**fields)


# ─────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────

@pytest.fixture
def make_trade():
    return build_trade


@pytest.fixture
def make_open_trade():
    return build_open_trade


@pytest.fixture
def make_activity():
    return build_activity


@pytest.fixture
def store(tmp_path) -> JournalStore:
    s = JournalStore(str(tmp_path / "journal.db"))
    yield s
    s.close()


@pytest.fixture
def service(store) -> ProgressService:
    return ProgressService(store, rng=random.Random(7))


@pytest.fixture
def client(store):
    app.state.store = store
    with TestClient(app) as c:
        yield c
    app.state.store = None
