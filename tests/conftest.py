"""
Pytest fixtures for Veritas tests. Uses a temporary SQLite DB and a controllable clock.
"""

from __future__ import annotations

import pytest
from solders.keypair import Keypair

START_TS = 1_700_000_000


class FakeClock:
    """Callable clock for store and extractor; advance() or set() to move time."""

    def __init__(self, start: float = START_TS) -> None:
        self.now = float(start)

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def set(self, value: float) -> None:
        self.now = float(value)


def _new_identity() -> str:
    return str(Keypair().pubkey())


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def db(tmp_path, clock):
    """Fresh Database on a temp SQLite file, driven by the fake clock."""
    from backend_veritas.database import get_database

    return get_database(tmp_path / "veritas.db", clock=clock)


@pytest.fixture
def authority() -> str:
    return _new_identity()


@pytest.fixture
def identity() -> str:
    return _new_identity()


@pytest.fixture
def new_identity():
    """Factory for fresh valid Solana addresses."""
    return _new_identity
