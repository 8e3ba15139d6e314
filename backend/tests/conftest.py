"""Pytest configuration and fixtures for ProductTrace tests.

Every test gets its own SQLite database file, so nothing leaks between tests
and reads really go through a second session.
"""

from datetime import datetime, timedelta
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine

from producttrace.auth.jwt import create_access_token
from producttrace.database import build_engine, build_sessionmaker, create_tables
from producttrace.main import create_app
from producttrace.services.ledger import SupplyChainLedger
from producttrace.services.notifier import RecordingNotifier

ADMIN = "0x" + "a" * 40
PRODUCER = "0x" + "b" * 40
OUTSIDER = "0x" + "c" * 40


class SteppingClock:
    """Wall clock stand-in: one second later on every call, rewindable."""

    def __init__(self, start: datetime = datetime(2024, 3, 1, 8, 0, 0)):
        self.current = start

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current

    def rewind(self, seconds: int) -> None:
        self.current -= timedelta(seconds=seconds)


# ── Test Database Setup ──────────────────────────────────────────

@pytest_asyncio.fixture
async def test_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh database file with every ledger table."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    await create_tables(engine)

    yield engine

    await engine.dispose()


@pytest.fixture
def clock() -> SteppingClock:
    return SteppingClock()


@pytest.fixture
def recorder() -> RecordingNotifier:
    return RecordingNotifier()


@pytest_asyncio.fixture
async def empty_ledger(test_engine, recorder, clock) -> SupplyChainLedger:
    """Ledger with no administrator yet."""
    return SupplyChainLedger(
        build_sessionmaker(test_engine),
        notifiers=[recorder],
        clock=clock,
    )


@pytest_asyncio.fixture
async def ledger(empty_ledger, recorder) -> SupplyChainLedger:
    """Bootstrapped ledger: ADMIN administers, PRODUCER is authorized.

    Notifications from the setup are cleared.
    """
    await empty_ledger.bootstrap(ADMIN)
    await empty_ledger.add_producer(ADMIN, PRODUCER)
    recorder.clear()
    return empty_ledger


@pytest_asyncio.fixture
async def client(ledger) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the test ledger (no lifespan, no real database)."""
    app = create_app(ledger=ledger)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


# ── Auth Fixtures ────────────────────────────────────────────────

def bearer(identity: str) -> dict:
    return {"Authorization": f"Bearer {create_access_token(identity)}"}


@pytest.fixture
def admin_headers() -> dict:
    return bearer(ADMIN)


@pytest.fixture
def auth_headers() -> dict:
    """Headers for the authorized PRODUCER."""
    return bearer(PRODUCER)


@pytest.fixture
def outsider_headers() -> dict:
    return bearer(OUTSIDER)


# ── Test Data Helpers ────────────────────────────────────────────

async def make_raw(
    ledger: SupplyChainLedger,
    quantity: int = 100,
    owner: str = PRODUCER,
    name: str = "Cane sugar",
    source: str = "Farm A",
):
    return await ledger.create_product(
        owner,
        name=name,
        source=source,
        quality="A",
        initial_quantity=quantity,
        pickup_time_manual="2024-03-01 07:30",
    )


# ── Test Markers ─────────────────────────────────────────────────

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "api: HTTP API tests")
    config.addinivalue_line("markers", "integration: Integration tests")
