"""Test fixtures for OneHitter storage and engine tests."""

import os
import tempfile
import uuid

import pytest
import pytest_asyncio

from onehitter import OneHitter, OneHitterConfig
from onehitter.db import create_engine, ensure_schema

TEST_PEPPER = "test-pepper-not-for-production"

# If DATABASE_URL=sqlite (the default), auto-create a temp file for the test session.
# For PostgreSQL, use the URL as-is.
_raw_url = os.environ.get("DATABASE_URL", "sqlite")

_sqlite_tmp = None
if _raw_url.startswith("sqlite"):
    _sqlite_tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
    _sqlite_tmp.close()
    TEST_DATABASE_URL = f"sqlite+aiosqlite:///{_sqlite_tmp.name}"
else:
    TEST_DATABASE_URL = _raw_url


@pytest.fixture(scope="session", autouse=True)
def _cleanup_sqlite():
    """Delete the temp SQLite file after all tests finish."""
    yield
    if _sqlite_tmp is not None and os.path.exists(_sqlite_tmp.name):
        os.remove(_sqlite_tmp.name)


@pytest_asyncio.fixture
async def durable_engine():
    """Caller-owned engine used as the durable storage handle."""
    engine = create_engine(TEST_DATABASE_URL)
    await ensure_schema(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def onehitter():
    """Engine configured for the durable driver (pass handle= on every call)."""
    instance = OneHitter(OneHitterConfig(pepper=TEST_PEPPER))
    yield instance
    await instance.dispose()


@pytest_asyncio.fixture
async def embedded_onehitter():
    """Engine with its own in-memory embedded store."""
    instance = OneHitter(OneHitterConfig(pepper=TEST_PEPPER, driver="embedded"))
    yield instance
    await instance.dispose()


def unique_contact() -> str:
    """Generate a unique contact for each test to avoid conflicts."""
    return f"test-{uuid.uuid4().hex[:8]}@example.com"
