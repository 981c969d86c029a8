"""Tests for the credential store and result history, against a stub pool."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from database.manager import CredentialNotFoundError, DatabaseManager
from diagnostics.models import DiagnosticResult, MismatchType

ENABLED = {"database": {"enabled": True, "host": "localhost", "port": 5432, "database": "ra2",
                        "username": "u", "password": "p"}}


class StubPool:
    """Minimal asyncpg pool: acquire() yields one shared connection."""

    def __init__(self):
        self.conn = MagicMock()
        self.conn.execute = AsyncMock(return_value="INSERT 0 1")
        self.conn.executemany = AsyncMock()
        self.conn.fetchrow = AsyncMock(return_value=None)
        self.conn.fetch = AsyncMock(return_value=[])
        self.close = AsyncMock()

    def acquire(self):
        return self

    async def __aenter__(self):
        return self.conn

    async def __aexit__(self, *exc_info):
        return False


@pytest.fixture
def db():
    manager = DatabaseManager(ENABLED)
    manager.pool = StubPool()
    return manager


@pytest.mark.asyncio
async def test_disabled_store_is_inert():
    manager = DatabaseManager({"database": {"enabled": False}})
    await manager.initialize()
    assert manager.pool is None
    assert await manager.save_credentials("h", "u", "p") is False
    assert await manager.retrieve_credentials("h", "u") is None
    assert await manager.credentials_exist("h", "u") is False
    assert await manager.get_recent_diagnostic_results() == []
    with pytest.raises(CredentialNotFoundError):
        await manager.get_credentials("h", "u")


@pytest.mark.asyncio
async def test_retrieve_credentials(db):
    db.pool.conn.fetchrow.return_value = {"host": "h", "username": "lutron", "password": "pw", "updated_at": None}
    assert await db.retrieve_credentials("h", "lutron") == "pw"
    assert await db.get_credentials("h", "lutron") == "pw"
    assert await db.credentials_exist("h", "lutron")


@pytest.mark.asyncio
async def test_missing_credentials(db):
    assert await db.retrieve_credentials("h", "lutron") is None
    with pytest.raises(CredentialNotFoundError) as excinfo:
        await db.get_credentials("h", "lutron")
    assert excinfo.value.host == "h"


@pytest.mark.asyncio
async def test_retrieve_failure_is_logged_and_none(db):
    db.pool.conn.fetchrow.side_effect = OSError("connection reset")
    assert await db.retrieve_credentials("h", "lutron") is None


@pytest.mark.asyncio
async def test_save_and_delete_credentials(db):
    assert await db.save_credentials("h", "lutron", "pw")
    args = db.pool.conn.execute.await_args.args
    assert args[1:] == ("h", "lutron", "pw")

    db.pool.conn.execute.return_value = "DELETE 1"
    assert await db.delete_credentials("h", "lutron")
    db.pool.conn.execute.return_value = "DELETE 0"
    assert not await db.delete_credentials("h", "lutron")


@pytest.mark.asyncio
async def test_store_diagnostic_results(db):
    results = [
        DiagnosticResult(mismatch_type=MismatchType.MISSING_FROM_RA2, details="x", homekit_device_name="Strip"),
        DiagnosticResult(mismatch_type=MismatchType.NAME_MISMATCH, details="y"),
    ]
    assert await db.store_diagnostic_results("run-1", results) == 2
    rows = db.pool.conn.executemany.await_args.args[1]
    assert rows[0][1:4] == ("run-1", "Missing from RA2", "x")


@pytest.mark.asyncio
async def test_store_nothing(db):
    assert await db.store_brightness_results("run-1", []) == 0
    db.pool.conn.executemany.assert_not_awaited()


@pytest.mark.asyncio
async def test_close(db):
    pool = db.pool
    await db.close()
    pool.close.assert_awaited_once()
    assert db.pool is None
