"""Tests for transaction helpers and driver error conversion."""

import sys
from unittest.mock import AsyncMock, MagicMock

import pytest

sys.path.insert(0, str(__file__).rsplit("/tests", 1)[0])

from src.telroute.common.database import (
    check_database_health,
    convert_db_exception,
    database_transaction,
)
from src.telroute.common.exceptions import (
    ConnectionPoolError,
    DuplicateKeyError,
    IntegrityError,
    NotFoundError,
    StoreUnavailable,
    TransactionError,
)


class FakeDriverError(Exception):
    def __init__(self, message, sqlstate=None, constraint_name=None):
        super().__init__(message)
        self.sqlstate = sqlstate
        self.constraint_name = constraint_name


def _mock_pool():
    transaction = MagicMock()
    transaction.start = AsyncMock()
    transaction.commit = AsyncMock()
    transaction.rollback = AsyncMock()

    conn = MagicMock()
    conn.transaction.return_value = transaction
    conn.fetchval = AsyncMock(return_value=1)

    pool = MagicMock()
    pool.acquire = AsyncMock(return_value=conn)
    pool.release = AsyncMock()
    pool.get_size.return_value = 4
    pool.get_idle_size.return_value = 3
    return pool, conn, transaction


class TestConvertDbException:
    """Tests for convert_db_exception."""

    def test_unique_violation(self):
        error = convert_db_exception(
            FakeDriverError("violates constraint", sqlstate="23505", constraint_name="route_hops_node_port_key")
        )
        assert isinstance(error, DuplicateKeyError)
        assert error.details["key"] == "route_hops_node_port_key"

    def test_foreign_key(self):
        error = convert_db_exception(FakeDriverError("fk", sqlstate="23503"))
        assert isinstance(error, IntegrityError)
        assert not isinstance(error, DuplicateKeyError)

    def test_deadlock(self):
        assert isinstance(convert_db_exception(Exception("deadlock detected")), TransactionError)

    def test_other_errors(self):
        error = convert_db_exception(Exception("connection reset"))
        assert type(error) is StoreUnavailable
        assert error.code == "STORE_UNAVAILABLE"

    def test_domain_error_passes_through(self):
        original = NotFoundError("gone")
        assert convert_db_exception(original) is original


class TestDatabaseTransaction:
    """Tests for database_transaction."""

    @pytest.mark.asyncio
    async def test_commit(self):
        pool, conn, transaction = _mock_pool()

        async with database_transaction(pool) as c:
            assert c is conn

        transaction.commit.assert_awaited_once()
        transaction.rollback.assert_not_awaited()
        pool.release.assert_awaited_once_with(conn)

    @pytest.mark.asyncio
    async def test_rollback_and_convert(self):
        pool, conn, transaction = _mock_pool()

        with pytest.raises(DuplicateKeyError):
            async with database_transaction(pool):
                raise FakeDriverError("duplicate key value", sqlstate="23505")

        transaction.rollback.assert_awaited_once()
        transaction.commit.assert_not_awaited()
        pool.release.assert_awaited_once_with(conn)

    @pytest.mark.asyncio
    async def test_no_pool(self):
        with pytest.raises(ConnectionPoolError):
            async with database_transaction(None):
                pass

    @pytest.mark.asyncio
    async def test_acquire_failure(self):
        pool, _, _ = _mock_pool()
        pool.acquire.side_effect = OSError("refused")

        with pytest.raises(ConnectionPoolError):
            async with database_transaction(pool):
                pass


class TestHealthCheck:
    """Tests for check_database_health."""

    @pytest.mark.asyncio
    async def test_healthy(self):
        pool, _, _ = _mock_pool()
        health = await check_database_health(pool)
        assert health == {"healthy": True, "pool_size": 4, "pool_free": 3, "pool_used": 1}

    @pytest.mark.asyncio
    async def test_missing_pool(self):
        assert (await check_database_health(None))["healthy"] is False
