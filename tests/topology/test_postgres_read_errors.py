"""Tests that PostgreSQL read paths surface driver failures as StoreUnavailable."""

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from src.telroute.bulk_import.adapters import PostgresImportRepository
from src.telroute.common.exceptions import ConnectionPoolError, StoreUnavailable
from src.telroute.topology.adapters import (
    PostgresChangeLog,
    PostgresNodeRepository,
    PostgresPhoneLineRepository,
    PostgresRouteRepository,
    PostgresSettingsStore,
)

READS = [
    pytest.param(lambda p: PostgresRouteRepository(p).find_hop(uuid4(), "111"), id="find_hop"),
    pytest.param(lambda p: PostgresRouteRepository(p).list_node_hops(uuid4()), id="list_node_hops"),
    pytest.param(lambda p: PostgresRouteRepository(p).list_line_hops(uuid4()), id="list_line_hops"),
    pytest.param(lambda p: PostgresNodeRepository(p).get_node(uuid4()), id="get_node"),
    pytest.param(lambda p: PostgresNodeRepository(p).list_nodes(), id="list_nodes"),
    pytest.param(lambda p: PostgresPhoneLineRepository(p).find_by_number("1000"), id="find_by_number"),
    pytest.param(lambda p: PostgresPhoneLineRepository(p).get_lines([uuid4()]), id="get_lines"),
    pytest.param(lambda p: PostgresChangeLog(p).list_for_line(uuid4()), id="list_for_line"),
    pytest.param(lambda p: PostgresSettingsStore(p).get("phone_wire_colors"), id="settings_get"),
    pytest.param(lambda p: PostgresImportRepository(p).existing_phone_numbers(["1000"]), id="existing_phone_numbers"),
    pytest.param(lambda p: PostgresImportRepository(p).phone_number_exists("1000"), id="phone_number_exists"),
    pytest.param(lambda p: PostgresImportRepository(p).all_asset_numbers(), id="all_asset_numbers"),
    pytest.param(lambda p: PostgresImportRepository(p).asset_number_exists("A-1"), id="asset_number_exists"),
    pytest.param(lambda p: PostgresImportRepository(p).load_catalog(), id="load_catalog"),
]


def _pool_with_failing_query(error: Exception):
    conn = MagicMock()
    conn.fetch = AsyncMock(side_effect=error)
    conn.fetchrow = AsyncMock(side_effect=error)
    conn.fetchval = AsyncMock(side_effect=error)

    pool = MagicMock()
    pool.acquire = AsyncMock(return_value=conn)
    pool.release = AsyncMock()
    return pool, conn


class TestReadFailures:
    """Connection and query errors on reads become StoreUnavailable."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("read", READS)
    async def test_acquire_failure(self, read):
        pool = MagicMock()
        pool.acquire = AsyncMock(side_effect=ConnectionResetError("connection reset by peer"))

        with pytest.raises(ConnectionPoolError):
            await read(pool)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("read", READS)
    async def test_query_failure_releases_connection(self, read):
        pool, conn = _pool_with_failing_query(ConnectionResetError("connection reset by peer"))

        with pytest.raises(StoreUnavailable) as exc:
            await read(pool)

        assert exc.value.code == "STORE_UNAVAILABLE"
        pool.release.assert_awaited_once_with(conn)
