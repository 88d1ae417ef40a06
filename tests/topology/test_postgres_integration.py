#!/usr/bin/env python3
"""Integration tests for the PostgreSQL topology adapters.

Tests cover:
    - Schema creation
    - Node config round trip through JSONB
    - Port reassignment with contiguous sequences
    - Change log entries surviving line deletion

All test data uses a random 'TEST-' prefix and is deleted afterwards.

NOTE: Requires a running PostgreSQL instance; skipped without DATABASE_URL.
"""
import os
import sys
from uuid import uuid4

import pytest
import pytest_asyncio
from dotenv import load_dotenv

sys.path.insert(0, str(__file__).rsplit("/tests", 1)[0])

load_dotenv()

from src.telroute.common.database import close_pool, create_pool
from src.telroute.common.schema import apply_schema
from src.telroute.topology.adapters import (
    PostgresChangeLog,
    PostgresNodeRepository,
    PostgresPhoneLineRepository,
    PostgresRouteRepository,
)
from src.telroute.topology.domain.capacity import FrameCapacity, NodeConfig
from src.telroute.topology.domain.entities import LineAssignment
from src.telroute.topology.use_cases import ManagePhoneLinesUseCase, RouteAssignmentEngine

pytestmark = pytest.mark.skipif(
    not os.getenv("DATABASE_URL"),
    reason="DATABASE_URL not set",
)


# ============================================
# Fixtures
# ============================================

@pytest_asyncio.fixture
async def db_pool():
    pool = await create_pool(os.getenv("DATABASE_URL"), min_size=1, max_size=4)
    await apply_schema(pool)
    yield pool
    await close_pool(pool)


@pytest.fixture
def prefix():
    return f"TEST-{uuid4().hex[:8]}"


@pytest_asyncio.fixture
async def repos(db_pool, prefix):
    nodes = PostgresNodeRepository(db_pool)
    lines = PostgresPhoneLineRepository(db_pool)
    routes = PostgresRouteRepository(db_pool)
    change_log = PostgresChangeLog(db_pool)
    yield nodes, lines, routes, change_log

    async with db_pool.acquire() as conn:
        await conn.execute(
            "DELETE FROM change_log WHERE change_description LIKE $1 OR phone_line_id IN "
            "(SELECT id FROM phone_lines WHERE phone_number LIKE $2)",
            f"%{prefix}%",
            f"{prefix}%",
        )
        await conn.execute("DELETE FROM phone_lines WHERE phone_number LIKE $1", f"{prefix}%")
        await conn.execute("DELETE FROM nodes WHERE name LIKE $1", f"{prefix}%")


# ============================================
# Tests
# ============================================

class TestPostgresTopology:
    """Round trips through the real record store."""

    @pytest.mark.asyncio
    async def test_node_config_round_trip(self, repos, prefix):
        nodes, _, _, _ = repos
        config = NodeConfig(capacity=FrameCapacity(sets=3, terminals_per_set=10))
        config = config.with_terminal_label(1, 2, "Block A")

        created = await nodes.create_node(f"{prefix}-MDF", config)
        loaded = await nodes.get_node(created.id)

        assert loaded.capacity == FrameCapacity(sets=3, terminals_per_set=10)
        assert loaded.config.terminal_label(1, 2) == "Block A"

    @pytest.mark.asyncio
    async def test_reassignment_keeps_paths_contiguous(self, repos, prefix):
        nodes, lines, routes, change_log = repos
        engine = RouteAssignmentEngine(nodes, lines, routes, change_log)
        frame = await nodes.create_node(
            f"{prefix}-MDF", NodeConfig(capacity=FrameCapacity(sets=2, terminals_per_set=10))
        )
        old_number, new_number = f"{prefix}-1234", f"{prefix}-5678"

        first = await engine.reassign_port(frame.id, "111", LineAssignment(old_number))
        await engine.reassign_port(frame.id, "112", LineAssignment(old_number))
        await engine.reassign_port(frame.id, "113", LineAssignment(new_number))

        change = await engine.reassign_port(frame.id, "111", LineAssignment(new_number))

        old_hops = await routes.list_line_hops(first.line.id)
        new_hops = await routes.list_line_hops(change.line.id)
        assert [(h.sequence, h.port_address) for h in old_hops] == [(1, "112")]
        assert [(h.sequence, h.port_address) for h in new_hops] == [(1, "113"), (2, "111")]

    @pytest.mark.asyncio
    async def test_history_kept_after_line_delete(self, repos, prefix, db_pool):
        nodes, lines, routes, change_log = repos
        engine = RouteAssignmentEngine(nodes, lines, routes, change_log)
        frame = await nodes.create_node(
            f"{prefix}-MDF", NodeConfig(capacity=FrameCapacity(sets=1, terminals_per_set=10))
        )
        change = await engine.reassign_port(frame.id, "111", LineAssignment(f"{prefix}-1"))
        await engine.reassign_port(frame.id, "111", None)

        await ManagePhoneLinesUseCase(nodes, lines, routes, change_log).delete_line(change.line.id)

        async with db_pool.acquire() as conn:
            orphaned = await conn.fetchval(
                "SELECT COUNT(*) FROM change_log WHERE phone_line_id IS NULL "
                "AND change_description LIKE $1",
                f"%{prefix}-1%",
            )
        assert orphaned >= 1
