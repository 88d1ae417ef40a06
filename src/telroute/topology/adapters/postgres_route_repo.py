"""PostgreSQL adapter for route hop repository.

Each write keeps the per-line sequence contiguous:

- retiring a hop deletes it and shifts the later hops of its line down by one
- appending locks the line row first so two concurrent appends to the
  same line cannot both read the same ``max(sequence)``

``replace_hop`` runs both steps in one transaction, so a failed append
leaves the retired hop in place.
"""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

import asyncpg

from ...common.database import database_connection, database_transaction
from ..domain.entities import HopDraft, RouteHop
from ..domain.ports import IRouteRepository

logger = logging.getLogger(__name__)

_HOP_COLUMNS = "id, phone_line_id, node_id, sequence, port_address, wire1, wire2, updated_at"


class PostgresRouteRepository(IRouteRepository):
    """PostgreSQL implementation of IRouteRepository."""

    supports_atomic_replace = True

    def __init__(self, pool: asyncpg.Pool):
        """Initialize with database connection pool.

        Args:
            pool: asyncpg connection pool
        """
        self.pool = pool

    async def find_hop(self, node_id: UUID, port_address: str) -> Optional[RouteHop]:
        async with database_connection(self.pool) as conn:
            row = await conn.fetchrow(
                f"SELECT {_HOP_COLUMNS} FROM route_hops WHERE node_id = $1 AND port_address = $2",
                node_id,
                port_address,
            )
            return self._row_to_hop(row) if row else None

    async def list_node_hops(self, node_id: UUID) -> list[RouteHop]:
        async with database_connection(self.pool) as conn:
            rows = await conn.fetch(
                f"SELECT {_HOP_COLUMNS} FROM route_hops WHERE node_id = $1 ORDER BY port_address",
                node_id,
            )
            return [self._row_to_hop(row) for row in rows]

    async def list_line_hops(self, line_id: UUID) -> list[RouteHop]:
        async with database_connection(self.pool) as conn:
            rows = await conn.fetch(
                f"SELECT {_HOP_COLUMNS} FROM route_hops WHERE phone_line_id = $1 ORDER BY sequence",
                line_id,
            )
            return [self._row_to_hop(row) for row in rows]

    async def retire_hop(self, hop: RouteHop) -> None:
        async with database_transaction(self.pool) as conn:
            await self._retire(conn, hop)

    async def append_hop(self, draft: HopDraft) -> RouteHop:
        async with database_transaction(self.pool) as conn:
            return await self._append(conn, draft)

    async def replace_hop(self, old: Optional[RouteHop], draft: HopDraft) -> RouteHop:
        async with database_transaction(self.pool) as conn:
            if old is not None:
                await self._retire(conn, old)
            return await self._append(conn, draft)

    async def _retire(self, conn: asyncpg.Connection, hop: RouteHop) -> None:
        row = await conn.fetchrow(
            "DELETE FROM route_hops WHERE id = $1 RETURNING phone_line_id, sequence",
            hop.id,
        )
        if row is None:
            logger.debug(f"Hop {hop.id} already retired")
            return

        await conn.execute(
            """
            UPDATE route_hops
            SET sequence = sequence - 1
            WHERE phone_line_id = $1 AND sequence > $2
            """,
            row["phone_line_id"],
            row["sequence"],
        )

    async def _append(self, conn: asyncpg.Connection, draft: HopDraft) -> RouteHop:
        await conn.execute(
            "SELECT id FROM phone_lines WHERE id = $1 FOR UPDATE",
            draft.line_id,
        )
        row = await conn.fetchrow(
            f"""
            INSERT INTO route_hops
                (phone_line_id, node_id, sequence, port_address, wire1, wire2)
            SELECT $1, $2, COALESCE(MAX(sequence), 0) + 1, $3, $4, $5
            FROM route_hops
            WHERE phone_line_id = $1
            RETURNING {_HOP_COLUMNS}
            """,
            draft.line_id,
            draft.node_id,
            draft.port_address,
            draft.wire1,
            draft.wire2,
        )
        return self._row_to_hop(row)

    async def count_node_hops(self, node_id: UUID) -> int:
        async with database_connection(self.pool) as conn:
            return await conn.fetchval(
                "SELECT COUNT(*) FROM route_hops WHERE node_id = $1", node_id
            )

    async def count_line_hops(self, line_id: UUID) -> int:
        async with database_connection(self.pool) as conn:
            return await conn.fetchval(
                "SELECT COUNT(*) FROM route_hops WHERE phone_line_id = $1", line_id
            )

    async def last_node_activity(self, node_id: UUID) -> Optional[datetime]:
        async with database_connection(self.pool) as conn:
            return await conn.fetchval(
                "SELECT MAX(updated_at) FROM route_hops WHERE node_id = $1", node_id
            )

    def _row_to_hop(self, row: asyncpg.Record) -> RouteHop:
        return RouteHop(
            id=row["id"],
            line_id=row["phone_line_id"],
            node_id=row["node_id"],
            sequence=row["sequence"],
            port_address=row["port_address"],
            wire1=row["wire1"],
            wire2=row["wire2"],
            updated_at=row["updated_at"],
        )
