"""PostgreSQL adapter for node repository.

This adapter implements INodeRepository using asyncpg
to query the nodes table. The node configuration lives in a JSONB
column next to a plain ``kind`` column.
"""

import json
import logging
from typing import Optional
from uuid import UUID

import asyncpg

from ...common.database import database_connection, database_transaction
from ...common.exceptions import NotFoundError
from ..domain.capacity import NodeConfig
from ..domain.entities import Node
from ..domain.ports import INodeRepository

logger = logging.getLogger(__name__)


class PostgresNodeRepository(INodeRepository):
    """PostgreSQL implementation of INodeRepository."""

    def __init__(self, pool: asyncpg.Pool):
        """Initialize with database connection pool.

        Args:
            pool: asyncpg connection pool
        """
        self.pool = pool

    async def get_node(self, node_id: UUID) -> Optional[Node]:
        async with database_connection(self.pool) as conn:
            row = await conn.fetchrow(
                "SELECT id, name, kind, config, created_at FROM nodes WHERE id = $1",
                node_id,
            )
            return self._row_to_node(row) if row else None

    async def list_nodes(self) -> list[Node]:
        async with database_connection(self.pool) as conn:
            rows = await conn.fetch(
                "SELECT id, name, kind, config, created_at FROM nodes ORDER BY name"
            )
            return [self._row_to_node(row) for row in rows]

    async def create_node(self, name: str, config: NodeConfig) -> Node:
        async with database_transaction(self.pool) as conn:
            row = await conn.fetchrow(
                """
                INSERT INTO nodes (name, kind, config)
                VALUES ($1, $2, $3::jsonb)
                RETURNING id, name, kind, config, created_at
                """,
                name,
                config.kind.value,
                json.dumps(config.to_record(), ensure_ascii=False),
            )
        logger.info(f"Created node '{name}' ({config.kind.value})")
        return self._row_to_node(row)

    async def update_node(self, node_id: UUID, name: str, config: NodeConfig) -> Node:
        async with database_transaction(self.pool) as conn:
            row = await conn.fetchrow(
                """
                UPDATE nodes SET name = $2, kind = $3, config = $4::jsonb
                WHERE id = $1
                RETURNING id, name, kind, config, created_at
                """,
                node_id,
                name,
                config.kind.value,
                json.dumps(config.to_record(), ensure_ascii=False),
            )
        if row is None:
            raise NotFoundError(f"Node {node_id} not found", resource="node", resource_id=node_id)
        return self._row_to_node(row)

    async def update_config(self, node_id: UUID, config: NodeConfig) -> None:
        async with database_transaction(self.pool) as conn:
            result = await conn.execute(
                "UPDATE nodes SET config = $2::jsonb WHERE id = $1",
                node_id,
                json.dumps(config.to_record(), ensure_ascii=False),
            )
        if result.endswith(" 0"):
            raise NotFoundError(f"Node {node_id} not found", resource="node", resource_id=node_id)

    async def delete_node(self, node_id: UUID) -> None:
        async with database_transaction(self.pool) as conn:
            await conn.execute("DELETE FROM nodes WHERE id = $1", node_id)

    def _row_to_node(self, row: asyncpg.Record) -> Node:
        """Convert database row to Node."""
        config_json = row["config"]
        if isinstance(config_json, str):
            config_json = json.loads(config_json)

        return Node(
            id=row["id"],
            name=row["name"],
            config=NodeConfig.from_record(config_json or {}, kind=row["kind"]),
            created_at=row["created_at"],
        )
