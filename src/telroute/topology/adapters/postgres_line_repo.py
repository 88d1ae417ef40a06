"""PostgreSQL adapter for phone line repository."""

import json
import logging
from typing import Optional
from uuid import UUID

import asyncpg

from ...common.database import database_connection, database_transaction
from ..domain.entities import PhoneLine, Tag
from ..domain.ports import IPhoneLineRepository

logger = logging.getLogger(__name__)

_LINE_SELECT = """
    SELECT
        pl.id,
        pl.phone_number,
        pl.consumer_unit,
        pl.has_active_fault,
        COALESCE(
            json_agg(json_build_object('id', t.id, 'name', t.name, 'color', t.color))
                FILTER (WHERE t.id IS NOT NULL),
            '[]'
        ) AS tags
    FROM phone_lines pl
    LEFT JOIN phone_line_tags plt ON plt.phone_line_id = pl.id
    LEFT JOIN tags t ON t.id = plt.tag_id
"""


class PostgresPhoneLineRepository(IPhoneLineRepository):
    """PostgreSQL implementation of IPhoneLineRepository."""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def find_by_number(self, number: str) -> Optional[PhoneLine]:
        async with database_connection(self.pool) as conn:
            row = await conn.fetchrow(
                _LINE_SELECT + " WHERE pl.phone_number = $1 GROUP BY pl.id",
                number.strip(),
            )
            return self._row_to_line(row) if row else None

    async def get_lines(self, line_ids: list[UUID]) -> dict[UUID, PhoneLine]:
        if not line_ids:
            return {}

        async with database_connection(self.pool) as conn:
            rows = await conn.fetch(
                _LINE_SELECT + " WHERE pl.id = ANY($1::uuid[]) GROUP BY pl.id",
                list(line_ids),
            )
            lines = [self._row_to_line(row) for row in rows]
            return {line.id: line for line in lines}

    async def upsert_by_number(self, number: str, consumer_label: Optional[str]) -> PhoneLine:
        async with database_transaction(self.pool) as conn:
            line_id = await conn.fetchval(
                """
                INSERT INTO phone_lines (phone_number, consumer_unit)
                VALUES ($1, $2)
                ON CONFLICT (phone_number)
                DO UPDATE SET consumer_unit = EXCLUDED.consumer_unit
                RETURNING id
                """,
                number.strip(),
                consumer_label,
            )
            row = await conn.fetchrow(
                _LINE_SELECT + " WHERE pl.id = $1 GROUP BY pl.id",
                line_id,
            )
        return self._row_to_line(row)

    async def delete_line(self, line_id: UUID) -> None:
        async with database_transaction(self.pool) as conn:
            await conn.execute("DELETE FROM phone_lines WHERE id = $1", line_id)
        logger.debug(f"Deleted phone line row {line_id}")

    def _row_to_line(self, row: asyncpg.Record) -> PhoneLine:
        """Convert database row to PhoneLine."""
        tags_json = row["tags"]
        if isinstance(tags_json, str):
            tags_json = json.loads(tags_json)

        return PhoneLine(
            id=row["id"],
            number=row["phone_number"],
            consumer_label=row["consumer_unit"],
            has_active_fault=row["has_active_fault"],
            tags=[
                Tag(id=UUID(str(t["id"])), name=t["name"], color=t.get("color"))
                for t in tags_json or []
            ],
        )
