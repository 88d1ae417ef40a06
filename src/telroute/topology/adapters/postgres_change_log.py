"""PostgreSQL adapters for the change log and the settings store."""

import logging
from typing import Optional
from uuid import UUID

import asyncpg

from ...common.database import database_connection, database_transaction
from ..domain.entities import ChangeLogEntry
from ..domain.ports import IChangeLog, ISettingsStore

logger = logging.getLogger(__name__)


class PostgresChangeLog(IChangeLog):
    """PostgreSQL implementation of IChangeLog."""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def record(self, line_id: Optional[UUID], description: str, actor: Optional[str]) -> None:
        async with database_transaction(self.pool) as conn:
            await conn.execute(
                """
                INSERT INTO change_log (phone_line_id, change_description, user_id)
                VALUES ($1, $2, $3)
                """,
                line_id,
                description,
                actor,
            )

    async def list_for_line(self, line_id: UUID) -> list[ChangeLogEntry]:
        async with database_connection(self.pool) as conn:
            rows = await conn.fetch(
                """
                SELECT phone_line_id, change_description, user_id, created_at
                FROM change_log
                WHERE phone_line_id = $1
                ORDER BY created_at DESC, id DESC
                """,
                line_id,
            )
            return [
                ChangeLogEntry(
                    line_id=row["phone_line_id"],
                    description=row["change_description"],
                    actor=row["user_id"],
                    created_at=row["created_at"],
                )
                for row in rows
            ]


class PostgresSettingsStore(ISettingsStore):
    """PostgreSQL implementation of ISettingsStore."""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def get(self, key: str) -> Optional[str]:
        async with database_connection(self.pool) as conn:
            return await conn.fetchval("SELECT value FROM settings WHERE key = $1", key)

    async def set(self, key: str, value: str) -> None:
        async with database_transaction(self.pool) as conn:
            await conn.execute(
                """
                INSERT INTO settings (key, value, updated_at)
                VALUES ($1, $2, NOW())
                ON CONFLICT (key)
                DO UPDATE SET value = EXCLUDED.value, updated_at = NOW()
                """,
                key,
                value,
            )
        logger.debug(f"Saved setting '{key}'")
