"""PostgreSQL adapter for bulk import.

This adapter implements the key lookup, reference catalog and writer
ports over the phone_lines, tags, assets and catalog tables.
"""

import logging
from typing import Optional

import asyncpg

from ...common.database import database_connection, database_transaction
from ..domain.entities import AssetImportRow, PhoneLineImportRow, ReferenceCatalog
from ..domain.ports import IImportKeyLookup, IImportWriter, IReferenceCatalogSource

logger = logging.getLogger(__name__)

BULK_IMPORT_AUDIT_MESSAGE = "Line created by bulk import"


class PostgresImportRepository(IImportKeyLookup, IReferenceCatalogSource, IImportWriter):
    """PostgreSQL implementation of the bulk import ports."""

    def __init__(self, pool: asyncpg.Pool):
        """Initialize with database connection pool.

        Args:
            pool: asyncpg connection pool
        """
        self.pool = pool

    # ========== Key lookup ==========

    async def existing_phone_numbers(self, numbers: list[str]) -> set[str]:
        if not numbers:
            return set()

        async with database_connection(self.pool) as conn:
            rows = await conn.fetch(
                "SELECT phone_number FROM phone_lines WHERE phone_number = ANY($1::text[])",
                list(numbers),
            )
            return {row["phone_number"] for row in rows}

    async def phone_number_exists(self, number: str) -> bool:
        async with database_connection(self.pool) as conn:
            return await conn.fetchval(
                "SELECT EXISTS(SELECT 1 FROM phone_lines WHERE phone_number = $1)",
                number,
            )

    async def all_asset_numbers(self) -> set[str]:
        async with database_connection(self.pool) as conn:
            rows = await conn.fetch("SELECT asset_id_number FROM assets")
            return {str(row["asset_id_number"]) for row in rows}

    async def asset_number_exists(self, asset_number: str) -> bool:
        async with database_connection(self.pool) as conn:
            return await conn.fetchval(
                "SELECT EXISTS(SELECT 1 FROM assets WHERE asset_id_number = $1)",
                asset_number,
            )

    # ========== Reference catalog ==========

    async def load_catalog(self) -> ReferenceCatalog:
        async with database_connection(self.pool) as conn:
            tags = await conn.fetch("SELECT id, name FROM tags ORDER BY name")
            categories = await conn.fetch("SELECT id, name FROM asset_categories ORDER BY name")
            locations = await conn.fetch("SELECT id, name FROM locations ORDER BY name")
            statuses = await conn.fetch("SELECT name FROM asset_statuses ORDER BY position, name")

        return ReferenceCatalog(
            tags={row["name"]: str(row["id"]) for row in tags},
            categories={row["name"]: str(row["id"]) for row in categories},
            locations={row["name"]: str(row["id"]) for row in locations},
            statuses=[row["name"] for row in statuses],
        )

    # ========== Writer ==========

    async def create_phone_line(self, row: PhoneLineImportRow, actor: Optional[str] = None) -> None:
        async with database_transaction(self.pool) as conn:
            line_id = await conn.fetchval(
                """
                INSERT INTO phone_lines (phone_number, consumer_unit)
                VALUES ($1, $2)
                RETURNING id
                """,
                row.phone_number,
                row.consumer_label,
            )
            if row.valid_tag_ids:
                await conn.executemany(
                    """
                    INSERT INTO phone_line_tags (phone_line_id, tag_id)
                    VALUES ($1, $2::uuid)
                    ON CONFLICT DO NOTHING
                    """,
                    [(line_id, tag_id) for tag_id in row.valid_tag_ids],
                )
            await conn.execute(
                """
                INSERT INTO change_log (phone_line_id, change_description, user_id)
                VALUES ($1, $2, $3)
                """,
                line_id,
                BULK_IMPORT_AUDIT_MESSAGE,
                actor,
            )

    async def create_asset(self, row: AssetImportRow, status: str) -> None:
        async with database_transaction(self.pool) as conn:
            await conn.execute(
                """
                INSERT INTO assets
                    (asset_id_number, name, category_id, location_id, status, description, is_external)
                VALUES ($1, $2, $3::uuid, $4::uuid, $5, $6, $7)
                """,
                row.asset_number,
                row.name,
                row.category_id,
                row.location_id,
                status,
                row.description,
                row.is_external,
            )
