"""PostgreSQL schema for the routing service.

All statements are idempotent so ``apply_schema`` can run on every
deployment.
"""

import logging

from .database import database_transaction

logger = logging.getLogger(__name__)

SCHEMA_STATEMENTS = [
    'CREATE EXTENSION IF NOT EXISTS "pgcrypto"',
    """
    CREATE TABLE IF NOT EXISTS nodes (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        name TEXT NOT NULL,
        kind TEXT NOT NULL,
        config JSONB NOT NULL DEFAULT '{}'::jsonb,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS tags (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        name TEXT NOT NULL UNIQUE,
        color TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS phone_lines (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        phone_number TEXT NOT NULL UNIQUE,
        consumer_unit TEXT,
        has_active_fault BOOLEAN NOT NULL DEFAULT FALSE,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS phone_line_tags (
        phone_line_id UUID NOT NULL REFERENCES phone_lines(id) ON DELETE CASCADE,
        tag_id UUID NOT NULL REFERENCES tags(id) ON DELETE CASCADE,
        PRIMARY KEY (phone_line_id, tag_id)
    )
    """,
    # The sequence constraint is checked per statement so that closing a
    # gap with a single UPDATE does not trip over intermediate rows.
    """
    CREATE TABLE IF NOT EXISTS route_hops (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        phone_line_id UUID NOT NULL REFERENCES phone_lines(id) ON DELETE CASCADE,
        node_id UUID NOT NULL REFERENCES nodes(id) ON DELETE RESTRICT,
        sequence INTEGER NOT NULL CHECK (sequence > 0),
        port_address TEXT NOT NULL,
        wire1 TEXT,
        wire2 TEXT,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        CONSTRAINT route_hops_node_port_key UNIQUE (node_id, port_address),
        CONSTRAINT route_hops_line_sequence_key UNIQUE (phone_line_id, sequence)
            DEFERRABLE INITIALLY IMMEDIATE
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_route_hops_line ON route_hops(phone_line_id)",
    """
    CREATE TABLE IF NOT EXISTS change_log (
        id BIGSERIAL PRIMARY KEY,
        phone_line_id UUID REFERENCES phone_lines(id) ON DELETE SET NULL,
        change_description TEXT NOT NULL,
        user_id TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_change_log_line ON change_log(phone_line_id, created_at DESC)",
    """
    CREATE TABLE IF NOT EXISTS settings (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS asset_categories (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        name TEXT NOT NULL UNIQUE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS locations (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        name TEXT NOT NULL UNIQUE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS asset_statuses (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        name TEXT NOT NULL UNIQUE,
        position INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS assets (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        asset_id_number TEXT NOT NULL UNIQUE,
        name TEXT NOT NULL,
        category_id UUID REFERENCES asset_categories(id) ON DELETE SET NULL,
        location_id UUID REFERENCES locations(id) ON DELETE SET NULL,
        status TEXT NOT NULL,
        description TEXT,
        is_external BOOLEAN NOT NULL DEFAULT FALSE,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
]


async def apply_schema(pool) -> int:
    """Create any missing tables and indexes.

    Returns:
        Number of statements executed
    """
    async with database_transaction(pool) as conn:
        for statement in SCHEMA_STATEMENTS:
            await conn.execute(statement)
    logger.info(f"Schema applied ({len(SCHEMA_STATEMENTS)} statements)")
    return len(SCHEMA_STATEMENTS)
