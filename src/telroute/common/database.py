"""PostgreSQL helpers shared by the topology and import adapters.

Every adapter talks to asyncpg through the two context managers here, so
driver failures always surface as ``TelrouteError`` subtypes:

    async with database_transaction(pool) as conn:
        await conn.execute("DELETE FROM route_hops WHERE id = $1", hop_id)
        await conn.execute("INSERT INTO route_hops ...")

The block commits when it exits normally and rolls back otherwise.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from .exceptions import (
    ConnectionPoolError,
    DuplicateKeyError,
    IntegrityError,
    StoreUnavailable,
    TelrouteError,
    TransactionError,
)

logger = logging.getLogger(__name__)

ACQUIRE_TIMEOUT_SECONDS = 30.0

# Readable messages for the unique keys the schema declares.
CONSTRAINT_MESSAGES = {
    "route_hops_node_port_key": "Port is already held by another line",
    "route_hops_line_sequence_key": "Line path already has a hop at that position",
    "phone_lines_phone_number_key": "Phone number already exists",
    "nodes_name_key": "Node name already exists",
    "assets_asset_id_number_key": "Asset number already exists",
}

# SQLSTATE classes we map explicitly; anything else is a store failure.
NOT_NULL_VIOLATION = "23502"
FOREIGN_KEY_VIOLATION = "23503"
UNIQUE_VIOLATION = "23505"
SERIALIZATION_FAILURE = "40001"
DEADLOCK_DETECTED = "40P01"
QUERY_CANCELED = "57014"


@asynccontextmanager
async def _acquire(pool) -> AsyncIterator[Any]:
    if pool is None:
        raise ConnectionPoolError("Database connection pool is not initialized")

    try:
        conn = await asyncio.wait_for(pool.acquire(), timeout=ACQUIRE_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        raise ConnectionPoolError(
            "Timeout acquiring database connection",
            details={"timeout_seconds": int(ACQUIRE_TIMEOUT_SECONDS)},
        )
    except Exception as e:
        raise ConnectionPoolError(f"Failed to acquire database connection: {e}", cause=e)

    try:
        yield conn
    finally:
        await pool.release(conn)


@asynccontextmanager
async def database_transaction(
    pool,
    isolation: str = "read_committed",
    readonly: bool = False,
) -> AsyncIterator[Any]:
    """Run a block inside one transaction.

    Args:
        pool: asyncpg connection pool
        isolation: "read_committed", "repeatable_read" or "serializable"
        readonly: Start a read-only transaction

    Raises:
        ConnectionPoolError: If no connection could be acquired
        TransactionError: If the transaction could not start, deadlocked or timed out
        DuplicateKeyError: If a unique key is violated
        IntegrityError: If another constraint is violated
    """
    async with _acquire(pool) as conn:
        transaction = conn.transaction(isolation=isolation, readonly=readonly)
        try:
            await transaction.start()
        except Exception as e:
            raise TransactionError(f"Failed to start transaction: {e}", cause=e)

        try:
            yield conn
        except Exception as e:
            try:
                await transaction.rollback()
            except Exception as rollback_error:
                logger.error(f"Rollback failed: {rollback_error}")
            raise convert_db_exception(e)

        await transaction.commit()


@asynccontextmanager
async def database_connection(pool) -> AsyncIterator[Any]:
    """Plain connection for reads; errors are converted as in ``database_transaction``."""
    async with _acquire(pool) as conn:
        try:
            yield conn
        except Exception as e:
            raise convert_db_exception(e)


def convert_db_exception(e: Exception) -> TelrouteError:
    """Map a driver exception onto the service's error hierarchy.

    Errors that are already ``TelrouteError`` (raised by domain code inside
    a transaction block) are returned unchanged.
    """
    if isinstance(e, TelrouteError):
        return e

    sqlstate: Optional[str] = getattr(e, "sqlstate", None)
    constraint: Optional[str] = getattr(e, "constraint_name", None)
    text = str(e).lower()

    if sqlstate == UNIQUE_VIOLATION or (sqlstate is None and "duplicate key" in text):
        message = CONSTRAINT_MESSAGES.get(constraint or "", "Duplicate entry")
        return DuplicateKeyError(f"{message}: {e}", key=constraint, cause=e)

    if sqlstate == FOREIGN_KEY_VIOLATION or (sqlstate is None and "foreign key" in text):
        return IntegrityError(f"Referenced record is missing or still in use: {e}", constraint="foreign_key", cause=e)

    if sqlstate == NOT_NULL_VIOLATION or (sqlstate is None and "not-null" in text):
        return IntegrityError(f"Required value is missing: {e}", constraint="not_null", cause=e)

    if sqlstate in (DEADLOCK_DETECTED, SERIALIZATION_FAILURE) or "deadlock" in text:
        return TransactionError(f"Concurrent update conflict: {e}", operation="transaction", cause=e)

    if sqlstate == QUERY_CANCELED or isinstance(e, asyncio.TimeoutError) or "timeout" in text:
        return TransactionError(f"Database operation timed out: {e}", operation="query", cause=e)

    return StoreUnavailable(f"Database operation failed: {e}", code="STORE_UNAVAILABLE", cause=e)


async def create_pool(
    database_url: str,
    min_size: int = 2,
    max_size: int = 10,
    command_timeout: float = 60.0,
    **kwargs,
):
    """Open an asyncpg pool.

    Raises:
        ConnectionPoolError: If the pool could not be created
    """
    import asyncpg

    try:
        pool = await asyncpg.create_pool(
            database_url,
            min_size=min_size,
            max_size=max_size,
            command_timeout=command_timeout,
            **kwargs,
        )
    except Exception as e:
        raise ConnectionPoolError(f"Failed to create database pool: {e}", cause=e)

    logger.info(f"Database pool created (min={min_size}, max={max_size})")
    return pool


async def close_pool(pool, timeout: float = 10.0):
    """Close the pool, terminating it if connections do not drain in time."""
    if pool is None:
        return

    try:
        await asyncio.wait_for(pool.close(), timeout=timeout)
        logger.info("Database pool closed")
    except asyncio.TimeoutError:
        logger.warning(f"Pool close timed out after {timeout}s, terminating")
        pool.terminate()


async def check_database_health(pool) -> dict[str, Any]:
    """Report whether the store answers, with pool usage when it does."""
    if pool is None:
        return {"healthy": False, "error": "Pool not initialized"}

    try:
        async with database_connection(pool) as conn:
            answered = await conn.fetchval("SELECT 1") == 1
    except TelrouteError as e:
        return {"healthy": False, "error": e.message}

    size, idle = pool.get_size(), pool.get_idle_size()
    return {"healthy": answered, "pool_size": size, "pool_free": idle, "pool_used": size - idle}


__all__ = [
    "database_transaction",
    "database_connection",
    "convert_db_exception",
    "create_pool",
    "close_pool",
    "check_database_health",
]
