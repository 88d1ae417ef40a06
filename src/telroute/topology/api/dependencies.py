"""FastAPI dependency injection for the routing API.

This module provides dependency injection functions that create
and return adapter and use case instances for use in API endpoints.

Lifecycle Management:
- Database pool: Initialized at startup, shared across requests
- Port guard: One per process, so concurrent edits of the same port
  from different requests are serialized
- Both live for the whole application lifetime

Security:
- API key authentication required for all endpoints (except /health)
- Set API_KEY environment variable to enable authentication
- DISABLE_AUTH=true turns authentication off (development mode)
"""

import logging
import os
import secrets
from typing import Optional

import asyncpg
from fastapi import Depends, HTTPException, Security, status
from fastapi.security import APIKeyHeader

from ...common.database import close_pool, create_pool
from ...common.exceptions import ConfigurationError, ConnectionPoolError
from ..adapters import (
    PostgresChangeLog,
    PostgresNodeRepository,
    PostgresPhoneLineRepository,
    PostgresRouteRepository,
    PostgresSettingsStore,
)
from ..domain.ports import (
    IChangeLog,
    INodeRepository,
    IPhoneLineRepository,
    IRouteRepository,
    ISettingsStore,
)
from ..use_cases import (
    ConsumerLookupUseCase,
    DashboardCardsUseCase,
    LookupDebouncers,
    ManageNodesUseCase,
    ManagePhoneLinesUseCase,
    PortGuard,
    PortViewsUseCase,
    RouteAssignmentEngine,
    WireColorSettingsUseCase,
)

logger = logging.getLogger(__name__)

# ========== API Key Authentication ==========

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)

_api_key: Optional[str] = None


def _get_api_key() -> Optional[str]:
    """Get the API key from environment (cached)."""
    global _api_key
    if _api_key is None:
        _api_key = os.getenv("API_KEY", "")
    return _api_key if _api_key else None


async def verify_api_key(
    api_key: Optional[str] = Security(api_key_header),
) -> bool:
    """Verify the API key from the request header.

    Security model:
    - If DISABLE_AUTH=true (dev mode): authentication is disabled
    - Otherwise: API_KEY is required (fail-closed)

    Args:
        api_key: API key from X-API-Key header

    Returns:
        True if authenticated

    Raises:
        HTTPException: 401 if API key is missing or invalid
    """
    if os.getenv("DISABLE_AUTH", "").lower() == "true":
        logger.warning("Authentication disabled (DISABLE_AUTH=true). Only use this in development!")
        return True

    expected_key = _get_api_key()

    if not expected_key:
        logger.error(
            "API_KEY not set - rejecting request. "
            "Set API_KEY environment variable or DISABLE_AUTH=true for development."
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server misconfiguration: API key not set",
        )

    if not api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key. Provide X-API-Key header.",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    if not secrets.compare_digest(api_key, expected_key):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    return True


# ========== Global State ==========

_db_pool: Optional[asyncpg.Pool] = None

_port_guard = PortGuard()

_lookup_debouncers: Optional[LookupDebouncers] = None


async def init_db_pool():
    """Initialize the database connection pool.

    Should be called on application startup.
    """
    global _db_pool

    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        raise ConfigurationError(
            "DATABASE_URL environment variable is required",
            missing_keys=["DATABASE_URL"],
        )

    _db_pool = await create_pool(
        database_url,
        min_size=int(os.getenv("DB_POOL_MIN_SIZE", "2")),
        max_size=int(os.getenv("DB_POOL_MAX_SIZE", "10")),
    )


async def close_db_pool():
    """Close the database connection pool.

    Should be called on application shutdown.
    """
    global _db_pool
    if _db_pool:
        await close_pool(_db_pool)
        _db_pool = None


def get_db_pool() -> asyncpg.Pool:
    """Get the database connection pool."""
    if _db_pool is None:
        raise ConnectionPoolError("Database pool not initialized. Call init_db_pool() first.")
    return _db_pool


def get_optional_db_pool() -> Optional[asyncpg.Pool]:
    """Get the pool if it was initialized, for health checks."""
    return _db_pool


def get_port_guard() -> PortGuard:
    return _port_guard


def get_lookup_debounce_seconds() -> float:
    """Quiet period for consumer lookups, from LOOKUP_DEBOUNCE_SECONDS."""
    try:
        return max(0.0, float(os.getenv("LOOKUP_DEBOUNCE_SECONDS", "0.5")))
    except ValueError:
        logger.warning("Invalid LOOKUP_DEBOUNCE_SECONDS, using 0.5")
        return 0.5


def get_lookup_debouncers() -> LookupDebouncers:
    """Process-wide per-client debouncers for the consumer lookup route."""
    global _lookup_debouncers
    if _lookup_debouncers is None:
        _lookup_debouncers = LookupDebouncers(delay=get_lookup_debounce_seconds())
    return _lookup_debouncers


# ========== Repository Dependencies ==========


def get_node_repo() -> INodeRepository:
    """Get a node repository instance."""
    return PostgresNodeRepository(get_db_pool())


def get_line_repo() -> IPhoneLineRepository:
    """Get a phone line repository instance."""
    return PostgresPhoneLineRepository(get_db_pool())


def get_route_repo() -> IRouteRepository:
    """Get a route hop repository instance."""
    return PostgresRouteRepository(get_db_pool())


def get_change_log() -> IChangeLog:
    return PostgresChangeLog(get_db_pool())


def get_settings_store() -> ISettingsStore:
    return PostgresSettingsStore(get_db_pool())


# ========== Use Case Dependencies ==========


def get_assignment_engine(
    node_repo: INodeRepository = Depends(get_node_repo),
    line_repo: IPhoneLineRepository = Depends(get_line_repo),
    route_repo: IRouteRepository = Depends(get_route_repo),
    change_log: IChangeLog = Depends(get_change_log),
    guard: PortGuard = Depends(get_port_guard),
) -> RouteAssignmentEngine:
    """Get the assignment engine, sharing the process-wide port guard."""
    return RouteAssignmentEngine(node_repo, line_repo, route_repo, change_log, guard=guard)


def get_manage_nodes(
    node_repo: INodeRepository = Depends(get_node_repo),
    route_repo: IRouteRepository = Depends(get_route_repo),
) -> ManageNodesUseCase:
    return ManageNodesUseCase(node_repo, route_repo)


def get_port_views(
    node_repo: INodeRepository = Depends(get_node_repo),
    line_repo: IPhoneLineRepository = Depends(get_line_repo),
    route_repo: IRouteRepository = Depends(get_route_repo),
) -> PortViewsUseCase:
    return PortViewsUseCase(node_repo, line_repo, route_repo)


def get_manage_lines(
    node_repo: INodeRepository = Depends(get_node_repo),
    line_repo: IPhoneLineRepository = Depends(get_line_repo),
    route_repo: IRouteRepository = Depends(get_route_repo),
    change_log: IChangeLog = Depends(get_change_log),
) -> ManagePhoneLinesUseCase:
    return ManagePhoneLinesUseCase(node_repo, line_repo, route_repo, change_log)


def get_consumer_lookup(
    line_repo: IPhoneLineRepository = Depends(get_line_repo),
) -> ConsumerLookupUseCase:
    return ConsumerLookupUseCase(line_repo, debounce_seconds=get_lookup_debounce_seconds())


def get_wire_colors(
    settings: ISettingsStore = Depends(get_settings_store),
) -> WireColorSettingsUseCase:
    return WireColorSettingsUseCase(settings)


def get_dashboard_cards(
    settings: ISettingsStore = Depends(get_settings_store),
) -> DashboardCardsUseCase:
    return DashboardCardsUseCase(settings)
