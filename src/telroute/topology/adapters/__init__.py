"""Infrastructure adapters for the routing topology.

These adapters implement the port interfaces defined in the domain layer,
connecting the application to PostgreSQL or to an in-process store.
"""

from .memory_store import InMemorySettingsStore, InMemoryStore
from .postgres_change_log import PostgresChangeLog, PostgresSettingsStore
from .postgres_line_repo import PostgresPhoneLineRepository
from .postgres_node_repo import PostgresNodeRepository
from .postgres_route_repo import PostgresRouteRepository

__all__ = [
    "InMemoryStore",
    "InMemorySettingsStore",
    "PostgresNodeRepository",
    "PostgresPhoneLineRepository",
    "PostgresRouteRepository",
    "PostgresChangeLog",
    "PostgresSettingsStore",
]
