"""FastAPI dependency injection for the bulk import API.

The database pool and API key check are shared with the routing API.
Import sessions live in one process-wide store, so a preview and the
commit that follows must reach the same worker process.
"""

import logging
import os

from fastapi import Depends

from ...topology.api.dependencies import get_db_pool, verify_api_key
from ..adapters import InMemoryImportSessionStore, OpenpyxlTabularParser, PostgresImportRepository
from ..domain.ports import (
    IImportKeyLookup,
    IImportSessionStore,
    IImportWriter,
    IReferenceCatalogSource,
    ITabularParser,
)
from ..use_cases import CommitImportUseCase, PreviewImportUseCase, RevalidateRowUseCase

logger = logging.getLogger(__name__)

__all__ = [
    "verify_api_key",
    "get_session_store",
    "get_tabular_parser",
    "get_import_repo",
    "get_preview_import",
    "get_revalidate_row",
    "get_commit_import",
]

# ========== Global State ==========

_session_store = InMemoryImportSessionStore(
    ttl_seconds=int(os.getenv("IMPORT_SESSION_TTL_SECONDS", "3600")),
)


def get_session_store() -> IImportSessionStore:
    return _session_store


def get_tabular_parser() -> ITabularParser:
    return OpenpyxlTabularParser()


def get_import_repo() -> PostgresImportRepository:
    """Get the import repository; it serves lookups, catalog and writes."""
    return PostgresImportRepository(get_db_pool())


# ========== Use Case Dependencies ==========


def get_preview_import(
    parser: ITabularParser = Depends(get_tabular_parser),
    repo: PostgresImportRepository = Depends(get_import_repo),
    sessions: IImportSessionStore = Depends(get_session_store),
) -> PreviewImportUseCase:
    lookup: IImportKeyLookup = repo
    catalog_source: IReferenceCatalogSource = repo
    return PreviewImportUseCase(parser, lookup, catalog_source, sessions)


def get_revalidate_row(
    repo: PostgresImportRepository = Depends(get_import_repo),
    sessions: IImportSessionStore = Depends(get_session_store),
) -> RevalidateRowUseCase:
    return RevalidateRowUseCase(repo, sessions)


def get_commit_import(
    repo: PostgresImportRepository = Depends(get_import_repo),
    sessions: IImportSessionStore = Depends(get_session_store),
) -> CommitImportUseCase:
    writer: IImportWriter = repo
    return CommitImportUseCase(writer, sessions)
