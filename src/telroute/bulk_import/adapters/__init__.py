"""Infrastructure adapters for bulk import.

These adapters implement the port interfaces defined in the domain layer,
connecting the import workflow to PostgreSQL, spreadsheet files and
process-local session storage.
"""

from .postgres_import_repo import PostgresImportRepository
from .session_store import InMemoryImportSessionStore
from .tabular_parser import OpenpyxlTabularParser

__all__ = [
    "PostgresImportRepository",
    "InMemoryImportSessionStore",
    "OpenpyxlTabularParser",
]
