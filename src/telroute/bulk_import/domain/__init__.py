"""Domain layer for bulk import.

Contains:
- Entities: parsed records, validated preview rows, sessions and results
- Validation: the bulk validation engine
- Ports: Interface definitions for infrastructure adapters
"""

from .entities import (
    DEFAULT_ASSET_STATUS,
    AssetImportRow,
    AssetRecord,
    CommitResult,
    ImportKind,
    ImportProgress,
    ImportRow,
    ImportSession,
    PersistedKeySnapshot,
    PhoneLineImportRow,
    PhoneLineRecord,
    ReferenceCatalog,
    RowError,
)
from .ports import (
    IImportKeyLookup,
    IImportSessionStore,
    IImportWriter,
    IReferenceCatalogSource,
    ITabularParser,
)
from .validation import BulkValidationEngine

__all__ = [
    # Entities
    "DEFAULT_ASSET_STATUS",
    "ImportKind",
    "PhoneLineRecord",
    "AssetRecord",
    "PhoneLineImportRow",
    "AssetImportRow",
    "ImportRow",
    "PersistedKeySnapshot",
    "ReferenceCatalog",
    "ImportSession",
    "ImportProgress",
    "RowError",
    "CommitResult",
    # Validation
    "BulkValidationEngine",
    # Ports
    "ITabularParser",
    "IImportKeyLookup",
    "IReferenceCatalogSource",
    "IImportWriter",
    "IImportSessionStore",
]
