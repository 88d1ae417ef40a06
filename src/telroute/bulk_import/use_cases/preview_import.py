"""Preview import use case.

Parses an uploaded file, validates every row and keeps the result as an
import session the operator can edit before committing.
"""

import logging
import uuid
from typing import Optional

from ..domain.entities import ImportKind, ImportSession, PersistedKeySnapshot
from ..domain.ports import (
    IImportKeyLookup,
    IImportSessionStore,
    IReferenceCatalogSource,
    ITabularParser,
)
from ..domain.validation import BulkValidationEngine

logger = logging.getLogger(__name__)


class PreviewImportUseCase:
    """Parse and validate a spreadsheet into an import session.

    This use case:
    1. Parses the file into records
    2. Loads the reference catalog (tags, categories, locations, statuses)
    3. Fetches the persisted keys once for the whole file
    4. Validates every row and stores the session
    """

    def __init__(
        self,
        parser: ITabularParser,
        key_lookup: IImportKeyLookup,
        catalog_source: IReferenceCatalogSource,
        sessions: IImportSessionStore,
    ):
        """Initialize the use case.

        Args:
            parser: Parser for Excel/CSV files
            key_lookup: Existence checks against the record store
            catalog_source: Source of reference names
            sessions: Where previewed sessions are kept
        """
        self.parser = parser
        self.lookup = key_lookup
        self.catalog_source = catalog_source
        self.sessions = sessions

    async def execute(
        self,
        kind: ImportKind,
        file_content: bytes,
        filename: Optional[str] = None,
    ) -> ImportSession:
        """Execute the use case.

        Raises:
            ValidationError: If the file cannot be read or lacks the key column
        """
        logger.info(f"Previewing {kind.value} import: {filename or 'unknown'}")

        catalog = await self.catalog_source.load_catalog()
        engine = BulkValidationEngine(catalog)

        if kind == ImportKind.PHONE_LINES:
            records = self.parser.parse_phone_lines(file_content, filename or "")
            numbers = sorted({r.phone_number for r in records if r.phone_number})
            existing = await self.lookup.existing_phone_numbers(numbers)
            snapshot = PersistedKeySnapshot(existing=set(existing), looked_up=set(numbers))
            rows = engine.validate_phone_lines(records, snapshot)
        else:
            records = self.parser.parse_assets(file_content, filename or "")
            snapshot = PersistedKeySnapshot(existing=set(await self.lookup.all_asset_numbers()))
            rows = engine.validate_assets(records, snapshot)

        session = ImportSession(
            id=uuid.uuid4().hex,
            kind=kind,
            rows=rows,
            snapshot=snapshot,
            catalog=catalog,
            filename=filename,
        )
        await self.sessions.save(session)

        logger.info(
            f"Import session {session.id}: {len(rows)} rows, "
            f"{len(session.importable_rows)} importable"
        )
        return session
