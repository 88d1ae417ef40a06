"""Edit and revalidate a single preview row."""

import logging
from typing import Any, Mapping

from ...common.exceptions import NotFoundError, ValidationError
from ..domain.entities import ImportKind, ImportRow, ImportSession
from ..domain.ports import IImportKeyLookup, IImportSessionStore
from ..domain.validation import BulkValidationEngine

logger = logging.getLogger(__name__)


class RevalidateRowUseCase:
    """Apply an operator's edit to one row and re-run its checks.

    Other rows keep their flags. When the edited key was not covered by
    the session's snapshot, one existence check is made and cached.
    """

    def __init__(self, key_lookup: IImportKeyLookup, sessions: IImportSessionStore):
        self.lookup = key_lookup
        self.sessions = sessions

    async def load_session(self, session_id: str) -> ImportSession:
        session = await self.sessions.get(session_id)
        if session is None:
            raise NotFoundError(
                f"Import session {session_id} not found or expired",
                resource="import_session",
                resource_id=session_id,
            )
        return session

    async def execute(self, session_id: str, row_index: int, changes: Mapping[str, Any]) -> ImportRow:
        """Execute the use case.

        Returns:
            The revalidated row

        Raises:
            NotFoundError: If the session is unknown or expired
            ValidationError: If the index is out of range or a field is not editable
        """
        session = await self.load_session(session_id)
        engine = BulkValidationEngine(session.catalog)

        if not 0 <= row_index < len(session.rows):
            raise ValidationError(
                f"Row {row_index} does not exist",
                field_errors={"row_index": f"Expected 0..{len(session.rows) - 1}"},
            )

        session.rows[row_index] = engine.apply_edit(session.rows[row_index], changes)
        key = session.rows[row_index].key
        if key and not session.snapshot.knows(key):
            if session.kind == ImportKind.PHONE_LINES:
                exists = await self.lookup.phone_number_exists(key)
            else:
                exists = await self.lookup.asset_number_exists(key)
            session.snapshot.remember(key, exists)

        row = engine.revalidate_row(session.rows, row_index, session.snapshot)
        await self.sessions.save(session)

        logger.info(
            f"Revalidated row {row_index} of session {session_id}: "
            f"can_import={row.can_import}"
        )
        return row
