"""Commit import use case.

Writes the importable rows of a session one at a time. A failing row is
counted and reported; processing continues with the next row.
"""

import logging
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

from ...common.exceptions import ErrorCollector, NotFoundError
from ..domain.entities import (
    AssetImportRow,
    CommitResult,
    ImportProgress,
    ImportRow,
    ImportSession,
    RowError,
)
from ..domain.ports import IImportSessionStore, IImportWriter

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ImportProgress], Awaitable[None]]


class CommitImportUseCase:
    """Persist the importable rows of a previewed session."""

    def __init__(self, writer: IImportWriter, sessions: IImportSessionStore):
        """Initialize the use case.

        Args:
            writer: Record store writer
            sessions: Session storage; the session is discarded after commit
        """
        self.writer = writer
        self.sessions = sessions

    async def execute(
        self,
        session_id: str,
        actor: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> CommitResult:
        """Execute the commit.

        Args:
            session_id: Session returned by the preview
            actor: Who runs the import, recorded in the audit log
            on_progress: Awaited after every processed row

        Returns:
            CommitResult with per-row errors

        Raises:
            NotFoundError: If the session is unknown or expired
        """
        session = await self._load(session_id)
        result = self._empty_result(session)
        async for progress in self._commit_rows(session, result, actor):
            if on_progress is not None:
                await on_progress(progress)
        return result

    async def execute_with_progress(
        self,
        session_id: str,
        actor: Optional[str] = None,
    ) -> AsyncIterator[dict[str, Any]]:
        """Run the commit, yielding a progress event per row and a final complete event.

        Raises:
            NotFoundError: If the session is unknown or expired
        """
        session = await self._load(session_id)
        result = self._empty_result(session)
        yield ImportProgress(0, result.total, 0, 0).to_dict()
        async for progress in self._commit_rows(session, result, actor):
            yield progress.to_dict()
        yield result.to_dict()

    async def _load(self, session_id: str) -> ImportSession:
        session = await self.sessions.get(session_id)
        if session is None:
            raise NotFoundError(
                f"Import session {session_id} not found or expired",
                resource="import_session",
                resource_id=session_id,
            )
        return session

    @staticmethod
    def _empty_result(session: ImportSession) -> CommitResult:
        importable = len(session.importable_rows)
        return CommitResult(total=importable, skipped_count=len(session.rows) - importable)

    async def _commit_rows(
        self,
        session: ImportSession,
        result: CommitResult,
        actor: Optional[str],
    ) -> AsyncIterator[ImportProgress]:
        rows = session.importable_rows
        collector = ErrorCollector()
        logger.info(f"Committing {len(rows)} of {len(session.rows)} rows from session {session.id}")

        for processed, row in enumerate(rows, start=1):
            try:
                await self._write(session, row, actor)
                result.success_count += 1
            except Exception as e:
                logger.warning(f"Row {row.row_number} ({row.key}) failed: {e}")
                collector.add(e, context={"row": row.row_number, "key": row.key})
            result.error_count = collector.count()

            yield ImportProgress(
                processed=processed,
                total=len(rows),
                success_count=result.success_count,
                error_count=result.error_count,
            )

        result.errors = [
            RowError(context["row"], context["key"], message)
            for context, message in collector.entries()
        ]
        await self.sessions.discard(session.id)

        summary = (
            f"Import session {session.id} committed: "
            f"{result.success_count} created, {result.error_count} failed, "
            f"{result.skipped_count} skipped"
        )
        if collector.has_errors():
            logger.warning(summary)
        else:
            logger.info(summary)

    async def _write(self, session: ImportSession, row: ImportRow, actor: Optional[str]) -> None:
        if isinstance(row, AssetImportRow):
            status = row.status if row.status and row.is_status_valid else session.catalog.default_status
            await self.writer.create_asset(row, status)
        else:
            await self.writer.create_phone_line(row, actor=actor)
