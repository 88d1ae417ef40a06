"""FastAPI router for bulk import endpoints."""

import asyncio
import contextlib
import json
import logging

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from fastapi.responses import StreamingResponse

from ...common.error_sanitizer import sanitize_error_message
from ...common.exceptions import TelrouteError
from ...topology.api.errors import to_http_exception
from ..domain.entities import CommitResult, ImportKind, ImportRow, ImportSession
from ..domain.ports import IImportSessionStore
from ..use_cases import CommitImportUseCase, PreviewImportUseCase, RevalidateRowUseCase
from .dependencies import (
    get_commit_import,
    get_preview_import,
    get_revalidate_row,
    get_session_store,
    verify_api_key,
)
from .schemas import (
    CommitRequest,
    CommitResponse,
    ImportRowDTO,
    ImportSessionResponse,
    RowEditRequest,
    RowErrorDTO,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/import",
    tags=["Bulk Import"],
    dependencies=[Depends(verify_api_key)],
)

# File upload limits
MAX_UPLOAD_SIZE_MB = 10
MAX_UPLOAD_SIZE_BYTES = MAX_UPLOAD_SIZE_MB * 1024 * 1024  # 10 MB


def _row_dto(row: ImportRow) -> ImportRowDTO:
    return ImportRowDTO(
        row_index=row.row_index,
        row_number=row.row_number,
        can_import=row.can_import,
        fields=row.to_dict(),
    )


def _session_response(session: ImportSession) -> ImportSessionResponse:
    data = session.to_dict()
    return ImportSessionResponse(
        session_id=data["session_id"],
        kind=data["kind"],
        filename=data["filename"],
        total_rows=data["total_rows"],
        importable_rows=data["importable_rows"],
        rows=[_row_dto(r) for r in session.rows],
        created_at=data["created_at"],
    )


def _commit_response(result: CommitResult) -> CommitResponse:
    return CommitResponse(
        total=result.total,
        success_count=result.success_count,
        error_count=result.error_count,
        skipped_count=result.skipped_count,
        errors=[RowErrorDTO(**e.to_dict()) for e in result.errors],
    )


async def _read_upload(file: UploadFile) -> bytes:
    """Read an uploaded sheet, rejecting missing, unsupported or oversized files."""
    if not file.filename:
        raise HTTPException(status_code=400, detail=sanitize_error_message("Filename is required"))

    if not file.filename.lower().endswith((".xlsx", ".csv")):
        raise HTTPException(
            status_code=400,
            detail=sanitize_error_message("File must be an Excel (.xlsx) or CSV (.csv) file"),
        )

    # Check content-length header if available (early rejection)
    if file.size and file.size > MAX_UPLOAD_SIZE_BYTES:
        raise HTTPException(
            status_code=413,
            detail=sanitize_error_message(f"File too large. Maximum size is {MAX_UPLOAD_SIZE_MB} MB"),
        )

    content = await file.read()
    if len(content) == 0:
        raise HTTPException(status_code=400, detail=sanitize_error_message("File is empty"))

    if len(content) > MAX_UPLOAD_SIZE_BYTES:
        raise HTTPException(
            status_code=413,
            detail=sanitize_error_message(f"File too large. Maximum size is {MAX_UPLOAD_SIZE_MB} MB"),
        )
    return content


async def _preview(kind: ImportKind, file: UploadFile, use_case: PreviewImportUseCase) -> ImportSessionResponse:
    content = await _read_upload(file)
    try:
        session = await use_case.execute(kind, content, filename=file.filename)
    except TelrouteError as e:
        raise to_http_exception(e)
    return _session_response(session)


# ========== Preview ==========


@router.post("/phone-lines/preview", response_model=ImportSessionResponse)
async def preview_phone_lines(
    file: UploadFile = File(...),
    use_case: PreviewImportUseCase = Depends(get_preview_import),
):
    """Upload a phone line sheet and get the validated preview.

    The sheet should have columns:
    - شماره تلفن / Phone Number (required)
    - مصرف کننده/واحد / Consumer (optional)
    - تگ‌ها / Tags (optional, comma-separated)

    Max file size: 10 MB
    """
    return await _preview(ImportKind.PHONE_LINES, file, use_case)


@router.post("/assets/preview", response_model=ImportSessionResponse)
async def preview_assets(
    file: UploadFile = File(...),
    use_case: PreviewImportUseCase = Depends(get_preview_import),
):
    """Upload an asset sheet and get the validated preview.

    Only the asset number column is required. Category, location and
    status names that match nothing are reported and imported as empty.

    Max file size: 10 MB
    """
    return await _preview(ImportKind.ASSETS, file, use_case)


# ========== Sessions ==========


@router.get("/sessions/{session_id}", response_model=ImportSessionResponse)
async def get_session(
    session_id: str,
    use_case: RevalidateRowUseCase = Depends(get_revalidate_row),
):
    try:
        return _session_response(await use_case.load_session(session_id))
    except TelrouteError as e:
        raise to_http_exception(e)


@router.delete("/sessions/{session_id}", status_code=204)
async def discard_session(
    session_id: str,
    sessions: IImportSessionStore = Depends(get_session_store),
):
    """Drop a preview without importing anything."""
    await sessions.discard(session_id)


@router.patch("/sessions/{session_id}/rows/{row_index}", response_model=ImportRowDTO)
async def edit_row(
    session_id: str,
    row_index: int,
    body: RowEditRequest,
    use_case: RevalidateRowUseCase = Depends(get_revalidate_row),
):
    """Edit one preview row; only that row's flags are recomputed."""
    try:
        row = await use_case.execute(session_id, row_index, body.changes)
    except TelrouteError as e:
        raise to_http_exception(e)
    return _row_dto(row)


# ========== Commit ==========


@router.post("/sessions/{session_id}/commit", response_model=CommitResponse)
async def commit_session(
    session_id: str,
    body: CommitRequest,
    use_case: CommitImportUseCase = Depends(get_commit_import),
):
    """Write every importable row. Failing rows are reported, not fatal."""
    try:
        result = await use_case.execute(session_id, actor=body.actor)
    except TelrouteError as e:
        raise to_http_exception(e)
    return _commit_response(result)


@router.post("/sessions/{session_id}/commit-stream")
async def commit_session_stream(
    request: Request,
    session_id: str,
    body: CommitRequest,
    use_case: CommitImportUseCase = Depends(get_commit_import),
):
    """Commit with real-time progress streaming via SSE.

    This endpoint streams progress events as Server-Sent Events (SSE):
    - progress: After each row (processed, total, percent, counts)
    - error: If the commit cannot run
    - complete: Final counts and per-row errors
    """
    # Create queue for event communication between producer and consumer
    queue: asyncio.Queue[str] = asyncio.Queue()
    stop_event = asyncio.Event()

    async def publish(evt: dict):
        """Publish an SSE event to the queue."""
        event_type = evt.get("type", "message")
        data = json.dumps(evt, ensure_ascii=False)
        await queue.put(f"event: {event_type}\ndata: {data}\n\n")

    async def run_commit():
        """Run the commit and publish progress events."""
        try:
            async for event in use_case.execute_with_progress(session_id, actor=body.actor):
                await publish(event)
        except TelrouteError as e:
            logger.warning(f"Commit stream for session {session_id} failed: {e}")
            await publish({
                "type": "error",
                "code": e.code,
                "error": sanitize_error_message(e.message),
            })
        except Exception as e:
            logger.exception("Error in commit-stream")
            await publish({
                "type": "error",
                "error": sanitize_error_message(str(e)),
            })
        finally:
            stop_event.set()

    async def event_generator():
        """Generate SSE events from the queue."""
        task = asyncio.create_task(run_commit())

        try:
            while not (stop_event.is_set() and queue.empty()):
                # Check if client disconnected
                if await request.is_disconnected():
                    logger.info("Client disconnected from SSE stream")
                    break

                try:
                    # Wait for next event with timeout (for keep-alive)
                    chunk = await asyncio.wait_for(queue.get(), timeout=10.0)
                    yield chunk
                except asyncio.TimeoutError:
                    # Send keep-alive comment
                    yield ": keep-alive\n\n"

        except asyncio.CancelledError:
            pass
        finally:
            # Cancel the task if still running
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    headers = {
        "Cache-Control": "no-cache",
        "Connection": "keep-alive",
        "X-Accel-Buffering": "no",  # Disable Nginx buffering
    }

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers=headers,
    )
