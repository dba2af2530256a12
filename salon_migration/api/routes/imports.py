"""Import session endpoints: upload, status, confirm, cancel, report and triage."""

import base64
import binascii
import logging
from typing import List

from fastapi import APIRouter, BackgroundTasks, HTTPException
from fastapi.responses import PlainTextResponse

from ...exceptions import ImportBlockedError, MigrationError, PreflightError, SessionStateError, StorageError
from ...models.record import SourceFile
from ...models.session import ImportOptions, MergeStrategy, SessionStatus
from ...orchestrator import ImportSession
from ...services.history import ImportHistory
from ...services.triage import ClientTriage
from ..models import (
    ClientEditsRequest,
    ConfirmRequest,
    FileEncodingEnum,
    ImportCreate,
    IncompleteClientResponse,
    MarkForUpdateRequest,
    SessionResponse,
    UploadedFile,
    WriteResultItem,
    WriteResultResponse,
)
from ..sessions import session_store

logger = logging.getLogger(__name__)

router = APIRouter()

FINISHED = (SessionStatus.CONCLUIDO, SessionStatus.CANCELADO)


def _decode(upload: UploadedFile) -> SourceFile:
    if upload.encoding == FileEncodingEnum.BASE64:
        try:
            content = base64.b64decode(upload.content, validate=True)
        except (binascii.Error, ValueError):
            raise HTTPException(status_code=400, detail=f"Invalid base64 content in {upload.name}")
        return SourceFile(name=upload.name, content=content)
    return SourceFile.from_text(upload.name, upload.content)


def _get_session(session_id: str) -> ImportSession:
    session = session_store.get(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Import session not found")
    return session


def _write_results(responses) -> WriteResultResponse:
    items = [
        WriteResultItem(client_id=str(cid), success=r.ok, error=r.error_message or None)
        for cid, r in responses.items()
    ]
    succeeded = sum(1 for item in items if item.success)
    return WriteResultResponse(
        total=len(items), succeeded=succeeded, failed=len(items) - succeeded, results=items
    )


@router.post("", response_model=SessionResponse)
async def create_import(data: ImportCreate):
    """Upload files; they are analyzed and validated right away."""
    if not data.files:
        raise HTTPException(status_code=400, detail="No files uploaded")

    files = [_decode(f) for f in data.files]
    options = ImportOptions(**data.options.model_dump()) if data.options else None

    try:
        session = session_store.create()
        session.analyze(
            files,
            options=options,
            selected=data.selected,
            entity_overrides=data.entity_overrides,
        )
        await session.validate()
    except PreflightError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return session.to_dict()


@router.get("/history")
async def import_history(limit: int = 10):
    """Most recent imports recorded in the log table."""
    try:
        rows = await ImportHistory(session_store.storage).recent(limit)
    except StorageError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except PreflightError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"imports": rows, "total": len(rows)}


@router.get("/{session_id}", response_model=SessionResponse)
async def get_import(session_id: str):
    """Get a session's status, validation and progress."""
    return _get_session(session_id).to_dict()


@router.post("/{session_id}/confirm")
async def confirm_import(session_id: str, data: ConfirmRequest, background_tasks: BackgroundTasks):
    """Confirm a validated session and start the import."""
    session = _get_session(session_id)
    strategy = MergeStrategy(data.strategy.value) if data.strategy else None

    try:
        session.confirm(strategy, force=data.force)
    except ImportBlockedError as e:
        raise HTTPException(
            status_code=409,
            detail={"message": str(e), "total_criticos": e.total_criticos, "findings": e.messages},
        )
    except SessionStateError as e:
        raise HTTPException(status_code=400, detail=str(e))

    background_tasks.add_task(run_import_task, session_id)
    return {"status": "started", "session_id": session_id, "forced": session.result.forced}


@router.post("/{session_id}/cancel")
async def cancel_import(session_id: str):
    """Cancel a running import after its current batch."""
    session = _get_session(session_id)
    try:
        session.cancel()
    except SessionStateError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"status": "cancelling"}


@router.get("/{session_id}/report", response_class=PlainTextResponse)
async def get_report(session_id: str):
    """Plain-text report, one line per entity."""
    session = _get_session(session_id)
    if session.status not in FINISHED:
        raise HTTPException(
            status_code=400,
            detail=f"Report not available in status: {session.status.value}"
        )
    return PlainTextResponse(session.result.to_report())


@router.get("/{session_id}/incomplete", response_model=List[IncompleteClientResponse])
async def get_incomplete_clients(session_id: str):
    """Imported clients missing e-mail, birth date or address."""
    session = _get_session(session_id)
    return [c.to_dict() for c in session.result.incomplete_clients]


@router.post("/{session_id}/incomplete/edits", response_model=WriteResultResponse)
async def edit_incomplete_clients(session_id: str, data: ClientEditsRequest):
    """Save inline corrections for incomplete clients."""
    session = _get_session(session_id)
    if session.status not in FINISHED:
        raise HTTPException(status_code=400, detail="Import has not finished")

    responses = await ClientTriage(session.storage).apply_edits(data.edits)
    return _write_results(responses)


@router.post("/{session_id}/incomplete/mark", response_model=WriteResultResponse)
async def mark_incomplete_clients(session_id: str, data: MarkForUpdateRequest):
    """Flag clients to be completed at their next visit."""
    session = _get_session(session_id)
    if session.status not in FINISHED:
        raise HTTPException(status_code=400, detail="Import has not finished")

    responses = await ClientTriage(session.storage).mark_for_later_update(data.client_ids)
    return _write_results(responses)


async def run_import_task(session_id: str):
    """Background task running a confirmed import."""
    session = session_store.get(session_id)
    if not session:
        return

    try:
        result = await session.run()
        logger.info(f"Import {session_id} finished: {result.status.value}")
    except MigrationError as e:
        logger.error(f"Import {session_id} failed: {e}")
        session.result.warnings.append(str(e))
