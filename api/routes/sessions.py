"""Session API routes: listing, context usage, preview, compaction, restore.

Handlers do blocking file I/O and are plain functions, run in FastAPI's
threadpool.
"""

import logging
import os
from typing import Optional, Union
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from compaction.compactor import ContextCompactor, parse_target
from config import get_settings
from sessions.errors import SessionError
from sessions.store import SessionStore

logger = logging.getLogger(__name__)
router = APIRouter()

LATEST = "latest"


class CompactionRequest(BaseModel):
    """Compaction parameters; unset fields use the configured defaults."""
    target: Optional[Union[int, str]] = Field(
        default=None,
        description="Percentage to remove (\"40%\") or absolute token target (120000)"
    )
    ctx_limit: Optional[int] = Field(default=None, gt=0, description="Context limit for percentage targets")
    protect_start: Optional[int] = Field(default=None, ge=0, description="Leading spans never removed")
    protect_end: Optional[int] = Field(default=None, ge=0, description="Trailing spans never removed")


class ContextUsageResponse(BaseModel):
    """Current context usage of a session."""
    session_id: str
    tokens: int
    ctx_limit: int
    usage_pct: int
    messages: int


def get_session_store() -> SessionStore:
    """Dependency providing the session store for the configured project."""
    return SessionStore()


def _session_path(store: SessionStore, session_id: str) -> str:
    """Map a session ID (or "latest") to its log file."""
    if session_id == LATEST:
        return store.most_recent()
    return store.find(session_id)


def _session_id(path: str) -> str:
    return os.path.basename(path)[:-len(".jsonl")]


def _run_compaction(store: SessionStore, session_id: str, request: CompactionRequest, preview: bool) -> dict:
    """Shared body of the preview and compact endpoints."""
    settings = get_settings()
    ctx_limit = request.ctx_limit or settings.ctx_limit

    try:
        target_tokens = parse_target(request.target, ctx_limit)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        path = _session_path(store, session_id)
        compactor = ContextCompactor(
            protect_start=request.protect_start,
            protect_end=request.protect_end
        )
        outcome = compactor.compact_file(path, target_tokens, store, preview=preview)
    except SessionError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Compaction failed for {session_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    result = outcome.to_dict()
    result["session_id"] = _session_id(path)
    return result


@router.get("")
def list_sessions(store: SessionStore = Depends(get_session_store)):
    """List the sessions of the configured project, newest first."""
    try:
        sessions = store.list_sessions(get_settings().ctx_limit)
    except SessionError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return {
        "project_dir": store.project_dir,
        "sessions": [s.to_dict() for s in sessions]
    }


@router.get("/{session_id}/context", response_model=ContextUsageResponse)
def get_context_usage(
    session_id: str,
    ctx_limit: Optional[int] = None,
    store: SessionStore = Depends(get_session_store)
):
    """Get the reconciled context usage of a session."""
    ctx_limit = ctx_limit or get_settings().ctx_limit
    try:
        path = _session_path(store, session_id)
        checkpoints, tokens = ContextCompactor().measure(store.read_lines(path))
    except SessionError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to measure session {session_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    return ContextUsageResponse(
        session_id=_session_id(path),
        tokens=tokens,
        ctx_limit=ctx_limit,
        usage_pct=round(tokens / ctx_limit * 100) if ctx_limit > 0 else 0,
        messages=len(checkpoints)
    )


@router.post("/{session_id}/preview")
def preview_compaction(
    session_id: str,
    request: CompactionRequest,
    store: SessionStore = Depends(get_session_store)
):
    """
    Show which spans would be removed.

    Never writes to the session file.
    """
    return _run_compaction(store, session_id, request, preview=True)


@router.post("/{session_id}/compact")
def compact_session(
    session_id: str,
    request: CompactionRequest,
    store: SessionStore = Depends(get_session_store)
):
    """Compact a session in place, keeping a timestamped backup."""
    return _run_compaction(store, session_id, request, preview=False)


@router.post("/{session_id}/restore")
def restore_session(
    session_id: str,
    store: SessionStore = Depends(get_session_store)
):
    """Restore a session from its most recent backup."""
    try:
        path = _session_path(store, session_id)
        backup = store.restore(path)
    except SessionError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return {
        "session_id": _session_id(path),
        "restored_from": backup.name,
        "status": "restored"
    }
