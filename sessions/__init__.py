"""Session discovery and file management for Claude project logs."""

from sessions.errors import SessionError, SessionNotFoundError, BackupNotFoundError
from sessions.models import SessionInfo, BackupInfo
from sessions.store import SessionStore

__all__ = [
    "SessionError",
    "SessionNotFoundError",
    "BackupNotFoundError",
    "SessionInfo",
    "BackupInfo",
    "SessionStore",
]
