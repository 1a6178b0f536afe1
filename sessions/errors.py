"""Exceptions raised by the session store."""


class SessionError(Exception):
    """Base exception for session lookup and file operations."""
    pass


class SessionNotFoundError(SessionError):
    """Raised when a project directory or session log can not be found."""
    pass


class BackupNotFoundError(SessionError):
    """Raised when restoring a session that has no backup."""
    pass
