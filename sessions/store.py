"""Session discovery, file access and backup/restore for Claude projects."""

import os
import re
import shutil
import tempfile
import time
import logging
from datetime import datetime
from typing import List, Optional

from config import get_settings
from sessions.errors import BackupNotFoundError, SessionNotFoundError
from sessions.models import BackupInfo, SessionInfo

logger = logging.getLogger(__name__)


SESSION_ID_PATTERN = re.compile(
    r"^[a-f0-9]{8}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{4}-[a-f0-9]{12}$",
    re.IGNORECASE
)
CACHE_READ_PATTERN = re.compile(r'"cache_read_input_tokens"\s*:\s*(\d+)')
USER_ENTRY_MARKER = '"type":"user"'
BACKUP_SEPARATOR = ".backup."


class SessionStore:
    """
    Locates and manages session logs of one Claude project.

    Claude keeps a project's sessions under
    ``<projects_dir>/<project path with "/" replaced by "-">/<id>.jsonl``.
    """

    def __init__(
        self,
        projects_dir: Optional[str] = None,
        project_path: Optional[str] = None
    ):
        """
        Initialize the store.

        Args:
            projects_dir: Claude projects directory (default from settings)
            project_path: Working directory whose sessions to manage (default: cwd)
        """
        self.projects_dir = projects_dir or get_settings().get_projects_path()
        self.project_path = project_path or os.getcwd()

    @property
    def project_dir(self) -> str:
        """Get the directory holding this project's session logs."""
        folder_name = self.project_path.replace("/", "-")
        return os.path.join(self.projects_dir, folder_name)

    def session_files(self) -> List[str]:
        """
        Get all session logs of the project, newest first.

        Raises:
            SessionNotFoundError: If the project directory does not exist
        """
        if not os.path.isdir(self.project_dir):
            raise SessionNotFoundError(f"Claude project directory not found: {self.project_dir}")

        paths = [
            os.path.join(self.project_dir, name)
            for name in os.listdir(self.project_dir)
            if name.endswith(".jsonl")
        ]
        return sorted(paths, key=os.path.getmtime, reverse=True)

    def most_recent(self) -> str:
        """Get the most recently modified session log."""
        files = self.session_files()
        if not files:
            raise SessionNotFoundError(f"No JSONL files found in: {self.project_dir}")

        logger.info(f"Found {len(files)} JSONL files, using most recent: {os.path.basename(files[0])}")
        return files[0]

    def resolve(self, session: Optional[str] = None) -> str:
        """
        Resolve a file path or session ID to a session log.

        Args:
            session: Existing file path, session UUID, or None for the most recent

        Returns:
            Path to the session log

        Raises:
            SessionNotFoundError: If nothing matches
        """
        if not session:
            return self.most_recent()

        if os.path.isfile(session):
            logger.info(f"Using specified file: {os.path.basename(session)}")
            return session

        if SESSION_ID_PATTERN.match(session):
            path = self.find(session)
            logger.info(f"Using session: {session}")
            return path

        raise SessionNotFoundError(f"No such file or session ID: {session}")

    def find(self, session_id: str) -> str:
        """
        Get the log of a session by UUID.

        Raises:
            SessionNotFoundError: If the ID is malformed or has no log
        """
        if not SESSION_ID_PATTERN.match(session_id):
            raise SessionNotFoundError(f"Invalid session ID: {session_id}")

        path = os.path.join(self.project_dir, f"{session_id}.jsonl")
        if not os.path.isfile(path):
            raise SessionNotFoundError(f"Session not found: {session_id}")
        return path

    def list_sessions(self, ctx_limit: Optional[int] = None) -> List[SessionInfo]:
        """
        Summarize every session of the project, newest first.

        Token counts come from the last cache read counter in each file;
        files that can not be read report zeros.
        """
        ctx_limit = ctx_limit or get_settings().ctx_limit
        sessions: List[SessionInfo] = []

        for path in self.session_files():
            tokens, messages = 0, 0
            try:
                tokens, messages = self._quick_stats(path)
            except OSError as e:
                logger.warning(f"Could not read session {path}: {e}")

            sessions.append(SessionInfo(
                session_id=os.path.basename(path)[:-len(".jsonl")],
                path=path,
                modified_at=datetime.fromtimestamp(os.path.getmtime(path)),
                tokens=tokens,
                messages=messages,
                usage_pct=round(tokens / ctx_limit * 100) if ctx_limit > 0 else 0
            ))

        return sessions

    def _quick_stats(self, path: str):
        """Get (last cache read tokens, user entry count) without parsing JSON."""
        lines = [line for line in self.read_lines(path) if line.strip()]
        messages = sum(1 for line in lines if USER_ENTRY_MARKER in line)

        tokens = 0
        for line in reversed(lines):
            match = CACHE_READ_PATTERN.search(line)
            if match:
                tokens = int(match.group(1))
                break
        return tokens, messages

    def read_lines(self, path: str) -> List[str]:
        """
        Read a log into lines.

        Accepts ``\\n`` and ``\\r\\n`` endings; a trailing newline does not
        produce an extra empty line. Invalid UTF-8 bytes are carried as
        surrogate escapes and written back unchanged by ``write_lines``.
        """
        with open(path, "r", encoding="utf-8", errors="surrogateescape", newline="") as f:
            text = f.read()

        lines = text.split("\n")
        if lines and lines[-1] == "":
            lines.pop()
        return [line[:-1] if line.endswith("\r") else line for line in lines]

    def write_lines(self, path: str, lines: List[str]) -> None:
        """Replace a log atomically with the given lines."""
        directory = os.path.dirname(os.path.abspath(path))
        fd, tmp_path = tempfile.mkstemp(prefix=".ctxzip-", suffix=".tmp", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8", errors="surrogateescape", newline="") as f:
                f.write("\n".join(lines) + "\n")
            shutil.copymode(path, tmp_path)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def backup(self, path: str) -> str:
        """Copy a log to ``<path>.backup.<epoch ms>`` and return the copy's path."""
        backup_path = f"{path}{BACKUP_SEPARATOR}{int(time.time() * 1000)}"
        shutil.copy2(path, backup_path)
        logger.debug(f"Copied {path} to {backup_path}")
        return backup_path

    def list_backups(self, path: str) -> List[BackupInfo]:
        """Get the backups of a log, newest first."""
        directory = os.path.dirname(os.path.abspath(path))
        prefix = os.path.basename(path) + BACKUP_SEPARATOR

        backups: List[BackupInfo] = []
        for name in os.listdir(directory):
            if not name.startswith(prefix):
                continue
            suffix = name[len(prefix):]
            if not suffix.isdigit():
                continue
            backups.append(BackupInfo(path=os.path.join(directory, name), timestamp_ms=int(suffix)))

        return sorted(backups, key=lambda b: b.timestamp_ms, reverse=True)

    def restore(self, path: str) -> BackupInfo:
        """
        Restore a log from its most recent backup.

        Raises:
            BackupNotFoundError: If the log has no backup
        """
        backups = self.list_backups(path)
        if not backups:
            raise BackupNotFoundError(f"No backup files found for {os.path.basename(path)}")

        latest = backups[0]
        logger.info(f"Found {len(backups)} backup(s), using most recent: {latest.name}")
        shutil.copyfile(latest.path, path)
        return latest
