"""Data models for session discovery."""

import os
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Any


@dataclass
class SessionInfo:
    """Summary of one session log in a project directory."""
    session_id: str
    path: str
    modified_at: datetime
    tokens: int = 0
    messages: int = 0
    usage_pct: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "session_id": self.session_id,
            "path": self.path,
            "modified_at": self.modified_at.isoformat(),
            "tokens": self.tokens,
            "messages": self.messages,
            "usage_pct": self.usage_pct
        }


@dataclass
class BackupInfo:
    """A timestamped backup copy of a session log."""
    path: str
    timestamp_ms: int

    @property
    def name(self) -> str:
        return os.path.basename(self.path)
