"""Core data models for the ctxzip compaction pipeline."""

import json
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any


# Key names used by Claude session transcripts
CACHE_CREATION_KEY = "cache_creation_input_tokens"
CACHE_READ_KEY = "cache_read_input_tokens"


@dataclass(frozen=True)
class Checkpoint:
    """A cumulative cost measurement taken at a turn boundary."""
    line: int
    tokens: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {"line": self.line, "tokens": self.tokens}


@dataclass(frozen=True)
class ReconciledCheckpoint:
    """A checkpoint that survived backward elimination."""
    line: int
    tokens: int
    diff: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {"line": self.line, "tokens": self.tokens, "diff": self.diff}


@dataclass
class Span:
    """
    A removable region of the log between two adjacent checkpoints.

    Covers lines ``start_line..end_line`` inclusive. The line at
    ``end_line`` is the next checkpoint's user turn, which survives
    removal as the resumption anchor.
    """
    start_line: int
    end_line: int
    savings: int
    index: int = 0
    relevance: float = 0.0

    @property
    def line_count(self) -> int:
        """Get number of log lines covered by this span."""
        return self.end_line - self.start_line + 1

    def contains(self, line: int) -> bool:
        """Check if a log line falls inside this span."""
        return self.start_line <= line <= self.end_line

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "index": self.index,
            "start_line": self.start_line,
            "end_line": self.end_line,
            "savings": self.savings,
            "relevance": self.relevance
        }


@dataclass
class LogEntry:
    """A single physical line of a session log, parsed when possible."""
    line_number: int
    raw: str
    data: Optional[Dict[str, Any]] = None
    modified: bool = False

    @classmethod
    def parse(cls, line_number: int, raw: str) -> "LogEntry":
        """Create from a raw log line. Non-object JSON is kept opaque."""
        try:
            data = json.loads(raw)
        except ValueError:
            data = None
        if not isinstance(data, dict):
            data = None
        return cls(line_number=line_number, raw=raw, data=data)

    @property
    def is_parsed(self) -> bool:
        return self.data is not None

    @property
    def entry_type(self) -> Optional[str]:
        return self.data.get("type") if self.data else None

    @property
    def uuid(self) -> Optional[str]:
        return self.data.get("uuid") if self.data else None

    @property
    def parent_uuid(self) -> Optional[str]:
        return self.data.get("parentUuid") if self.data else None

    @property
    def message(self) -> Dict[str, Any]:
        if not self.data:
            return {}
        message = self.data.get("message")
        return message if isinstance(message, dict) else {}

    @property
    def usage(self) -> Optional[Dict[str, Any]]:
        usage = self.message.get("usage")
        return usage if isinstance(usage, dict) else None

    @property
    def is_user_turn(self) -> bool:
        """Check if this entry is a user turn carrying flat text content."""
        return (
            self.entry_type == "user"
            and self.message.get("role") == "user"
            and isinstance(self.message.get("content"), str)
        )

    @property
    def user_content(self) -> Optional[str]:
        """Get the text of a user turn, or None for other entries."""
        if not self.is_user_turn:
            return None
        return self.message["content"] or None

    def usage_tokens(self) -> Optional[int]:
        """
        Get the cumulative cost recorded on this entry.

        Returns:
            Sum of cache creation and cache read counters, or None
            if the entry has no usage sub-record
        """
        usage = self.usage
        if usage is None:
            return None
        return _as_int(usage.get(CACHE_CREATION_KEY)) + _as_int(usage.get(CACHE_READ_KEY))

    def set_parent_uuid(self, parent_uuid: str) -> None:
        """Point this entry's back-reference at another entry."""
        if self.data is None or self.data.get("parentUuid") == parent_uuid:
            return
        self.data["parentUuid"] = parent_uuid
        self.modified = True

    def reduce_cache_read(self, amount: int) -> None:
        """Subtract from the cache read counter, flooring at zero."""
        usage = self.usage
        if usage is None:
            return
        current = _as_int(usage.get(CACHE_READ_KEY))
        if current <= 0:
            return
        usage[CACHE_READ_KEY] = max(0, current - amount)
        self.modified = True

    def serialize(self) -> str:
        """Render the entry back to a log line."""
        if self.data is None or not self.modified:
            return self.raw
        return json.dumps(self.data, ensure_ascii=False, separators=(",", ":"))


@dataclass
class SelectionResult:
    """Outcome of span selection against a token target."""
    kept_spans: List[Span]
    removed_spans: List[Span]
    current_tokens: int
    target_tokens: int
    final_tokens: int

    @property
    def tokens_saved(self) -> int:
        return self.current_tokens - self.final_tokens

    @property
    def reduction_pct(self) -> float:
        """Get the achieved reduction as a percentage of the current total."""
        if self.current_tokens <= 0:
            return 0.0
        return (1 - self.final_tokens / self.current_tokens) * 100

    @property
    def target_met(self) -> bool:
        return self.final_tokens <= self.target_tokens

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "current_tokens": self.current_tokens,
            "target_tokens": self.target_tokens,
            "final_tokens": self.final_tokens,
            "tokens_saved": self.tokens_saved,
            "reduction_pct": self.reduction_pct,
            "target_met": self.target_met,
            "removed_spans": [s.to_dict() for s in self.removed_spans],
            "kept_span_count": len(self.kept_spans)
        }


@dataclass
class RewriteResult:
    """Rewritten log lines and line statistics."""
    lines: List[str]
    original_lines: int

    @property
    def optimized_lines(self) -> int:
        return len(self.lines)

    @property
    def removed_lines(self) -> int:
        return self.original_lines - self.optimized_lines

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "original_lines": self.original_lines,
            "optimized_lines": self.optimized_lines,
            "removed_lines": self.removed_lines
        }


@dataclass
class CompactionPlan:
    """Everything computed for one log before any file is touched."""
    total_lines: int
    current_tokens: int
    target_tokens: int
    checkpoints: List[ReconciledCheckpoint] = field(default_factory=list)
    spans: List[Span] = field(default_factory=list)
    selection: Optional[SelectionResult] = None

    @property
    def needs_compaction(self) -> bool:
        """Check if the log is over its target."""
        return self.current_tokens > self.target_tokens

    @property
    def final_tokens(self) -> int:
        if self.selection is None:
            return self.current_tokens
        return self.selection.final_tokens

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "total_lines": self.total_lines,
            "current_tokens": self.current_tokens,
            "target_tokens": self.target_tokens,
            "final_tokens": self.final_tokens,
            "needs_compaction": self.needs_compaction,
            "checkpoint_count": len(self.checkpoints),
            "span_count": len(self.spans),
            "selection": self.selection.to_dict() if self.selection else None
        }


@dataclass
class CompactionOutcome:
    """Result of running compaction against a session file."""
    path: str
    plan: CompactionPlan
    preview: bool = False
    rewrite: Optional[RewriteResult] = None
    backup_path: Optional[str] = None

    @property
    def applied(self) -> bool:
        return not self.preview and self.backup_path is not None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "path": self.path,
            "preview": self.preview,
            "applied": self.applied,
            "backup_path": self.backup_path,
            "plan": self.plan.to_dict(),
            "rewrite": self.rewrite.to_dict() if self.rewrite else None
        }


def _as_int(value: Any) -> int:
    """Coerce a usage counter to int, treating absent or malformed values as 0."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    return 0
