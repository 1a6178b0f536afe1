"""Series extraction: cumulative cost checkpoints and user-turn content."""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from compaction.models import (
    CACHE_CREATION_KEY,
    CACHE_READ_KEY,
    Checkpoint,
    LogEntry,
)

logger = logging.getLogger(__name__)


# Textual fallbacks for lines that do not parse as JSON objects
USER_TURN_MARKER = re.compile(
    r'"type"\s*:\s*"user"\s*,\s*"message"\s*:\s*\{\s*"role"\s*:\s*"user"\s*,\s*"content"\s*:\s*"'
)
CACHE_READ_PATTERN = re.compile(r'"%s"\s*:\s*(\d+)' % CACHE_READ_KEY)
CACHE_CREATION_PATTERN = re.compile(r'"%s"\s*:\s*(\d+)' % CACHE_CREATION_KEY)


@dataclass
class ExtractedSeries:
    """Checkpoint series plus the content index used for relevance."""
    checkpoints: List[Checkpoint] = field(default_factory=list)
    contents: Dict[int, str] = field(default_factory=dict)

    @property
    def user_turn_count(self) -> int:
        return len(self.contents)


class SeriesExtractor:
    """
    Reads a session log and emits one checkpoint per turn boundary.

    A checkpoint sits on a user turn's line. Its cost is the sum of the
    cache creation and cache read counters carried by the entry that
    immediately follows that user turn.
    """

    def extract(self, lines: Sequence[str]) -> ExtractedSeries:
        """
        Extract checkpoints and user content from raw log lines.

        Args:
            lines: Log lines in file order (line numbers are 1-based)

        Returns:
            ExtractedSeries with checkpoints in line order
        """
        series = ExtractedSeries()
        pending_user_line: Optional[int] = None
        skipped_zero = 0

        for line_number, raw in enumerate(lines, start=1):
            entry = LogEntry.parse(line_number, raw)

            if self._is_user_turn(entry):
                pending_user_line = line_number
                content = entry.user_content
                if content:
                    series.contents[line_number] = content
                continue

            if pending_user_line is None:
                continue

            tokens = self._measure(entry)
            if tokens > 0:
                series.checkpoints.append(Checkpoint(line=pending_user_line, tokens=tokens))
            else:
                skipped_zero += 1
            pending_user_line = None

        logger.debug(
            f"Extracted {len(series.checkpoints)} checkpoints from {len(lines)} lines "
            f"({series.user_turn_count} user turns, {skipped_zero} without cost)"
        )
        return series

    def _is_user_turn(self, entry: LogEntry) -> bool:
        """Check for a user turn, falling back to the raw text for malformed lines."""
        if entry.is_parsed:
            return entry.is_user_turn
        return bool(USER_TURN_MARKER.search(entry.raw))

    def _measure(self, entry: LogEntry) -> int:
        """Get the cumulative cost carried by an entry, 0 if absent."""
        if entry.is_parsed:
            return entry.usage_tokens() or 0

        read_match = CACHE_READ_PATTERN.search(entry.raw)
        creation_match = CACHE_CREATION_PATTERN.search(entry.raw)
        cache_read = int(read_match.group(1)) if read_match else 0
        cache_creation = int(creation_match.group(1)) if creation_match else 0
        return cache_read + cache_creation
