"""Log rewriting: line removal, counter adjustment and chain repair."""

import logging
from typing import List, Optional, Sequence, Set

from compaction.models import LogEntry, RewriteResult, Span

logger = logging.getLogger(__name__)


class LogRewriter:
    """
    Produces a compacted copy of a session log.

    The rewrite is computed fully in memory. Writing it anywhere is the
    caller's job.
    """

    def rewrite(
        self,
        lines: Sequence[str],
        kept_spans: Sequence[Span],
        removed_spans: Sequence[Span]
    ) -> RewriteResult:
        """
        Rewrite a log without the removed spans.

        Args:
            lines: Original log lines (line numbers are 1-based)
            kept_spans: Spans that stay in full
            removed_spans: Spans to collapse to their end checkpoint

        Returns:
            RewriteResult with the new lines
        """
        if not removed_spans:
            return RewriteResult(lines=list(lines), original_lines=len(lines))

        dropped = self.lines_to_drop(len(lines), kept_spans, removed_spans)
        entries = [
            LogEntry.parse(line_number, raw)
            for line_number, raw in enumerate(lines, start=1)
            if line_number not in dropped
        ]

        self.adjust_counters(entries, removed_spans)
        self.repair_chain(entries)

        result = RewriteResult(
            lines=[entry.serialize() for entry in entries],
            original_lines=len(lines)
        )
        logger.info(
            f"Rewrote log: {result.original_lines} -> {result.optimized_lines} lines "
            f"({len(removed_spans)} spans removed)"
        )
        return result

    def lines_to_drop(
        self,
        total_lines: int,
        kept_spans: Sequence[Span],
        removed_spans: Sequence[Span]
    ) -> Set[int]:
        """
        Get the line numbers that disappear from the log.

        Every line of a removed span goes, except the checkpoint line at
        its end and the entry right after it, which carries that
        checkpoint's usage counters. Lines of kept spans always stay.
        Every checkpoint line survives, so the entry following each one
        survives too: that is the first line of each span and the line
        after each span's end.
        """
        protected: Set[int] = {span.end_line for span in removed_spans}
        for span in list(kept_spans) + list(removed_spans):
            protected.add(span.start_line)
            protected.add(span.end_line + 1)
        for span in kept_spans:
            protected.update(range(span.start_line, span.end_line + 1))

        dropped: Set[int] = set()
        for span in removed_spans:
            for line_number in range(span.start_line, min(span.end_line, total_lines) + 1):
                if line_number not in protected:
                    dropped.add(line_number)
        return dropped

    def adjust_counters(self, entries: List[LogEntry], removed_spans: Sequence[Span]) -> None:
        """
        Subtract each removed span's savings from later cache read counters.

        Spans are processed from the last to the first so every retained
        entry ends up reduced by all removed spans that precede it.
        """
        for span in sorted(removed_spans, key=lambda s: s.end_line, reverse=True):
            for entry in entries:
                if entry.line_number > span.end_line and entry.is_parsed:
                    entry.reduce_cache_read(span.savings)

    def repair_chain(self, entries: List[LogEntry]) -> None:
        """
        Re-link back-references over the retained entries.

        Each identified entry with a back-reference is pointed at the
        previous identified entry. Roots (null back-reference) and
        entries without an identifier are left alone.
        """
        previous_uuid: Optional[str] = None
        relinked = 0
        for entry in entries:
            if not entry.uuid:
                continue
            if previous_uuid and entry.parent_uuid and entry.parent_uuid != previous_uuid:
                entry.set_parent_uuid(previous_uuid)
                relinked += 1
            previous_uuid = entry.uuid

        logger.debug(f"Re-linked {relinked} back-references")
