"""Compaction pipeline: extraction through rewriting."""

import logging
import math
from typing import List, Optional, Sequence, Tuple, Union, TYPE_CHECKING

from config import get_settings
from compaction.models import (
    CompactionOutcome,
    CompactionPlan,
    ReconciledCheckpoint,
    RewriteResult,
)
from compaction.series_extractor import SeriesExtractor
from compaction.monotonic_reducer import MonotonicReducer
from compaction.span_builder import SpanBuilder
from compaction.relevance_scorer import RelevanceScorer
from compaction.span_selector import SpanSelector
from compaction.log_rewriter import LogRewriter

if TYPE_CHECKING:
    from sessions.store import SessionStore

logger = logging.getLogger(__name__)


def target_from_percentage(compress_pct: float, ctx_limit: int) -> int:
    """Convert a percentage to remove into an absolute token target."""
    if not 0 < compress_pct < 100:
        raise ValueError(f"Compression percentage must be between 0 and 100 (exclusive): {compress_pct}")
    return math.floor(ctx_limit * (100 - compress_pct) / 100)


def parse_target(value: Optional[Union[str, int]], ctx_limit: int) -> int:
    """
    Parse a compaction target.

    Accepts a percentage to remove ("40%") or an absolute token count
    ("120000"). None falls back to the configured default percentage.

    Raises:
        ValueError: If the value is neither form or is out of range
    """
    if value is None:
        return target_from_percentage(get_settings().default_compress_pct, ctx_limit)

    if isinstance(value, int):
        tokens = value
    else:
        text = value.strip()
        if text.endswith("%"):
            try:
                pct = float(text[:-1])
            except ValueError:
                raise ValueError(f"Invalid compression percentage: {value}")
            return target_from_percentage(pct, ctx_limit)
        try:
            tokens = int(text)
        except ValueError:
            raise ValueError(f"Invalid target: {value} (expected e.g. '40%' or '120000')")

    if tokens < 0:
        raise ValueError(f"Target tokens must be non-negative: {tokens}")
    return tokens


class ContextCompactor:
    """
    Runs the full compaction pipeline over a session log.

    Extractor -> backward elimination -> spans -> relevance -> selection
    -> rewrite. Everything except ``compact_file`` is pure and works on
    in-memory lines.
    """

    def __init__(
        self,
        protect_start: Optional[int] = None,
        protect_end: Optional[int] = None,
        recent_turns: Optional[int] = None
    ):
        settings = get_settings()
        self.protect_start = settings.protect_start if protect_start is None else protect_start
        self.protect_end = settings.protect_end if protect_end is None else protect_end
        self.recent_turns = settings.relevance_recent_turns if recent_turns is None else recent_turns

        self.extractor = SeriesExtractor()
        self.reducer = MonotonicReducer()
        self.builder = SpanBuilder()
        self.selector = SpanSelector(self.protect_start, self.protect_end)
        self.rewriter = LogRewriter()

    def measure(self, lines: Sequence[str]) -> Tuple[List[ReconciledCheckpoint], int]:
        """
        Measure the current context cost of a log.

        Returns:
            Tuple of (reconciled checkpoints, current total tokens)
        """
        series = self.extractor.extract(lines)
        reconciled = self.reducer.reduce(series.checkpoints)
        return reconciled, self.reducer.total_tokens(reconciled)

    def plan(self, lines: Sequence[str], target_tokens: int) -> CompactionPlan:
        """
        Decide which spans to remove without touching anything.

        Args:
            lines: Log lines in file order
            target_tokens: Desired total after compaction

        Returns:
            CompactionPlan; ``selection`` is None when already within target
        """
        series = self.extractor.extract(lines)
        reconciled = self.reducer.reduce(series.checkpoints)
        current = self.reducer.total_tokens(reconciled)

        plan = CompactionPlan(
            total_lines=len(lines),
            current_tokens=current,
            target_tokens=target_tokens,
            checkpoints=reconciled
        )

        if not plan.needs_compaction:
            logger.info(f"Already within target ({current:,} <= {target_tokens:,} tokens)")
            return plan

        plan.spans = self.builder.build(reconciled)
        scorer = RelevanceScorer(series.contents, recent_turns=self.recent_turns)
        plan.selection = self.selector.select(plan.spans, target_tokens, current, scorer)

        logger.info(
            f"Planned removal of {len(plan.selection.removed_spans)}/{len(plan.spans)} spans: "
            f"{current:,} -> {plan.selection.final_tokens:,} tokens"
        )
        return plan

    def rewrite(self, lines: Sequence[str], plan: CompactionPlan) -> RewriteResult:
        """Apply a plan to in-memory lines."""
        if plan.selection is None:
            return RewriteResult(lines=list(lines), original_lines=len(lines))
        return self.rewriter.rewrite(
            lines,
            plan.selection.kept_spans,
            plan.selection.removed_spans
        )

    def compact_file(
        self,
        path: str,
        target_tokens: int,
        store: "SessionStore",
        preview: bool = False
    ) -> CompactionOutcome:
        """
        Compact a session file in place.

        The rewrite is built in memory first. In apply mode the store takes
        a backup and then replaces the file; in preview mode nothing is
        written. A log already within target is left untouched either way.
        """
        lines = store.read_lines(path)
        plan = self.plan(lines, target_tokens)
        outcome = CompactionOutcome(path=path, plan=plan, preview=preview)

        if plan.selection is None:
            return outcome

        outcome.rewrite = self.rewrite(lines, plan)
        if preview or not plan.selection.removed_spans:
            return outcome

        outcome.backup_path = store.backup(path)
        store.write_lines(path, outcome.rewrite.lines)
        return outcome
