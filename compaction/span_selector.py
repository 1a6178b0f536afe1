"""Greedy span selection under a relevance-vs-savings heuristic."""

import logging
from typing import List, Optional, Sequence, Tuple

from compaction.models import SelectionResult, Span
from compaction.relevance_scorer import RelevanceScorer

logger = logging.getLogger(__name__)


class SpanSelector:
    """
    Chooses which spans to remove to reach a token target.

    The first ``protect_start`` and last ``protect_end`` spans are never
    candidates. Remaining spans with positive savings are ranked by
    ``relevance - savings / current_total`` (lower is more expendable)
    and removed greedily until the needed reduction is reached.
    """

    DEFAULT_PROTECT_START = 2
    DEFAULT_PROTECT_END = 3

    def __init__(
        self,
        protect_start: int = DEFAULT_PROTECT_START,
        protect_end: int = DEFAULT_PROTECT_END
    ):
        if protect_start < 0 or protect_end < 0:
            raise ValueError("protect_start and protect_end must be non-negative")
        self.protect_start = protect_start
        self.protect_end = protect_end

    def candidate_bounds(self, span_count: int) -> Tuple[int, int]:
        """
        Get the [first, last) index range of unprotected spans.

        Protection counts are clamped to the number of spans.
        """
        first = min(self.protect_start, span_count)
        last = max(0, span_count - min(self.protect_end, span_count))
        return first, max(first, last)

    def score_spans(self, spans: Sequence[Span], scorer: Optional[RelevanceScorer]) -> None:
        """Compute relevance for every unprotected span in place."""
        if scorer is None:
            return
        first, last = self.candidate_bounds(len(spans))
        for span in spans[first:last]:
            span.relevance = scorer.score_range(span.start_line, span.end_line)

    def select(
        self,
        spans: Sequence[Span],
        target_tokens: int,
        current_tokens: int,
        scorer: Optional[RelevanceScorer] = None
    ) -> SelectionResult:
        """
        Select spans to remove.

        Args:
            spans: All spans in line order
            target_tokens: Desired total after compaction
            current_tokens: Current total (sum of reconciled diffs)
            scorer: Optional relevance scorer; without one relevance stays as set

        Returns:
            SelectionResult with kept/removed spans in line order
        """
        self.score_spans(spans, scorer)

        needed = current_tokens - target_tokens
        removed_indices = set()
        total_savings = 0

        if needed > 0 and current_tokens > 0:
            for span in self.rank_candidates(spans, current_tokens):
                if total_savings >= needed:
                    break
                removed_indices.add(id(span))
                total_savings += span.savings

        kept = [s for s in spans if id(s) not in removed_indices]
        removed = [s for s in spans if id(s) in removed_indices]

        result = SelectionResult(
            kept_spans=kept,
            removed_spans=removed,
            current_tokens=current_tokens,
            target_tokens=target_tokens,
            final_tokens=current_tokens - total_savings
        )

        if needed > 0 and not result.target_met:
            logger.info(
                f"Removable savings exhausted: {result.final_tokens:,} tokens remain "
                f"(target {target_tokens:,})"
            )
        return result

    def rank_candidates(self, spans: Sequence[Span], current_tokens: int) -> List[Span]:
        """Get unprotected positive-savings spans, most expendable first."""
        first, last = self.candidate_bounds(len(spans))
        candidates = [s for s in spans[first:last] if s.savings > 0]
        # list.sort is stable: equal scores keep line order
        candidates.sort(key=lambda s: s.relevance - s.savings / current_tokens)
        return candidates
