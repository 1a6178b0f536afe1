"""Span construction from reconciled checkpoints."""

from typing import List, Sequence

from compaction.models import ReconciledCheckpoint, Span


class SpanBuilder:
    """Turns adjacent reconciled checkpoints into removable spans."""

    def build(self, checkpoints: Sequence[ReconciledCheckpoint]) -> List[Span]:
        """
        Build one span per adjacent checkpoint pair.

        Content after the last checkpoint is never covered, so the final
        user turn and everything after it can not be removed.

        Returns:
            Spans in ascending line order
        """
        spans: List[Span] = []
        for i in range(len(checkpoints) - 1):
            current, following = checkpoints[i], checkpoints[i + 1]
            spans.append(Span(
                start_line=current.line + 1,
                end_line=following.line,
                savings=following.tokens - current.tokens,
                index=i
            ))
        return spans
