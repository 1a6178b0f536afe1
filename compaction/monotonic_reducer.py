"""Backward elimination over a cumulative cost series."""

import logging
from typing import List, Sequence, Set

from compaction.models import Checkpoint, ReconciledCheckpoint

logger = logging.getLogger(__name__)


class MonotonicReducer:
    """
    Repairs a checkpoint series so cumulative cost never decreases.

    A drop in the cumulative counter means the context was reset
    (compacted or cleared) at that point. Every checkpoint recorded
    between the reset and the last earlier checkpoint that is still
    cheaper than the reset value is superseded and gets dropped.
    """

    def reduce(self, checkpoints: Sequence[Checkpoint]) -> List[ReconciledCheckpoint]:
        """
        Apply backward elimination.

        Args:
            checkpoints: Checkpoints in line order

        Returns:
            Surviving checkpoints with forward diffs recomputed
        """
        series = [c for c in checkpoints if c.tokens != 0]
        removed = self._eliminate(series)
        survivors = [c for idx, c in enumerate(series) if idx not in removed]

        if removed:
            logger.debug(
                f"Backward elimination dropped {len(removed)} of {len(series)} checkpoints"
            )

        return self._with_diffs(survivors)

    def _eliminate(self, series: List[Checkpoint]) -> Set[int]:
        """Single right-to-left sweep returning indices to drop."""
        removed: Set[int] = set()
        i = len(series) - 1

        while i >= 0:
            previous = series[i - 1].tokens if i > 0 else 0
            if series[i].tokens - previous >= 0:
                i -= 1
                continue

            # Nearest earlier anchor still cheaper than the reset value.
            # With none left, -1 acts as a zero-cost virtual anchor.
            anchor = i - 1
            while anchor >= 0 and series[anchor].tokens >= series[i].tokens:
                anchor -= 1

            removed.update(range(anchor + 1, i))
            i = anchor

        return removed

    def _with_diffs(self, survivors: List[Checkpoint]) -> List[ReconciledCheckpoint]:
        """Recompute forward differences over the surviving series."""
        reconciled: List[ReconciledCheckpoint] = []
        previous = 0
        for checkpoint in survivors:
            reconciled.append(ReconciledCheckpoint(
                line=checkpoint.line,
                tokens=checkpoint.tokens,
                diff=checkpoint.tokens - previous
            ))
            previous = checkpoint.tokens
        return reconciled

    @staticmethod
    def total_tokens(reconciled: Sequence[ReconciledCheckpoint]) -> int:
        """Get the current total cost (sum of reconciled diffs)."""
        return sum(c.diff for c in reconciled)
