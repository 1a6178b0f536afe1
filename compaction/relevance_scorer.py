"""Lexical relevance scoring between spans and recent user turns."""

from typing import Dict, Optional, Set


class RelevanceScorer:
    """
    Scores spans by word overlap with the most recent user turns.

    Similarity is Jaccard over lower-cased whitespace tokens. Tokens of
    three characters or fewer are dropped as a crude stop-word filter.
    """

    MIN_WORD_LENGTH = 4
    DEFAULT_RECENT_TURNS = 3

    def __init__(self, contents: Dict[int, str], recent_turns: int = DEFAULT_RECENT_TURNS):
        """
        Initialize with the content index of a log.

        Args:
            contents: User-turn line number -> text
            recent_turns: Number of latest user turns forming the reference
        """
        self.contents = contents
        self._ordered = sorted(contents.items())
        self.recent_turns = recent_turns
        self._reference = self.recent_content()

    def recent_content(self) -> str:
        """Get the concatenated text of the most recent user turns."""
        if self.recent_turns <= 0:
            return ""
        latest = self._ordered[-self.recent_turns:]
        return " ".join(text for _, text in reversed(latest))

    def span_content(self, start_line: int, end_line: int) -> str:
        """Get the concatenated user text whose line falls in a range."""
        return " ".join(
            text for line, text in self._ordered
            if start_line <= line <= end_line
        )

    def score_range(self, start_line: int, end_line: int) -> float:
        """Score a line range against the recent reference text."""
        return self.similarity(self.span_content(start_line, end_line), self._reference)

    @classmethod
    def word_set(cls, text: Optional[str]) -> Set[str]:
        """Build the filtered word set of a text."""
        if not text:
            return set()
        return {word for word in text.lower().split() if len(word) >= cls.MIN_WORD_LENGTH}

    @classmethod
    def similarity(cls, first: Optional[str], second: Optional[str]) -> float:
        """
        Compute Jaccard similarity between two texts.

        Returns:
            |intersection| / |union|, or 0.0 if either side is empty
        """
        if not first or not second:
            return 0.0

        words1: Set[str] = cls.word_set(first)
        words2: Set[str] = cls.word_set(second)
        union = words1 | words2
        if not union:
            return 0.0
        return len(words1 & words2) / len(union)

