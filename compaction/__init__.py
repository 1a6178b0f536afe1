"""Span-based compaction of Claude session logs."""

from compaction.models import (
    Checkpoint,
    ReconciledCheckpoint,
    Span,
    LogEntry,
    SelectionResult,
    RewriteResult,
    CompactionPlan,
    CompactionOutcome,
)
from compaction.series_extractor import SeriesExtractor, ExtractedSeries
from compaction.monotonic_reducer import MonotonicReducer
from compaction.span_builder import SpanBuilder
from compaction.relevance_scorer import RelevanceScorer
from compaction.span_selector import SpanSelector
from compaction.log_rewriter import LogRewriter
from compaction.compactor import ContextCompactor, parse_target, target_from_percentage

__all__ = [
    # Data models
    "Checkpoint",
    "ReconciledCheckpoint",
    "Span",
    "LogEntry",
    "SelectionResult",
    "RewriteResult",
    "CompactionPlan",
    "CompactionOutcome",
    "ExtractedSeries",
    # Pipeline components
    "SeriesExtractor",
    "MonotonicReducer",
    "SpanBuilder",
    "RelevanceScorer",
    "SpanSelector",
    "LogRewriter",
    "ContextCompactor",
    "parse_target",
    "target_from_percentage",
]
