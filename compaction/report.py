"""Text reports for compaction plans, context usage and session listings."""

from typing import List, Sequence, TYPE_CHECKING

from compaction.models import CompactionOutcome

if TYPE_CHECKING:
    from sessions.models import SessionInfo


PURPLE = "\x1b[38;5;99m"
GRAY = "\x1b[90m"
RED = "\x1b[31m"
YELLOW = "\x1b[33m"
BOLD = "\x1b[1m"
RESET = "\x1b[0m"

FILLED_BLOCK = "⛁"
EMPTY_BLOCK = "⛶"


def format_outcome(outcome: CompactionOutcome) -> str:
    """
    Generate the report for a compaction run or preview.

    Args:
        outcome: Result of ContextCompactor.compact_file

    Returns:
        Formatted string report
    """
    plan = outcome.plan
    selection = plan.selection

    if selection is None:
        return "[INFO] File already within target size. No optimization needed."

    title = "[PREVIEW] Optimization Plan:" if outcome.preview else "[COMPLETE] Optimization Results:"
    final_label = "Final tokens (projected):" if outcome.preview else "Final tokens:"

    lines = [
        title,
        "=" * 24,
        f"Original tokens: {plan.current_tokens:,}",
        f"Target tokens: {plan.target_tokens:,}",
        f"{final_label} {selection.final_tokens:,}",
        f"Reduction: {selection.tokens_saved:,} tokens ({selection.reduction_pct:.1f}%)",
    ]

    if not selection.target_met:
        lines.append("[NOTE] Not enough removable content to reach the target.")

    removed_label = "[REMOVE]" if outcome.preview else "[REMOVED]"
    lines.append("")
    lines.append(f"{removed_label} {len(selection.removed_spans)} ranges:")
    for idx, span in enumerate(selection.removed_spans, start=1):
        lines.append(
            f"  {idx}. Lines {span.start_line}-{span.end_line}: {span.savings:,} tokens "
            f"(relevancy: {span.relevance * 100:.1f}%)"
        )

    kept_label = "[KEEP]" if outcome.preview else "[KEPT]"
    lines.append("")
    lines.append(f"{kept_label} {len(selection.kept_spans)} ranges")

    if outcome.rewrite is not None:
        lines.append("")
        if outcome.preview:
            lines.append(f"Lines to be removed: {outcome.rewrite.removed_lines}")
            lines.append(f"Lines to be kept: {outcome.rewrite.optimized_lines}")
        else:
            lines.append(f"Lines removed: {outcome.rewrite.removed_lines}")
            lines.append(f"Lines kept: {outcome.rewrite.optimized_lines}")

    lines.append("")
    if outcome.preview:
        lines.append("[WARNING] Preview mode - no changes made")
        lines.append("To apply these changes, run without --preview flag.")
    elif outcome.applied:
        lines.append("[DONE] Optimization complete")
    else:
        lines.append("[INFO] Nothing removable; file left unchanged.")

    return "\n".join(lines)


def render_context_usage(tokens: int, limit: int, label: str = "Context Usage") -> str:
    """
    Render context usage as a 5x10 block grid, each block worth 2%.

    The label sits on the second row and the numbers on the third.
    """
    percentage = round(tokens / limit * 100) if limit > 0 else 0
    filled = f"{PURPLE}{FILLED_BLOCK}{RESET}"
    empty = f"{GRAY}{EMPTY_BLOCK}{RESET}"

    rows: List[str] = [""]
    for row in range(5):
        cells = []
        for col in range(10):
            percent_index = (row * 10 + col + 1) * 2
            cells.append(filled if percent_index <= percentage else empty)
        line = "  " + " ".join(cells) + " "

        if row == 1:
            line += f"  {BOLD}{label}{RESET}"
        elif row == 2:
            line += f"  {tokens:,}/{limit:,} tokens ({percentage}%)"
        rows.append(line)
    rows.append("")

    return "\n".join(rows)


def format_usage_pct(percent: int) -> str:
    """Colour a usage percentage: red from 80%, yellow from 60%."""
    text = f"{percent}%"
    if percent >= 80:
        return f"{RED}{text}{RESET}"
    if percent >= 60:
        return f"{YELLOW}{text}{RESET}"
    return text


def format_session_table(sessions: Sequence["SessionInfo"]) -> str:
    """Generate the session listing table."""
    lines = [
        "[SESSIONS] Available chat sessions:",
        "",
        f"{'ID':<37}  {'TOKENS':>6}  {'MSGS':>4}  {'USAGE':>5}  MODIFIED",
        "─" * 72,
    ]

    for info in sessions:
        usage = format_usage_pct(info.usage_pct)
        # Escape codes do not take up columns, pad on the visible text only
        padding = " " * max(0, 5 - len(f"{info.usage_pct}%"))
        modified = info.modified_at.strftime("%b %d, %H:%M")
        lines.append(
            f"{info.session_id:<37}  {info.tokens:>6}  {info.messages:>4}  {padding}{usage}  {modified}"
        )

    if not sessions:
        lines.append("  (no sessions found)")

    lines.append("")
    lines.append("Usage: python main.py compact [SESSION_ID] [TARGET]")
    return "\n".join(lines)
