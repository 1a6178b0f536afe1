#!/usr/bin/env python3
"""ctxzip CLI - compact Claude session logs down to a token budget."""

import argparse
import logging
import sys
from typing import Optional

from config import get_settings


def setup_logging(level: str = "INFO"):
    """Configure logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)]
    )


def describe_target(target: Optional[str], target_tokens: int, ctx_limit: int) -> str:
    """Explain how a target was interpreted."""
    keep_pct = target_tokens / ctx_limit * 100 if ctx_limit > 0 else 0.0
    if target is None:
        return (
            f"Compress by {100 - keep_pct:g}% → Keep {keep_pct:g}% "
            f"({target_tokens:,} tokens) [default]"
        )
    if target.strip().endswith("%"):
        return f"Compress by {100 - keep_pct:g}% → Keep {keep_pct:g}% ({target_tokens:,} tokens)"
    return f"Target: {target_tokens:,} tokens (compress by {100 - keep_pct:.1f}%)"


def run_compact(
    session: Optional[str],
    target: Optional[str],
    target_tokens: int,
    ctx_limit: int,
    preview: bool = False,
    protect_start: Optional[int] = None,
    protect_end: Optional[int] = None
):
    """Compact (or preview compacting) a session log."""
    from compaction.compactor import ContextCompactor
    from compaction.report import format_outcome
    from sessions.store import SessionStore

    store = SessionStore()
    path = store.resolve(session)

    print(f"File: {path}")
    print(describe_target(target, target_tokens, ctx_limit))
    print()

    compactor = ContextCompactor(protect_start=protect_start, protect_end=protect_end)
    outcome = compactor.compact_file(path, target_tokens, store, preview=preview)

    print(f"Current: {outcome.plan.current_tokens:,} tokens\n")
    if outcome.backup_path:
        print(f"[BACKUP] Created: {outcome.backup_path}\n")
    print(format_outcome(outcome))
    return outcome


def run_context(session: Optional[str], ctx_limit: Optional[int] = None):
    """Show the current context usage of a session."""
    from compaction.compactor import ContextCompactor
    from compaction.report import render_context_usage
    from sessions.store import SessionStore

    ctx_limit = ctx_limit or get_settings().ctx_limit
    store = SessionStore()
    path = store.resolve(session)

    print(f"File: {path}")
    checkpoints, tokens = ContextCompactor().measure(store.read_lines(path))
    print(render_context_usage(tokens, ctx_limit, "Current Context Usage"))
    print(f"  Total messages: {len(checkpoints)}")
    print()


def run_list(ctx_limit: Optional[int] = None):
    """List the sessions of the current project."""
    from compaction.report import format_session_table
    from sessions.store import SessionStore

    sessions = SessionStore().list_sessions(ctx_limit or get_settings().ctx_limit)
    print(format_session_table(sessions))


def run_restore(session: Optional[str]):
    """Restore a session from its most recent backup."""
    from sessions.store import SessionStore

    store = SessionStore()
    path = store.resolve(session)
    print(f"Restoring: {path}\n")
    backup = store.restore(path)
    print(f"[SUCCESS] Restored from backup {backup.name}")


def run_server(host: str, port: int, reload: bool = False):
    """Run the API server."""
    import uvicorn

    print(f"\n{'='*65}")
    print("           ctxzip API Server")
    print(f"{'='*65}")
    print(f"\nStarting server at http://{host}:{port}")
    print(f"API docs: http://{host}:{port}/docs")
    print(f"\nPress Ctrl+C to stop\n")

    uvicorn.run(
        "api.main:app",
        host=host,
        port=port,
        reload=reload
    )


def add_common_options(parser: argparse.ArgumentParser):
    """Options shared by commands that measure context."""
    parser.add_argument(
        "--ctx-limit",
        type=int,
        default=None,
        help="Context limit in tokens (default: 200000)"
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        description="ctxzip - compact Claude session logs down to a token budget",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Compress the most recent session by 50% (default)
  python main.py compact

  # Light compression of a specific session
  python main.py compact 0c6f3a52-9d1e-4c1b-8f43-2b8e6d1a7c90 30%

  # Compress a file down to 100k tokens
  python main.py compact path/to/session.jsonl 100000

  # Preview a heavy compression without touching the file
  python main.py compact --preview 70%

  # Show current token usage, list sessions, undo the last compaction
  python main.py context
  python main.py list
  python main.py restore
        """
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output"
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Compact command
    compact_parser = subparsers.add_parser("compact", help="Remove low-relevance spans from a session")
    compact_parser.add_argument(
        "args",
        nargs="*",
        metavar="SESSION|TARGET",
        help="Session file or ID (default: most recent) and target as '40%%' or '120000'"
    )
    compact_parser.add_argument(
        "--preview",
        action="store_true",
        help="Show the optimization plan without making changes"
    )
    add_common_options(compact_parser)
    compact_parser.add_argument(
        "--protect-start",
        type=int,
        default=None,
        help="Number of initial ranges to protect (default: 2)"
    )
    compact_parser.add_argument(
        "--protect-end",
        type=int,
        default=None,
        help="Number of final ranges to protect (default: 3)"
    )

    # Context command
    context_parser = subparsers.add_parser("context", help="Show current token usage")
    context_parser.add_argument("session", nargs="?", help="Session file or ID")
    add_common_options(context_parser)

    # List command
    list_parser = subparsers.add_parser("list", help="List sessions of the current project")
    add_common_options(list_parser)

    # Restore command
    restore_parser = subparsers.add_parser("restore", help="Restore from the most recent backup")
    restore_parser.add_argument("session", nargs="?", help="Session file or ID")

    # Server command
    settings = get_settings()
    server_parser = subparsers.add_parser("server", help="Start the API server")
    server_parser.add_argument(
        "--host",
        default=settings.host,
        help=f"Host to bind (default: {settings.host})"
    )
    server_parser.add_argument(
        "--port", "-p",
        type=int,
        default=settings.port,
        help=f"Port to bind (default: {settings.port})"
    )
    server_parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development"
    )

    return parser


def split_compact_args(values, parser: argparse.ArgumentParser):
    """
    Split the positional arguments of ``compact`` into session and target.

    A value ending in "%" or made of digits is the target; anything else
    is the session.
    """
    session, target = None, None
    for value in values:
        if value.endswith("%") or value.isdigit():
            if target is not None:
                parser.error(f"more than one target given: {target}, {value}")
            target = value
        else:
            if session is not None:
                parser.error(f"more than one session given: {session}, {value}")
            session = value
    return session, target


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    setup_logging("DEBUG" if args.verbose else settings.log_level)

    if args.command is None:
        parser.print_help()
        return 0

    from compaction.compactor import parse_target
    from sessions.errors import SessionError

    ctx_limit_arg = getattr(args, "ctx_limit", None)
    if ctx_limit_arg is not None and ctx_limit_arg <= 0:
        parser.error("--ctx-limit must be positive")

    try:
        if args.command == "compact":
            session, target = split_compact_args(args.args, parser)
            for name in ("protect_start", "protect_end"):
                value = getattr(args, name)
                if value is not None and value < 0:
                    parser.error(f"--{name.replace('_', '-')} must be non-negative")
            ctx_limit = args.ctx_limit or settings.ctx_limit
            try:
                target_tokens = parse_target(target, ctx_limit)
            except ValueError as e:
                parser.error(str(e))
            run_compact(
                session=session,
                target=target,
                target_tokens=target_tokens,
                ctx_limit=ctx_limit,
                preview=args.preview,
                protect_start=args.protect_start,
                protect_end=args.protect_end
            )

        elif args.command == "context":
            run_context(args.session, args.ctx_limit)

        elif args.command == "list":
            run_list(args.ctx_limit)

        elif args.command == "restore":
            run_restore(args.session)

        elif args.command == "server":
            run_server(host=args.host, port=args.port, reload=args.reload)

    except SessionError as e:
        print(f"[ERROR] {e}")
        return 1
    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        return 1
    except Exception as e:
        logging.getLogger(__name__).exception(f"Error running {args.command}: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
