"""
`block-editor` command line.

Commands
--------
block-editor apply <path> --diff <file|->        -- apply SEARCH/REPLACE blocks
block-editor apply <path> --replace-with <file>  -- replace the whole file
block-editor apply <path> --diff - --review textual
block-editor apply <path> --diff d.txt --dry-run -- report only, no write
block-editor stats [--last N]                    -- edit metrics summary
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional

from .cli_display import setup_logger
from .config import Config
from .diff_display import make_reviewer
from .editing.edit_session import EditSession
from .editing.metrics import build_edit_metric, log_edit_metric, read_edit_stats

logger = logging.getLogger(__name__)


def _read_input(source: str) -> str:
    """Read text from a path, or stdin for ``-``."""
    if source == "-":
        return sys.stdin.read()
    with open(source, "r", encoding="utf-8") as f:
        return f.read()


# ---------------------------------------------------------------------------
# Sub-command handlers
# ---------------------------------------------------------------------------

def _cmd_apply(args: argparse.Namespace, config: Config) -> int:
    if args.fuzzy_threshold is not None:
        config.FUZZY_THRESHOLD = args.fuzzy_threshold
    if args.no_fuzzy:
        config.ENABLE_FUZZY_MATCHING = False
    review_mode = args.review or config.REVIEW

    if args.replace_with is None and args.diff is None:
        print("apply: one of --diff or --replace-with is required", file=sys.stderr)
        return 2

    try:
        replace_content = (
            _read_input(args.replace_with) if args.replace_with is not None else None
        )
        diff_content = _read_input(args.diff) if args.diff is not None else ""
    except OSError as exc:
        print(f"apply: cannot read input: {exc}", file=sys.stderr)
        return 2

    session = EditSession(args.path, diff_content, config.session_config())
    result = session.run(
        reviewer=make_reviewer(review_mode),
        replace_file_content=replace_content,
        write=not args.dry_run,
    )

    if config.METRICS_ENABLED:
        log_edit_metric(build_edit_metric(result, args.path))

    print(result.report)
    return 0 if result.success else 1


def _cmd_stats(args: argparse.Namespace, config: Config) -> int:
    stats = read_edit_stats(last_n=args.last)
    print(f"\nEdit stats  [last {stats['total_edits']} edit(s)]")
    print("-" * 60)
    print(f"  success rate     {stats['success_rate']:.1f}%")
    print(f"  fuzzy rate       {stats['fuzzy_rate']:.1f}%")
    print(f"  avg confidence   {stats['avg_confidence']:.1f}")
    for match_type, pct in stats["match_types"].items():
        print(f"  {match_type:<16} {pct:.1f}%")
    return 0


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="block-editor",
        description="Apply LLM-written SEARCH/REPLACE blocks to a file.",
    )
    parser.add_argument("--config", help="Path to a .block_editor.yaml file")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Echo log messages to stderr")
    sub = parser.add_subparsers(dest="command", required=True)

    apply_p = sub.add_parser("apply", help="Apply a diff to a file")
    apply_p.add_argument("path", help="File to edit")
    apply_p.add_argument("--diff", help="Diff file, or - for stdin")
    apply_p.add_argument("--replace-with",
                         help="Replace the whole file with this file's content")
    apply_p.add_argument("--review", choices=("auto", "console", "textual"),
                         help="How blocks are accepted (default from config)")
    apply_p.add_argument("--dry-run", action="store_true",
                         help="Report without writing the file")
    apply_p.add_argument("--fuzzy-threshold", type=float,
                         help="Minimum similarity for fuzzy matches (0-1)")
    apply_p.add_argument("--no-fuzzy", action="store_true",
                         help="Only accept exact and whitespace-only matches")

    stats_p = sub.add_parser("stats", help="Show edit metrics")
    stats_p.add_argument("--last", type=int, default=50,
                         help="Number of recent edits to include")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = Config.load(args.config)
    setup_logger(config.LOG_DIR, verbose=args.verbose)

    if args.command == "apply":
        return _cmd_apply(args, config)
    return _cmd_stats(args, config)


if __name__ == "__main__":
    sys.exit(main())
