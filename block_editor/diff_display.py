"""
Diff display — unified diffs for located blocks and the reviewers that show
them to a person before anything is written.

Includes a Textual-based interactive block reviewer (accept / reject each
block, or all at once) and a plain console reviewer.
"""

from __future__ import annotations

import difflib
import logging
from typing import Callable, Sequence

from .editing.review import AutoAcceptReviewer, BlockReviewer, ReviewDecision
from .editing.types import LocatedBlock

logger = logging.getLogger(__name__)


def compute_unified_diff(old_lines: Sequence[str], new_lines: Sequence[str],
                         fromfile: str = "before", tofile: str = "after",
                         context: int = 3) -> str:
    """Return a unified diff of two line lists ("" when identical)."""
    diff = difflib.unified_diff(
        list(old_lines), list(new_lines),
        fromfile=fromfile, tofile=tofile, n=context, lineterm="",
    )
    return "\n".join(diff)


def format_block_diff(block: LocatedBlock) -> str:
    """Diff between what the file holds at the block's location and its REPLACE lines."""
    result = block.location_result
    return compute_unified_diff(
        result.found_lines, block.replace_lines,
        fromfile=f"{block.block_id} (lines {result.start_line}-{result.end_line})",
        tofile=f"{block.block_id} (replacement)",
    )


def format_colored_diff(diff_text: str) -> str:
    """Add ANSI colors to a unified diff string.

    Green for additions (+), red for deletions (-), cyan for @@ hunks.
    """
    colored: list[str] = []
    for line in diff_text.splitlines():
        if line.startswith("+++") or line.startswith("---"):
            colored.append(f"\033[1m{line}\033[0m")  # bold
        elif line.startswith("@@"):
            colored.append(f"\033[36m{line}\033[0m")  # cyan
        elif line.startswith("+"):
            colored.append(f"\033[32m{line}\033[0m")  # green
        elif line.startswith("-"):
            colored.append(f"\033[31m{line}\033[0m")  # red
        else:
            colored.append(line)
    return "\n".join(colored)


def _format_rich_diff(diff_text: str) -> str:
    """Convert unified diff text to Rich markup for Textual display."""
    markup_lines: list[str] = []
    for line in diff_text.splitlines():
        # Escape Rich markup characters in the line content
        escaped = line.replace("[", "\\[")
        if line.startswith("+++") or line.startswith("---"):
            markup_lines.append(f"[bold white]{escaped}[/bold white]")
        elif line.startswith("@@"):
            markup_lines.append(f"[cyan]{escaped}[/cyan]")
        elif line.startswith("+"):
            markup_lines.append(f"[green]{escaped}[/green]")
        elif line.startswith("-"):
            markup_lines.append(f"[red]{escaped}[/red]")
        else:
            markup_lines.append(escaped)
    return "\n".join(markup_lines)


# ══════════════════════════════════════════════════════════════════
#  Console reviewer
# ══════════════════════════════════════════════════════════════════

class ConsoleReviewer(BlockReviewer):
    """Prompt for each block on the terminal."""

    def __init__(self, input_func: Callable[[str], str] = input,
                 print_func: Callable[[str], None] = print) -> None:
        self._input = input_func
        self._print = print_func

    def review(self, file_path: str, original_content: str,
               located_blocks: Sequence[LocatedBlock]) -> ReviewDecision:
        accepted: dict[str, bool] = {}
        bulk: bool | None = None

        self._print("\n" + "=" * 60)
        self._print(f"  BLOCK REVIEW — {file_path} ({len(located_blocks)} block(s))")
        self._print("=" * 60)

        for block in located_blocks:
            if bulk is not None:
                accepted[block.block_id] = bulk
                continue

            result = block.location_result
            self._print(f"\n{'─' * 60}")
            self._print(
                f"  {block.block_id}  lines {result.start_line}-{result.end_line}"
                f"  {result.overall_match_type.value} ({result.confidence}%)"
            )
            self._print(format_colored_diff(format_block_diff(block)))
            self._print("  [a]ccept  [r]eject  [A]ccept all  [R]eject all  [q]uit")

            while True:
                try:
                    choice = self._input("  Your choice: ").strip()
                except (EOFError, KeyboardInterrupt):
                    return ReviewDecision(cancelled=True,
                                          reason="User cancelled the edit session")
                if choice in ("a", "accept"):
                    accepted[block.block_id] = True
                elif choice in ("r", "reject"):
                    accepted[block.block_id] = False
                elif choice == "A":
                    bulk = True
                    accepted[block.block_id] = True
                elif choice == "R":
                    bulk = False
                    accepted[block.block_id] = False
                elif choice in ("q", "quit"):
                    return ReviewDecision(cancelled=True,
                                          reason="User cancelled the edit session")
                else:
                    self._print("  Invalid choice. Use a, r, A, R or q.")
                    continue
                break

        return ReviewDecision(accepted=accepted)


# ══════════════════════════════════════════════════════════════════
#  Interactive block review (Textual TUI)
# ══════════════════════════════════════════════════════════════════

def _build_review_app(file_path: str, located_blocks: Sequence[LocatedBlock]):
    """Build the Textual app that reviews *located_blocks* one by one."""
    from textual.app import App, ComposeResult
    from textual.binding import Binding
    from textual.containers import VerticalScroll
    from textual.widgets import Footer, Static

    class BlockReviewApp(App):
        """Step through located blocks and accept or reject each one."""

        CSS = """
        Screen {
            background: $surface;
        }
        #title-bar {
            dock: top;
            height: 3;
            background: #1a1a2e;
            color: #e94560;
            text-align: center;
            padding: 1;
            text-style: bold;
        }
        #block-scroll {
            height: 1fr;
            margin: 1 2;
            border: round #444;
            padding: 1;
        }
        .block {
            margin: 0 0 1 0;
            padding: 0 1;
            border: round #333;
        }
        .block.current {
            border: round #e9c46a;
        }
        #summary {
            dock: bottom;
            height: 1;
            text-align: center;
            color: #888;
        }
        """

        BINDINGS = [
            Binding("full_stop", "accept", "Accept"),
            Binding("comma", "reject", "Reject"),
            Binding("n", "next", "Next"),
            Binding("p", "prev", "Prev"),
            Binding("a", "accept_all", "Accept all"),
            Binding("r", "reject_all", "Reject all"),
            Binding("enter", "finish", "Finish", priority=True),
            Binding("escape", "cancel", "Cancel", priority=True),
        ]

        def __init__(self) -> None:
            super().__init__()
            self._review_blocks = list(located_blocks)
            self._verdicts: dict[str, bool] = {}
            self._current = 0
            self._title_path = file_path.replace("[", "\\[")
            self.decision: ReviewDecision | None = None

        def compose(self) -> ComposeResult:
            yield Static(
                f" ━━  Block Review — {self._title_path}: "
                f"{len(self._review_blocks)} block(s)  ━━ ",
                id="title-bar",
            )
            with VerticalScroll(id="block-scroll"):
                for i in range(len(self._review_blocks)):
                    yield Static(self._render_block(i), id=f"block-{i}",
                                 classes="block")
            yield Static("", id="summary")
            yield Footer()

        def on_mount(self) -> None:
            self._refresh_blocks()

        def _render_block(self, index: int) -> str:
            block = self._review_blocks[index]
            result = block.location_result
            verdict = self._verdicts.get(block.block_id)
            if verdict is True:
                status = "[green]ACCEPTED[/green]"
            elif verdict is False:
                status = "[red]REJECTED[/red]"
            else:
                status = "[yellow]PENDING[/yellow]"
            return (
                f"[bold yellow]{block.block_id}[/bold yellow]  {status}  "
                f"lines {result.start_line}-{result.end_line}  "
                f"{result.overall_match_type.value} ({result.confidence}%)\n"
                f"{_format_rich_diff(format_block_diff(block))}"
            )

        def _refresh_blocks(self) -> None:
            for i in range(len(self._review_blocks)):
                widget = self.query_one(f"#block-{i}", Static)
                widget.update(self._render_block(i))
                widget.set_class(i == self._current, "current")
            if self._review_blocks:
                self.query_one(f"#block-{self._current}", Static).scroll_visible()
            decided = len(self._verdicts)
            self.query_one("#summary", Static).update(
                f"  {decided}/{len(self._review_blocks)} decided  —  "
                f"[bold].[/bold] accept  [bold],[/bold] reject  "
                f"[bold]a[/bold]/[bold]r[/bold] all  "
                f"[bold]Enter[/bold] finish  [bold]Esc[/bold] cancel"
            )

        def _decide(self, verdict: bool) -> None:
            if not self._review_blocks:
                return
            self._verdicts[self._review_blocks[self._current].block_id] = verdict
            if len(self._verdicts) == len(self._review_blocks):
                self.action_finish()
                return
            self.action_next()

        def action_accept(self) -> None:
            self._decide(True)

        def action_reject(self) -> None:
            self._decide(False)

        def action_next(self) -> None:
            if self._current < len(self._review_blocks) - 1:
                self._current += 1
            self._refresh_blocks()

        def action_prev(self) -> None:
            if self._current > 0:
                self._current -= 1
            self._refresh_blocks()

        def action_accept_all(self) -> None:
            for block in self._review_blocks:
                self._verdicts.setdefault(block.block_id, True)
            self.action_finish()

        def action_reject_all(self) -> None:
            for block in self._review_blocks:
                self._verdicts.setdefault(block.block_id, False)
            self.action_finish()

        def action_finish(self) -> None:
            self.decision = ReviewDecision(accepted={
                block.block_id: self._verdicts.get(block.block_id, True)
                for block in self._review_blocks
            })
            self.exit()

        def action_cancel(self) -> None:
            self.decision = ReviewDecision(
                cancelled=True, reason="User cancelled the edit session",
            )
            self.exit()

    return BlockReviewApp()


class TextualReviewer(BlockReviewer):
    """Review blocks in a full-screen Textual app."""

    def review(self, file_path: str, original_content: str,
               located_blocks: Sequence[LocatedBlock]) -> ReviewDecision:
        app = _build_review_app(file_path, located_blocks)
        app.run()
        if app.decision is None:
            return ReviewDecision(cancelled=True,
                                  reason="Review window closed without a decision")
        return app.decision


def make_reviewer(mode: str) -> BlockReviewer:
    """Return the reviewer for ``auto``, ``console`` or ``textual``."""
    if mode == "auto":
        return AutoAcceptReviewer()
    if mode == "console":
        return ConsoleReviewer()
    if mode == "textual":
        return TextualReviewer()
    raise ValueError(f"Unknown review mode: {mode!r}")
