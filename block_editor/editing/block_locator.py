"""
Block locator — runs the search engine over every parsed block of a diff
and explains failed or fuzzy locations back to the LLM.
"""

from __future__ import annotations

import difflib
import logging
from typing import Optional, Sequence

from .issue_tracker import IssueTracker, IssueType
from .search_engine import SearchEngine
from .types import LocatedBlock, ParsedBlock, ParsingIssue, SearchConfig, split_lines

logger = logging.getLogger(__name__)


class BlockLocator:
    """Locate all blocks of one diff against one file's content."""

    def __init__(self, config: Optional[SearchConfig] = None) -> None:
        self.config = config or SearchConfig()
        self.search_engine = SearchEngine(self.config)
        self.tracker = IssueTracker()

    @property
    def issues(self) -> list[ParsingIssue]:
        """Fuzzy and failed locations from the last ``locate_all_blocks`` call."""
        return self.tracker.issues

    def locate_all_blocks(self, parsed_blocks: Sequence[ParsedBlock],
                          file_content: str) -> list[LocatedBlock]:
        """Locate every block in order, sharing one set of used ranges.

        A block whose SEARCH content is blank is located against the whole
        file (a full-file replacement).
        """
        file_lines = split_lines(file_content)
        self.search_engine.reset_used_ranges()
        self.tracker.clear()

        located: list[LocatedBlock] = []
        for block in parsed_blocks:
            if block.search_content.strip() == "":
                block = ParsedBlock(
                    search_content=file_content,
                    replace_content=block.replace_content,
                    block_id=block.block_id,
                    search_lines=tuple(file_lines),
                    replace_lines=block.replace_lines,
                )

            result = self.search_engine.locate_block_in_file(
                block.search_lines, file_lines,
            )
            if result.found:
                logger.info(
                    "[BlockLocator] %s -> lines %d-%d (%s, %d%%)",
                    block.block_id, result.start_line, result.end_line,
                    result.overall_match_type.value, result.confidence,
                )
                if result.is_fuzzy:
                    self.tracker.track_issue(IssueType.FUZZY_MATCH_WARNING, {
                        "block_id": block.block_id,
                        "confidence": result.confidence,
                    })
            else:
                logger.warning("[BlockLocator] %s not found: %s",
                               block.block_id, result.error)
                self.tracker.track_issue(IssueType.BLOCK_LOCATION_FAILED, {
                    "block_id": block.block_id,
                    "error": result.error,
                })
            located.append(LocatedBlock.from_parsed(block, result))

        return located

    def get_feedback(self, located_blocks: Optional[Sequence[LocatedBlock]]
                     ) -> Optional[str]:
        """Explain failed and fuzzily matched blocks; None if all were exact."""
        sections: list[str] = []

        for block in located_blocks or []:
            result = block.location_result
            if not result.found:
                sections.append(self._format_not_found(block))
            elif result.is_fuzzy:
                sections.append(self._format_fuzzy(block))

        if sections:
            return "## ISSUES WHILE SEARCHING\n" + "\n\n".join(sections)
        return None

    # ------------------------------------------------------------------
    # Formatting
    # ------------------------------------------------------------------

    @staticmethod
    def _format_not_found(block: LocatedBlock) -> str:
        result = block.location_result
        text = (
            f"### `{block.block_id}` (ERROR)\n"
            f"Finding SEARCH content from `{block.block_id}` failed with "
            f"error: `{result.error}`"
        )
        if result.found_content is not None:
            start = result.start_line if result.start_line is not None else "N/A"
            end = result.end_line if result.end_line is not None else "N/A"
            text += (
                f"\nThe following is the BEST MATCH found from Line `{start}` "
                f"to `{end}` with `{result.confidence}%` confidence:\n"
                f'<BESTMATCH confidence="{result.confidence}%" '
                f'startline="{start}" endline="{end}">\n'
                f"{result.found_content}\n"
                f"</BESTMATCH>"
            )
        return text

    @staticmethod
    def _format_fuzzy(block: LocatedBlock) -> str:
        result = block.location_result
        diff = difflib.unified_diff(
            list(result.found_lines), list(block.search_lines),
            fromfile="file", tofile="search", lineterm="",
        )
        diff_text = "\n".join(diff).strip()
        return (
            f"### `{block.block_id}` (WARNING)\n"
            f"SEARCH content from `{block.block_id}` is fuzzily matched and "
            f"applied at LINES `{result.start_line}` to `{result.end_line}` "
            f"with `{result.confidence}%` confidence:\n"
            f"The following is a diff for `{block.block_id}` SEARCH content "
            f"vs Fuzzily matched content:\n"
            f"```diff\n{diff_text}\n```"
        )
