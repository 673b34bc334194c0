"""
Edit session — runs one SEARCH/REPLACE edit of one file end to end:
parse → locate → review → apply → report.

The report is markdown meant to go back to the LLM that wrote the diff.
"""

from __future__ import annotations

import difflib
import logging
import os
from dataclasses import dataclass, field
from typing import Optional

from .block_applier import apply_blocks, write_file_atomic
from .block_locator import BlockLocator
from .diff_parser import DiffParser
from .review import AutoAcceptReviewer, BlockReviewer, ReviewDecision
from .types import LocatedBlock, ParsedBlock, SessionConfig, split_lines

logger = logging.getLogger(__name__)

_REPORT_HEADER = "# EDIT SESSION\n\n"


@dataclass
class EditResult:
    """Outcome of an edit session."""
    success: bool
    report: str
    located_blocks: list[LocatedBlock] = field(default_factory=list)
    final_content: Optional[str] = None
    written: bool = False


class EditSession:
    """Apply one diff to one file.

    A session owns its parser and locator, so sessions for different files
    can run side by side.
    """

    def __init__(self, file_path: str, diff_content: str = "",
                 config: Optional[SessionConfig] = None) -> None:
        self.file_path = file_path
        self.diff_content = diff_content
        self.config = config or SessionConfig()
        self.parser = DiffParser(self.config.parser)
        self.locator = BlockLocator(self.config.locator)
        self.located_blocks: list[LocatedBlock] = []
        self._ui_summary: Optional[str] = None
        self.line_ending = "\n"

    def get_file_content(self) -> str:
        """Current file content with LF line endings, or ``""`` when the file
        does not exist.

        The file's own line ending is kept in ``self.line_ending`` and
        restored when the result is written.
        """
        self.line_ending = "\n"
        if not os.path.isfile(self.file_path):
            return ""
        with open(self.file_path, "r", encoding="utf-8", errors="replace",
                  newline="") as f:
            content = f.read()
        self.line_ending = _detect_line_ending(content)
        return content.replace("\r\n", "\n")

    def run(self, reviewer: Optional[BlockReviewer] = None,
            replace_file_content: Optional[str] = None,
            write: bool = True) -> EditResult:
        """Run the session.

        Parameters
        ----------
        reviewer:
            Decides which blocks are applied. Defaults to accepting all.
        replace_file_content:
            When given, the diff is ignored and the whole file is replaced
            with this text (no marker parsing involved).
        write:
            Write the result to disk when anything changed.
        """
        reviewer = reviewer or AutoAcceptReviewer()
        self._ui_summary = None
        self.located_blocks = []

        file_content = self.get_file_content()
        replacing_entire_file = replace_file_content is not None

        if replacing_entire_file:
            if not file_content:
                self.line_ending = _detect_line_ending(replace_file_content)
            replace_file_content = replace_file_content.replace("\r\n", "\n")
            # Bypasses the parser so marker-like lines in the content are kept
            parsed_blocks = [ParsedBlock(
                search_content="",
                replace_content=replace_file_content,
                block_id="Block 1",
                replace_lines=tuple(split_lines(replace_file_content)),
            )]
        else:
            blocks, parse_error = self.parser.parse(self.diff_content)
            if blocks is None:
                return self._fail(f"Failed to parse diff: {parse_error}")
            parsed_blocks = blocks

        for block in parsed_blocks:
            if block.search_content.strip() == "":
                if len(parsed_blocks) > 1:
                    return self._fail(
                        f"A Block with empty search content found, but multiple "
                        f"blocks are present in the diff. {block.block_id} will "
                        f"replace the entire file. If you want to write the "
                        f"entire file, please use a single SEARCH/REPLACE block "
                        f"with empty SEARCH content. If you want to replace a "
                        f"section of the file, please provide non-whitespace "
                        f"SEARCH content."
                    )
                replacing_entire_file = True
                break
            if file_content == "":
                return self._fail(
                    f"Editing `{self.file_path}` failed. The file does not "
                    f"exist. If you are using relative paths make sure the "
                    f"path is relative to the cwd or use an absolute path."
                )

        self.located_blocks = self.locator.locate_all_blocks(parsed_blocks, file_content)

        failed = [b for b in self.located_blocks if not b.location_result.found]
        if failed:
            return self._fail(
                f"## Editing `{self.file_path}` failed. No changes were made "
                f"to the file. Couldn't find {len(failed)} of "
                f"{len(self.located_blocks)} block(s). Please see the "
                f"<BESTMATCH/> content provided in the SEARCHING feedback."
            )

        decision = reviewer.review(self.file_path, file_content, self.located_blocks)
        if decision.cancelled:
            return self._fail(decision.reason or "User rejected the changes to the file")

        final_lines = apply_blocks(
            split_lines(file_content), self.located_blocks, decision.accepted,
        )
        final_content = "\n".join(final_lines)

        written = False
        if write and final_content != file_content:
            write_file_atomic(self.file_path,
                              final_content.replace("\n", self.line_ending))
            written = True
            logger.info("[EditSession] Wrote %s", self.file_path)

        self._ui_summary = self._build_summary(
            decision, file_content, final_content, replacing_entire_file,
        )
        report = _REPORT_HEADER + self._generate_feedback(include_summary=True)
        return EditResult(
            success=True,
            report=report.rstrip(),
            located_blocks=self.located_blocks,
            final_content=final_content.replace("\n", self.line_ending),
            written=written,
        )

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def _fail(self, message: str) -> EditResult:
        logger.warning("[EditSession] %s: %s", self.file_path, message.splitlines()[0])
        feedback = self._generate_feedback(include_summary=False)
        report = _REPORT_HEADER + message
        if feedback:
            report += "\n\n" + feedback
        return EditResult(success=False, report=report,
                          located_blocks=self.located_blocks)

    def _generate_feedback(self, include_summary: bool) -> str:
        feedback = self.config.feedback
        parts: list[str] = []

        if feedback.include_parser_feedback:
            parser_feedback = self.parser.get_feedback()
            if parser_feedback:
                parts.append(parser_feedback)

        if feedback.include_locator_feedback:
            locator_feedback = self.locator.get_feedback(self.located_blocks)
            if locator_feedback:
                parts.append(locator_feedback)

        if include_summary and feedback.include_ui_summary and self._ui_summary:
            parts.append(self._ui_summary)

        return "\n\n".join(parts)

    def _build_summary(self, decision: ReviewDecision, original_content: str,
                       final_content: str, replacing_entire_file: bool) -> str:
        feedback = self.config.feedback
        changing = [b for b in self.located_blocks if not b.is_noop]
        if not changing:
            if not feedback.include_session_summary:
                return ""
            return (
                f"No changes were applied in `{self.file_path}` file. Because, "
                f"REPLACE content of all provided SEARCH/REPLACE block(s) was "
                f"found identical to the content found at that location"
            )

        sections: list[str] = []
        if feedback.include_session_summary:
            sections.append(self._applied_summary(decision, changing))
        if feedback.include_final_diff and not replacing_entire_file:
            sections.append(self._final_diff_section(original_content, final_content))
        return "\n\n".join(sections)

    def _applied_summary(self, decision: ReviewDecision,
                         changing: list[LocatedBlock]) -> str:
        total = len(changing)
        applied = [b for b in changing if decision.is_accepted(b.block_id)]

        if len(applied) == total:
            summary = f"All {total} block(s) were successfully applied to `{self.file_path}`"
        elif not applied:
            summary = (
                f"All {total} block(s) were rejected - no changes were "
                f"applied to `{self.file_path}`"
            )
        else:
            sections = [
                f"{len(applied)} of {total} block(s) were applied to `{self.file_path}`"
            ]
            for block in changing:
                if decision.is_accepted(block.block_id):
                    sections.append(
                        f"### {block.block_id}: FULLY APPLIED\n"
                        f"All changes from this block were accepted."
                    )
                else:
                    sections.append(
                        f"### {block.block_id}: REJECTED\n"
                        f"All changes from this block were rejected."
                    )
            summary = "\n\n".join(sections)
        return summary

    def _final_diff_section(self, original_content: str, final_content: str) -> str:
        diff = difflib.unified_diff(
            _with_trailing_newline(original_content).splitlines(),
            _with_trailing_newline(final_content).splitlines(),
            fromfile=f"a/{self.file_path}", tofile=f"b/{self.file_path}",
            n=1, lineterm="",
        )
        diff_text = "\n".join(diff).strip()
        return (
            f"### BEFORE vs AFTER EDIT SESSION DIFF for `{self.file_path}`:\n"
            f"IMPORTANT: Carefully observe this diff to understand the changes "
            f"applied in the edit session\n"
            f"```diff\n{diff_text}\n```"
        )


def _with_trailing_newline(content: str) -> str:
    return content if content.endswith("\n") else content + "\n"


def _detect_line_ending(content: str) -> str:
    return "\r\n" if "\r\n" in content else "\n"
