"""
Diff parser — turns the SEARCH/REPLACE diff text written by an LLM into
ParsedBlock records, repairing common formatting slips along the way.

Format::

    <<<<<<< SEARCH
    exact content to find
    =======
    replacement content
    >>>>>>> REPLACE

Content lines that literally begin with a marker are written with a
leading backslash (``\\<<<<<<< SEARCH``) and un-escaped here.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from .issue_tracker import IssueTracker, IssueType
from .types import ParsedBlock, ParserConfig, ParsingIssue

logger = logging.getLogger(__name__)

_SEARCH = "search"
_SEPARATOR = "separator"
_REPLACE = "replace"

# States
_WAITING = "waiting"
_SEARCHING = "searching"
_REPLACING = "replacing"

# Markers: at least five arrows, any spacing, case-insensitive keyword
_SEARCH_MARKER = re.compile(r"^\s*(<{5,})(\s*)((?i:search))(.*)$")
_REPLACE_MARKER = re.compile(r"^\s*(>{5,})(\s*)((?i:replace))(.*)$")
_SEPARATOR_MARKER = re.compile(r"^=======\s*$")

_CODE_FENCE = re.compile(r"^\s*```")
_STRAY_ARROW = re.compile(r"^>\s*(.*)$", re.DOTALL)
_ESCAPED_MARKER = re.compile(r"^(\s*)\\(?=<{5}|={5}|>{5})")

_CANONICAL_SEARCH = "<<<<<<< SEARCH"


class DiffParser:
    """Parse SEARCH/REPLACE diffs into blocks.

    One parser owns one IssueTracker; issues from the previous ``parse``
    call are cleared when the next one starts.
    """

    def __init__(self, config: Optional[ParserConfig] = None) -> None:
        self.config = config or ParserConfig()
        self.tracker = IssueTracker()

    def parse(self, diff_content: Optional[str]
              ) -> tuple[Optional[list[ParsedBlock]], Optional[str]]:
        """Parse raw diff text.

        Returns
        -------
        tuple
            ``(blocks, None)`` on success or ``(None, error_message)`` when
            the diff is structurally invalid. Never raises on bad input.
        """
        self.tracker.clear()

        if not diff_content:
            return None, "Empty diff content"

        normalized = self._normalize_content(diff_content)
        fixed = self._fix_malformed_diff(normalized)

        blocks, error = self._parse_blocks(fixed)
        if error:
            logger.warning("[DiffParser] Parse failed: %s", error)
            return None, error

        logger.debug("[DiffParser] Parsed %d block(s), %d issue(s)",
                     len(blocks), len(self.tracker.issues))
        return blocks, None

    def has_issues(self) -> bool:
        return self.tracker.has_issues()

    def clear_issues(self) -> None:
        self.tracker.clear()

    @property
    def issues(self) -> list[ParsingIssue]:
        return self.tracker.issues

    def get_feedback(self) -> Optional[str]:
        """Parsing feedback for the LLM, or None when the diff was clean."""
        feedback = self.tracker.get_llm_feedback()
        if feedback:
            return "## ISSUES WHILE PARSING DIFF\n" + feedback
        return None

    # ------------------------------------------------------------------
    # Preprocessing
    # ------------------------------------------------------------------

    @staticmethod
    def _normalize_content(diff_content: str) -> str:
        return diff_content.replace("\r\n", "\n").replace("\r", "\n")

    def _fix_malformed_diff(self, diff_content: str) -> str:
        """Insert a SEARCH marker when the diff has none at all."""
        lines = diff_content.split("\n")

        for line in lines:
            marker_type, _ = self._detect_marker_type(line, track=False)
            if marker_type == _SEARCH:
                return diff_content

        self._track(IssueType.MALFORMED_SEARCH_MARKER)

        if _CODE_FENCE.match(lines[0]):
            lines.insert(1, _CANONICAL_SEARCH)
            self._track(IssueType.MARKDOWN_NOISE)
        else:
            lines.insert(0, _CANONICAL_SEARCH)

        return "\n".join(lines)

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def _parse_blocks(self, diff_content: str
                      ) -> tuple[list[ParsedBlock], Optional[str]]:
        blocks: list[ParsedBlock] = []
        current_search: list[str] = []
        current_replace: list[str] = []
        state = _WAITING

        for line_num, line in enumerate(diff_content.split("\n"), start=1):
            marker_type, inline_content = self._detect_marker_type(line, track=True)

            if marker_type == _SEARCH:
                if state != _WAITING:
                    return [], (
                        f"Unexpected SEARCH marker at line {line_num} - expected "
                        "SEPARATOR or REPLACE marker. If content to search or "
                        "replace for contains <<<<<<< SEARCH, please escape it "
                        "with a backslash like \\<<<<<<< SEARCH. SEARCH marker "
                        "must be the first line of a block."
                    )
                state = _SEARCHING
                current_search = []
                if inline_content is not None:
                    current_search.append(inline_content)

            elif marker_type == _SEPARATOR:
                if state != _SEARCHING:
                    return [], (
                        f"Unexpected separator at line {line_num} - expected "
                        "SEARCH marker. If content to search or replace for "
                        "contains =======, please escape it with a backslash "
                        "like \\=======. Separator must be between SEARCH and "
                        "REPLACE markers."
                    )
                state = _REPLACING
                current_replace = []

            elif marker_type == _REPLACE:
                if state != _REPLACING:
                    return [], (
                        f"Unexpected REPLACE marker at line {line_num} - "
                        "expected SEARCH marker or SEPARATOR first. If content "
                        "to search or replace for contains >>>>>>> REPLACE, "
                        "please escape it with a backslash like "
                        "\\>>>>>>> REPLACE. REPLACE marker must follow a SEARCH "
                        "marker and a SEPARATOR."
                    )
                state = _WAITING
                if inline_content is not None:
                    current_replace.append(inline_content)

                search_content = "\n".join(current_search)
                replace_content = "\n".join(current_replace)

                # A block with nothing on either side carries no edit
                if search_content or replace_content:
                    blocks.append(ParsedBlock(
                        search_content=search_content,
                        replace_content=replace_content,
                        block_id=f"Block {len(blocks) + 1}",
                        search_lines=tuple(current_search),
                        replace_lines=tuple(current_replace),
                    ))

            elif state == _SEARCHING:
                current_search.append(self.unescape_markers(line))
            elif state == _REPLACING:
                current_replace.append(self.unescape_markers(line))

        if state == _SEARCHING and current_search:
            return [], "Incomplete search block - missing separator or replace section"
        if state == _REPLACING:
            return [], "Incomplete replace block - missing replace marker"
        if not blocks:
            return [], "No valid SEARCH/REPLACE blocks found"

        return blocks, None

    # ------------------------------------------------------------------
    # Marker detection
    # ------------------------------------------------------------------

    def _detect_marker_type(self, line: str, track: bool
                            ) -> tuple[Optional[str], Optional[str]]:
        """Classify *line* and pull out any content sharing the marker line.

        Returns ``(marker_type, inline_content)``; both are None for a
        plain content line.
        """
        match = _SEARCH_MARKER.match(line)
        if match:
            _, spaces, keyword, trailing = match.groups()
            inline_content = None

            if self.config.extract_inline_content and trailing.strip():
                stray = _STRAY_ARROW.match(trailing)
                if stray:
                    # "<<<<<<< SEARCH> first line" style
                    inline_content = stray.group(1) or None
                    if track:
                        self._track(IssueType.CLAUDE_MARKER_ISSUE, {
                            "inline_content": stray.group(1),
                            "line": line,
                        })
                else:
                    inline_content = trailing.lstrip()
                    if track:
                        self._track(IssueType.CONTENT_ON_MARKER_LINE, {
                            "inline_content": inline_content,
                            "line": line,
                        })

            if track:
                self._track_marker_format(spaces, keyword, "SEARCH")
            return _SEARCH, inline_content

        match = _REPLACE_MARKER.match(line)
        if match:
            _, spaces, keyword, trailing = match.groups()
            inline_content = None
            if self.config.extract_inline_content and trailing.strip():
                inline_content = trailing.strip()

            if track:
                self._track_marker_format(spaces, keyword, "REPLACE")
            return _REPLACE, inline_content

        if _SEPARATOR_MARKER.match(line):
            return _SEPARATOR, None

        return None, None

    def _track_marker_format(self, spaces: str, keyword: str,
                             canonical: str) -> None:
        if spaces == "":
            self._track(IssueType.MISSING_SPACES_IN_MARKERS)
        elif len(spaces) > 1:
            self._track(IssueType.EXTRA_SPACES_IN_MARKERS)
        if keyword != canonical:
            self._track(IssueType.CASE_MISMATCH_MARKERS)

    def _track(self, issue_type: IssueType, details: Optional[dict] = None) -> None:
        if self.config.track_issues:
            self.tracker.track_issue(issue_type, details)

    @staticmethod
    def unescape_markers(line: str) -> str:
        """Strip the backslash from an escaped ``\\<<<<<``/``\\=====``/``\\>>>>>`` line."""
        return _ESCAPED_MARKER.sub(r"\1", line, count=1)
