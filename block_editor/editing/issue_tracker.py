"""
Issue tracker — records formatting problems the diff parser repaired so
they can be reported back to the LLM that wrote the diff.
"""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .types import ParsingIssue

logger = logging.getLogger(__name__)


class IssueType(str, enum.Enum):
    EXTRA_SPACES_IN_MARKERS = "EXTRA_SPACES_IN_MARKERS"
    CASE_MISMATCH_MARKERS = "CASE_MISMATCH_MARKERS"
    MISSING_SPACES_IN_MARKERS = "MISSING_SPACES_IN_MARKERS"
    MARKDOWN_NOISE = "MARKDOWN_NOISE"
    MALFORMED_SEARCH_MARKER = "MALFORMED_SEARCH_MARKER"
    FUZZY_MATCH_WARNING = "FUZZY_MATCH_WARNING"
    BLOCK_LOCATION_FAILED = "BLOCK_LOCATION_FAILED"
    CONTENT_ON_MARKER_LINE = "CONTENT_ON_MARKER_LINE"
    CLAUDE_MARKER_ISSUE = "CLAUDE_MARKER_ISSUE"


@dataclass(frozen=True)
class IssueInfo:
    description: str
    fix: str
    llm_guidance: str
    severity: str


IssueFactory = Callable[[dict], IssueInfo]


def _static(info: IssueInfo) -> IssueFactory:
    return lambda _details: info


def _content_on_marker_line(details: dict) -> IssueInfo:
    return IssueInfo(
        description=(
            "`<<<<<<< SEARCH` marker line contains content: "
            f"`{details.get('inline_content') or ''}`"
        ),
        fix=(
            "Removed content on the marker line and used it as first line "
            "in the SEARCH block."
        ),
        llm_guidance=(
            "`<<<<<<< SEARCH` marker line should not contain any content, "
            "only the marker itself"
        ),
        severity="warning",
    )


def _stray_marker_suffix(details: dict) -> IssueInfo:
    fix = "Removed `>`"
    if details.get("inline_content"):
        fix += " and content on that line is used as first line in the SEARCH block."
    return IssueInfo(
        description=(
            "`<<<<<<< SEARCH` marker line is not EXACT. "
            f"`{details.get('line', '')}` found instead"
        ),
        fix=fix,
        llm_guidance=(
            "`<<<<<<< SEARCH` marker line should be EXACT without any other "
            "characters like `>` or other content on the marker lines"
        ),
        severity="warning",
    )


ISSUE_TYPES: dict[IssueType, IssueFactory] = {
    IssueType.EXTRA_SPACES_IN_MARKERS: _static(IssueInfo(
        description="Extra spaces found in search/replace markers",
        fix="Normalized marker spacing",
        llm_guidance="Use exactly one space: '<<<<<<< SEARCH' not '<<<<<<<  SEARCH'",
        severity="warning",
    )),
    IssueType.CASE_MISMATCH_MARKERS: _static(IssueInfo(
        description="Inconsistent case in SEARCH/REPLACE keywords",
        fix="Converted to uppercase",
        llm_guidance="Always use uppercase: 'SEARCH' and 'REPLACE'",
        severity="warning",
    )),
    IssueType.MISSING_SPACES_IN_MARKERS: _static(IssueInfo(
        description="No space between markers and keywords",
        fix="Added missing space",
        llm_guidance="Use space: '<<<<<<< SEARCH' not '<<<<<<<SEARCH'",
        severity="warning",
    )),
    IssueType.MARKDOWN_NOISE: _static(IssueInfo(
        description="Markdown code blocks around diff content",
        fix="Stripped markdown formatting",
        llm_guidance="Don't wrap diff blocks in markdown code blocks",
        severity="info",
    )),
    IssueType.MALFORMED_SEARCH_MARKER: _static(IssueInfo(
        description="Missing or malformed SEARCH marker",
        fix="Added missing SEARCH marker",
        llm_guidance="Always start blocks with '<<<<<<< SEARCH'",
        severity="error",
    )),
    IssueType.FUZZY_MATCH_WARNING: _static(IssueInfo(
        description="Block found with fuzzy matching instead of exact match",
        fix="Applied fuzzy matching with confidence score",
        llm_guidance="Consider using exact content from the file to avoid fuzzy matching",
        severity="info",
    )),
    IssueType.BLOCK_LOCATION_FAILED: _static(IssueInfo(
        description="Failed to locate block content in file",
        fix="Block skipped",
        llm_guidance="Ensure the search content exists exactly in the target file",
        severity="error",
    )),
    IssueType.CONTENT_ON_MARKER_LINE: _content_on_marker_line,
    IssueType.CLAUDE_MARKER_ISSUE: _stray_marker_suffix,
}


class IssueTracker:
    """Accumulates ParsingIssue records for one parse call.

    Owned by a DiffParser and cleared at the start of every parse; never
    shared between parsers.
    """

    def __init__(self) -> None:
        self._issues: list[ParsingIssue] = []

    def track_issue(self, issue_type: IssueType | str,
                    details: Optional[dict] = None) -> None:
        """Record an issue.

        Raises
        ------
        ValueError
            If *issue_type* is not a known issue key.
        """
        try:
            key = IssueType(issue_type)
        except ValueError:
            raise ValueError(f"Unknown issue type: {issue_type!r}") from None

        details = details or {}
        info = ISSUE_TYPES[key](details)
        self._issues.append(ParsingIssue(
            type=key.value,
            details=details,
            timestamp=time.time(),
            severity=info.severity,
            description=info.description,
            fix=info.fix,
            llm_guidance=info.llm_guidance,
        ))
        logger.debug("[IssueTracker] %s (%s): %s",
                     key.value, info.severity, info.description)

    def has_issues(self) -> bool:
        return len(self._issues) > 0

    @property
    def issues(self) -> list[ParsingIssue]:
        return list(self._issues)

    def get_llm_feedback(self) -> Optional[str]:
        """Format every tracked issue as a markdown section, or None."""
        if not self._issues:
            return None

        parts = [
            f"### {issue.severity.upper()}\n"
            f"Issue Encountered: {issue.description}\n"
            f"Resolved By Editor: {issue.fix}\n"
            f"Future Guidance: {issue.llm_guidance}"
            for issue in self._issues
        ]
        return "\n\n".join(parts)

    def clear(self) -> None:
        self._issues = []
