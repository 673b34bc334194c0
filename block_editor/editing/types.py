"""
Shared types for the SEARCH/REPLACE editing pipeline.

Every stage (parser → search engine → locator → applier → session) passes
these records around, so they live in one leaf module with no internal
imports.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Optional


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class LineMatchType(str, enum.Enum):
    """How closely a single search line matched a single file line."""
    EXACT = "exact"
    EXACT_WHITESPACE = "exact_whitespace"
    NORMALIZED = "normalized"
    PUNCTUATION = "punctuation"
    CASE_INSENSITIVE = "case_insensitive"
    FUZZY_HIGH = "fuzzy_high"
    FUZZY_MEDIUM = "fuzzy_medium"
    FUZZY_LOW = "fuzzy_low"
    NO_MATCH = "no_match"


class OverallMatchType(str, enum.Enum):
    """Classification of a whole window of search lines."""
    EXACT = "exact"
    EXACT_WHITESPACE = "exact_whitespace"
    FUZZY_HIGH = "fuzzy_high"
    FUZZY_MEDIUM = "fuzzy_medium"
    FUZZY_LOW = "fuzzy_low"


class DifferenceType(str, enum.Enum):
    WHITESPACE = "whitespace"
    CASE = "case"
    PUNCTUATION = "punctuation"
    QUOTE_STYLE = "quote_style"
    HTML_ENTITIES = "html_entities"


# Higher wins when two candidate windows are compared
MATCH_TYPE_PRIORITY: dict[OverallMatchType, int] = {
    OverallMatchType.EXACT: 4,
    OverallMatchType.EXACT_WHITESPACE: 3,
    OverallMatchType.FUZZY_HIGH: 2,
    OverallMatchType.FUZZY_MEDIUM: 1,
    OverallMatchType.FUZZY_LOW: 0,
}


# ---------------------------------------------------------------------------
# Configuration records
# ---------------------------------------------------------------------------

@dataclass
class ParserConfig:
    track_issues: bool = True            # record parsing issues for LLM feedback
    extract_inline_content: bool = True  # keep content found on marker lines


@dataclass
class SearchConfig:
    fuzzy_threshold: float = 0.8
    enable_fuzzy_matching: bool = True
    max_search_iterations: int = 10000


@dataclass
class FeedbackConfig:
    include_parser_feedback: bool = True
    include_locator_feedback: bool = True
    include_ui_summary: bool = True
    include_session_summary: bool = True
    include_final_diff: bool = True


@dataclass
class SessionConfig:
    parser: ParserConfig = field(default_factory=ParserConfig)
    locator: SearchConfig = field(default_factory=SearchConfig)
    feedback: FeedbackConfig = field(default_factory=FeedbackConfig)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ParsedBlock:
    """One SEARCH/REPLACE pair extracted from raw diff text."""
    search_content: str
    replace_content: str
    block_id: str                     # "Block N", 1-based per parse call
    search_lines: tuple[str, ...] = ()
    replace_lines: tuple[str, ...] = ()

    @classmethod
    def from_contents(cls, block_id: str, search_content: str,
                      replace_content: str) -> "ParsedBlock":
        """Build a block, splitting both contents on newlines."""
        return cls(
            search_content=search_content,
            replace_content=replace_content,
            block_id=block_id,
            search_lines=tuple(split_lines(search_content)),
            replace_lines=tuple(split_lines(replace_content)),
        )


@dataclass
class ParsingIssue:
    """A formatting problem the parser noticed and auto-corrected."""
    type: str
    details: dict
    timestamp: float
    severity: str  # "warning" | "error" | "info"
    description: str
    fix: str
    llm_guidance: str


# ---------------------------------------------------------------------------
# Location
# ---------------------------------------------------------------------------

@dataclass
class LineMatchDetail:
    line_number: int          # 1-based absolute file line
    expected_line: str        # what the SEARCH block asked for
    found_line: str           # what the file actually contains
    line_score: float
    line_match_type: LineMatchType
    differences: list[DifferenceType] = field(default_factory=list)


@dataclass
class UsedRange:
    """A file span already claimed by a located block."""
    start_line: int
    end_line: int

    def overlaps(self, start_line: int, end_line: int) -> bool:
        return not (end_line < self.start_line or start_line > self.end_line)


@dataclass
class BlockLocationResult:
    """Outcome of locating one block's SEARCH lines in the file.

    When ``found`` is False the line range, score and content fields still
    describe the best candidate window (if any was evaluated) so callers can
    show it as a best guess.
    """
    found: bool
    start_line: Optional[int] = None
    end_line: Optional[int] = None
    overall_score: float = 0.0
    overall_match_type: OverallMatchType = OverallMatchType.FUZZY_LOW
    confidence: int = 0
    found_content: Optional[str] = None
    found_lines: list[str] = field(default_factory=list)
    line_details: list[LineMatchDetail] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def is_fuzzy(self) -> bool:
        return self.found and self.overall_match_type not in (
            OverallMatchType.EXACT, OverallMatchType.EXACT_WHITESPACE,
        )


@dataclass
class LocatedBlock:
    """A parsed block joined with its location result."""
    search_content: str
    replace_content: str
    block_id: str
    search_lines: tuple[str, ...]
    replace_lines: tuple[str, ...]
    location_result: BlockLocationResult
    applied_start_line: Optional[int] = None
    applied_end_line: Optional[int] = None

    @classmethod
    def from_parsed(cls, block: ParsedBlock,
                    result: BlockLocationResult) -> "LocatedBlock":
        return cls(
            search_content=block.search_content,
            replace_content=block.replace_content,
            block_id=block.block_id,
            search_lines=block.search_lines,
            replace_lines=block.replace_lines,
            location_result=result,
        )

    @property
    def is_noop(self) -> bool:
        """True when the replacement equals what is already in the file."""
        return (
            self.location_result.found
            and list(self.replace_lines) == list(self.location_result.found_lines)
        )


def split_lines(text: str) -> list[str]:
    """Split on ``\\n`` exactly: no trimming, trailing empty line kept."""
    return text.split("\n")
