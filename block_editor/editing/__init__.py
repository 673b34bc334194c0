"""SEARCH/REPLACE block editing — lenient parsing, fuzzy location, application."""

from .types import (
    LineMatchType, OverallMatchType, DifferenceType,
    ParsedBlock, LineMatchDetail, BlockLocationResult, LocatedBlock,
    UsedRange, ParsingIssue,
    ParserConfig, SearchConfig, FeedbackConfig, SessionConfig,
)
from .issue_tracker import IssueTracker, IssueType
from .diff_parser import DiffParser
from .search_engine import SearchEngine
from .block_locator import BlockLocator
from .block_applier import BlockApplyError, apply_blocks, write_file_atomic
from .review import BlockReviewer, AutoAcceptReviewer, ReviewDecision
from .edit_session import EditSession, EditResult
from .metrics import build_edit_metric, log_edit_metric, read_edit_stats

__all__ = [
    "LineMatchType", "OverallMatchType", "DifferenceType",
    "ParsedBlock", "LineMatchDetail", "BlockLocationResult", "LocatedBlock",
    "UsedRange", "ParsingIssue",
    "ParserConfig", "SearchConfig", "FeedbackConfig", "SessionConfig",
    "IssueTracker", "IssueType",
    "DiffParser", "SearchEngine", "BlockLocator",
    "BlockApplyError", "apply_blocks", "write_file_atomic",
    "BlockReviewer", "AutoAcceptReviewer", "ReviewDecision",
    "EditSession", "EditResult",
    "build_edit_metric", "log_edit_metric", "read_edit_stats",
]
