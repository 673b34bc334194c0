"""
Search engine — finds where a block's SEARCH lines sit in a file.

A single top-to-bottom scan scores every candidate window line by line
(see ``string_utils.compare_lines``). The first exact window wins outright;
otherwise the best-ranked window is kept and accepted only if it clears the
fuzzy threshold. Accepted windows are recorded as used ranges so a repeated
SEARCH block maps to the next occurrence instead of the same one.

One engine instance belongs to one file: reuse it for every block of that
file and call ``reset_used_ranges`` (or make a new engine) for the next.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Optional, Sequence

from .string_utils import compare_lines
from .types import (
    MATCH_TYPE_PRIORITY,
    BlockLocationResult,
    LineMatchDetail,
    LineMatchType,
    OverallMatchType,
    SearchConfig,
    UsedRange,
)

logger = logging.getLogger(__name__)

# Window-level bands on the averaged line score
_WINDOW_FUZZY_HIGH = 0.85
_WINDOW_FUZZY_MEDIUM = 0.70


@dataclass
class _Candidate:
    """Score of one candidate window during a scan."""
    score: float
    start_line: int
    match_type: OverallMatchType
    line_details: list[LineMatchDetail] = field(default_factory=list)


class SearchEngine:
    """Locate SEARCH blocks inside a file's lines."""

    def __init__(self, config: Optional[SearchConfig] = None) -> None:
        self.config = config or SearchConfig()
        self.used_ranges: list[UsedRange] = []

    def reset_used_ranges(self) -> None:
        """Forget claimed ranges; call before working on a new file."""
        self.used_ranges = []

    def locate_block_in_file(self, search_lines: Sequence[str],
                             file_lines: Sequence[str]) -> BlockLocationResult:
        """Find the best location of *search_lines* in *file_lines*.

        An empty search is treated as "the whole file".
        """
        if len(search_lines) == 0:
            return BlockLocationResult(
                found=True,
                start_line=1,
                end_line=len(file_lines),
                overall_score=1.0,
                overall_match_type=OverallMatchType.EXACT,
                confidence=100,
                found_content="\n".join(file_lines),
                found_lines=list(file_lines),
            )
        return self._linear_search(search_lines, file_lines)

    # ------------------------------------------------------------------
    # Scan
    # ------------------------------------------------------------------

    def _linear_search(self, search_lines: Sequence[str],
                       file_lines: Sequence[str]) -> BlockLocationResult:
        search_len = len(search_lines)
        total_lines = len(file_lines)

        if total_lines < search_len:
            return BlockLocationResult(
                found=False,
                error=(
                    "SEARCH block lines more than file lines. If you are "
                    "rewriting the file, make sure the SEARCH block is empty"
                ),
            )

        best: Optional[_Candidate] = None
        evaluated = 0

        for start in range(1, total_lines - search_len + 2):
            if not self._is_position_available(start, search_len):
                continue

            candidate = self._evaluate_position(search_lines, file_lines, start)
            evaluated += 1

            # Earliest exact window wins, nothing later can replace it
            if candidate.match_type == OverallMatchType.EXACT:
                best = candidate
                break

            if best is None or self._is_better_result(candidate, best):
                best = candidate

            if evaluated >= self.config.max_search_iterations:
                logger.warning(
                    "[SearchEngine] Stopped after %d windows (limit reached)",
                    evaluated,
                )
                break

        if best is None:
            return BlockLocationResult(
                found=False,
                error="No suitable match found - every candidate range is "
                      "already used by a previous block",
            )

        logger.debug(
            "[SearchEngine] Best window at line %d: %s (%.3f) after %d window(s)",
            best.start_line, best.match_type.value, best.score, evaluated,
        )

        if self._is_acceptable(best):
            end_line = best.start_line + search_len - 1
            self._mark_range_used(best.start_line, end_line)
            return self._build_result(best, search_len, file_lines, found=True)

        result = self._build_result(best, search_len, file_lines, found=False)
        result.error = "No suitable match found"
        return result

    def _is_acceptable(self, candidate: _Candidate) -> bool:
        if candidate.match_type in (OverallMatchType.EXACT,
                                    OverallMatchType.EXACT_WHITESPACE):
            return True
        return (
            self.config.enable_fuzzy_matching
            and candidate.score >= self.config.fuzzy_threshold
        )

    # ------------------------------------------------------------------
    # Used ranges
    # ------------------------------------------------------------------

    def _is_position_available(self, start_line: int, search_len: int) -> bool:
        end_line = start_line + search_len - 1
        return not any(r.overlaps(start_line, end_line) for r in self.used_ranges)

    def _mark_range_used(self, start_line: int, end_line: int) -> None:
        self.used_ranges.append(UsedRange(start_line=start_line, end_line=end_line))

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    @staticmethod
    def _evaluate_position(search_lines: Sequence[str],
                           file_lines: Sequence[str],
                           start_line: int) -> _Candidate:
        """Score the window of file lines beginning at 1-based *start_line*."""
        line_details: list[LineMatchDetail] = []
        total_score = 0.0
        all_exact = True
        all_whitespace_or_better = True

        for offset, search_line in enumerate(search_lines):
            line_number = start_line + offset
            file_line = file_lines[line_number - 1]
            match_type, score, differences = compare_lines(search_line, file_line)
            total_score += score

            line_details.append(LineMatchDetail(
                line_number=line_number,
                expected_line=search_line,
                found_line=file_line,
                line_score=score,
                line_match_type=match_type,
                differences=differences,
            ))

            if match_type != LineMatchType.EXACT:
                all_exact = False
                if match_type != LineMatchType.EXACT_WHITESPACE:
                    all_whitespace_or_better = False

        avg_score = total_score / len(search_lines)

        if all_exact:
            overall = OverallMatchType.EXACT
        elif all_whitespace_or_better:
            overall = OverallMatchType.EXACT_WHITESPACE
        elif avg_score >= _WINDOW_FUZZY_HIGH:
            overall = OverallMatchType.FUZZY_HIGH
        elif avg_score >= _WINDOW_FUZZY_MEDIUM:
            overall = OverallMatchType.FUZZY_MEDIUM
        else:
            overall = OverallMatchType.FUZZY_LOW

        return _Candidate(
            score=avg_score,
            start_line=start_line,
            match_type=overall,
            line_details=line_details,
        )

    @staticmethod
    def _is_better_result(new: _Candidate, current: _Candidate) -> bool:
        """Rank by match type first; on a tie the later window wins if its score is not lower."""
        new_priority = MATCH_TYPE_PRIORITY[new.match_type]
        current_priority = MATCH_TYPE_PRIORITY[current.match_type]
        if new_priority != current_priority:
            return new_priority > current_priority
        return new.score >= current.score

    @staticmethod
    def _build_result(candidate: _Candidate, search_len: int,
                      file_lines: Sequence[str], found: bool) -> BlockLocationResult:
        end_line = candidate.start_line + search_len - 1
        found_lines = list(file_lines[candidate.start_line - 1:end_line])
        return BlockLocationResult(
            found=found,
            start_line=candidate.start_line,
            end_line=end_line,
            overall_score=candidate.score,
            overall_match_type=candidate.match_type,
            confidence=math.floor(candidate.score * 100),
            found_content="\n".join(found_lines),
            found_lines=found_lines,
            line_details=candidate.line_details,
        )
