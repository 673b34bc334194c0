"""
String utilities — normalization and similarity primitives used by the
search engine to compare SEARCH lines against file lines.

All functions are pure.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Optional

from .types import DifferenceType, LineMatchType

# ---------------------------------------------------------------------------
# Character maps
# ---------------------------------------------------------------------------

_SMART_QUOTES = {
    "“": '"',  # left double quote
    "”": '"',  # right double quote
    "„": '"',  # low double quote
    "‘": "'",  # left single quote
    "’": "'",  # right single quote
    "‚": "'",  # low single quote
}

_TYPOGRAPHIC = {
    "…": "...",  # ellipsis
    "—": "-",    # em dash
    "–": "-",    # en dash
    " ": " ",    # non-breaking space
}

# &amp; goes last so "&amp;lt;" unescapes to "&lt;", not "<"
_HTML_ENTITIES = (
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#39;", "'"),
    ("&apos;", "'"),
    ("&amp;", "&"),
)

_WHITESPACE_RUN = re.compile(r"\s+")

_PUNCTUATION_RULES = [
    (re.compile(r",\s*$"), ""),
    (re.compile(r";\s*$"), ""),
    (re.compile(r"\s*,\s*"), ", "),
    (re.compile(r"\s*;\s*"), "; "),
    (re.compile(r"\s*\(\s*"), "("),
    (re.compile(r"\s*\)\s*"), ")"),
    (re.compile(r"\s*\[\s*"), "["),
    (re.compile(r"\s*\]\s*"), "]"),
    (re.compile(r"\s*\{\s*"), "{"),
    (re.compile(r"\s*\}\s*"), "}"),
]

# Line-level fuzzy bands
FUZZY_HIGH_THRESHOLD = 0.85
FUZZY_MEDIUM_THRESHOLD = 0.70
FUZZY_LOW_THRESHOLD = 0.50


@dataclass(frozen=True)
class NormalizeOptions:
    smart_quotes: bool = True
    typographic_chars: bool = True
    html_entities: bool = True
    extra_whitespace: bool = True
    trim: bool = True
    normalize_case: bool = False


_DEFAULT_OPTIONS = NormalizeOptions()
_CODE_OPTIONS = NormalizeOptions()
_AGGRESSIVE_OPTIONS = replace(_DEFAULT_OPTIONS, normalize_case=True)
_HTML_ONLY_OPTIONS = replace(
    _DEFAULT_OPTIONS, smart_quotes=False, typographic_chars=False,
)


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------

def normalize_string(text: Optional[str],
                     options: Optional[NormalizeOptions] = None) -> str:
    """Normalize *text* for comparison.

    Steps run in a fixed order (smart quotes, typographic characters,
    HTML entities, whitespace collapsing, lowercasing, trimming) and each
    one can be switched off through *options*. ``None`` yields ``""``.
    """
    if text is None:
        return ""
    opts = options or _DEFAULT_OPTIONS
    normalized = text

    if opts.smart_quotes:
        for smart, plain in _SMART_QUOTES.items():
            normalized = normalized.replace(smart, plain)

    if opts.typographic_chars:
        for typo, plain in _TYPOGRAPHIC.items():
            normalized = normalized.replace(typo, plain)

    if opts.html_entities:
        for entity, char in _HTML_ENTITIES:
            normalized = normalized.replace(entity, char)

    if opts.extra_whitespace:
        normalized = _WHITESPACE_RUN.sub(" ", normalized)

    if opts.normalize_case:
        normalized = normalized.lower()

    if opts.trim:
        normalized = normalized.strip()

    return normalized


def normalize_for_code(text: Optional[str]) -> str:
    """Normalize while preserving case."""
    return normalize_string(text, _CODE_OPTIONS)


def normalize_aggressive(text: Optional[str]) -> str:
    """Normalize and fold case; only used as the fuzzy comparison base."""
    return normalize_string(text, _AGGRESSIVE_OPTIONS)


def normalize_punctuation(line: str) -> str:
    """Drop trailing ``,``/``;`` and even out spacing around brackets and separators."""
    for pattern, repl in _PUNCTUATION_RULES:
        line = pattern.sub(repl, line)
    return line


def _collapse_whitespace(line: str) -> str:
    return _WHITESPACE_RUN.sub(" ", line.strip())


# ---------------------------------------------------------------------------
# Similarity
# ---------------------------------------------------------------------------

def levenshtein_distance(a: str, b: str) -> int:
    """Character edit distance (insert, delete, substitute all cost 1)."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(min(
                previous[j] + 1,         # delete
                current[j - 1] + 1,      # insert
                previous[j - 1] + cost,  # substitute
            ))
        previous = current
    return previous[-1]


def calculate_similarity(a: str, b: str) -> float:
    """Return ``1 - distance / max_len`` in [0, 1]; identical strings give 1.0."""
    if a == b:
        return 1.0
    max_length = max(len(a), len(b))
    if max_length == 0:
        return 0.0
    return 1 - levenshtein_distance(a, b) / max_length


# ---------------------------------------------------------------------------
# Line comparison
# ---------------------------------------------------------------------------

def detect_differences(line1: str, line2: str) -> list[DifferenceType]:
    """List the kinds of cosmetic difference between two lines.

    Checks are independent, so several can be reported at once.
    """
    differences: list[DifferenceType] = []

    if (line1.replace("'", '"') == line2.replace("'", '"')
            or line1.replace('"', "'") == line2.replace('"', "'")):
        differences.append(DifferenceType.QUOTE_STYLE)

    if _collapse_whitespace(line1) == _collapse_whitespace(line2):
        differences.append(DifferenceType.WHITESPACE)

    if line1.lower() == line2.lower():
        differences.append(DifferenceType.CASE)

    if (line1 != line2
            and normalize_string(line1, _HTML_ONLY_OPTIONS)
            == normalize_string(line2, _HTML_ONLY_OPTIONS)):
        differences.append(DifferenceType.HTML_ENTITIES)

    return differences


def compare_lines(
    line1: str, line2: str,
) -> tuple[LineMatchType, float, list[DifferenceType]]:
    """Compare two lines through progressively looser normalization levels.

    Returns ``(match_type, score, differences)`` for the first level at
    which the lines are equal, falling back to Levenshtein similarity on
    the aggressively normalized forms.
    """
    if line1 == line2:
        return LineMatchType.EXACT, 1.0, []

    if _collapse_whitespace(line1) == _collapse_whitespace(line2):
        return LineMatchType.EXACT_WHITESPACE, 0.99, [DifferenceType.WHITESPACE]

    code1 = normalize_for_code(line1)
    code2 = normalize_for_code(line2)
    if code1 == code2:
        return LineMatchType.NORMALIZED, 0.98, detect_differences(line1, line2)

    if normalize_punctuation(code1) == normalize_punctuation(code2):
        differences = detect_differences(line1, line2)
        if DifferenceType.PUNCTUATION not in differences:
            differences.append(DifferenceType.PUNCTUATION)
        return LineMatchType.PUNCTUATION, 0.95, differences

    aggressive1 = normalize_aggressive(line1)
    aggressive2 = normalize_aggressive(line2)
    if aggressive1 == aggressive2:
        differences = detect_differences(line1, line2)
        if DifferenceType.CASE not in differences:
            differences.append(DifferenceType.CASE)
        return LineMatchType.CASE_INSENSITIVE, 0.90, differences

    similarity = calculate_similarity(aggressive1, aggressive2)
    differences = detect_differences(line1, line2)

    if similarity >= FUZZY_HIGH_THRESHOLD:
        match_type = LineMatchType.FUZZY_HIGH
    elif similarity >= FUZZY_MEDIUM_THRESHOLD:
        match_type = LineMatchType.FUZZY_MEDIUM
    elif similarity >= FUZZY_LOW_THRESHOLD:
        match_type = LineMatchType.FUZZY_LOW
    else:
        match_type = LineMatchType.NO_MATCH
    return match_type, similarity, differences
