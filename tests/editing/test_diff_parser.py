"""Tests for the SEARCH/REPLACE DiffParser."""

import pytest

from block_editor.editing.diff_parser import DiffParser
from block_editor.editing.issue_tracker import IssueType
from block_editor.editing.types import ParserConfig


SINGLE_BLOCK = """\
<<<<<<< SEARCH
count = 0
=======
counter = 0
>>>>>>> REPLACE
"""

TWO_BLOCKS = """\
<<<<<<< SEARCH
import os
=======
import os
import sys
>>>>>>> REPLACE

Some prose between blocks is ignored.

<<<<<<< SEARCH
def main():
    pass
=======
def main():
    print(sys.argv)
>>>>>>> REPLACE
"""


def _issue_types(parser):
    return [issue.type for issue in parser.issues]


# ---------------------------------------------------------------------------
# Well-formed input
# ---------------------------------------------------------------------------

class TestParseValid:
    def test_single_block(self):
        parser = DiffParser()
        blocks, error = parser.parse(SINGLE_BLOCK)

        assert error is None
        assert len(blocks) == 1
        block = blocks[0]
        assert block.block_id == "Block 1"
        assert block.search_content == "count = 0"
        assert block.replace_content == "counter = 0"
        assert block.search_lines == ("count = 0",)
        assert block.replace_lines == ("counter = 0",)
        assert not parser.has_issues()
        assert parser.get_feedback() is None

    def test_multiple_blocks_numbered_in_order(self):
        blocks, error = DiffParser().parse(TWO_BLOCKS)

        assert error is None
        assert [b.block_id for b in blocks] == ["Block 1", "Block 2"]
        assert blocks[0].replace_lines == ("import os", "import sys")
        assert blocks[1].search_lines == ("def main():", "    pass")

    def test_crlf_line_endings(self):
        blocks, error = DiffParser().parse(SINGLE_BLOCK.replace("\n", "\r\n"))
        assert error is None
        assert blocks[0].search_content == "count = 0"

    def test_deletion_block_has_empty_replace(self):
        diff = "<<<<<<< SEARCH\nobsolete()\n=======\n>>>>>>> REPLACE"
        blocks, error = DiffParser().parse(diff)
        assert error is None
        assert blocks[0].replace_content == ""
        assert blocks[0].replace_lines == ()

    def test_empty_search_block(self):
        diff = "<<<<<<< SEARCH\n=======\nnew file\n>>>>>>> REPLACE"
        blocks, _ = DiffParser().parse(diff)
        assert blocks[0].search_content == ""
        assert blocks[0].replace_content == "new file"

    def test_block_empty_on_both_sides_is_dropped(self):
        diff = "<<<<<<< SEARCH\n=======\n>>>>>>> REPLACE\n" + SINGLE_BLOCK
        blocks, error = DiffParser().parse(diff)
        assert error is None
        assert len(blocks) == 1
        assert blocks[0].block_id == "Block 1"

    def test_separator_with_trailing_whitespace(self):
        diff = "<<<<<<< SEARCH\na\n=======   \nb\n>>>>>>> REPLACE"
        blocks, error = DiffParser().parse(diff)
        assert error is None
        assert blocks[0].replace_content == "b"

    def test_longer_arrow_runs(self):
        diff = "<<<<<<<<< SEARCH\na\n=======\nb\n>>>>>>>>> REPLACE"
        blocks, error = DiffParser().parse(diff)
        assert error is None
        assert blocks[0].search_content == "a"


# ---------------------------------------------------------------------------
# Escaped markers
# ---------------------------------------------------------------------------

class TestEscapedMarkers:
    def test_escaped_markers_become_content(self):
        diff = (
            "<<<<<<< SEARCH\n"
            "x = 1\n"
            "=======\n"
            "\\<<<<<<< SEARCH\n"
            "\\=======\n"
            "\\>>>>>>> REPLACE\n"
            ">>>>>>> REPLACE"
        )
        blocks, error = DiffParser().parse(diff)

        assert error is None
        assert blocks[0].replace_lines == (
            "<<<<<<< SEARCH", "=======", ">>>>>>> REPLACE",
        )

    def test_unescape_keeps_indentation(self):
        assert DiffParser.unescape_markers("    \\=======") == "    ======="

    def test_unescape_ignores_other_backslashes(self):
        assert DiffParser.unescape_markers("\\n = 1") == "\\n = 1"


# ---------------------------------------------------------------------------
# Repairs and issue tracking
# ---------------------------------------------------------------------------

class TestRepairs:
    def test_missing_search_marker_is_inserted(self):
        diff = "count = 0\n=======\ncounter = 0\n>>>>>>> REPLACE"
        parser = DiffParser()
        blocks, error = parser.parse(diff)

        assert error is None
        assert blocks[0].search_content == "count = 0"
        assert _issue_types(parser) == [IssueType.MALFORMED_SEARCH_MARKER.value]

    def test_missing_marker_after_code_fence(self):
        diff = "```\ncount = 0\n=======\ncounter = 0\n>>>>>>> REPLACE\n```"
        parser = DiffParser()
        blocks, error = parser.parse(diff)

        assert error is None
        assert blocks[0].search_content == "count = 0"
        assert _issue_types(parser) == [
            IssueType.MALFORMED_SEARCH_MARKER.value,
            IssueType.MARKDOWN_NOISE.value,
        ]

    def test_missing_space(self):
        parser = DiffParser()
        blocks, _ = parser.parse("<<<<<<<SEARCH\na\n=======\nb\n>>>>>>> REPLACE")
        assert blocks[0].search_content == "a"
        assert IssueType.MISSING_SPACES_IN_MARKERS.value in _issue_types(parser)

    def test_extra_spaces(self):
        parser = DiffParser()
        parser.parse("<<<<<<<   SEARCH\na\n=======\nb\n>>>>>>> REPLACE")
        assert IssueType.EXTRA_SPACES_IN_MARKERS.value in _issue_types(parser)

    def test_case_mismatch(self):
        parser = DiffParser()
        blocks, _ = parser.parse("<<<<<<< search\na\n=======\nb\n>>>>>>> Replace")
        assert blocks[0].replace_content == "b"
        assert _issue_types(parser).count(IssueType.CASE_MISMATCH_MARKERS.value) == 2

    def test_content_on_search_marker_line(self):
        parser = DiffParser()
        blocks, _ = parser.parse(
            "<<<<<<< SEARCH foo = 1\nbar = 2\n=======\nbaz\n>>>>>>> REPLACE"
        )
        assert blocks[0].search_lines == ("foo = 1", "bar = 2")
        assert IssueType.CONTENT_ON_MARKER_LINE.value in _issue_types(parser)

    def test_stray_arrow_with_content(self):
        parser = DiffParser()
        blocks, _ = parser.parse(
            "<<<<<<< SEARCH> foo = 1\n=======\nfoo = 2\n>>>>>>> REPLACE"
        )
        assert blocks[0].search_lines == ("foo = 1",)
        assert IssueType.CLAUDE_MARKER_ISSUE.value in _issue_types(parser)

    def test_stray_arrow_alone(self):
        parser = DiffParser()
        blocks, _ = parser.parse("<<<<<<< SEARCH>\nfoo\n=======\nbar\n>>>>>>> REPLACE")
        assert blocks[0].search_lines == ("foo",)
        assert parser.issues[0].fix == "Removed `>`"

    def test_content_after_replace_marker(self):
        blocks, _ = DiffParser().parse(
            "<<<<<<< SEARCH\na\n=======\nb\n>>>>>>> REPLACE c"
        )
        assert blocks[0].replace_lines == ("b", "c")

    def test_inline_extraction_can_be_disabled(self):
        parser = DiffParser(ParserConfig(extract_inline_content=False))
        blocks, _ = parser.parse(
            "<<<<<<< SEARCH foo\nbar\n=======\nbaz\n>>>>>>> REPLACE"
        )
        assert blocks[0].search_lines == ("bar",)

    def test_tracking_can_be_disabled(self):
        parser = DiffParser(ParserConfig(track_issues=False))
        blocks, error = parser.parse("count = 0\n=======\nx\n>>>>>>> REPLACE")
        assert error is None
        assert blocks
        assert not parser.has_issues()

    def test_issues_cleared_between_parses(self):
        parser = DiffParser()
        parser.parse("<<<<<<<SEARCH\na\n=======\nb\n>>>>>>> REPLACE")
        assert parser.has_issues()

        parser.parse(SINGLE_BLOCK)
        assert not parser.has_issues()

    def test_empty_input_clears_previous_issues(self):
        parser = DiffParser()
        parser.parse("<<<<<<<SEARCH\na\n=======\nb\n>>>>>>> REPLACE")
        assert parser.has_issues()

        assert parser.parse("") == (None, "Empty diff content")
        assert not parser.has_issues()
        assert parser.get_feedback() is None

    def test_clear_issues(self):
        parser = DiffParser()
        parser.parse("<<<<<<<SEARCH\na\n=======\nb\n>>>>>>> REPLACE")
        parser.clear_issues()
        assert parser.issues == []

    def test_feedback_format(self):
        parser = DiffParser()
        parser.parse("count = 0\n=======\nx\n>>>>>>> REPLACE")
        feedback = parser.get_feedback()
        assert feedback.startswith("## ISSUES WHILE PARSING DIFF\n### ERROR\n")
        assert "Added missing SEARCH marker" in feedback


# ---------------------------------------------------------------------------
# Structural errors
# ---------------------------------------------------------------------------

class TestParseErrors:
    @pytest.mark.parametrize("diff", ["", None])
    def test_empty_input(self, diff):
        assert DiffParser().parse(diff) == (None, "Empty diff content")

    def test_search_inside_search(self):
        blocks, error = DiffParser().parse(
            "<<<<<<< SEARCH\n<<<<<<< SEARCH\na\n=======\nb\n>>>>>>> REPLACE"
        )
        assert blocks is None
        assert error.startswith("Unexpected SEARCH marker at line 2")
        assert "\\<<<<<<< SEARCH" in error

    def test_separator_outside_block(self):
        _, error = DiffParser().parse(SINGLE_BLOCK + "=======\n")
        assert error.startswith("Unexpected separator at line 6")

    def test_replace_before_separator(self):
        _, error = DiffParser().parse("<<<<<<< SEARCH\na\n>>>>>>> REPLACE")
        assert error.startswith("Unexpected REPLACE marker at line 3")

    def test_incomplete_search(self):
        _, error = DiffParser().parse("<<<<<<< SEARCH\na")
        assert error == "Incomplete search block - missing separator or replace section"

    def test_incomplete_replace(self):
        _, error = DiffParser().parse("<<<<<<< SEARCH\na\n=======\nb")
        assert error == "Incomplete replace block - missing replace marker"

    def test_no_valid_blocks(self):
        _, error = DiffParser().parse("<<<<<<< SEARCH\n=======\n>>>>>>> REPLACE")
        assert error == "No valid SEARCH/REPLACE blocks found"
