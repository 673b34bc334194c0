"""Tests for applying located blocks and atomic writes."""

import os

import pytest

from block_editor.editing.block_applier import (
    BlockApplyError, apply_blocks, write_file_atomic,
)
from block_editor.editing.block_locator import BlockLocator
from block_editor.editing.diff_parser import DiffParser
from block_editor.editing.types import ParsedBlock


def _locate(content, *pairs):
    blocks = [
        ParsedBlock.from_contents(f"Block {i}", search, replace)
        for i, (search, replace) in enumerate(pairs, start=1)
    ]
    return BlockLocator().locate_all_blocks(blocks, content)


class TestApplyBlocks:
    def test_offsets_from_earlier_blocks(self):
        located = _locate("a\nb\nc\nd", ("a", "A1\nA2"), ("c\nd", "C"))
        lines = apply_blocks(["a", "b", "c", "d"], located)

        assert lines == ["A1", "A2", "b", "C"]
        assert (located[0].applied_start_line, located[0].applied_end_line) == (1, 2)
        assert (located[1].applied_start_line, located[1].applied_end_line) == (4, 4)

    def test_blocks_applied_in_file_order(self):
        located = _locate("a\nb\nc\nd", ("c\nd", "C"), ("a", "A1\nA2"))
        lines = apply_blocks(["a", "b", "c", "d"], located)

        assert lines == ["A1", "A2", "b", "C"]
        assert located[0].applied_start_line == 4

    def test_rejected_block_is_skipped(self):
        located = _locate("a\nb\nc\nd", ("a", "A1\nA2"), ("c\nd", "C"))
        lines = apply_blocks(["a", "b", "c", "d"], located,
                             accepted={"Block 1": False, "Block 2": True})

        assert lines == ["a", "b", "C"]
        assert located[0].applied_start_line is None
        assert located[0].applied_end_line is None
        assert (located[1].applied_start_line, located[1].applied_end_line) == (3, 3)

    def test_missing_verdict_counts_as_accepted(self):
        located = _locate("a\nb", ("a", "x"), ("b", "y"))
        lines = apply_blocks(["a", "b"], located, accepted={"Block 1": False})
        assert lines == ["a", "y"]

    def test_deletion_block(self):
        deletion = ParsedBlock(search_content="b", replace_content="",
                               block_id="Block 1", search_lines=("b",))
        located = BlockLocator().locate_all_blocks([deletion], "a\nb\nc")
        block = located[0]
        lines = apply_blocks(["a", "b", "c"], located)

        assert lines == ["a", "c"]
        assert block.applied_start_line == 2
        assert block.applied_end_line == 1

    def test_input_lines_not_modified(self):
        original = ["a", "b"]
        located = _locate("a\nb", ("a", "z"))
        apply_blocks(original, located)
        assert original == ["a", "b"]

    def test_unlocated_block_raises(self):
        located = _locate("a\nb", ("a", "x"), ("nothing like this line", "y"))
        assert not located[1].location_result.found

        with pytest.raises(BlockApplyError, match="Block 2"):
            apply_blocks(["a", "b"], located)


class TestWriteFileAtomic:
    def test_creates_file_and_parents(self, tmp_path):
        target = tmp_path / "sub" / "out.txt"
        write_file_atomic(str(target), "hello\n")
        assert target.read_text(encoding="utf-8") == "hello\n"

    def test_overwrites_existing(self, tmp_path):
        target = tmp_path / "out.txt"
        target.write_text("old", encoding="utf-8")
        write_file_atomic(str(target), "new")

        assert target.read_text(encoding="utf-8") == "new"
        assert os.listdir(tmp_path) == ["out.txt"]

    def test_keeps_crlf(self, tmp_path):
        target = tmp_path / "out.txt"
        write_file_atomic(str(target), "a\r\nb\r\n")
        assert target.read_bytes() == b"a\r\nb\r\n"


class TestPipeline:
    def test_example_scenario(self):
        diff = "<<<<<<< SEARCH\ncount = 0\n=======\ncounter = 0\n>>>>>>> REPLACE"
        blocks, error = DiffParser().parse(diff)
        assert error is None
        assert len(blocks) == 1

        located = BlockLocator().locate_all_blocks(blocks, "a\ncount = 0\nb")
        result = located[0].location_result
        assert result.found
        assert (result.start_line, result.end_line) == (2, 2)
        assert result.overall_match_type.value == "exact"
        assert result.confidence == 100

        assert apply_blocks(["a", "count = 0", "b"], located) == ["a", "counter = 0", "b"]

    @pytest.mark.parametrize("start,length", [(0, 1), (1, 3), (3, 2), (0, 5)])
    def test_identity_block_leaves_file_unchanged(self, start, length):
        file_lines = ["import os", "", "def f(x):", "    return x * 2", ""]
        chunk = "\n".join(file_lines[start:start + length])
        located = _locate("\n".join(file_lines), (chunk, chunk))
        result = located[0].location_result

        assert result.overall_match_type.value == "exact"
        assert result.confidence == 100
        assert apply_blocks(file_lines, located) == file_lines
