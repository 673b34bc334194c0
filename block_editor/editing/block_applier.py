"""
Block applier — writes located REPLACE content into a file's lines and
records where each replacement ended up.
"""

from __future__ import annotations

import logging
import os
import shutil
from typing import Mapping, Optional, Sequence

from .types import LocatedBlock

logger = logging.getLogger(__name__)


class BlockApplyError(Exception):
    """Raised when a block without a location is handed to the applier."""


def apply_blocks(
    file_lines: Sequence[str],
    located_blocks: Sequence[LocatedBlock],
    accepted: Optional[Mapping[str, bool]] = None,
) -> list[str]:
    """Apply accepted blocks and return the new file lines.

    Blocks are applied in file order. Each block's ``applied_start_line``
    / ``applied_end_line`` is set to where its REPLACE lines live in the
    returned lines, after the line-count changes of earlier blocks.
    Rejected blocks are skipped and keep ``None`` for both.

    Parameters
    ----------
    file_lines:
        Current file content split on ``\\n``. Not modified.
    located_blocks:
        Output of ``BlockLocator.locate_all_blocks``; every block must be
        found.
    accepted:
        Optional ``block_id -> bool`` decisions. Missing ids count as
        accepted.
    """
    for block in located_blocks:
        if not block.location_result.found:
            raise BlockApplyError(
                f"{block.block_id} was not located and cannot be applied"
            )

    lines = list(file_lines)
    offset = 0
    ordered = sorted(located_blocks, key=lambda b: b.location_result.start_line)

    for block in ordered:
        block.applied_start_line = None
        block.applied_end_line = None
        if accepted is not None and not accepted.get(block.block_id, True):
            logger.debug("[BlockApplier] %s rejected, skipping", block.block_id)
            continue

        start = block.location_result.start_line + offset
        end = block.location_result.end_line + offset
        lines[start - 1:end] = list(block.replace_lines)

        block.applied_start_line = start
        block.applied_end_line = start + len(block.replace_lines) - 1
        offset += len(block.replace_lines) - (end - start + 1)

        logger.debug("[BlockApplier] %s applied at lines %d-%d",
                     block.block_id, block.applied_start_line,
                     block.applied_end_line)

    return lines


def write_file_atomic(file_path: str, content: str) -> None:
    """Write *content* via a temp file and rename it over *file_path*."""
    abs_path = os.path.abspath(file_path)
    tmp_path = abs_path + ".block_editor_tmp"

    try:
        parent = os.path.dirname(abs_path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        with open(tmp_path, "w", encoding="utf-8", newline="") as f:
            f.write(content)

        # os.rename fails on Windows when the destination exists
        if os.path.exists(abs_path):
            shutil.move(tmp_path, abs_path)
        else:
            os.rename(tmp_path, abs_path)
    except Exception:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
