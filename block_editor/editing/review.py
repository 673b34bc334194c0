"""
Review step — the point where a person (or policy) accepts or rejects each
located block before it is written.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Sequence

from .types import LocatedBlock


@dataclass
class ReviewDecision:
    """Per-block verdicts from a reviewer.

    ``accepted`` maps ``block_id`` to True/False; ids that are missing
    count as accepted. A cancelled review applies nothing.
    """
    accepted: dict[str, bool] = field(default_factory=dict)
    cancelled: bool = False
    reason: str = ""

    def is_accepted(self, block_id: str) -> bool:
        return self.accepted.get(block_id, True)


class BlockReviewer(ABC):
    """Decides which located blocks get applied."""

    @abstractmethod
    def review(self, file_path: str, original_content: str,
               located_blocks: Sequence[LocatedBlock]) -> ReviewDecision:
        ...


class AutoAcceptReviewer(BlockReviewer):
    """Accepts every block without asking."""

    def review(self, file_path: str, original_content: str,
               located_blocks: Sequence[LocatedBlock]) -> ReviewDecision:
        return ReviewDecision(accepted={b.block_id: True for b in located_blocks})
