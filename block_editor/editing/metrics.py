"""
Edit metrics — records how edit sessions went in a JSONL log file.
"""

from __future__ import annotations

import json
import logging
import os
from collections import Counter
from datetime import datetime, timezone
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .edit_session import EditResult

logger = logging.getLogger(__name__)

_METRICS_DIR = ".block_editor"
_METRICS_FILE = "edit_metrics.jsonl"


def _metrics_path(project_root: str | None = None) -> str:
    """Return the absolute path to the metrics file."""
    base = project_root or os.getcwd()
    return os.path.join(base, _METRICS_DIR, _METRICS_FILE)


def build_edit_metric(result: "EditResult", file_path: str) -> dict:
    """Summarize an EditResult as a metrics entry."""
    blocks = result.located_blocks
    found = [b for b in blocks if b.location_result.found]
    confidences = [b.location_result.confidence for b in found]
    return {
        "file": file_path,
        "success": result.success,
        "blocks_total": len(blocks),
        "blocks_found": len(found),
        "fuzzy_blocks": sum(1 for b in found if b.location_result.is_fuzzy),
        "min_confidence": min(confidences) if confidences else 0,
        "match_types": [b.location_result.overall_match_type.value for b in found],
        "written": result.written,
    }


def log_edit_metric(data: dict, project_root: str | None = None) -> None:
    """Append a single edit metric entry to the JSONL log.

    Parameters
    ----------
    data:
        Metric fields to log (file, success, min_confidence, etc.).
    project_root:
        Optional project root directory. Defaults to CWD.
    """
    path = _metrics_path(project_root)
    os.makedirs(os.path.dirname(path), exist_ok=True)

    entry = {"timestamp": datetime.now(timezone.utc).isoformat()}
    entry.update(data)

    try:
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry) + "\n")
    except OSError as exc:
        logger.warning("[EditMetrics] Failed to write metrics: %s", exc)


def read_edit_stats(
    last_n: int = 50,
    project_root: str | None = None,
) -> dict:
    """Compute rolling statistics from the metrics log.

    Returns
    -------
    dict
        ``total_edits``, ``success_rate`` and ``fuzzy_rate`` (percent),
        ``avg_confidence`` and ``match_types`` (percent of located blocks
        per match type).
    """
    path = _metrics_path(project_root)

    entries: list[dict] = []
    if os.path.isfile(path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        entries.append(json.loads(line))
                    except json.JSONDecodeError:
                        logger.debug("[EditMetrics] Skipping bad line: %.60s", line)
        except OSError as exc:
            logger.warning("[EditMetrics] Failed to read metrics: %s", exc)

    entries = entries[-last_n:]

    if not entries:
        return {
            "total_edits": 0,
            "success_rate": 0.0,
            "fuzzy_rate": 0.0,
            "avg_confidence": 0.0,
            "match_types": {},
        }

    total = len(entries)
    successes = sum(1 for e in entries if e.get("success", False))
    fuzzy = sum(1 for e in entries if e.get("fuzzy_blocks", 0) > 0)
    confidences = [
        e["min_confidence"] for e in entries
        if e.get("success") and "min_confidence" in e
    ]
    match_types = Counter(
        mt for e in entries for mt in e.get("match_types", [])
    )
    located = sum(match_types.values())

    return {
        "total_edits": total,
        "success_rate": successes / total * 100,
        "fuzzy_rate": fuzzy / total * 100,
        "avg_confidence": (
            sum(confidences) / len(confidences) if confidences else 0.0
        ),
        "match_types": {
            mt: count / located * 100
            for mt, count in match_types.most_common()
        },
    }
