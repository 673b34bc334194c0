"""
block_editor — fuzzy SEARCH/REPLACE block editing for LLM-written diffs.

Public API for library usage::

    from block_editor import EditSession

    result = EditSession("app.py", diff_text).run()
    print(result.report)
"""

from .editing import (
    BlockLocator, DiffParser, EditResult, EditSession, SearchEngine,
)

__all__ = ["BlockLocator", "DiffParser", "EditResult", "EditSession", "SearchEngine"]
