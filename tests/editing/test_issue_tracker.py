"""Tests for the parsing IssueTracker."""

import pytest

from block_editor.editing.issue_tracker import ISSUE_TYPES, IssueTracker, IssueType


class TestTrackIssue:
    def test_records_issue_with_catalog_text(self):
        tracker = IssueTracker()
        tracker.track_issue(IssueType.MALFORMED_SEARCH_MARKER)

        assert tracker.has_issues()
        issue = tracker.issues[0]
        assert issue.type == "MALFORMED_SEARCH_MARKER"
        assert issue.severity == "error"
        assert issue.fix == "Added missing SEARCH marker"

    def test_accepts_string_key(self):
        tracker = IssueTracker()
        tracker.track_issue("MARKDOWN_NOISE")
        assert tracker.issues[0].severity == "info"

    def test_unknown_type_raises(self):
        tracker = IssueTracker()
        with pytest.raises(ValueError, match="Unknown issue type"):
            tracker.track_issue("NOT_A_REAL_ISSUE")
        assert not tracker.has_issues()

    def test_content_on_marker_line_mentions_content(self):
        tracker = IssueTracker()
        tracker.track_issue(IssueType.CONTENT_ON_MARKER_LINE,
                            {"inline_content": "x = 1"})
        assert "`x = 1`" in tracker.issues[0].description

    def test_stray_marker_without_content(self):
        tracker = IssueTracker()
        tracker.track_issue(IssueType.CLAUDE_MARKER_ISSUE,
                            {"inline_content": "", "line": "<<<<<<< SEARCH>"})
        issue = tracker.issues[0]
        assert issue.fix == "Removed `>`"
        assert "<<<<<<< SEARCH>" in issue.description

    def test_stray_marker_with_content(self):
        tracker = IssueTracker()
        tracker.track_issue(IssueType.CLAUDE_MARKER_ISSUE,
                            {"inline_content": "foo", "line": "<<<<<<< SEARCH> foo"})
        assert "first line in the SEARCH block" in tracker.issues[0].fix

    def test_every_issue_type_has_catalog_entry(self):
        assert set(ISSUE_TYPES) == set(IssueType)

    def test_issues_is_a_copy(self):
        tracker = IssueTracker()
        tracker.track_issue(IssueType.MARKDOWN_NOISE)
        tracker.issues.clear()
        assert tracker.has_issues()


class TestFeedback:
    def test_none_when_empty(self):
        assert IssueTracker().get_llm_feedback() is None

    def test_sections_per_issue(self):
        tracker = IssueTracker()
        tracker.track_issue(IssueType.EXTRA_SPACES_IN_MARKERS)
        tracker.track_issue(IssueType.MARKDOWN_NOISE)

        feedback = tracker.get_llm_feedback()
        sections = feedback.split("\n\n")
        assert len(sections) == 2
        assert sections[0].startswith("### WARNING\nIssue Encountered: ")
        assert "Resolved By Editor: Normalized marker spacing" in sections[0]
        assert sections[1].startswith("### INFO\n")
        assert "Future Guidance: Don't wrap diff blocks" in sections[1]

    def test_clear(self):
        tracker = IssueTracker()
        tracker.track_issue(IssueType.MARKDOWN_NOISE)
        tracker.clear()
        assert not tracker.has_issues()
        assert tracker.get_llm_feedback() is None
