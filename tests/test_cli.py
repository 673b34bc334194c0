"""Tests for the block-editor command line."""

import json
import os

import pytest

from block_editor.cli import build_parser, main


DIFF = """\
<<<<<<< SEARCH
count = 0
=======
counter = 0
>>>>>>> REPLACE
"""


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    for key in list(os.environ):
        if key.startswith("BLOCK_EDITOR_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("BLOCK_EDITOR_LOG_DIR", str(tmp_path / "logs"))
    (tmp_path / "app.py").write_text("a\ncount = 0\nb\n", encoding="utf-8")
    (tmp_path / "change.diff").write_text(DIFF, encoding="utf-8")
    return tmp_path


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_apply_diff(workspace, capsys):
    code = main(["apply", "app.py", "--diff", "change.diff"])

    assert code == 0
    assert (workspace / "app.py").read_text(encoding="utf-8") == "a\ncounter = 0\nb\n"
    assert "# EDIT SESSION" in capsys.readouterr().out
    assert os.listdir(workspace / "logs")


def test_apply_dry_run(workspace):
    code = main(["apply", "app.py", "--diff", "change.diff", "--dry-run"])

    assert code == 0
    assert (workspace / "app.py").read_text(encoding="utf-8") == "a\ncount = 0\nb\n"


def test_apply_failure_exit_code(workspace, capsys):
    (workspace / "bad.diff").write_text(
        "<<<<<<< SEARCH\nnothing like the file\n=======\nx\n>>>>>>> REPLACE\n",
        encoding="utf-8",
    )
    code = main(["apply", "app.py", "--diff", "bad.diff"])

    assert code == 1
    assert "Couldn't find 1 of 1 block(s)" in capsys.readouterr().out


def test_apply_no_fuzzy(workspace):
    (workspace / "fuzzy.diff").write_text(
        "<<<<<<< SEARCH\ncount = 0;\n=======\nx = 1\n>>>>>>> REPLACE\n",
        encoding="utf-8",
    )
    assert main(["apply", "app.py", "--diff", "fuzzy.diff"]) == 0
    (workspace / "app.py").write_text("a\ncount = 0\nb\n", encoding="utf-8")
    assert main(["apply", "app.py", "--diff", "fuzzy.diff", "--no-fuzzy"]) == 1


def test_apply_replace_with(workspace):
    (workspace / "new.txt").write_text("fresh\n", encoding="utf-8")
    code = main(["apply", "created.py", "--replace-with", "new.txt"])

    assert code == 0
    assert (workspace / "created.py").read_text(encoding="utf-8") == "fresh\n"


def test_apply_without_input(workspace, capsys):
    assert main(["apply", "app.py"]) == 2
    assert "--diff or --replace-with" in capsys.readouterr().err


def test_apply_unreadable_diff(workspace):
    assert main(["apply", "app.py", "--diff", "missing.diff"]) == 2


def test_metrics_logged_when_enabled(workspace, monkeypatch, capsys):
    monkeypatch.setenv("BLOCK_EDITOR_METRICS", "true")
    main(["apply", "app.py", "--diff", "change.diff"])

    path = workspace / ".block_editor" / "edit_metrics.jsonl"
    entry = json.loads(path.read_text(encoding="utf-8").splitlines()[0])
    assert entry["file"] == "app.py"
    assert entry["success"] is True

    assert main(["stats"]) == 0
    out = capsys.readouterr().out
    assert "last 1 edit(s)" in out
    assert "success rate     100.0%" in out
