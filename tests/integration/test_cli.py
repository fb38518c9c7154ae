"""Integration tests for the qop command line."""

import json
from pathlib import Path

import pytest

from qop import QOP_DIR
from qop.cli import main


@pytest.fixture
def in_project(project: Path, monkeypatch) -> Path:
    """Run commands from inside the sample project."""
    monkeypatch.chdir(project)
    return project


@pytest.fixture
def initialized(cli_runner, in_project: Path) -> Path:
    """The sample project after ``qop init``."""
    result = cli_runner.invoke(main, ["init"])
    assert result.exit_code == 0, result.output
    return in_project


class TestCLIEntry:
    """Tests for the CLI entry point."""

    def test_version_flag(self, cli_runner):
        result = cli_runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "qop" in result.output
        assert "0.1.0" in result.output

    def test_help_lists_commands(self, cli_runner):
        result = cli_runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        for command in ("init", "checkpoint", "diff", "apply", "reverse", "status", "clean"):
            assert command in result.output


class TestInit:
    """Tests for ``qop init`` and ``qop checkpoint``."""

    def test_init_takes_snapshot(self, initialized: Path):
        qop_dir = initialized / QOP_DIR
        index = json.loads((qop_dir / "index.json").read_text())

        assert (qop_dir / "config.json").exists()
        assert "a.txt" in index["files"]
        assert (qop_dir / "store" / "a.txt").read_text() == "one\ntwo\nthree\n"

    def test_init_twice_fails(self, cli_runner, initialized: Path):
        result = cli_runner.invoke(main, ["init"])
        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_init_leaves_working_tree_untouched(self, cli_runner, in_project: Path):
        (in_project / ".gitignore").write_text("*.pyc\n")

        result = cli_runner.invoke(main, ["init"])

        assert result.exit_code == 0, result.output
        assert (in_project / ".gitignore").read_text() == "*.pyc\n"
        store_copy = in_project / QOP_DIR / "store" / ".gitignore"
        assert store_copy.read_text() == "*.pyc\n"

    def test_commands_require_init(self, cli_runner, in_project: Path):
        for args in (["diff"], ["checkpoint"], ["status"]):
            result = cli_runner.invoke(main, args)
            assert result.exit_code == 1
            assert "Not initialized" in result.output

    def test_checkpoint_picks_up_changes(self, cli_runner, initialized: Path):
        (initialized / "new.txt").write_text("fresh\n")

        result = cli_runner.invoke(main, ["checkpoint"])

        assert result.exit_code == 0, result.output
        index = json.loads((initialized / QOP_DIR / "index.json").read_text())
        assert "new.txt" in index["files"]


class TestPatchCommands:
    """Tests for diff, apply and reverse through the CLI."""

    def test_diff_prints_patch(self, cli_runner, initialized: Path):
        (initialized / "a.txt").write_text("one\nTWO\nthree\nfour\n")

        result = cli_runner.invoke(main, ["diff"])

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == {
            "files": {"a.txt": {"1": "-two\n+TWO", "3": "+four"}}
        }

    def test_diff_without_changes(self, cli_runner, initialized: Path):
        result = cli_runner.invoke(main, ["diff"])
        assert json.loads(result.stdout) == {"files": {}}

    def test_undo_and_redo(self, cli_runner, initialized: Path):
        edited = "one\nTWO\nthree\nfour\n"
        (initialized / "a.txt").write_text(edited)

        result = cli_runner.invoke(main, ["diff", "--reverse", "-o", "undo.patch"])
        assert result.exit_code == 0, result.output

        result = cli_runner.invoke(main, ["apply", "undo.patch"])
        assert result.exit_code == 0, result.output
        assert (initialized / "a.txt").read_text() == "one\ntwo\nthree\n"

        result = cli_runner.invoke(main, ["reverse", "undo.patch", "-o", "redo.patch"])
        assert result.exit_code == 0, result.output

        result = cli_runner.invoke(main, ["apply", "redo.patch"])
        assert result.exit_code == 0, result.output
        assert (initialized / "a.txt").read_text() == edited

    def test_apply_from_stdin(self, cli_runner, initialized: Path):
        patch = json.dumps({"files": {"a.txt": {"0": "-one\n+ONE"}}})

        result = cli_runner.invoke(main, ["apply", "-"], input=patch)

        assert result.exit_code == 0, result.output
        assert (initialized / "a.txt").read_text() == "ONE\ntwo\nthree\n"

    def test_reverse_from_stdin(self, cli_runner, in_project: Path):
        patch = json.dumps({"files": {"a.txt": {"0": "-one\n+ONE"}}})

        result = cli_runner.invoke(main, ["reverse", "-"], input=patch)

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == {"files": {"a.txt": {"0": "-ONE\n+one"}}}

    def test_apply_malformed_patch(self, cli_runner, in_project: Path):
        (in_project / "bad.patch").write_text('{"files": {"a.txt": {"x": "+y"}}}')

        result = cli_runner.invoke(main, ["apply", "bad.patch"])

        assert result.exit_code == 1
        assert "Error" in result.output

    def test_apply_missing_patch_file(self, cli_runner, in_project: Path):
        result = cli_runner.invoke(main, ["apply", "missing.patch"])
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_apply_strict_flag(self, cli_runner, in_project: Path):
        (in_project / "late.patch").write_text('{"files": {"a.txt": {"50": "+late"}}}')

        strict = cli_runner.invoke(main, ["apply", "--strict", "late.patch"])
        assert strict.exit_code == 1
        assert (in_project / "a.txt").read_text() == "one\ntwo\nthree\n"

        lenient = cli_runner.invoke(main, ["apply", "late.patch"])
        assert lenient.exit_code == 0
        assert (in_project / "a.txt").read_text() == "one\ntwo\nthree\n"


class TestStatusAndClean:
    """Tests for ``qop status`` and ``qop clean``."""

    def test_status_lists_modified_files(self, cli_runner, initialized: Path):
        (initialized / "docs" / "guide.md").write_text("# Changed\n")

        result = cli_runner.invoke(main, ["status"])

        assert result.exit_code == 0, result.output
        assert "docs/guide.md" in result.output
        assert "Tracked files" in result.output

    def test_clean_removes_qop_dir(self, cli_runner, initialized: Path):
        result = cli_runner.invoke(main, ["clean", "--force"])

        assert result.exit_code == 0
        assert not (initialized / QOP_DIR).exists()

    def test_clean_without_qop_dir(self, cli_runner, in_project: Path):
        result = cli_runner.invoke(main, ["clean"])
        assert result.exit_code == 0
        assert "Nothing to clean" in result.output
