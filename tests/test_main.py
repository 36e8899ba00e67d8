"""Tests for the command-line entry point."""

import sys
from pathlib import Path

import pytest

from memshare.__main__ import main


@pytest.fixture(autouse=True)
def isolated(tmp_path: Path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("MEMSHARE_LOG_LEVEL", raising=False)
    monkeypatch.setenv("MEMORY_DIR", str(tmp_path / "global"))


def run(monkeypatch, *args: str) -> None:
    monkeypatch.setattr(sys, "argv", ["memshare", *args])
    main()


class TestMain:
    def test_escaping_project_dir_reports_error(self, tmp_path: Path, monkeypatch, capsys):
        (tmp_path / "memshare.toml").write_text('memory_dir = "../elsewhere"\n')
        with pytest.raises(SystemExit) as exc:
            run(monkeypatch, "rebuild")
        assert exc.value.code == 1
        assert capsys.readouterr().err.startswith("Error: invalid project configuration")

    def test_rebuild(self, tmp_path: Path, monkeypatch, capsys):
        run(monkeypatch, "rebuild")
        assert "Search index rebuilt" in capsys.readouterr().out
        assert (tmp_path / "global" / ".index" / "search-index.json").exists()

    def test_build_conflict_reports_error(self, tmp_path: Path, monkeypatch, capsys):
        occupied = tmp_path / "occupied"
        occupied.mkdir()
        (occupied / "notes.txt").write_text("keep")
        with pytest.raises(SystemExit):
            run(monkeypatch, "build", str(occupied))
        assert capsys.readouterr().err.startswith("Error:")

    def test_build(self, tmp_path: Path, monkeypatch, capsys):
        run(monkeypatch, "build", str(tmp_path / "fresh"))
        assert (tmp_path / "fresh" / "concepts").is_dir()
        assert "successfully built" in capsys.readouterr().out
