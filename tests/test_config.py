"""Tests for configuration loading."""

import pytest
from pathlib import Path

from memshare.config import find_project_config, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ["MEMORY_DIR", "MEMSHARE_LOG_LEVEL"]:
        monkeypatch.delenv(key, raising=False)


class TestLoadConfig:
    def test_defaults(self, tmp_path: Path):
        config = load_config(tmp_path)
        assert config.project is None
        assert config.memory_dir == Path.home() / ".mcp-memory"
        assert config.log_level == "INFO"

    def test_memory_dir_env(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("MEMORY_DIR", str(tmp_path / "shared"))
        config = load_config(tmp_path)
        assert config.memory_dir == tmp_path / "shared"

    def test_memory_dir_env_expands_home(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("MEMORY_DIR", "~/notes")
        config = load_config(tmp_path)
        assert config.memory_dir == Path.home() / "notes"

    def test_project_file(self, tmp_path: Path):
        (tmp_path / "memshare.toml").write_text(
            'memory_dir = "docs/memory"\ndescription = "Team notes"\nlog_level = "DEBUG"\n'
        )
        config = load_config(tmp_path)
        assert config.project is not None
        assert config.project.description == "Team notes"
        assert config.memory_dir == (tmp_path / "docs" / "memory").resolve()
        assert config.log_level == "DEBUG"

    def test_project_file_beats_env(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("MEMORY_DIR", str(tmp_path / "from-env"))
        (tmp_path / ".memshare.toml").write_text("")
        config = load_config(tmp_path)
        assert config.memory_dir == (tmp_path / ".context" / "memory").resolve()

    def test_log_level_env_wins(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("MEMSHARE_LOG_LEVEL", "WARNING")
        (tmp_path / "memshare.toml").write_text('log_level = "DEBUG"\n')
        assert load_config(tmp_path).log_level == "WARNING"

    def test_escaping_memory_dir_rejected(self, tmp_path: Path):
        (tmp_path / "memshare.toml").write_text('memory_dir = "../outside"\n')
        with pytest.raises(ValueError):
            load_config(tmp_path)

    def test_defaults_to_cwd(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "memshare.toml").write_text("")
        assert load_config().project.root == tmp_path.resolve()


class TestFindProjectConfig:
    def test_walks_up(self, tmp_path: Path):
        (tmp_path / "memshare.toml").write_text('memory_dir = "mem"\n')
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        project = find_project_config(nested)
        assert project.root == tmp_path.resolve()
        assert project.memory_dir == "mem"

    def test_hidden_name_preferred(self, tmp_path: Path):
        (tmp_path / ".memshare.toml").write_text('memory_dir = "hidden"\n')
        (tmp_path / "memshare.toml").write_text('memory_dir = "plain"\n')
        assert find_project_config(tmp_path).memory_dir == "hidden"

    def test_disabled_file_skipped(self, tmp_path: Path):
        (tmp_path / "memshare.toml").write_text('memory_dir = "outer"\n')
        inner = tmp_path / "inner"
        inner.mkdir()
        (inner / "memshare.toml").write_text("enabled = false\n")
        assert find_project_config(inner).memory_dir == "outer"

    def test_invalid_toml_skipped(self, tmp_path: Path):
        (tmp_path / "memshare.toml").write_text('memory_dir = "ok"\n')
        inner = tmp_path / "inner"
        inner.mkdir()
        (inner / "memshare.toml").write_text("memory_dir = [unclosed\n")
        assert find_project_config(inner).memory_dir == "ok"

    def test_json_file(self, tmp_path: Path):
        (tmp_path / ".mcp-memory.json").write_text(
            '{"memoryDir": "notes/memory", "description": "Shared notes"}'
        )
        nested = tmp_path / "src"
        nested.mkdir()
        project = find_project_config(nested)
        assert project.root == tmp_path.resolve()
        assert project.memory_dir == "notes/memory"
        assert project.description == "Shared notes"

    def test_json_visible_name_and_default_dir(self, tmp_path: Path):
        (tmp_path / "mcp-memory.json").write_text("{}")
        assert find_project_config(tmp_path).memory_dir == ".context/memory"

    def test_json_disabled_skipped(self, tmp_path: Path):
        (tmp_path / "mcp-memory.json").write_text('{"memoryDir": "outer"}')
        inner = tmp_path / "inner"
        inner.mkdir()
        (inner / ".mcp-memory.json").write_text('{"enabled": false, "memoryDir": "inner"}')
        assert find_project_config(inner).memory_dir == "outer"

    def test_invalid_json_skipped(self, tmp_path: Path):
        (tmp_path / "mcp-memory.json").write_text('{"memoryDir": "ok"}')
        inner = tmp_path / "inner"
        inner.mkdir()
        (inner / ".mcp-memory.json").write_text("{not json")
        assert find_project_config(inner).memory_dir == "ok"

    def test_toml_preferred_over_json(self, tmp_path: Path):
        (tmp_path / "memshare.toml").write_text('memory_dir = "from-toml"\n')
        (tmp_path / ".mcp-memory.json").write_text('{"memoryDir": "from-json"}')
        assert find_project_config(tmp_path).memory_dir == "from-toml"

    def test_json_memory_dir_resolved(self, tmp_path: Path):
        (tmp_path / ".mcp-memory.json").write_text('{"memoryDir": "mem"}')
        assert load_config(tmp_path).memory_dir == (tmp_path / "mem").resolve()
