"""Configuration loading from environment variables and project config files.

A project declares its store in `.memshare.toml` / `memshare.toml`, or in the
JSON `.mcp-memory.json` / `mcp-memory.json` files older setups already carry.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from dataclasses import dataclass

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

from memshare.paths import validate_memory_dir

logger = logging.getLogger(__name__)

_DEFAULT_MEMORY_DIR = Path.home() / ".mcp-memory"
_DEFAULT_PROJECT_MEMORY_DIR = ".context/memory"

# (file name, parser, key holding the memory directory), in lookup order
_CONFIG_FILES = (
    (".memshare.toml", tomllib.loads, "memory_dir"),
    ("memshare.toml", tomllib.loads, "memory_dir"),
    (".mcp-memory.json", json.loads, "memoryDir"),
    ("mcp-memory.json", json.loads, "memoryDir"),
)


@dataclass
class ProjectConfig:
    """A project-local store declared by a config file."""

    root: Path
    config_file: Path
    memory_dir: str = _DEFAULT_PROJECT_MEMORY_DIR
    description: str | None = None
    log_level: str | None = None


@dataclass
class MemshareConfig:
    """Top-level configuration."""

    memory_dir: Path = _DEFAULT_MEMORY_DIR
    project: ProjectConfig | None = None
    log_level: str = "INFO"


def _read_config_file(path: Path, parse) -> dict | None:
    try:
        data = parse(path.read_text(encoding="utf-8"))
    except (tomllib.TOMLDecodeError, ValueError, OSError) as e:
        logger.warning("Error reading %s: %s", path, e)
        return None
    if not isinstance(data, dict):
        logger.warning("Error reading %s: expected a table/object", path)
        return None
    return data


def find_project_config(start: Path | None = None) -> ProjectConfig | None:
    """Walk up from `start` (default: cwd) to the nearest enabled config file."""
    current = (start or Path.cwd()).resolve()
    while True:
        for name, parse, dir_key in _CONFIG_FILES:
            candidate = current / name
            if not candidate.is_file():
                continue
            data = _read_config_file(candidate, parse)
            if data is None or data.get("enabled", True) is False:
                continue
            return ProjectConfig(
                root=current,
                config_file=candidate,
                memory_dir=str(data.get(dir_key) or _DEFAULT_PROJECT_MEMORY_DIR),
                description=data.get("description"),
                log_level=data.get("log_level"),
            )
        if current.parent == current:
            return None
        current = current.parent


def load_config(start: Path | None = None) -> MemshareConfig:
    """Resolve the store directory and log level.

    Priority for the directory: project config file > $MEMORY_DIR > default.
    Priority for the log level: $MEMSHARE_LOG_LEVEL > config file > INFO.
    Raises ValueError when a project's memory_dir escapes the project.
    """
    project = find_project_config(start)
    if project:
        memory_dir = validate_memory_dir(project.memory_dir, project.root)
    else:
        memory_dir = Path(os.getenv("MEMORY_DIR", str(_DEFAULT_MEMORY_DIR))).expanduser()

    file_level = project.log_level if project else None
    return MemshareConfig(
        memory_dir=memory_dir,
        project=project,
        log_level=os.getenv("MEMSHARE_LOG_LEVEL", file_level or "INFO"),
    )
