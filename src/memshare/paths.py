"""Path containment checks for configured memory directories."""

from __future__ import annotations

from pathlib import Path


def validate_safe_path(target: str, base: Path) -> Path:
    """Resolve `target` against `base`, rejecting anything that escapes it."""
    if ".." in target or "~" in target:
        raise ValueError(f"Invalid path: {target} contains forbidden patterns")
    resolved_base = base.resolve()
    resolved = (resolved_base / target).resolve()
    if resolved != resolved_base and resolved_base not in resolved.parents:
        raise ValueError(f"Invalid path: {target} attempts to access outside base directory")
    return resolved


def validate_memory_dir(memory_dir: str, project_dir: Path) -> Path:
    """A project's memory directory must be relative and stay inside the project."""
    if Path(memory_dir).is_absolute():
        raise ValueError("Memory directory must be a relative path within the project")
    return validate_safe_path(memory_dir, project_dir)
