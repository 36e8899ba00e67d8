"""Memory record and field normalization shared by every store component."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Iterable

from memshare.memory.errors import InvalidArgumentError

MIN_IMPORTANCE = 1
MAX_IMPORTANCE = 10
DEFAULT_IMPORTANCE = 5

_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
_SEQUENCES = (list, tuple, set, frozenset)


class MemoryType(str, Enum):
    CONCEPT = "concept"
    DECISION = "decision"
    PATTERN = "pattern"
    REFERENCE = "reference"
    LEARNING = "learning"
    ISSUE = "issue"

    @property
    def dirname(self) -> str:
        return self.value + "s"


@dataclass
class Memory:
    """One persisted knowledge record."""

    id: str
    type: MemoryType
    title: str
    content: str
    tags: list[str] = field(default_factory=list)
    related: list[str] = field(default_factory=list)
    importance: int | float = DEFAULT_IMPORTANCE
    created_at: str = ""
    updated_at: str = ""

    def to_dict(self) -> dict:
        """External (camelCase) representation, as returned to tool callers."""
        return {
            "id": self.id,
            "type": self.type.value,
            "title": self.title,
            "content": self.content,
            "tags": list(self.tags),
            "related": list(self.related),
            "importance": self.importance,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


# ── Field normalization ──────────────────────────────────────


def parse_type(value: str | MemoryType) -> MemoryType:
    try:
        return MemoryType(value)
    except ValueError:
        allowed = ", ".join(t.value for t in MemoryType)
        raise InvalidArgumentError(f"Unknown memory type '{value}' (expected one of: {allowed})")


def parse_types(values: Iterable[str | MemoryType] | None) -> list[MemoryType] | None:
    if values is None:
        return None
    if not isinstance(values, _SEQUENCES):
        raise InvalidArgumentError("types must be a list of memory types")
    return [parse_type(v) for v in values]


def require_text(name: str, value: object) -> str:
    """Strip a required text field, rejecting empty or non-string values."""
    if not isinstance(value, str):
        raise InvalidArgumentError(f"{name} must be a string")
    text = value.strip()
    if not text:
        raise InvalidArgumentError(f"{name} must not be empty")
    return text


def check_importance(value: object) -> int | float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidArgumentError("importance must be a number")
    if not MIN_IMPORTANCE <= value <= MAX_IMPORTANCE:
        raise InvalidArgumentError(
            f"importance {value} out of bounds [{MIN_IMPORTANCE}, {MAX_IMPORTANCE}]"
        )
    return value


def normalize_tags(tags: Iterable[str]) -> list[str]:
    """Lower-case, strip and deduplicate, keeping first-occurrence order."""
    if not isinstance(tags, _SEQUENCES):
        raise InvalidArgumentError("tags must be a list of strings")
    result: list[str] = []
    for tag in tags:
        if not isinstance(tag, str) or not tag.strip():
            raise InvalidArgumentError(f"invalid tag: {tag!r}")
        t = tag.strip().lower()
        if t not in result:
            result.append(t)
    return result


def dedupe_ids(ids: Iterable[str]) -> list[str]:
    if not isinstance(ids, _SEQUENCES):
        raise InvalidArgumentError("ids must be a list of strings")
    result: list[str] = []
    for memory_id in ids:
        if not isinstance(memory_id, str):
            raise InvalidArgumentError(f"invalid memory id: {memory_id!r}")
        if memory_id not in result:
            result.append(memory_id)
    return result


def is_valid_id(memory_id: object) -> bool:
    return isinstance(memory_id, str) and bool(_ID_PATTERN.match(memory_id))


# ── Timestamps ───────────────────────────────────────────────


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def next_timestamp(previous: str) -> str:
    """Current time, bumped past `previous` so updates strictly increase."""
    now = datetime.now(timezone.utc)
    try:
        prev = datetime.fromisoformat(previous)
    except ValueError:
        return now.isoformat(timespec="microseconds")
    if prev.tzinfo is None:
        prev = prev.replace(tzinfo=timezone.utc)
    if now <= prev:
        now = prev + timedelta(microseconds=1)
    return now.isoformat(timespec="microseconds")
