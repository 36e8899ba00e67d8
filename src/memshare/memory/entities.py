"""Entity store — durable Markdown records, one file per memory.

Layout:
    <root>/
    ├── concepts/<id>.md        # one directory per memory type
    ├── decisions/<id>.md
    ├── ...
    └── .index/search-index.json  # reserved for the search index

Markdown files are the source of truth. Each record keeps its structured
fields in YAML frontmatter and its content as the body. Every write goes to a
hidden temp file in the target directory and is renamed into place.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
from collections.abc import Iterable, Iterator
from datetime import datetime
from pathlib import Path

import frontmatter
import yaml

from memshare.memory.errors import ConflictError, InvalidArgumentError, IOFailureError, NotFoundError
from memshare.memory.models import Memory, MemoryType, is_valid_id, next_timestamp

logger = logging.getLogger(__name__)

INDEX_DIR = ".index"
INDEX_FILE = "search-index.json"

UPDATABLE_FIELDS = frozenset({"title", "content", "tags", "related", "importance"})


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


# mkstemp creates files as 0600; records get the usual umask-derived mode.
_UMASK = _current_umask()


class EntityStore:
    """CRUD for memory records under one root directory."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self._locations: dict[str, MemoryType] = {}

    # ── Initialization ────────────────────────────────────────

    def initialize(self) -> None:
        """Ensure one directory per type plus the index directory. Idempotent."""
        try:
            for memory_type in MemoryType:
                (self.root / memory_type.dirname).mkdir(parents=True, exist_ok=True)
            (self.root / INDEX_DIR).mkdir(exist_ok=True)
        except OSError as e:
            raise IOFailureError(f"Cannot initialize memory store at {self.root}: {e}") from e
        if not os.access(self.root, os.W_OK | os.X_OK):
            raise IOFailureError(f"Memory store at {self.root} is not writable")
        self._scan_locations()

    def _scan_locations(self) -> None:
        self._locations.clear()
        for memory_type in MemoryType:
            for md_file in (self.root / memory_type.dirname).glob("*.md"):
                self._locations[md_file.stem] = memory_type

    def is_empty(self) -> bool:
        try:
            return not self.root.exists() or not any(self.root.iterdir())
        except OSError as e:
            raise IOFailureError(f"Cannot inspect {self.root}: {e}") from e

    def clear(self) -> None:
        """Remove everything under the root, keeping the root itself."""
        if not self.root.exists():
            return
        try:
            for child in self.root.iterdir():
                if child.is_dir() and not child.is_symlink():
                    shutil.rmtree(child)
                else:
                    child.unlink()
        except OSError as e:
            raise IOFailureError(f"Cannot clear {self.root}: {e}") from e
        self._locations.clear()
        logger.info("Cleared memory store at %s", self.root)

    # ── Paths ─────────────────────────────────────────────────

    def _path(self, memory_id: str, memory_type: MemoryType) -> Path:
        return self.root / memory_type.dirname / f"{memory_id}.md"

    def _locate(self, memory_id: str) -> MemoryType | None:
        """Find the type directory holding `memory_id`, checking disk on a miss."""
        if not is_valid_id(memory_id):
            return None
        cached = self._locations.get(memory_id)
        if cached is not None and self._path(memory_id, cached).exists():
            return cached
        self._locations.pop(memory_id, None)
        for memory_type in MemoryType:
            if self._path(memory_id, memory_type).exists():
                self._locations[memory_id] = memory_type
                return memory_type
        return None

    def exists(self, memory_id: str) -> bool:
        return self._locate(memory_id) is not None

    # ── Serialization ─────────────────────────────────────────

    def _render(self, memory: Memory) -> str:
        post = frontmatter.Post(
            memory.content,
            id=memory.id,
            type=memory.type.value,
            title=memory.title,
            tags=list(memory.tags),
            related=list(memory.related),
            importance=memory.importance,
            created=memory.created_at,
            updated=memory.updated_at,
        )
        return frontmatter.dumps(post) + "\n"

    def _load(self, path: Path) -> Memory:
        try:
            # Decoded from bytes so CR and CRLF in content survive the round trip.
            post = frontmatter.loads(path.read_bytes().decode("utf-8"))
        except FileNotFoundError as e:
            raise NotFoundError(f"Memory {path.stem} not found") from e
        except OSError as e:
            raise IOFailureError(f"Cannot read {path}: {e}") from e
        except (yaml.YAMLError, ValueError) as e:
            raise IOFailureError(f"Malformed memory record {path}: {e}") from e
        meta = post.metadata
        try:
            memory = Memory(
                id=str(meta["id"]),
                type=MemoryType(meta["type"]),
                title=str(meta["title"]),
                content=post.content,
                tags=[str(t) for t in meta.get("tags") or []],
                related=[str(r) for r in meta.get("related") or []],
                importance=meta.get("importance", 5),
                created_at=_as_text(meta["created"]),
                updated_at=_as_text(meta["updated"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise IOFailureError(f"Malformed memory record {path}: {e}") from e
        if memory.id != path.stem:
            raise IOFailureError(f"Record {path} carries mismatched id {memory.id}")
        return memory

    def _write(self, memory: Memory) -> None:
        path = self._path(memory.id, memory.type)
        try:
            _atomic_write(path, self._render(memory))
        except OSError as e:
            raise IOFailureError(f"Cannot write memory {memory.id}: {e}") from e
        self._locations[memory.id] = memory.type

    # ── CRUD ──────────────────────────────────────────────────

    def create(self, memory: Memory) -> Memory:
        if not is_valid_id(memory.id):
            raise InvalidArgumentError(f"Invalid memory id: {memory.id!r}")
        if self._locate(memory.id) is not None:
            raise ConflictError(f"Memory {memory.id} already exists")
        self._write(memory)
        logger.info("Created memory %s (%s)", memory.id, memory.type.value)
        return memory

    def read(self, memory_id: str, memory_type: MemoryType) -> Memory:
        """Type-scoped lookup; a memory stored under another type is NotFound."""
        if not is_valid_id(memory_id):
            raise NotFoundError(f"Memory {memory_id} not found")
        return self._load(self._path(memory_id, memory_type))

    def get(self, memory_id: str) -> Memory:
        memory_type = self._locate(memory_id)
        if memory_type is None:
            raise NotFoundError(f"Memory {memory_id} not found")
        return self._load(self._path(memory_id, memory_type))

    def update(self, memory_id: str, fields: dict, touch: bool = False) -> Memory:
        """Merge `fields` into the record and refresh `updated_at`.

        Fields equal to the stored values are not a change; if nothing
        changes (and `touch` is not set) the record is returned untouched
        and nothing is written.
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise InvalidArgumentError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        memory = self.get(memory_id)
        changed = False
        for name, value in fields.items():
            if getattr(memory, name) != value:
                setattr(memory, name, value)
                changed = True
        if not changed and not touch:
            return memory
        memory.updated_at = next_timestamp(memory.updated_at)
        self._write(memory)
        logger.info("Updated memory %s (%s)", memory_id, ", ".join(sorted(fields)))
        return memory

    def delete(self, memory_id: str) -> Memory:
        memory = self.get(memory_id)
        try:
            self._path(memory_id, memory.type).unlink()
        except FileNotFoundError as e:
            raise NotFoundError(f"Memory {memory_id} not found") from e
        except OSError as e:
            raise IOFailureError(f"Cannot delete memory {memory_id}: {e}") from e
        self._locations.pop(memory_id, None)
        logger.info("Deleted memory %s", memory_id)
        return memory

    # ── Listing ───────────────────────────────────────────────

    def iter_all(self) -> Iterator[Memory]:
        """Yield every readable record; unreadable files are logged and skipped."""
        for memory_type in MemoryType:
            type_dir = self.root / memory_type.dirname
            if not type_dir.is_dir():
                continue
            for md_file in sorted(type_dir.glob("*.md")):
                try:
                    memory = self._load(md_file)
                except (IOFailureError, NotFoundError) as e:
                    logger.warning("Skipping unreadable record: %s", e)
                    continue
                if memory.type is not memory_type:
                    logger.warning("Skipping %s: type %s stored under %s/",
                                   md_file, memory.type.value, memory_type.dirname)
                    continue
                yield memory

    def ids(self) -> set[str]:
        self._scan_locations()
        return set(self._locations)

    def list(
        self,
        types: Iterable[MemoryType] | None = None,
        tags: Iterable[str] | None = None,
        limit: int | None = None,
    ) -> list[Memory]:
        """Filter by type (any of) and tags (all of), most recently updated first."""
        type_set = set(types) if types else None
        tag_set = set(tags) if tags else None
        results = [
            m for m in self.iter_all()
            if (type_set is None or m.type in type_set)
            and (tag_set is None or tag_set <= set(m.tags))
        ]
        results.sort(key=lambda m: (m.updated_at, m.id), reverse=True)
        if limit is not None:
            results = results[:limit]
        return results

    # ── Reserved index location ───────────────────────────────

    @property
    def index_path(self) -> Path:
        return self.root / INDEX_DIR / INDEX_FILE

    def load_index(self) -> dict | None:
        """Return the persisted index payload, or None if absent or unreadable."""
        try:
            data = json.loads(self.index_path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.warning("Search index unreadable (%s), will rebuild", e)
            return None
        return data if isinstance(data, dict) else None

    def save_index(self, payload: dict) -> None:
        text = json.dumps(payload, sort_keys=True, indent=1, ensure_ascii=False) + "\n"
        try:
            self.index_path.parent.mkdir(parents=True, exist_ok=True)
            _atomic_write(self.index_path, text)
        except OSError as e:
            raise IOFailureError(f"Cannot write search index: {e}") from e


def _as_text(value: object) -> str:
    # Hand-edited frontmatter may carry bare YAML timestamps.
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _atomic_write(path: Path, text: str) -> None:
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=".", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_path, 0o666 & ~_UMASK)
        os.replace(tmp_path, path)
    except BaseException:
        Path(tmp_path).unlink(missing_ok=True)
        raise
