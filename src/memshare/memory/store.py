"""Memory store façade — the only entry point external callers use.

Coordinates the entity store, search index and relation graph so that every
mutation leaves records, postings and edges consistent. Validation happens
before anything is written; a rejected call changes nothing.
"""

from __future__ import annotations

import logging
import uuid
from pathlib import Path

from memshare.memory.commands import (
    AddTags,
    BuildMemoryStore,
    Command,
    CreateMemory,
    DeleteMemory,
    GetMemory,
    ListMemories,
    RebuildIndex,
    RelateMemories,
    RemoveTags,
    SearchMemories,
    UnrelateMemories,
    UpdateMemory,
)
from memshare.memory.entities import EntityStore
from memshare.memory.errors import ConflictError, InvalidArgumentError, IOFailureError
from memshare.memory.index import SearchIndex
from memshare.memory.models import (
    DEFAULT_IMPORTANCE,
    Memory,
    MemoryType,
    check_importance,
    dedupe_ids,
    normalize_tags,
    now_iso,
    parse_type,
    parse_types,
    require_text,
)
from memshare.memory.query import QueryEngine
from memshare.memory.relations import RelationGraph

logger = logging.getLogger(__name__)

_TEXT_FIELDS = ("title", "content", "tags")


class MemoryStore:
    """Explicit handle on one store root. Create one per directory."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self.entities = EntityStore(self.root)
        self.index = SearchIndex(self.entities)
        self.relations = RelationGraph(self.entities)
        self.queries = QueryEngine(self.entities, self.index)
        self._load()

    def _load(self) -> None:
        self.entities.initialize()
        self.index.load()
        logger.info("Memory store ready at %s (%d memories)", self.root, len(self.index))

    # ── Mutations ─────────────────────────────────────────────

    def create_memory(
        self,
        title: str,
        type: str | MemoryType,
        content: str,
        tags: list[str] | None = None,
        related: list[str] | None = None,
        importance: int | float | None = None,
    ) -> Memory:
        memory_type = parse_type(type)
        title = require_text("title", title)
        content = require_text("content", content)
        tags = normalize_tags(tags or [])
        related = dedupe_ids(related or [])
        importance = DEFAULT_IMPORTANCE if importance is None else check_importance(importance)

        memory_id = str(uuid.uuid4())
        self.relations.check_targets(memory_id, related)

        ts = now_iso()
        memory = Memory(
            id=memory_id,
            type=memory_type,
            title=title,
            content=content,
            tags=tags,
            related=related,
            importance=importance,
            created_at=ts,
            updated_at=ts,
        )
        self.entities.create(memory)
        self.index.index(memory)
        self.relations.attach(memory_id, related)
        return memory

    def update_memory(
        self,
        id: str,
        title: str | None = None,
        content: str | None = None,
        tags: list[str] | None = None,
        related: list[str] | None = None,
        importance: int | float | None = None,
    ) -> Memory:
        """Apply the supplied fields; `related`, if given, replaces the edge set."""
        current = self.entities.get(id)
        fields: dict = {}
        if title is not None:
            fields["title"] = require_text("title", title)
        if content is not None:
            fields["content"] = require_text("content", content)
        if tags is not None:
            fields["tags"] = normalize_tags(tags)
        if importance is not None:
            fields["importance"] = check_importance(importance)
        if related is not None:
            related = dedupe_ids(related)
            self.relations.check_targets(id, related)
            fields["related"] = related
        if not fields:
            raise InvalidArgumentError("No fields to update")

        memory = self.entities.update(id, fields, touch=True)
        if related is not None:
            self.relations.attach(id, [r for r in related if r not in current.related])
            self.relations.release(id, [r for r in current.related if r not in related])
        if any(name in fields for name in _TEXT_FIELDS):
            self.index.index(memory)
        return memory

    def delete_memory(self, id: str) -> None:
        """Delete a memory, cascading edge cleanup and index removal."""
        memory = self.entities.get(id)
        self.relations.detach(id)
        self.index.unindex(id)
        try:
            self.entities.delete(id)
        except IOFailureError:
            logger.warning("Delete of %s failed, restoring its index entry and edges", id)
            self.index.index(memory)
            self.relations.attach(id, [r for r in memory.related if self.entities.exists(r)])
            raise

    def add_tags(self, id: str, tags: list[str]) -> Memory:
        memory = self.entities.get(id)
        new_tags = [t for t in normalize_tags(tags) if t not in memory.tags]
        if not new_tags:
            return memory
        memory = self.entities.update(id, {"tags": memory.tags + new_tags})
        self.index.index(memory)
        return memory

    def remove_tags(self, id: str, tags: list[str]) -> Memory:
        memory = self.entities.get(id)
        drop = set(normalize_tags(tags))
        kept = [t for t in memory.tags if t not in drop]
        if kept == memory.tags:
            return memory
        memory = self.entities.update(id, {"tags": kept})
        self.index.index(memory)
        return memory

    def relate_memories(self, source_id: str, target_ids: list[str]) -> Memory:
        return self.relations.relate(source_id, target_ids)

    def unrelate_memories(self, source_id: str, target_ids: list[str]) -> Memory:
        return self.relations.unrelate(source_id, target_ids)

    # ── Reads ─────────────────────────────────────────────────

    def get_memory(self, id: str, type: str | MemoryType) -> Memory:
        return self.entities.read(id, parse_type(type))

    def search_memories(
        self,
        query: str,
        types: list[str] | None = None,
        tags: list[str] | None = None,
        limit: int | None = None,
    ) -> list[Memory]:
        if not isinstance(query, str):
            raise InvalidArgumentError("query must be a string")
        return self.queries.search(
            query,
            types=parse_types(types),
            tags=normalize_tags(tags) if tags is not None else None,
            limit=limit,
        )

    def list_memories(
        self,
        types: list[str] | None = None,
        tags: list[str] | None = None,
        limit: int | None = None,
    ) -> list[Memory]:
        return self.queries.list(
            types=parse_types(types),
            tags=normalize_tags(tags) if tags is not None else None,
            limit=limit,
        )

    # ── Administration ────────────────────────────────────────

    def rebuild_index(self) -> None:
        self.index.rebuild()

    def build_memory_store(self, directory: str | Path, overwrite: bool = False) -> None:
        """Initialize a fresh store at `directory` (reloading if it is this root)."""
        target = Path(directory)
        build_memory_store(target, overwrite=overwrite)
        if target.resolve() == self.root.resolve():
            self._load()

    def execute(self, command: Command):
        """Resolve a command dataclass to the matching operation."""
        if isinstance(command, BuildMemoryStore):
            return self.build_memory_store(command.directory, overwrite=command.overwrite)
        if isinstance(command, CreateMemory):
            return self.create_memory(
                command.title,
                command.type,
                command.content,
                tags=command.tags,
                related=command.related,
                importance=command.importance,
            )
        if isinstance(command, UpdateMemory):
            return self.update_memory(
                command.id,
                title=command.title,
                content=command.content,
                tags=command.tags,
                related=command.related,
                importance=command.importance,
            )
        if isinstance(command, DeleteMemory):
            return self.delete_memory(command.id)
        if isinstance(command, GetMemory):
            return self.get_memory(command.id, command.type)
        if isinstance(command, SearchMemories):
            return self.search_memories(
                command.query, types=command.types, tags=command.tags, limit=command.limit
            )
        if isinstance(command, ListMemories):
            return self.list_memories(types=command.types, tags=command.tags, limit=command.limit)
        if isinstance(command, AddTags):
            return self.add_tags(command.id, command.tags)
        if isinstance(command, RemoveTags):
            return self.remove_tags(command.id, command.tags)
        if isinstance(command, RelateMemories):
            return self.relate_memories(command.source_id, command.target_ids)
        if isinstance(command, UnrelateMemories):
            return self.unrelate_memories(command.source_id, command.target_ids)
        if isinstance(command, RebuildIndex):
            return self.rebuild_index()
        raise InvalidArgumentError(f"Unknown command: {type(command).__name__}")


def build_memory_store(directory: str | Path, overwrite: bool = False) -> MemoryStore:
    """Initialize a fresh store at `directory` and return a handle on it.

    A non-empty directory is a conflict unless `overwrite` is set, in which
    case its prior contents are removed first.
    """
    root = Path(directory)
    if root.exists() and not root.is_dir():
        raise IOFailureError(f"{root} exists and is not a directory")
    entities = EntityStore(root)
    if not entities.is_empty():
        if not overwrite:
            raise ConflictError(f"Directory {root} is not empty (pass overwrite to replace it)")
        entities.clear()
    store = MemoryStore(root)
    logger.info("Built memory store at %s", root)
    return store
