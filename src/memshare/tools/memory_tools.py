"""MCP tools for agent memory access.

These functions are designed to be exposed as tools to the AI agent. Each
maps its external tool name onto a store command and renders the result as
text; store failures propagate as `StoreError` for the transport to report.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import TYPE_CHECKING

from memshare import __version__
from memshare.memory.commands import (
    AddTags,
    BuildMemoryStore,
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
from memshare.messages import get_update_info_message, get_whats_new_message

if TYPE_CHECKING:
    from memshare.memory.models import Memory
    from memshare.memory.store import MemoryStore


def _dump(data) -> str:
    return json.dumps(data, ensure_ascii=False, indent=2)


def _dump_list(memories: list[Memory]) -> str:
    return _dump([m.to_dict() for m in memories])


def get_memory_tools(store: MemoryStore) -> dict[str, Callable[..., str]]:
    """Return a dict of tool_name -> callable for memory operations.

    Callables take the tool's JSON arguments as keyword arguments. An
    unexpected or missing argument raises TypeError.
    """

    def build_memory_store(directory: str, overwrite: bool = False) -> str:
        store.execute(BuildMemoryStore(directory=directory, overwrite=overwrite))
        return f"Memory store successfully built in directory: {directory}"

    def create_memory(
        title: str,
        type: str,
        content: str,
        tags: list[str] | None = None,
        related: list[str] | None = None,
        importance: int | float | None = None,
    ) -> str:
        memory = store.execute(
            CreateMemory(
                title=title,
                type=type,
                content=content,
                tags=tags,
                related=related,
                importance=importance,
            )
        )
        return f"Memory created with ID: {memory.id}"

    def update_memory(
        id: str,
        title: str | None = None,
        content: str | None = None,
        tags: list[str] | None = None,
        related: list[str] | None = None,
        importance: int | float | None = None,
    ) -> str:
        memory = store.execute(
            UpdateMemory(
                id=id,
                title=title,
                content=content,
                tags=tags,
                related=related,
                importance=importance,
            )
        )
        return f"Memory {memory.id} updated successfully"

    def delete_memory(id: str) -> str:
        store.execute(DeleteMemory(id=id))
        return f"Memory {id} deleted successfully"

    def get_memory(id: str, type: str) -> str:
        return _dump(store.execute(GetMemory(id=id, type=type)).to_dict())

    def search_memories(
        query: str,
        types: list[str] | None = None,
        tags: list[str] | None = None,
        limit: int | None = None,
    ) -> str:
        return _dump_list(
            store.execute(SearchMemories(query=query, types=types, tags=tags, limit=limit))
        )

    def list_memories(
        types: list[str] | None = None,
        tags: list[str] | None = None,
        limit: int | None = None,
    ) -> str:
        return _dump_list(store.execute(ListMemories(types=types, tags=tags, limit=limit)))

    def add_tags(id: str, tags: list[str]) -> str:
        memory = store.execute(AddTags(id=id, tags=tags))
        return f"Tags added to memory {memory.id}"

    def remove_tags(id: str, tags: list[str]) -> str:
        memory = store.execute(RemoveTags(id=id, tags=tags))
        return f"Tags removed from memory {memory.id}"

    def relate_memories(sourceId: str, targetIds: list[str]) -> str:
        memory = store.execute(RelateMemories(source_id=sourceId, target_ids=targetIds))
        return f"Relationships created for memory {memory.id}"

    def unrelate_memories(sourceId: str, targetIds: list[str]) -> str:
        memory = store.execute(UnrelateMemories(source_id=sourceId, target_ids=targetIds))
        return f"Relationships removed for memory {memory.id}"

    def rebuild_index() -> str:
        store.execute(RebuildIndex())
        return "Search index rebuilt successfully"

    def whats_new() -> str:
        return get_whats_new_message(__version__)

    def check_updates() -> str:
        return get_update_info_message(__version__)

    return {
        "build_memory_store": build_memory_store,
        "create_memory": create_memory,
        "update_memory": update_memory,
        "delete_memory": delete_memory,
        "get_memory": get_memory,
        "search_memories": search_memories,
        "list_memories": list_memories,
        "add_tags": add_tags,
        "remove_tags": remove_tags,
        "relate_memories": relate_memories,
        "unrelate_memories": unrelate_memories,
        "rebuild_index": rebuild_index,
        "whats_new": whats_new,
        "check_updates": check_updates,
    }
