"""Closed set of store commands, one dataclass per operation.

The transport layer maps external tool names onto these at the boundary;
`MemoryStore.execute` resolves them to the matching operation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass
class BuildMemoryStore:
    directory: str
    overwrite: bool = False


@dataclass
class CreateMemory:
    title: str
    type: str
    content: str
    tags: list[str] | None = None
    related: list[str] | None = None
    importance: int | float | None = None


@dataclass
class UpdateMemory:
    id: str
    title: str | None = None
    content: str | None = None
    tags: list[str] | None = None
    related: list[str] | None = None
    importance: int | float | None = None


@dataclass
class DeleteMemory:
    id: str


@dataclass
class GetMemory:
    id: str
    type: str


@dataclass
class SearchMemories:
    query: str
    types: list[str] | None = None
    tags: list[str] | None = None
    limit: int | None = None


@dataclass
class ListMemories:
    types: list[str] | None = None
    tags: list[str] | None = None
    limit: int | None = None


@dataclass
class AddTags:
    id: str
    tags: list[str]


@dataclass
class RemoveTags:
    id: str
    tags: list[str]


@dataclass
class RelateMemories:
    source_id: str
    target_ids: list[str]


@dataclass
class UnrelateMemories:
    source_id: str
    target_ids: list[str]


@dataclass
class RebuildIndex:
    pass


Command = Union[
    BuildMemoryStore,
    CreateMemory,
    UpdateMemory,
    DeleteMemory,
    GetMemory,
    SearchMemories,
    ListMemories,
    AddTags,
    RemoveTags,
    RelateMemories,
    UnrelateMemories,
    RebuildIndex,
]
