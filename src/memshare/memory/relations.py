"""Relation graph — symmetric `related` edges stored on both endpoints."""

from __future__ import annotations

import logging

from memshare.memory.entities import EntityStore
from memshare.memory.errors import InvalidArgumentError, NotFoundError
from memshare.memory.models import Memory, dedupe_ids

logger = logging.getLogger(__name__)


class RelationGraph:
    def __init__(self, entities: EntityStore) -> None:
        self.entities = entities

    def check_targets(self, source_id: str, target_ids: list[str]) -> None:
        """Reject the whole batch on a self-reference or a missing target."""
        for target_id in target_ids:
            if target_id == source_id:
                raise InvalidArgumentError(f"Memory {source_id} cannot relate to itself")
            if not self.entities.exists(target_id):
                raise NotFoundError(f"Related memory {target_id} not found")

    def attach(self, source_id: str, target_ids: list[str]) -> None:
        """Record `source_id` on each target's side of the edge."""
        for target_id in target_ids:
            target = self.entities.get(target_id)
            if source_id not in target.related:
                self.entities.update(target_id, {"related": target.related + [source_id]})

    def release(self, source_id: str, target_ids: list[str]) -> None:
        """Drop `source_id` from each existing target's side of the edge."""
        for target_id in target_ids:
            if target_id == source_id or not self.entities.exists(target_id):
                continue
            target = self.entities.get(target_id)
            if source_id in target.related:
                self.entities.update(
                    target_id, {"related": [r for r in target.related if r != source_id]}
                )

    def relate(self, source_id: str, target_ids: list[str]) -> Memory:
        """Add two-sided edges from source to every target. Idempotent per pair."""
        source = self.entities.get(source_id)
        targets = dedupe_ids(target_ids)
        self.check_targets(source_id, targets)

        self.attach(source_id, targets)
        missing = [t for t in targets if t not in source.related]
        if missing:
            source = self.entities.update(source_id, {"related": source.related + missing})
            logger.info("Related %s -> %s", source_id, ", ".join(missing))
        return source

    def unrelate(self, source_id: str, target_ids: list[str]) -> Memory:
        """Drop edges in both directions; unknown or unrelated targets are no-ops."""
        source = self.entities.get(source_id)
        targets = dedupe_ids(target_ids)

        self.release(source_id, targets)
        remaining = [r for r in source.related if r not in targets]
        if remaining != source.related:
            source = self.entities.update(source_id, {"related": remaining})
            logger.info("Unrelated %s from %s", source_id, ", ".join(targets))
        return source

    def detach(self, memory_id: str) -> int:
        """Remove `memory_id` from every other memory's related set.

        Scans all records rather than trusting the memory's own edge list, so
        one-sided references left by hand edits are cleaned up too.
        """
        cleaned = 0
        for other in list(self.entities.iter_all()):
            if other.id != memory_id and memory_id in other.related:
                self.entities.update(
                    other.id, {"related": [r for r in other.related if r != memory_id]}
                )
                cleaned += 1
        if cleaned:
            logger.info("Detached %s from %d related memories", memory_id, cleaned)
        return cleaned
