"""Query engine — ranked text search and recency listing."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable

from memshare.memory.entities import EntityStore
from memshare.memory.errors import InvalidArgumentError, IOFailureError, NotFoundError
from memshare.memory.index import SearchIndex, tokenize
from memshare.memory.models import Memory, MemoryType

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_LIMIT = 10


def check_limit(limit: object) -> None:
    if limit is None:
        return
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise InvalidArgumentError(f"limit must be a positive integer, got {limit!r}")


class QueryEngine:
    def __init__(self, entities: EntityStore, index: SearchIndex) -> None:
        self.entities = entities
        self.index = index

    def search(
        self,
        query: str,
        types: Iterable[MemoryType] | None = None,
        tags: Iterable[str] | None = None,
        limit: int | None = None,
    ) -> list[Memory]:
        """Score candidates by matched query tokens; ties go to the newest update."""
        check_limit(limit)
        if limit is None:
            limit = DEFAULT_SEARCH_LIMIT
        tokens = tokenize(query)
        if not tokens:
            return []

        scores: Counter[str] = Counter()
        for token in tokens:
            for memory_id in self.index.lookup(token):
                scores[memory_id] += 1

        type_set = set(types) if types else None
        tag_set = set(tags) if tags else None
        matches: list[tuple[int, Memory]] = []
        for memory_id, score in scores.items():
            try:
                memory = self.entities.get(memory_id)
            except (NotFoundError, IOFailureError) as e:
                # The entity store wins over a stale posting.
                logger.debug("Ignoring indexed id %s: %s", memory_id, e)
                continue
            if type_set is not None and memory.type not in type_set:
                continue
            if tag_set is not None and not tag_set <= set(memory.tags):
                continue
            matches.append((score, memory))

        matches.sort(key=lambda sm: (sm[0], sm[1].updated_at, sm[1].id), reverse=True)
        return [memory for _, memory in matches[:limit]]

    def list(
        self,
        types: Iterable[MemoryType] | None = None,
        tags: Iterable[str] | None = None,
        limit: int | None = None,
    ) -> list[Memory]:
        check_limit(limit)
        return self.entities.list(types=types, tags=tags, limit=limit)
