"""Search index — inverted term → memory-id postings.

Tokenization: lower-case the text, split on every run of non-alphanumeric
characters (underscore counts as a separator), drop empty tokens. Tokens come
from a memory's title, content and tags.

The index is derived data. It is persisted through the entity store's
reserved location and can always be rebuilt from the records themselves.
"""

from __future__ import annotations

import logging
import re

from memshare.memory.entities import EntityStore
from memshare.memory.models import Memory

logger = logging.getLogger(__name__)

INDEX_VERSION = 1

_SEPARATORS = re.compile(r"[\W_]+")


def tokenize(text: str) -> set[str]:
    return {token for token in _SEPARATORS.split(text.lower()) if token}


def memory_terms(memory: Memory) -> set[str]:
    terms = tokenize(memory.title) | tokenize(memory.content)
    for tag in memory.tags:
        terms |= tokenize(tag)
    return terms


class SearchIndex:
    """Posting lists kept in memory and mirrored to disk after each change."""

    def __init__(self, entities: EntityStore) -> None:
        self.entities = entities
        self._postings: dict[str, set[str]] = {}
        self._terms: dict[str, set[str]] = {}  # memory id → indexed terms

    def load(self) -> None:
        """Load the persisted index, rebuilding it when missing or stale."""
        payload = self.entities.load_index()
        if payload is None:
            logger.info("No usable search index at %s, rebuilding", self.entities.index_path)
            self.rebuild()
            return
        if (
            payload.get("version") != INDEX_VERSION
            or not isinstance(payload.get("postings"), dict)
            or not isinstance(payload.get("memories"), list)
        ):
            logger.warning("Search index format changed, rebuilding")
            self.rebuild()
            return

        try:
            self._read_payload(payload)
        except (TypeError, AttributeError):
            logger.warning("Search index corrupted, rebuilding")
            self.rebuild()
            return

        if set(self._terms) != self.entities.ids():
            logger.warning("Search index out of sync with stored memories, rebuilding")
            self.rebuild()

    def _read_payload(self, payload: dict) -> None:
        self._postings.clear()
        self._terms = {str(memory_id): set() for memory_id in payload["memories"]}
        for term, ids in payload["postings"].items():
            for memory_id in ids:
                self._postings.setdefault(term, set()).add(memory_id)
                self._terms.setdefault(memory_id, set()).add(term)

    # ── Mutation ──────────────────────────────────────────────

    def index(self, memory: Memory) -> None:
        """(Re)index a memory: drop its stale postings, then add current ones."""
        self._remove(memory.id)
        self._add(memory)
        self._persist()

    def unindex(self, memory_id: str) -> None:
        if self._remove(memory_id):
            self._persist()

    def rebuild(self) -> int:
        """Discard everything and reindex every stored memory. Returns the count."""
        self._postings.clear()
        self._terms.clear()
        count = 0
        for memory in self.entities.iter_all():
            self._add(memory)
            count += 1
        self._persist()
        logger.info("Search index rebuilt: %d memories, %d terms", count, len(self._postings))
        return count

    def _add(self, memory: Memory) -> None:
        terms = memory_terms(memory)
        self._terms[memory.id] = terms
        for term in terms:
            self._postings.setdefault(term, set()).add(memory.id)

    def _remove(self, memory_id: str) -> bool:
        terms = self._terms.pop(memory_id, None)
        if terms is None:
            return False
        for term in terms:
            postings = self._postings.get(term)
            if postings is None:
                continue
            postings.discard(memory_id)
            if not postings:
                del self._postings[term]
        return True

    def _persist(self) -> None:
        self.entities.save_index(self.to_payload())

    # ── Lookup ────────────────────────────────────────────────

    def lookup(self, term: str) -> set[str]:
        return set(self._postings.get(term, ()))

    def to_payload(self) -> dict:
        return {
            "version": INDEX_VERSION,
            "memories": sorted(self._terms),
            "postings": {term: sorted(ids) for term, ids in sorted(self._postings.items())},
        }

    def __contains__(self, memory_id: str) -> bool:
        return memory_id in self._terms

    def __len__(self) -> int:
        return len(self._terms)
