"""Flat-file vector index with brute-force cosine search.

All embedding models share one JSON file whose top-level keys are model
names; each index instance reads and writes only its own namespace.
Search is exhaustive (O(n·d)); there is no approximate structure.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import numpy as np
from pydantic import ValidationError

from gittyx.schema.models import ScoredEntry, VectorEntry, VectorMetadata
from gittyx.store.files import read_json, write_json_atomic

logger = logging.getLogger(__name__)


def cosine_similarity(a: list[float] | np.ndarray, b: list[float] | np.ndarray) -> float:
    """``dot(a, b) / (|a| * |b|)``, or 0.0 when either vector has zero magnitude."""
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        return 0.0
    norm_a = np.linalg.norm(va)
    norm_b = np.linalg.norm(vb)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.dot(va, vb) / (norm_a * norm_b))


class VectorIndex:
    """Upsert-by-id store of chunk embeddings for a single embedding model."""

    def __init__(self, path: Path, model: str):
        self.path = path
        self.model = model
        self._entries: list[VectorEntry] = []
        self._positions: dict[str, int] = {}
        self.load()

    def load(self) -> None:
        """Load this model's namespace. A missing or corrupt file yields an empty index."""
        self._entries = []
        self._positions = {}

        data = read_json(self.path)
        if not isinstance(data, dict):
            return

        skipped = 0
        for raw in data.get(self.model) or []:
            try:
                entry = VectorEntry.model_validate(raw)
            except ValidationError:
                skipped += 1
                continue
            self._put(entry)

        if skipped:
            logger.warning("Skipped %d malformed vectors for %s", skipped, self.model)

    def save(self) -> None:
        """Write this namespace back, preserving other models' vectors.

        Raises:
            CacheWriteError: if the file cannot be written.
        """
        data = read_json(self.path)
        if not isinstance(data, dict):
            data = {}
        data[self.model] = [e.model_dump(mode="json") for e in self._entries]
        write_json_atomic(self.path, data)

    def reset(self) -> None:
        """Remove every model's vectors by deleting the backing file."""
        self._entries = []
        self._positions = {}
        self.path.unlink(missing_ok=True)

    def _put(self, entry: VectorEntry) -> None:
        pos = self._positions.get(entry.id)
        if pos is None:
            self._positions[entry.id] = len(self._entries)
            self._entries.append(entry)
        else:
            self._entries[pos] = entry

    def upsert_many(self, entries: list[VectorEntry]) -> None:
        """Replace-or-append each entry by id, then persist once."""
        if not entries:
            return
        for entry in entries:
            self._put(entry)
        self.save()

    def upsert(
        self,
        entry_id: str,
        embedding: list[float],
        text: str,
        metadata: dict[str, Any],
    ) -> VectorEntry:
        """Replace-or-append a single entry, then persist."""
        entry = VectorEntry(
            id=entry_id,
            embedding=embedding,
            metadata=VectorMetadata(text=text, **metadata),
        )
        self.upsert_many([entry])
        return entry

    def list_ids(self) -> set[str]:
        return set(self._positions)

    def all(self) -> list[VectorEntry]:
        return list(self._entries)

    def search(self, query_embedding: list[float], top_k: int = 5) -> list[ScoredEntry]:
        """Rank every entry by cosine similarity to the query, highest first.

        Ties keep insertion order.
        """
        if not self._entries or top_k <= 0:
            return []

        scored = [
            ScoredEntry(entry=entry, similarity=cosine_similarity(entry.embedding, query_embedding))
            for entry in self._entries
        ]
        scored.sort(key=lambda s: s.similarity, reverse=True)
        return scored[:top_k]

    def __len__(self) -> int:
        return len(self._entries)
