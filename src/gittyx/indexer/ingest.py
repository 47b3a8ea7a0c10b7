"""Embedding ingestion pipeline: commit diffs into the vector index.

Each commit's diff is chunked, chunks whose ids are already indexed are
skipped, and the rest are embedded in batches. A batch whose embedding call
fails is logged and dropped; its ids were never written, so the next run
picks them up again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from gittyx.indexer.chunker import ChunkDocument, build_chunk_documents
from gittyx.schema.models import ScoredEntry, VectorEntry, VectorMetadata
from gittyx.store.commit_store import CommitStore
from gittyx.store.vector_index import VectorIndex
from gittyx.tools.llm import ModelProvider

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    """Results from an ingestion run."""

    commits_processed: int = 0
    chunks_skipped: int = 0
    chunks_indexed: int = 0
    batches_failed: int = 0
    errors: list[str] = field(default_factory=list)


class IngestionPipeline:
    """Drives chunking, batched embedding calls and index upserts."""

    def __init__(
        self,
        store: CommitStore,
        index: VectorIndex,
        provider: ModelProvider,
        *,
        batch_size: int = 16,
        chunk_lines: int = 100,
    ):
        self.store = store
        self.index = index
        self.provider = provider
        self.batch_size = max(1, batch_size)
        self.chunk_lines = chunk_lines

    @property
    def model(self) -> str:
        return self.index.model

    def _flush(self, pending: list[ChunkDocument], result: IngestResult) -> None:
        if not pending:
            return
        try:
            embeddings = self.provider.get_embeddings(self.model, [d.text for d in pending])
            if len(embeddings) != len(pending):
                raise ValueError(
                    f"expected {len(pending)} embeddings, got {len(embeddings)}"
                )
        except Exception as e:
            logger.error("Failed to embed batch for commit %s: %s", pending[0].hash, e)
            result.batches_failed += 1
            result.errors.append(f"{pending[0].hash}: {e}")
        else:
            self.index.upsert_many([
                VectorEntry(
                    id=doc.id,
                    embedding=vector,
                    metadata=VectorMetadata(text=doc.text, **doc.metadata()),
                )
                for doc, vector in zip(pending, embeddings)
            ])
            result.chunks_indexed += len(pending)
        pending.clear()

    def run(
        self,
        limit: int | None = None,
        *,
        progress_callback: Callable[[int, int], None] | None = None,
    ) -> IngestResult:
        """Ingest the newest ``limit`` commits.

        Args:
            limit: Maximum number of commits to consider (None or 0 for all).
            progress_callback: Optional fn(completed_commits, total_commits).

        Returns:
            IngestResult with chunk and failure counts.
        """
        commits = self.store.list_commits(limit)
        existing = self.index.list_ids()
        result = IngestResult()
        logger.info("Ingesting %d commits into %s", len(commits), self.model)

        pending: list[ChunkDocument] = []
        for done, commit in enumerate(commits, 1):
            for doc in build_chunk_documents(commit, self.chunk_lines):
                if doc.id in existing:
                    result.chunks_skipped += 1
                    continue
                pending.append(doc)
                if len(pending) >= self.batch_size:
                    self._flush(pending, result)
            # A batch never spans commits
            self._flush(pending, result)

            result.commits_processed += 1
            if progress_callback:
                progress_callback(done, len(commits))

        logger.info(
            "Ingestion complete: %d chunks indexed, %d already present.",
            result.chunks_indexed, result.chunks_skipped,
        )
        return result

    def query(self, text: str, top_k: int = 5) -> list[ScoredEntry]:
        """Embed ``text`` and return the ``top_k`` most similar chunks."""
        embedding = self.provider.get_embedding(self.model, text)
        return self.index.search(embedding, top_k)
