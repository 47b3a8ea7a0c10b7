"""Append-only commit cache backed by a single JSON array file.

The store is loaded once when constructed and written back only when
``save()`` is called, so a pipeline step controls its own checkpoints.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import ValidationError

from gittyx.schema.models import (
    ChartRecord,
    CommitRecord,
    OverallSummary,
    RecordKind,
    dump_record,
    parse_record,
)
from gittyx.store.files import read_json, write_json_atomic

logger = logging.getLogger(__name__)

Singleton = OverallSummary | ChartRecord


class CommitStore:
    """Hash-deduplicated commit records plus the overall/chart singletons."""

    def __init__(self, path: Path):
        self.path = path
        self._commits: dict[str, CommitRecord] = {}
        self._singletons: dict[RecordKind, Singleton] = {}
        self._dirty = False
        self.load()

    def load(self) -> None:
        """(Re)load the cache file. Missing or corrupt files yield an empty store."""
        self._commits = {}
        self._singletons = {}
        self._dirty = False

        raw = read_json(self.path)
        if raw is None:
            return
        if not isinstance(raw, list):
            logger.warning("Ignoring %s: top-level JSON is not an array", self.path)
            return

        skipped = 0
        for item in raw:
            try:
                record = parse_record(item)
            except ValidationError:
                skipped += 1
                continue
            if isinstance(record, CommitRecord):
                # First occurrence wins, matching upsert_raw
                self._commits.setdefault(record.hash, record)
            else:
                self._singletons[RecordKind(record.kind)] = record

        if skipped:
            logger.warning("Skipped %d malformed records in %s", skipped, self.path)

    def save(self) -> None:
        """Persist the store if anything changed since the last load or save.

        Raises:
            CacheWriteError: if the file cannot be written.
        """
        if not self._dirty:
            return
        records = [dump_record(c) for c in self._commits.values()]
        for kind in (RecordKind.OVERALL, RecordKind.CHART):
            if kind in self._singletons:
                records.append(dump_record(self._singletons[kind]))
        write_json_atomic(self.path, records)
        self._dirty = False

    def reset(self) -> None:
        """Drop every record and remove the backing file."""
        self._commits = {}
        self._singletons = {}
        self._dirty = False
        self.path.unlink(missing_ok=True)

    # --- Commits ---

    def upsert_raw(self, commits: list[CommitRecord]) -> int:
        """Merge commits by hash, leaving existing entries untouched.

        Returns the number of commits that were new.
        """
        added = 0
        for commit in commits:
            if commit.hash in self._commits:
                continue
            self._commits[commit.hash] = commit
            added += 1
        if added:
            self._dirty = True
        return added

    def get(self, commit_hash: str) -> CommitRecord | None:
        return self._commits.get(commit_hash)

    def list_commits(self, limit: int | None = None) -> list[CommitRecord]:
        """Commits sorted by date, newest first, truncated to ``limit`` when positive."""
        commits = sorted(self._commits.values(), key=lambda c: c.timestamp, reverse=True)
        if limit and limit > 0:
            return commits[:limit]
        return commits

    def set_summary(self, commit_hash: str, text: str) -> bool:
        """Store a summary for a commit.

        Summaries are written once; returns False for unknown hashes and for
        commits that already have one.
        """
        commit = self._commits.get(commit_hash)
        if commit is None or commit.summary:
            return False
        commit.summary = text
        self._dirty = True
        return True

    # --- Singletons ---

    def get_singleton(self, kind: RecordKind) -> Singleton | None:
        return self._singletons.get(RecordKind(kind))

    def put_singleton(self, record: Singleton) -> None:
        """Insert or replace the singleton of the record's kind."""
        self._singletons[RecordKind(record.kind)] = record
        self._dirty = True

    def __len__(self) -> int:
        return len(self._commits)

    def __contains__(self, commit_hash: object) -> bool:
        return commit_hash in self._commits
