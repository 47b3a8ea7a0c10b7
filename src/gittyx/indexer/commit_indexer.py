"""Commit fetching: pulls new commits and their diffs from git into the commit cache."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from gittyx.schema.models import CommitRecord
from gittyx.store.commit_store import CommitStore
from gittyx.tools.vcs import GitRepo

logger = logging.getLogger(__name__)


@dataclass
class CommitIndexResult:
    """Results from a commit fetch run."""

    commits_seen: int = 0
    commits_added: int = 0


def fetch_commits(
    repo: GitRepo,
    store: CommitStore,
    *,
    limit: int = 200,
) -> CommitIndexResult:
    """Add the latest ``limit`` commits to the store, fetching diffs only for new hashes.

    Args:
        repo: Git repository to read from.
        store: Commit cache to merge into.
        limit: Number of most recent commits to look at.

    Returns:
        CommitIndexResult with stats.
    """
    logger.info("Fetching latest %d commits with diffs...", limit)
    commits = repo.log(limit=limit)
    result = CommitIndexResult(commits_seen=len(commits))

    new_commits = [c for c in commits if c.revision not in store]
    if not new_commits:
        logger.info("No new commits to add.")
        return result

    records = [
        CommitRecord(
            hash=c.revision,
            message=c.message,
            author=c.author,
            date=c.date.isoformat(),
            diff=repo.commit_diff(c.revision),
        )
        for c in new_commits
    ]

    result.commits_added = store.upsert_raw(records)
    store.save()
    logger.info("Added %d new commits to %s", result.commits_added, store.path)
    return result
