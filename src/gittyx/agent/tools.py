"""Repository tools the router can dispatch a query to.

Each tool is a plain function bound to the current repository and commit
cache. Tools return text for the answer prompt; failures are reported in
that text instead of raised, so one bad tool call never aborts a chat turn.
"""

from __future__ import annotations

import inspect
import logging
import re
from collections import Counter
from dataclasses import dataclass
from typing import Any, Callable

from gittyx.store.commit_store import CommitStore
from gittyx.tools.vcs import GitRepo

logger = logging.getLogger(__name__)

FILE_EVOLUTION_TOOL = "summarizeFileEvolution"

_ADDED = re.compile(r"^\+(?!\+\+)", re.MULTILINE)
_REMOVED = re.compile(r"^-(?!--)", re.MULTILINE)
_COMMIT_HASH = re.compile(r"^[0-9a-fA-F]{4,40}$")


@dataclass
class RepoTool:
    """A named tool with a description shown to the router."""

    name: str
    description: str
    run: Callable[..., str]


def invoke_tool(tool: RepoTool, args: dict[str, Any]) -> str:
    """Call a tool with only the arguments its signature accepts."""
    params = inspect.signature(tool.run).parameters
    accepted = {k: v for k, v in args.items() if k in params}
    try:
        return tool.run(**accepted)
    except (RuntimeError, TypeError, ValueError, IndexError) as e:
        logger.error("Tool %s failed: %s", tool.name, e)
        return f"Error running {tool.name}: {e}"


def make_repo_tools(repo: GitRepo, store: CommitStore) -> dict[str, RepoTool]:
    """Create the router's tools bound to a repository and its commit cache."""

    def get_first_commit() -> str:
        roots = repo.root_commits()
        if not roots:
            return "No commits found."
        return f"First commit:\n{repo.show(roots[-1]).strip()}"

    def get_last_commit() -> str:
        commits = repo.log(limit=1)
        if not commits:
            return "No commits found."
        last = commits[0]
        return f"Last commit:\n{last.date.isoformat()} by {last.author}\n{last.message}"

    def get_first_last_commit() -> str:
        return f"{get_first_commit()}\n{get_last_commit()}"

    def list_contributors() -> str:
        counts = Counter(f"{c.author} <{c.author_email}>" for c in repo.log(limit=None))
        if not counts:
            return "No contributors found."
        lines = [f"{count} commits by {author}" for author, count in counts.most_common()]
        return "Contributors:\n" + "\n".join(lines)

    def get_commit_by_keyword(keyword: str = "") -> str:
        if not keyword:
            return "No keyword given."
        needle = keyword.lower()
        matches = [c for c in repo.log(limit=None) if needle in c.message.lower()]
        logger.debug("Found %d commits with keyword: %s", len(matches), keyword)
        if not matches:
            return f"No commits found with keyword: {keyword}"
        return "\n".join(
            f"- {c.date.isoformat()} {c.revision[:7]}: {c.message}" for c in matches
        )

    def get_commit_details(hash: str = "") -> str:
        hash = str(hash or "").strip()
        if not hash:
            return "No commit hash given."
        if not _COMMIT_HASH.match(hash):
            return f"Invalid commit hash: {hash}"
        show = repo.show(hash).strip()
        if not show:
            return f"No commit found with hash: {hash}"
        return f"Commit details for {hash}:\n{show}"

    def summarize_file_evolution(file: str = "") -> str:
        file = str(file or "").strip().lstrip("/")
        if not file:
            return "No file given."
        commits = repo.log(path=file, limit=None)
        if not commits:
            return f"No changes found for file: {file}"

        parts = [f"File diff evolution for {file}:"]
        for newer, older in zip(commits, commits[1:]):
            try:
                diff = repo.diff(older.revision, newer.revision, file)
            except RuntimeError as e:
                logger.error("Failed to diff %s..%s: %s", older.revision, newer.revision, e)
                continue
            parts.append(
                f"\nCommit {newer.revision} by {newer.author} on {newer.date.date().isoformat()}:\n"
                f"Message: {newer.message}\n"
                f"Lines added: {len(_ADDED.findall(diff))}, "
                f"lines removed: {len(_REMOVED.findall(diff))}\n"
                f"Diff:\n{diff.strip()}"
            )
        oldest = commits[-1]
        parts.append(
            f"\nCreated in {oldest.revision} by {oldest.author} "
            f"on {oldest.date.date().isoformat()}: {oldest.message}"
        )
        return "\n".join(parts)

    def get_commit_stats() -> str:
        commits = repo.log(limit=None)
        if not commits:
            return "Total commits: 0"
        authors = {c.author_email for c in commits}
        per_day = Counter(c.date.date().isoformat() for c in commits)
        day, count = per_day.most_common(1)[0]
        return (
            f"Total commits: {len(commits)}\n"
            f"Contributors: {len(authors)}\n"
            f"Busiest day: {day} ({count} commits)"
        )

    def summarize_repo(limit: int = 0) -> str:
        limit = int(limit or 0)
        cached = "\n".join(
            f"- {c.date} {c.hash[:7]}: {c.message}. {c.summary or ''}".rstrip()
            for c in store.list_commits(limit)
        )
        return (
            "Repository Summary:\n\n"
            f"{get_first_commit()}\n\n{get_last_commit()}\n\n"
            f"{list_contributors()}\n\n{get_commit_stats()}\n\n"
            f"Commits:\n{cached}"
        )

    tools = [
        RepoTool("getFirstCommit", "Returns the first commit in the repo.", get_first_commit),
        RepoTool("getLastCommit", "Returns the most recent commit in the repo.", get_last_commit),
        RepoTool(
            "getFirstLastCommit",
            "Returns the most recent and first commits in the repo.",
            get_first_last_commit,
        ),
        RepoTool(
            "listContributors",
            "Lists all contributors and their commit counts.",
            list_contributors,
        ),
        RepoTool(
            "getCommitByKeyword",
            "Find commits whose message contains a keyword. Args: keyword",
            get_commit_by_keyword,
        ),
        RepoTool(
            "getCommitDetails",
            "Get details of a specific commit by its hash. Args: hash",
            get_commit_details,
        ),
        RepoTool(
            FILE_EVOLUTION_TOOL,
            "Summarize changes to a file over time. Args: file",
            summarize_file_evolution,
        ),
        RepoTool(
            "getCommitStats",
            "Show number of commits, contributors, and the busiest day.",
            get_commit_stats,
        ),
        RepoTool(
            "summarizeRepo",
            "Summarize the repository: first/last commits, contributors, "
            "commit stats and the summaries of all analyzed commits.",
            summarize_repo,
        ),
    ]
    return {t.name: t for t in tools}
