"""Git wrapper used to read commit history, diffs and tracked files."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path


@dataclass
class CommitInfo:
    """A single commit from version control."""

    revision: str
    author: str
    date: datetime
    message: str
    author_email: str = ""


class GitRepo:
    """Thin interface over the ``git`` command line for one working tree."""

    SEP = "---GITTYX_SEP---"
    RECORD_SEP = "---GITTYX_RECORD---"

    def __init__(self, project_root: Path, timeout: int = 30):
        self.project_root = project_root.resolve()
        self.timeout = timeout
        if not self.detect(self.project_root):
            raise ValueError(
                f"No git repository detected in {self.project_root}. "
                "Expected a .git/ directory."
            )

    @staticmethod
    def detect(project_root: Path) -> bool:
        return (project_root / ".git").exists()

    def log(
        self,
        path: str | None = None,
        limit: int | None = 50,
    ) -> list[CommitInfo]:
        """Get commit history, newest first, optionally filtered to a path."""
        sep = self.SEP
        fmt = f"{self.RECORD_SEP}%H{sep}%an{sep}%ae{sep}%aI{sep}%s"

        cmd = ["git", "log", f"--format={fmt}"]
        if limit and limit > 0:
            cmd.append(f"-n{limit}")
        if path:
            cmd.extend(["--", path])

        output = self._run(cmd)
        if not output.strip():
            return []

        commits: list[CommitInfo] = []
        for record in output.split(self.RECORD_SEP):
            record = record.strip()
            if not record:
                continue

            lines = record.split("\n")
            parts = lines[0].split(sep)
            if len(parts) < 5:
                continue

            commits.append(CommitInfo(
                revision=parts[0],
                author=parts[1],
                author_email=parts[2],
                date=datetime.fromisoformat(parts[3]),
                message=parts[4],
            ))

        return commits

    def commit_diff(self, revision: str) -> str:
        """The patch introduced by a single commit (root commits included)."""
        self._check_revision(revision)
        return self._run(["git", "show", "--no-color", "--format=", "--end-of-options", revision])

    def diff(self, rev1: str, rev2: str, path: str | None = None) -> str:
        """Get the diff between two revisions, optionally limited to a path."""
        self._check_revision(rev1)
        self._check_revision(rev2)
        cmd = ["git", "diff", "--no-color", "--end-of-options", f"{rev1}..{rev2}"]
        if path:
            cmd.extend(["--", path])
        return self._run(cmd)

    def show(self, revision: str) -> str:
        """Header and message of a commit, without the patch."""
        self._check_revision(revision)
        return self._run(["git", "show", "--quiet", "--end-of-options", revision])

    def root_commits(self) -> list[str]:
        output = self._run(["git", "rev-list", "--max-parents=0", "HEAD"])
        return [line for line in output.split() if line]

    def ls_files(self) -> list[str]:
        """Paths tracked in the index, relative to the project root."""
        output = self._run(["git", "ls-files"])
        return [line for line in output.split("\n") if line.strip()]

    @staticmethod
    def _check_revision(revision: str) -> None:
        # Revisions may come from model output and must never read as options.
        if not revision or revision.startswith("-"):
            raise ValueError(f"Invalid revision: {revision!r}")

    def _run(self, cmd: list[str]) -> str:
        """Run a git command and return its stdout.

        Raises:
            RuntimeError: if git fails, times out or cannot be started.
        """
        try:
            result = subprocess.run(
                cmd,
                cwd=self.project_root,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise RuntimeError(
                f"Git command timed out after {self.timeout}s: {' '.join(cmd)}"
            ) from e
        except OSError as e:
            raise RuntimeError(f"Could not run {' '.join(cmd)}: {e}") from e
        if result.returncode != 0:
            raise RuntimeError(
                f"Git command failed: {' '.join(cmd)}\n"
                f"stderr: {result.stderr}"
            )
        return result.stdout
