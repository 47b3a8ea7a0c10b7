"""Split commit diffs into fixed-size line chunks for embedding."""

from __future__ import annotations

from dataclasses import dataclass

from gittyx.schema.models import CommitRecord, VectorEntry


@dataclass
class ChunkDocument:
    """One chunk of a commit's diff, ready to embed."""

    id: str
    text: str
    hash: str
    chunk: int
    message: str
    author: str
    date: str
    summary: str | None

    def metadata(self) -> dict:
        return {
            "hash": self.hash,
            "message": self.message,
            "author": self.author,
            "date": self.date,
            "summary": self.summary,
            "chunk": self.chunk,
        }


def chunk_text(text: str, max_lines: int = 100) -> list[str]:
    """Split text into consecutive ``max_lines``-line segments.

    The last segment holds any remaining lines. A single trailing newline
    does not start a new line, so empty text yields no chunks.
    """
    if max_lines < 1:
        raise ValueError("max_lines must be at least 1")
    if text.endswith("\n"):
        text = text[:-1]
    if not text:
        return []
    lines = text.split("\n")
    return ["\n".join(lines[i : i + max_lines]) for i in range(0, len(lines), max_lines)]


def commit_header(commit: CommitRecord) -> str:
    return (
        f"Commit: {commit.hash}\n"
        f"Author: {commit.author}\n"
        f"Date: {commit.date}\n"
        f"Message: {commit.message}\n"
        f"Summary: {commit.summary or ''}"
    )


def build_chunk_documents(commit: CommitRecord, max_lines: int = 100) -> list[ChunkDocument]:
    """Materialize a commit's diff chunks as header + ``Diff Chunk:`` documents."""
    header = commit_header(commit)
    return [
        ChunkDocument(
            id=VectorEntry.make_id(commit.hash, i),
            text=f"{header}\n\nDiff Chunk:\n{chunk}",
            hash=commit.hash,
            chunk=i,
            message=commit.message,
            author=commit.author,
            date=commit.date,
            summary=commit.summary,
        )
        for i, chunk in enumerate(chunk_text(commit.diff, max_lines))
    ]
