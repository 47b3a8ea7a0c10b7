"""Pydantic models for Gittyx's cache files.

The commit cache is a JSON array mixing real commits with two reserved
singleton records. In memory each element is one variant of a tagged union
discriminated by ``kind``; on disk the reserved ``hash`` values are kept so
older cache files remain readable.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


OVERALL_HASH = "__overall__"
CHART_HASH = "__chart__"


class RecordKind(str, Enum):
    """Variants stored in the commit cache."""

    COMMIT = "commit"
    OVERALL = "overall"
    CHART = "chart"


_RESERVED_KINDS = {OVERALL_HASH: RecordKind.OVERALL, CHART_HASH: RecordKind.CHART}


def parse_date(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    Naive timestamps are taken to be UTC. Unparsable values sort first.
    """
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return datetime.min.replace(tzinfo=timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class CommitRecord(BaseModel):
    """A real commit observed in the repository log."""

    model_config = ConfigDict(extra="ignore")

    kind: Literal["commit"] = RecordKind.COMMIT.value
    hash: str
    message: str = ""
    author: str = ""
    date: str = ""
    diff: str = ""
    summary: str | None = None

    @property
    def timestamp(self) -> datetime:
        return parse_date(self.date)


class OverallSummary(BaseModel):
    """The ``__overall__`` singleton: a narrative summary of the project."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    kind: Literal["overall"] = RecordKind.OVERALL.value
    hash: Literal["__overall__"] = OVERALL_HASH
    message: str = "High-level project summary"
    author: str = "Gittyx Agent"
    summary: str
    date: str = Field(default_factory=utc_now_iso)
    number_of_commits: int = Field(0, alias="numberOfCommits")


class ChartRecord(BaseModel):
    """The ``__chart__`` singleton: a Chart.js timeline config."""

    model_config = ConfigDict(extra="ignore")

    kind: Literal["chart"] = RecordKind.CHART.value
    hash: Literal["__chart__"] = CHART_HASH
    message: str = "Chart.js timeline config"
    author: str = "Gittyx Agent"
    summary: str = "Chart configuration for project timeline"
    date: str = Field(default_factory=utc_now_iso)
    config: dict[str, Any] = Field(default_factory=dict)


CacheRecord = Annotated[
    Union[CommitRecord, OverallSummary, ChartRecord],
    Field(discriminator="kind"),
]

_record_adapter: TypeAdapter[CacheRecord] = TypeAdapter(CacheRecord)


def parse_record(raw: Any) -> CommitRecord | OverallSummary | ChartRecord:
    """Validate one raw cache element, inferring ``kind`` from the hash when absent.

    Raises:
        pydantic.ValidationError: if the element does not fit any variant.
    """
    if isinstance(raw, dict) and "kind" not in raw:
        raw = {**raw, "kind": _RESERVED_KINDS.get(raw.get("hash"), RecordKind.COMMIT).value}
    return _record_adapter.validate_python(raw)


def dump_record(record: CommitRecord | OverallSummary | ChartRecord) -> dict[str, Any]:
    """Serialize a record in the on-disk layout (camelCase aliases, no nulls)."""
    return record.model_dump(mode="json", by_alias=True, exclude_none=True)


class VectorMetadata(BaseModel):
    """Payload stored alongside each chunk embedding."""

    text: str
    hash: str
    message: str = ""
    author: str = ""
    date: str = ""
    summary: str | None = None
    chunk: int


class VectorEntry(BaseModel):
    """One embedded diff chunk. ``id`` is ``{hash}_chunk_{chunk}``."""

    id: str
    embedding: list[float]
    metadata: VectorMetadata

    @staticmethod
    def make_id(commit_hash: str, chunk: int) -> str:
        """Deterministic chunk id, the idempotency key for ingestion."""
        return f"{commit_hash}_chunk_{chunk}"


class ScoredEntry(BaseModel):
    """A search hit with its cosine similarity."""

    entry: VectorEntry
    similarity: float


class ChatRole(str, Enum):
    USER = "user"
    MODEL = "model"


class ChatTurn(BaseModel):
    """A single turn of a chat session."""

    role: ChatRole
    text: str


class RouteType(str, Enum):
    """How the router decided to answer a query."""

    TOOL = "tool"
    VECTOR = "vector"
    CHAT = "chat"


class QueryClassification(BaseModel):
    """The router's decision for one query."""

    model_config = ConfigDict(populate_by_name=True)

    type: RouteType = RouteType.CHAT
    tool_name: str | None = Field(None, alias="toolName")
    args: dict[str, Any] = Field(default_factory=dict)


class InsightsPayload(BaseModel):
    """Data served to the dashboard's insights view."""

    model_config = ConfigDict(populate_by_name=True)

    commits: list[CommitRecord] = Field(default_factory=list)
    summary: str = ""
    chart_config: dict[str, Any] | None = Field(None, alias="chartConfig")
