"""Gittyx data schema: cache records, vector entries, and chat models."""

from gittyx.schema.models import (
    CHART_HASH,
    OVERALL_HASH,
    ChartRecord,
    ChatRole,
    ChatTurn,
    CommitRecord,
    InsightsPayload,
    OverallSummary,
    QueryClassification,
    RecordKind,
    RouteType,
    ScoredEntry,
    VectorEntry,
    VectorMetadata,
)

__all__ = [
    "CHART_HASH",
    "OVERALL_HASH",
    "ChartRecord",
    "ChatRole",
    "ChatTurn",
    "CommitRecord",
    "InsightsPayload",
    "OverallSummary",
    "QueryClassification",
    "RecordKind",
    "RouteType",
    "ScoredEntry",
    "VectorEntry",
    "VectorMetadata",
]
