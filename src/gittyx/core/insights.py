"""Dashboard data: recent commits, overall summary and timeline chart."""

from __future__ import annotations

from gittyx.schema.models import ChartRecord, InsightsPayload, OverallSummary, RecordKind
from gittyx.store.commit_store import CommitStore

NO_SUMMARY = "No overall summary available."


def build_insights(store: CommitStore, limit: int | None = None) -> InsightsPayload:
    overall = store.get_singleton(RecordKind.OVERALL)
    chart = store.get_singleton(RecordKind.CHART)

    summary = overall.summary if isinstance(overall, OverallSummary) else ""
    return InsightsPayload(
        commits=store.list_commits(limit),
        summary=summary or NO_SUMMARY,
        chart_config=chart.config if isinstance(chart, ChartRecord) else None,
    )
