"""Commits-per-day timeline, stored as a Chart.js config in the ``__chart__`` record."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Any

from gittyx.schema.models import ChartRecord, CommitRecord
from gittyx.store.commit_store import CommitStore


@dataclass
class DayBucket:
    """Commits that landed on one UTC calendar day."""

    day: date
    count: int
    summaries: str


def group_by_day(commits: list[CommitRecord]) -> list[DayBucket]:
    """Bucket commits by UTC date, oldest day first."""
    by_day: dict[date, list[CommitRecord]] = defaultdict(list)
    for commit in commits:
        if not commit.date:
            continue
        by_day[commit.timestamp.date()].append(commit)

    return [
        DayBucket(
            day=day,
            count=len(by_day[day]),
            summaries="\n\n".join(c.summary or c.message or "" for c in by_day[day]),
        )
        for day in sorted(by_day)
    ]


def build_chart_config(buckets: list[DayBucket]) -> dict[str, Any]:
    return {
        "type": "line",
        "data": {
            "labels": [b.day.isoformat() for b in buckets],
            "datasets": [
                {
                    "label": "Commits per Day",
                    "data": [b.count for b in buckets],
                    "summaries": [b.summaries for b in buckets],
                    "fill": False,
                    "borderColor": "rgb(106, 75, 192)",
                    "tension": 0.2,
                    "pointRadius": 5,
                    "pointHoverRadius": 7,
                    "pointBackgroundColor": "rgb(75, 77, 192)",
                }
            ],
        },
        "options": {
            "responsive": True,
            "plugins": {
                "title": {"display": True, "text": "Project Evolution Timeline"},
            },
            "scales": {
                "x": {"title": {"display": True, "text": "Date"}},
                "y": {
                    "title": {"display": True, "text": "Commits"},
                    "ticks": {"stepSize": 1, "precision": 0},
                },
            },
        },
    }


def update_timeline_chart(store: CommitStore, limit: int | None = None) -> dict[str, Any]:
    """Recompute the timeline from the newest ``limit`` commits and persist it."""
    config = build_chart_config(group_by_day(store.list_commits(limit)))
    store.put_singleton(ChartRecord(config=config))
    store.save()
    return config
