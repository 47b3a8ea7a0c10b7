"""Project-level narrative summary built from per-commit summaries."""

from __future__ import annotations

import logging
import re

from gittyx.schema.models import OverallSummary, RecordKind, parse_date, utc_now_iso
from gittyx.store.commit_store import CommitStore
from gittyx.tools.llm import ModelProvider, user_prompt

logger = logging.getLogger(__name__)

_PROMPT = (
    "You are an AI assistant. Given the following commit summaries, generate a "
    "high-level project evolution summary **keep it comprehensive and concise**:\n\n"
    "{summaries}"
)

_OUTER_FENCE = re.compile(r"^```(?:markdown|md)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)


def strip_markdown_fence(text: str) -> str:
    text = text.strip()
    match = _OUTER_FENCE.match(text)
    return match.group(1).strip() if match else text


def generate_overall_summary(
    store: CommitStore,
    provider: ModelProvider,
    model: str,
    limit: int | None = None,
) -> OverallSummary | None:
    """Create or refresh the ``__overall__`` record.

    Regeneration is skipped when the stored summary is at least as new as the
    newest input commit and was built for the same ``limit``. The check is
    keyed on ``limit``, not on the exact commit set: a newly summarized older
    commit does not trigger a rebuild on its own.

    Returns:
        The current overall summary (the previous one if the model call
        failed), or None if there was nothing to summarize.
    """
    limit_key = limit if limit and limit > 0 else 0
    commits = [c for c in store.list_commits() if c.summary]
    if limit_key:
        commits = commits[:limit_key]

    if not commits:
        logger.info("No summaries to generate an overall summary from.")
        return None

    latest = max(c.timestamp for c in commits)
    existing = store.get_singleton(RecordKind.OVERALL)
    if (
        isinstance(existing, OverallSummary)
        and parse_date(existing.date) >= latest
        and existing.number_of_commits == limit_key
    ):
        logger.info("Skipping overall summary: no new commits since last summary.")
        return existing

    summaries = "\n".join(f"- {c.summary}" for c in commits)
    try:
        text = provider.generate_content(model, user_prompt(_PROMPT.format(summaries=summaries)))
    except Exception as e:
        logger.error("Failed to generate overall summary: %s", e)
        return existing if isinstance(existing, OverallSummary) else None

    overall = OverallSummary(
        summary=strip_markdown_fence(text),
        date=utc_now_iso(),
        number_of_commits=limit_key,
    )
    store.put_singleton(overall)
    store.save()
    logger.info("Overall summary updated.")
    return overall
