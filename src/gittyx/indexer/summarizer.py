"""LLM-powered commit summarization for Gittyx.

Picks commits that have no summary yet and are not trivial, sends them to
the model in fixed-size batches, and writes the returned summaries back to
the commit store. A failed batch is skipped; its commits stay eligible for
the next run.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable

from gittyx.agent.json_extract import NoJsonFound, extract_json
from gittyx.config import SummarizationConfig
from gittyx.schema.models import CommitRecord
from gittyx.store.commit_store import CommitStore
from gittyx.tools.llm import ModelProvider, user_prompt

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "[...diff truncated]"

_PROMPT_TEMPLATE = """\
You are an AI agent analyzing Git commits.
Summarize the intent of each commit below.
Respond ONLY in the following JSON format:

{{
  "commit_hash": "summary",
  ...
}}

Commits:

{commits}"""


@dataclass
class SummarizeResult:
    """Results from a summarization run."""

    candidates: int = 0
    batches: int = 0
    summarized: int = 0
    errors: list[str] = field(default_factory=list)


def is_trivial_commit(message: str, keywords: list[str]) -> bool:
    """True when the message mentions any trivial-change keyword, in any case."""
    if not keywords:
        return False
    pattern = re.compile("|".join(re.escape(k) for k in keywords), re.IGNORECASE)
    return bool(pattern.search(message))


def truncate_diff(diff: str, max_lines: int = 100) -> str:
    lines = diff.split("\n")
    if len(lines) <= max_lines:
        return diff
    return "\n".join(lines[:max_lines]) + "\n" + TRUNCATION_MARKER


def select_candidates(store: CommitStore, config: SummarizationConfig) -> list[CommitRecord]:
    """Unsummarized, non-trivial commits, newest first."""
    return [
        c for c in store.list_commits()
        if not c.summary and not is_trivial_commit(c.message, config.trivial_keywords)
    ]


def build_batch_prompt(batch: list[CommitRecord], max_diff_lines: int = 100) -> str:
    commits = "\n\n".join(
        f"Commit {c.hash}:\nMessage: {c.message}\nDiff:\n{truncate_diff(c.diff, max_diff_lines)}"
        for c in batch
    )
    return _PROMPT_TEMPLATE.format(commits=commits)


def parse_summaries(text: str) -> dict[str, str]:
    """Extract the hash -> summary mapping from a model response.

    Raises:
        NoJsonFound: if the response holds no JSON object.
    """
    parsed = extract_json(text)
    return {
        str(h): str(s).strip()
        for h, s in parsed.items()
        if isinstance(s, str) and s.strip()
    }


def summarize_commits(
    store: CommitStore,
    provider: ModelProvider,
    model: str,
    config: SummarizationConfig,
    *,
    progress_callback: Callable[[int, int], None] | None = None,
) -> SummarizeResult:
    """Summarize eligible commits batch by batch, saving after each batch.

    Args:
        store: Commit store to read candidates from and write summaries to.
        provider: Model provider used for generation.
        model: Generation model name.
        config: Batch size, diff budget and trivial keywords.
        progress_callback: Optional fn(completed_batches, total_batches).

    Returns:
        SummarizeResult with counts and per-batch error strings.
    """
    candidates = select_candidates(store, config)
    result = SummarizeResult(candidates=len(candidates))

    if not candidates:
        logger.info("All commits already summarized.")
        return result

    batch_size = max(1, config.batch_size)
    batches = [candidates[i : i + batch_size] for i in range(0, len(candidates), batch_size)]
    result.batches = len(batches)

    for number, batch in enumerate(batches, 1):
        prompt = build_batch_prompt(batch, config.max_diff_lines)
        try:
            raw = provider.generate_content(model, user_prompt(prompt))
            summaries = parse_summaries(raw)
        except NoJsonFound as e:
            logger.warning("Batch %d/%d: unparsable response: %s", number, len(batches), e)
            result.errors.append(f"Batch {number}: {e}")
        except Exception as e:
            logger.warning("Batch %d/%d failed: %s", number, len(batches), e)
            result.errors.append(f"Batch {number}: {e}")
        else:
            wanted = {c.hash for c in batch}
            for commit_hash, summary in summaries.items():
                if commit_hash in wanted and store.set_summary(commit_hash, summary):
                    result.summarized += 1
            store.save()

        if progress_callback:
            progress_callback(number, len(batches))

    logger.info(
        "Summarization complete: %d of %d commits summarized.",
        result.summarized, result.candidates,
    )
    return result
