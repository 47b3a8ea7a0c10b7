"""Gittyx workspace: wires the stores, git repository and model provider for one project.

The analysis pipeline runs its steps strictly in order (fetch, summarize,
overall summary, timeline chart, embedding ingestion) and saves the commit
cache at the end of each step.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from gittyx.agent.chat import ChatAgent
from gittyx.agent.router import QueryRouter
from gittyx.agent.tools import make_repo_tools
from gittyx.config import ConfigError, GittyxConfig
from gittyx.core.insights import build_insights
from gittyx.indexer.commit_indexer import CommitIndexResult, fetch_commits
from gittyx.indexer.ingest import IngestionPipeline, IngestResult
from gittyx.indexer.overall import generate_overall_summary
from gittyx.indexer.summarizer import SummarizeResult, summarize_commits
from gittyx.indexer.timeline import update_timeline_chart
from gittyx.schema.models import InsightsPayload, OverallSummary
from gittyx.store.commit_store import CommitStore
from gittyx.store.sessions import SessionStore
from gittyx.store.vector_index import VectorIndex
from gittyx.tools.llm import ModelProvider
from gittyx.tools.vcs import GitRepo

logger = logging.getLogger(__name__)

StepCallback = Callable[[str, int, int], None]


@dataclass
class AnalysisResult:
    """Aggregate results of one ``analyze`` run."""

    fetch: CommitIndexResult = field(default_factory=CommitIndexResult)
    summarize: SummarizeResult = field(default_factory=SummarizeResult)
    overall: OverallSummary | None = None
    chart_days: int = 0
    ingest: IngestResult = field(default_factory=IngestResult)

    @property
    def errors(self) -> list[str]:
        return self.summarize.errors + self.ingest.errors


class Workspace:
    """Everything Gittyx needs for a single repository."""

    def __init__(
        self,
        config: GittyxConfig,
        provider: ModelProvider | None = None,
        *,
        repo: GitRepo | None = None,
    ):
        self.config = config
        self.provider = provider
        self.project_root = Path(config.project.root)
        self.store = CommitStore(config.commits_path)
        self.index = VectorIndex(config.vectors_path, config.embedding.model)
        self.sessions = SessionStore(config.sessions_path)
        self._repo = repo

    @property
    def repo(self) -> GitRepo:
        """The project's git repository. Raises ValueError outside a git checkout."""
        if self._repo is None:
            self._repo = GitRepo(self.project_root)
        return self._repo

    def _require_provider(self) -> ModelProvider:
        if self.provider is None:
            raise ConfigError("No model provider configured for this workspace")
        return self.provider

    def ingestion(self) -> IngestionPipeline:
        return IngestionPipeline(
            self.store,
            self.index,
            self._require_provider(),
            batch_size=self.config.ingestion.batch_size,
            chunk_lines=self.config.ingestion.chunk_lines,
        )

    def analyze(
        self,
        limit: int | None = None,
        *,
        progress_callback: StepCallback | None = None,
    ) -> AnalysisResult:
        """Run the full analysis pipeline over the newest ``limit`` commits.

        Args:
            limit: Commits to consider; defaults to ``vcs.max_commits``.
            progress_callback: Optional fn(step_name, completed, total).

        Returns:
            AnalysisResult with per-step stats.
        """
        provider = self._require_provider()
        model = self.config.provider.model
        if limit is None:
            limit = self.config.vcs.max_commits

        def step(name: str) -> Callable[[int, int], None] | None:
            if progress_callback is None:
                return None
            return lambda done, total: progress_callback(name, done, total)

        result = AnalysisResult()
        result.fetch = fetch_commits(self.repo, self.store, limit=limit)

        result.summarize = summarize_commits(
            self.store, provider, model, self.config.summarization,
            progress_callback=step("summarize"),
        )
        result.overall = generate_overall_summary(self.store, provider, model, limit)

        chart = update_timeline_chart(self.store, limit)
        result.chart_days = len(chart["data"]["labels"])

        result.ingest = self.ingestion().run(limit, progress_callback=step("ingest"))

        logger.info(
            "Analysis complete: %d new commits, %d summarized, %d chunks indexed",
            result.fetch.commits_added,
            result.summarize.summarized,
            result.ingest.chunks_indexed,
        )
        return result

    def insights(self, limit: int | None = None) -> InsightsPayload:
        if limit is None:
            limit = self.config.vcs.max_commits
        return build_insights(self.store, limit)

    def chat_agent(self) -> ChatAgent:
        """Build a chat agent bound to this repository."""
        provider = self._require_provider()
        model = self.config.provider.model
        tools = make_repo_tools(self.repo, self.store)
        router = QueryRouter(provider, model, tools, tracked_files=self.repo.ls_files)
        return ChatAgent(
            provider,
            model,
            router,
            tools,
            self.ingestion(),
            self.sessions,
            max_turns=self.config.chat.max_turns,
            top_k=self.config.chat.top_k,
            limit=self.config.vcs.max_commits,
        )

    def reset(self) -> int:
        """Delete the commit cache, every vector namespace and all sessions.

        Returns the number of sessions removed.
        """
        self.store.reset()
        self.index.reset()
        removed = self.sessions.reset()
        logger.info("Reset caches under %s (%d sessions removed)", self.project_root, removed)
        return removed
