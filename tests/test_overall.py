"""Tests for the project-level overall summary."""

from __future__ import annotations

from pathlib import Path

import pytest

from gittyx.indexer.overall import generate_overall_summary, strip_markdown_fence
from gittyx.schema.models import CommitRecord, OverallSummary, RecordKind
from gittyx.store.commit_store import CommitStore

MODEL = "test-model"


@pytest.fixture
def store(tmp_path: Path) -> CommitStore:
    store = CommitStore(tmp_path / "gittyx.json")
    store.upsert_raw([
        CommitRecord(hash="c1", message="Add parser", date="2025-01-01T00:00:00Z", summary="Adds a parser."),
        CommitRecord(hash="c2", message="Bump version", date="2025-01-02T00:00:00Z"),
        CommitRecord(hash="c3", message="Refactor lexer", date="2025-01-03T00:00:00Z", summary="Refactors the lexer."),
    ])
    return store


class TestStripMarkdownFence:
    def test_markdown_fence(self):
        assert strip_markdown_fence("```markdown\n# Title\nBody\n```") == "# Title\nBody"

    def test_bare_fence(self):
        assert strip_markdown_fence("```\ntext\n```") == "text"

    def test_no_fence(self):
        assert strip_markdown_fence("  plain  ") == "plain"


class TestGenerateOverallSummary:
    def test_creates_summary_from_summarized_commits(self, store: CommitStore, provider):
        provider.responses = ["```markdown\nThe project gained a parser and lexer.\n```"]
        overall = generate_overall_summary(store, provider, MODEL, limit=10)

        assert overall.summary == "The project gained a parser and lexer."
        assert overall.number_of_commits == 10
        prompt = provider.calls[0][-1].text
        assert "- Refactors the lexer.\n- Adds a parser." in prompt
        assert "Bump version" not in prompt

        saved = CommitStore(store.path).get_singleton(RecordKind.OVERALL)
        assert isinstance(saved, OverallSummary)

    def test_limit_takes_newest(self, store: CommitStore, provider):
        provider.responses = ["Lexer work."]
        generate_overall_summary(store, provider, MODEL, limit=1)
        prompt = provider.calls[0][-1].text
        assert "Refactors the lexer." in prompt
        assert "Adds a parser." not in prompt

    def test_nothing_to_summarize(self, tmp_path: Path, provider):
        store = CommitStore(tmp_path / "gittyx.json")
        store.upsert_raw([CommitRecord(hash="c1", message="m", date="2025-01-01T00:00:00Z")])
        assert generate_overall_summary(store, provider, MODEL) is None
        assert provider.calls == []

    def test_skips_when_up_to_date(self, store: CommitStore, provider):
        provider.responses = ["First."]
        first = generate_overall_summary(store, provider, MODEL, limit=10)
        second = generate_overall_summary(store, provider, MODEL, limit=10)
        assert len(provider.calls) == 1
        assert second.summary == first.summary

    def test_no_limit_and_zero_limit_share_staleness_key(self, store: CommitStore, provider):
        provider.responses = ["First."]
        generate_overall_summary(store, provider, MODEL)
        generate_overall_summary(store, provider, MODEL, limit=0)
        assert len(provider.calls) == 1

    def test_regenerates_for_different_limit(self, store: CommitStore, provider):
        provider.responses = ["First.", "Second."]
        generate_overall_summary(store, provider, MODEL, limit=10)
        overall = generate_overall_summary(store, provider, MODEL, limit=5)
        assert len(provider.calls) == 2
        assert overall.summary == "Second."
        assert overall.number_of_commits == 5

    def test_regenerates_when_newer_commit_arrives(self, store: CommitStore, provider):
        store.put_singleton(OverallSummary(
            summary="Old.", date="2025-01-02T00:00:00Z", number_of_commits=10,
        ))
        provider.responses = ["New."]
        overall = generate_overall_summary(store, provider, MODEL, limit=10)
        assert overall.summary == "New."

    def test_model_failure_keeps_existing(self, store: CommitStore, provider):
        existing = OverallSummary(summary="Old.", date="2024-01-01T00:00:00Z", number_of_commits=10)
        store.put_singleton(existing)
        provider.responses = [RuntimeError("overloaded")]
        assert generate_overall_summary(store, provider, MODEL, limit=10).summary == "Old."

    def test_model_failure_without_existing(self, store: CommitStore, provider):
        provider.responses = [RuntimeError("overloaded")]
        assert generate_overall_summary(store, provider, MODEL, limit=10) is None
