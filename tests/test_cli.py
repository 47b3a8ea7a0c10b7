"""Tests for the Gittyx CLI."""

from __future__ import annotations

import json
import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from gittyx.cli import app
from gittyx.schema.models import ChatRole, ChatTurn, CommitRecord, OverallSummary
from gittyx.store.commit_store import CommitStore
from gittyx.store.sessions import SessionStore
from gittyx.tools import llm

runner = CliRunner()


@pytest.fixture
def patched_provider(monkeypatch, provider):
    monkeypatch.setattr(llm, "create_provider", lambda config: provider)
    return provider


@pytest.fixture
def no_api_key(monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)


class TestInit:
    def test_init_creates_config(self, tmp_path: Path):
        result = runner.invoke(app, ["init", str(tmp_path)])
        assert result.exit_code == 0
        assert (tmp_path / "config" / "gittyx.yaml").exists()

    def test_init_doesnt_overwrite(self, tmp_path: Path):
        runner.invoke(app, ["init", str(tmp_path)])
        (tmp_path / "config" / "gittyx.yaml").write_text("vcs:\n  max_commits: 7\n")
        result = runner.invoke(app, ["init", str(tmp_path)])
        assert result.exit_code == 0
        assert "max_commits: 7" in (tmp_path / "config" / "gittyx.yaml").read_text()


class TestAnalyze:
    def test_missing_api_key(self, git_repo: Path, no_api_key):
        result = runner.invoke(app, ["analyze", str(git_repo)])
        assert result.exit_code == 1
        assert "Configuration error" in result.output

    def test_not_a_git_repo(self, tmp_path: Path, patched_provider):
        result = runner.invoke(app, ["analyze", str(tmp_path)])
        assert result.exit_code == 1
        assert "No git repository" in result.output

    def test_analyze_reports_results(self, git_repo: Path, patched_provider):
        patched_provider.responder = lambda prompt: "{}"
        result = runner.invoke(app, ["analyze", str(git_repo), "--limit", "3"])
        assert result.exit_code == 0, result.output
        assert "Analysis Results" in result.output
        assert "New commits" in result.output
        assert len(CommitStore(git_repo / ".git" / "gittyx.json")) == 3

    def test_git_timeout_is_reported(self, git_repo: Path, patched_provider):
        with patch(
            "gittyx.tools.vcs.subprocess.run",
            side_effect=subprocess.TimeoutExpired(["git", "log"], 30),
        ):
            result = runner.invoke(app, ["analyze", str(git_repo)])
        assert result.exit_code == 1
        assert "Git failed" in result.output
        assert not isinstance(result.exception, subprocess.TimeoutExpired)


class TestInsights:
    def test_json_payload(self, git_repo: Path, no_api_key):
        store = CommitStore(git_repo / ".git" / "gittyx.json")
        store.upsert_raw([CommitRecord(hash="abc1234", message="Add parser", date="2025-01-01T00:00:00Z")])
        store.put_singleton(OverallSummary(summary="Overview."))
        store.save()

        result = runner.invoke(app, ["insights", str(git_repo), "--json"])
        assert result.exit_code == 0, result.output
        payload = json.loads(result.output)
        assert payload["summary"] == "Overview."
        assert payload["commits"][0]["hash"] == "abc1234"
        assert payload["chartConfig"] is None

    def test_fallback_summary(self, tmp_path: Path, no_api_key):
        result = runner.invoke(app, ["insights", str(tmp_path)])
        assert result.exit_code == 0
        assert "No overall summary available." in result.output


class TestAsk:
    def test_streams_answer_and_reports_session(self, git_repo: Path, patched_provider):
        patched_provider.responses = ['{"type": "chat"}']
        result = runner.invoke(app, ["ask", "what is this?", "--path", str(git_repo), "--session", "s1"])
        assert result.exit_code == 0, result.output
        assert "Hello, world" in result.output
        assert "Session: s1" in result.output

        turns = SessionStore(git_repo / ".git" / "gittyx_sessions").load("s1")
        assert [t.text for t in turns] == ["what is this?", "Hello, world"]

    def test_invalid_session_id(self, git_repo: Path, patched_provider):
        patched_provider.responses = ['{"type": "chat"}']
        result = runner.invoke(app, ["ask", "hi", "--path", str(git_repo), "--session", "../x"])
        assert result.exit_code == 1


class TestSessions:
    def test_list_and_delete(self, tmp_path: Path, no_api_key):
        sessions = SessionStore(tmp_path / ".git" / "gittyx_sessions")
        sessions.append("abc", ChatTurn(role=ChatRole.USER, text="Who wrote the parser?"))

        listed = runner.invoke(app, ["sessions", str(tmp_path)])
        assert listed.exit_code == 0
        assert "Who wrote the parser?" in listed.output

        deleted = runner.invoke(app, ["sessions", str(tmp_path), "--delete", "abc"])
        assert deleted.exit_code == 0
        assert sessions.list_ids() == []

    def test_delete_missing(self, tmp_path: Path, no_api_key):
        result = runner.invoke(app, ["sessions", str(tmp_path), "--delete", "nope"])
        assert result.exit_code == 1

    def test_empty(self, tmp_path: Path, no_api_key):
        result = runner.invoke(app, ["sessions", str(tmp_path)])
        assert result.exit_code == 0
        assert "No chat sessions yet" in result.output


class TestStatus:
    def test_status_basic(self, git_repo: Path, no_api_key):
        result = runner.invoke(app, ["status", str(git_repo)])
        assert result.exit_code == 0
        assert "Project root" in result.output
        assert "Commits cached" in result.output
        assert "git detected" in result.output

    def test_status_without_git(self, tmp_path: Path, no_api_key):
        result = runner.invoke(app, ["status", str(tmp_path)])
        assert result.exit_code == 0
        assert "No git repository detected" in result.output


class TestReset:
    def test_reset_with_yes(self, git_repo: Path, no_api_key):
        store = CommitStore(git_repo / ".git" / "gittyx.json")
        store.upsert_raw([CommitRecord(hash="abc", message="m")])
        store.save()

        result = runner.invoke(app, ["reset", str(git_repo), "--yes"])
        assert result.exit_code == 0
        assert not (git_repo / ".git" / "gittyx.json").exists()

    def test_reset_aborted(self, git_repo: Path, no_api_key):
        store = CommitStore(git_repo / ".git" / "gittyx.json")
        store.upsert_raw([CommitRecord(hash="abc", message="m")])
        store.save()

        result = runner.invoke(app, ["reset", str(git_repo)], input="n\n")
        assert result.exit_code != 0
        assert (git_repo / ".git" / "gittyx.json").exists()
