"""Chat agent: routes a question, gathers context and streams a grounded answer."""

from __future__ import annotations

import logging
import uuid
from typing import Iterator

from gittyx.agent.router import QueryRouter
from gittyx.agent.tools import RepoTool, invoke_tool
from gittyx.indexer.ingest import IngestionPipeline
from gittyx.schema.models import ChatRole, ChatTurn, QueryClassification, RouteType, ScoredEntry
from gittyx.store.sessions import SessionStore
from gittyx.tools.llm import ModelProvider

logger = logging.getLogger(__name__)

ANSWER_TEMPLATE = """\
# Role
You are Gittyx, an expert Git AI analyst. An AI-powered CLI tool that analyzes a Git \
repository's history and lets you explore and query the codebase's evolution.

# Instructions
- Given the following Git commit history context and a user question, respond with \
insights grounded in the commits.
- If no context is provided, just answer the question and explain to the user how Gittyx works.
- DON'T make up answers, just use the context to answer the question.
- If no context is provided, DON'T ask the user for their git logs, instead ask the user \
to ask about their repository.

## Context (if any):
{context}

## Question:
{query}

## Answer:"""


def new_session_id() -> str:
    return uuid.uuid4().hex


def format_hits(hits: list[ScoredEntry]) -> str:
    """Render retrieved chunks as numbered context blocks."""
    blocks = []
    for i, hit in enumerate(hits, 1):
        meta = hit.entry.metadata
        blocks.append(
            f"--- Chunk {i} ---\n"
            f"Commit: {meta.hash}\n"
            f"Message: {meta.message}\n"
            f"Summary: {meta.summary or ''}\n"
            f"Author: {meta.author}\n"
            f"Date: {meta.date}\n\n"
            f"{meta.text}"
        )
    return "\n\n".join(blocks)


class ChatAgent:
    """Answers questions about a repository, one session at a time."""

    def __init__(
        self,
        provider: ModelProvider,
        model: str,
        router: QueryRouter,
        tools: dict[str, RepoTool],
        retriever: IngestionPipeline,
        sessions: SessionStore,
        *,
        max_turns: int = 20,
        top_k: int = 5,
        limit: int | None = None,
    ):
        self.provider = provider
        self.model = model
        self.router = router
        self.tools = tools
        self.retriever = retriever
        self.sessions = sessions
        self.max_turns = max_turns
        self.top_k = top_k
        self.limit = limit

    def build_context(self, query: str, route: QueryClassification) -> str:
        if route.type == RouteType.TOOL and route.tool_name in self.tools:
            args = dict(route.args)
            if self.limit:
                args["limit"] = self.limit
            return invoke_tool(self.tools[route.tool_name], args)

        if route.type == RouteType.VECTOR:
            try:
                hits = self.retriever.query(query, self.top_k)
            except Exception as e:
                logger.error("Vector lookup failed: %s", e)
                return ""
            return format_hits(hits)

        return ""

    def stream_chat(self, query: str, session_id: str) -> Iterator[str]:
        """Yield answer fragments, then record the exchange in the session.

        The session is only written once the stream has been fully consumed.
        """
        if not query.strip():
            return

        route = self.router.classify(query)
        context = self.build_context(query, route)
        prompt = ANSWER_TEMPLATE.format(context=context, query=query)

        history = self.sessions.context_window(session_id, self.max_turns)
        contents = history + [ChatTurn(role=ChatRole.USER, text=prompt)]

        answer = []
        for fragment in self.provider.generate_content_stream(self.model, contents):
            if fragment:
                answer.append(fragment)
                yield fragment

        self.sessions.append(
            session_id,
            ChatTurn(role=ChatRole.USER, text=query),
            ChatTurn(role=ChatRole.MODEL, text="".join(answer)),
        )

    def ask(self, query: str, session_id: str) -> str:
        return "".join(self.stream_chat(query, session_id))
