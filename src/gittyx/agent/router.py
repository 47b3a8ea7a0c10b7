"""Query routing: decide whether a question needs a tool, retrieval, or plain chat."""

from __future__ import annotations

import logging
from typing import Callable

from gittyx.agent.json_extract import NoJsonFound, extract_json
from gittyx.agent.tools import FILE_EVOLUTION_TOOL, RepoTool
from gittyx.schema.models import QueryClassification, RouteType
from gittyx.tools.llm import ModelProvider, user_prompt

logger = logging.getLogger(__name__)

_CLASSIFY_TEMPLATE = """\
You are a smart AI router.

Your job is to decide how to handle user queries:
- If it's about a specific git tool, pick a tool and arguments.
- If it needs multiple commits as context, choose "vector".
- If it's a general question (like "what do you do?"), choose "chat".

Available tools:
{tools}

User query:
"{query}"

Respond in JSON:
{{
  "type": "tool" | "vector" | "chat",
  "toolName"?: string,
  "args"?: object
}}"""

_RESOLVE_TEMPLATE = """\
You are given a list of tracked files:
{files}

Given a file path, return the matching path from the list:
{path}
Only respond with the path."""


def coerce_classification(payload: dict) -> QueryClassification:
    """Build a classification from parsed JSON, defaulting anything invalid to chat."""
    route = payload.get("type")
    try:
        route_type = RouteType(route)
    except ValueError:
        route_type = RouteType.CHAT

    tool_name = payload.get("toolName")
    args = payload.get("args")
    return QueryClassification(
        type=route_type,
        tool_name=tool_name if isinstance(tool_name, str) else None,
        args=args if isinstance(args, dict) else {},
    )


class QueryRouter:
    """Classifies queries with a model call and resolves file arguments."""

    def __init__(
        self,
        provider: ModelProvider,
        model: str,
        tools: dict[str, RepoTool],
        *,
        tracked_files: Callable[[], list[str]] | None = None,
    ):
        self.provider = provider
        self.model = model
        self.tools = tools
        self._tracked_files = tracked_files

    def build_prompt(self, query: str) -> str:
        tool_list = "\n".join(f"- {t.name}: {t.description}" for t in self.tools.values())
        return _CLASSIFY_TEMPLATE.format(tools=tool_list, query=query)

    def classify(self, query: str) -> QueryClassification:
        """Classify a query. Provider or parse failures fall back to chat."""
        try:
            raw = self.provider.generate_content(self.model, user_prompt(self.build_prompt(query)))
            decision = coerce_classification(extract_json(raw))
        except NoJsonFound as e:
            logger.warning("Router returned no JSON, falling back to chat: %s", e)
            return QueryClassification(type=RouteType.CHAT)
        except Exception as e:
            logger.error("Router classification failed, falling back to chat: %s", e)
            return QueryClassification(type=RouteType.CHAT)

        if decision.type == RouteType.TOOL and decision.tool_name not in self.tools:
            logger.warning("Router picked unknown tool %r, falling back to chat", decision.tool_name)
            decision = QueryClassification(type=RouteType.CHAT)

        if decision.type == RouteType.TOOL and decision.tool_name == FILE_EVOLUTION_TOOL:
            partial = str(decision.args.get("file") or "")
            decision.args = {"file": self.resolve_file_path(partial)}

        logger.debug("Router decision: %s", decision.model_dump_json(by_alias=True))
        return decision

    def resolve_file_path(self, path: str) -> str:
        """Map a user-supplied partial path onto a tracked file.

        Exact and unique suffix matches are resolved locally; otherwise the
        model picks from the tracked list. Any failure returns the input path.
        """
        if self._tracked_files is None:
            return path
        try:
            files = self._tracked_files()
        except Exception as e:
            logger.warning("Could not list tracked files: %s", e)
            return path

        wanted = path.strip().lstrip("/")
        if wanted in files:
            return wanted
        suffix_matches = [f for f in files if wanted and f.endswith("/" + wanted)]
        if len(suffix_matches) == 1:
            return suffix_matches[0]

        prompt = _RESOLVE_TEMPLATE.format(files="\n".join(files), path=path)
        try:
            answer = self.provider.generate_content(self.model, user_prompt(prompt))
        except Exception as e:
            logger.warning("File path resolution failed for %r: %s", path, e)
            return path

        resolved = answer.strip().strip("`'\"").strip().lstrip("/")
        return resolved or path
