"""Language-model provider used for summaries, routing, chat and embeddings.

Text generation goes through the Anthropic messages API; embeddings are
computed locally with sentence-transformers. Callers depend only on the
``ModelProvider`` protocol so tests can substitute a fake.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Iterator, Protocol

import anthropic
from sentence_transformers import SentenceTransformer

from gittyx.config import ConfigError, GittyxConfig
from gittyx.schema.models import ChatRole, ChatTurn


class ModelProvider(Protocol):
    """Contract for the text and embedding model collaborator."""

    def generate_content(self, model: str, contents: list[ChatTurn]) -> str: ...

    def generate_content_stream(self, model: str, contents: list[ChatTurn]) -> Iterator[str]: ...

    def get_embedding(self, model: str, text: str) -> list[float]: ...

    def get_embeddings(self, model: str, texts: list[str]) -> list[list[float]]: ...


def user_prompt(text: str) -> list[ChatTurn]:
    """A single-turn conversation containing ``text``."""
    return [ChatTurn(role=ChatRole.USER, text=text)]


@lru_cache(maxsize=4)
def _load_sentence_model(name: str) -> SentenceTransformer:
    return SentenceTransformer(name)


class SentenceTransformerEmbedder:
    """Local embeddings, batched to avoid OOM."""

    BATCH_SIZE = 64

    def get_embedding(self, model: str, text: str) -> list[float]:
        return self.get_embeddings(model, [text])[0]

    def get_embeddings(self, model: str, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        encoder = _load_sentence_model(model)
        vectors: list[list[float]] = []
        for i in range(0, len(texts), self.BATCH_SIZE):
            batch = texts[i : i + self.BATCH_SIZE]
            vectors.extend(encoder.encode(batch, convert_to_numpy=True).tolist())
        return vectors


def to_messages(contents: list[ChatTurn]) -> list[dict[str, str]]:
    """Convert turns to Anthropic messages.

    ``model`` turns become ``assistant``; consecutive turns of the same role
    are merged since the API requires alternating roles starting with user.
    """
    messages: list[dict[str, str]] = []
    for turn in contents:
        role = "assistant" if turn.role == ChatRole.MODEL else "user"
        if not messages and role == "assistant":
            continue
        if messages and messages[-1]["role"] == role:
            messages[-1]["content"] += "\n\n" + turn.text
        else:
            messages.append({"role": role, "content": turn.text})
    return messages


class AnthropicProvider:
    """Generation via Anthropic, embeddings delegated to a local embedder."""

    def __init__(
        self,
        api_key: str | None = None,
        *,
        max_tokens: int = 2048,
        embedder: SentenceTransformerEmbedder | None = None,
    ):
        self._client = anthropic.Anthropic(api_key=api_key)
        self.max_tokens = max_tokens
        self._embedder = embedder or SentenceTransformerEmbedder()

    def generate_content(self, model: str, contents: list[ChatTurn]) -> str:
        message = self._client.messages.create(
            model=model,
            max_tokens=self.max_tokens,
            messages=to_messages(contents),
        )
        # Only text blocks carry a str ``text`` attribute
        return "".join(
            block.text for block in message.content if isinstance(getattr(block, "text", None), str)
        )

    def generate_content_stream(self, model: str, contents: list[ChatTurn]) -> Iterator[str]:
        with self._client.messages.stream(
            model=model,
            max_tokens=self.max_tokens,
            messages=to_messages(contents),
        ) as stream:
            for text in stream.text_stream:
                if text:
                    yield text

    def get_embedding(self, model: str, text: str) -> list[float]:
        return self._embedder.get_embedding(model, text)

    def get_embeddings(self, model: str, texts: list[str]) -> list[list[float]]:
        return self._embedder.get_embeddings(model, texts)


def create_provider(config: GittyxConfig) -> ModelProvider:
    """Build the configured provider, failing fast on bad settings.

    Raises:
        ConfigError: for an unsupported provider or embedding backend, or a
            missing API key.
    """
    if config.provider.name != "anthropic":
        raise ConfigError(
            f"Unsupported provider '{config.provider.name}'. Only 'anthropic' is supported."
        )
    if config.embedding.backend != "sentence-transformers":
        raise ConfigError(
            f"Unsupported embedding backend '{config.embedding.backend}'. "
            "Only 'sentence-transformers' is supported."
        )
    api_key = config.require_api_key()
    return AnthropicProvider(api_key, max_tokens=config.provider.max_tokens)
