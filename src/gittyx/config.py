"""Configuration loading for Gittyx."""

from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigError(Exception):
    """Raised when Gittyx cannot start because of missing or invalid settings."""


class ProjectConfig(BaseModel):
    """Top-level project settings."""

    name: str = "my-project"
    root: str = "."


class CacheConfig(BaseModel):
    """Locations of the flat-file caches, relative to the project root."""

    commits_file: str = ".git/gittyx.json"
    vectors_file: str = ".git/gittyx_vectors.json"
    sessions_dir: str = ".git/gittyx_sessions"


class VCSConfig(BaseModel):
    """Settings for reading the git history."""

    max_commits: int = 200


class ProviderConfig(BaseModel):
    """Settings for the text-generation model."""

    name: str = "anthropic"
    model: str = "claude-haiku-4-5-20251001"
    max_tokens: int = 2048
    api_key_env: str = "ANTHROPIC_API_KEY"


class EmbeddingConfig(BaseModel):
    """Settings for the embedding model. The model name is also the vector namespace."""

    backend: str = "sentence-transformers"
    model: str = "all-MiniLM-L6-v2"


class SummarizationConfig(BaseModel):
    """Settings for batched commit summarization."""

    batch_size: int = 10
    max_diff_lines: int = 100
    trivial_keywords: list[str] = Field(
        default_factory=lambda: ["typo", "readme", "bump", "version", "merge"]
    )


class IngestionConfig(BaseModel):
    """Settings for diff chunking and embedding ingestion."""

    batch_size: int = 16
    chunk_lines: int = 100


class ChatConfig(BaseModel):
    """Settings for routed chat answers."""

    max_turns: int = 20  # 0 = replay the whole session
    top_k: int = 5


class GittyxConfig(BaseSettings):
    """Main Gittyx configuration, loaded from YAML + environment variables."""

    model_config = SettingsConfigDict(env_prefix="GITTYX_", env_nested_delimiter="__")

    project: ProjectConfig = Field(default_factory=ProjectConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    vcs: VCSConfig = Field(default_factory=VCSConfig)
    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    summarization: SummarizationConfig = Field(default_factory=SummarizationConfig)
    ingestion: IngestionConfig = Field(default_factory=IngestionConfig)
    chat: ChatConfig = Field(default_factory=ChatConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> "GittyxConfig":
        """Load configuration from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f)
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(f"{path} must contain a YAML mapping")
        return cls(**data)

    @classmethod
    def load(cls, project_root: Path | None = None) -> "GittyxConfig":
        """Load configuration, searching for config/gittyx.yaml relative to project root."""
        if project_root is None:
            project_root = Path.cwd()

        config_path = project_root / "config" / "gittyx.yaml"
        if config_path.exists():
            config = cls.from_yaml(config_path)
        else:
            config = cls()

        # Resolve project root to absolute path
        root = Path(config.project.root)
        if not root.is_absolute():
            root = project_root / root
        config.project.root = str(root.resolve())

        return config

    def resolve_path(self, relative: str) -> Path:
        """Resolve a cache path against the project root."""
        path = Path(relative)
        if path.is_absolute():
            return path
        return Path(self.project.root) / path

    @property
    def commits_path(self) -> Path:
        return self.resolve_path(self.cache.commits_file)

    @property
    def vectors_path(self) -> Path:
        return self.resolve_path(self.cache.vectors_file)

    @property
    def sessions_path(self) -> Path:
        return self.resolve_path(self.cache.sessions_dir)

    def require_api_key(self) -> str:
        """Return the provider API key, raising ConfigError when it is not set."""
        key = os.environ.get(self.provider.api_key_env, "").strip()
        if not key:
            raise ConfigError(
                f"Missing {self.provider.api_key_env}. "
                "Set it in the environment or in the project's .env file."
            )
        return key
