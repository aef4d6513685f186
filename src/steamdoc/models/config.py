"""Configuration models for steamdoc."""

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator


def default_config_path() -> Path:
    return Path.home() / ".config" / "steamdoc" / "config.yaml"


class EditorConfig(BaseModel):
    """Configuration for the document editor core."""

    language: Literal["en", "zh"] = Field(
        default="en",
        description="Language of apply summaries and change descriptions"
    )

    max_undo_depth: int = Field(
        default=20,
        ge=1,
        description="Number of block snapshots kept for undo/redo per document"
    )

    preview_length: int = Field(
        default=50,
        ge=1,
        description="Characters shown in block previews"
    )

    @field_validator("language", mode="before")
    @classmethod
    def normalize_language(cls, v: str) -> str:
        """Accept regional tags like 'zh-TW' or 'EN'."""
        if isinstance(v, str):
            v = v.lower()
            if v.startswith("zh"):
                return "zh"
            if v.startswith("en"):
                return "en"
        return v

    model_config = {"frozen": True}


class AgentConfig(BaseModel):
    """Limits applied to the agent-facing tool surface."""

    max_batch_size: int = Field(
        default=25,
        ge=1,
        le=100,
        description="Maximum number of items processed by one batch tool call"
    )

    context_size: int = Field(
        default=1,
        ge=0,
        description="Neighbouring blocks returned on each side when reading with context"
    )

    model_config = {"frozen": True}


class Config(BaseModel):
    """Root configuration for steamdoc."""

    editor: EditorConfig = Field(default_factory=EditorConfig, description="Editor settings")
    agent: AgentConfig = Field(default_factory=AgentConfig, description="Agent tool settings")

    @classmethod
    def load(cls, path: Path) -> "Config":
        """
        Load configuration from a YAML file.

        An empty file yields the defaults. STEAMDOC_LANGUAGE, when set,
        overrides editor.language.

        Args:
            path: Path to config.yaml

        Returns:
            Validated Config instance

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the YAML is invalid or validation fails
        """
        if not path.exists():
            raise FileNotFoundError(
                f"Configuration file not found at {path}\n\n"
                f"Example format:\n\n"
                f"editor:\n"
                f"  language: en\n"
                f"  max_undo_depth: 20\n\n"
                f"agent:\n"
                f"  max_batch_size: 25\n"
            )

        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"Configuration in {path} must be a mapping, got {type(data).__name__}")

        return cls._from_data(data)

    @classmethod
    def load_default(cls) -> "Config":
        """Load ~/.config/steamdoc/config.yaml, or defaults if it doesn't exist."""
        path = default_config_path()
        if path.exists():
            return cls.load(path)
        return cls._from_data({})

    @classmethod
    def _from_data(cls, data: dict) -> "Config":
        language = os.environ.get("STEAMDOC_LANGUAGE")
        if language:
            editor = dict(data.get("editor") or {})
            editor["language"] = language
            data = {**data, "editor": editor}

        try:
            return cls(**data)
        except ValidationError as e:
            raise ValueError(f"Invalid configuration: {e}") from e

    model_config = {"frozen": True}
