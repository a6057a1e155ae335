"""
Configuration management for the tutoring pipeline.

Loads settings from environment variables and provides a centralized
configuration object for all components.

Configuration precedence (highest to lowest):
1. Explicit kwargs passed to TutorConfig
2. Environment variables (TUTORLOOP_* prefix)
3. .env file
4. pyproject.toml [tool.tutorloop] section
5. Hardcoded defaults
"""

import logging
import sys
from pathlib import Path
from typing import Any, ClassVar

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

# Import tomllib for Python 3.11+, tomli for Python 3.10
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from ..exceptions import ConfigurationError
from ..models.enums import LogLevel

logger = logging.getLogger(__name__)


def load_pyproject_defaults(pyproject_path: Path = Path("pyproject.toml")) -> dict[str, Any]:
    """
    Load defaults from the [tool.tutorloop] section in pyproject.toml.

    Returns:
        Dictionary of configuration overrides from pyproject.toml
    """
    if not pyproject_path.exists():
        return {}

    try:
        with pyproject_path.open("rb") as f:
            data = tomllib.load(f)
    except OSError as e:
        logger.warning(f"Could not load pyproject.toml: {e}")
        return {}
    except tomllib.TOMLDecodeError as e:
        logger.warning(f"Could not parse pyproject.toml: {e}")
        return {}

    tool_config = data.get("tool", {}).get("tutorloop", {})
    if tool_config:
        logger.debug(f"Loaded {len(tool_config)} settings from pyproject.toml")
    return tool_config


class PyProjectTomlSettingsSource(PydanticBaseSettingsSource):
    """Settings source backed by the [tool.tutorloop] section of pyproject.toml."""

    def get_field_value(self, field_name: str, field_info: Any) -> tuple[Any, str, bool]:
        """Not used in this implementation."""
        return None, "", False

    def __call__(self) -> dict[str, Any]:
        return load_pyproject_defaults()


class TutorConfig(BaseSettings):
    """
    Main configuration for the tutoring pipeline.

    Sizes default to the production values of the original service: a
    500-session cache, a 10-turn window, 5 fragments of 500 characters each
    and 512-dimensional embeddings.
    """

    model_config = SettingsConfigDict(
        env_prefix="TUTORLOOP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    SECRET_FIELDS: ClassVar[frozenset[str]] = frozenset({"gemini_api_key"})

    # Session cache
    session_cache_capacity: int = Field(
        default=500, description="Maximum number of sessions held in memory"
    )
    serialize_session_turns: bool = Field(
        default=True,
        description="Serialize concurrent turns for the same session (False = last write wins)",
    )
    hydration_turn_limit: int = Field(
        default=20, description="Turns re-read from durable storage on a cache miss"
    )

    # Context window
    window_size: int = Field(
        default=10, description="Turns kept after compaction; compaction fires above 2x this"
    )

    # Retrieval
    retrieval_top_k: int = Field(default=5, description="Fragments returned per retrieval")
    vector_dim: int = Field(default=512, description="Embedding output dimensionality")
    fragment_char_limit: int = Field(default=500, description="Truncation cap per fragment")
    max_cached_fragments: int = Field(
        default=50, description="Per-session bound on the fragment cache"
    )
    retrieval_collections: list[str] = Field(
        default=["notebook"],
        description="Collections searched per retrieval (own collection first, then borrowed)",
    )

    # Agent loop
    max_agent_iterations: int = Field(
        default=5, description="Generation calls allowed per turn before failing"
    )
    collaborator_timeout_seconds: float = Field(
        default=30.0, description="Timeout for each classifier/embedding/search/LLM call"
    )
    tool_timeout_seconds: float = Field(default=60.0, description="Timeout per tool invocation")
    enable_notebook_search_tool: bool = Field(
        default=True, description="Offer the search_notebook tool to the generation model"
    )
    auto_title_sessions: bool = Field(
        default=True, description="Name each session after its first answered turn"
    )

    # Models (LiteLLM format for chat models)
    gemini_api_key: str | None = Field(default=None, description="Google Gemini API key")
    generation_model: str = Field(default="gemini/gemini-2.5-flash")
    classifier_model: str = Field(default="gemini/gemini-2.5-flash-lite")
    summarizer_model: str = Field(default="gemini/gemini-2.5-flash-lite")
    title_model: str = Field(default="gemini/gemini-2.5-flash-lite")
    embedding_model: str = Field(default="models/gemini-embedding-001")
    fallback_models: str | None = Field(
        default=None, description="Comma-separated fallback models for generation"
    )
    llm_max_retries: int = Field(default=3, description="Retry attempts on transient LLM errors")
    generation_temperature: float = Field(default=0.7)

    # Local adapters
    session_store_dir: Path = Field(default=Path("./data/sessions"))
    fragment_store_dir: Path = Field(default=Path("./data/notebooks"))
    vector_store_dir: Path | None = Field(
        default=None, description="Chroma persistence directory (None = in-memory)"
    )
    video_render_endpoint: str | None = Field(
        default=None, description="Render service URL for the video tool (None = tool disabled)"
    )

    # User-facing degraded answers
    classification_failed_message: str | None = Field(
        default=None, description="Override for the classification failure answer"
    )
    pending_media_message: str = Field(
        default="Your video is being created, it will be ready in a bit."
    )

    # Logging
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")
    log_file: Path | None = Field(
        default=None,
        description="Path to main application log file (set to None to disable file logging)",
    )
    log_max_bytes: int = Field(
        default=10 * 1024 * 1024, description="Maximum log file size before rotation"  # 10MB
    )
    log_backup_count: int = Field(default=5, description="Number of backup log files to keep")
    enable_rich_console: bool = Field(
        default=False, description="Echo component operations to a rich console"
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            PyProjectTomlSettingsSource(settings_cls),
            file_secret_settings,
        )

    @field_validator(
        "session_cache_capacity",
        "window_size",
        "retrieval_top_k",
        "vector_dim",
        "fragment_char_limit",
        "max_cached_fragments",
        "hydration_turn_limit",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"must be positive, got {v}")
        return v

    @field_validator("max_agent_iterations")
    @classmethod
    def validate_iterations(cls, v: int) -> int:
        if not 1 <= v <= 50:
            raise ValueError(f"max_agent_iterations must be 1-50, got {v}")
        return v

    @field_validator("collaborator_timeout_seconds", "tool_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"timeouts must be finite and positive, got {v}")
        return v

    @field_validator("retrieval_collections")
    @classmethod
    def validate_collections(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("retrieval_collections must name at least one collection")
        return v

    @model_validator(mode="after")
    def validate_cross_field_constraints(self) -> "TutorConfig":
        if self.max_cached_fragments < self.retrieval_top_k:
            raise ValueError(
                f"max_cached_fragments ({self.max_cached_fragments}) is smaller than "
                f"retrieval_top_k ({self.retrieval_top_k}); a single retrieval would evict itself"
            )
        if self.window_size > 100:
            logger.warning(
                f"Very large window_size ({self.window_size}). "
                "Compaction will rarely trigger and prompts may grow large."
            )
        return self

    @property
    def fallback_model_list(self) -> list[str]:
        if not self.fallback_models:
            return []
        return [m.strip() for m in self.fallback_models.split(",") if m.strip()]

    def ensure_log_directory(self) -> None:
        """Ensure the log directory exists."""
        if self.log_file and self.log_file.parent:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)

    def export_safe(self) -> dict[str, Any]:
        """Settings as a JSON-friendly dict with secrets masked."""
        data = self.model_dump(mode="json")
        for name in self.SECRET_FIELDS:
            if data.get(name):
                data[name] = "***"
        return data


# Global configuration instance
_config: TutorConfig | None = None


def get_config() -> TutorConfig:
    """
    Get the global configuration instance, creating it on first use.

    Raises:
        ConfigurationError: If the environment or pyproject.toml holds invalid settings
    """
    global _config
    if _config is None:
        try:
            _config = TutorConfig()
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(loc) for loc in first["loc"]) or None
            value = first.get("input") if field else None
            raise ConfigurationError(first["msg"], field=field, value=value) from e
        _config.ensure_log_directory()
    return _config


def reset_config() -> None:
    """Reset the global configuration (mainly for testing)."""
    global _config
    _config = None
