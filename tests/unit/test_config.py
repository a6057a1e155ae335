"""
Unit tests for configuration validation.

Tests cover:
- Default values
- Environment variable handling
- Invalid configurations
- pyproject.toml defaults
"""

import pytest
from pydantic import ValidationError

from tutorloop.core.config import TutorConfig, get_config, load_pyproject_defaults, reset_config
from tutorloop.exceptions import ConfigurationError


class TestTutorConfig:
    """Tests for configuration validation."""

    def test_defaults(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        config = TutorConfig()

        assert config.session_cache_capacity == 500
        assert config.window_size == 10
        assert config.retrieval_top_k == 5
        assert config.vector_dim == 512
        assert config.fragment_char_limit == 500
        assert config.max_agent_iterations == 5
        assert config.serialize_session_turns is True

    def test_environment_override(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("TUTORLOOP_WINDOW_SIZE", "4")
        monkeypatch.setenv("TUTORLOOP_RETRIEVAL_COLLECTIONS", '["notebook", "shared"]')

        config = TutorConfig()

        assert config.window_size == 4
        assert config.retrieval_collections == ["notebook", "shared"]

    @pytest.mark.parametrize(
        "field", ["window_size", "session_cache_capacity", "retrieval_top_k", "vector_dim"]
    )
    def test_sizes_must_be_positive(self, field):
        with pytest.raises(ValidationError):
            TutorConfig(**{field: 0})

    def test_iteration_bounds(self):
        with pytest.raises(ValidationError):
            TutorConfig(max_agent_iterations=0)
        with pytest.raises(ValidationError):
            TutorConfig(max_agent_iterations=51)

    def test_timeouts_must_be_positive(self):
        with pytest.raises(ValidationError):
            TutorConfig(collaborator_timeout_seconds=0)

    def test_collections_cannot_be_empty(self):
        with pytest.raises(ValidationError):
            TutorConfig(retrieval_collections=[])

    def test_fragment_cache_must_hold_one_retrieval(self):
        with pytest.raises(ValidationError, match="max_cached_fragments"):
            TutorConfig(retrieval_top_k=10, max_cached_fragments=5)

    def test_fallback_model_list(self):
        config = TutorConfig(fallback_models="openai/gpt-4o-mini, anthropic/claude-3-haiku,")

        assert config.fallback_model_list == ["openai/gpt-4o-mini", "anthropic/claude-3-haiku"]

    def test_export_safe_masks_secrets(self):
        config = TutorConfig(gemini_api_key="secret-key")
        exported = config.export_safe()

        assert exported["gemini_api_key"] == "***"
        assert exported["window_size"] == config.window_size

    def test_global_config_is_cached(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        first = get_config()

        assert get_config() is first
        reset_config()
        assert get_config() is not first

    def test_invalid_environment_raises_configuration_error(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("TUTORLOOP_WINDOW_SIZE", "0")

        with pytest.raises(ConfigurationError) as exc_info:
            get_config()

        assert exc_info.value.field == "window_size"


class TestPyprojectDefaults:
    def test_missing_file(self, tmp_path):
        assert load_pyproject_defaults(tmp_path / "pyproject.toml") == {}

    def test_reads_tool_section(self, tmp_path):
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text("[tool.tutorloop]\nwindow_size = 6\n")

        assert load_pyproject_defaults(pyproject) == {"window_size": 6}

    def test_invalid_toml_is_ignored(self, tmp_path):
        pyproject = tmp_path / "pyproject.toml"
        pyproject.write_text("[tool.tutorloop\n")

        assert load_pyproject_defaults(pyproject) == {}

    def test_pyproject_applies_below_env(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "pyproject.toml").write_text(
            "[tool.tutorloop]\nwindow_size = 6\nretrieval_top_k = 3\n"
        )
        monkeypatch.setenv("TUTORLOOP_RETRIEVAL_TOP_K", "4")

        config = TutorConfig()

        assert config.window_size == 6
        assert config.retrieval_top_k == 4
