"""Tests for chunksub.config_loader."""

from __future__ import annotations

import pytest

from chunksub.config_loader import DEFAULT_CONFIG, ConfigLoader, apply_defaults
from chunksub.exceptions import ConfigurationError


class TestConfigLoader:
    """Test suite for YAML configuration loading."""

    def test_load_config__merges_with_defaults(self, tmp_path) -> None:
        """Keys from the file override defaults; missing keys are filled in."""
        path = tmp_path / "config.yaml"
        path.write_text("provider: whisper\nlanguage: en\nchunk_seconds: 15\n", encoding="utf-8")

        config = ConfigLoader().load_config(str(path))

        assert config["provider"] == "whisper"
        assert config["language"] == "en"
        assert config["chunk_seconds"] == 15
        assert config["gemini_model"] == DEFAULT_CONFIG["gemini_model"]
        assert config["log_file"] == "chunksub.log"

    def test_load_config__empty_file_gives_defaults(self, tmp_path) -> None:
        """An empty YAML file is an empty mapping."""
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")

        assert ConfigLoader().load_config(str(path)) == DEFAULT_CONFIG

    def test_load_config__missing_file(self, tmp_path) -> None:
        """A missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            ConfigLoader().load_config(str(tmp_path / "absent.yaml"))

    def test_load_config__directory(self, tmp_path) -> None:
        """A directory is not a configuration file."""
        with pytest.raises(ConfigurationError):
            ConfigLoader().load_config(str(tmp_path))

    @pytest.mark.parametrize("content", ["- just\n- a list\n", "provider: [unclosed\n"])
    def test_load_config__invalid_yaml(self, tmp_path, content: str) -> None:
        """Non-mapping roots and syntax errors are ConfigurationError."""
        path = tmp_path / "config.yaml"
        path.write_text(content, encoding="utf-8")

        with pytest.raises(ConfigurationError):
            ConfigLoader().load_config(str(path))


class TestApplyDefaults:
    """Test suite for config validation."""

    def test_apply_defaults__does_not_mutate_input(self) -> None:
        """The caller's dict is left untouched."""
        original = {"language": "fr"}

        merged = apply_defaults(original)

        assert original == {"language": "fr"}
        assert merged["language"] == "fr"

    def test_apply_defaults__none_values_use_defaults(self) -> None:
        """Explicit nulls in YAML fall back to defaults."""
        assert apply_defaults({"chunk_seconds": None})["chunk_seconds"] == 30

    @pytest.mark.parametrize("value", [0, -5, "thirty", True])
    def test_apply_defaults__rejects_bad_chunk_seconds(self, value) -> None:
        """Chunk length must be a positive number."""
        with pytest.raises(ConfigurationError):
            apply_defaults({"chunk_seconds": value})

    @pytest.mark.parametrize("value", [0, -1, "soon"])
    def test_apply_defaults__rejects_bad_timeout(self, value) -> None:
        """Request timeout must be a positive number when set."""
        with pytest.raises(ConfigurationError):
            apply_defaults({"request_timeout": value})
