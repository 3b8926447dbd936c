"""Tests for YAML configuration loading."""

import pytest

from dictionary_ingest.config import IngestConfig, load_config
from dictionary_ingest.exceptions import ConfigError


class TestDefaults:

    def test_none_gives_defaults(self):
        assert load_config() == IngestConfig()

    def test_empty_yaml_gives_defaults(self):
        assert load_config("") == IngestConfig()

    def test_default_values(self):
        config = IngestConfig()
        assert config.language == "en"
        assert config.write_batch_size == 10
        assert config.relationship_batch_size == 20
        assert config.transaction_timeout == 200.0
        assert config.image_batch_size == 5


class TestSources:

    def test_yaml_string(self):
        config = load_config("max_workers: 4\nlog_level: info\n")
        assert config.max_workers == 4
        assert config.log_level == "INFO"

    def test_yaml_string_with_url(self):
        config = load_config("audio_base_url: https://cdn.example/audio\n")
        assert config.audio_base_url == "https://cdn.example/audio"

    def test_dict(self):
        config = load_config({"transaction_timeout": 30, "image_batch_delay": 0})
        assert config.transaction_timeout == 30.0
        assert isinstance(config.transaction_timeout, float)
        assert config.image_batch_delay == 0.0

    def test_file(self, tmp_path):
        path = tmp_path / "ingest.yaml"
        path.write_text("language: en\nwrite_batch_size: 3\n", encoding="utf-8")
        config = load_config(path)
        assert config.write_batch_size == 3

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")


class TestInvalid:

    def test_unknown_key(self):
        with pytest.raises(ConfigError, match="Unknown configuration key"):
            load_config({"threads": 4})

    def test_wrong_type(self):
        with pytest.raises(ConfigError, match="max_workers"):
            load_config({"max_workers": "eight"})

    def test_bool_is_not_a_number(self):
        with pytest.raises(ConfigError):
            load_config({"max_retries": True})

    def test_batch_size_must_be_positive(self):
        with pytest.raises(ConfigError, match="at least 1"):
            load_config({"write_batch_size": 0})

    def test_retries_cannot_be_negative(self):
        with pytest.raises(ConfigError, match="cannot be negative"):
            load_config({"max_retries": -1})

    def test_unknown_log_level(self):
        with pytest.raises(ConfigError, match="log_level"):
            load_config({"log_level": "LOUD"})

    def test_root_must_be_mapping(self):
        with pytest.raises(ConfigError, match="mapping"):
            load_config("- a\n- b\n")

    def test_malformed_yaml_reports_line(self):
        with pytest.raises(ConfigError) as exc_info:
            load_config("language: en\nmax_workers: [1, 2\n")
        assert exc_info.value.line is not None
