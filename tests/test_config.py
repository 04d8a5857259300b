"""Tests for configuration module."""

import os
import pytest
from site_archive.config import Config

ENV_KEYS = [
    "ARCHIVER_KEY",
    "STATIC_URL",
    "STORAGE_DIR",
    "MAX_DEPTH",
    "MAX_WORKERS",
    "REQUEST_TIMEOUT",
    "LOG_LEVEL",
    "PORT",
    "DEBUG",
]


class TestConfig:
    """Test configuration class."""

    def setup_method(self):
        """Start every test from a clean environment."""
        self.saved = {key: os.environ.pop(key) for key in ENV_KEYS if key in os.environ}

    def teardown_method(self):
        """Restore the environment."""
        for key in ENV_KEYS:
            os.environ.pop(key, None)
        os.environ.update(self.saved)

    def test_default_values(self):
        """Test default configuration values."""
        config = Config()

        assert config.archiver_key is None
        assert config.static_url == "http://localhost:8787"
        assert config.storage_dir == "./archive"
        assert config.max_depth == 5
        assert config.max_workers == 8
        assert config.request_timeout == 30
        assert config.log_level == "INFO"
        assert config.port == 8787
        assert config.debug is False

    def test_env_variables(self):
        """Test environment variable parsing."""
        os.environ["ARCHIVER_KEY"] = "secret"
        os.environ["STATIC_URL"] = "https://archive.example.com"
        os.environ["STORAGE_DIR"] = "/tmp/archive"
        os.environ["MAX_DEPTH"] = "2"
        os.environ["MAX_WORKERS"] = "16"
        os.environ["LOG_LEVEL"] = "debug"
        os.environ["DEBUG"] = "true"

        config = Config()

        assert config.archiver_key == "secret"
        assert config.static_url == "https://archive.example.com"
        assert config.storage_dir == "/tmp/archive"
        assert config.max_depth == 2
        assert config.max_workers == 16
        assert config.log_level == "DEBUG"
        assert config.debug is True

    def test_invalid_number_falls_back_to_default(self):
        """Test non-numeric values are ignored."""
        os.environ["MAX_DEPTH"] = "deep"
        os.environ["PORT"] = "-1"

        config = Config()

        assert config.max_depth == 5
        assert config.port == 8787

    def test_validate_defaults(self):
        """Test validation of the default configuration."""
        is_valid, error = Config().validate()
        assert is_valid is True
        assert error is None

    def test_validate_missing_key(self):
        """Test validation when serving without an archiver key."""
        is_valid, error = Config().validate(require_key=True)
        assert is_valid is False
        assert "ARCHIVER_KEY" in error

    @pytest.mark.parametrize(
        "attr, value, message",
        [
            ("static_url", "ftp://files", "STATIC_URL"),
            ("max_workers", 0, "MAX_WORKERS"),
            ("request_timeout", 0, "REQUEST_TIMEOUT"),
            ("log_level", "LOUD", "LOG_LEVEL"),
        ],
    )
    def test_validate_invalid_values(self, attr, value, message):
        """Test validation of out-of-range values."""
        config = Config()
        setattr(config, attr, value)

        is_valid, error = config.validate()

        assert is_valid is False
        assert message in error
