"""Configuration management for site-archive."""

import os
from typing import Optional, Tuple
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def get_bool_env(key: str, default: bool = False) -> bool:
    """Get boolean environment variable."""
    value = os.getenv(key, "").lower()
    return value in ("true", "1", "yes", "on") if value else default


def get_str_env(key: str, default: Optional[str] = None) -> Optional[str]:
    """Get string environment variable."""
    return os.getenv(key, default)


def get_int_env(key: str, default: int) -> int:
    """Get integer environment variable, falling back to the default when unset or not a number."""
    value = os.getenv(key, "").strip()
    return int(value) if value.isdigit() else default


class Config:
    """Configuration class for site-archive."""

    def __init__(self):
        # Required to accept archive requests over HTTP
        self.archiver_key: Optional[str] = get_str_env("ARCHIVER_KEY")

        # Where archives are stored and served from
        self.static_url: str = get_str_env("STATIC_URL", "http://localhost:8787")
        self.storage_dir: str = get_str_env("STORAGE_DIR", "./archive")

        # Crawling
        self.max_depth: int = get_int_env("MAX_DEPTH", 5)
        self.max_workers: int = get_int_env("MAX_WORKERS", 8)
        self.request_timeout: int = get_int_env("REQUEST_TIMEOUT", 30)
        self.max_retries: int = get_int_env("MAX_RETRIES", 2)
        self.user_agent: str = get_str_env("USER_AGENT", "Mozilla/5.0 Archive Bot")

        # Logging
        self.log_level: str = get_str_env("LOG_LEVEL", "INFO").upper()
        self.log_file: Optional[str] = get_str_env("LOG_FILE")

        # Front door
        self.host: str = get_str_env("HOST", "127.0.0.1")
        self.port: int = get_int_env("PORT", 8787)
        self.debug: bool = get_bool_env("DEBUG", False)

    def validate(self, require_key: bool = False) -> Tuple[bool, Optional[str]]:
        """Validate configuration."""
        if require_key and not self.archiver_key:
            return False, "ARCHIVER_KEY environment variable is required"
        if not self.static_url.startswith(("http://", "https://")):
            return False, "STATIC_URL must be an http(s) URL"
        if self.max_workers < 1:
            return False, "MAX_WORKERS must be at least 1"
        if self.request_timeout < 1:
            return False, "REQUEST_TIMEOUT must be at least 1 second"
        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            return False, f"Unknown LOG_LEVEL: {self.log_level}"
        return True, None

    def __repr__(self) -> str:
        """String representation of config."""
        return f"Config(static_url={self.static_url}, storage_dir={self.storage_dir})"
