"""
Configuration management for cuentame-sync.

Provides centralized configuration using Pydantic for validation and
environment variable support. Supports cuentame.yaml for per-project settings.
"""

from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Default data paths relative to project root
STORE_PATH = PROJECT_ROOT / "data" / "db" / "cuentame.db"

DEFAULT_RSS_URL = "https://anchor.fm/s/4baec630/podcast/rss"
DEFAULT_INTRO_TITLE = "¡Cuéntame! -What is this podcast all about?"

# Keys that cuentame.yaml may provide when the environment does not
YAML_KEYS = ("rss_url", "numbering_policy", "intro_title", "index_key")


def load_project_yaml(search_dir: Optional[Path] = None) -> dict:
    """
    Load cuentame.yaml configuration file.

    Searches for cuentame.yaml starting from search_dir (or PROJECT_ROOT)
    and walking up to 3 parent directories.

    Args:
        search_dir: Directory to start searching from

    Returns:
        Dictionary with cuentame.yaml contents, or empty dict if not found
    """
    start = search_dir or PROJECT_ROOT
    for parent in [start] + list(start.parents)[:3]:
        candidate = parent / "cuentame.yaml"
        if candidate.exists():
            with open(candidate, "r", encoding="utf-8") as f:
                return yaml.safe_load(f) or {}
    return {}


class Config(BaseSettings):
    """
    Application configuration with environment variable support.

    Configuration can be provided via:
    1. Environment variables (prefixed with CUENTAME_)
    2. .env file
    3. cuentame.yaml
    4. Default values

    Example:
        export CUENTAME_RSS_URL="https://example.com/feed.rss"
        export CUENTAME_NUMBERING_POLICY="hint_first"
    """

    model_config = SettingsConfigDict(
        env_prefix="CUENTAME_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # RSS Feed
    rss_url: str = Field(
        default=DEFAULT_RSS_URL,
        description="RSS feed URL for the podcast"
    )
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Timeout in seconds for the feed download"
    )

    # Storage
    store_path: Path = Field(
        default=STORE_PATH,
        description="Path to the SQLite file backing the key-value store"
    )
    index_key: str = Field(
        default="episodes_index",
        description="Key under which the episodes index document is stored"
    )

    # Episode numbering
    numbering_policy: Literal["title_first", "hint_first"] = Field(
        default="title_first",
        description="Episode number resolution strategy (title_first/hint_first)"
    )
    intro_title: str = Field(
        default=DEFAULT_INTRO_TITLE,
        description="Exact title of the introductory episode numbered 0"
    )

    def ensure_directories(self) -> None:
        """Create necessary directories if they don't exist."""
        self.store_path.parent.mkdir(parents=True, exist_ok=True)


def get_config(search_dir: Optional[Path] = None) -> Config:
    """
    Get the application configuration instance.

    Merges settings from environment variables, .env file,
    and cuentame.yaml (if present). Explicitly set environment values
    take precedence over the YAML file.

    Returns:
        Config: Application configuration
    """
    config = Config()
    yaml_config = load_project_yaml(search_dir)

    overrides = {
        key: yaml_config[key]
        for key in YAML_KEYS
        if key in yaml_config and key not in config.model_fields_set
    }
    if overrides:
        config = Config(**{**config.model_dump(exclude_unset=True), **overrides})

    config.ensure_directories()
    return config
