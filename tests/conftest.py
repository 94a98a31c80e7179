"""
Shared test fixtures.

Provides pytest fixtures for common test resources including:
- Test configuration pointing at a temporary store
- In-memory (write-counting) and SQLite key-value stores
- Numbering policies
- Sample raw feed items
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from cuentame_sync.config import DEFAULT_INTRO_TITLE, Config
from cuentame_sync.ingestion.numbering import HintFirstPolicy, TitleFirstPolicy
from cuentame_sync.models.database import MemoryKeyValueStore, SqliteKeyValueStore

INTRO_TITLE = DEFAULT_INTRO_TITLE


@pytest.fixture
def test_config(tmp_path: Path) -> Config:
    """
    Create test configuration with temporary paths.

    Returns:
        Config: Test configuration using the title_first policy
    """
    return Config(
        rss_url="https://example.com/feed.rss",
        store_path=tmp_path / "db" / "test.db",
        numbering_policy="title_first",
    )


class CountingStore(MemoryKeyValueStore):
    """In-memory store that records how many writes it received."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        super().__init__(initial)
        self.put_count = 0

    def put(self, key: str, value: str) -> None:
        super().put(key, value)
        self.put_count += 1


@pytest.fixture
def memory_store() -> CountingStore:
    """Empty in-memory key-value store that counts writes."""
    return CountingStore()


@pytest.fixture
def sqlite_store(tmp_path: Path) -> SqliteKeyValueStore:
    """Initialized SQLite key-value store in a temporary directory."""
    store = SqliteKeyValueStore(tmp_path / "kv.db")
    store.initialize()
    return store


@pytest.fixture
def title_first() -> TitleFirstPolicy:
    return TitleFirstPolicy(intro_title=INTRO_TITLE)


@pytest.fixture
def hint_first() -> HintFirstPolicy:
    return HintFirstPolicy()


@pytest.fixture
def sample_items() -> List[Dict[str, Any]]:
    """
    Raw feed items in the attribute-prefixed XML shape.

    Returns:
        Three usable items: episodes 194 and 193 and the intro episode
    """
    return [
        {
            "title": "194. La inteligencia artificial",
            "description": (
                '<p>Notas: <a href="https://docs.google.com/document/d/ABC">doc</a></p>'
            ),
            "pubDate": "Mon, 01 Jan 2024 12:00:00 GMT",
            "enclosure": {"@_url": "https://x/ep194.mp3", "@_type": "audio/mpeg"},
            "itunes:duration": "00:25:10",
            "itunes:episode": "194",
        },
        {
            "title": "193. El viaje",
            "description": "Un viaje por México.",
            "pubDate": "Mon, 25 Dec 2023 12:00:00 GMT",
            "enclosure": {"url": "https://x/ep193.mp3"},
            "itunes:duration": "1500",
        },
        {
            "title": INTRO_TITLE,
            "pubDate": "Fri, 01 Mar 2019 09:00:00 GMT",
            "enclosure": {"@_url": "https://x/intro.mp3"},
        },
    ]
