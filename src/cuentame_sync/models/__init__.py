"""
Data models and document storage.

Provides Pydantic models for episodes and the episodes index, plus the
key-value store the index is persisted in.
"""

from cuentame_sync.models.database import (
    KeyValueStore,
    MemoryKeyValueStore,
    SqliteKeyValueStore,
)
from cuentame_sync.models.entities import (
    Episode,
    EpisodesIndex,
    EpisodeStatus,
    Translation,
    add_episode_to_index,
    create_empty_index,
    validate_episode,
)
from cuentame_sync.models.schema import SCHEMA_SQL, create_all_tables, get_table_names

__all__ = [
    "KeyValueStore",
    "MemoryKeyValueStore",
    "SqliteKeyValueStore",
    "Episode",
    "EpisodesIndex",
    "EpisodeStatus",
    "Translation",
    "add_episode_to_index",
    "create_empty_index",
    "validate_episode",
    "SCHEMA_SQL",
    "create_all_tables",
    "get_table_names",
]
