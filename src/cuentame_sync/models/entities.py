"""
Pydantic data models for episodes and the episodes index.

Defines the canonical Episode record and the EpisodesIndex document that
is persisted as a single JSON value in the key-value store. Models use
snake_case attributes in Python and camelCase keys on the wire, so
documents written by earlier deployments load unchanged.

Models are frozen: every change produces a new object, which keeps the
reconciliation passes free of shared mutable state.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from dateutil import parser as date_parser
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def to_iso(value: datetime) -> str:
    """
    Format a datetime as a UTC instant with millisecond precision.

    Naive datetimes are taken to be UTC.

    Example:
        >>> to_iso(datetime(2024, 1, 1))
        '2024-01-01T00:00:00.000Z'
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def now_iso() -> str:
    """Current instant as an ISO-8601 UTC string."""
    return to_iso(datetime.now(timezone.utc))


def parse_instant(value: Optional[str]) -> Optional[str]:
    """
    Normalize a date string to an ISO-8601 UTC instant.

    Accepts RFC 822 feed dates ("Mon, 01 Jan 2024 12:00:00 GMT") as well as
    ISO-8601 strings.

    Returns:
        The normalized instant, or None if the value does not parse
    """
    if not value or not value.strip():
        return None
    try:
        return to_iso(date_parser.parse(value.strip()))
    except (ValueError, OverflowError):
        return None


class EpisodeStatus(str, Enum):
    """Editorial status of an episode."""
    DRAFT = "draft"
    PENDING_PUBLISH = "pending_publish"
    PUBLISHED = "published"


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_document(self) -> Dict[str, Any]:
        """Convert to a camelCase dictionary for JSON serialization."""
        return self.model_dump(mode="json", by_alias=True)


class Translation(_CamelModel):
    """
    An aligned Spanish/English text span inside the show notes.
    """
    spanish: str
    english: str
    start_index: int = Field(ge=0)
    end_index: int = Field(ge=0)


class Episode(_CamelModel):
    """
    Episode data model.

    Feed-derived fields (title, description, audio URL, dates, links) are
    rebuilt from the RSS feed. ``shownotes``, ``translations`` and a
    non-draft ``status`` are curated by hand and survive reprocessing.
    """
    episode_id: str
    episode_number: int
    title: str
    publish_date: str
    duration: str = "00:00:00"
    description: str = ""
    audio_url: str
    shownotes: str = ""
    translations: List[Translation] = Field(default_factory=list)
    google_docs_urls: List[str] = Field(default_factory=list)
    status: EpisodeStatus = EpisodeStatus.DRAFT


class EpisodesIndex(_CamelModel):
    """
    The persisted collection of episodes.

    Insertion order carries no meaning; ``last_updated`` is refreshed on
    every write.
    """
    episodes: Tuple[Episode, ...] = ()
    last_updated: str = Field(default_factory=now_iso)

    def to_json(self) -> str:
        """Serialize to the stored JSON document."""
        return self.model_dump_json(by_alias=True)

    @property
    def episode_numbers(self) -> List[int]:
        return [episode.episode_number for episode in self.episodes]


def new_episode_id() -> str:
    """Generate a fresh opaque episode identifier."""
    return str(uuid.uuid4())


def create_empty_index() -> EpisodesIndex:
    """Create an empty episodes index stamped with the current instant."""
    return EpisodesIndex(episodes=(), last_updated=now_iso())


def add_episode_to_index(index: EpisodesIndex, episode: Episode) -> EpisodesIndex:
    """
    Return a new index with ``episode`` inserted.

    An existing episode with the same identifier or the same episode number
    is replaced in place; otherwise the episode is appended. The input
    index is left untouched.
    """
    episodes = list(index.episodes)

    for position, existing in enumerate(episodes):
        if (existing.episode_id == episode.episode_id
                or existing.episode_number == episode.episode_number):
            episodes[position] = episode
            break
    else:
        episodes.append(episode)

    return EpisodesIndex(episodes=tuple(episodes), last_updated=now_iso())


def validate_episode(episode: Episode, min_episode_number: int = 1) -> List[str]:
    """
    Validate business rules on an episode.

    Args:
        episode: Episode to check
        min_episode_number: Lowest acceptable episode number (0 or 1,
            depending on the numbering policy)

    Returns:
        List of human-readable error messages (empty when valid)
    """
    errors: List[str] = []

    if not episode.title.strip():
        errors.append("Title is required")

    if episode.episode_number < min_episode_number:
        errors.append("Valid episode number is required")

    if not episode.publish_date:
        errors.append("Publish date is required")
    elif parse_instant(episode.publish_date) is None:
        errors.append("Valid publish date is required")

    if not episode.audio_url.strip():
        errors.append("Audio URL is required")

    return errors
