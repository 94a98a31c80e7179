"""
Conversion of raw feed items into canonical episodes.

Combines field extraction, episode number resolution and link
extraction, assigns a fresh identifier and validates the result. A bad
item yields a ``BuildOutcome`` without an episode and a reason; it never
raises, so the caller can skip it and continue with the batch.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from cuentame_sync.ingestion.fields import extract_fields
from cuentame_sync.ingestion.links import extract_google_docs_urls
from cuentame_sync.ingestion.numbering import NumberingPolicy, NumberResolution
from cuentame_sync.models.entities import (
    Episode,
    EpisodesIndex,
    EpisodeStatus,
    new_episode_id,
    validate_episode,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuildOutcome:
    """
    Result of building one feed item.

    Attributes:
        episode: The built episode, or None when the item is unusable
        reason: Why no episode was built ("" on success)
        needs_review: True when the episode number came from a fallback
            that should be checked by hand
    """

    episode: Optional[Episode] = None
    reason: str = ""
    needs_review: bool = False

    @property
    def built(self) -> bool:
        return self.episode is not None


def build_episode(
    item: Mapping[str, Any],
    index: EpisodesIndex,
    policy: NumberingPolicy,
    id_factory: Callable[[], str] = new_episode_id,
    now: Optional[str] = None,
) -> BuildOutcome:
    """
    Build a draft episode from a raw feed item.

    Args:
        item: Raw feed item
        index: Working index, used for sequence numbering under the
            hint_first policy
        policy: Active numbering policy
        id_factory: Callable producing a fresh episode identifier
        now: Instant used when the item has no publish date

    Returns:
        BuildOutcome with either an episode or a skip reason
    """
    fields = extract_fields(item, now=now)
    if not fields.is_usable:
        return BuildOutcome(reason="missing title or audio URL")

    resolution: NumberResolution = policy.resolve(
        fields.title, fields.episode_hint, index.episode_numbers
    )
    if not resolution.resolved:
        return BuildOutcome(
            reason=f"no episode number in title {fields.title!r}",
            needs_review=True,
        )

    google_docs_urls = extract_google_docs_urls(fields.description)
    if google_docs_urls:
        logger.debug(
            "Found %d Google Docs URL(s) for %r", len(google_docs_urls), fields.title
        )

    episode = Episode(
        episode_id=id_factory(),
        episode_number=resolution.number,
        title=fields.title,
        publish_date=fields.publish_date,
        duration=fields.duration,
        description=fields.description,
        audio_url=fields.audio_url,
        shownotes="",
        translations=[],
        google_docs_urls=google_docs_urls,
        status=EpisodeStatus.DRAFT,
    )

    errors = validate_episode(episode, min_episode_number=policy.min_episode_number)
    if errors:
        logger.warning("Episode validation failed for %r: %s", fields.title, errors)
        return BuildOutcome(reason="; ".join(errors))

    return BuildOutcome(episode=episode, needs_review=resolution.needs_review)
