"""
Reconciliation of feed items against the persisted episodes index.

Two passes are provided:

**Additive** (``reconcile_additive``)
    Starts from the current index and adds episodes that the identity
    matcher does not recognise. Existing records, including their curated
    fields, are left alone.

**Preservation rebuild** (``reconcile_rebuild``)
    Starts from an empty index and rebuilds every episode from the feed.
    When the previous index had the same episode number, the curated
    fields (show notes, translations, a non-draft status) and the episode
    identifier are carried over.

Both passes are pure: they take the feed items and the prior state and
return a ``ReconcileResult`` holding the new index plus per-item
warnings. Persisting the index is left to the caller. A failure on one
item is recorded as a warning and never aborts the batch.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from cuentame_sync.ingestion.builder import BuildOutcome, build_episode
from cuentame_sync.ingestion.numbering import NumberingPolicy
from cuentame_sync.models.entities import (
    Episode,
    EpisodesIndex,
    EpisodeStatus,
    add_episode_to_index,
    create_empty_index,
    new_episode_id,
)
from cuentame_sync.reconcile.matcher import find_matching_episode

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
#  Result models
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ItemWarning:
    """
    A non-fatal problem with a single feed item.

    Attributes:
        position: Zero-based position of the item in the feed
        title: Item title, if one could be read
        reason: Human-readable description of the problem
    """

    position: int
    title: str
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)


@dataclass
class ReconcileResult:
    """
    Outcome of a reconciliation pass.

    Attributes:
        index: The reconciled index
        added_count: Episodes not present in the prior state
        processed_count: Episodes written into the new index
        preserved_count: Episodes merged with a prior record (rebuild only)
        skipped_count: Items that produced no episode or were already known
        warnings: Per-item problems (unusable items, errors, manual review)
    """

    index: EpisodesIndex
    added_count: int = 0
    processed_count: int = 0
    preserved_count: int = 0
    skipped_count: int = 0
    warnings: List[ItemWarning] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return self.added_count > 0


def _item_title(item: Any) -> str:
    if isinstance(item, Mapping):
        title = item.get("title")
        if isinstance(title, str):
            return title.strip()
    return ""


# ---------------------------------------------------------------------------
#  Preservation merge
# ---------------------------------------------------------------------------

def merge_preserved(candidate: Episode, previous: Episode) -> Episode:
    """
    Merge a freshly built episode with its previous record.

    Feed-derived fields come from ``candidate``. From ``previous``:

    - ``episode_id`` is always kept
    - ``shownotes`` is kept unless it was empty
    - ``translations`` are kept unless the list was empty
    - ``status`` is kept when the candidate would revert it to draft

    Example:
        >>> merged = merge_preserved(new_draft_194, published_194_with_notes)
        >>> merged.status, merged.shownotes
        (<EpisodeStatus.PUBLISHED: 'published'>, 'Notes')
    """
    if previous.status != EpisodeStatus.DRAFT and candidate.status == EpisodeStatus.DRAFT:
        status = previous.status
    else:
        status = candidate.status

    return candidate.model_copy(
        update={
            "episode_id": previous.episode_id,
            "shownotes": previous.shownotes or candidate.shownotes,
            "translations": previous.translations or candidate.translations,
            "status": status,
        }
    )


def build_preservation_source(index: Optional[EpisodesIndex]) -> Dict[int, Episode]:
    """
    Key the episodes of a prior index by episode number.

    Later entries win when numbers repeat.
    """
    if index is None:
        return {}
    return {episode.episode_number: episode for episode in index.episodes}


# ---------------------------------------------------------------------------
#  Passes
# ---------------------------------------------------------------------------

def _build(
    position: int,
    item: Any,
    index: EpisodesIndex,
    policy: NumberingPolicy,
    id_factory: Callable[[], str],
    now: Optional[str],
    warnings: List[ItemWarning],
) -> Optional[Episode]:
    """Build one item, recording problems as warnings instead of raising."""
    try:
        outcome: BuildOutcome = build_episode(
            item, index, policy, id_factory=id_factory, now=now
        )
    except Exception as exc:
        logger.error("Error processing feed item %d: %s", position, exc)
        warnings.append(ItemWarning(position, _item_title(item), f"error: {exc}"))
        return None

    if not outcome.built:
        logger.warning("Skipping feed item %d: %s", position, outcome.reason)
        warnings.append(ItemWarning(position, _item_title(item), outcome.reason))
        return None

    if outcome.needs_review:
        warnings.append(
            ItemWarning(
                position,
                outcome.episode.title,
                f"episode number {outcome.episode.episode_number} taken from "
                "iTunes metadata, needs manual review",
            )
        )

    return outcome.episode


def reconcile_additive(
    items: Iterable[Any],
    index: EpisodesIndex,
    policy: NumberingPolicy,
    id_factory: Callable[[], str] = new_episode_id,
    now: Optional[str] = None,
) -> ReconcileResult:
    """
    Add unseen feed items to an existing index.

    Args:
        items: Raw feed items in feed order
        index: Current persisted index (or an empty one)
        policy: Active numbering policy
        id_factory: Callable producing fresh episode identifiers
        now: Instant used for items without a publish date

    Returns:
        ReconcileResult; ``has_changes`` is False when nothing was added

    Example:
        >>> result = reconcile_additive(items, create_empty_index(), policy)
        >>> print(f"Added {result.added_count} episodes")
    """
    result = ReconcileResult(index=index)

    for position, item in enumerate(items):
        if not item:
            continue

        episode = _build(position, item, result.index, policy, id_factory, now, result.warnings)
        if episode is None:
            result.skipped_count += 1
            continue

        existing = find_matching_episode(episode, result.index)
        if existing is not None:
            logger.debug(
                "Episode %d already exists (as %d - %s), skipping",
                episode.episode_number,
                existing.episode_number,
                existing.title,
            )
            result.skipped_count += 1
            continue

        result.index = add_episode_to_index(result.index, episode)
        result.added_count += 1
        result.processed_count += 1
        logger.info("Added new episode: %d - %s", episode.episode_number, episode.title)

    return result


def reconcile_rebuild(
    items: Iterable[Any],
    preservation_source: Mapping[int, Episode],
    policy: NumberingPolicy,
    id_factory: Callable[[], str] = new_episode_id,
    now: Optional[str] = None,
) -> ReconcileResult:
    """
    Rebuild the whole index from the feed, preserving curated fields.

    Episodes that no longer appear in the feed are not carried over.

    Args:
        items: Raw feed items in feed order
        preservation_source: Previous episodes keyed by episode number
            (read-only)
        policy: Active numbering policy
        id_factory: Callable producing fresh episode identifiers
        now: Instant used for items without a publish date

    Returns:
        ReconcileResult holding the rebuilt index
    """
    result = ReconcileResult(index=create_empty_index())

    for position, item in enumerate(items):
        if not item:
            continue

        episode = _build(position, item, result.index, policy, id_factory, now, result.warnings)
        if episode is None:
            result.skipped_count += 1
            continue

        if find_matching_episode(episode, result.index) is not None:
            logger.debug("Duplicate feed item for episode %d, skipping", episode.episode_number)
            result.skipped_count += 1
            continue

        previous = preservation_source.get(episode.episode_number)
        if previous is not None:
            episode = merge_preserved(episode, previous)
            result.preserved_count += 1
            logger.info(
                "Reprocessed episode %d (preserved shownotes: %s)",
                episode.episode_number,
                bool(previous.shownotes),
            )
        else:
            result.added_count += 1
            logger.info("Added new episode: %d - %s", episode.episode_number, episode.title)

        result.index = add_episode_to_index(result.index, episode)
        result.processed_count += 1

    return result
