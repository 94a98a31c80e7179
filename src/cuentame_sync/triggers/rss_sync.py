"""
Episode index operations invoked by the scheduler and the admin surface.

Every operation is a single synchronous pass: at most one feed fetch,
one index read and one index write. Operations never raise for expected
failures; they return an ``OperationResult`` whose ``success`` flag and
``error`` message carry the fatal channel, while ``warnings`` carries
per-item problems that did not stop the pass.

This module is designed to be used in three ways:

1. **Programmatic** -- call ``run_ingestion()`` and friends from Python.
2. **CLI** -- invoked via ``cuentame-sync ingest``, ``reprocess``, etc.
3. **Scheduled** -- ``cuentame-sync ingest`` called periodically by an
   external scheduler (cron, systemd timer, GitHub Actions, etc.).

Example:
    >>> from cuentame_sync.triggers.rss_sync import run_ingestion
    >>> result = run_ingestion()
    >>> if result.success:
    ...     print(f"Added {result.added_count} episodes")
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import ValidationError

from cuentame_sync.config import Config, get_config
from cuentame_sync.errors import CuentameError
from cuentame_sync.ingestion.numbering import get_numbering_policy, parse_episode_hint
from cuentame_sync.ingestion.rss_parser import load_feed_items
from cuentame_sync.models.database import KeyValueStore, SqliteKeyValueStore
from cuentame_sync.models.entities import (
    Episode,
    EpisodesIndex,
    EpisodeStatus,
    add_episode_to_index,
    create_empty_index,
    now_iso,
    parse_instant,
    validate_episode,
)
from cuentame_sync.reconcile.reconciler import (
    build_preservation_source,
    reconcile_additive,
    reconcile_rebuild,
)
from cuentame_sync.utils import create_slug, search_episodes, sort_episodes

logger = logging.getLogger(__name__)

ALLOWED_STATUSES = tuple(status.value for status in EpisodeStatus)


# ---------------------------------------------------------------------------
#  Data models
# ---------------------------------------------------------------------------

@dataclass
class OperationResult:
    """
    Result of an index operation.

    Attributes:
        operation: Operation name ("ingest", "reprocess", ...)
        success: False when the operation failed as a whole
        message: Human-readable summary
        error: Fatal error message, if any
        warnings: Non-fatal per-item problems
        added_count: Episodes new to the index
        processed_count: Episodes written by the pass
        written: True if the index document was written
        data: Operation-specific payload (inspection summaries)
        started_at: ISO-8601 timestamp of when the operation started
    """

    operation: str
    success: bool = True
    message: str = ""
    error: Optional[str] = None
    warnings: List[Dict[str, Any]] = field(default_factory=list)
    added_count: int = 0
    processed_count: int = 0
    written: bool = False
    data: Dict[str, Any] = field(default_factory=dict)
    started_at: str = field(default_factory=now_iso)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "operation": self.operation,
            "success": self.success,
            "message": self.message,
            "error": self.error,
            "warnings": self.warnings,
            "warning_count": len(self.warnings),
            "added_count": self.added_count,
            "processed_count": self.processed_count,
            "written": self.written,
            "data": self.data,
            "started_at": self.started_at,
        }

    def to_json(self, indent: int = 2) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False, default=str)


def _fail(result: OperationResult, exc: Exception) -> OperationResult:
    logger.error("%s failed: %s", result.operation, exc)
    result.success = False
    result.error = str(exc)
    result.message = f"{result.operation} failed: {exc}"
    return result


# ---------------------------------------------------------------------------
#  Index persistence
# ---------------------------------------------------------------------------

def open_store(config: Config) -> KeyValueStore:
    """Open the SQLite-backed store configured in ``config``."""
    store = SqliteKeyValueStore(config.store_path)
    store.initialize()
    return store


def _resolve(
    config: Optional[Config], store: Optional[KeyValueStore]
) -> Tuple[Config, KeyValueStore]:
    if config is None:
        config = get_config()
    if store is None:
        store = open_store(config)
    return config, store


def load_index(store: KeyValueStore, key: str) -> Optional[EpisodesIndex]:
    """
    Load the stored episodes index.

    A missing or blank document returns None. So does a document that is
    not valid JSON or has no ``episodes`` list: an unreadable index is
    treated as "no index yet". Individual records that fail validation
    are logged and left out; the remaining episodes are kept.

    Raises:
        StoreError: If the store itself cannot be read
    """
    text = store.get(key)
    if not text or not text.strip():
        logger.info("No episodes index stored under '%s'", key)
        return None

    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        logger.error("Failed to parse existing index, starting fresh: %s", exc)
        return None

    if not isinstance(document, dict) or not isinstance(document.get("episodes"), list):
        logger.error("Stored index has no episodes list, starting fresh")
        return None

    episodes = []
    for position, record in enumerate(document["episodes"]):
        try:
            episodes.append(Episode.model_validate(record))
        except ValidationError as exc:
            logger.warning(
                "Dropping invalid stored episode at position %d: %s",
                position,
                "; ".join(err["msg"] for err in exc.errors()),
            )

    last_updated = document.get("lastUpdated")
    if not isinstance(last_updated, str) or not last_updated:
        last_updated = now_iso()

    index = EpisodesIndex(episodes=tuple(episodes), last_updated=last_updated)
    logger.info("Loaded existing index with %d episodes", len(index.episodes))
    return index


def save_index(store: KeyValueStore, key: str, index: EpisodesIndex) -> EpisodesIndex:
    """
    Persist the index with a refreshed ``last_updated`` stamp.

    Returns:
        The index exactly as written

    Raises:
        IndexWriteError: If the store rejects the write
    """
    stamped = index.model_copy(update={"last_updated": now_iso()})
    store.put(key, stamped.to_json())
    logger.info("Saved episodes index with %d episodes", len(stamped.episodes))
    return stamped


# ---------------------------------------------------------------------------
#  Operations
# ---------------------------------------------------------------------------

def run_ingestion(
    config: Optional[Config] = None,
    store: Optional[KeyValueStore] = None,
) -> OperationResult:
    """
    Run one additive ingestion pass.

    New feed episodes are added to the stored index. When nothing new is
    found the index is not written at all.

    Returns:
        OperationResult with ``added_count`` and per-item warnings
    """
    result = OperationResult(operation="ingest")

    try:
        config, store = _resolve(config, store)
        policy = get_numbering_policy(config.numbering_policy, config.intro_title)

        items = load_feed_items(config.rss_url, timeout=config.request_timeout)
        index = load_index(store, config.index_key) or create_empty_index()

        outcome = reconcile_additive(items, index, policy)
        result.warnings = [warning.to_dict() for warning in outcome.warnings]
        result.added_count = outcome.added_count
        result.processed_count = outcome.processed_count

        if outcome.has_changes:
            save_index(store, config.index_key, outcome.index)
            result.written = True
            result.message = f"Updated episodes index with {outcome.added_count} new episodes"
        else:
            result.message = "No new episodes found"
    except (CuentameError, ValueError) as exc:
        return _fail(result, exc)

    logger.info(result.message)
    return result


def run_reprocess(
    config: Optional[Config] = None,
    store: Optional[KeyValueStore] = None,
) -> OperationResult:
    """
    Rebuild the index from the feed, preserving curated fields.

    The previous index is read once as the preservation source. The
    rebuilt index is always written, even when nothing changed.

    Returns:
        OperationResult with ``processed_count`` and per-item warnings
    """
    result = OperationResult(operation="reprocess")

    try:
        config, store = _resolve(config, store)
        policy = get_numbering_policy(config.numbering_policy, config.intro_title)

        preservation_source = build_preservation_source(load_index(store, config.index_key))
        logger.info(
            "Loaded %d existing episodes for preservation", len(preservation_source)
        )

        items = load_feed_items(config.rss_url, timeout=config.request_timeout)

        outcome = reconcile_rebuild(items, preservation_source, policy)
        result.warnings = [warning.to_dict() for warning in outcome.warnings]
        result.added_count = outcome.added_count
        result.processed_count = outcome.processed_count

        save_index(store, config.index_key, outcome.index)
        result.written = True
        result.message = (
            f"Reprocessing completed: {outcome.processed_count} episodes processed "
            f"({outcome.preserved_count} with preserved manual data)"
        )
    except (CuentameError, ValueError) as exc:
        return _fail(result, exc)

    logger.info(result.message)
    return result


def reset_index(
    config: Optional[Config] = None,
    store: Optional[KeyValueStore] = None,
) -> OperationResult:
    """Replace the stored index with an empty one."""
    result = OperationResult(operation="reset")

    try:
        config, store = _resolve(config, store)
        save_index(store, config.index_key, create_empty_index())
    except CuentameError as exc:
        return _fail(result, exc)

    result.written = True
    result.message = "Episodes index cleared successfully"
    logger.info(result.message)
    return result


def summarize_episode(episode: Episode) -> Dict[str, Any]:
    """Short read-only view of one episode."""
    return {
        "episodeNumber": episode.episode_number,
        "title": episode.title,
        "publishDate": episode.publish_date,
        "status": episode.status.value,
        "hasShownotes": bool(episode.shownotes),
        "slug": create_slug(episode.title, episode.episode_number),
    }


def inspect_index(
    config: Optional[Config] = None,
    store: Optional[KeyValueStore] = None,
    sort_by: Optional[str] = None,
    order: str = "desc",
    query: str = "",
) -> OperationResult:
    """
    Summarize the stored index without modifying it.

    Args:
        config: Application config (optional, uses default if None)
        store: Key-value store (optional, opened from config if None)
        sort_by: "date" or "episode" to sort the listing; stored order if None
        order: "asc" or "desc"
        query: Optional free-text filter over title, number and description

    Returns:
        OperationResult whose ``data`` holds ``totalEpisodes``,
        ``lastUpdated`` and per-episode summaries
    """
    result = OperationResult(operation="inspect")

    try:
        config, store = _resolve(config, store)
        index = load_index(store, config.index_key)
    except CuentameError as exc:
        return _fail(result, exc)

    if index is None:
        result.message = "No episodes index found"
        result.data = {"totalEpisodes": 0, "lastUpdated": None, "episodes": []}
        return result

    episodes = list(index.episodes)
    if query:
        episodes = search_episodes(episodes, query)
    if sort_by:
        episodes = sort_episodes(episodes, sort_by=sort_by, order=order)

    result.data = {
        "totalEpisodes": len(index.episodes),
        "lastUpdated": index.last_updated,
        "episodes": [summarize_episode(episode) for episode in episodes],
    }
    result.message = f"{len(index.episodes)} episodes in index"
    return result


def _episode_from_payload(payload: Mapping[str, Any]) -> Tuple[Optional[Episode], List[str]]:
    """Convert an admin form payload into an Episode, collecting errors."""
    errors: List[str] = []

    if not payload.get("episodeId"):
        return None, ["Episode ID is required"]

    status = payload.get("status") or EpisodeStatus.DRAFT.value
    if status not in ALLOWED_STATUSES:
        errors.append("Invalid status")
        status = EpisodeStatus.DRAFT.value

    raw_date = payload.get("publishDate") or ""
    publish_date = parse_instant(str(raw_date)) or str(raw_date)

    try:
        episode = Episode(
            episode_id=str(payload["episodeId"]),
            episode_number=parse_episode_hint(payload.get("episodeNumber")),
            title=str(payload.get("title") or "").strip(),
            publish_date=publish_date,
            duration=payload.get("duration") or "00:00:00",
            description=payload.get("description") or "",
            audio_url=str(payload.get("audioUrl") or "").strip(),
            shownotes=payload.get("shownotes") or "",
            translations=payload.get("translations") or [],
            google_docs_urls=payload.get("googleDocsUrls") or [],
            status=status,
        )
    except ValidationError as exc:
        errors.extend(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in exc.errors()
        )
        return None, errors

    return episode, errors


def update_episode(
    payload: Mapping[str, Any],
    config: Optional[Config] = None,
    store: Optional[KeyValueStore] = None,
) -> OperationResult:
    """
    Validate a single episode record and upsert it into the index.

    The record replaces the stored episode with the same identifier or the
    same episode number, or is appended. The feed is not consulted.
    Episode numbers must be positive, whatever the numbering policy.

    Args:
        payload: camelCase episode record from the admin surface

    Returns:
        OperationResult; ``error`` lists validation failures
    """
    result = OperationResult(operation="update")

    try:
        config, store = _resolve(config, store)

        episode, errors = _episode_from_payload(payload)
        if episode is not None:
            errors = validate_episode(episode, min_episode_number=1) + errors

        if errors:
            result.success = False
            result.error = f"Validation failed: {', '.join(errors)}"
            result.message = result.error
            logger.warning("Episode update rejected: %s", result.error)
            return result

        index = load_index(store, config.index_key) or create_empty_index()
        save_index(store, config.index_key, add_episode_to_index(index, episode))
    except (CuentameError, ValueError) as exc:
        return _fail(result, exc)

    result.written = True
    result.processed_count = 1
    result.data = summarize_episode(episode)
    result.message = f"Updated episode {episode.episode_number} - {episode.title}"
    logger.info(result.message)
    return result


def inspect_feed(
    config: Optional[Config] = None,
    limit: int = 3,
) -> OperationResult:
    """
    Fetch and parse the feed and return a sample of raw items.

    Debug aid for checking how the feed's fields are shaped. The index is
    not read or written.
    """
    result = OperationResult(operation="debug-feed")

    try:
        if config is None:
            config = get_config()
        items = load_feed_items(config.rss_url, timeout=config.request_timeout)
    except CuentameError as exc:
        return _fail(result, exc)

    result.data = {
        "totalItems": len(items),
        "sampleItems": [dict(item) for item in items[:max(limit, 0)]],
    }
    result.message = f"Feed has {len(items)} items"
    return result
