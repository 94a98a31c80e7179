"""
Field extraction from raw feed items.

A raw feed item is a loosely-typed mapping. Depending on the XML parser
that produced it, the same datum can live under different keys:

- ``enclosure.url`` vs ``enclosure["@_url"]`` (attribute-prefixed XML)
- ``enclosures[0].href`` (feedparser)
- ``itunes:episode`` vs ``itunes_episode``
- text nodes wrapped as ``{"#text": "..."}``

``extract_fields`` tries each spelling in turn and returns trimmed
strings. It never raises: an item without a title or an audio URL is
reported as unusable instead.
"""

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from cuentame_sync.models.entities import now_iso, parse_instant
from cuentame_sync.utils import format_duration

logger = logging.getLogger(__name__)

DEFAULT_DURATION = "00:00:00"

TITLE_KEYS = ("title", "itunes:title", "itunes_title")
DESCRIPTION_KEYS = (
    "description",
    "summary",
    "content:encoded",
    "content_encoded",
    "itunes:summary",
    "itunes_summary",
)
DATE_KEYS = ("pubDate", "published", "dc:date", "updated")
DURATION_KEYS = ("itunes:duration", "itunes_duration", "duration")
EPISODE_HINT_KEYS = ("itunes:episode", "itunes_episode")
URL_ATTRIBUTE_KEYS = ("url", "@_url", "@url", "href", "@_href")


@dataclass(frozen=True)
class FeedFields:
    """
    Normalized scalar fields of one feed item.

    Attributes:
        title: Episode title ("" when missing)
        description: Description text, possibly HTML
        audio_url: Enclosure URL ("" when missing)
        publish_date: ISO-8601 instant; the raw string when it does not parse
        duration: Duration text (HH:MM:SS or MM:SS)
        episode_hint: Raw iTunes episode number text ("" when missing)
    """

    title: str
    description: str
    audio_url: str
    publish_date: str
    duration: str
    episode_hint: str = ""

    @property
    def is_usable(self) -> bool:
        """An item needs both a title and an audio URL to become an episode."""
        return bool(self.title) and bool(self.audio_url)


def _text(value: Any) -> str:
    """Coerce a feed value (string, number or text node) to trimmed text."""
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, Mapping):
        return _text(value.get("#text", value.get("value")))
    if isinstance(value, (list, tuple)) and value:
        return _text(value[0])
    return ""


def _lookup(item: Mapping[str, Any], *keys: str) -> Any:
    """
    Return the first non-empty value stored under any of ``keys``.

    Exact keys are tried first, then a case-insensitive match.
    """
    for key in keys:
        value = item.get(key)
        if value not in (None, "", [], {}):
            return value

    folded = {str(k).lower(): v for k, v in item.items()}
    for key in keys:
        value = folded.get(key.lower())
        if value not in (None, "", [], {}):
            return value

    return None


def _url_from(candidate: Any) -> str:
    if isinstance(candidate, str):
        return candidate.strip()
    if isinstance(candidate, Mapping):
        return _text(_lookup(candidate, *URL_ATTRIBUTE_KEYS))
    return ""


def _is_audio(candidate: Any) -> bool:
    if not isinstance(candidate, Mapping):
        return False
    media_type = _text(_lookup(candidate, "type", "@_type", "@type"))
    return media_type.lower().startswith("audio/")


def extract_audio_url(item: Mapping[str, Any]) -> str:
    """
    Extract the audio URL from an item's enclosure.

    Looks at a single ``enclosure`` mapping (plain or attribute-prefixed
    keys), then at feedparser ``enclosures``, then at audio-typed ``links``.

    Returns:
        Audio URL, or "" when none is found
    """
    enclosure = _lookup(item, "enclosure")
    if isinstance(enclosure, (list, tuple)):
        enclosure = enclosure[0] if enclosure else None
    url = _url_from(enclosure)
    if url:
        return url

    enclosures = _lookup(item, "enclosures") or []
    for candidate in enclosures:
        url = _url_from(candidate)
        if url:
            return url

    for link in _lookup(item, "links") or []:
        if _is_audio(link):
            url = _url_from(link)
            if url:
                return url

    return ""


def _normalize_duration(raw: str) -> str:
    if not raw:
        return DEFAULT_DURATION
    if raw.isdigit():
        return format_duration(int(raw))
    return raw


def extract_fields(item: Mapping[str, Any], now: Optional[str] = None) -> FeedFields:
    """
    Extract normalized fields from one raw feed item.

    Args:
        item: Raw feed item mapping
        now: Instant used when the item has no publish date (defaults to
            the current time)

    Returns:
        FeedFields; check ``is_usable`` before building an episode

    Example:
        >>> fields = extract_fields({
        ...     "title": "194. La inteligencia artificial",
        ...     "enclosure": {"@_url": "https://x/ep194.mp3"},
        ...     "pubDate": "2024-01-01",
        ... })
        >>> fields.publish_date
        '2024-01-01T00:00:00.000Z'
    """
    if not isinstance(item, Mapping):
        logger.warning("Ignoring feed item of type %s", type(item).__name__)
        return FeedFields("", "", "", now or now_iso(), DEFAULT_DURATION)

    title = _text(_lookup(item, *TITLE_KEYS))
    description = _text(_lookup(item, *DESCRIPTION_KEYS))
    audio_url = extract_audio_url(item)

    raw_date = _text(_lookup(item, *DATE_KEYS))
    if raw_date:
        publish_date = parse_instant(raw_date) or raw_date
    else:
        publish_date = now or now_iso()

    duration = _normalize_duration(_text(_lookup(item, *DURATION_KEYS)))
    episode_hint = _text(_lookup(item, *EPISODE_HINT_KEYS))

    fields = FeedFields(
        title=title,
        description=description,
        audio_url=audio_url,
        publish_date=publish_date,
        duration=duration,
        episode_hint=episode_hint,
    )

    if not fields.is_usable:
        logger.warning(
            "Feed item missing title or audio URL (title=%s, audio_url=%s)",
            bool(title),
            bool(audio_url),
        )

    return fields
