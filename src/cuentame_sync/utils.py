"""
Helpers for presenting episode listings.

Duration conversion, slugs, sorting and free-text search over episodes, used by
the index inspection commands.
"""

import logging
import re
from typing import List, Literal, Sequence

from cuentame_sync.models.entities import Episode, parse_instant

logger = logging.getLogger(__name__)


def parse_duration(duration_str: str) -> int:
    """
    Parse iTunes duration string to total seconds.

    Supports multiple duration formats:
    - HH:MM:SS (e.g., "01:23:45" = 5025 seconds)
    - MM:SS (e.g., "45:30" = 2730 seconds)
    - SS (e.g., "90" = 90 seconds)

    Args:
        duration_str: Duration string from RSS feed

    Returns:
        Total duration in seconds (0 when the string does not parse)

    Example:
        >>> parse_duration("01:23:45")
        5025
    """
    if not duration_str:
        return 0

    parts = duration_str.strip().split(":")

    try:
        if len(parts) == 3:
            hours, minutes, seconds = (int(p) for p in parts)
            return hours * 3600 + minutes * 60 + seconds
        elif len(parts) == 2:
            minutes, seconds = (int(p) for p in parts)
            return minutes * 60 + seconds
        elif len(parts) == 1:
            return int(parts[0])
    except ValueError as e:
        logger.warning("Failed to parse duration '%s': %s", duration_str, e)

    return 0


def format_duration(seconds: int) -> str:
    """
    Format seconds as HH:MM:SS, or MM:SS when under an hour.

    Example:
        >>> format_duration(5025)
        '01:23:45'
        >>> format_duration(2730)
        '45:30'
    """
    hours, remainder = divmod(max(seconds, 0), 3600)
    minutes, secs = divmod(remainder, 60)

    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def sort_episodes(
    episodes: Sequence[Episode],
    sort_by: Literal["date", "episode"] = "episode",
    order: Literal["asc", "desc"] = "desc",
) -> List[Episode]:
    """
    Return episodes sorted by publish date or episode number.

    Episodes with an unparseable publish date sort first in ascending order.
    """
    if sort_by == "date":
        key = lambda ep: parse_instant(ep.publish_date) or ""  # noqa: E731
    else:
        key = lambda ep: ep.episode_number  # noqa: E731

    return sorted(episodes, key=key, reverse=(order == "desc"))


def search_episodes(episodes: Sequence[Episode], query: str) -> List[Episode]:
    """
    Filter episodes whose title, number or description contain ``query``.

    Matching is case-insensitive; a blank query returns every episode.
    """
    if not query.strip():
        return list(episodes)

    term = query.strip().lower()
    return [
        ep for ep in episodes
        if term in ep.title.lower()
        or term in str(ep.episode_number)
        or term in ep.description.lower()
    ]


def create_slug(title: str, episode_number: int) -> str:
    """
    Build a URL slug of the form ``<number>-<title-words>``.

    Characters outside ``a-z``, digits, whitespace and hyphens are dropped
    (accented letters included), whitespace runs become single hyphens and
    leading or trailing hyphens are removed.

    Example:
        >>> create_slug("La Inteligencia Artificial", 194)
        '194-la-inteligencia-artificial'
    """
    slug = re.sub(r"[^a-z0-9\s-]", "", title.lower())
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug).strip("-")
    return f"{episode_number}-{slug}"
