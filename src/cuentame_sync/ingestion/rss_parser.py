"""
RSS feed download and parsing.

Fetches the podcast feed with requests and parses it with feedparser
into a list of raw feed items. Both steps are fail-fast: a network
error, a non-success HTTP status or a document without a channel
aborts the whole pass with ``FeedFetchError``/``FeedParseError``.

The returned items are feedparser entries (dict subclasses); field
normalization happens later in ``cuentame_sync.ingestion.fields``.
"""

import logging
from typing import Any, Dict, List, Union

import feedparser
import requests

from cuentame_sync.errors import FeedFetchError, FeedParseError

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30
USER_AGENT = "cuentame-sync/0.1 (+https://anchor.fm/s/4baec630/podcast/rss)"


def fetch_feed(url: str, timeout: float = REQUEST_TIMEOUT) -> bytes:
    """
    Download the raw feed document.

    Args:
        url: URL of the RSS feed
        timeout: Request timeout in seconds

    Returns:
        Raw response body

    Raises:
        FeedFetchError: On network errors or a non-success status
    """
    logger.info("Fetching RSS from: %s", url)

    try:
        response = requests.get(
            url,
            headers={"User-Agent": USER_AGENT},
            timeout=timeout,
        )
        response.raise_for_status()
    except requests.exceptions.Timeout as exc:
        raise FeedFetchError(f"Timed out fetching RSS feed after {timeout}s") from exc
    except requests.exceptions.HTTPError as exc:
        raise FeedFetchError(
            f"Failed to fetch RSS feed: {response.status_code} {response.reason}"
        ) from exc
    except requests.exceptions.RequestException as exc:
        raise FeedFetchError(f"Failed to fetch RSS feed: {exc}") from exc

    logger.info("RSS feed fetched, size: %d bytes", len(response.content))
    return response.content


def parse_feed_items(document: Union[str, bytes]) -> List[Dict[str, Any]]:
    """
    Parse a feed document into raw items, in feed order.

    A feed that parses with warnings (feedparser "bozo") but still yields
    entries is accepted.

    Args:
        document: Feed XML

    Returns:
        List of raw feed items (possibly empty for an empty channel)

    Raises:
        FeedParseError: If the document has no recognizable feed structure
    """
    feed = feedparser.parse(document)

    if not feed.entries and (feed.bozo or not feed.get("version")):
        reason = feed.get("bozo_exception") or "missing channel"
        raise FeedParseError(f"Invalid RSS feed structure: {reason}")

    if feed.bozo:
        logger.warning("Feed parsing encountered errors: %s", feed.get("bozo_exception"))

    items = list(feed.entries)
    logger.info("Found %d episodes in RSS feed", len(items))
    return items


def load_feed_items(url: str, timeout: float = REQUEST_TIMEOUT) -> List[Dict[str, Any]]:
    """
    Fetch and parse a feed in one step.

    Example:
        >>> items = load_feed_items("https://anchor.fm/s/4baec630/podcast/rss")
        >>> print(items[0]["title"])
    """
    return parse_feed_items(fetch_feed(url, timeout=timeout))
