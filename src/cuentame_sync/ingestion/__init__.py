"""
Ingestion of RSS feed items into canonical episodes.

Provides feed download/parsing, field extraction, episode numbering,
Google Docs link extraction and the episode builder.
"""

from cuentame_sync.ingestion.builder import BuildOutcome, build_episode
from cuentame_sync.ingestion.fields import FeedFields, extract_fields
from cuentame_sync.ingestion.links import extract_google_docs_urls
from cuentame_sync.ingestion.numbering import (
    NumberingPolicy,
    get_numbering_policy,
    parse_episode_hint,
)
from cuentame_sync.ingestion.rss_parser import load_feed_items, parse_feed_items

__all__ = [
    "BuildOutcome",
    "build_episode",
    "FeedFields",
    "extract_fields",
    "extract_google_docs_urls",
    "NumberingPolicy",
    "get_numbering_policy",
    "parse_episode_hint",
    "load_feed_items",
    "parse_feed_items",
]
