"""
Trigger entry points for the episode index.

The scheduler and the admin surface call these operations; each one
performs a single pass and reports through an ``OperationResult``.
"""

from cuentame_sync.triggers.rss_sync import (
    OperationResult,
    inspect_feed,
    inspect_index,
    reset_index,
    run_ingestion,
    run_reprocess,
    update_episode,
)

__all__ = [
    "OperationResult",
    "inspect_feed",
    "inspect_index",
    "reset_index",
    "run_ingestion",
    "run_reprocess",
    "update_episode",
]
