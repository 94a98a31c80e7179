"""
Reconciliation of feed-built episodes against the persisted index.
"""

from cuentame_sync.reconcile.matcher import find_matching_episode, is_same_episode
from cuentame_sync.reconcile.reconciler import (
    ItemWarning,
    ReconcileResult,
    build_preservation_source,
    merge_preserved,
    reconcile_additive,
    reconcile_rebuild,
)

__all__ = [
    "find_matching_episode",
    "is_same_episode",
    "ItemWarning",
    "ReconcileResult",
    "build_preservation_source",
    "merge_preserved",
    "reconcile_additive",
    "reconcile_rebuild",
]
