"""
Identity matching between a candidate episode and an index.

Two episodes are considered the same when ANY of these hold:

- their episode numbers are equal
- their audio URLs are equal
- both their titles and their publish dates are equal

Matching is a pure function of its inputs.
"""

from typing import Optional

from cuentame_sync.models.entities import Episode, EpisodesIndex


def is_same_episode(candidate: Episode, existing: Episode) -> bool:
    """Return True if the two episodes denote the same podcast episode."""
    return (
        candidate.episode_number == existing.episode_number
        or candidate.audio_url == existing.audio_url
        or (
            candidate.title == existing.title
            and candidate.publish_date == existing.publish_date
        )
    )


def find_matching_episode(
    candidate: Episode, index: EpisodesIndex
) -> Optional[Episode]:
    """
    Find the first episode in ``index`` matching ``candidate``.

    Returns:
        The matching episode, or None if the candidate is new
    """
    for existing in index.episodes:
        if is_same_episode(candidate, existing):
            return existing
    return None
