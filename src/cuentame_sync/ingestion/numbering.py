"""
Episode number resolution.

Two numbering policies exist and exactly one is active per deployment,
selected by name from configuration (``numbering_policy``):

``title_first``
    The title is the source of truth. The introductory episode (exact
    title match) is number 0; otherwise the title must start with
    ``"<n>. "``. A non-zero iTunes episode number is accepted as a
    fallback but flagged for manual review. Anything else is rejected.
    Valid numbers start at 0.

``hint_first``
    A non-zero iTunes episode number wins. Otherwise the first
    ``episode``/``ep``/``#`` prefixed number in the title is used, and
    failing that the episode is appended after the highest number in the
    index (1 for an empty index). Never rejects. Valid numbers start at 1.

Example:
    >>> policy = get_numbering_policy("title_first")
    >>> policy.resolve("194. La inteligencia artificial", "").number
    194
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Type

from cuentame_sync.config import DEFAULT_INTRO_TITLE

logger = logging.getLogger(__name__)

TITLE_PREFIX_PATTERN = re.compile(r"^(\d+)\.\s+")
EMBEDDED_NUMBER_PATTERN = re.compile(
    r"(?:\b(?:episode|ep)\.?|#)\s*(\d+)", re.IGNORECASE
)
LEADING_INTEGER_PATTERN = re.compile(r"^\s*([+-]?\d+)")


@dataclass(frozen=True)
class NumberResolution:
    """
    Outcome of resolving one title to an episode number.

    Attributes:
        number: Resolved episode number, or None when the item is rejected
        source: Which rule produced the number ("intro", "title", "hint",
            "embedded", "sequence") or "unresolved"
        needs_review: True when the number should be checked by hand
    """

    number: Optional[int]
    source: str
    needs_review: bool = False

    @property
    def resolved(self) -> bool:
        return self.number is not None


def parse_episode_hint(value: Any) -> int:
    """
    Parse an iTunes episode number the way a base-10 ``parseInt`` would.

    Leading whitespace and trailing garbage are ignored; anything without
    leading digits resolves to 0, which callers treat as "absent".

    Example:
        >>> parse_episode_hint(" 42 ")
        42
        >>> parse_episode_hint("abc")
        0
    """
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)

    match = LEADING_INTEGER_PATTERN.match(str(value))
    return int(match.group(1)) if match else 0


class NumberingPolicy(ABC):
    """
    Base class for episode numbering strategies.

    Subclasses must implement ``resolve()`` and set ``name`` and
    ``min_episode_number``.
    """

    name: str = ""
    min_episode_number: int = 1

    @abstractmethod
    def resolve(
        self,
        title: str,
        episode_hint: Any,
        existing_numbers: Iterable[int] = (),
    ) -> NumberResolution:
        """
        Derive the episode number for a feed item.

        Args:
            title: Trimmed item title
            episode_hint: Raw iTunes episode number (any type)
            existing_numbers: Episode numbers already in the working index

        Returns:
            NumberResolution; ``number`` is None when the item is rejected
        """


class TitleFirstPolicy(NumberingPolicy):
    """Title prefix first, iTunes hint as a reviewed fallback."""

    name = "title_first"
    min_episode_number = 0

    def __init__(self, intro_title: str = DEFAULT_INTRO_TITLE):
        self.intro_title = intro_title.strip()

    def resolve(self, title, episode_hint, existing_numbers=()):
        if title == self.intro_title:
            return NumberResolution(0, "intro")

        match = TITLE_PREFIX_PATTERN.match(title)
        if match:
            return NumberResolution(int(match.group(1)), "title")

        hint = parse_episode_hint(episode_hint)
        if hint:
            logger.warning(
                "Using iTunes episode number %d for non-standard title: %r",
                hint,
                title,
            )
            return NumberResolution(hint, "hint", needs_review=True)

        logger.warning(
            "Episode title doesn't follow standard pattern, requires manual review: %r",
            title,
        )
        return NumberResolution(None, "unresolved", needs_review=True)


class HintFirstPolicy(NumberingPolicy):
    """iTunes hint first, then embedded title number, then next in sequence."""

    name = "hint_first"
    min_episode_number = 1

    def __init__(self, intro_title: str = DEFAULT_INTRO_TITLE):
        # Unused: this policy has no introductory episode
        self.intro_title = intro_title

    def resolve(self, title, episode_hint, existing_numbers=()):
        hint = parse_episode_hint(episode_hint)
        if hint:
            return NumberResolution(hint, "hint")

        match = EMBEDDED_NUMBER_PATTERN.search(title)
        if match:
            return NumberResolution(int(match.group(1)), "embedded")

        numbers = list(existing_numbers)
        next_number = max(numbers) + 1 if numbers else 1
        logger.info("No episode number found in %r, assigning %d", title, next_number)
        return NumberResolution(next_number, "sequence")


# ---------------------------------------------------------------------------
#  Policy registry
# ---------------------------------------------------------------------------

_POLICY_REGISTRY: Dict[str, Type[NumberingPolicy]] = {
    TitleFirstPolicy.name: TitleFirstPolicy,
    HintFirstPolicy.name: HintFirstPolicy,
}


def get_numbering_policy(
    name: str,
    intro_title: str = DEFAULT_INTRO_TITLE,
) -> NumberingPolicy:
    """
    Get an instantiated numbering policy by name.

    Args:
        name: Policy name ("title_first" or "hint_first")
        intro_title: Title of the introductory episode

    Raises:
        ValueError: If the policy name is not registered
    """
    if name not in _POLICY_REGISTRY:
        available = ", ".join(sorted(_POLICY_REGISTRY))
        raise ValueError(
            f"Unknown numbering policy '{name}'. Available policies: {available}"
        )
    return _POLICY_REGISTRY[name](intro_title=intro_title)


def list_policies() -> Dict[str, Type[NumberingPolicy]]:
    """List all registered policy names and their classes."""
    return dict(_POLICY_REGISTRY)
