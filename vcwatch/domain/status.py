"""Version-control status model shared by every backend.

Statuses are ordered: anything above UP_TO_DATE is a local change, anything
at or below IGNORED is not tracked by the backend.
"""

from collections.abc import Iterable
from enum import IntEnum


class VCItemStatus(IntEnum):
    """Status of a single path in a working copy.

    The numeric order is meaningful. Directory decorations use the worst
    (highest) status among their descendants, and ``status > UP_TO_DATE``
    classifies every concrete change state the same way.
    """

    UNKNOWN = 0
    IGNORED = 1
    UP_TO_DATE = 2
    MODIFIED = 3
    ADDED = 4
    DELETED = 5
    CONFLICTED = 6
    REPLACED = 7
    EXTERNAL = 8

    @property
    def is_tracked(self) -> bool:
        """Whether the backend knows this path (above UNKNOWN/IGNORED)."""
        return self > VCItemStatus.IGNORED

    @property
    def has_local_changes(self) -> bool:
        """Whether the path differs from the tracked baseline."""
        return self > VCItemStatus.UP_TO_DATE

    @property
    def badge(self) -> str:
        """One-letter label used by console output."""
        return _BADGES[self]


_BADGES: dict[VCItemStatus, str] = {
    VCItemStatus.UNKNOWN: "?",
    VCItemStatus.IGNORED: "!",
    VCItemStatus.UP_TO_DATE: " ",
    VCItemStatus.MODIFIED: "M",
    VCItemStatus.ADDED: "A",
    VCItemStatus.DELETED: "D",
    VCItemStatus.CONFLICTED: "C",
    VCItemStatus.REPLACED: "R",
    VCItemStatus.EXTERNAL: "X",
}


def worst(statuses: Iterable[VCItemStatus]) -> VCItemStatus:
    """Return the highest status, or UP_TO_DATE when there is none."""
    return max(statuses, default=VCItemStatus.UP_TO_DATE)
