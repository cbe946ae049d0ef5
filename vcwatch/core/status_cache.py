"""Per-root status cache with generation-tagged refreshes.

Entries are keyed by POSIX paths relative to the working-copy root. The
cache state is an immutable snapshot that writers replace as a whole, so a
reader holding a snapshot never observes a half-applied refresh.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType

from vcwatch.domain.status import VCItemStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RefreshTicket:
    """Identifies one status query against a root.

    Attributes:
        generation: Monotonic counter value assigned when the query started.
        subtree: Root-relative path the query is limited to, or None for a
            query of the whole root.
    """

    generation: int
    subtree: str | None = None

    @property
    def is_full(self) -> bool:
        return self.subtree is None


@dataclass(frozen=True)
class StatusSnapshot:
    """Immutable view of a root's statuses.

    Attributes:
        entries: Status of each path the backend reported.
        directories: Worst local-change status below each directory.
        loaded: Whether a full query has completed at least once.
    """

    entries: Mapping[str, VCItemStatus]
    directories: Mapping[str, VCItemStatus]
    loaded: bool = False

    @classmethod
    def build(cls, entries: dict[str, VCItemStatus], loaded: bool) -> StatusSnapshot:
        """Create a snapshot, propagating local changes up to every ancestor."""
        directories: dict[str, VCItemStatus] = {}
        for rel, status in entries.items():
            if not status.has_local_changes:
                continue
            parent = rel
            while parent:
                parent = parent.rpartition("/")[0]
                if directories.get(parent, VCItemStatus.UP_TO_DATE) < status:
                    directories[parent] = status
        return cls(
            entries=MappingProxyType(dict(entries)),
            directories=MappingProxyType(directories),
            loaded=loaded,
        )


_EMPTY = StatusSnapshot.build({}, loaded=False)


def is_within(rel: str, subtree: str) -> bool:
    """Return True if ``rel`` equals ``subtree`` or lies below it."""
    if not subtree:
        return True
    return rel == subtree or rel.startswith(subtree + "/")


def _ancestors(rel: str) -> list[str]:
    parts = rel.split("/")[:-1]
    return ["/".join(parts[:i]) for i in range(len(parts), 0, -1)]


class StatusCache:
    """Status cache for one working-copy root.

    All writes are expected on the owner thread; the lock only serializes
    the snapshot swap so concurrent readers always see a complete state.
    """

    def __init__(self) -> None:
        self._snapshot = _EMPTY
        self._lock = threading.Lock()
        self._generation = 0
        self._floor = 0
        self._pending_full: int | None = None
        self._recent_targeted: list[tuple[RefreshTicket, dict[str, VCItemStatus]]] = []
        # Generation of the newest targeted result applied to each subtree.
        self._applied: dict[str, int] = {}

    @property
    def snapshot(self) -> StatusSnapshot:
        return self._snapshot

    @property
    def loaded(self) -> bool:
        return self._snapshot.loaded

    @property
    def generation(self) -> int:
        """Generation of the most recently started refresh."""
        return self._generation

    def get_overlay(self, rel: str) -> VCItemStatus:
        """Return the status of a root-relative path.

        Lookup order: the exact entry, an untracked or ignored ancestor
        (backends report such directories collapsed), the aggregated status
        of a directory's descendants, and finally UP_TO_DATE.
        """
        snapshot = self._snapshot
        status = snapshot.entries.get(rel)
        if status is not None:
            return status
        for ancestor in _ancestors(rel):
            status = snapshot.entries.get(ancestor)
            if status is not None and not status.is_tracked:
                return status
        return snapshot.directories.get(rel, VCItemStatus.UP_TO_DATE)

    def begin_refresh(self, subtree: str | None = None) -> RefreshTicket:
        """Start a refresh and return its ticket.

        A full refresh supersedes every refresh started before it: their
        results are discarded when they complete.
        """
        with self._lock:
            self._generation += 1
            ticket = RefreshTicket(self._generation, subtree)
            if ticket.is_full:
                self._floor = ticket.generation
                self._pending_full = ticket.generation
                self._recent_targeted = []
                self._applied = {}
        return ticket

    def force_refresh(self) -> RefreshTicket:
        """Invalidate the whole cache, superseding any in-flight refresh."""
        ticket = self.begin_refresh(None)
        logger.debug("Forced refresh, generation %d", ticket.generation)
        return ticket

    def invalidate(self, rel: str) -> RefreshTicket:
        """Mark a subtree stale and return the ticket for its targeted refresh."""
        ticket = self.begin_refresh(rel)
        logger.debug("Invalidated '%s', generation %d", rel, ticket.generation)
        return ticket

    def complete_refresh(self, ticket: RefreshTicket, entries: dict[str, VCItemStatus]) -> bool:
        """Apply the result of a refresh.

        Args:
            ticket: Ticket returned when the refresh started.
            entries: Statuses reported by the backend for the ticket's scope.

        Returns:
            True if the result was applied, False if it was superseded.
        """
        with self._lock:
            if ticket.generation < self._floor:
                logger.debug(
                    "Discarding stale refresh (generation %d < %d)",
                    ticket.generation,
                    self._floor,
                )
                return False

            if ticket.is_full:
                merged = dict(entries)
                # Targeted results started after this scan are newer than it.
                recent = sorted(self._recent_targeted, key=lambda item: item[0].generation)
                for newer_ticket, newer_entries in recent:
                    _replace_subtree(merged, newer_ticket.subtree or "", newer_entries)
                self._recent_targeted = []
                self._pending_full = None
                loaded = True
            else:
                subtree = ticket.subtree or ""
                newer = self._newer_subtrees(ticket)
                if any(is_within(subtree, other) for other in newer):
                    logger.debug(
                        "Discarding refresh of '%s' (generation %d), a newer result covers it",
                        subtree,
                        ticket.generation,
                    )
                    return False
                merged = dict(self._snapshot.entries)
                _replace_subtree(merged, subtree, entries, keep=newer)
                self._record_applied(ticket)
                if self._pending_full is not None:
                    self._recent_targeted.append((ticket, dict(entries)))
                loaded = self._snapshot.loaded

            self._snapshot = StatusSnapshot.build(merged, loaded=loaded)
            return True

    def _newer_subtrees(self, ticket: RefreshTicket) -> list[str]:
        """Subtrees overlapping the ticket's that hold a newer applied result."""
        subtree = ticket.subtree or ""
        return [
            other
            for other, generation in self._applied.items()
            if generation > ticket.generation
            and (is_within(other, subtree) or is_within(subtree, other))
        ]

    def _record_applied(self, ticket: RefreshTicket) -> None:
        subtree = ticket.subtree or ""
        for other in [
            other
            for other, generation in self._applied.items()
            if generation < ticket.generation and is_within(other, subtree)
        ]:
            del self._applied[other]
        self._applied[subtree] = ticket.generation

    def abandon(self, ticket: RefreshTicket) -> None:
        """Record that a refresh failed and will never complete."""
        with self._lock:
            if ticket.is_full and self._pending_full == ticket.generation:
                self._pending_full = None
                self._recent_targeted = []

    def put(self, rel: str, status: VCItemStatus) -> None:
        """Store the result of a single-path query."""
        with self._lock:
            if self._snapshot.entries.get(rel) == status:
                return
            merged = dict(self._snapshot.entries)
            merged[rel] = status
            self._snapshot = StatusSnapshot.build(merged, loaded=self._snapshot.loaded)

    def clear(self) -> None:
        """Forget every entry and supersede in-flight refreshes."""
        with self._lock:
            self._generation += 1
            self._floor = self._generation
            self._pending_full = None
            self._recent_targeted = []
            self._applied = {}
            self._snapshot = _EMPTY


def _replace_subtree(
    target: dict[str, VCItemStatus],
    subtree: str,
    entries: dict[str, VCItemStatus],
    keep: Sequence[str] = (),
) -> None:
    """Replace the entries under ``subtree``, leaving the ``keep`` subtrees alone."""

    def kept(rel: str) -> bool:
        return any(is_within(rel, other) for other in keep)

    for rel in [rel for rel in target if is_within(rel, subtree) and not kept(rel)]:
        del target[rel]
    target.update((rel, status) for rel, status in entries.items() if not kept(rel))
