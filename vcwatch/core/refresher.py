"""Background bulk status scans.

Scans run on a thread pool so large trees never block the owner thread.
Completed results are posted back through the owner queue and applied with
the cache's generation check, so a superseded scan is dropped on arrival.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import CancelledError, Executor, Future, ThreadPoolExecutor

from vcwatch.core.owner_queue import OwnerQueue
from vcwatch.core.resolver import RootBinding
from vcwatch.core.status_cache import RefreshTicket
from vcwatch.domain.exceptions import VCWatchDomainError
from vcwatch.domain.status import VCItemStatus

logger = logging.getLogger(__name__)


class StatusRefresher:
    """Runs status queries off the owner thread and applies their results."""

    def __init__(
        self,
        owner_queue: OwnerQueue,
        on_applied: Callable[[RootBinding], None],
        workers: int = 2,
        executor: Executor | None = None,
    ) -> None:
        """Initialize the refresher.

        Args:
            owner_queue: Queue used to hand results back to the owner thread.
            on_applied: Called on the owner thread after a result is applied.
            workers: Pool size when no executor is given.
            executor: Executor to run queries on (tests pass a synchronous one).
        """
        self._queue = owner_queue
        self._on_applied = on_applied
        self._executor = executor or ThreadPoolExecutor(
            max_workers=workers,
            thread_name_prefix="vcwatch-status",
        )
        self._closed = False

    def schedule(self, binding: RootBinding, ticket: RefreshTicket) -> Future:
        """Start a status query for ``ticket`` in the background."""
        logger.debug(
            "Scheduling %s refresh of %s (generation %d)",
            "full" if ticket.is_full else f"'{ticket.subtree}'",
            binding.root,
            ticket.generation,
        )
        future = self._executor.submit(binding.backend.get_status_map, ticket.subtree)
        future.add_done_callback(lambda done: self._queue.post(self._apply, binding, ticket, done))
        return future

    def run_now(self, binding: RootBinding, ticket: RefreshTicket) -> bool:
        """Run a status query on the calling thread and apply it.

        Returns:
            True if the result was applied.
        """
        try:
            entries = binding.backend.get_status_map(ticket.subtree)
        except VCWatchDomainError as e:
            logger.warning("Status query failed for %s: %s", binding.root, e.message)
            binding.cache.abandon(ticket)
            return False
        return self._complete(binding, ticket, entries)

    @property
    def closed(self) -> bool:
        return self._closed

    def shutdown(self) -> None:
        """Stop accepting work and cancel queries that have not started.

        Queries already running finish on their own; their results are
        dropped instead of being applied.
        """
        self._closed = True
        self._executor.shutdown(wait=False, cancel_futures=True)

    def _apply(self, binding: RootBinding, ticket: RefreshTicket, future: Future) -> None:
        if self._closed:
            logger.debug("Dropping refresh of %s after shutdown", binding.root)
            return
        try:
            entries = future.result()
        except CancelledError:
            binding.cache.abandon(ticket)
            return
        except VCWatchDomainError as e:
            logger.warning("Background status query failed for %s: %s", binding.root, e.message)
            binding.cache.abandon(ticket)
            return
        except Exception:
            logger.exception("Unexpected error in status query for %s", binding.root)
            binding.cache.abandon(ticket)
            return
        self._complete(binding, ticket, entries)

    def _complete(
        self,
        binding: RootBinding,
        ticket: RefreshTicket,
        entries: dict[str, VCItemStatus],
    ) -> bool:
        applied = binding.cache.complete_refresh(ticket, entries)
        if applied:
            self._on_applied(binding)
        return applied
