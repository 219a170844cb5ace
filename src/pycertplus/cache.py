"""Time-bounded snapshot cache for remote collections.

One :class:`CollectionCache` holds the latest snapshot of one remote
collection (all assets, or all interventions). Readers get immutable
tuples of frozen models. Concurrent readers share a single in-flight
fetch, and a failed refresh falls back to the previous snapshot with a
:class:`~pycertplus.exceptions.StaleDataWarning`.

Instances are owned by whoever constructs them (normally
:class:`pycertplus.client.CertClient`) and must be closed with
:meth:`CollectionCache.aclose`.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import time
import warnings
from collections.abc import Awaitable, Callable, Iterable
from typing import Generic, TypeVar

from pycertplus._constants import DEFAULT_CACHE_TTL
from pycertplus.exceptions import CertError, StaleDataWarning, TransientFetchError

_logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclasses.dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A stored snapshot.

    ``fetched_at`` is the clock reading of the fetch, or ``None`` once
    the entry has been invalidated.
    """

    items: tuple[T, ...]
    fetched_at: float | None
    generation: int


@dataclasses.dataclass(frozen=True)
class CacheStatus:
    name: str
    cached: bool
    valid: bool
    count: int
    age: float | None


class CollectionCache(Generic[T]):
    """Snapshot cache with request coalescing and stale fallback.

    Parameters
    ----------
    fetch : callable
        Coroutine function returning the full collection. It should raise
        :class:`~pycertplus.exceptions.TransientFetchError` for failures
        that may be served from a previous snapshot; anything else always
        propagates.
    name : str
        Label used in logs and :meth:`status`.
    ttl : float
        Freshness window in seconds.
    clock : callable
        Monotonic clock, injectable for tests.
    """

    def __init__(
        self,
        fetch: Callable[[], Awaitable[Iterable[T]]],
        *,
        name: str,
        ttl: float = DEFAULT_CACHE_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fetch = fetch
        self._name = name
        self._ttl = ttl
        self._clock = clock
        self._entry: CacheEntry[T] | None = None
        self._generation = 0
        self._inflight: asyncio.Task[tuple[T, ...]] | None = None
        self._inflight_generation = -1
        self._closed = False
        self.last_error: TransientFetchError | None = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def closed(self) -> bool:
        return self._closed

    def _is_fresh(self, entry: CacheEntry[T]) -> bool:
        if entry.fetched_at is None:
            return False
        return self._clock() - entry.fetched_at < self._ttl

    async def get(self, force_refresh: bool = False) -> tuple[T, ...]:
        """Return the collection, fetching when the snapshot is missing or stale.

        Raises
        ------
        TransientFetchError
            The fetch failed and there is no previous snapshot to fall back on.
        CertError
            The cache has been closed.
        """
        if self._closed:
            raise CertError(f"{self._name} cache is closed")

        entry = self._entry
        if not force_refresh and entry is not None and self._is_fresh(entry):
            return entry.items

        task = self._inflight
        if task is None or task.done() or self._inflight_generation != self._generation:
            # A fetch started before the last invalidate() cannot satisfy this read.
            task = asyncio.create_task(self._refresh(self._generation), name=f"pycertplus-{self._name}-refresh")
            task.add_done_callback(self._on_refresh_done)
            self._inflight = task
            self._inflight_generation = self._generation
        else:
            _logger.debug("Joining in-flight %s fetch", self._name)

        return await asyncio.shield(task)

    async def _refresh(self, generation: int) -> tuple[T, ...]:
        _logger.debug("Fetching %s", self._name)
        try:
            items = tuple(await self._fetch())
        except TransientFetchError as exc:
            self.last_error = exc
            previous = self._entry
            if previous is None:
                _logger.debug("%s fetch failed with no snapshot to fall back on: %s", self._name, exc)
                raise
            _logger.warning(
                "%s fetch failed, serving %d cached items: %s",
                self._name,
                len(previous.items),
                exc,
            )
            warnings.warn(
                f"{self._name}: refresh failed ({exc}); serving previous snapshot",
                StaleDataWarning,
                stacklevel=2,
            )
            return previous.items

        self.last_error = None
        if self._closed:
            return items
        current = self._entry
        if current is not None and current.generation > generation:
            # A newer fetch already stored its result.
            return items
        fetched_at = self._clock() if generation == self._generation else None
        self._entry = CacheEntry(items=items, fetched_at=fetched_at, generation=generation)
        _logger.debug(
            "Stored %d %s (fresh=%s)",
            len(items),
            self._name,
            fetched_at is not None,
        )
        return items

    def _on_refresh_done(self, task: asyncio.Task[tuple[T, ...]]) -> None:
        if self._inflight is task:
            self._inflight = None
        # Mark the outcome as retrieved when every waiter has gone away.
        if not task.cancelled():
            task.exception()

    def invalidate(self) -> None:
        """Mark the snapshot stale; it is kept as a fallback for failed refreshes."""
        self._generation += 1
        entry = self._entry
        if entry is not None and entry.fetched_at is not None:
            self._entry = dataclasses.replace(entry, fetched_at=None)
        _logger.debug("Invalidated %s", self._name)

    def clear(self) -> None:
        """Discard the snapshot entirely."""
        self._generation += 1
        self._entry = None
        self.last_error = None
        _logger.debug("Cleared %s", self._name)

    def status(self) -> CacheStatus:
        entry = self._entry
        if entry is None:
            return CacheStatus(name=self._name, cached=False, valid=False, count=0, age=None)
        age = None if entry.fetched_at is None else self._clock() - entry.fetched_at
        return CacheStatus(
            name=self._name,
            cached=True,
            valid=self._is_fresh(entry),
            count=len(entry.items),
            age=age,
        )

    async def aclose(self) -> None:
        """Cancel any in-flight fetch and drop the snapshot."""
        self._closed = True
        task = self._inflight
        self._inflight = None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        self._entry = None
