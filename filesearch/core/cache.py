"""
file-search Resolution Cache - process-lifetime directory listings.

Caches, per resource kind (and per parent store for documents):
- The most recent directory listing
- When it was fetched

Entries expire lazily after the TTL. Concurrent refreshes of the same key
are coalesced into one remote call. Nothing is written to disk.
"""

import copy
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from filesearch.constants import DEFAULT_CACHE_TTL
from filesearch.core.errors import RefreshTimeoutError, UnavailableError
from filesearch.core.resources import DirectoryClient, ResourceKind, ResourceRecord

logger = logging.getLogger(__name__)

CacheKey = Tuple[ResourceKind, Optional[str]]


def _waiter_error(error: BaseException) -> BaseException:
    """Copy a shared refresh failure so each waiter raises its own instance."""
    try:
        return copy.copy(error)
    except Exception:
        return UnavailableError(str(error))


@dataclass
class _Entry:
    records: Tuple[ResourceRecord, ...]
    fetched_at: float


@dataclass
class _Flight:
    """One in-flight refresh. Every waiter observes the same outcome."""

    done: threading.Event = field(default_factory=threading.Event)
    records: Optional[Tuple[ResourceRecord, ...]] = None
    error: Optional[BaseException] = None
    # Set by invalidate(); the result goes to waiters but is never stored.
    invalidated: bool = False


class ResolutionCache:
    """
    Thread-safe, time-bounded cache of directory listings.

    Refreshes run on a short-lived worker thread so that any waiter, the
    one that triggered the refresh included, can stop waiting without
    aborting the refresh for the others.

    Example:
        >>> cache = ResolutionCache(client, ttl=300)
        >>> records = cache.get(ResourceKind.STORE)
        >>> cache.invalidate(ResourceKind.STORE)
    """

    def __init__(
        self,
        directory: Optional[DirectoryClient],
        ttl: Optional[float] = DEFAULT_CACHE_TTL,
        enabled: bool = True,
        disabled_reason: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the cache.

        Args:
            directory: Source of truth for listings. ``None`` (no
                credentials) disables the cache.
            ttl: Freshness window in seconds. 0 or None means the default.
            enabled: False disables the cache even with a directory.
            disabled_reason: Message surfaced when resolution is refused.
            clock: Monotonic time source.
        """
        if ttl is not None and ttl < 0:
            raise ValueError(f"cache TTL must be non-negative, got {ttl}")

        self._directory = directory
        self.ttl = float(ttl) if ttl else DEFAULT_CACHE_TTL
        self._enabled = enabled and directory is not None
        if disabled_reason:
            self.disabled_reason = disabled_reason
        elif directory is None:
            self.disabled_reason = "API key not set"
        else:
            self.disabled_reason = "name resolution is disabled by configuration"
        self._clock = clock

        self._lock = threading.Lock()
        self._entries: Dict[CacheKey, _Entry] = {}
        self._flights: Dict[CacheKey, _Flight] = {}
        self._stats = {"hits": 0, "fetches": 0, "failures": 0, "stale_reads": 0}

    @property
    def enabled(self) -> bool:
        return self._enabled

    def is_enabled(self) -> bool:
        return self._enabled

    @property
    def disabled_by_config(self) -> bool:
        """True when credentials exist but caching was switched off."""
        return self._directory is not None and not self._enabled

    # ── Reads ─────────────────────────────────────────────────────────────

    def get(
        self,
        kind: ResourceKind,
        parent_id: Optional[str] = None,
        timeout: Optional[float] = None,
        allow_stale: bool = True,
    ) -> List[ResourceRecord]:
        """
        Return the records for a key, refreshing them if needed.

        Returns an empty list without network access when disabled. If the
        refresh fails (or this caller's ``timeout`` runs out) the last-known
        set is returned when ``allow_stale`` is set and one exists;
        otherwise the failure is raised.
        """
        if not self._enabled:
            return []

        key = self._key(kind, parent_id)
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and self._is_fresh(entry):
                self._stats["hits"] += 1
                return list(entry.records)
            flight = self._ensure_flight(key)

        if not flight.done.wait(timeout):
            stale = self._stale(key, allow_stale)
            if stale is not None:
                return stale
            raise RefreshTimeoutError(
                f"Timed out after {timeout:g}s waiting for the {kind.label} list"
            )

        if flight.error is not None:
            stale = self._stale(key, allow_stale)
            if stale is not None:
                logger.warning("Using cached %s list after refresh failed: %s", kind.label, flight.error)
                return stale
            raise _waiter_error(flight.error) from flight.error

        return list(flight.records)

    def peek(
        self,
        kind: ResourceKind,
        parent_id: Optional[str] = None,
        wait: float = 0.0,
    ) -> List[ResourceRecord]:
        """
        Non-forcing read for completion.

        Starts a refresh if the entry is missing or expired, waits at most
        ``wait`` seconds for it, then returns whatever is cached (possibly
        stale, possibly empty). Never raises.
        """
        if not self._enabled:
            return []

        key = self._key(kind, parent_id)
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and self._is_fresh(entry):
                self._stats["hits"] += 1
                return list(entry.records)
            flight = self._ensure_flight(key)

        if wait > 0:
            flight.done.wait(wait)

        with self._lock:
            entry = self._entries.get(key)
        if entry is None and flight.done.is_set() and flight.records is not None:
            # Invalidated while in flight: hand out the result without storing it
            return list(flight.records)
        return list(entry.records) if entry is not None else []

    # ── Invalidation ──────────────────────────────────────────────────────

    def invalidate(self, kind: ResourceKind, parent_id: Optional[str] = None) -> None:
        """
        Drop an entry so the next read refreshes.

        A refresh already in flight for the key still completes for its
        waiters, but its result is discarded instead of cached.
        """
        key = self._key(kind, parent_id)
        with self._lock:
            self._entries.pop(key, None)
            flight = self._flights.get(key)
            if flight is not None:
                flight.invalidated = True
        logger.debug("Invalidated %s cache (parent=%s)", kind.label, key[1])

    def invalidate_all(self) -> int:
        """Drop every entry. Returns the number of entries dropped."""
        with self._lock:
            dropped = len(self._entries)
            self._entries.clear()
            for flight in self._flights.values():
                flight.invalidated = True
        return dropped

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._lock:
            return {
                **self._stats,
                "entries": len(self._entries),
                "in_flight": len(self._flights),
                "ttl_seconds": self.ttl,
                "enabled": self._enabled,
            }

    # ── Internals ─────────────────────────────────────────────────────────

    @staticmethod
    def _key(kind: ResourceKind, parent_id: Optional[str]) -> CacheKey:
        return (kind, parent_id if kind.is_scoped else None)

    def _is_fresh(self, entry: _Entry) -> bool:
        return self._clock() - entry.fetched_at < self.ttl

    def _stale(self, key: CacheKey, allow_stale: bool) -> Optional[List[ResourceRecord]]:
        if not allow_stale:
            return None
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            self._stats["stale_reads"] += 1
            return list(entry.records)

    def _ensure_flight(self, key: CacheKey) -> _Flight:
        """Join the in-flight refresh for ``key`` or start one. Caller holds the lock."""
        flight = self._flights.get(key)
        if flight is not None and not flight.invalidated:
            return flight

        flight = _Flight()
        self._flights[key] = flight
        self._stats["fetches"] += 1
        worker = threading.Thread(
            target=self._refresh,
            args=(key, flight),
            name=f"refresh-{key[0].value}",
            daemon=True,
        )
        worker.start()
        return flight

    def _refresh(self, key: CacheKey, flight: _Flight) -> None:
        kind, parent_id = key
        try:
            started = self._clock()
            try:
                records = tuple(self._directory.list_records(kind, parent_id))
            except Exception as exc:
                flight.error = exc
                logger.debug("Refreshing %s list failed: %s", kind.label, exc)
            else:
                flight.records = records
                logger.debug(
                    "Fetched %d %s records in %.0f ms",
                    len(records), kind.label, (self._clock() - started) * 1000,
                )

            with self._lock:
                if flight.error is not None:
                    self._stats["failures"] += 1
                elif not flight.invalidated:
                    self._entries[key] = _Entry(records=flight.records, fetched_at=self._clock())
        finally:
            # Waiters without a timeout depend on this running
            with self._lock:
                if self._flights.get(key) is flight:
                    del self._flights[key]
            flight.done.set()
