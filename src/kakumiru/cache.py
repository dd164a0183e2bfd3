"""In-memory query cache with request de-duplication and prefix invalidation."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Iterable, Optional

from .query import KeyLike, QueryKey, normalize_key

DEFAULT_STALE_TIME_MS = 30_000

Fetcher = Callable[[str], Any]

_logger = logging.getLogger(__name__)


class CacheEntry:
    """Data stored for one resolved query URL."""

    __slots__ = ("key", "data", "fetched_at", "stale_time_ms")

    def __init__(self, key: str, data: Any, fetched_at: float, stale_time_ms: int) -> None:
        self.key = key
        self.data = data
        self.fetched_at = fetched_at
        self.stale_time_ms = stale_time_ms

    def is_fresh(self, now: float, stale_time_ms: int) -> bool:
        return (now - self.fetched_at) * 1000 < stale_time_ms

    def __repr__(self) -> str:
        return f"CacheEntry(key={self.key!r}, fetched_at={self.fetched_at!r})"


class QueryObserver:
    """Interest in the result of a background read.

    Cancelling only stops delivery to this observer's callbacks. The read
    itself runs to completion and still populates the shared cache.
    """

    def __init__(self, key: QueryKey) -> None:
        self.key = key
        self._cancelled = False
        self._future: Optional[Future] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def done(self) -> bool:
        return self._future is not None and self._future.done()

    def result(self, timeout: Optional[float] = None) -> Any:
        """Block until the read finishes and return its data (or raise its error)."""
        if self._future is None:  # pragma: no cover - set by QueryCache.observe
            raise RuntimeError("Observer is not attached to a read.")
        return self._future.result(timeout)

    def _deliver(
        self,
        future: Future,
        on_data: Callable[[Any], None],
        on_error: Optional[Callable[[BaseException], None]],
    ) -> None:
        if self._cancelled:
            _logger.debug("Dropping result for cancelled observer of %s", self.key.url)
            return
        exc = future.exception()
        if exc is None:
            on_data(future.result())
        elif on_error is not None:
            on_error(exc)
        else:
            _logger.warning("Background read of %s failed: %s", self.key.url, exc)


class QueryCache:
    """Get-or-fetch cache keyed by resolved query URL.

    Parameters
    ----------
    fetcher
        Callable receiving a resolved URL and returning its data. It is
        called outside the cache lock and at most once at a time per key.
    stale_time_ms
        Default age, in milliseconds, after which an entry is refetched.
    clock
        Monotonic clock returning seconds.
    max_workers
        Size of the worker pool used by :meth:`observe` and :meth:`prefetch`.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        *,
        stale_time_ms: int = DEFAULT_STALE_TIME_MS,
        clock: Callable[[], float] = time.monotonic,
        max_workers: int = 4,
    ) -> None:
        self._fetcher = fetcher
        self.stale_time_ms = stale_time_ms
        self._clock = clock
        self._max_workers = max_workers
        self._lock = threading.Lock()
        self._entries: dict[str, CacheEntry] = {}
        self._in_flight: dict[str, Future] = {}
        self._executor: Optional[ThreadPoolExecutor] = None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def read(self, key: KeyLike, stale_time_ms: Optional[int] = None) -> Any:
        """Return data for ``key``, fetching only when needed.

        Fresh entries are returned directly. When a fetch for the same key is
        already running the caller waits for it instead of starting another.
        A failed fetch leaves any existing entry untouched and re-raises to
        every waiting caller; nothing is retried.
        """
        url = normalize_key(key).url
        stale_ms = self.stale_time_ms if stale_time_ms is None else stale_time_ms

        with self._lock:
            entry = self._entries.get(url)
            if entry is not None and entry.is_fresh(self._clock(), stale_ms):
                _logger.debug("Cache hit for %s", url)
                return entry.data
            future = self._in_flight.get(url)
            owner = future is None
            if owner:
                future = Future()
                self._in_flight[url] = future

        if not owner:
            _logger.debug("Joining in-flight fetch for %s", url)
            return future.result()

        _logger.debug("Cache miss for %s", url)
        try:
            data = self._fetcher(url)
        except BaseException as exc:
            with self._lock:
                if self._in_flight.get(url) is future:
                    del self._in_flight[url]
            future.set_exception(exc)
            raise

        with self._lock:
            # An invalidation while the fetch ran detaches it; the result
            # still reaches waiters but must not repopulate the cache.
            if self._in_flight.get(url) is future:
                del self._in_flight[url]
                self._entries[url] = CacheEntry(url, data, self._clock(), stale_ms)
        future.set_result(data)
        return data

    def observe(
        self,
        key: KeyLike,
        on_data: Callable[[Any], None],
        on_error: Optional[Callable[[BaseException], None]] = None,
        *,
        stale_time_ms: Optional[int] = None,
    ) -> QueryObserver:
        """Read ``key`` on the worker pool and hand the result to callbacks.

        Returns a :class:`QueryObserver`; call ``cancel()`` on it when the
        consumer goes away to suppress the callbacks.
        """
        query = normalize_key(key)
        observer = QueryObserver(query)
        future = self._pool().submit(self.read, query, stale_time_ms)
        observer._future = future
        future.add_done_callback(lambda done: observer._deliver(done, on_data, on_error))
        return observer

    def prefetch(self, keys: Iterable[KeyLike], stale_time_ms: Optional[int] = None) -> list[Any]:
        """Read several keys concurrently and return their data in key order."""
        futures = [self._pool().submit(self.read, key, stale_time_ms) for key in keys]
        return [future.result() for future in futures]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def invalidate(self, prefix: str) -> int:
        """Drop every entry whose path starts with ``prefix``.

        Matching is path-aware: ``"/posts"`` matches ``/posts``,
        ``/posts?tagIds=1`` and ``/posts/42`` but not ``/postsarchive``.

        Returns
        -------
        int
            Number of cached entries removed.
        """
        with self._lock:
            stale = [url for url in self._entries if _matches_prefix(url, prefix)]
            for url in stale:
                del self._entries[url]
            detached = [url for url in self._in_flight if _matches_prefix(url, prefix)]
            for url in detached:
                del self._in_flight[url]
        _logger.debug("Invalidated %d entries under %s", len(stale), prefix)
        return len(stale)

    def set_data(self, key: KeyLike, data: Any) -> None:
        url = normalize_key(key).url
        with self._lock:
            self._entries[url] = CacheEntry(url, data, self._clock(), self.stale_time_ms)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._in_flight.clear()

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------
    def get_data(self, key: KeyLike) -> Any:
        """Return cached data for ``key`` regardless of age, or ``None``."""
        with self._lock:
            entry = self._entries.get(normalize_key(key).url)
        return entry.data if entry is not None else None

    def get_entry(self, key: KeyLike) -> Optional[CacheEntry]:
        with self._lock:
            return self._entries.get(normalize_key(key).url)

    def is_fetching(self, key: KeyLike) -> bool:
        with self._lock:
            return normalize_key(key).url in self._in_flight

    def __contains__(self, key: object) -> bool:
        try:
            url = normalize_key(key).url  # type: ignore[arg-type]
        except TypeError:
            return False
        with self._lock:
            return url in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def _pool(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._max_workers, thread_name_prefix="kakumiru-cache"
                )
            return self._executor

    def close(self) -> None:
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)


def _matches_prefix(url: str, prefix: str) -> bool:
    if not url.startswith(prefix):
        return False
    if len(url) == len(prefix) or prefix.endswith(("/", "?", "&")):
        return True
    return url[len(prefix)] in "/?&"


__all__ = ["CacheEntry", "DEFAULT_STALE_TIME_MS", "QueryCache", "QueryObserver"]
