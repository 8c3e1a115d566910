# crm_core/cache/store.py
"""
In-memory keyed cache for backend reads.

Every entry remembers its data, the last error, when it was written and the
request currently filling it. Concurrent reads of one key share a single
request, and a request that finished less than ``dedupe_interval`` seconds
ago is reused instead of repeated.

Local writes (``set``, ``mutate``, optimistic patches) detach any in-flight
request for the key, so a slow response started before the write cannot
overwrite it.
"""
from __future__ import annotations

import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, List, Optional, Tuple

from crm_core.logging import get_logger

logger = get_logger(__name__)

CacheKey = Tuple[Hashable, ...]
Fetcher = Callable[[], Any]
ErrorHook = Callable[[CacheKey, BaseException], None]


def cache_key(resource: str, *scope: Hashable) -> CacheKey:
    """Build a composite key: resource type followed by its scope."""
    return (resource, *scope)


@dataclass
class CacheEntry:
    data: Any = None
    has_data: bool = False
    error: Optional[BaseException] = None
    updated_at: Optional[float] = None
    invalidated: bool = False
    future: Optional[Future] = None
    started_at: Optional[float] = None

    @property
    def is_fetching(self) -> bool:
        return self.future is not None and not self.future.done()


class OptimisticUpdate:
    """
    A tentative local patch that is either committed or rolled back.

    Usage:
        with store.optimistic(key, lambda rows: [r for r in rows if r.id != gone]):
            client.customers.delete(gone)   # raises -> patch is reverted
    """

    def __init__(self, store: CacheStore, key: CacheKey, had_data: bool, snapshot: Any):
        self.store = store
        self.key = key
        self._had_data = had_data
        self._snapshot = snapshot
        self._settled = False

    def commit(self) -> None:
        self._snapshot = None
        self._settled = True

    def rollback(self) -> None:
        if self._settled:
            return
        self.store._restore(self.key, self._had_data, self._snapshot)
        self._snapshot = None
        self._settled = True
        logger.debug(f"Rolled back optimistic update of {self.key}")

    def __enter__(self) -> OptimisticUpdate:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_type is None:
            self.commit()
        else:
            self.rollback()
        return False


class CacheStore:
    """Thread-safe keyed cache with request coalescing."""

    def __init__(
        self,
        max_workers: int = 4,
        clock: Callable[[], float] = time.monotonic,
        on_error: Optional[ErrorHook] = None,
    ):
        self._entries: Dict[CacheKey, CacheEntry] = {}
        self._lock = threading.RLock()
        self._clock = clock
        self._max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None
        self.on_error = on_error

    def now(self) -> float:
        return self._clock()

    # ------------------------------------------------------------------
    # Plain reads and writes
    # ------------------------------------------------------------------

    def entry(self, key: CacheKey) -> Optional[CacheEntry]:
        with self._lock:
            return self._entries.get(key)

    def has(self, key: CacheKey) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and entry.has_data

    def get(self, key: CacheKey, default: Any = None) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or not entry.has_data:
                return default
            return entry.data

    def keys(self) -> List[CacheKey]:
        with self._lock:
            return list(self._entries)

    def set(self, key: CacheKey, data: Any) -> None:
        with self._lock:
            entry = self._entries.setdefault(key, CacheEntry())
            self._write(entry, data)
            entry.future = None

    def mutate(self, key: CacheKey, fn: Callable[[Any], Any], default: Any = None) -> Any:
        """Replace an entry with ``fn(current)``; ``default`` stands in when empty."""
        with self._lock:
            current = self.get(key, default)
            updated = fn(current)
            self.set(key, updated)
            return updated

    def optimistic(self, key: CacheKey, patch: Callable[[Any], Any], default: Any = None) -> OptimisticUpdate:
        """Apply ``patch`` now and keep a snapshot for rollback."""
        with self._lock:
            entry = self._entries.get(key)
            had_data = entry is not None and entry.has_data
            snapshot = entry.data if had_data else None
            self.set(key, patch(snapshot if had_data else default))
            return OptimisticUpdate(self, key, had_data, snapshot)

    def _restore(self, key: CacheKey, had_data: bool, snapshot: Any) -> None:
        with self._lock:
            if had_data:
                self.set(key, snapshot)
            else:
                self._entries.pop(key, None)

    def _write(self, entry: CacheEntry, data: Any) -> None:
        entry.data = data
        entry.has_data = True
        entry.error = None
        entry.updated_at = self._clock()
        entry.invalidated = False

    # ------------------------------------------------------------------
    # Invalidation
    # ------------------------------------------------------------------

    def invalidate(self, key: CacheKey) -> bool:
        """
        Mark an entry stale. Its data stays readable, but the next read
        refetches instead of serving it and the dedupe window is reset.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            entry.invalidated = True
            entry.started_at = None
            entry.future = None
            return True

    def invalidate_matching(self, predicate: Callable[[CacheKey], bool]) -> List[CacheKey]:
        with self._lock:
            matched = [key for key in self._entries if predicate(key)]
            for key in matched:
                self.invalidate(key)
            return matched

    def remove(self, key: CacheKey) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        logger.debug("Cache cleared")

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    def _begin(
        self,
        key: CacheKey,
        dedupe_interval: float,
        force: bool,
    ) -> Tuple[Future, bool]:
        """Return the future serving this read and whether the caller owns it."""
        with self._lock:
            entry = self._entries.setdefault(key, CacheEntry())
            future = entry.future
            if future is not None and not force:
                if not future.done():
                    return future, False
                recent = (
                    entry.started_at is not None
                    and self._clock() - entry.started_at < dedupe_interval
                )
                if recent and not entry.invalidated:
                    return future, False

            future = Future()
            future.set_running_or_notify_cancel()
            entry.future = future
            entry.started_at = self._clock()
            return future, True

    def _run(self, key: CacheKey, fetcher: Fetcher, future: Future, background: bool) -> None:
        try:
            data = fetcher()
        except Exception as e:
            with self._lock:
                entry = self._entries.get(key)
                if entry is not None and entry.future is future:
                    entry.error = e
            future.set_exception(e)
            if background and self.on_error is not None:
                try:
                    self.on_error(key, e)
                except Exception as hook_error:
                    logger.error(f"Error in cache error hook: {hook_error}")
            else:
                logger.debug(f"Fetch of {key} failed: {e}")
            return

        with self._lock:
            entry = self._entries.get(key)
            # Superseded by a local write, an invalidation or a forced fetch
            if entry is not None and entry.future is future:
                self._write(entry, data)
        future.set_result(data)

    def fetch(
        self,
        key: CacheKey,
        fetcher: Fetcher,
        dedupe_interval: float = 0.0,
        force: bool = False,
    ) -> Any:
        """
        Fetch ``key`` on the calling thread, joining an identical request
        when one is in flight or finished within ``dedupe_interval``.

        Raises whatever the fetcher raised; the entry keeps its stale data.
        """
        future, owner = self._begin(key, dedupe_interval, force)
        if owner:
            self._run(key, fetcher, future, background=False)
        return future.result()

    def revalidate(
        self,
        key: CacheKey,
        fetcher: Fetcher,
        dedupe_interval: float = 0.0,
        force: bool = False,
    ) -> Future:
        """Like ``fetch`` but runs on the background pool; returns the future."""
        future, owner = self._begin(key, dedupe_interval, force)
        if owner:
            self._get_executor().submit(self._run, key, fetcher, future, True)
        return future

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._max_workers,
                    thread_name_prefix="CacheRevalidate",
                )
            return self._executor

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait)

    def get_info(self) -> Dict[str, Any]:
        """Summary of cached keys for the debug panel."""
        now = self._clock()
        with self._lock:
            items = [
                {
                    "key": "/".join(str(part) for part in key),
                    "has_data": entry.has_data,
                    "age_s": round(now - entry.updated_at, 1) if entry.updated_at is not None else None,
                    "fetching": entry.is_fetching,
                    "invalidated": entry.invalidated,
                    "error": str(entry.error) if entry.error else None,
                }
                for key, entry in self._entries.items()
            ]
        return {"item_count": len(items), "items": items}

