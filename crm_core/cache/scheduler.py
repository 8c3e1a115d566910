# =============================================================================
# crm_core/cache/scheduler.py
# Background Revalidation of Cached Reads
# =============================================================================
"""
RevalidationScheduler - keeps registered cache keys fresh.

Features:
- Background polling thread for keys with a refresh interval
- Revalidation of every reconnect-enabled key when the backend comes back
"""

from __future__ import annotations
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from crm_core.logging import get_logger

from .connection import ConnectionState
from .store import CacheKey, CacheStore, Fetcher

logger = get_logger(__name__)


@dataclass(frozen=True)
class QueryOptions:
    """Revalidation policy for one kind of read."""
    dedupe_interval: float = 2.0
    refresh_interval: Optional[float] = None  # seconds; None = fetch on demand only
    revalidate_on_reconnect: bool = True


@dataclass
class Registration:
    key: CacheKey
    fetcher: Fetcher
    options: QueryOptions


class RevalidationScheduler:
    """
    Usage:
        scheduler = RevalidationScheduler(store)
        scheduler.register(("customers",), client.customers.get_all,
                           QueryOptions(refresh_interval=30))
        scheduler.start()
    """

    TICK = 1.0  # Seconds between polling passes

    def __init__(self, store: CacheStore, tick: Optional[float] = None):
        self.store = store
        self.tick = tick or self.TICK
        self._registrations: Dict[CacheKey, Registration] = {}
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()

    def register(self, key: CacheKey, fetcher: Fetcher, options: QueryOptions) -> None:
        """Track a key so it is polled and/or revalidated on reconnect."""
        if options.refresh_interval is None and not options.revalidate_on_reconnect:
            return
        with self._lock:
            self._registrations[key] = Registration(key, fetcher, options)

    def unregister(self, key: CacheKey) -> None:
        with self._lock:
            self._registrations.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._registrations.clear()

    def registered_keys(self) -> List[CacheKey]:
        with self._lock:
            return list(self._registrations)

    def _snapshot(self) -> List[Registration]:
        with self._lock:
            return list(self._registrations.values())

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    def poll_due(self, now: Optional[float] = None) -> List[CacheKey]:
        """
        Revalidate every polled key not fetched or attempted within its interval.

        Returns:
            Keys a revalidation was requested for
        """
        now = self.store.now() if now is None else now
        due = []
        for reg in self._snapshot():
            interval = reg.options.refresh_interval
            if interval is None:
                continue
            entry = self.store.entry(reg.key)
            if entry is None or entry.is_fetching:
                continue
            # Failed attempts count as polls
            stamps = [t for t in (entry.updated_at, entry.started_at) if t is not None]
            last = max(stamps) if stamps else None
            if last is None or now - last >= interval:
                self.store.revalidate(reg.key, reg.fetcher, reg.options.dedupe_interval)
                due.append(reg.key)
        return due

    def start(self) -> None:
        """Start the background polling thread."""
        if self._thread is not None and self._thread.is_alive():
            return

        self._stop.clear()
        self._thread = threading.Thread(
            target=self._loop,
            daemon=True,
            name="RevalidationScheduler",
        )
        self._thread.start()
        logger.info("Revalidation scheduler started")

    def stop(self) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=5)
        logger.info("Revalidation scheduler stopped")

    def _loop(self) -> None:
        while not self._stop.is_set():
            if self._stop.wait(timeout=self.tick):
                break
            try:
                self.poll_due()
            except Exception as e:
                logger.error(f"Revalidation error: {e}")

    # ------------------------------------------------------------------
    # Reconnect
    # ------------------------------------------------------------------

    def revalidate_on_reconnect(self) -> List[CacheKey]:
        keys = []
        for reg in self._snapshot():
            if reg.options.revalidate_on_reconnect:
                self.store.revalidate(reg.key, reg.fetcher, force=True)
                keys.append(reg.key)
        if keys:
            logger.info(f"Connection restored, revalidating {len(keys)} cached reads")
        return keys

    def on_connection_change(self, state: ConnectionState) -> None:
        """ConnectionMonitor callback."""
        if state.reconnected:
            self.revalidate_on_reconnect()
