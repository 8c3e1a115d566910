# crm_core/sync/loading.py
"""Per-operation loading flags, e.g. the spinner on one reminder's "Complete" button."""
from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Hashable, Iterator, Optional, Set, Tuple


class LoadingTracker:
    def __init__(self):
        self._active: Set[Tuple[Hashable, str]] = set()
        self._lock = threading.Lock()

    @contextmanager
    def track(self, entity_id: Hashable, action: str) -> Iterator[None]:
        """Mark ``(entity_id, action)`` as running for the duration of the block."""
        flag = (entity_id, action)
        with self._lock:
            self._active.add(flag)
        try:
            yield
        finally:
            with self._lock:
                self._active.discard(flag)

    def is_loading(self, entity_id: Hashable, action: Optional[str] = None) -> bool:
        with self._lock:
            if action is not None:
                return (entity_id, action) in self._active
            return any(active_id == entity_id for active_id, _ in self._active)

    @property
    def any_loading(self) -> bool:
        with self._lock:
            return bool(self._active)
