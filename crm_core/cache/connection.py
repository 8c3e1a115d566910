# =============================================================================
# crm_core/cache/connection.py
# Backend Reachability Detection
# =============================================================================
"""
ConnectionMonitor - tracks whether the CRM backend answers ``GET /health``.

The check runs on a daemon thread, every ``check_interval_online`` seconds
while the backend answers and every ``check_interval_offline`` seconds while
it does not. Listeners are told about transitions only; repeated results of
the same kind are silent.
"""

from __future__ import annotations
import threading
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from crm_core.errors import CRMError
from crm_core.logging import get_logger

logger = get_logger(__name__)


class ConnectionStatus(Enum):
    ONLINE = "online"
    OFFLINE = "offline"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ConnectionState:
    """Snapshot of reachability; every check produces a new one."""
    status: ConnectionStatus = ConnectionStatus.UNKNOWN
    previous_status: ConnectionStatus = ConnectionStatus.UNKNOWN
    checked_at: Optional[datetime] = None
    last_online: Optional[datetime] = None
    consecutive_failures: int = 0
    error_message: Optional[str] = None

    @property
    def reconnected(self) -> bool:
        """True right after an offline -> online transition."""
        return (
            self.previous_status is ConnectionStatus.OFFLINE
            and self.status is ConnectionStatus.ONLINE
        )

    def succeeded(self, at: datetime) -> ConnectionState:
        return replace(
            self,
            status=ConnectionStatus.ONLINE,
            previous_status=self.status,
            checked_at=at,
            last_online=at,
            consecutive_failures=0,
            error_message=None,
        )

    def failed(self, at: datetime, message: str) -> ConnectionState:
        return replace(
            self,
            status=ConnectionStatus.OFFLINE,
            previous_status=self.status,
            checked_at=at,
            consecutive_failures=self.consecutive_failures + 1,
            error_message=message,
        )


Listener = Callable[[ConnectionState], None]


class ConnectionMonitor:
    """
    Usage:
        monitor = ConnectionMonitor(client.health.check)
        monitor.register_callback(scheduler.on_connection_change)
        monitor.start_monitoring()
    """

    CHECK_INTERVAL_ONLINE = 30
    CHECK_INTERVAL_OFFLINE = 10

    def __init__(
        self,
        health_check: Callable[[], Any],
        check_interval_online: Optional[float] = None,
        check_interval_offline: Optional[float] = None,
    ):
        self._health_check = health_check
        self._state = ConnectionState()
        self._state_lock = threading.Lock()
        self._listeners: List[Listener] = []
        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()
        self.check_interval_online = check_interval_online or self.CHECK_INTERVAL_ONLINE
        self.check_interval_offline = check_interval_offline or self.CHECK_INTERVAL_OFFLINE

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_online(self) -> bool:
        return self._state.status is ConnectionStatus.ONLINE

    def check_connection(self) -> ConnectionState:
        """Probe once; listeners run on the calling thread when the status flips."""
        try:
            self._health_check()
            failure = None
        except CRMError as e:
            failure = e.message

        now = datetime.now()
        with self._state_lock:
            before = self._state
            if failure is None:
                after = before.succeeded(now)
            else:
                after = before.failed(now, failure)
            self._state = after

        if after.status is not before.status:
            logger.info(f"Backend {before.status.value} -> {after.status.value}")
            for listener in list(self._listeners):
                try:
                    listener(after)
                except Exception as e:
                    logger.error(f"Error in connection callback: {e}")
        return after

    # ------------------------------------------------------------------
    # Background probing
    # ------------------------------------------------------------------

    def start_monitoring(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, daemon=True, name="ConnectionMonitor")
        self._thread.start()
        logger.debug("Connection monitoring started")

    def stop_monitoring(self) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=5)
        logger.debug("Connection monitoring stopped")

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                self.check_connection()
            except Exception as e:
                logger.error(f"Connection check crashed: {e}")
            delay = self.check_interval_online if self.is_online else self.check_interval_offline
            self._stop.wait(timeout=delay)

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def register_callback(self, callback: Listener) -> None:
        """Call ``callback(state)`` on every status change."""
        if callback not in self._listeners:
            self._listeners.append(callback)

    def unregister_callback(self, callback: Listener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def as_dict(self) -> Dict[str, Any]:
        """Status summary for the debug panel."""
        state = self._state
        return {
            "status": state.status.value,
            "checked_at": state.checked_at.isoformat() if state.checked_at else None,
            "last_online": state.last_online.isoformat() if state.last_online else None,
            "failures": state.consecutive_failures,
            "error": state.error_message,
        }
