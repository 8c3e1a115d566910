# =============================================================================
# tests/unit/test_revalidation.py
# Unit Tests for RevalidationScheduler and ConnectionMonitor
# =============================================================================

from unittest.mock import MagicMock

import pytest


class Clock:
    def __init__(self):
        self.value = 0.0

    def __call__(self):
        return self.value


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def store(clock):
    from crm_core.cache import CacheStore

    s = CacheStore(clock=clock)
    yield s
    s.shutdown(wait=True)


@pytest.fixture
def scheduler(store):
    from crm_core.cache import RevalidationScheduler

    return RevalidationScheduler(store, tick=0.01)


class TestScheduler:
    """Test polling and reconnect revalidation"""

    def test_key_without_policy_is_not_registered(self, scheduler):
        from crm_core.cache import QueryOptions

        scheduler.register(("k",), lambda: 1, QueryOptions(revalidate_on_reconnect=False))

        assert scheduler.registered_keys() == []

    def test_poll_refetches_only_stale_keys(self, scheduler, store, clock):
        from crm_core.cache import QueryOptions

        polled = MagicMock(return_value="fresh")
        store.fetch(("customers",), polled)
        scheduler.register(("customers",), polled, QueryOptions(refresh_interval=30))

        clock.value = 10
        assert scheduler.poll_due() == []

        clock.value = 31
        due = scheduler.poll_due()
        store.entry(("customers",)).future.result(timeout=5)

        assert due == [("customers",)]
        assert polled.call_count == 2

    def test_failed_poll_waits_a_full_interval(self, scheduler, store, clock):
        from crm_core.cache import QueryOptions
        from crm_core.errors import NetworkError

        store.fetch(("customers",), lambda: ["ada"])
        failing = MagicMock(side_effect=NetworkError("down"))
        scheduler.register(("customers",), failing, QueryOptions(refresh_interval=30))

        for second in range(30, 60):
            clock.value = float(second)
            if scheduler.poll_due():
                store.entry(("customers",)).future.exception(timeout=5)

        assert failing.call_count == 1
        assert store.get(("customers",)) == ["ada"]

        clock.value = 60.0
        assert scheduler.poll_due() == [("customers",)]

    def test_keys_without_interval_are_not_polled(self, scheduler, store, clock):
        from crm_core.cache import QueryOptions

        store.set(("notes",), [])
        scheduler.register(("notes",), lambda: [], QueryOptions())
        clock.value = 10_000

        assert scheduler.poll_due() == []

    def test_reconnect_revalidates_enabled_keys(self, scheduler, store):
        from crm_core.cache import QueryOptions

        a = MagicMock(return_value=1)
        b = MagicMock(return_value=2)
        scheduler.register(("a",), a, QueryOptions())
        scheduler.register(("b",), b, QueryOptions(refresh_interval=5, revalidate_on_reconnect=False))

        keys = scheduler.revalidate_on_reconnect()
        store.entry(("a",)).future.result(timeout=5)

        assert keys == [("a",)]
        a.assert_called_once()
        b.assert_not_called()

    def test_connection_callback_only_on_reconnect(self, scheduler):
        from crm_core.cache import ConnectionState, ConnectionStatus

        scheduler.revalidate_on_reconnect = MagicMock()

        scheduler.on_connection_change(ConnectionState(ConnectionStatus.OFFLINE, ConnectionStatus.ONLINE))
        scheduler.revalidate_on_reconnect.assert_not_called()

        scheduler.on_connection_change(ConnectionState(ConnectionStatus.ONLINE, ConnectionStatus.OFFLINE))
        scheduler.revalidate_on_reconnect.assert_called_once()

    def test_start_and_stop(self, scheduler):
        scheduler.start()
        assert scheduler._thread.is_alive()

        scheduler.stop()
        assert not scheduler._thread.is_alive()


class TestConnectionMonitor:
    """Test reachability tracking"""

    def test_status_transitions_notify(self):
        from crm_core.cache import ConnectionMonitor, ConnectionStatus
        from crm_core.errors import NetworkError

        health_check = MagicMock(return_value={"status": "ok"})
        monitor = ConnectionMonitor(health_check)
        seen = []
        monitor.register_callback(lambda state: seen.append((state.previous_status, state.status)))

        monitor.check_connection()
        health_check.side_effect = NetworkError("down")
        monitor.check_connection()
        monitor.check_connection()
        health_check.side_effect = None
        state = monitor.check_connection()

        assert seen == [
            (ConnectionStatus.UNKNOWN, ConnectionStatus.ONLINE),
            (ConnectionStatus.ONLINE, ConnectionStatus.OFFLINE),
            (ConnectionStatus.OFFLINE, ConnectionStatus.ONLINE),
        ]
        assert state.reconnected
        assert state.consecutive_failures == 0

    def test_failures_are_counted(self):
        from crm_core.cache import ConnectionMonitor
        from crm_core.errors import NetworkError

        monitor = ConnectionMonitor(MagicMock(side_effect=NetworkError("down")))
        monitor.check_connection()
        monitor.check_connection()

        display = monitor.as_dict()
        assert display["status"] == "offline"
        assert display["failures"] == 2
        assert display["error"] == "down"

    def test_callback_errors_are_contained(self):
        from crm_core.cache import ConnectionMonitor

        monitor = ConnectionMonitor(MagicMock(return_value={}))
        monitor.register_callback(MagicMock(side_effect=RuntimeError("bad callback")))

        assert monitor.check_connection().status.value == "online"
