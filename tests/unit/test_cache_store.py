# =============================================================================
# tests/unit/test_cache_store.py
# Unit Tests for CacheStore
# =============================================================================

import threading
import time

import pytest


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    from crm_core.cache import CacheStore

    s = CacheStore(max_workers=2, clock=clock)
    yield s
    s.shutdown(wait=True)


class TestReadsAndWrites:
    """Test plain get/set/mutate"""

    def test_get_default_when_missing(self, store):
        assert store.get(("customers",), default=[]) == []
        assert not store.has(("customers",))

    def test_set_then_get(self, store):
        store.set(("customers",), ["a"])

        assert store.get(("customers",)) == ["a"]
        assert store.has(("customers",))

    def test_mutate_uses_default_when_empty(self, store):
        result = store.mutate(("customers",), lambda rows: rows + ["b"], default=[])

        assert result == ["b"]
        assert store.get(("customers",)) == ["b"]

    def test_cache_key_builds_tuples(self):
        from crm_core.cache import cache_key

        assert cache_key("customer", "c1", "notes") == ("customer", "c1", "notes")


class TestFetchDedupe:
    """Test request coalescing"""

    def test_fetch_stores_result(self, store):
        assert store.fetch(("k",), lambda: 42) == 42
        assert store.get(("k",)) == 42

    def test_recent_fetch_is_reused(self, store, clock):
        calls = []

        def fetcher():
            calls.append(1)
            return len(calls)

        store.fetch(("k",), fetcher, dedupe_interval=2)
        clock.advance(1.5)
        assert store.fetch(("k",), fetcher, dedupe_interval=2) == 1
        clock.advance(1.0)
        assert store.fetch(("k",), fetcher, dedupe_interval=2) == 2
        assert len(calls) == 2

    def test_force_bypasses_dedupe(self, store):
        calls = []
        store.fetch(("k",), lambda: calls.append(1), dedupe_interval=60)
        store.fetch(("k",), lambda: calls.append(1), dedupe_interval=60, force=True)

        assert len(calls) == 2

    def test_concurrent_fetches_share_one_request(self, store):
        release = threading.Event()
        calls = []

        def slow_fetch():
            calls.append(1)
            release.wait(timeout=5)
            return "data"

        results = []
        threads = [
            threading.Thread(target=lambda: results.append(store.fetch(("k",), slow_fetch, dedupe_interval=2)))
            for _ in range(5)
        ]
        for t in threads:
            t.start()
        time.sleep(0.1)
        release.set()
        for t in threads:
            t.join(timeout=5)

        assert len(calls) == 1
        assert results == ["data"] * 5

    def test_failure_keeps_stale_data(self, store):
        from crm_core.errors import NetworkError

        store.fetch(("k",), lambda: "old")

        def boom():
            raise NetworkError("offline")

        with pytest.raises(NetworkError):
            store.fetch(("k",), boom, force=True)

        entry = store.entry(("k",))
        assert entry.data == "old"
        assert isinstance(entry.error, NetworkError)

    def test_success_clears_error(self, store):
        from crm_core.errors import NetworkError

        def boom():
            raise NetworkError("offline")

        with pytest.raises(NetworkError):
            store.fetch(("k",), boom)
        store.fetch(("k",), lambda: "fresh", force=True)

        assert store.entry(("k",)).error is None

    def test_invalidate_resets_dedupe_window(self, store):
        calls = []
        store.fetch(("k",), lambda: calls.append(1), dedupe_interval=60)
        store.invalidate(("k",))
        store.fetch(("k",), lambda: calls.append(1), dedupe_interval=60)

        assert len(calls) == 2

    def test_local_write_wins_over_inflight_fetch(self, store):
        release = threading.Event()

        def slow_fetch():
            release.wait(timeout=5)
            return "from server"

        future = store.revalidate(("k",), slow_fetch)
        store.set(("k",), "local")
        release.set()
        future.result(timeout=5)

        assert store.get(("k",)) == "local"


class TestBackgroundRevalidation:
    """Test revalidate() and the error hook"""

    def test_revalidate_runs_in_background(self, store):
        future = store.revalidate(("k",), lambda: threading.current_thread().name)

        assert future.result(timeout=5).startswith("CacheRevalidate")
        assert store.get(("k",)).startswith("CacheRevalidate")

    def test_background_failure_calls_hook(self, clock):
        from crm_core.cache import CacheStore
        from crm_core.errors import NetworkError

        seen = []
        s = CacheStore(clock=clock, on_error=lambda key, e: seen.append((key, e)))

        def boom():
            raise NetworkError("offline")

        future = s.revalidate(("k",), boom)
        with pytest.raises(NetworkError):
            future.result(timeout=5)
        s.shutdown()

        assert seen and seen[0][0] == ("k",)


class TestOptimistic:
    """Test two-phase optimistic updates"""

    def test_rollback_restores_snapshot(self, store):
        store.set(("customers",), ["a", "b"])

        update = store.optimistic(("customers",), lambda rows: [r for r in rows if r != "a"])
        assert store.get(("customers",)) == ["b"]

        update.rollback()
        assert store.get(("customers",)) == ["a", "b"]

    def test_context_manager_rolls_back_on_error(self, store):
        store.set(("customers",), ["a", "b"])

        with pytest.raises(RuntimeError):
            with store.optimistic(("customers",), lambda rows: []):
                raise RuntimeError("server said no")

        assert store.get(("customers",)) == ["a", "b"]

    def test_context_manager_commits(self, store):
        store.set(("customers",), ["a", "b"])

        with store.optimistic(("customers",), lambda rows: ["b"]) as update:
            pass
        update.rollback()  # no-op once settled

        assert store.get(("customers",)) == ["b"]

    def test_rollback_of_empty_entry_removes_it(self, store):
        update = store.optimistic(("customers",), lambda rows: ["x"], default=[])
        update.rollback()

        assert not store.has(("customers",))


class TestInvalidation:
    def test_invalidate_matching(self, store):
        store.set(("reminders", "all", ""), [])
        store.set(("reminders", "active", ""), [])
        store.set(("customers",), [])

        matched = store.invalidate_matching(lambda k: k[0] == "reminders")

        assert len(matched) == 2
        assert store.entry(("reminders", "all", "")).invalidated
        assert not store.entry(("customers",)).invalidated

    def test_invalidate_missing_key(self, store):
        assert store.invalidate(("nothing",)) is False

    def test_get_info(self, store):
        store.set(("customer", "c1"), {"id": "c1"})

        info = store.get_info()

        assert info["item_count"] == 1
        assert info["items"][0]["key"] == "customer/c1"

    def test_get_info_age_from_time_zero(self):
        from crm_core.cache import CacheStore

        clock = FakeClock(start=0.0)
        store = CacheStore(clock=clock)
        store.set(("customers",), [])
        clock.advance(12.5)

        assert store.get_info()["items"][0]["age_s"] == 12.5
