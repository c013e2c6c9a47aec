import threading
import time

import pytest

from scenario_pregen.cache import (
    DEFAULT_CLEANUP_INTERVAL,
    DEFAULT_MAX_SIZE,
    DEFAULT_TTL,
    GenericCache,
    cache_key,
)


class FakeClock:
    def __init__(self, t=1000.0):
        self.t = t

    def __call__(self):
        return self.t

    def advance(self, seconds):
        self.t += seconds


def make_cache(clock=None, **kwargs):
    kwargs.setdefault("default_ttl", 60)
    kwargs.setdefault("max_size", 100)
    return GenericCache(clock=clock or FakeClock(), start_sweeper=False, **kwargs)


def test_set_get_and_miss():
    cache = make_cache()
    cache.set("a", {"x": 1})
    assert cache.get("a") == {"x": 1}
    assert cache.get("missing") is None
    assert cache.get("missing", "fallback") == "fallback"
    assert cache.has("a")
    assert not cache.has("missing")
    assert cache.delete("a") is True
    assert cache.delete("a") is False


def test_expired_entry_is_absent_and_stays_gone():
    clock = FakeClock()
    cache = make_cache(clock, default_ttl=10)
    cache.set("a", "v")
    cache.set("b", "v")
    clock.advance(10)  # now - last_touch == ttl counts as expired
    assert cache.get("a") is None
    assert cache.has("b") is False
    clock.advance(-5)
    assert cache.get("a") is None
    assert cache.has("b") is False
    assert cache.size() == 0


def test_get_slides_expiry_but_has_does_not():
    clock = FakeClock()
    cache = make_cache(clock, default_ttl=10)
    cache.set("read", 1)
    cache.set("checked", 2)
    clock.advance(6)
    assert cache.get("read") == 1
    assert cache.has("checked")
    clock.advance(6)
    assert cache.get("read") == 1
    assert cache.has("checked") is False


def test_get_counts_accesses_has_does_not():
    cache = make_cache()
    cache.set("k", "v")
    cache.get("k")
    cache.get("k")
    cache.has("k")
    assert cache.access_counts() == {"k": 2}
    cache.set("k", "v2")
    assert cache.access_counts() == {"k": 0}
    assert cache.get("k") == "v2"


def test_per_entry_ttl_overrides_default():
    clock = FakeClock()
    cache = make_cache(clock, default_ttl=100)
    cache.set("short", 1, ttl=5)
    cache.set("bad-ttl", 2, ttl=-3)
    clock.advance(5)
    assert cache.get("short") is None
    assert cache.get("bad-ttl") == 2


def test_size_never_exceeds_max_size():
    clock = FakeClock()
    cache = make_cache(clock, max_size=5)
    for i in range(6):
        cache.set(f"k{i}", i)
        clock.advance(1)
    assert cache.size() <= 5
    for i in range(50):
        cache.set(f"more{i}", "x" * 1000)
    assert cache.size() <= 5


def test_oldest_touched_entry_is_evicted():
    clock = FakeClock()
    cache = make_cache(clock, max_size=3, default_ttl=10_000)
    for key in ("A", "B", "C"):
        cache.set(key, key)
        clock.advance(1)
    assert cache.get("B") == "B"
    clock.advance(1)
    cache.set("D", "D")
    assert not cache.has("A")
    assert cache.has("B") and cache.has("C") and cache.has("D")


def test_eviction_tie_takes_first_inserted():
    cache = make_cache(max_size=2)  # clock never moves: all touches equal
    cache.set("first", 1)
    cache.set("second", 2)
    cache.set("third", 3)
    assert cache.keys() == ["second", "third"]


def test_overwrite_at_capacity_does_not_evict():
    clock = FakeClock()
    cache = make_cache(clock, max_size=2)
    cache.set("a", 1)
    clock.advance(1)
    cache.set("b", 2)
    cache.set("a", 10)
    assert cache.get("a") == 10
    assert cache.get("b") == 2


def test_sweep_removes_only_expired():
    clock = FakeClock()
    cache = make_cache(clock, default_ttl=10)
    cache.set("old", 1)
    clock.advance(8)
    cache.set("new", 2)
    clock.advance(3)
    assert cache.sweep() == 1
    assert cache.keys() == ["new"]
    assert cache.stats().total == 1


def test_sweep_rechecks_entries_refreshed_after_snapshot(monkeypatch):
    clock = FakeClock()
    cache = make_cache(clock, default_ttl=10)
    cache.set("stale", 1)
    cache.set("refreshed", 2)
    clock.advance(11)
    snapshot = cache._expired_keys()
    assert sorted(snapshot) == ["refreshed", "stale"]
    # a writer refreshes the entry between the snapshot and the deletions
    cache.set("refreshed", 3)
    monkeypatch.setattr(cache, "_expired_keys", lambda: snapshot)
    assert cache.sweep() == 1
    assert cache.get("refreshed") == 3


def test_background_sweeper_removes_expired_entries():
    clock = FakeClock()
    cache = GenericCache(default_ttl=5, max_size=10, cleanup_interval=0.01, clock=clock)
    try:
        cache.set("a", 1)
        clock.advance(6)
        deadline = time.monotonic() + 5
        while cache.stats().total and time.monotonic() < deadline:
            time.sleep(0.01)
        assert cache.stats().total == 0
    finally:
        cache.destroy()


def test_destroy_stops_sweeper_and_degrades_to_noops():
    cache = GenericCache(cleanup_interval=0.01)
    cache.set("k", "v")
    sweeper = cache._sweeper
    assert sweeper is not None and sweeper.is_alive()
    cache.destroy()
    assert not sweeper.is_alive()
    assert cache.destroyed

    cache.set("after", "value")
    assert cache.get("after") is None
    assert cache.has("k") is False
    assert cache.delete("k") is False
    assert cache.size() == 0
    assert cache.sweep() == 0
    cache.clear()
    cache.destroy()
    assert cache.stats().total == 0


def test_context_manager_destroys():
    with GenericCache(cleanup_interval=0.01) as cache:
        cache.set("k", 1)
    assert cache.destroyed


@pytest.mark.parametrize(
    "ttl,max_size,interval",
    [(-1, 0, -100), (0, -5, 0), ("soon", None, float("nan")), (True, 0.5, float("inf"))],
)
def test_invalid_config_is_clamped(ttl, max_size, interval):
    cache = GenericCache(default_ttl=ttl, max_size=max_size, cleanup_interval=interval, start_sweeper=False)
    assert cache.default_ttl == DEFAULT_TTL
    assert cache.max_size == DEFAULT_MAX_SIZE
    assert cache.cleanup_interval == DEFAULT_CLEANUP_INTERVAL
    cache.set("k", "v")
    assert cache.get("k") == "v"


@pytest.mark.parametrize(
    "key",
    ["", "   ", "k" * 10_000, "a\x00b\n\t\x1b[0m", "ключ-🔑", None, 42, ("tuple", 1)],
)
def test_malformed_keys_are_tolerated(key):
    cache = make_cache()
    cache.set(key, "value")
    assert cache.get(key) == "value"
    assert cache.has(key)
    assert cache.delete(key)


def test_unserializable_values_do_not_break_cache():
    circular = {"name": "loop"}
    circular["self"] = circular
    values = {"none": None, "func": lambda: None, "circular": circular, "obj": object(), "intkeys": {1: "a"}}
    cache = make_cache()
    for key, value in values.items():
        cache.set(key, value)
        assert cache.get(key) is value
    stats = cache.stats()
    assert stats.total == len(values)
    assert stats.approx_bytes is not None and stats.approx_bytes > 0
    cache.set("normal", "value")
    assert cache.get("normal") == "value"


def test_stats_counts_hits_misses_and_expired():
    clock = FakeClock()
    cache = make_cache(clock, default_ttl=10, max_size=7)
    cache.set("live", 1)
    cache.set("dead", 2, ttl=1)
    cache.get("live")
    cache.get("live")
    cache.get("nope")
    clock.advance(2)
    stats = cache.stats()
    assert (stats.total, stats.valid, stats.expired, stats.max_size) == (2, 1, 1, 7)
    assert stats.hits == 2 and stats.misses == 1
    assert stats.hit_rate == pytest.approx(2 / 3)
    assert cache.size() == 1


def test_concurrent_writers_never_expose_partial_values():
    cache = GenericCache(max_size=10, start_sweeper=False)
    payloads = [tuple([i] * 50) for i in range(5)]
    seen = []
    stop = threading.Event()

    def writer(p):
        while not stop.is_set():
            cache.set("shared", p)

    def reader():
        for _ in range(2000):
            v = cache.get("shared")
            if v is not None:
                seen.append(v)

    writers = [threading.Thread(target=writer, args=(p,)) for p in payloads]
    for t in writers:
        t.start()
    try:
        reader()
    finally:
        stop.set()
        for t in writers:
            t.join()
    assert seen
    assert all(v in payloads for v in seen)


def test_key_helpers():
    assert cache_key("scenario", "slug", "en") == "scenario:slug:en"
