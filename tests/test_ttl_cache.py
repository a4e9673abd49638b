from __future__ import annotations

from lottery_yield.utils.ttl_cache import TTLCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_values_expire_after_ttl():
    clock = FakeClock()
    cache = TTLCache(10, clock=clock)
    cache.set("a", 1)

    clock.now = 9.9
    assert cache.get("a") == 1
    clock.now = 10.0
    assert cache.get("a") is None


def test_expired_entries_purged_on_write():
    clock = FakeClock()
    cache = TTLCache(10, clock=clock)
    for n in range(50):
        cache.set(n, n)

    clock.now = 11.0
    cache.set("fresh", 1)

    assert len(cache) == 1


def test_oldest_entries_evicted_over_capacity():
    cache = TTLCache(300, clock=FakeClock(), max_entries=3)
    for key in ("a", "b", "c"):
        cache.set(key, key)

    cache.set("a", "a2")
    cache.set("d", "d")

    assert len(cache) == 3
    assert cache.get("b") is None
    assert cache.get("a") == "a2"
    assert cache.get("d") == "d"
