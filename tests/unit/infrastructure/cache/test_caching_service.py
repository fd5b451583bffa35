import pytest

from hustleai.infrastructure.cache.caching_service import ResponseCache


@pytest.fixture
def cache(clock):
    return ResponseCache(max_items=3, ttl=30.0, clock=clock)


def test_set_and_get(cache):
    cache.set("k1", {"title": "Walk my dog"})

    assert cache.get("k1") == {"title": "Walk my dog"}
    assert "k1" in cache
    assert len(cache) == 1


def test_miss_returns_none(cache):
    assert cache.get("missing") is None


def test_entry_expires_at_ttl(cache, clock):
    cache.set("k1", "v1")

    clock.now = 29.9
    assert cache.get("k1") == "v1"

    clock.now = 30.0
    assert cache.get("k1") is None
    assert "k1" not in cache


def test_per_entry_ttl_override(cache, clock):
    cache.set("short", "v", ttl=5)
    cache.set("long", "v")

    clock.now = 10
    assert cache.get("short") is None
    assert cache.get("long") == "v"


def test_fifo_eviction_ignores_reads(cache):
    for key in ("a", "b", "c"):
        cache.set(key, key.upper())
    # reading "a" does not protect it; eviction is by insertion order
    assert cache.get("a") == "A"

    cache.set("d", "D")

    assert len(cache) == 3
    assert cache.get("a") is None
    assert [cache.get(k) for k in ("b", "c", "d")] == ["B", "C", "D"]


def test_overwrite_moves_entry_to_back(cache):
    for key in ("a", "b", "c"):
        cache.set(key, key)
    cache.set("a", "again")

    cache.set("d", "d")

    assert cache.get("a") == "again"
    assert cache.get("b") is None


def test_size_never_exceeds_cap(clock):
    cache = ResponseCache(max_items=50, ttl=30.0, clock=clock)
    for i in range(120):
        cache.set(f"key-{i}", i)
        assert len(cache) <= 50

    assert cache.get("key-69") is None
    assert cache.get("key-70") == 70


def test_delete_and_clear(cache):
    cache.set("a", 1)
    cache.set("b", 2)

    cache.delete("a")
    cache.delete("missing")
    assert cache.get("a") is None

    cache.clear()
    assert len(cache) == 0
