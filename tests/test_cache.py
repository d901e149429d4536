from app.core.cache import TTLCache


def test_set_and_get():
    cache: TTLCache[str] = TTLCache(max_size=2, ttl_seconds=60)
    cache.set("a", "alice")
    assert cache.get("a") == "alice"
    assert cache.get("missing") is None


def test_oldest_entry_evicted_when_full():
    cache: TTLCache[int] = TTLCache(max_size=2, ttl_seconds=60)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.set("c", 3)
    assert cache.get("a") is None
    assert len(cache) == 2


def test_zero_ttl_disables_cache():
    cache: TTLCache[int] = TTLCache(max_size=2, ttl_seconds=0)
    cache.set("a", 1)
    assert cache.get("a") is None
    assert not cache.enabled


def test_expired_entries_are_dropped(monkeypatch):
    now = [100.0]
    monkeypatch.setattr("app.core.cache.monotonic", lambda: now[0])
    cache: TTLCache[int] = TTLCache(max_size=2, ttl_seconds=5)
    cache.set("a", 1)
    now[0] = 106.0
    assert cache.get("a") is None


def test_invalidate():
    cache: TTLCache[int] = TTLCache(max_size=2, ttl_seconds=60)
    cache.set("a", 1)
    cache.invalidate("a")
    assert cache.get("a") is None
