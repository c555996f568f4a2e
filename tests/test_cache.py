from hamexam.utils.cache import CacheService, make_key


def test_cache_degrades_to_miss_without_redis():
    cache = CacheService("")

    assert not cache.enabled
    assert not cache.ping()
    assert cache.set("k", {"a": 1}) is False
    assert cache.get("k") is None
    assert cache.delete_prefix("leaderboard") == 0


def test_make_key():
    assert make_key("leaderboard", 100, 0) == "leaderboard:100:0"
    assert make_key("leaderboard") == "leaderboard"
