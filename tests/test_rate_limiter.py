from starlette.requests import Request

from hamexam.utils.rate_limiter import RateLimiter


class FakeClock:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now


def test_window_allows_limit_then_refuses():
    clock = FakeClock()
    limiter = RateLimiter(limit=2, window_ms=1000, clock=clock)

    first = limiter.hit("client")
    second = limiter.hit("client")
    third = limiter.hit("client")

    assert (first.success, first.remaining) == (True, 1)
    assert (second.success, second.remaining) == (True, 0)
    assert (third.success, third.remaining) == (False, 0)
    assert first.reset_at == third.reset_at == 1_001_000


def test_new_window_after_reset_time():
    clock = FakeClock()
    limiter = RateLimiter(limit=1, window_ms=1000, clock=clock)

    assert limiter.hit("client").success
    assert not limiter.hit("client").success

    clock.now += 1.0
    result = limiter.hit("client")
    assert result.success
    assert result.reset_at == 1_002_000


def test_keys_are_independent_and_overrides_apply():
    limiter = RateLimiter(limit=1, window_ms=1000, clock=FakeClock())

    assert limiter.hit("a").success
    assert limiter.hit("b").success
    assert limiter.hit("c", limit=3).remaining == 2


def test_reset_clears_buckets():
    limiter = RateLimiter(limit=1, window_ms=1000, clock=FakeClock())
    limiter.hit("client")

    limiter.reset()

    assert limiter.hit("client").success


def test_expired_buckets_are_evicted():
    clock = FakeClock()
    limiter = RateLimiter(limit=1, window_ms=1000, clock=clock)
    for n in range(100):
        limiter.hit(f"client-{n}")
    assert len(limiter._buckets) == 100

    clock.now += 1.0
    limiter.hit("fresh")

    assert list(limiter._buckets) == ["fresh"]


def test_live_buckets_survive_a_sweep():
    clock = FakeClock()
    limiter = RateLimiter(limit=1, window_ms=1000, clock=clock)
    limiter.hit("old")
    clock.now += 0.5
    limiter.hit("recent", window_ms=5000)

    clock.now += 0.5
    limiter.hit("fresh")

    assert set(limiter._buckets) == {"recent", "fresh"}
    assert not limiter.hit("recent").success


def _request(forwarded=None, host="10.0.0.1"):
    headers = [(b"x-forwarded-for", forwarded.encode())] if forwarded else []
    return Request({"type": "http", "headers": headers, "client": (host, 5000)})


def test_client_key_ignores_forwarded_for_by_default():
    limiter = RateLimiter()

    assert limiter.client_key(_request("203.0.113.7")) == "10.0.0.1"


def test_client_key_trusts_forwarded_for_behind_proxy():
    limiter = RateLimiter(trust_forwarded=True)

    assert limiter.client_key(_request("203.0.113.7, 10.0.0.1")) == "203.0.113.7"
    assert limiter.client_key(_request()) == "10.0.0.1"
