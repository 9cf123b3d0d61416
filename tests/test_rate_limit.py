from starlette.requests import Request

from blurb_studio.security.rate_limit import RateLimiter, client_key


class _Clock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def _request(headers: dict[str, str], client: tuple[str, int] | None = None) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(key.lower().encode(), value.encode()) for key, value in headers.items()],
        "client": client,
    }
    return Request(scope)


def test_rejects_call_over_limit_within_window() -> None:
    limiter = RateLimiter(limit=3, clock=_Clock())

    assert [limiter.check("1.2.3.4").allowed for _ in range(3)] == [True, True, True]
    decision = limiter.check("1.2.3.4")
    assert decision.allowed is False
    assert decision.retry_after == 60


def test_other_key_is_independent() -> None:
    limiter = RateLimiter(limit=1, clock=_Clock())

    assert limiter.check("a").allowed is True
    assert limiter.check("a").allowed is False
    assert limiter.check("b").allowed is True


def test_window_expiry_replaces_entry() -> None:
    clock = _Clock()
    limiter = RateLimiter(limit=1, window_seconds=60, clock=clock)

    assert limiter.check("a").allowed is True
    assert limiter.check("a").allowed is False
    clock.now += 60.5
    assert limiter.check("a").allowed is True
    assert limiter.check("a").allowed is False


def test_sweep_bounds_table_size() -> None:
    limiter = RateLimiter(limit=5, max_keys=50, sweep_every=1000, clock=_Clock())
    for index in range(200):
        limiter.check(f"10.0.0.{index}")
    assert len(limiter) == 200

    limiter.sweep()
    assert len(limiter) <= 50
    # oldest-inserted keys go first
    assert limiter.check("10.0.0.199").allowed is True
    assert "10.0.0.0" not in limiter._entries


def test_periodic_sweep_runs_inside_check() -> None:
    limiter = RateLimiter(limit=5, max_keys=10, sweep_every=25, clock=_Clock())
    for index in range(100):
        limiter.check(f"key-{index}")
    assert len(limiter) <= 10 + 24


def test_sweep_drops_expired_entries() -> None:
    clock = _Clock()
    limiter = RateLimiter(limit=5, window_seconds=60, clock=clock)
    limiter.check("old")
    clock.now += 61
    limiter.check("fresh")

    assert limiter.sweep() == 1
    assert len(limiter) == 1


def test_client_key_prefers_forwarded_for() -> None:
    request = _request({"X-Forwarded-For": "203.0.113.7, 10.0.0.1", "X-Real-IP": "10.0.0.2"}, ("10.0.0.3", 5000))
    assert client_key(request) == "203.0.113.7"


def test_client_key_falls_back_to_real_ip_then_peer() -> None:
    assert client_key(_request({"X-Real-IP": "198.51.100.4"}, ("10.0.0.3", 1))) == "198.51.100.4"
    assert client_key(_request({}, ("10.0.0.3", 1))) == "10.0.0.3"


def test_client_key_without_address_uses_user_agent_bucket() -> None:
    first = client_key(_request({"User-Agent": "curl/8.0"}))
    second = client_key(_request({"User-Agent": "Mozilla/5.0"}))
    assert first.startswith("ua:")
    assert len(first) == 5
    assert first != "unknown"
    assert client_key(_request({"User-Agent": "curl/8.0"})) == first
    assert second.startswith("ua:")
