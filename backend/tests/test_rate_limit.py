"""Tests for the inbound fixed-window rate limiter."""

import asyncio
from typing import Any

import pytest
from starlette.requests import Request

from fpl_advisor.services.rate_limit import (
    RATE_LIMITS,
    RateLimitConfig,
    RateLimiter,
    RateLimitResult,
    by_endpoint,
    by_ip,
    by_user_id,
    client_ip,
)


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def make_request(headers: dict[str, str] | None = None, host: str | None = "9.9.9.9") -> Request:
    scope: dict[str, Any] = {
        "type": "http",
        "method": "GET",
        "path": "/api/injuries",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": (host, 50000) if host else None,
    }
    return Request(scope)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def limiter(clock: FakeClock) -> RateLimiter:
    return RateLimiter(clock=clock)


@pytest.fixture
def config() -> RateLimitConfig:
    return RateLimitConfig("test", max_requests=3, window_seconds=60)


class TestCheck:
    """Tests for RateLimiter.check."""

    def test_allows_up_to_max_requests(self, limiter: RateLimiter, config: RateLimitConfig):
        results = [limiter.check(config, "ip:1.1.1.1") for _ in range(3)]

        assert all(r.allowed for r in results)
        assert [r.remaining for r in results] == [2, 1, 0]

    def test_rejects_request_over_limit(self, limiter: RateLimiter, config: RateLimitConfig):
        for _ in range(3):
            limiter.check(config, "ip:1.1.1.1")

        result = limiter.check(config, "ip:1.1.1.1")

        assert result.allowed is False
        assert result.remaining == 0
        assert result.limit == 3

    def test_window_resets_after_expiry(
        self, limiter: RateLimiter, config: RateLimitConfig, clock: FakeClock
    ):
        for _ in range(4):
            limiter.check(config, "ip:1.1.1.1")

        clock.now += 60
        assert limiter.check(config, "ip:1.1.1.1").allowed is False

        clock.now += 0.5
        result = limiter.check(config, "ip:1.1.1.1")

        assert result.allowed is True
        assert result.remaining == 2
        assert result.reset_time == clock.now + 60

    def test_keys_are_independent(self, limiter: RateLimiter, config: RateLimitConfig):
        for _ in range(4):
            limiter.check(config, "ip:1.1.1.1")

        assert limiter.check(config, "ip:2.2.2.2").allowed is True

    def test_configs_do_not_share_counters(self, limiter: RateLimiter, config: RateLimitConfig):
        """The same caller has separate budgets per named limit."""
        other = RateLimitConfig("other", max_requests=1, window_seconds=60)
        for _ in range(4):
            limiter.check(config, "ip:1.1.1.1")

        assert limiter.check(other, "ip:1.1.1.1").allowed is True
        assert len(limiter) == 2

    def test_check_request_uses_key_generator(self, limiter: RateLimiter):
        config = RateLimitConfig("users", max_requests=1, window_seconds=60, key_generator=by_user_id)
        alice = make_request({"Authorization": "Bearer alice"})
        bob = make_request({"Authorization": "Bearer bob"})

        assert limiter.check_request(config, alice).allowed is True
        assert limiter.check_request(config, alice).allowed is False
        assert limiter.check_request(config, bob).allowed is True


class TestResult:
    def test_retry_after_rounds_up(self):
        result = RateLimitResult(allowed=False, limit=5, remaining=0, reset_time=1010.2)

        assert result.retry_after(1000.0) == 11
        assert result.retry_after(2000.0) == 0

    def test_headers(self):
        result = RateLimitResult(allowed=True, limit=5, remaining=4, reset_time=0.0)

        assert result.headers() == {
            "X-RateLimit-Limit": "5",
            "X-RateLimit-Remaining": "4",
            "X-RateLimit-Reset": "1970-01-01T00:00:00+00:00",
        }


class TestKeyGenerators:
    def test_forwarded_for_takes_first_hop(self):
        request = make_request({"X-Forwarded-For": "1.2.3.4, 10.0.0.1"})

        assert client_ip(request) == "1.2.3.4"
        assert by_ip(request) == "ip:1.2.3.4"

    @pytest.mark.parametrize("header", ["X-Real-IP", "CF-Connecting-IP"])
    def test_proxy_headers(self, header: str):
        assert client_ip(make_request({header: "5.6.7.8"})) == "5.6.7.8"

    def test_falls_back_to_socket_peer(self):
        assert client_ip(make_request()) == "9.9.9.9"

    def test_unknown_without_any_source(self):
        assert client_ip(make_request(host=None)) == "unknown"

    def test_anonymous_user_bucket(self):
        assert by_user_id(make_request()) == "user:anonymous"

    def test_endpoint_key(self):
        key = by_endpoint("/api/team/import")

        assert key(make_request()) == "endpoint:/api/team/import:9.9.9.9"


class TestPresets:
    @pytest.mark.parametrize(
        "name,max_requests,window",
        [
            ("auth", 5, 900),
            ("signup", 3, 3600),
            ("api", 100, 60),
            ("read_only", 200, 60),
            ("expensive", 10, 3600),
            ("fpl_import", 20, 3600),
        ],
    )
    def test_named_limits(self, name: str, max_requests: int, window: int):
        config = RATE_LIMITS[name]

        assert config.name == name
        assert config.max_requests == max_requests
        assert config.window_seconds == window

    def test_chat_limit_keys_by_user(self):
        assert RATE_LIMITS["expensive"].key_generator is by_user_id


class TestSweep:
    def test_sweep_drops_only_expired(
        self, limiter: RateLimiter, config: RateLimitConfig, clock: FakeClock
    ):
        limiter.check(config, "old")
        clock.now += 30
        limiter.check(config, "new")
        clock.now += 31

        removed = limiter.sweep()

        assert removed == 1
        assert len(limiter) == 1

    async def test_background_sweep(self, config: RateLimitConfig, clock: FakeClock):
        limiter = RateLimiter(sweep_interval=0.01, clock=clock)
        limiter.check(config, "a")
        clock.now += 61

        limiter.start()
        await asyncio.sleep(0.05)
        await limiter.stop()

        assert len(limiter) == 0

    async def test_stop_without_start_is_noop(self, limiter: RateLimiter):
        await limiter.stop()
