import hashlib
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from starlette.requests import Request

logger = logging.getLogger(__name__)


@dataclass
class RateLimitEntry:
    count: int
    window_reset_at: float


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    retry_after: int = 0


class RateLimiter:
    """Process-local fixed-window limiter keyed by client identity.

    The table relies on dict insertion order: a key whose window is renewed is
    re-inserted at the end, so eviction always drops the oldest windows first.
    Best effort only; it resets on restart and is not shared across processes.
    """

    def __init__(
        self,
        limit: int,
        window_seconds: float = 60.0,
        retry_after_seconds: int = 60,
        max_keys: int = 5000,
        sweep_every: int = 100,
        clock: Callable[[], float] = time.monotonic,
        name: str = "default",
    ) -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self.retry_after_seconds = retry_after_seconds
        self.max_keys = max_keys
        self.sweep_every = max(sweep_every, 1)
        self.clock = clock
        self.name = name
        self._entries: dict[str, RateLimitEntry] = {}
        self._calls = 0

    def __len__(self) -> int:
        return len(self._entries)

    def check(self, key: str) -> RateLimitDecision:
        now = self.clock()
        self._calls += 1
        if self._calls % self.sweep_every == 0:
            self.sweep(now)

        entry = self._entries.get(key)
        if entry is None or now > entry.window_reset_at:
            self._entries.pop(key, None)
            self._entries[key] = RateLimitEntry(count=1, window_reset_at=now + self.window_seconds)
            return RateLimitDecision(allowed=True)

        entry.count += 1
        if entry.count > self.limit:
            logger.info("ratelimit.rejected limiter=%s key=%s count=%d", self.name, key, entry.count)
            return RateLimitDecision(allowed=False, retry_after=self.retry_after_seconds)
        return RateLimitDecision(allowed=True)

    def sweep(self, now: float | None = None) -> int:
        """Drop expired windows, then evict oldest keys beyond ``max_keys``."""
        current = self.clock() if now is None else now
        before = len(self._entries)
        expired = [key for key, entry in self._entries.items() if current > entry.window_reset_at]
        for key in expired:
            del self._entries[key]

        overflow = len(self._entries) - self.max_keys
        if overflow > 0:
            for key in list(self._entries)[:overflow]:
                del self._entries[key]

        removed = before - len(self._entries)
        if removed:
            logger.info(
                "ratelimit.sweep limiter=%s expired=%d evicted=%d size=%d",
                self.name,
                len(expired),
                max(overflow, 0),
                len(self._entries),
            )
        return removed


def client_key(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for", "")
    first = forwarded.split(",")[0].strip()
    if first:
        return first
    real_ip = request.headers.get("x-real-ip", "").strip()
    if real_ip:
        return real_ip
    if request.client and request.client.host:
        return request.client.host
    user_agent = request.headers.get("user-agent", "")
    return f"ua:{hashlib.sha256(user_agent.encode('utf-8')).hexdigest()[:2]}"
