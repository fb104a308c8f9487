import math
import time
from typing import Callable

from fastapi import Request

from idealcar.exceptions import RateLimited


class SlidingWindowLimiter:
    """At most ``max_requests`` hits per key within ``window_seconds``.

    Old timestamps are dropped when a key is seen again; keys themselves
    are never removed.
    """

    def __init__(self, max_requests: int, window_seconds: int,
                 clock: Callable[[], float] = time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock
        self.hits: dict[str, list[float]] = {}  # key -> [timestamps]

    def hit(self, key: str) -> None:
        now = self.clock()
        recent = [ts for ts in self.hits.get(key, []) if now - ts < self.window_seconds]
        if len(recent) >= self.max_requests:
            self.hits[key] = recent
            retry_after = math.ceil(self.window_seconds - (now - recent[0]))
            raise RateLimited(max(1, retry_after))
        recent.append(now)
        self.hits[key] = recent


def get_ip(request: Request) -> str:
    """Client address; ``X-Forwarded-For`` counts only behind a trusted proxy."""
    if request.app.state.settings.TRUST_FORWARDED_FOR:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def login_rate_limit(request: Request) -> None:
    request.app.state.login_limiter.hit(get_ip(request))
