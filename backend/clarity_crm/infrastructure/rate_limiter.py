"""Rate Limiter - in-memory fixed-window request counting as a FastAPI dependency.

Invariants:
    - One counter per (limiter name, client key); the window starts at the first hit
    - A request is rejected once the counter exceeds max_requests inside the window
    - Rejections raise RateLimitExceededError (429) with Retry-After and X-RateLimit-* headers
    - Allowed requests carry X-RateLimit-Limit / Remaining / Reset headers
    - Disabled entirely when settings.rate_limit_enabled is false

Design Decisions:
    - Process-local store (dict): single-process uvicorn deployment; counters reset
      on restart and are not shared between workers
    - Client identity: first X-Forwarded-For hop, then X-Real-IP, then the peer address
"""

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from fastapi import Request, Response

from clarity_crm.config import get_settings
from clarity_crm.core.errors import RateLimitExceededError

logger = logging.getLogger(__name__)


@dataclass
class _Window:
    count: int
    reset_at: float


_windows: dict[str, _Window] = {}


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else "unknown"


def ip_key(request: Request) -> str:
    return client_ip(request)


def ip_and_agent_key(request: Request) -> str:
    return f"{client_ip(request)}:{request.headers.get('user-agent', 'unknown')}"


def _purge_expired(now: float) -> None:
    for key in [k for k, w in _windows.items() if w.reset_at <= now]:
        del _windows[key]


def get_rate_limit_status(key: str) -> dict | None:
    window = _windows.get(key)
    if window is None or window.reset_at <= time.time():
        return None
    return {
        "count": window.count,
        "reset_time": datetime.fromtimestamp(window.reset_at, timezone.utc).isoformat(),
    }


def clear_rate_limit(key: str) -> None:
    _windows.pop(key, None)


def clear_all() -> None:
    _windows.clear()


class RateLimiter:
    """Callable dependency: `Depends(strict_limiter)`."""

    def __init__(
        self,
        name: str,
        max_requests: int,
        window_seconds: int,
        key_func: Callable[[Request], str] = ip_key,
    ):
        self.name = name
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.key_func = key_func

    def key_for(self, request: Request) -> str:
        return f"rate_limit:{self.name}:{self.key_func(request)}"

    def hit(self, key: str, now: float | None = None) -> _Window:
        now = time.time() if now is None else now
        if len(_windows) > 10_000:
            _purge_expired(now)
        window = _windows.get(key)
        if window is None or window.reset_at <= now:
            window = _Window(count=0, reset_at=now + self.window_seconds)
            _windows[key] = window
        window.count += 1
        return window

    async def __call__(self, request: Request, response: Response) -> None:
        if not get_settings().rate_limit_enabled:
            return
        now = time.time()
        key = self.key_for(request)
        window = self.hit(key, now)
        reset_at = datetime.fromtimestamp(window.reset_at, timezone.utc)

        if window.count > self.max_requests:
            retry_after = max(1, int(window.reset_at - now + 0.999))
            logger.warning(
                f"Rate limit '{self.name}' exceeded",
                extra={"path": request.url.path, "client_ip": client_ip(request)},
            )
            raise RateLimitExceededError(self.max_requests, retry_after, reset_at)

        response.headers["X-RateLimit-Limit"] = str(self.max_requests)
        response.headers["X-RateLimit-Remaining"] = str(self.max_requests - window.count)
        response.headers["X-RateLimit-Reset"] = reset_at.isoformat()


# ─── Predefined limiters ─────────────────────────────────────────

auth_limiter = RateLimiter("auth", 5, 15 * 60, key_func=ip_and_agent_key)
api_limiter = RateLimiter("api", 100, 60)
strict_limiter = RateLimiter("strict", 10, 60)
read_limiter = RateLimiter("read", 200, 60)
create_task_limiter = RateLimiter("create_task", 20, 60)
create_customer_limiter = RateLimiter("create_customer", 15, 60)
