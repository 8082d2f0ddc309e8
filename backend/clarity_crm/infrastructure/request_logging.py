"""Request Logging - per-request id, access log line and X-Request-ID header.

Invariants:
    - Every response carries X-Request-ID (inbound header reused when present)
    - 5xx logged at ERROR, 4xx at WARNING, everything else at INFO
    - request.state.request_id is set before the route runs
    - An exception escaping the app is logged as a 500 with its traceback, then re-raised
"""

import logging
import secrets
import time
from typing import Callable

from fastapi import Request

from clarity_crm.infrastructure.rate_limiter import client_ip

logger = logging.getLogger(__name__)


def new_request_id() -> str:
    return f"req_{int(time.time() * 1000)}_{secrets.token_hex(4)}"


def _log_access(
    request: Request, request_id: str, status_code: int, start: float,
    exc_info: bool = False,
) -> None:
    duration_ms = round((time.perf_counter() - start) * 1000, 1)
    level = logging.INFO
    if status_code >= 500:
        level = logging.ERROR
    elif status_code >= 400:
        level = logging.WARNING
    logger.log(
        level,
        f"{request.method} {request.url.path} {status_code} ({duration_ms}ms)",
        exc_info=exc_info,
        extra={
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": status_code,
            "duration_ms": duration_ms,
            "client_ip": client_ip(request),
        },
    )


async def log_requests(request: Request, call_next: Callable):
    request_id = request.headers.get("x-request-id") or new_request_id()
    request.state.request_id = request_id
    start = time.perf_counter()

    try:
        response = await call_next(request)
    except Exception:
        _log_access(request, request_id, 500, start, exc_info=True)
        raise

    _log_access(request, request_id, response.status_code, start)
    response.headers["X-Request-ID"] = request_id
    return response
