"""Request logging - access line, X-Request-ID and unhandled exceptions."""

import logging

import pytest
from fastapi import Request, Response

from clarity_crm.infrastructure.request_logging import log_requests


def _request(headers: dict[str, str] | None = None) -> Request:
    return Request({
        "type": "http",
        "method": "POST",
        "scheme": "http",
        "path": "/api/deals",
        "query_string": b"",
        "server": ("test", 80),
        "client": ("10.0.0.1", 5000),
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
    })


def _access_records(caplog) -> list[logging.LogRecord]:
    return [r for r in caplog.records if r.name == "clarity_crm.infrastructure.request_logging"]


async def test_reuses_inbound_request_id(caplog):
    async def call_next(request):
        return Response(status_code=201)

    caplog.set_level(logging.INFO)
    response = await log_requests(_request({"X-Request-ID": "req_abc"}), call_next)

    assert response.headers["X-Request-ID"] == "req_abc"
    [record] = _access_records(caplog)
    assert record.levelno == logging.INFO
    assert record.status_code == 201
    assert record.request_id == "req_abc"


async def test_client_errors_log_at_warning(caplog):
    async def call_next(request):
        return Response(status_code=404)

    caplog.set_level(logging.INFO)
    response = await log_requests(_request(), call_next)

    assert response.headers["X-Request-ID"].startswith("req_")
    assert _access_records(caplog)[0].levelno == logging.WARNING


async def test_unhandled_exception_is_logged_as_500_and_reraised(caplog):
    async def call_next(request):
        raise RuntimeError("boom")

    caplog.set_level(logging.INFO)
    request = _request({"X-Request-ID": "req_crash"})
    with pytest.raises(RuntimeError):
        await log_requests(request, call_next)

    [record] = _access_records(caplog)
    assert record.levelno == logging.ERROR
    assert record.status_code == 500
    assert record.request_id == "req_crash"
    assert record.exc_info is not None
    assert request.state.request_id == "req_crash"
