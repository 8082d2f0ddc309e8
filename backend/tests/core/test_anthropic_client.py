"""Anthropic client retry policy - SDK errors in, AnthropicAPIError out."""

import httpx
import pytest
from anthropic import (
    APIConnectionError, APIStatusError, APITimeoutError, BadRequestError,
    InternalServerError, RateLimitError,
)

from clarity_crm.core.errors import AnthropicAPIError
from clarity_crm.infrastructure import anthropic_client
from clarity_crm.infrastructure.anthropic_client import (
    ResilientAnthropicClient, classify, retry_after_ms,
)
from tests.services.mock_anthropic import text_response

_REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")


def _status_error(cls, status: int, headers: dict | None = None):
    response = httpx.Response(status, headers=headers or {}, request=_REQUEST)
    return cls(f"status {status}", response=response, body=None)


class _Messages:
    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    async def create(self, **kwargs):
        self.calls += 1
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def sleeps(monkeypatch):
    waited = []

    async def fake_sleep(seconds):
        waited.append(seconds)

    monkeypatch.setattr(anthropic_client.asyncio, "sleep", fake_sleep)
    return waited


def _client(outcomes, max_retries=2):
    client = ResilientAnthropicClient(api_key="sk-test", max_retries=max_retries, base_delay_ms=100)
    client.client.messages = _Messages(outcomes)
    return client


async def _call(client):
    return await client.create_message(
        model="claude-test", max_tokens=64, system="s", messages=[{"role": "user", "content": "hi"}],
    )


# ─── Classification ──────────────────────────────────────────────

def test_classify():
    assert classify(_status_error(RateLimitError, 429)).value == "rate_limit"
    assert classify(_status_error(InternalServerError, 500)).value == "connection_error"
    assert classify(_status_error(APIStatusError, 529)).value == "connection_error"
    assert classify(APIConnectionError(request=_REQUEST)).value == "connection_error"
    assert classify(APITimeoutError(request=_REQUEST)).value == "timeout"
    assert classify(_status_error(BadRequestError, 400)).value == "client_error"


def test_retry_after_header_in_ms():
    assert retry_after_ms(_status_error(RateLimitError, 429, {"retry-after": "2"})) == 2000
    assert retry_after_ms(_status_error(RateLimitError, 429, {"retry-after": "soon"})) is None
    assert retry_after_ms(_status_error(RateLimitError, 429)) is None


def test_backoff_is_capped_with_jitter():
    client = ResilientAnthropicClient(api_key="sk-test", base_delay_ms=1000, max_delay_ms=4000)
    assert 750 <= client.backoff_ms(0) <= 1250
    assert 3000 <= client.backoff_ms(5) <= 5000


# ─── Retry loop ──────────────────────────────────────────────────

async def test_success_first_try(sleeps):
    client = _client([text_response("ok")])
    response = await _call(client)
    assert response.content[0].text == "ok"
    assert sleeps == []


async def test_rate_limit_waits_for_retry_after(sleeps):
    client = _client([_status_error(RateLimitError, 429, {"retry-after": "3"}), text_response("ok")])
    await _call(client)
    assert sleeps == [3.0]


async def test_transient_errors_retry_then_give_up(sleeps):
    client = _client([_status_error(InternalServerError, 500)] * 3, max_retries=2)
    with pytest.raises(AnthropicAPIError) as exc:
        await _call(client)
    assert client.client.messages.calls == 3
    assert len(sleeps) == 2
    assert exc.value.http_status == 503


async def test_client_error_fails_immediately(sleeps):
    client = _client([_status_error(BadRequestError, 400)])
    with pytest.raises(AnthropicAPIError, match="client_error"):
        await _call(client)
    assert sleeps == []


async def test_timeout_fails_immediately(sleeps):
    client = _client([APITimeoutError(request=_REQUEST)])
    with pytest.raises(AnthropicAPIError, match="timeout"):
        await _call(client)
    assert sleeps == []
