"""Insights Anthropic Client - the one place the CRM talks to the Messages API.

Invariants:
    - Only the team insights narrative goes through here (one short message per call)
    - 429s wait for Retry-After when the API sends one, otherwise back off exponentially
    - 5xx, 529 overloaded and connection drops are retried up to max_retries times
    - Timeouts and other 4xx fail at once
    - Callers only ever see AnthropicAPIError; SDK exception types stay in this module

Design Decisions:
    - SDK-level retries are off so the retry budget is counted in one place
    - Backoff is capped at max_delay_ms with ±25% jitter
"""

import asyncio
import logging
import random
from enum import Enum

import anthropic
from anthropic import (
    APIConnectionError,
    APIError,
    APIStatusError,
    APITimeoutError,
    InternalServerError,
    RateLimitError,
)

from clarity_crm.config import Settings
from clarity_crm.core.errors import AnthropicAPIError, ErrorContext

logger = logging.getLogger(__name__)

OVERLOADED_STATUS = 529
JITTER = 0.25


class _Failure(str, Enum):
    RATE_LIMITED = "rate_limit"
    TRANSIENT = "connection_error"
    TIMEOUT = "timeout"
    FATAL = "client_error"


def classify(error: APIError) -> _Failure:
    """Which retry policy applies to an SDK error."""
    if isinstance(error, RateLimitError):
        return _Failure.RATE_LIMITED
    if isinstance(error, APITimeoutError):
        return _Failure.TIMEOUT
    if isinstance(error, (APIConnectionError, InternalServerError)):
        return _Failure.TRANSIENT
    if isinstance(error, APIStatusError) and error.status_code == OVERLOADED_STATUS:
        return _Failure.TRANSIENT
    return _Failure.FATAL


def retry_after_ms(error: APIError) -> int | None:
    response = getattr(error, "response", None)
    if response is None:
        return None
    value = response.headers.get("retry-after")
    try:
        return int(float(value) * 1000) if value else None
    except ValueError:
        return None


class ResilientAnthropicClient:
    """AsyncAnthropic with the CRM's retry budget and error mapping."""

    def __init__(
        self,
        api_key: str,
        max_retries: int = 3,
        base_delay_ms: int = 1000,
        max_delay_ms: int = 30_000,
        timeout_seconds: int = 60,
    ):
        self.client = anthropic.AsyncAnthropic(
            api_key=api_key, timeout=timeout_seconds, max_retries=0,
        )
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms

    @classmethod
    def from_settings(cls, settings: Settings) -> "ResilientAnthropicClient":
        return cls(
            api_key=settings.anthropic_api_key,
            max_retries=settings.anthropic_max_retries,
            base_delay_ms=settings.anthropic_base_delay_ms,
            max_delay_ms=settings.anthropic_max_delay_ms,
            timeout_seconds=settings.anthropic_timeout_seconds,
        )

    async def create_message(
        self,
        *,
        model: str,
        max_tokens: int,
        system: str,
        messages: list,
        context: ErrorContext | None = None,
    ):
        attempt = 0
        while True:
            try:
                response = await self.client.messages.create(
                    model=model, max_tokens=max_tokens, system=system, messages=messages,
                )
            except APIError as e:
                delay_ms = self._delay_or_raise(e, attempt, context)
                logger.warning(
                    f"Anthropic call failed ({classify(e).value}), "
                    f"retrying in {delay_ms}ms",
                    extra={"attempt": attempt + 1, "model": model},
                )
                await asyncio.sleep(delay_ms / 1000)
                attempt += 1
                continue
            usage = response.usage
            logger.info(
                "Anthropic call succeeded",
                extra={
                    "attempt": attempt + 1,
                    "model": model,
                    "input_tokens": usage.input_tokens,
                    "output_tokens": usage.output_tokens,
                },
            )
            return response

    def _delay_or_raise(
        self, error: APIError, attempt: int, context: ErrorContext | None,
    ) -> int:
        """Milliseconds to wait before the next attempt, or AnthropicAPIError."""
        failure = classify(error)
        if failure in (_Failure.FATAL, _Failure.TIMEOUT):
            raise AnthropicAPIError(str(error), failure.value, context=context)

        hinted = retry_after_ms(error) if failure == _Failure.RATE_LIMITED else None
        if attempt >= self.max_retries:
            raise AnthropicAPIError(
                f"Gave up after {self.max_retries} retries: {error}",
                failure.value,
                retry_after_ms=hinted,
                context=context,
            )
        return hinted or self.backoff_ms(attempt)

    def backoff_ms(self, attempt: int) -> int:
        delay = min(self.max_delay_ms, (2 ** attempt) * self.base_delay_ms)
        return int(delay * random.uniform(1 - JITTER, 1 + JITTER))  # nosec B311
