"""Error Hierarchy - codes, statuses and the REST envelope."""

from datetime import datetime, timezone

from clarity_crm.core.errors import (
    AnthropicAPIError, BadRequestError, ClarityError, DatabaseError, DuplicateRecordError,
    ErrorCategory, ForbiddenError, RateLimitExceededError, ResourceNotFoundError,
    UnauthorizedError, ValidationFailedError,
)


def test_all_errors_share_the_base_class():
    for exc in (
        BadRequestError("x"), UnauthorizedError(), ForbiddenError(),
        ResourceNotFoundError("Task", "1"), DatabaseError("boom", "query"),
    ):
        assert isinstance(exc, ClarityError)


def test_http_statuses():
    assert BadRequestError("x").http_status == 400
    assert UnauthorizedError().http_status == 401
    assert ForbiddenError().http_status == 403
    assert ResourceNotFoundError("Task", "1").http_status == 404
    assert DuplicateRecordError().http_status == 409
    assert DatabaseError("boom", "query").http_status == 503


def test_not_found_response_carries_resource_context():
    body = ResourceNotFoundError("Customer", "abc").to_response()["error"]
    assert body["code"] == "RESOURCE_NOT_FOUND"
    assert body["message"] == "Customer 'abc' not found"
    assert body["context"] == {"resource_type": "Customer", "resource_id": "abc"}
    assert body["category"] == "resource_not_found"


def test_validation_error_lists_field_details():
    exc = ValidationFailedError([{"field": "filter", "message": "bad"}])
    body = exc.to_response()["error"]
    assert body["code"] == "VALIDATION_ERROR"
    assert body["severity"] == "warning"
    assert body["details"] == [{"field": "filter", "message": "bad"}]


def test_unauthorized_sets_bearer_challenge():
    assert UnauthorizedError().headers == {"WWW-Authenticate": "Bearer"}


def test_duplicate_record_details_only_with_field():
    assert DuplicateRecordError().details is None
    assert DuplicateRecordError(field="email").details[0]["field"] == "email"


def test_rate_limit_error_headers_and_body():
    reset = datetime(2025, 3, 15, 12, 0, tzinfo=timezone.utc)
    exc = RateLimitExceededError(limit=5, retry_after_seconds=30, reset_at=reset)
    assert exc.http_status == 429
    assert exc.headers["Retry-After"] == "30"
    assert exc.headers["X-RateLimit-Remaining"] == "0"
    body = exc.to_response()["error"]
    assert body["retry_after"] == 30
    assert body["limit"] == 5
    assert body["reset_time"] == reset.isoformat()


def test_anthropic_error_is_external_and_keeps_retry_hint():
    exc = AnthropicAPIError("overloaded", "overloaded", retry_after_ms=2000)
    assert exc.category == ErrorCategory.EXTERNAL_API
    assert exc.context.retry_after_ms == 2000
    assert "overloaded" in exc.message
