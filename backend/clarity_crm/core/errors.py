"""Error Hierarchy - typed, categorized exceptions for all Clarity CRM failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) are recoverable; infrastructure errors (500-level) are critical
    - to_response() produces the REST envelope {"error": {...}}
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with ClarityError base: one FastAPI handler catches all
    - Field-level problems travel in `details` as [{field, message}] so clients
      can highlight form inputs
    - Errors may carry response headers (Retry-After on 429)
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFLICT = "conflict"
    RATE_LIMIT = "rate_limit"
    DATABASE = "database"
    EXTERNAL_API = "external_api"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    request_id: str | None = None
    user_id: str | None = None
    resource_type: str | None = None
    resource_id: str | None = None
    debug_info: dict[str, Any] | None = None
    retry_after_ms: int | None = None


class ClarityError(Exception):
    """Base exception for all Clarity CRM errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
        details: list[dict[str, Any]] | None = None,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status
        self.details = details
        self.headers = headers

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        body: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "timestamp": self.context.timestamp.isoformat(),
        }
        if self.details:
            body["details"] = self.details
        if self.context.resource_type:
            body["context"] = {
                "resource_type": self.context.resource_type,
                "resource_id": self.context.resource_id,
            }
        return {"error": body}


# ─── Domain Errors (400-level) ──────────────────────────────────

class ValidationFailedError(ClarityError):
    """Request data failed validation (field-level details attached)."""
    def __init__(
        self,
        details: list[dict[str, Any]],
        message: str = "Validation failed",
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400, details=details,
        )


class BadRequestError(ClarityError):
    """Request is malformed or missing a required parameter."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "BAD_REQUEST", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400,
        )


class UnauthorizedError(ClarityError):
    """No valid credentials were presented."""
    def __init__(
        self, message: str = "Unauthorized", context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "UNAUTHORIZED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 401,
            headers={"WWW-Authenticate": "Bearer"},
        )


class ForbiddenError(ClarityError):
    """Caller is authenticated but lacks permission."""
    def __init__(
        self, message: str = "Forbidden", context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "FORBIDDEN", ErrorCategory.AUTHORIZATION,
            ErrorSeverity.WARNING, context, 403,
        )


class ResourceNotFoundError(ClarityError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.resource_type = resource_type
        ctx.resource_id = resource_id
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.WARNING, ctx, 404,
        )


class DuplicateRecordError(ClarityError):
    """Unique constraint would be violated."""
    def __init__(
        self,
        message: str = "A record with this value already exists",
        field: str | None = None,
        context: ErrorContext | None = None,
    ):
        details = [{"field": field, "message": message}] if field else None
        super().__init__(
            message, "DUPLICATE_RECORD", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409, details=details,
        )


class ForeignKeyViolationError(ClarityError):
    """A referenced record does not exist."""
    def __init__(
        self,
        message: str = "Referenced record does not exist",
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "FOREIGN_KEY_CONSTRAINT", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400,
        )


class ConflictError(ClarityError):
    """Operation conflicts with the current state of a resource."""
    def __init__(
        self, message: str, code: str = "CONFLICT", context: ErrorContext | None = None,
    ):
        super().__init__(
            message, code, ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )


class RateLimitExceededError(ClarityError):
    """Too many requests inside the current window."""
    def __init__(
        self,
        limit: int,
        retry_after_seconds: int,
        reset_at: datetime,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.retry_after_ms = retry_after_seconds * 1000
        super().__init__(
            "Too many requests, please try again later",
            "RATE_LIMIT_EXCEEDED", ErrorCategory.RATE_LIMIT,
            ErrorSeverity.WARNING, ctx, 429,
            headers={
                "Retry-After": str(retry_after_seconds),
                "X-RateLimit-Limit": str(limit),
                "X-RateLimit-Remaining": "0",
                "X-RateLimit-Reset": reset_at.isoformat(),
            },
        )
        self.limit = limit
        self.retry_after_seconds = retry_after_seconds
        self.reset_at = reset_at

    def to_response(self) -> dict:
        response = super().to_response()
        response["error"].update({
            "retry_after": self.retry_after_seconds,
            "limit": self.limit,
            "remaining": 0,
            "reset_time": self.reset_at.isoformat(),
        })
        return response


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(ClarityError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class TransactionError(ClarityError):
    """A multi-step write could not be completed and was rolled back."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "TRANSACTION_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 500,
        )


class AnthropicAPIError(ClarityError):
    """Anthropic API call failed."""
    def __init__(
        self,
        message: str,
        api_error_type: str,
        retry_after_ms: int | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.retry_after_ms = retry_after_ms
        super().__init__(
            f"Anthropic API error ({api_error_type}): {message}",
            "ANTHROPIC_API_ERROR", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.CRITICAL, ctx, 503,
        )
        self.api_error_type = api_error_type
