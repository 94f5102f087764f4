"""Error Hierarchy — typed, categorized exceptions for every purchase-protocol failure.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Client errors (4xx) require the user to resubmit or restart the advisory flow;
      PersistenceError (503) is the only retryable kind
    - to_response() never contains SQL text, stack traces or session tokens

Design Decisions:
    - Single hierarchy with AurumError base: FastAPI global handler catches all
    - AUTH_INVALID (any token-level rejection) vs AUTH_EXPIRED (the stored
      session lapsed) kept distinct so the two can be alerted on separately
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


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
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFLICT = "conflict"
    DATABASE = "database"
    EXTERNAL_API = "external_api"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    user_id: int | None = None
    transaction_ref: str | None = None
    debug_info: dict[str, Any] | None = None
    retry_after_ms: int | None = None


class AurumError(Exception):
    """Base exception for all Aurum errors."""

    retryable: bool = False

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "retryable": self.retryable,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "user_id": self.context.user_id,
                    "transaction_ref": self.context.transaction_ref,
                    "retry_after_ms": self.context.retry_after_ms,
                },
            }
        }


# ─── Validation (400) ───────────────────────────────────────────

class InputValidationError(AurumError):
    """Malformed or out-of-range input."""
    def __init__(
        self, message: str, field: str,
        code: str = "VALIDATION_ERROR", context: ErrorContext | None = None,
    ):
        super().__init__(
            message, code, ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400,
        )
        self.field = field


class InvalidQuantityError(InputValidationError):
    """Gold quantity not a finite decimal inside the purchasable range."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(message, "gold_amount", "INVALID_QUANTITY", context)


# ─── Session verification (401) ─────────────────────────────────

class SessionVerificationError(AurumError):
    """Credential rejected — user must restart the advisory flow."""


class InvalidTokenError(SessionVerificationError):
    """Signature, structure or algorithm mismatch (possible forgery)."""
    def __init__(
        self, message: str = "Invalid session token",
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "AUTH_INVALID", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 401,
        )


class SessionExpiredError(SessionVerificationError):
    """Credential unknown to the store, past expiry, or deactivated by the sweep."""
    def __init__(
        self, message: str = "Invalid or expired session",
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "AUTH_EXPIRED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.INFO, context, 401,
        )


# ─── Not found (404) ────────────────────────────────────────────

class ResourceNotFoundError(AurumError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.WARNING, context, 404,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class UserNotFoundError(ResourceNotFoundError):
    def __init__(self, user_id: int, context: ErrorContext | None = None):
        super().__init__("User", str(user_id), context)


# ─── Conflict (409) ─────────────────────────────────────────────

class SessionAlreadyConsumedError(SessionVerificationError):
    """Credential already authorized a purchase (replay / double-spend attempt)."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Session has already been used for a purchase",
            "SESSION_ALREADY_CONSUMED", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )


class SessionBindingConflictError(AurumError):
    """Credential is bound to a different user than the one presenting it."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Session is bound to a different user",
            "SESSION_BOUND_TO_OTHER_USER", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )


# ─── Infrastructure (5xx) ───────────────────────────────────────

class PersistenceError(AurumError):
    """Store unavailable or atomic unit aborted; nothing was applied."""

    retryable = True

    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "PERSISTENCE_FAILURE", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class DuplicateKeyError(PersistenceError):
    """Unique constraint hit by a concurrent insert. Handled internally by the registry."""
    def __init__(self, key: str, context: ErrorContext | None = None):
        super().__init__(f"duplicate key {key}", "insert", context)
        self.key = key


class AnthropicAPIError(AurumError):
    """Anthropic API call failed."""

    retryable = True

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
            ErrorSeverity.ERROR, ctx, 503,
        )
        self.api_error_type = api_error_type
