"""Error Hierarchy — typed, categorized exceptions for every UEMP failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Every error declares whether a caller may retry it; domain failures never are
    - to_response() produces the REST envelope {success: false, error: {...}}
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with UempError base: FastAPI global handler catches all
    - AlreadyExists has two registration sub-cases so callers can tell
      "you already own this model" from "someone else owns this unit"
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
    AUTHENTICATION = "authentication"
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    PERMISSION = "permission"
    DATA_INTEGRITY = "data_integrity"
    DATABASE = "database"
    EXTERNAL_API = "external_api"
    INTERNAL = "internal"
    CONFLICT = "conflict"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    consumer_id: str | None = None
    manufacturer_id: str | None = None
    product_id: str | None = None
    serial_number: str | None = None
    recycler_id: str | None = None
    debug_info: dict[str, Any] | None = None
    retry_after_ms: int | None = None


class UempError(Exception):
    """Base exception for all UEMP errors."""

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
            "success": False,
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "retryable": self.retryable,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "manufacturer_id": self.context.manufacturer_id,
                    "product_id": self.context.product_id,
                    "serial_number": self.context.serial_number,
                    "recycler_id": self.context.recycler_id,
                    "retry_after_ms": self.context.retry_after_ms,
                },
            },
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class UnauthenticatedError(UempError):
    """Caller identity missing."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "User must be logged in.",
            "UNAUTHENTICATED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 401,
        )


class InvalidArgumentError(UempError):
    """Missing or malformed input field."""
    def __init__(
        self, message: str, field: str | None = None,
        context: ErrorContext | None = None, code: str = "INVALID_ARGUMENT",
    ):
        super().__init__(
            message, code, ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400,
        )
        self.field = field


class InvalidFormatError(InvalidArgumentError):
    """Scannable-code payload does not decode to exactly three parts."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, field="payload", context=context, code="INVALID_FORMAT",
        )


class ResourceNotFoundError(UempError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.WARNING, context, 404,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class AlreadyExistsError(UempError):
    """Resource already exists."""
    def __init__(
        self, message: str, context: ErrorContext | None = None,
        code: str = "ALREADY_EXISTS",
    ):
        super().__init__(
            message, code, ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )


class AlreadyRegisteredByCallerError(AlreadyExistsError):
    """Caller already holds a scan record for this product model."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Product already scanned by this user.", context,
            code="ALREADY_REGISTERED_BY_CALLER",
        )


class AlreadyRegisteredByOtherError(AlreadyExistsError):
    """Product instance is bound to another consumer."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "This product is already registered.", context,
            code="ALREADY_REGISTERED_BY_OTHER",
        )


class PermissionDeniedError(UempError):
    """Supplied secret does not match the stored one."""
    def __init__(
        self, message: str = "Incorrect secret key.",
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "PERMISSION_DENIED", ErrorCategory.PERMISSION,
            ErrorSeverity.WARNING, context, 403,
        )


class InvalidTransitionError(UempError):
    """State machine transition not allowed from the current state."""
    def __init__(
        self, axis: str, current: str, target: str,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"Cannot move {axis} from '{current}' to '{target}'",
            "INVALID_TRANSITION", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.WARNING, context, 409,
        )
        self.axis = axis
        self.current = current
        self.target = target


class DataCorruptionError(UempError):
    """Stored document is missing required fields or has the wrong shape."""
    def __init__(
        self, document_type: str, reason: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{document_type} data is missing or corrupted: {reason}",
            "DATA_CORRUPTION", ErrorCategory.DATA_INTEGRITY,
            ErrorSeverity.CRITICAL, context, 500,
        )
        self.document_type = document_type
        self.reason = reason


# ─── Infrastructure Errors (500-level, retryable) ───────────────

class InternalError(UempError):
    """Unexpected or transport-level failure."""

    retryable = True

    def __init__(
        self, message: str, context: ErrorContext | None = None,
        code: str = "INTERNAL", category: ErrorCategory = ErrorCategory.INTERNAL,
        http_status: int = 500,
    ):
        super().__init__(
            message, code, category, ErrorSeverity.CRITICAL, context, http_status,
        )


class DatabaseError(InternalError):
    """Document store operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}", context,
            code="DATABASE_ERROR", category=ErrorCategory.DATABASE, http_status=503,
        )
        self.operation = operation


class TransactionConflictError(InternalError):
    """Concurrent modification detected at commit; safe to retry."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, context,
            code="TRANSACTION_CONFLICT", category=ErrorCategory.CONFLICT,
            http_status=409,
        )
        self.severity = ErrorSeverity.ERROR


class ExternalServiceError(InternalError):
    """Geocoding or notification provider call failed."""
    def __init__(
        self, service: str, message: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{service} error: {message}", context,
            code="EXTERNAL_SERVICE_ERROR", category=ErrorCategory.EXTERNAL_API,
            http_status=502,
        )
        self.service = service
