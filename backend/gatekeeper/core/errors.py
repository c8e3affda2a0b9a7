"""Error Hierarchy — typed, categorized exceptions for all Gatekeeper failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) are recoverable; infrastructure errors (500-level) are critical
    - ConfigError is moderator-facing only; users see a generic message
    - to_response() produces the REST envelope; no internal details leaked

Design Decisions:
    - Single hierarchy with GatekeeperError base: FastAPI global handler catches all
    - DataPrivacy / ExternalUnavailable during a profile check are NOT raised:
      they become TRY_AGAIN issues. The exception types cover the session entry
      and moderator paths where there is no issue list to attach them to.
    - ErrorContext as dataclass: rich observability without coupling to logging framework
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
    BUSINESS_RULE = "business_rule"
    CONFIGURATION = "configuration"
    RESOURCE_NOT_FOUND = "resource_not_found"
    DATABASE = "database"
    EXTERNAL_API = "external_api"
    INTERNAL = "internal"
    CONFLICT = "conflict"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    member_id: str | None = None
    scope_id: str | None = None
    user_message: str | None = None
    debug_info: dict[str, Any] | None = None


class GatekeeperError(Exception):
    """Base exception for all Gatekeeper errors."""

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
                "message": self.context.user_message or self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "member_id": self.context.member_id,
                    "scope_id": self.context.scope_id,
                },
            }
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class InvalidNameError(GatekeeperError):
    """Candidate name failed validation."""
    def __init__(self, name: str, context: ErrorContext | None = None):
        super().__init__(
            f"Invalid name '{name}': names must be 1-15 letters.",
            "INVALID_NAME", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400,
        )
        self.name = name


class SessionConflictError(GatekeeperError):
    """A verification session is already active for this key."""
    def __init__(self, member_id: str, scope_id: str, context: ErrorContext | None = None):
        super().__init__(
            f"Member {member_id} already has an active verification session in scope {scope_id}.",
            "SESSION_CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )


class InvalidTransitionError(GatekeeperError):
    """Event not accepted by the session's current state."""
    def __init__(self, state: str, event: str, context: ErrorContext | None = None):
        super().__init__(
            f"Event '{event}' is not accepted in state '{state}'.",
            "INVALID_TRANSITION", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.WARNING, context, 409,
        )
        self.state = state
        self.event = event


class AlreadyVerifiedError(GatekeeperError):
    """Member already holds the scope's membership role."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Member is already verified in this scope.",
            "ALREADY_VERIFIED", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.INFO, context, 409,
        )


class ManualReviewPendingError(GatekeeperError):
    """Member has a pending manual verification entry for this scope."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Your profile is currently under manual verification. Please try again later.",
            "MANUAL_REVIEW_PENDING", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.INFO, context, 409,
        )


class NoCandidateNameError(GatekeeperError):
    """Sub-scope verification found no usable name for the member."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "You do not have a name registered and your display name is not a valid in-game name.",
            "NO_CANDIDATE_NAME", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.WARNING, context, 400,
        )


class ResourceNotFoundError(GatekeeperError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )


# ─── Configuration / Infrastructure Errors ──────────────────────

class ConfigError(GatekeeperError):
    """Scope configuration is missing something the operation needs."""
    def __init__(self, message: str, setting: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.user_message = ctx.user_message or (
            "Verification is not available right now. Please contact a staff member."
        )
        super().__init__(
            f"Configuration error ({setting}): {message}",
            "CONFIG_ERROR", ErrorCategory.CONFIGURATION,
            ErrorSeverity.ERROR, ctx, 409,
        )
        self.setting = setting


class ExternalUnavailableError(GatekeeperError):
    """An external collaborator could not be reached."""
    def __init__(self, service: str, context: ErrorContext | None = None):
        super().__init__(
            f"{service} is currently unavailable. Please try again later.",
            "EXTERNAL_UNAVAILABLE", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.WARNING, context, 503,
        )
        self.service = service


class DatabaseError(GatekeeperError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation
