"""
Error types raised on purpose by the client portal services.

WHY: Custom exceptions provide:
1. Consistent error handling across the client portal services
2. HTTP status code mapping for whichever web layer hosts the services
3. Stable machine-readable error codes ({code, message} payloads)
4. No sensitive data leaks in error messages (OTP codes, passwords)

IMPORTANT: NEVER raise the base Exception class. Always use these.
"""

from typing import Any, Dict, Optional


class AppException(Exception):
    """
    Root of every error the services raise on purpose.

    Every subclass declares a status_code, a stable error_code and a
    default_message. Context keyword arguments are kept for debugging and
    serialized (minus sensitive keys) by to_dict().
    """

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"
    default_message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        **context: Any,
    ):
        """
        Initialize exception with message and context.

        Args:
            message: Human-readable error message
            status_code: HTTP status code (overrides class default)
            **context: Additional context for debugging (filtered in to_dict)
        """
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize exception to dictionary for a JSON response.

        Returns:
            Dictionary with error details (sensitive fields filtered out)
        """
        sensitive_fields = {
            "password",
            "token",
            "secret",
            "key",
            "api_key",
            "otp",
            "code",
            "code_hash",
        }
        filtered_context = {
            k: v for k, v in self.context.items() if k.lower() not in sensitive_fields
        }

        return {
            "error": self.__class__.__name__,
            "code": self.error_code,
            "message": self.message,
            "status_code": self.status_code,
            "details": filtered_context if filtered_context else None,
        }


# ============================================================================
# Validation & Input Exceptions
# ============================================================================


class ValidationError(AppException):
    """
    Caller input failed validation.

    HTTP Status: 400 Bad Request
    """

    status_code = 400
    error_code = "VALIDATION_ERROR"
    default_message = "Validation failed"


# ============================================================================
# Resource Exceptions
# ============================================================================


class ResourceNotFoundError(AppException):
    """
    A looked-up row is missing or outside the caller's reach.

    HTTP Status: 404 Not Found
    """

    status_code = 404
    error_code = "RESOURCE_NOT_FOUND"
    default_message = "Resource not found"


# ============================================================================
# Business Logic Exceptions
# ============================================================================


class BusinessRuleViolation(AppException):
    """
    The request is well formed but the workflow's rules forbid it.

    The request was well-formed but cannot be applied to the current state.

    HTTP Status: 422 Unprocessable Entity
    """

    status_code = 422
    error_code = "BUSINESS_RULE_VIOLATION"
    default_message = "Business rule violation"


class InvalidStateTransitionError(BusinessRuleViolation):
    """
    The status change is not allowed from the current status.

    HTTP Status: 400 Bad Request
    """

    status_code = 400
    error_code = "INVALID_STATE_TRANSITION"
    default_message = "Invalid state transition"


# ============================================================================
# External Service Exceptions
# ============================================================================


class ExternalServiceError(AppException):
    """
    A third-party dependency (such as the email provider) failed.

    HTTP Status: 502 Bad Gateway
    """

    status_code = 502
    error_code = "EXTERNAL_SERVICE_ERROR"
    default_message = "External service error"


class EmailServiceError(ExternalServiceError):
    """
    Raised when email sending fails (Resend).

    WHY: Email failures are logged and never block the main operation;
    the OTP or status change is already committed when mail goes out.

    HTTP Status: 502 Bad Gateway
    """

    error_code = "EMAIL_SERVICE_ERROR"
    default_message = "Email service error"


# ============================================================================
# Client Portal Exceptions
# ============================================================================


class ClientNotFoundError(ResourceNotFoundError):
    """
    Raised when the caller does not resolve to an active client account.

    Covers a missing user, an internal (non-client) user and a deactivated
    client alike.
    """

    error_code = "CLIENT_NOT_FOUND"
    default_message = "Client user not found or inactive"


class QuotationNotFoundError(ResourceNotFoundError):
    """
    Raised when a quotation is absent or outside the caller's organization.

    WHY: Both cases share one response so that a client cannot test for
    quotations belonging to other organizations.
    """

    error_code = "QUOTATION_NOT_FOUND"
    default_message = "Quotation not found"


class QuotationNotSentError(InvalidStateTransitionError):
    """
    Raised when an accept/reject is attempted on a quotation not in SENT.

    Includes the case where a concurrent confirmation moved the quotation
    to a terminal state first.

    HTTP Status: 409 Conflict
    """

    status_code = 409
    error_code = "QUOTATION_NOT_SENT"
    default_message = "Quotation is not awaiting a client decision"


class InvalidOtpError(ValidationError):
    """
    Raised for any OTP failure: malformed, unknown, expired, superseded,
    mismatched or already consumed.

    WHY: A single generic response keeps the failing check hidden from the
    caller.
    """

    error_code = "INVALID_OTP"
    default_message = "Invalid or expired OTP"
