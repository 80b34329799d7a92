from rest_framework.views import exception_handler
from rest_framework.response import Response
from rest_framework.exceptions import ValidationError
from rest_framework import status
import logging

logger = logging.getLogger(__name__)


class BusinessLogicException(Exception):
    """
    Raised when a domain rule is violated (e.g. 'Stock record not found').
    Subclasses pin the HTTP status and whether a caller may retry.
    """
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "business_error"
    retryable = False

    def __init__(self, message, code=None):
        self.message = message
        self.code = code or self.default_code
        super().__init__(message)


class InvalidInput(BusinessLogicException):
    """Malformed or missing request fields. Raised before any write."""
    default_code = "invalid_input"


class NotFound(BusinessLogicException):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "not_found"


class Conflict(BusinessLogicException):
    """Row changed between read and write. Safe to retry."""
    status_code = status.HTTP_409_CONFLICT
    default_code = "conflict"
    retryable = True


class Unavailable(BusinessLogicException):
    """Transient persistence failure or timeout. Safe to retry."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_code = "unavailable"
    retryable = True


class InternalError(BusinessLogicException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = "internal_error"


def _error_body(exc):
    body = {"error": exc.message, "code": exc.code}
    if exc.retryable:
        body["retryable"] = True
    return body


def custom_exception_handler(exc, context):
    # Domain errors first, DRF's own handler would treat them as unhandled
    if isinstance(exc, BusinessLogicException):
        if isinstance(exc, InternalError):
            logger.error(f"Internal error: {exc.message}", exc_info=True)
            return Response(
                {"error": "Internal Server Error", "code": exc.code},
                status=exc.status_code,
            )
        return Response(_error_body(exc), status=exc.status_code)

    response = exception_handler(exc, context)

    if isinstance(exc, ValidationError) and response is not None:
        return Response(
            {"error": "Invalid request", "code": "invalid_input", "details": response.data},
            status=status.HTTP_400_BAD_REQUEST,
        )

    # If response is None, it's an unhandled server error (500)
    if response is None:
        logger.error(f"Unhandled Exception: {exc}", exc_info=True)
        return Response(
            {"error": "Internal Server Error", "code": "server_error"},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    # 401/403/404/405/429...: same envelope, headers (WWW-Authenticate, Retry-After) kept
    detail = response.data.get("detail") if isinstance(response.data, dict) else None
    if detail is not None:
        response.data = {"error": str(detail), "code": getattr(detail, "code", None) or "error"}

    return response
