import logging
import time
import uuid
from django.utils.deprecation import MiddlewareMixin
from django.http import JsonResponse

logger = logging.getLogger(__name__)


class RequestLogMiddleware(MiddlewareMixin):
    """
    One log line per API request: method, path, status, duration.
    """
    def process_request(self, request):
        request._log_started = time.monotonic()
        request.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex

    def process_response(self, request, response):
        started = getattr(request, "_log_started", None)
        if started is None or not request.path.startswith('/api/'):
            return response

        duration_ms = (time.monotonic() - started) * 1000
        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            f"{request.method} {request.path} -> {response.status_code} ({duration_ms:.1f}ms)",
            extra={"request_id": request.request_id},
        )
        response["X-Request-ID"] = request.request_id
        return response


class GlobalExceptionMiddleware(MiddlewareMixin):
    """
    Last line of defense for non-DRF views.
    """
    def process_exception(self, request, exception):
        logger.exception(f"Unhandled Middleware Exception: {str(exception)}")
        if request.path.startswith('/api/'):
            return JsonResponse(
                {"error": "Internal System Error", "code": "server_error"},
                status=500
            )
        return None # Let Django's default 500 handler work for HTML
