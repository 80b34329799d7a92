import logging
from django.http import JsonResponse
from django.db import DatabaseError, connection

logger = logging.getLogger(__name__)


def health_check(request):
    status = {"db": "unknown"}
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
        status["db"] = "ok"
        return JsonResponse({"status": "ok", "components": status}, status=200)
    except DatabaseError as e:
        logger.warning(f"Health check failed: {e}")
        return JsonResponse(
            {"status": "error", "components": status},
            status=503
        )
