import logging
import time

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware:
    """Logs every request with its status code and duration."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        start = time.monotonic()
        logger.debug("%s %s - %s", request.method, request.path, request.META.get("REMOTE_ADDR"))

        response = self.get_response(request)

        duration_ms = (time.monotonic() - start) * 1000
        logger.info("%s %s %s - %.0fms", request.method, request.path, response.status_code, duration_ms)
        return response
