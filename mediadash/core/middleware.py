import time
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from mediadash.core.logger import get_logger

logger = get_logger(__name__)

class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware that logs every API request with its status and duration.
    Health probes are logged at debug level to keep the logs readable.
    """

    QUIET_PREFIXES = ("/api/v1/health",)

    async def dispatch(self, request: Request, call_next):
        start = time.time()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                f"{request.method} {request.url.path} failed: {e}",
                extra={'component': 'http', 'method': request.method, 'path': request.url.path}
            )
            raise

        duration_ms = (time.time() - start) * 1000
        log = logger.debug if request.url.path.startswith(self.QUIET_PREFIXES) else logger.info
        log(
            f"{request.method} {request.url.path} {response.status_code} {duration_ms:.1f}ms",
            extra={
                'component': 'http',
                'method': request.method,
                'path': request.url.path,
                'status_code': response.status_code,
                'duration_ms': duration_ms
            }
        )
        return response
