import logging
import time
import uuid
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Per-request access log. Leaderboard reads also report whether the ranking came from cache."""

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        start_time = time.time()

        path = request.url.path
        method = request.method

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                f"[{request_id}] {method} {path} - ERROR",
                extra={
                    "request_id": request_id,
                    "method": method,
                    "path": path,
                    "duration_ms": round((time.time() - start_time) * 1000, 2),
                    "error": str(exc)
                }
            )
            raise

        duration_ms = round((time.time() - start_time) * 1000, 2)
        status_code = response.status_code
        cache_status = getattr(request.state, "cache_status", None)
        department_id = getattr(request.state, "department_id", None)

        if status_code >= 500:
            log_level = logging.ERROR
        elif status_code >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        cache_msg = f" [CACHE: {cache_status}]" if cache_status else ""
        logger.log(
            log_level,
            f"[{request_id}] {method} {path} - {status_code}{cache_msg} ({duration_ms}ms)",
            extra={
                "request_id": request_id,
                "method": method,
                "path": path,
                "status_code": status_code,
                "duration_ms": duration_ms,
                "cache_status": cache_status,
                "department_id": department_id
            }
        )

        response.headers["X-Request-ID"] = request_id
        if cache_status:
            response.headers["X-Leaderboard-Cache"] = cache_status
        return response
