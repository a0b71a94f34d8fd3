from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from app.core.exceptions import ErrorKindEnum, LeaderboardError
from app.schemas.response import ErrorResponse
import logging
import uuid

logger = logging.getLogger(__name__)

def _get_error_code(status_code: int) -> str:
    code_map = {
        400: ErrorKindEnum.INVALID_ARGUMENT.value,
        401: ErrorKindEnum.UNAUTHENTICATED.value,
        403: ErrorKindEnum.PERMISSION_DENIED.value,
        404: ErrorKindEnum.NOT_FOUND.value,
        422: ErrorKindEnum.INVALID_ARGUMENT.value,
        500: ErrorKindEnum.INTERNAL.value,
    }
    return code_map.get(status_code, f"HTTP_{status_code}")

def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or str(uuid.uuid4())

def _render(status_code: int, error_response: ErrorResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error_response.model_dump(mode="json"))

async def validation_exception_handler(request: Request, exc: RequestValidationError):
    request_id = _request_id(request)
    logger.warning(f"[{request_id}] Validation error: {exc.errors()}", extra={"request_id": request_id})
    # Malformed query parameters are the same kind of error as out-of-range pagination
    return _render(400, ErrorResponse.build(
        code=ErrorKindEnum.INVALID_ARGUMENT.value,
        message="Request validation failed",
        path=str(request.url),
        request_id=request_id,
        details={"validation_errors": exc.errors()}
    ))

async def global_exception_handler(request: Request, exc: Exception):
    request_id = _request_id(request)

    if isinstance(exc, LeaderboardError):
        log_level = logging.ERROR if exc.kind == ErrorKindEnum.INTERNAL else logging.WARNING
        logger.log(log_level, f"[{request_id}] {exc.kind.value}: {exc.detail}", extra={"request_id": request_id})
        return _render(exc.status_code, ErrorResponse.build(
            code=exc.kind.value,
            message=exc.detail,
            path=str(request.url),
            request_id=request_id,
            details=exc.details
        ))

    if isinstance(exc, HTTPException):
        logger.warning(f"[{request_id}] HTTP {exc.status_code}: {exc.detail}", extra={"request_id": request_id})
        return _render(exc.status_code, ErrorResponse.build(
            code=_get_error_code(exc.status_code),
            message=exc.detail if isinstance(exc.detail, str) else str(exc.detail),
            path=str(request.url),
            request_id=request_id
        ))

    logger.error(f"[{request_id}] Unhandled exception: {exc}", exc_info=True, extra={"request_id": request_id})
    return _render(500, ErrorResponse.build(
        code=ErrorKindEnum.INTERNAL.value,
        message="An unexpected error occurred",
        path=str(request.url),
        request_id=request_id,
        details={"error_type": type(exc).__name__, "error": str(exc)}
    ))
