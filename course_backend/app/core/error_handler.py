"""
Error handling and sanitization

The only place where CourseError kinds become HTTP statuses.
- CourseError → {"error", "code"} with the status of its kind
- Unparseable request bodies → 400 {"code": 10101}
- Anything else → logged with traceback, sanitized 500
"""
import logging
import traceback

from fastapi import FastAPI, Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.exceptions import CourseError, ErrorCode, MSG_BAD_REQUEST_BODY

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    "validation": 400,
    "not_found": 404,
    "conflict": 409,
    "forbidden": 403,
    "too_many": 429,
    "internal": 500,
}

# Codes whose status differs from their kind's default
STATUS_OVERRIDES = {
    ErrorCode.EMAIL_BUSY: 400,
}


def status_for(error: CourseError) -> int:
    if error.code in STATUS_OVERRIDES:
        return STATUS_OVERRIDES[error.code]
    return STATUS_BY_KIND.get(error.kind, 500)


async def course_error_handler(request: Request, exc: CourseError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        cause = f" (cause: {type(exc.cause).__name__}: {exc.cause})" if exc.cause else ""
        logger.error(f"{request.method} {request.url.path} failed with {exc.code}{cause}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected with {exc.code}")
    return JSONResponse(status_code=status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info(f"{request.method} {request.url.path}: unparseable request body")
    return JSONResponse(
        status_code=400,
        content={"error": MSG_BAD_REQUEST_BODY, "code": int(ErrorCode.BAD_REQUEST_BODY)},
    )


class ErrorSanitizationMiddleware(BaseHTTPMiddleware):
    """
    Catch unhandled exceptions and return a sanitized 500.

    Full details (type, message, traceback) go to the log only.
    """

    def __init__(self, app, debug: bool = False):
        super().__init__(app)
        self.debug = debug

    async def dispatch(self, request: Request, call_next):
        try:
            response = await call_next(request)
            return response
        except HTTPException:
            raise
        except Exception as e:
            error_id = f"{request.client.host if request.client else 'unknown'}-{id(e)}"
            logger.error(
                f"Unhandled exception [{error_id}]: {type(e).__name__}: {str(e)}\n"
                f"Path: {request.url.path}\n"
                f"Method: {request.method}\n"
                f"Traceback:\n{traceback.format_exc()}"
            )
            content = {"error": "внутренняя ошибка сервера", "code": int(ErrorCode.INSERT_FAILED)}
            if self.debug:
                content["type"] = type(e).__name__
                content["error_id"] = error_id
            return JSONResponse(status_code=500, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CourseError, course_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
