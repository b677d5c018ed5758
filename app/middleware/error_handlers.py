"""
Exception handlers and request middleware for the Resume Parser API
"""
import time
import uuid
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.utils.exceptions import ResumeParserException, map_to_http_exception
from app.utils.logging_config import get_logger

logger = get_logger(__name__)


def request_id_of(request: Request) -> str:
    return getattr(request.state, 'request_id', None) or str(uuid.uuid4())


def create_error_response(request_id: str, status_code: int, detail: Any) -> JSONResponse:
    """Error body shared by every failure path: success flag, request id, then the detail"""
    if not isinstance(detail, dict):
        detail = {"message": str(detail)}

    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "request_id": request_id,
            "status_code": status_code,
            **detail,
        },
        headers={"X-Request-ID": request_id},
    )


async def resume_parser_exception_handler(request: Request, exc: ResumeParserException) -> JSONResponse:
    """Domain exceptions: 4xx are logged as warnings, 5xx as errors"""
    request_id = request_id_of(request)
    http_exc = map_to_http_exception(exc)

    log = logger.warning if http_exc.status_code < 500 else logger.error
    log(
        f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}",
        extra={"request_id": request_id, "details": exc.details, "status_code": http_exc.status_code}
    )
    return create_error_response(request_id, http_exc.status_code, http_exc.detail)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ResumeParserException, resume_parser_exception_handler)


class ExceptionHandlerMiddleware(BaseHTTPMiddleware):
    """Assigns request ids and turns anything unhandled into a generic 500"""

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        try:
            response = await call_next(request)
        except ResumeParserException as exc:
            return await resume_parser_exception_handler(request, exc)
        except Exception as exc:
            logger.error(
                f"Unhandled {exc.__class__.__name__} on {request.method} {request.url.path}: {exc}",
                extra={"request_id": request_id},
                exc_info=True
            )
            # Don't expose internal errors
            return create_error_response(request_id, 500, {
                "error": "Internal server error",
                "message": "An unexpected error occurred. Please try again later.",
            })

        response.headers["X-Request-ID"] = request_id
        return response


class RequestTimingMiddleware(BaseHTTPMiddleware):
    """Logs each request with its duration and flags slow ones (uploads and matching can take minutes)"""

    def __init__(self, app, slow_request_threshold: float = 2.0):
        super().__init__(app)
        self.slow_request_threshold = slow_request_threshold

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        request_id = request_id_of(request)

        # uploads can be large; log the declared size only
        logger.debug(
            f"{request.method} {request.url.path} received",
            extra={
                "request_id": request_id,
                "query_params": dict(request.query_params),
                "content_type": request.headers.get("content-type"),
                "content_length": request.headers.get("content-length"),
                "client_ip": request.client.host if request.client else "unknown",
            }
        )

        try:
            response = await call_next(request)
        except Exception as exc:
            elapsed = time.perf_counter() - started
            logger.error(f"{request.method} {request.url.path} failed after {elapsed:.3f}s: {exc}",
                         extra={"request_id": request_id, "processing_time": elapsed})
            raise

        elapsed = time.perf_counter() - started
        log = logger.warning if elapsed > self.slow_request_threshold else logger.info
        log(
            f"{request.method} {request.url.path} - {response.status_code} in {elapsed:.3f}s",
            extra={"request_id": request_id, "status_code": response.status_code, "processing_time": elapsed}
        )
        response.headers["X-Processing-Time"] = f"{elapsed:.3f}"
        return response
