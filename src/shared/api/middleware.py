"""
Shared API Middleware
======================

Request tracing, access logging and the error envelopes shared by every router.
"""

import time
import uuid
from datetime import datetime, timezone
from typing import Callable

from fastapi import Request, Response
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from src.conversation.domain import ChatMessages
from src.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

# Routes whose responses are closed over the chat response kinds
CHAT_PATH_PREFIX = "/chat"


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Tags each request with an X-Correlation-ID, reusing the caller's when sent.

    The id is echoed on the response and read back by the other middleware.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID", str(uuid.uuid4()))

        request.state.correlation_id = correlation_id

        response = await call_next(request)
        response.headers["X-Correlation-ID"] = correlation_id
        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Access log with per-request latency.

    Latency is also returned to the caller as X-Response-Time.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = getattr(request.state, "correlation_id", "unknown")
        start_time = time.perf_counter()

        logger.info(
            "Request started",
            extra={
                "correlation_id": correlation_id,
                "method": request.method,
                "path": request.url.path,
                "client": request.client.host if request.client else None
            }
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                extra={
                    "correlation_id": correlation_id,
                    "method": request.method,
                    "path": request.url.path,
                    "error": str(e),
                    "response_time_ms": int((time.perf_counter() - start_time) * 1000)
                }
            )
            raise

        response_time_ms = int((time.perf_counter() - start_time) * 1000)
        response.headers["X-Response-Time"] = f"{response_time_ms}ms"
        logger.info(
            "Request completed",
            extra={
                "correlation_id": correlation_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "response_time_ms": response_time_ms
            }
        )
        return response


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Request validation handler.

    Chat routes answer malformed bodies with the ERROR chat shape; every
    other route keeps FastAPI's default 422 body.
    """
    if not request.url.path.startswith(CHAT_PATH_PREFIX):
        return await request_validation_exception_handler(request, exc)

    correlation_id = getattr(request.state, "correlation_id", "unknown")
    logger.info(
        "Malformed chat request",
        extra={
            "correlation_id": correlation_id,
            "path": request.url.path,
            "error_count": len(exc.errors())
        }
    )
    return JSONResponse(
        status_code=400,
        content={"response_type": "ERROR", "message": ChatMessages.ERROR}
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Last-resort handler for anything a route let escape.

    Chat routes still get a chat-shaped ERROR; the rest get a plain 500 body.
    """
    correlation_id = getattr(request.state, "correlation_id", "unknown")

    logger.error(
        "Unhandled exception",
        extra={
            "correlation_id": correlation_id,
            "path": request.url.path,
            "method": request.method,
            "error_type": type(exc).__name__,
            "error_message": str(exc)
        }
    )

    if request.url.path.startswith(CHAT_PATH_PREFIX):
        return JSONResponse(
            status_code=500,
            content={"response_type": "ERROR", "message": ChatMessages.ERROR}
        )

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "correlation_id": correlation_id,
            "timestamp": datetime.now(timezone.utc).isoformat()
        }
    )
