"""Exception handlers translating failures into ``{"error": ...}`` responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..domain.errors import TrackerError, client_message, status_for

logger = logging.getLogger(__name__)

API_PREFIX = "/api"


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def handle_tracker_error(request: Request, exc: TrackerError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error(
            "%s %s failed: %s",
            request.method,
            request.url.path,
            exc.message,
            exc_info=exc,
        )
    else:
        logger.info("%s %s rejected (%d): %s", request.method, request.url.path, status_code, exc.message)
    return error_response(status_code, client_message(exc))


async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render routing failures; unmatched paths get a prefix-specific 404."""
    if exc.status_code == 404:
        path = request.url.path
        if path == API_PREFIX or path.startswith(API_PREFIX + "/"):
            return error_response(404, "API route not found")
        return error_response(404, "Route not found")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return error_response(400, message)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return error_response(500, "Something went wrong!")


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the error handlers used by every route."""
    app.add_exception_handler(TrackerError, handle_tracker_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.add_exception_handler(Exception, handle_unexpected_error)


class UnexpectedErrorMiddleware:
    """Render unhandled route errors as 500s inside CORS and request logging."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_tracking(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_tracking)
        except Exception as exc:
            if response_started:
                raise
            response = await handle_unexpected_error(Request(scope), exc)
            await response(scope, receive, send)
