"""ASGI middleware logging every request before dispatch."""

from __future__ import annotations

import logging

from prometheus_client import Counter
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)

MAX_LOGGED_BODY = 1024

REQUESTS_TOTAL = Counter(
    "exercise_tracker_http_requests_total",
    "HTTP requests handled, labelled by method and response status.",
    ["method", "status"],
)


def _preview(body: bytes) -> str:
    if not body:
        return "{}"
    text = body[:MAX_LOGGED_BODY].decode("utf-8", errors="replace")
    if len(body) > MAX_LOGGED_BODY:
        text += "..."
    return text


class RequestLoggingMiddleware:
    """Log method, path and body, then replay the buffered body to the app."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        buffered: list[Message] = []
        chunks: list[bytes] = []
        while True:
            message = await receive()
            buffered.append(message)
            if message["type"] != "http.request":
                break
            chunks.append(message.get("body", b""))
            if not message.get("more_body", False):
                break

        method = scope["method"]
        logger.info("%s %s %s", method, scope["path"], _preview(b"".join(chunks)))

        async def replay() -> Message:
            if buffered:
                return buffered.pop(0)
            return await receive()

        async def send_with_metrics(message: Message) -> None:
            if message["type"] == "http.response.start":
                REQUESTS_TOTAL.labels(method=method, status=str(message["status"])).inc()
            await send(message)

        await self.app(scope, replay, send_with_metrics)
