"""
Logging Middleware for Request/Response Exchanges

This middleware logs every HTTP exchange as one formatted record.
It captures:
- Handler identity, request path and method
- Request parameters (per content policy)
- Client IP address
- Response status code and body (per content policy)
- Request processing time

Design Decisions:
- Pure ASGI middleware rather than BaseHTTPMiddleware: the request body is
  rehydrated on `receive` and the response is mirrored on `send`, so the
  endpoint and the client see exactly the bytes they would without it
- The record is written from a `finally` block, so failing endpoints are
  logged too (with status 500 when nothing was sent)
- Nothing raised while recording reaches the client; failures are written
  to the log sink instead
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Optional

from starlette.datastructures import Headers
from starlette.requests import Request
from starlette.types import ASGIApp, Receive, Scope, Send

from exchangelog.core.exceptions import BodyParseError, BodyReadError
from exchangelog.core.handlers import HandlerRegistry, UNKNOWN_HANDLER, handlers as default_handlers
from exchangelog.core.log_sink import LogSink
from exchangelog.middleware.capture import BodyRehydrator, DuplicatingSink
from exchangelog.middleware.content_policy import (
    BodyValue,
    Mode,
    NotCaptured,
    Unsupported,
    classify,
    normalize_media_type,
    render,
    request_params,
    response_body,
)

__all__ = [
    "Exchange",
    "ExchangeLoggingMiddleware",
    "add_logging_middleware",
    "format_record",
    "get_client_ip",
]

# Set on the scope while an exchange is being recorded
SCOPE_KEY = "exchangelog.exchange"

RECORD_START = "\n" + "-" * 30 + " request start " + "-" * 30
RECORD_END = "\n" + "-" * 30 + " request end " + "-" * 30


@dataclass
class Exchange:
    """One request paired with its response, filled in as the request runs."""
    start: float
    method: str
    path: str
    client: str
    request_media_type: str = ""
    response_media_type: str = ""
    handler: str = UNKNOWN_HANDLER
    status_code: Optional[int] = None
    elapsed: float = 0.0
    params: BodyValue = field(default_factory=NotCaptured)
    response: BodyValue = field(default_factory=Unsupported)


def get_client_ip(scope: Scope) -> str:
    """
    Extract client IP address from the request scope.

    Handles proxies and load balancers by checking X-Forwarded-For header.

    Args:
        scope: ASGI HTTP scope

    Returns:
        IP address as string
    """
    # Check for forwarded IP (from proxy/load balancer)
    forwarded_for = Headers(scope=scope).get("x-forwarded-for")
    if forwarded_for:
        # X-Forwarded-For can contain multiple IPs, take the first one
        first_hop = forwarded_for.split(",")[0].strip()
        if first_hop:
            return first_hop

    # Fallback to direct client IP
    client = scope.get("client")
    return client[0] if client else "unknown"


def format_record(exchange: Exchange) -> str:
    """Assemble the log message for a finished exchange."""
    return (
        RECORD_START
        + f"\nhandler: {exchange.handler}"
        + f"\npath: {exchange.path}"
        + f"\nmethod: {exchange.method}"
        + f"\nparams: {render(exchange.params)}"
        + f"\nclient: {exchange.client}"
        + f"\nstatus: {exchange.status_code}"
        + f"\nresponse: {render(exchange.response)}"
        + f"\nlatency: {exchange.elapsed * 1000:.2f}ms"
        + RECORD_END
    )


class ExchangeLoggingMiddleware:
    """
    ASGI middleware recording each HTTP exchange to a LogSink.

    Non-HTTP scopes (websocket, lifespan) pass straight through.
    """

    def __init__(
        self,
        app: ASGIApp,
        sink: LogSink,
        handlers: Optional[HandlerRegistry] = None,
    ):
        self.app = app
        self.sink = sink
        self.handlers = handlers if handlers is not None else default_handlers

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or SCOPE_KEY in scope:
            await self.app(scope, receive, send)
            return

        exchange = Exchange(
            start=time.perf_counter(),
            method=scope["method"],
            path=scope["path"],
            client=get_client_ip(scope),
            request_media_type=normalize_media_type(Headers(scope=scope).get("content-type")),
        )
        scope[SCOPE_KEY] = exchange

        rehydrator = BodyRehydrator(receive)
        try:
            await rehydrator.read()
        except BodyReadError as e:
            self.sink.emit(logging.ERROR, f"{exchange.method} {exchange.path}: {e}")

        response_sink = DuplicatingSink(send)
        try:
            await self.app(scope, rehydrator.receive, response_sink)
        finally:
            await self._record(exchange, scope, rehydrator, response_sink)

    async def _record(
        self,
        exchange: Exchange,
        scope: Scope,
        rehydrator: BodyRehydrator,
        response_sink: DuplicatingSink,
    ) -> None:
        try:
            exchange.elapsed = time.perf_counter() - exchange.start
            exchange.status_code = response_sink.status_code if response_sink.started else 500
            exchange.response_media_type = normalize_media_type(response_sink.media_type)
            exchange.params = await self._request_params(exchange, scope, rehydrator)
            exchange.response = response_body(
                classify(exchange.response_media_type), response_sink.body
            )
            exchange.handler = self.handlers.identity_for(scope.get("endpoint"))

            self.sink.emit(logging.INFO, format_record(exchange))
        except Exception:
            self.sink.emit(
                logging.ERROR,
                f"Failed to record exchange {exchange.method} {exchange.path}",
                exc_info=True,
            )

    async def _request_params(
        self,
        exchange: Exchange,
        scope: Scope,
        rehydrator: BodyRehydrator,
    ) -> BodyValue:
        mode = classify(exchange.request_media_type)
        form = None
        if mode is Mode.FORM and rehydrator.body:
            # Parsed from the buffered bytes, the endpoint's channel is untouched.
            request = Request(scope, receive=rehydrator.replay())
            try:
                form = await request.form()
            except Exception as e:
                self.sink.emit(
                    logging.DEBUG,
                    f"{exchange.method} {exchange.path}: unparsable form body: {e}",
                )
                return NotCaptured()

        try:
            return request_params(mode, rehydrator.body, form)
        except BodyParseError as e:
            self.sink.emit(logging.DEBUG, f"{exchange.method} {exchange.path}: {e}")
            return NotCaptured()
        finally:
            if form is not None:
                await form.close()


def add_logging_middleware(app, sink: LogSink, handlers: Optional[HandlerRegistry] = None):
    """
    Add exchange logging middleware to FastAPI app.

    Args:
        app: FastAPI application instance
        sink: Destination for exchange records
        handlers: Registry resolving handler identities (defaults to the shared one)
    """
    app.add_middleware(ExchangeLoggingMiddleware, sink=sink, handlers=handlers)
