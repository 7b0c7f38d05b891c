"""
Middleware module for request/response capture.

This module contains the ASGI middleware that records HTTP exchanges,
together with the capture primitives and the content policy it relies on.
"""

from exchangelog.middleware.logging import (
    ExchangeLoggingMiddleware,
    add_logging_middleware,
)

__all__ = [
    "ExchangeLoggingMiddleware",
    "add_logging_middleware",
]
