"""
Custom Exceptions

This module defines the exceptions raised while capturing an exchange.

None of them ever reach the client: the middleware catches each one where
it happens, reports it through the log sink and degrades to a placeholder.
"""


class ExchangeLogError(Exception):
    """Base exception for exchange logging."""
    pass


class BodyReadError(ExchangeLogError):
    """Raised when the request body stream ends before the last chunk arrives."""

    def __init__(self, bytes_read: int, reason: str = "client disconnected"):
        self.bytes_read = bytes_read
        self.reason = reason
        super().__init__(f"Request body read failed after {bytes_read} bytes: {reason}")


class BodyParseError(ExchangeLogError):
    """Raised when a body declared as structured content cannot be parsed."""

    def __init__(self, media_type: str, original_error: Exception = None):
        self.media_type = media_type
        self.original_error = original_error
        detail = f": {original_error}" if original_error else ""
        super().__init__(f"Malformed {media_type} body{detail}")
