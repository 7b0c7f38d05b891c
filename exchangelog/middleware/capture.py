"""
Capture primitives for the exchange logging middleware.

ASGI request and response bodies are single-pass channels: once a message
has been received or sent, nobody else sees it. The two classes here let
the middleware observe both bodies without taking them away from the
endpoint or the client:

- DuplicatingSink wraps `send`; every response message is forwarded
  unchanged and its body bytes are appended to a capture buffer.
- BodyRehydrator drains `receive` once, then hands the endpoint a fresh
  channel that yields the same bytes from the start.

Both are request scoped and owned by a single task, so neither locks.
"""

from typing import List, Optional

from starlette.datastructures import Headers
from starlette.types import Message, Receive, Send

from exchangelog.core.exceptions import BodyReadError

__all__ = ["DuplicatingSink", "BodyRehydrator"]


class DuplicatingSink:
    """
    ASGI send wrapper that mirrors response bodies into memory.

    Body bytes are appended only after the wrapped send accepted the
    message, so the buffer holds exactly what reached the real channel,
    in order. The buffer is unbounded: large or streaming responses cost
    memory proportional to their size.
    """

    def __init__(self, send: Send):
        self._send = send
        self._body = bytearray()
        self.status_code: Optional[int] = None
        self.headers: Optional[Headers] = None

    async def __call__(self, message: Message) -> None:
        await self._send(message)

        message_type = message["type"]
        if message_type == "http.response.start":
            self.status_code = message["status"]
            self.headers = Headers(raw=list(message.get("headers", [])))
        elif message_type == "http.response.body":
            self._body.extend(message.get("body", b""))

    @property
    def started(self) -> bool:
        """True once the response status line has been sent."""
        return self.status_code is not None

    @property
    def body(self) -> bytes:
        return bytes(self._body)

    @property
    def media_type(self) -> Optional[str]:
        """Raw Content-Type header of the response, if any."""
        if self.headers is None:
            return None
        return self.headers.get("content-type")


class BodyRehydrator:
    """
    Reads a request body once and replays it to downstream consumers.

    Usage:
        rehydrator = BodyRehydrator(receive)
        body = await rehydrator.read()
        await app(scope, rehydrator.receive, send)
    """

    def __init__(self, receive: Receive):
        self._receive = receive
        self._read = False
        self._delivered = False
        self._disconnected = False
        self.body = b""

    async def read(self) -> bytes:
        """
        Drain the original channel into memory.

        A request without a body yields b"". If the client disconnects
        before the final chunk, the partial bytes are discarded, the body
        stays empty and BodyReadError is raised.

        Raises:
            BodyReadError: If the stream ended early
            RuntimeError: If called more than once
        """
        if self._read:
            raise RuntimeError("Request body has already been read by this rehydrator")
        self._read = True

        chunks: List[bytes] = []
        received = 0
        while True:
            message = await self._receive()
            if message["type"] == "http.disconnect":
                self._disconnected = True
                raise BodyReadError(received)
            if message["type"] != "http.request":
                raise BodyReadError(received, f"unexpected message {message['type']!r}")

            chunk = message.get("body", b"")
            chunks.append(chunk)
            received += len(chunk)
            if not message.get("more_body", False):
                break

        self.body = b"".join(chunks)
        return self.body

    async def receive(self) -> Message:
        """
        Replacement receive channel for the downstream application.

        The first call returns the whole body in a single message. Later
        calls fall through to the original channel, which is where the
        server reports http.disconnect.
        """
        if not self._delivered:
            self._delivered = True
            return {"type": "http.request", "body": self.body, "more_body": False}
        if self._disconnected:
            return {"type": "http.disconnect"}
        return await self._receive()

    def replay(self) -> Receive:
        """Return an independent single-pass channel over the same bytes."""
        body = self.body
        delivered = False

        async def receive() -> Message:
            nonlocal delivered
            if delivered:
                return {"type": "http.disconnect"}
            delivered = True
            return {"type": "http.request", "body": body, "more_body": False}

        return receive
