"""
ASGI channel and scope builders shared by the tests.
"""


def make_receive(messages):
    """ASGI receive channel replaying messages, then reporting disconnect."""
    queue = list(messages)

    async def receive():
        if queue:
            return queue.pop(0)
        return {"type": "http.disconnect"}

    return receive


def make_send(sent):
    """ASGI send channel appending every message to `sent`."""
    async def send(message):
        sent.append(message)

    return send


def http_scope(method="GET", path="/", headers=None, client=("10.0.0.5", 51000)):
    """Minimal ASGI HTTP scope."""
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method,
        "scheme": "http",
        "path": path,
        "raw_path": path.encode(),
        "root_path": "",
        "query_string": b"",
        "headers": [
            (name.lower().encode("latin-1"), value.encode("latin-1"))
            for name, value in (headers or {}).items()
        ],
        "client": client,
        "server": ("testserver", 80),
    }


