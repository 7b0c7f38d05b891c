"""
Shared fixtures.

LOG_FILE_PATH is pointed at a temporary directory before anything imports
the settings, so importing exchangelog.main never writes into the repo.
"""

import logging
import os
import tempfile

os.environ.setdefault("LOG_FILE_PATH", os.path.join(tempfile.mkdtemp(), "exchange.log"))

import pytest  # noqa: E402


class CollectingSink:
    """In-memory stand-in for LogSink."""

    def __init__(self):
        self.records = []
        self.closed = False

    def emit(self, level, message, exc_info=False):
        self.records.append((level, message))

    def close(self):
        self.closed = True

    def messages(self, level=logging.INFO):
        return [message for record_level, message in self.records if record_level == level]


@pytest.fixture
def collecting_sink():
    return CollectingSink()
