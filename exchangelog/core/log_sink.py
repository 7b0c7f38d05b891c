"""
Log Sink

This module owns the destinations exchange records are written to.

The sink tees every record to two destinations with the same formatter:
- A size-rotated log file (backup count, age cutoff, optional gzip)
- The console (stdout), unconditionally

Design Decisions:
- Built on standard Python logging handlers, each of which serializes
  emit() under its own lock, so a multi-line record is never torn by
  concurrent requests
- The sink is constructed once at startup and injected into the middleware;
  nothing reads a package-level logger
- Destination failures (disk full, permissions) go through
  Handler.handleError and are printed to stderr, never raised to callers
"""

from __future__ import annotations

import gzip
import itertools
import logging
import os
import re
import shutil
import sys
import time
from glob import escape, glob
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, TextIO, Union

from exchangelog.core.setting import DEFAULT_LOG_FORMAT, Settings

__all__ = ["LogSink", "RetainingRotatingFileHandler"]

_MIB = 1024 * 1024
_SECONDS_PER_DAY = 24 * 60 * 60

_sink_ids = itertools.count(1)


class IsoFormatter(logging.Formatter):
    """Formatter with ISO-8601 timestamps (2026-10-19T08:15:02.123+0000)."""

    default_time_format = "%Y-%m-%dT%H:%M:%S"

    def formatTime(self, record, datefmt=None):
        ct = self.converter(record.created)
        if datefmt:
            return time.strftime(datefmt, ct)
        stamp = time.strftime(self.default_time_format, ct)
        return f"{stamp}.{int(record.msecs):03d}{time.strftime('%z', ct)}"


class RetainingRotatingFileHandler(RotatingFileHandler):
    """
    RotatingFileHandler with optional gzip compression and an age cutoff.

    Rotated files are named <file>.1, <file>.2, ... (<file>.1.gz with
    compression). After each rollover, rotated files older than
    max_age_days are removed.
    """

    def __init__(
        self,
        filename: str,
        max_bytes: int = 0,
        backup_count: int = 1,
        max_age_days: int = 0,
        compress: bool = False,
        encoding: str = "utf-8",
    ):
        Path(filename).parent.mkdir(parents=True, exist_ok=True)
        super().__init__(
            filename,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding=encoding,
            delay=True,
        )
        self.max_age_days = max_age_days
        self.compress = compress
        if compress:
            self.namer = self._gzip_name
            self.rotator = self._gzip_rotate

    @staticmethod
    def _gzip_name(default_name: str) -> str:
        return default_name + ".gz"

    @staticmethod
    def _gzip_rotate(source: str, dest: str) -> None:
        with open(source, "rb") as src, gzip.open(dest, "wb") as dst:
            shutil.copyfileobj(src, dst)
        os.remove(source)

    def doRollover(self):
        super().doRollover()
        self.prune_expired()

    def prune_expired(self, now: Optional[float] = None) -> list:
        """
        Delete rotated files whose modification time is past the age cutoff.

        Only names this handler produces (<file>.N, <file>.N.gz) are considered.

        Returns:
            Paths that were removed
        """
        if self.max_age_days <= 0:
            return []

        cutoff = (now if now is not None else time.time()) - self.max_age_days * _SECONDS_PER_DAY
        backup_name = re.compile(re.escape(os.path.basename(self.baseFilename)) + r"\.\d+(\.gz)?")
        removed = []
        for path in sorted(glob(escape(self.baseFilename) + ".*")):
            if not backup_name.fullmatch(os.path.basename(path)):
                continue
            try:
                if os.path.getmtime(path) < cutoff:
                    os.remove(path)
                    removed.append(path)
            except FileNotFoundError:
                continue
        return removed


class LogSink:
    """
    Process-wide destination for exchange records.

    Usage:
        sink = LogSink.from_settings(settings)
        sink.emit(logging.INFO, record)
        ...
        sink.close()  # at shutdown
    """

    def __init__(
        self,
        file_path: str,
        max_size_mb: int = 100,
        max_backups: int = 5,
        max_age_days: int = 30,
        compress: bool = False,
        level: Union[int, str] = logging.INFO,
        fmt: str = DEFAULT_LOG_FORMAT,
        stream: Optional[TextIO] = None,
    ):
        # One logger per sink instance, handlers are never shared.
        self._logger = logging.getLogger(f"exchangelog.sink.{next(_sink_ids)}")
        self._logger.setLevel(level)
        self._logger.propagate = False

        formatter = IsoFormatter(fmt)

        self.file_handler = RetainingRotatingFileHandler(
            file_path,
            max_bytes=max_size_mb * _MIB,
            backup_count=max_backups,
            max_age_days=max_age_days,
            compress=compress,
        )
        self.file_handler.setFormatter(formatter)

        self.console_handler = logging.StreamHandler(stream if stream is not None else sys.stdout)
        self.console_handler.setFormatter(formatter)

        self._logger.addHandler(self.file_handler)
        self._logger.addHandler(self.console_handler)

    @classmethod
    def from_settings(cls, settings: Settings, stream: Optional[TextIO] = None) -> "LogSink":
        """
        Build a sink from application settings.

        Args:
            settings: Loaded Settings instance
            stream: Console stream override (defaults to stdout)
        """
        return cls(
            file_path=settings.LOG_FILE_PATH,
            max_size_mb=settings.LOG_MAX_SIZE_MB,
            max_backups=settings.LOG_MAX_BACKUPS,
            max_age_days=settings.LOG_MAX_AGE_DAYS,
            compress=settings.LOG_COMPRESS,
            level=settings.LOG_LEVEL,
            fmt=settings.LOG_FORMAT,
            stream=stream,
        )

    @property
    def file_path(self) -> str:
        return self.file_handler.baseFilename

    def emit(self, level: int, message: str, exc_info: bool = False) -> None:
        """
        Write one record to both destinations.

        Fire and forget: destination errors are reported on stderr by the
        logging handlers and never raised here.

        Args:
            level: Standard logging level (logging.INFO, logging.ERROR, ...)
            message: Pre-formatted message, written as-is
            exc_info: Append the traceback of the exception being handled
        """
        self._logger.log(level, "%s", message, exc_info=exc_info)

    def close(self) -> None:
        """Flush and close both destinations."""
        for handler in (self.file_handler, self.console_handler):
            self._logger.removeHandler(handler)
            handler.flush()
        # The console stream belongs to the caller and stays open.
        self.file_handler.close()
