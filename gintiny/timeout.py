"""Runs a handler under a time limit, buffering its response until it finishes."""

from __future__ import annotations

import io
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import timedelta
from http import HTTPStatus
from typing import Any

from gintiny.render import write_string
from gintiny.response_writer import Headers

DEFAULT_TIMEOUT = 5.0

Handler = Callable[[Any], None]


class BufferPool:
    """A pool of reusable in-memory byte buffers."""

    def __init__(self) -> None:
        self._buffers: list[io.BytesIO] = []
        self._lock = threading.Lock()

    def get(self) -> io.BytesIO:
        """Return a pooled buffer, or a new one if the pool is empty."""
        with self._lock:
            if self._buffers:
                return self._buffers.pop()
        return io.BytesIO()

    def put(self, buf: io.BytesIO) -> None:
        """Return ``buf`` to the pool."""
        with self._lock:
            self._buffers.append(buf)


def check_write_header_code(code: int) -> None:
    """Raise ValueError unless ``code`` is a three-digit status code."""
    if code < 100 or code > 999:
        raise ValueError(f"invalid http status code: {code}")


def _clear(buf: io.BytesIO) -> None:
    buf.seek(0)
    buf.truncate()


class TimeoutWriter:
    """Buffers status, headers and body; writes are dropped once timed out."""

    def __init__(self, writer: Any, buf: io.BytesIO | None) -> None:
        self.writer = writer
        self._body = buf
        self._headers = Headers()
        self.lock = threading.Lock()
        self.timed_out = False
        self.wrote_headers = False
        self.code = 0

    def write(self, data: bytes) -> int:
        with self.lock:
            if self.timed_out or self._body is None:
                return 0
            return self._body.write(data)

    def write_header(self, code: int) -> None:
        check_write_header_code(code)
        with self.lock:
            if self.timed_out or self.wrote_headers:
                return
            self.wrote_headers = True
            self.code = code

    def header(self) -> Headers:
        return self._headers

    def write_string(self, s: str) -> int:
        return self.write(s.encode("utf-8"))

    def free_buffer(self) -> None:
        """Clear and release the body buffer; later writes are dropped."""
        if self._body is not None:
            _clear(self._body)
        self._body = None


def default_response(writer: Any) -> None:
    """Answer with 408 and its status text."""
    writer.write_header(int(HTTPStatus.REQUEST_TIMEOUT))
    write_string(writer, HTTPStatus.REQUEST_TIMEOUT.phrase)


@dataclass
class Timeout:
    """A handler with a time limit and the response sent when it is exceeded.

    A limit of zero or less runs the handler directly on the writer.
    """

    timeout: float = DEFAULT_TIMEOUT
    handler: Handler | None = None
    response: Handler = default_response
    _pool: BufferPool = field(default_factory=BufferPool, repr=False)

    def run(self, writer: Any) -> None:
        """Run the handler against ``writer``, re-raising any exception it raised."""
        handler = self.handler
        if handler is None:
            raise ValueError("timeout handler is not set")
        if self.timeout <= 0:
            handler(writer)
            return

        buffer = self._pool.get()
        _clear(buffer)
        tw = TimeoutWriter(writer, buffer)
        done = threading.Event()
        failures: list[BaseException] = []

        def target() -> None:
            try:
                handler(tw)
            except BaseException as exc:  # handed back to the caller
                failures.append(exc)
            finally:
                done.set()

        threading.Thread(target=target, daemon=True).start()

        if not done.wait(self.timeout):
            with tw.lock:
                tw.timed_out = True
                tw.free_buffer()
            self._pool.put(buffer)
            self.response(writer)
            return

        if failures:
            with tw.lock:
                tw.free_buffer()
            raise failures[0]

        with tw.lock:
            destination = writer.header()
            for key, values in tw.header().items():
                destination[key] = values
            if tw.code:
                writer.write_header(tw.code)
            writer.write(buffer.getvalue())
            tw.free_buffer()
        self._pool.put(buffer)


Option = Callable[[Timeout], None]


def with_timeout(timeout: float | timedelta) -> Option:
    """Set the time limit, in seconds or as a timedelta."""
    seconds = timeout.total_seconds() if isinstance(timeout, timedelta) else float(timeout)

    def apply(t: Timeout) -> None:
        t.timeout = seconds

    return apply


def with_handler(handler: Handler) -> Option:
    def apply(t: Timeout) -> None:
        t.handler = handler

    return apply


def with_response(handler: Handler) -> Option:
    def apply(t: Timeout) -> None:
        t.response = handler

    return apply


def new(*args: Option) -> Timeout:
    """Build a Timeout from options; a None option raises ValueError."""
    t = Timeout()
    for option in args:
        if option is None:
            raise ValueError("timeout Option not be nil")
        option(t)
    return t