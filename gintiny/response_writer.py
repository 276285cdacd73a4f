"""HTTP headers, an in-memory response recorder and the response writer wrapper."""

from __future__ import annotations

import string
from collections.abc import Callable, Iterable, Iterator
from http import HTTPStatus
from typing import Any

NO_WRITTEN = -1
DEFAULT_STATUS = int(HTTPStatus.OK)

_TOKEN_CHARS = frozenset(string.ascii_letters + string.digits + "!#$%&'*+-.^_`|~")


def canonical_header_key(key: str) -> str:
    """Return the canonical MIME form of a header name, e.g. ``X-Request-Id``.

    Keys holding characters that are not valid in a header name are returned
    unchanged.
    """
    if not key or any(ch not in _TOKEN_CHARS for ch in key):
        return key
    return "-".join(part[:1].upper() + part[1:].lower() for part in key.split("-"))


class Headers:
    """Case-insensitive, multi-valued HTTP header collection."""

    def __init__(self, initial: dict[str, str | Iterable[str]] | None = None) -> None:
        self._values: dict[str, list[str]] = {}
        for key, value in (initial or {}).items():
            self[key] = value

    def get(self, key: str) -> str:
        """Return the first value for ``key``, or an empty string."""
        values = self._values.get(canonical_header_key(key))
        return values[0] if values else ""

    def get_all(self, key: str) -> list[str]:
        """Return every value stored for ``key``."""
        return list(self._values.get(canonical_header_key(key), []))

    def set(self, key: str, value: str) -> None:
        """Replace the values for ``key`` with a single value."""
        self._values[canonical_header_key(key)] = [value]

    def add(self, key: str, value: str) -> None:
        """Append a value for ``key``."""
        self._values.setdefault(canonical_header_key(key), []).append(value)

    def delete(self, key: str) -> None:
        """Remove every value for ``key``."""
        self._values.pop(canonical_header_key(key), None)

    def items(self) -> Iterator[tuple[str, list[str]]]:
        for key, values in self._values.items():
            yield key, list(values)

    def copy(self) -> Headers:
        clone = Headers()
        for key, values in self._values.items():
            clone._values[key] = list(values)
        return clone

    def __getitem__(self, key: str) -> list[str]:
        return self._values[canonical_header_key(key)]

    def __setitem__(self, key: str, value: str | Iterable[str]) -> None:
        values = [value] if isinstance(value, str) else list(value)
        self._values[canonical_header_key(key)] = values

    def __delitem__(self, key: str) -> None:
        self._values.pop(canonical_header_key(key))

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and canonical_header_key(key) in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Headers):
            return NotImplemented
        return self._values == other._values

    def __repr__(self) -> str:
        return f"Headers({self._values!r})"


class ResponseRecorder:
    """In-memory response sink that records status, headers and body."""

    def __init__(self) -> None:
        self.code = DEFAULT_STATUS
        self._headers = Headers()
        self._body = bytearray()
        self.wrote_header = False
        self.flushed = False

    @property
    def body(self) -> bytes:
        return bytes(self._body)

    @property
    def text(self) -> str:
        return self._body.decode("utf-8")

    def header(self) -> Headers:
        return self._headers

    def write(self, data: bytes) -> int:
        if not self.wrote_header:
            self.write_header(DEFAULT_STATUS)
        self._body.extend(data)
        return len(data)

    def write_header(self, code: int) -> None:
        if self.wrote_header:
            return
        self.code = code
        self.wrote_header = True

    def flush(self) -> None:
        if not self.wrote_header:
            self.write_header(DEFAULT_STATUS)
        self.flushed = True


class ResponseWriter:
    """Wraps an underlying writer, deferring the status line until first write."""

    def __init__(self, writer: Any = None) -> None:
        self._writer = writer
        self._before: list[Callable[[], None]] = []
        self._after: list[Callable[[], None]] = []
        self._size = NO_WRITTEN
        self._status = DEFAULT_STATUS

    def unwrap(self) -> Any:
        """Return the underlying writer."""
        return self._writer

    def reset(self, writer: Any) -> None:
        """Reuse this wrapper for a new underlying writer."""
        self._before = []
        self._after = []
        self._writer = writer
        self._size = NO_WRITTEN
        self._status = DEFAULT_STATUS

    def write_header(self, code: int) -> None:
        """Record the status code; ignored once the response is written."""
        self.set_status(code)

    def set_status(self, status: int) -> None:
        if status > 0 and self._status != status and not self.written():
            self._status = status

    def write_header_now(self) -> None:
        """Send the status line now, running the registered before-callbacks."""
        if self.written():
            return
        self._size = 0
        for fn in self._before:
            fn()
        self._writer.write_header(self._status)

    def header(self) -> Headers:
        return self._writer.header()

    def before(self, fn: Callable[[], None]) -> None:
        """Register a callback run just before the status line is sent."""
        self._before.append(fn)

    def after(self, fn: Callable[[], None]) -> None:
        """Register a callback run after every call to ``write``."""
        self._after.append(fn)

    def write(self, data: bytes) -> int:
        self.write_header_now()
        n = self._writer.write(data)
        self._size += n
        for fn in self._after:
            fn()
        return n

    def write_string(self, s: str) -> int:
        self.write_header_now()
        writer_write_string = getattr(self._writer, "write_string", None)
        if writer_write_string is not None:
            n = writer_write_string(s)
        else:
            n = self._writer.write(s.encode("utf-8"))
        self._size += n
        return n

    def status(self) -> int:
        return self._status

    def size(self) -> int:
        """Bytes written to the body, or -1 if nothing has been written yet."""
        return self._size

    def written(self) -> bool:
        return self._size != NO_WRITTEN

    def hijack(self) -> Any:
        """Take over the connection; raises TypeError if the writer cannot."""
        if self._size < 0:
            self._size = 0
        hijack = getattr(self._writer, "hijack", None)
        if hijack is None:
            raise TypeError("underlying writer does not support hijacking")
        return hijack()

    def flush(self) -> None:
        """Send the status line and flush; raises TypeError if the writer cannot."""
        self.write_header_now()
        flush = getattr(self._writer, "flush", None)
        if flush is None:
            raise TypeError("underlying writer does not support flushing")
        flush()

    def pusher(self) -> Any:
        """Return the underlying writer if it supports server push, else None."""
        return self._writer if callable(getattr(self._writer, "push", None)) else None