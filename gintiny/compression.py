"""Gzip compression of responses and decompression of gzip request bodies."""

from __future__ import annotations

import gzip
import re
import zlib
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from gintiny.response_writer import Headers

BEST_COMPRESSION = zlib.Z_BEST_COMPRESSION
BEST_SPEED = zlib.Z_BEST_SPEED
DEFAULT_COMPRESSION = zlib.Z_DEFAULT_COMPRESSION
NO_COMPRESSION = zlib.Z_NO_COMPRESSION

_GZIP_WBITS = 16 + zlib.MAX_WBITS

DecompressFn = Callable[[Headers, "bytes | None"], "bytes | None"]


class ExcludedExtensions:
    """File extensions (with leading dot) whose responses are not compressed."""

    def __init__(self, extensions: Iterable[str] = ()) -> None:
        self._extensions = frozenset(extensions)

    def contains(self, target: str) -> bool:
        return target in self._extensions

    def __contains__(self, target: object) -> bool:
        return isinstance(target, str) and self.contains(target)


class ExcludedPaths:
    """Path prefixes whose responses are not compressed."""

    def __init__(self, paths: Iterable[str] = ()) -> None:
        self._paths = tuple(paths)

    def contains(self, request_uri: str) -> bool:
        return any(request_uri.startswith(path) for path in self._paths)

    def __contains__(self, request_uri: object) -> bool:
        return isinstance(request_uri, str) and self.contains(request_uri)


class ExcludedPathRegexes:
    """Regular expressions; a path matching any of them is not compressed."""

    def __init__(self, patterns: Iterable[str] = ()) -> None:
        self._patterns = tuple(re.compile(pattern) for pattern in patterns)

    def contains(self, request_uri: str) -> bool:
        return any(pattern.search(request_uri) for pattern in self._patterns)

    def __contains__(self, request_uri: object) -> bool:
        return isinstance(request_uri, str) and self.contains(request_uri)


DEFAULT_EXCLUDED_EXTENSIONS = ExcludedExtensions([".png", ".gif", ".jpeg", ".jpg"])


@dataclass
class Options:
    excluded_extensions: ExcludedExtensions = field(
        default_factory=lambda: DEFAULT_EXCLUDED_EXTENSIONS
    )
    excluded_paths: ExcludedPaths = field(default_factory=ExcludedPaths)
    excluded_path_regexes: ExcludedPathRegexes = field(default_factory=ExcludedPathRegexes)
    decompress_fn: DecompressFn | None = None


Option = Callable[[Options], None]


def with_excluded_extensions(args: Iterable[str]) -> Option:
    def apply(options: Options) -> None:
        options.excluded_extensions = ExcludedExtensions(args)

    return apply


def with_excluded_paths(args: Iterable[str]) -> Option:
    def apply(options: Options) -> None:
        options.excluded_paths = ExcludedPaths(args)

    return apply


def with_excluded_paths_regexs(args: Iterable[str]) -> Option:
    def apply(options: Options) -> None:
        options.excluded_path_regexes = ExcludedPathRegexes(args)

    return apply


def with_decompress_fn(decompress_fn: DecompressFn) -> Option:
    def apply(options: Options) -> None:
        options.decompress_fn = decompress_fn

    return apply


def default_decompress(headers: Headers, body: bytes | None) -> bytes | None:
    """Gunzip ``body`` and drop the Content-Encoding and Content-Length headers.

    A missing body is returned unchanged; a malformed one raises ValueError.
    """
    if body is None:
        return None
    try:
        data = gzip.decompress(body)
    except (OSError, EOFError, zlib.error) as exc:
        raise ValueError(f"gzip: {exc}") from exc
    headers.delete("Content-Encoding")
    headers.delete("Content-Length")
    return data


def _extension(path: str) -> str:
    base = path.rsplit("/", 1)[-1]
    dot = base.rfind(".")
    return base[dot:] if dot >= 0 else ""


class GzipWriter:
    """Compresses everything written to it into an underlying response writer.

    ``close`` finishes the stream and sets Content-Length to the compressed size.
    """

    def __init__(self, writer: Any, level: int = DEFAULT_COMPRESSION) -> None:
        self._writer = writer
        self._compressor = zlib.compressobj(level, zlib.DEFLATED, _GZIP_WBITS)
        self._size = 0
        self._closed = False

    def _emit(self, chunk: bytes) -> None:
        if chunk:
            self._size += self._writer.write(chunk)

    def write(self, data: bytes) -> int:
        """Compress ``data``; returns the number of uncompressed bytes taken."""
        if self._closed:
            raise ValueError("write to closed gzip writer")
        self._emit(self._compressor.compress(data))
        return len(data)

    def write_string(self, s: str) -> int:
        return self.write(s.encode("utf-8"))

    def size(self) -> int:
        """Compressed bytes written to the underlying writer so far."""
        return self._size

    def header(self) -> Headers:
        return self._writer.header()

    def write_header(self, code: int) -> None:
        self._writer.write_header(code)

    def flush(self) -> None:
        if not self._closed:
            self._emit(self._compressor.flush(zlib.Z_SYNC_FLUSH))
        flush = getattr(self._writer, "flush", None)
        if flush is not None:
            flush()

    def close(self) -> None:
        if self._closed:
            return
        self._emit(self._compressor.flush())
        self._closed = True
        self._writer.header().set("Content-Length", str(self._size))

    def __enter__(self) -> GzipWriter:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class GzipHandler:
    """Decides which requests get gzip responses and wraps their writers."""

    def __init__(self, level: int = DEFAULT_COMPRESSION, options: Options | None = None) -> None:
        if not NO_COMPRESSION - 1 <= level <= BEST_COMPRESSION:
            raise ValueError(f"gzip: invalid compression level: {level}")
        self._level = level
        self.options = options if options is not None else Options()

    def should_compress(self, headers: Headers, path: str) -> bool:
        """Return whether the response to a request with ``headers`` at ``path`` is compressed."""
        if (
            "gzip" not in headers.get("Accept-Encoding")
            or "Upgrade" in headers.get("Connection")
            or "text/event-stream" in headers.get("Accept")
        ):
            return False
        if self.options.excluded_extensions.contains(_extension(path)):
            return False
        if self.options.excluded_paths.contains(path):
            return False
        if self.options.excluded_path_regexes.contains(path):
            return False
        return True

    def wrap(self, writer: Any) -> GzipWriter:
        """Mark the response as gzip-encoded and return a compressing writer over it."""
        header = writer.header()
        header.set("Content-Encoding", "gzip")
        header.set("Vary", "Accept-Encoding")
        return GzipWriter(writer, self._level)

    def decompress(self, headers: Headers, body: bytes | None) -> bytes | None:
        """Run the configured decompressor on a gzip-encoded request body."""
        fn = self.options.decompress_fn
        if fn is not None and headers.get("Content-Encoding") == "gzip":
            return fn(headers, body)
        return body


def gzip_handler(level: int, *args: Option) -> GzipHandler:
    """Return a handler with compression ``level`` and the given options applied."""
    options = Options()
    for setter in args:
        setter(options)
    return GzipHandler(level, options)