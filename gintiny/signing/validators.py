"""Request validators run before a signature is checked."""

from __future__ import annotations

import base64
import hashlib
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from gintiny.response_writer import Headers
from gintiny.signing.errors import PublicError

MAX_TIME_GAP = timedelta(seconds=30)

ERR_DATE_NOT_IN_RANGE = PublicError("Date submit is not in acceptable range")
ERR_INVALID_DIGEST = PublicError("sha256 of body is not match with digest")

_HTTP_TIME_FORMATS = (
    "%a, %d %b %Y %H:%M:%S GMT",
    "%A, %d-%b-%y %H:%M:%S GMT",
    "%a %b %d %H:%M:%S %Y",
)


@dataclass
class Request:
    """The parts of an HTTP request that signing and validation look at."""

    method: str = "GET"
    uri: str = "/"
    host: str = ""
    headers: Headers = field(default_factory=Headers)
    body: bytes | None = None

    @property
    def content_length(self) -> int:
        return len(self.body) if self.body else 0


class Validator(ABC):
    """Checks one aspect of a request."""

    @abstractmethod
    def validate(self, request: Request) -> None:
        """Raise PublicError if ``request`` is not acceptable."""


def _parse_http_time(value: str) -> datetime:
    for fmt in _HTTP_TIME_FORMATS:
        try:
            return datetime.strptime(value, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    raise ValueError(f'parsing time "{value}": not an HTTP date')


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class DateValidator(Validator):
    """Accepts requests whose Date header is within ``time_gap`` of the clock."""

    time_gap: timedelta = MAX_TIME_GAP
    clock: Callable[[], datetime] = field(default=_utc_now, repr=False)

    def validate(self, request: Request) -> None:
        try:
            sent = _parse_http_time(request.headers.get("date"))
        except ValueError as exc:
            raise PublicError(f"Could not parse date header. Error: {exc}") from None
        now = self.clock()
        if sent < now - self.time_gap or sent > now + self.time_gap:
            raise ERR_DATE_NOT_IN_RANGE.with_traceback(None)


def calculate_digest(request: Request) -> str:
    """Return ``SHA-256=<base64>`` for the body, or an empty string for no body."""
    if request.content_length == 0:
        return ""
    digest = hashlib.sha256(request.body or b"").digest()
    return "SHA-256=" + base64.b64encode(digest).decode("ascii")


@dataclass
class DigestValidator(Validator):
    """Accepts requests whose Digest header matches the SHA-256 of the body."""

    def validate(self, request: Request) -> None:
        if calculate_digest(request) != request.headers.get("digest"):
            raise ERR_INVALID_DIGEST.with_traceback(None)