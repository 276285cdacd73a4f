"""Checks HTTP signatures of incoming requests against shared secrets."""

from __future__ import annotations

import base64
from collections.abc import Callable, Iterable
from http import HTTPStatus

from gintiny.signing.errors import (
    ERR_HEADER_NOT_ENOUGH,
    ERR_INCORRECT_ALGORITHM,
    ERR_INVALID_KEY_ID,
    ERR_INVALID_SIGN,
    PublicError,
)
from gintiny.signing.signature import (
    KeyID,
    Secret,
    Secrets,
    SignatureHeader,
    signature_header_from_headers,
)
from gintiny.signing.validators import DateValidator, DigestValidator, Request, Validator

REQUEST_TARGET = "(request-target)"
DATE = "date"
DIGEST = "digest"
HOST = "host"

DEFAULT_REQUIRED_HEADERS = (REQUEST_TARGET, DATE, DIGEST)


class AuthenticationError(Exception):
    """A request failed authentication; ``status`` is the HTTP status to answer with."""

    def __init__(self, status: int, error: Exception) -> None:
        super().__init__(str(error))
        self.status = status
        self.error = error


Option = Callable[["Authenticator"], None]


def with_validator(*args: Validator) -> Option:
    """Use the given validators instead of the default date and digest validators."""

    def apply(authenticator: Authenticator) -> None:
        authenticator.validators = list(args) or None

    return apply


def with_required_headers(headers: Iterable[str]) -> Option:
    """Require these header names to be part of every signed message."""

    def apply(authenticator: Authenticator) -> None:
        authenticator.required_headers = list(headers)

    return apply


def construct_sign_message(request: Request, headers: Iterable[str]) -> str:
    """Build the string that is signed from the named request fields."""
    lines = []
    for name in headers:
        if name == HOST:
            value = request.host
        elif name == REQUEST_TARGET:
            value = f"{request.method.lower()} {request.uri}"
        else:
            value = request.headers.get(name)
        lines.append(f"{name}: {value}")
    return "\n".join(lines)


class Authenticator:
    """Verifies signed requests with a set of keyed secrets."""

    def __init__(self, secrets: Secrets, *options: Option) -> None:
        self.secrets = secrets
        self.validators: list[Validator] | None = None
        self.required_headers: list[str] = []
        for option in options:
            option(self)
        if self.validators is None:
            self.validators = [DateValidator(), DigestValidator()]
        if not self.required_headers:
            self.required_headers = list(DEFAULT_REQUIRED_HEADERS)

    def authenticate(self, request: Request) -> SignatureHeader:
        """Return the request's signature header, or raise AuthenticationError."""
        try:
            sig = signature_header_from_headers(request.headers)
        except PublicError as exc:
            raise AuthenticationError(int(HTTPStatus.UNAUTHORIZED), exc) from None

        for validator in self.validators or ():
            try:
                validator.validate(request)
            except PublicError as exc:
                raise AuthenticationError(int(HTTPStatus.BAD_REQUEST), exc) from None

        if not self.is_valid_header(sig.headers):
            raise AuthenticationError(int(HTTPStatus.BAD_REQUEST), ERR_HEADER_NOT_ENOUGH)

        try:
            secret = self.get_secret(sig.key_id, sig.algorithm)
        except PublicError as exc:
            status = HTTPStatus.UNAUTHORIZED if exc is ERR_INVALID_KEY_ID else HTTPStatus.BAD_REQUEST
            raise AuthenticationError(int(status), exc) from None

        message = construct_sign_message(request, sig.headers)
        try:
            signature = secret.algorithm.sign(message, secret.key)
        except Exception as exc:
            raise AuthenticationError(int(HTTPStatus.INTERNAL_SERVER_ERROR), exc) from exc

        if base64.b64encode(signature).decode("ascii") != sig.signature:
            raise AuthenticationError(int(HTTPStatus.UNAUTHORIZED), ERR_INVALID_SIGN)
        return sig

    def is_valid_header(self, headers: Iterable[str]) -> bool:
        """Return whether every required header is among ``headers``."""
        present = set(headers)
        return all(name in present for name in self.required_headers)

    def get_secret(self, key_id: KeyID, algorithm: str) -> Secret:
        """Return the secret for ``key_id``; raises PublicError if unknown or mismatched."""
        secret = self.secrets.get(key_id)
        if secret is None:
            raise ERR_INVALID_KEY_ID.with_traceback(None)
        if algorithm and secret.algorithm.name() != algorithm:
            raise ERR_INCORRECT_ALGORITHM.with_traceback(None)
        return secret