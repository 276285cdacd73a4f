"""Signature header parsing and the secrets used to check signatures."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from gintiny.response_writer import Headers
from gintiny.signing.algorithms import Crypto
from gintiny.signing.errors import (
    ERR_INVALID_AUTHORIZATION_HEADER,
    ERR_MISSING_KEY_ID,
    ERR_MISSING_SIGNATURE,
    ERR_NO_SIGNATURE,
)
from gintiny.signing.parser import parse_params

AUTHORIZATION_HEADER = "Authorization"
AUTHORIZATION_HEADER_INIT_STRING = "Signature "
SIGNATURE_HEADER = "Signature"
SIGNING_KEY_ID = "keyId"
SIGNING_ALGORITHM = "algorithm"
SIGNING_SIGNATURE = "signature"
SIGNING_HEADERS = "headers"

KeyID = str


@dataclass
class Secret:
    """A shared key and the algorithm it signs with."""

    key: str
    algorithm: Crypto


Secrets = Mapping[KeyID, Secret]


@dataclass
class SignatureHeader:
    """The parameters of a request's signature."""

    key_id: KeyID
    signature: str
    headers: list[str] = field(default_factory=lambda: ["date"])
    algorithm: str = ""


def get_signature_string(headers: Headers) -> str:
    """Return the signature parameters from the Signature or Authorization header."""
    value = headers.get(SIGNATURE_HEADER)
    if value:
        return value
    value = headers.get(AUTHORIZATION_HEADER)
    if value:
        if not value.startswith(AUTHORIZATION_HEADER_INIT_STRING):
            raise ERR_INVALID_AUTHORIZATION_HEADER.with_traceback(None)
        return value[len(AUTHORIZATION_HEADER_INIT_STRING):]
    raise ERR_NO_SIGNATURE.with_traceback(None)


def parse_signature_string(s: str) -> SignatureHeader:
    """Parse signature parameters; ``headers`` defaults to ``["date"]``."""
    params = parse_params(s)
    if SIGNING_KEY_ID not in params:
        raise ERR_MISSING_KEY_ID.with_traceback(None)
    if SIGNING_SIGNATURE not in params:
        raise ERR_MISSING_SIGNATURE.with_traceback(None)
    header_string = params.get(SIGNING_HEADERS, "")
    headers = header_string.split(" ") if header_string else ["date"]
    return SignatureHeader(
        key_id=params[SIGNING_KEY_ID],
        signature=params[SIGNING_SIGNATURE],
        headers=headers,
        algorithm=params.get(SIGNING_ALGORITHM, ""),
    )


def signature_header_from_headers(headers: Headers) -> SignatureHeader:
    """Find and parse the signature carried by request ``headers``."""
    return parse_signature_string(get_signature_string(headers))