"""HMAC signing algorithms identified by name."""

from __future__ import annotations

import hashlib
import hmac
from abc import ABC, abstractmethod
from collections.abc import Callable
from functools import partial
from typing import Any


def _to_bytes(value: str | bytes) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else bytes(value)


class Crypto(ABC):
    """A named algorithm that signs a message with a shared secret."""

    @abstractmethod
    def name(self) -> str:
        """Return the algorithm name used in signature headers."""

    @abstractmethod
    def sign(self, msg: str | bytes, secret: str | bytes) -> bytes:
        """Return the signature of ``msg`` under ``secret``."""


class _StdlibHmac(Crypto):
    _NAME: str
    _DIGEST: Callable[..., Any]

    def name(self) -> str:
        return self._NAME

    def sign(self, msg: str | bytes, secret: str | bytes) -> bytes:
        return hmac.new(_to_bytes(secret), _to_bytes(msg), type(self)._DIGEST).digest()


class _ExtendableOutputHmac(Crypto):
    """HMAC over a SHAKE function truncated to a fixed output size."""

    _NAME: str
    _SHAKE: Callable[[bytes], Any]
    _OUTPUT_SIZE: int
    _BLOCK_SIZE: int

    def name(self) -> str:
        return self._NAME

    def _hash(self, data: bytes) -> bytes:
        return type(self)._SHAKE(data).digest(self._OUTPUT_SIZE)

    def sign(self, msg: str | bytes, secret: str | bytes) -> bytes:
        key = _to_bytes(secret)
        if len(key) > self._BLOCK_SIZE:
            key = self._hash(key)
        key = key.ljust(self._BLOCK_SIZE, b"\x00")
        ipad = bytes(b ^ 0x36 for b in key)
        opad = bytes(b ^ 0x5C for b in key)
        inner = self._hash(ipad + _to_bytes(msg))
        return self._hash(opad + inner)


class HmacSha256(_StdlibHmac):
    """HMAC over SHA3-256."""

    _NAME = "hmac-sha256"
    _DIGEST = hashlib.sha3_256


class HmacSha512(_StdlibHmac):
    """HMAC over SHA3-512."""

    _NAME = "hmac-sha512"
    _DIGEST = hashlib.sha3_512


class HmacBlake2b256(_StdlibHmac):
    """HMAC over BLAKE2b with a 32-byte digest."""

    _NAME = "hmac-blake2b256"
    _DIGEST = partial(hashlib.blake2b, digest_size=32)


class HmacBlake2b512(_StdlibHmac):
    """HMAC over BLAKE2b with a 64-byte digest."""

    _NAME = "hmac-blake2b512"
    _DIGEST = partial(hashlib.blake2b, digest_size=64)


class HmacBlake2c256(_StdlibHmac):
    """HMAC over BLAKE2s with a 32-byte digest.

    It reports itself under the shake256 name.
    """

    _NAME = "hmac-shake256"
    _DIGEST = partial(hashlib.blake2s, digest_size=32)


class HmacShake128(_ExtendableOutputHmac):
    """HMAC over SHAKE128 with a 16-byte output and a 128-byte block."""

    _NAME = "hmac-shake128"
    _SHAKE = hashlib.shake_128
    _OUTPUT_SIZE = 16
    _BLOCK_SIZE = 128


class HmacShake256(_ExtendableOutputHmac):
    """HMAC over SHAKE256 with a 32-byte output and a 256-byte block."""

    _NAME = "hmac-shake256"
    _SHAKE = hashlib.shake_256
    _OUTPUT_SIZE = 32
    _BLOCK_SIZE = 256