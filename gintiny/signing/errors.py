"""Errors raised while checking signed requests."""

from __future__ import annotations


class PublicError(Exception):
    """An error whose message may be shown to the client."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


ERR_INVALID_AUTHORIZATION_HEADER = PublicError("Authorization header format is incorrect")
ERR_INVALID_KEY_ID = PublicError("Invalid keyId")
ERR_DATE_NOT_FOUND = PublicError("There is no Date on Headers")
ERR_INCORRECT_ALGORITHM = PublicError("Algorithm does not match")
ERR_HEADER_NOT_ENOUGH = PublicError("Header field is not match requirement")
ERR_NO_SIGNATURE = PublicError("No Signature header found in request")
ERR_INVALID_SIGN = PublicError("Invalid sign")
ERR_MISSING_KEY_ID = PublicError("keyId must be on header")
ERR_MISSING_SIGNATURE = PublicError("signature must be on header")

ERR_UNTERMINATED_PARAMETER = PublicError("Unterminated parameter")
ERR_MISSING_DOUBLE_QUOTE = PublicError('Missing " after = character')
ERR_MISSING_EQUAL_CHARACTER = PublicError("Missing = character =")