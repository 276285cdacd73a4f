"""Parser for ``key="value",key="value"`` signature parameter lists."""

from __future__ import annotations

from gintiny.signing.errors import (
    ERR_MISSING_DOUBLE_QUOTE,
    ERR_MISSING_EQUAL_CHARACTER,
    ERR_UNTERMINATED_PARAMETER,
)

_END = ""


class Parser:
    """Reads quoted ``key="value"`` parameters separated by commas."""

    def __init__(self, text: str) -> None:
        self._input = text
        self._pos = -1
        self._ch = _END
        self._read_char()

    def _read_char(self) -> None:
        self._pos += 1
        self._ch = self._input[self._pos] if self._pos < len(self._input) else _END

    def _peek_char(self) -> str:
        nxt = self._pos + 1
        return self._input[nxt] if nxt < len(self._input) else _END

    def next_param(self) -> tuple[str, str] | None:
        """Return the next (key, value) pair, or None when the input is exhausted.

        Raises PublicError for malformed input.
        """
        if self._ch == _END:
            return None

        key: list[str] = []
        value: list[str] = []
        key_parsed = False
        value_parsed = False

        while True:
            ch = self._ch
            if ch in (",", _END):
                if not value_parsed:
                    raise ERR_UNTERMINATED_PARAMETER.with_traceback(None)
                self._read_char()
                return "".join(key), "".join(value)
            if ch == '"':
                if not key_parsed:
                    raise ERR_MISSING_EQUAL_CHARACTER.with_traceback(None)
                if self._peek_char() not in (",", _END):
                    value.append(ch)
                else:
                    value_parsed = True
            elif ch == "=":
                if not key_parsed:
                    self._read_char()
                    if self._ch != '"':
                        raise ERR_MISSING_DOUBLE_QUOTE.with_traceback(None)
                    key_parsed = True
                else:
                    value.append(ch)
            elif key_parsed:
                value.append(ch)
            else:
                key.append(ch)
            self._read_char()

    def parse(self) -> dict[str, str]:
        """Return every parameter; a repeated key keeps its last value."""
        params: dict[str, str] = {}
        while (pair := self.next_param()) is not None:
            key, value = pair
            params[key] = value
        return params


def parse_params(text: str) -> dict[str, str]:
    """Parse a whole parameter list into a dict."""
    return Parser(text).parse()