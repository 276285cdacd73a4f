"""Response renderers: JSON variants, XML, YAML, TOML, MsgPack, protobuf and raw data."""

from __future__ import annotations

import json
import posixpath
import xml.etree.ElementTree as ET
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, BinaryIO, Protocol
from urllib.parse import urlsplit

import msgpack
import tomli_w
import yaml

from gintiny.path import clean_path
from gintiny.response_writer import Headers

CHARSET_UTF8 = "charset=UTF-8"

MIME_APPLICATION_JSON = "application/json"
MIME_APPLICATION_JSON_CHARSET_UTF8 = f"{MIME_APPLICATION_JSON}; {CHARSET_UTF8}"
MIME_APPLICATION_JAVASCRIPT = "application/javascript"
MIME_APPLICATION_JAVASCRIPT_CHARSET_UTF8 = f"{MIME_APPLICATION_JAVASCRIPT}; {CHARSET_UTF8}"
MIME_APPLICATION_XML = "application/xml"
MIME_APPLICATION_XML_CHARSET_UTF8 = f"{MIME_APPLICATION_XML}; {CHARSET_UTF8}"
MIME_TEXT_XML = "text/xml"
MIME_TEXT_XML_CHARSET_UTF8 = f"{MIME_TEXT_XML}; {CHARSET_UTF8}"
MIME_APPLICATION_FORM = "application/x-www-form-urlencoded"
MIME_APPLICATION_PROTOBUF = "application/protobuf"
MIME_APPLICATION_MSGPACK = "application/msgpack"
MIME_TEXT_HTML = "text/html"
MIME_TEXT_HTML_CHARSET_UTF8 = f"{MIME_TEXT_HTML}; {CHARSET_UTF8}"
MIME_TEXT_PLAIN = "text/plain"
MIME_TEXT_PLAIN_CHARSET_UTF8 = f"{MIME_TEXT_PLAIN}; {CHARSET_UTF8}"
MIME_MULTIPART_FORM = "multipart/form-data"
MIME_OCTET_STREAM = "application/octet-stream"
MIME_APPLICATION_TOML = "application/toml"
MIME_APPLICATION_TOML_CHARSET_UTF8 = f"{MIME_APPLICATION_TOML}; {CHARSET_UTF8}"
MIME_APPLICATION_YAML = "application/yaml"
MIME_APPLICATION_YAML_CHARSET_UTF8 = f"{MIME_APPLICATION_YAML}; {CHARSET_UTF8}"

_JSON_CONTENT_TYPE = (MIME_APPLICATION_JSON,)
_JSONP_CONTENT_TYPE = (MIME_APPLICATION_JAVASCRIPT_CHARSET_UTF8,)
_JSON_ASCII_CONTENT_TYPE = (MIME_APPLICATION_JSON,)
_XML_CONTENT_TYPE = (MIME_APPLICATION_XML_CHARSET_UTF8,)
_YAML_CONTENT_TYPE = (MIME_APPLICATION_YAML_CHARSET_UTF8,)
_TOML_CONTENT_TYPE = (MIME_APPLICATION_TOML_CHARSET_UTF8,)
_MSGPACK_CONTENT_TYPE = (MIME_APPLICATION_MSGPACK,)
_PROTOBUF_CONTENT_TYPE = (MIME_APPLICATION_PROTOBUF,)
_PLAIN_CONTENT_TYPE = (MIME_TEXT_PLAIN_CHARSET_UTF8,)

_COPY_CHUNK = 32 * 1024


class _Writer(Protocol):
    def header(self) -> Headers: ...

    def write(self, data: bytes) -> int: ...


def _write_content_type(w: _Writer, value: Sequence[str]) -> None:
    header = w.header()
    if not header.get_all("Content-Type"):
        header["Content-Type"] = list(value)


_HTML_ESCAPES = {"<": "\\u003c", ">": "\\u003e", "&": "\\u0026"}
_LINE_SEPARATOR_ESCAPES = {"\u2028": "\\u2028", "\u2029": "\\u2029"}


def _marshal(obj: Any, *, indent: int | None = None, escape_html: bool = True) -> str:
    """Encode ``obj`` as JSON with sorted keys; raises TypeError or ValueError."""
    separators = (",", ": ") if indent is not None else (",", ":")
    text = json.dumps(
        obj,
        ensure_ascii=False,
        sort_keys=True,
        allow_nan=False,
        indent=indent,
        separators=separators,
    )
    escapes = dict(_LINE_SEPARATOR_ESCAPES)
    if escape_html:
        escapes.update(_HTML_ESCAPES)
    return "".join(escapes.get(ch, ch) for ch in text)


def _js_escape(text: str) -> str:
    """Escape ``text`` for safe embedding in JavaScript source."""
    special = {
        "\\": "\\\\",
        "'": "\\'",
        '"': '\\"',
        "<": "\\u003C",
        ">": "\\u003E",
        "&": "\\u0026",
        "=": "\\u003D",
    }
    out = []
    for ch in text:
        if ch in special:
            out.append(special[ch])
        elif ch < " " or not ch.isprintable() and ch != " ":
            out.append(f"\\u{ord(ch):04X}")
        else:
            out.append(ch)
    return "".join(out)


def write_json(w: _Writer, obj: Any) -> None:
    """Set the JSON content type and write ``obj`` as compact JSON."""
    _write_content_type(w, _JSON_CONTENT_TYPE)
    w.write(_marshal(obj).encode("utf-8"))


def write_msgpack(w: _Writer, obj: Any) -> None:
    """Set the MsgPack content type and write ``obj`` encoded as MsgPack."""
    _write_content_type(w, _MSGPACK_CONTENT_TYPE)
    w.write(msgpack.packb(obj, use_bin_type=True))


def write_string(w: _Writer, format: str, data: Sequence[Any] = ()) -> None:
    """Set the plain-text content type and write ``format``, %-formatted with ``data`` if any."""
    _write_content_type(w, _PLAIN_CONTENT_TYPE)
    text = format % tuple(data) if data else format
    w.write(text.encode("utf-8"))


@dataclass(frozen=True)
class JSON:
    """Compact JSON with HTML characters escaped."""

    data: Any

    def render(self, w: _Writer) -> None:
        write_json(w, self.data)

    def write_content_type(self, w: _Writer) -> None:
        _write_content_type(w, _JSON_CONTENT_TYPE)


@dataclass(frozen=True)
class IndentedJSON:
    """JSON indented by four spaces."""

    data: Any

    def render(self, w: _Writer) -> None:
        self.write_content_type(w)
        w.write(_marshal(self.data, indent=4).encode("utf-8"))

    def write_content_type(self, w: _Writer) -> None:
        _write_content_type(w, _JSON_CONTENT_TYPE)


@dataclass(frozen=True)
class SecureJSON:
    """JSON whose top-level arrays are preceded by ``prefix``."""

    prefix: str
    data: Any

    def render(self, w: _Writer) -> None:
        self.write_content_type(w)
        text = _marshal(self.data)
        if text.startswith("[") and text.endswith("]"):
            w.write(self.prefix.encode("utf-8"))
        w.write(text.encode("utf-8"))

    def write_content_type(self, w: _Writer) -> None:
        _write_content_type(w, _JSON_CONTENT_TYPE)


@dataclass(frozen=True)
class JsonpJSON:
    """JSON wrapped in a call to ``callback``; plain JSON if the callback is empty."""

    callback: str
    data: Any

    def render(self, w: _Writer) -> None:
        self.write_content_type(w)
        payload = _marshal(self.data).encode("utf-8")
        if not self.callback:
            w.write(payload)
            return
        w.write(_js_escape(self.callback).encode("utf-8"))
        w.write(b"(")
        w.write(payload)
        w.write(b");")

    def write_content_type(self, w: _Writer) -> None:
        _write_content_type(w, _JSONP_CONTENT_TYPE)


@dataclass(frozen=True)
class AsciiJSON:
    """JSON with every non-ASCII character written as a ``\\u`` escape."""

    data: Any

    def render(self, w: _Writer) -> None:
        self.write_content_type(w)
        text = _marshal(self.data)
        ascii_text = "".join(ch if ord(ch) < 128 else f"\\u{ord(ch):04x}" for ch in text)
        w.write(ascii_text.encode("ascii"))

    def write_content_type(self, w: _Writer) -> None:
        _write_content_type(w, _JSON_ASCII_CONTENT_TYPE)


@dataclass(frozen=True)
class PureJSON:
    """JSON without HTML escaping, followed by a newline."""

    data: Any

    def render(self, w: _Writer) -> None:
        self.write_content_type(w)
        w.write((_marshal(self.data, escape_html=False) + "\n").encode("utf-8"))

    def write_content_type(self, w: _Writer) -> None:
        _write_content_type(w, _JSON_CONTENT_TYPE)


def _xml_element(data: Any) -> ET.Element:
    if isinstance(data, ET.Element):
        return data
    to_element = getattr(data, "to_xml_element", None)
    if callable(to_element):
        return to_element()
    scalar_names = {bool: "bool", int: "int", float: "float64", str: "string"}
    tag = scalar_names.get(type(data))
    if tag is None:
        raise TypeError(f"xml: unsupported type: {type(data).__name__}")
    element = ET.Element(tag)
    element.text = str(data).lower() if isinstance(data, bool) else str(data)
    return element


@dataclass(frozen=True)
class XML:
    """XML from an Element, an object with ``to_xml_element()`` or a scalar."""

    data: Any

    def render(self, w: _Writer) -> None:
        self.write_content_type(w)
        element = _xml_element(self.data)
        text = ET.tostring(element, encoding="unicode", short_empty_elements=False)
        w.write(text.encode("utf-8"))

    def write_content_type(self, w: _Writer) -> None:
        _write_content_type(w, _XML_CONTENT_TYPE)


@dataclass(frozen=True)
class YAML:
    """YAML document with sorted keys."""

    data: Any

    def render(self, w: _Writer) -> None:
        self.write_content_type(w)
        text = yaml.safe_dump(
            self.data,
            allow_unicode=True,
            sort_keys=True,
            indent=4,
            default_flow_style=False,
        )
        w.write(text.encode("utf-8"))

    def write_content_type(self, w: _Writer) -> None:
        _write_content_type(w, _YAML_CONTENT_TYPE)


@dataclass(frozen=True)
class TOML:
    """TOML document; the data must be a mapping."""

    data: Any

    def render(self, w: _Writer) -> None:
        self.write_content_type(w)
        if not isinstance(self.data, Mapping):
            raise TypeError(
                f"toml: top-level value must be a table, not {type(self.data).__name__}"
            )
        w.write(tomli_w.dumps(self.data).encode("utf-8"))

    def write_content_type(self, w: _Writer) -> None:
        _write_content_type(w, _TOML_CONTENT_TYPE)


@dataclass(frozen=True)
class MsgPack:
    """MsgPack-encoded data."""

    data: Any

    def render(self, w: _Writer) -> None:
        write_msgpack(w, self.data)

    def write_content_type(self, w: _Writer) -> None:
        _write_content_type(w, _MSGPACK_CONTENT_TYPE)


@dataclass(frozen=True)
class ProtoBuf:
    """A protobuf message, serialised with its ``SerializeToString`` method."""

    data: Any

    def render(self, w: _Writer) -> None:
        self.write_content_type(w)
        serialize = getattr(self.data, "SerializeToString", None)
        if not callable(serialize):
            raise TypeError(f"protobuf: {type(self.data).__name__} is not a message")
        w.write(serialize())

    def write_content_type(self, w: _Writer) -> None:
        _write_content_type(w, _PROTOBUF_CONTENT_TYPE)


@dataclass(frozen=True)
class Data:
    """Raw bytes with a custom content type."""

    content_type: str
    data: bytes

    def render(self, w: _Writer) -> None:
        self.write_content_type(w)
        w.write(self.data)

    def write_content_type(self, w: _Writer) -> None:
        _write_content_type(w, (self.content_type,))


@dataclass(frozen=True)
class String:
    """Plain text, %-formatted with ``data`` when it is not empty."""

    format: str
    data: Sequence[Any] = ()

    def render(self, w: _Writer) -> None:
        write_string(w, self.format, self.data)

    def write_content_type(self, w: _Writer) -> None:
        _write_content_type(w, _PLAIN_CONTENT_TYPE)


@dataclass(frozen=True)
class Reader:
    """Streams a binary file object with a content type and extra headers.

    A negative ``content_length`` leaves the Content-Length header unset.
    """

    content_type: str
    content_length: int
    reader: BinaryIO
    headers: Mapping[str, str] | None = field(default=None)

    def render(self, w: _Writer) -> None:
        self.write_content_type(w)
        headers = dict(self.headers or {})
        if self.content_length >= 0:
            headers["Content-Length"] = str(self.content_length)
        response_headers = w.header()
        for key, value in headers.items():
            if not response_headers.get(key):
                response_headers.set(key, value)
        while chunk := self.reader.read(_COPY_CHUNK):
            w.write(chunk)

    def write_content_type(self, w: _Writer) -> None:
        _write_content_type(w, (self.content_type,))


def _html_escape(text: str) -> str:
    replacements = {"&": "&amp;", "<": "&lt;", ">": "&gt;", '"': "&#34;", "'": "&#39;"}
    return "".join(replacements.get(ch, ch) for ch in text)


def _hex_escape_non_ascii(text: str) -> str:
    return "".join(
        chr(byte) if byte < 0x80 else f"%{byte:x}" for byte in text.encode("utf-8")
    )


def _status_text(code: int) -> str:
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return ""


@dataclass(frozen=True)
class Redirect:
    """Redirect response; ``request`` is any object with ``method`` and ``path``."""

    code: int
    request: Any
    location: str

    def render(self, w: _Writer) -> None:
        code = self.code
        if (code < 300 or code > 308) and code != HTTPStatus.CREATED:
            raise ValueError(f"Cannot redirect with status code {code}")

        method = getattr(self.request, "method", "") if self.request is not None else ""
        url = self._resolve_location()

        had_content_type = self.write_content_type(w)
        header = w.header()
        header.set("Location", _hex_escape_non_ascii(url))
        if not had_content_type and method in ("GET", "HEAD"):
            header.set("Content-Type", "text/html; charset=utf-8")
        w.write_header(code)
        if not had_content_type and method == "GET":
            body = f'<a href="{_html_escape(url)}">{_status_text(code)}</a>.\n\n'
            w.write(body.encode("utf-8"))

    def _resolve_location(self) -> str:
        url = self.location
        try:
            parts = urlsplit(url)
        except ValueError:
            return url
        if parts.scheme or parts.netloc:
            return url
        old_path = getattr(self.request, "path", "") if self.request is not None else ""
        old_path = old_path or "/"
        if not url.startswith("/"):
            url = posixpath.dirname(old_path).rstrip("/") + "/" + url
            if not posixpath.dirname(old_path):
                url = url.lstrip("/")
        query = ""
        if "?" in url:
            url, query = url.split("?", 1)
            query = "?" + query
        trailing = url.endswith("/")
        url = clean_path(url).rstrip("/") or "/"
        if trailing and not url.endswith("/"):
            url += "/"
        return url + query

    def write_content_type(self, w: _Writer) -> bool:
        """Set no content type; report whether the response already has one."""
        return "Content-Type" in w.header()