# gintiny

Building blocks for small HTTP servers: a response writer that tracks
status and size, renderers for common body formats, gzip compression of
responses, authentication of signed requests and running handlers under
a time limit.

## What it does not do

The package has no HTTP server, no router, no request context and no
middleware chain. Every piece works on plain objects: a "writer" is
anything with `header()`, `write(data)` and `write_header(code)` (such as
`ResponseRecorder` or `ResponseWriter`), and request data is passed in
as `Headers`, paths, bytes or a `gintiny.signing.validators.Request`.
Wiring these pieces into a server is left to the caller. There is no
CORS handling.

## Modes

`gintiny.mode` holds a global mode: `debug`, `release` or `test`. The
`GIN_MODE` environment variable picks the starting mode; an empty value
means `debug`.

```python
from gintiny.mode import mode, set_mode

set_mode("release")
assert mode() == "release"
```

An unknown mode name raises `ValueError`.

## Path cleaning

`gintiny.path.clean_path` turns a request path into its canonical form:
it adds a leading slash, collapses repeated slashes and resolves `.` and
`..` elements, keeping a trailing slash where one was given.

```python
from gintiny.path import clean_path

clean_path("abc//./../def")      # "/def"
clean_path("/abc/def/../ghi/")   # "/abc/ghi/"
clean_path("")                   # "/"
```

## Headers and writers

`gintiny.response_writer` provides:

- `Headers`: a case-insensitive, multi-valued header collection with
  `get`, `get_all`, `set`, `add` and `delete`. Names are stored in
  canonical form (`canonical_header_key("x-request-id")` is
  `"X-Request-Id"`).
- `ResponseRecorder`: an in-memory writer that records `code`, headers
  and `body` / `text`.
- `ResponseWriter`: wraps another writer. The status can be changed
  until the headers are sent; the first `write` (or `write_header_now`,
  or `flush`) sends them. Callbacks registered with `before` run just
  before the headers go out, and those registered with `after` run after
  each `write`. `size()` is `-1` until something is sent.

```python
from gintiny.response_writer import ResponseRecorder, ResponseWriter

recorder = ResponseRecorder()
writer = ResponseWriter(recorder)
writer.write_header(201)
writer.before(lambda: writer.header().set("Server", "gintiny"))
writer.write(b"created")

writer.status()    # 201
writer.size()      # 7
writer.written()   # True
recorder.code      # 201
```

`hijack()` and `flush()` raise `TypeError` when the wrapped writer does
not support them; `pusher()` returns the wrapped writer if it has a
`push` method, else `None`.

## Renderers

Every renderer in `gintiny.render` has `render(w)`, which writes the
body, and `write_content_type(w)`, which sets `Content-Type` only when
none is set yet.

| Renderer       | Body                                                          |
|----------------|---------------------------------------------------------------|
| `JSON`         | compact JSON with sorted keys, `<`, `>`, `&` escaped          |
| `IndentedJSON` | JSON indented by four spaces                                  |
| `SecureJSON`   | JSON, with `prefix` written before a top-level array          |
| `JsonpJSON`    | JSON wrapped as `callback(...);`, plain JSON without callback |
| `AsciiJSON`    | JSON with every non-ASCII character as a `\uXXXX` escape      |
| `PureJSON`     | JSON without HTML escaping, followed by a newline             |
| `XML`          | an `Element`, an object with `to_xml_element()`, or a scalar  |
| `YAML`         | YAML document with sorted keys                                |
| `TOML`         | TOML document; the data must be a mapping                     |
| `MsgPack`      | MessagePack bytes                                             |
| `ProtoBuf`     | bytes from the message's `SerializeToString()`                |
| `Data`         | raw bytes with a given content type                           |
| `String`       | text, %-formatted when `data` is not empty                    |
| `Reader`       | a binary file object copied to the body, with extra headers   |
| `Redirect`     | a redirect to `location` (codes 300–308 or 201 only)          |

`write_json`, `write_msgpack` and `write_string` write directly without
building a renderer. Data that cannot be encoded raises `TypeError` or
`ValueError`; `Redirect` with another status code raises `ValueError`.
The `MIME_*` constants name the content types used.

```python
from gintiny.render import JSON, String
from gintiny.response_writer import ResponseRecorder

recorder = ResponseRecorder()
JSON({"foo": "bar"}).render(recorder)
recorder.text                             # '{"foo":"bar"}'
recorder.header().get("Content-Type")     # 'application/json'

recorder = ResponseRecorder()
String("hola %s %d", ["manu", 2]).render(recorder)
recorder.text                             # 'hola manu 2'
```

`ProtoBuf` needs a message object from a protocol buffer library; that
library is not a dependency of this package.

## Gzip

`gintiny.compression.gzip_handler(level, *options)` builds a
`GzipHandler`. `should_compress(headers, path)` is true only when the
client accepts gzip, the request is not a connection upgrade or an event
stream, and the path is not excluded by extension, prefix or regular
expression (`with_excluded_extensions`, `with_excluded_paths`,
`with_excluded_paths_regexs`). `.png`, `.gif`, `.jpeg` and `.jpg` are
excluded by default.

`wrap(writer)` sets `Content-Encoding: gzip` and `Vary: Accept-Encoding`
and returns a `GzipWriter`; closing it (or leaving its `with` block)
finishes the stream and sets `Content-Length` to the compressed size.

```python
from gintiny.compression import DEFAULT_COMPRESSION, gzip_handler, with_excluded_paths
from gintiny.response_writer import Headers, ResponseRecorder

handler = gzip_handler(DEFAULT_COMPRESSION, with_excluded_paths(["/api/"]))
request_headers = Headers({"Accept-Encoding": "gzip"})
recorder = ResponseRecorder()

if handler.should_compress(request_headers, "/index.html"):
    with handler.wrap(recorder) as gz:
        gz.write(b"hello")
```

With `with_decompress_fn(default_decompress)`, `handler.decompress(headers,
body)` gunzips request bodies sent with `Content-Encoding: gzip` and
removes the `Content-Encoding` and `Content-Length` headers; malformed
data raises `ValueError`. An invalid compression level raises
`ValueError`.

## Signed requests

`gintiny.signing` checks requests signed with the HTTP Signatures scheme.

- `signing.signature`: `get_signature_string`, `parse_signature_string`
  and `signature_header_from_headers` read the parameters from the
  `Signature` header or an `Authorization: Signature ...` header into a
  `SignatureHeader`. `Secret` pairs a key with an algorithm.
- `signing.parser`: `Parser` and `parse_params` read
  `key="value",key="value"` lists.
- `signing.algorithms`: `HmacSha256` and `HmacSha512` (HMAC over SHA3-256
  and SHA3-512), `HmacShake128`, `HmacShake256`, `HmacBlake2b256`,
  `HmacBlake2b512` and `HmacBlake2c256` (BLAKE2s, which reports the name
  `hmac-shake256`). New algorithms subclass `Crypto`.
- `signing.validators`: `Request`, `DateValidator` (the `Date` header must
  be within 30 seconds of now) and `DigestValidator` (the `Digest` header
  must equal `SHA-256=<base64>` of the body; `calculate_digest` computes
  it).
- `signing.authenticator`: `Authenticator(secrets, *options)` with
  `with_validator` and `with_required_headers`; `construct_sign_message`
  builds the signed string.

`Authenticator.authenticate(request)` returns the `SignatureHeader` or
raises `AuthenticationError`, whose `status` is the HTTP status to answer
with (401 or 400, 500 if signing fails) and whose `error` is the
underlying `PublicError`.

```python
from gintiny.signing.algorithms import HmacSha512
from gintiny.signing.authenticator import AuthenticationError, Authenticator
from gintiny.signing.signature import Secret
from gintiny.signing.validators import Request

auth = Authenticator({"read": Secret(key="secret", algorithm=HmacSha512())})
try:
    auth.authenticate(Request(method="GET", uri="/"))
except AuthenticationError as exc:
    exc.status    # 401: no signature in the request
```

## Timeouts

`gintiny.timeout.new(*options)` builds a `Timeout` from `with_timeout`
(seconds or a `timedelta`, 5 seconds by default), `with_handler` and
`with_response`. `Timeout.run(writer)` runs the handler in a thread
against a `TimeoutWriter` that buffers status, headers and body:

- if the handler finishes in time, the buffered headers, status and body
  are copied to `writer`;
- if it raises, the exception is raised again from `run`;
- if the limit passes first, further handler output is dropped and the
  response handler writes to `writer` instead (by default
  `408 Request Timeout`).

A limit of zero or less runs the handler directly on `writer`; running
without a handler raises `ValueError`.

```python
from gintiny import timeout
from gintiny.response_writer import ResponseRecorder

def handler(w):
    w.write_header(200)
    w.write(b"done")

recorder = ResponseRecorder()
timeout.new(timeout.with_timeout(0.5), timeout.with_handler(handler)).run(recorder)
recorder.text    # "done"
```

`TimeoutWriter.write_header` raises `ValueError` for codes outside
100–999 (`check_write_header_code`). `BufferPool` keeps reusable
in-memory buffers.

## Tests

```
pip install -e .[test]
pytest
```