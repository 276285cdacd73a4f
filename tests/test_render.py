import io
import xml.etree.ElementTree as ET
from types import SimpleNamespace

import pytest
import yaml

from gintiny.render import (
    JSON,
    TOML,
    XML,
    YAML,
    AsciiJSON,
    Data,
    IndentedJSON,
    JsonpJSON,
    MsgPack,
    ProtoBuf,
    PureJSON,
    Reader,
    Redirect,
    SecureJSON,
    String,
    write_json,
    write_msgpack,
    write_string,
)
from gintiny.response_writer import ResponseRecorder


class ErrorRecorder(ResponseRecorder):
    def __init__(self, fail_on: bytes) -> None:
        super().__init__()
        self.fail_on = fail_on

    def write(self, data: bytes) -> int:
        if data == self.fail_on:
            raise OSError(f'write "{data.decode()}" error')
        return super().write(data)


def content_type(w):
    return w.header().get("Content-Type")


def test_render_json():
    w = ResponseRecorder()
    data = {"foo": "bar", "html": "<b>"}
    JSON(data).write_content_type(w)
    assert content_type(w) == "application/json"
    JSON(data).render(w)
    assert w.text == '{"foo":"bar","html":"\\u003cb\\u003e"}'
    assert content_type(w) == "application/json"


def test_render_json_error():
    with pytest.raises(TypeError):
        JSON(object()).render(ResponseRecorder())


def test_write_json_helper():
    w = ResponseRecorder()
    write_json(w, [1, "a&b"])
    assert w.text == '[1,"a\\u0026b"]'


def test_render_indented_json():
    w = ResponseRecorder()
    IndentedJSON({"foo": "bar", "bar": "foo"}).render(w)
    assert w.text == '{\n    "bar": "foo",\n    "foo": "bar"\n}'
    assert content_type(w) == "application/json"


def test_render_indented_json_error():
    with pytest.raises(TypeError):
        IndentedJSON(object()).render(ResponseRecorder())


def test_render_secure_json():
    w1 = ResponseRecorder()
    data = {"foo": "bar"}
    SecureJSON("while(1);", data).write_content_type(w1)
    assert content_type(w1) == "application/json"
    SecureJSON("while(1);", data).render(w1)
    assert w1.text == '{"foo":"bar"}'

    w2 = ResponseRecorder()
    SecureJSON("while(1);", [{"foo": "bar"}, {"bar": "foo"}]).render(w2)
    assert w2.text == 'while(1);[{"foo":"bar"},{"bar":"foo"}]'
    assert content_type(w2) == "application/json"


def test_render_secure_json_fail():
    with pytest.raises(TypeError):
        SecureJSON("while(1);", object()).render(ResponseRecorder())


def test_render_jsonp_json():
    w1 = ResponseRecorder()
    JsonpJSON("x", {"foo": "bar"}).write_content_type(w1)
    assert content_type(w1) == "application/javascript; charset=UTF-8"
    JsonpJSON("x", {"foo": "bar"}).render(w1)
    assert w1.text == 'x({"foo":"bar"});'

    w2 = ResponseRecorder()
    JsonpJSON("x", [{"foo": "bar"}, {"bar": "foo"}]).render(w2)
    assert w2.text == 'x([{"foo":"bar"},{"bar":"foo"}]);'
    assert content_type(w2) == "application/javascript; charset=UTF-8"


@pytest.mark.parametrize("fail_on", [b"foo", b"(", b'{"foo":"bar"}', b");"])
def test_render_jsonp_json_write_errors(fail_on):
    w = ErrorRecorder(fail_on)
    with pytest.raises(OSError) as excinfo:
        JsonpJSON("foo", {"foo": "bar"}).render(w)
    assert str(excinfo.value) == f'write "{fail_on.decode()}" error'


def test_render_jsonp_empty_callback():
    w = ResponseRecorder()
    JsonpJSON("", {"foo": "bar"}).render(w)
    assert w.text == '{"foo":"bar"}'
    assert content_type(w) == "application/javascript; charset=UTF-8"


def test_render_jsonp_callback_escaped():
    w = ResponseRecorder()
    JsonpJSON("a'b<", {}).render(w)
    assert w.text == "a\\'b\\u003C({});"


def test_render_jsonp_json_fail():
    with pytest.raises(TypeError):
        JsonpJSON("x", object()).render(ResponseRecorder())


def test_render_ascii_json():
    w1 = ResponseRecorder()
    AsciiJSON({"lang": "GO语言", "tag": "<br>"}).render(w1)
    assert w1.text == '{"lang":"GO\\u8bed\\u8a00","tag":"\\u003cbr\\u003e"}'
    assert content_type(w1) == "application/json"

    w2 = ResponseRecorder()
    AsciiJSON(3.1415926).render(w2)
    assert w2.text == "3.1415926"


def test_render_ascii_json_fail():
    with pytest.raises(TypeError):
        AsciiJSON(object()).render(ResponseRecorder())


def test_render_pure_json():
    w = ResponseRecorder()
    PureJSON({"foo": "bar", "html": "<b>"}).render(w)
    assert w.text == '{"foo":"bar","html":"<b>"}\n'
    assert content_type(w) == "application/json"


def test_render_yaml_round_trip():
    w = ResponseRecorder()
    data = {"a": "Easy!", "b": {"c": 2, "d": [3, 4]}}
    YAML(data).write_content_type(w)
    assert content_type(w) == "application/yaml; charset=UTF-8"
    YAML(data).render(w)
    assert yaml.safe_load(w.text) == data


def test_render_yaml_fail():
    with pytest.raises(yaml.YAMLError):
        YAML(object()).render(ResponseRecorder())


def test_render_toml():
    w = ResponseRecorder()
    data = {"foo": "bar", "html": "<b>"}
    TOML(data).write_content_type(w)
    assert content_type(w) == "application/toml; charset=UTF-8"
    TOML(data).render(w)
    assert w.text == 'foo = "bar"\nhtml = "<b>"\n'


def test_render_toml_fail():
    with pytest.raises(TypeError):
        TOML(b"\xff\xff\xff\xff").render(ResponseRecorder())


class FakeMessage:
    def __init__(self, payload: bytes | None) -> None:
        self.payload = payload

    def SerializeToString(self) -> bytes:
        if self.payload is None:
            raise ValueError("message is missing required fields")
        return self.payload


def test_render_protobuf():
    w = ResponseRecorder()
    message = FakeMessage(b"\n\x04test\x10\x01\x10\x02")
    ProtoBuf(message).write_content_type(w)
    assert content_type(w) == "application/protobuf"
    ProtoBuf(message).render(w)
    assert w.body == b"\n\x04test\x10\x01\x10\x02"


def test_render_protobuf_fail():
    with pytest.raises(ValueError):
        ProtoBuf(FakeMessage(None)).render(ResponseRecorder())
    with pytest.raises(TypeError):
        ProtoBuf({"not": "a message"}).render(ResponseRecorder())


def test_render_xml():
    w = ResponseRecorder()
    root = ET.Element("map")
    ET.SubElement(root, "foo").text = "bar"
    XML(root).write_content_type(w)
    assert content_type(w) == "application/xml; charset=UTF-8"
    XML(root).render(w)
    assert w.text == "<map><foo>bar</foo></map>"


def test_render_xml_scalar_and_error():
    w = ResponseRecorder()
    XML("bar").render(w)
    assert w.text == "<string>bar</string>"
    with pytest.raises(TypeError):
        XML({"foo": "bar"}).render(ResponseRecorder())


def test_render_redirect():
    request = SimpleNamespace(method="GET", path="/test-redirect")

    w = ResponseRecorder()
    Redirect(301, request, "/new/location").render(w)
    assert w.code == 301
    assert w.header().get("Location") == "/new/location"
    assert w.text == '<a href="/new/location">Moved Permanently</a>.\n\n'

    with pytest.raises(ValueError) as excinfo:
        Redirect(200, request, "/new/location").render(ResponseRecorder())
    assert str(excinfo.value) == "Cannot redirect with status code 200"

    w = ResponseRecorder()
    Redirect(201, request, "/new/location").render(w)
    assert w.code == 201


def test_render_redirect_relative_location():
    w = ResponseRecorder()
    Redirect(302, SimpleNamespace(method="GET", path="/a/b"), "c?x=1").render(w)
    assert w.header().get("Location") == "/a/c?x=1"


def test_render_redirect_post_has_no_body():
    w = ResponseRecorder()
    Redirect(307, SimpleNamespace(method="POST", path="/"), "/other").render(w)
    assert w.code == 307
    assert w.body == b""
    assert "Content-Type" not in w.header()


def test_render_data():
    w = ResponseRecorder()
    Data(content_type="image/png", data=b"#!PNG some raw data").render(w)
    assert w.text == "#!PNG some raw data"
    assert content_type(w) == "image/png"


def test_content_type_not_overwritten():
    w = ResponseRecorder()
    w.header().set("Content-Type", "text/custom")
    Data(content_type="image/png", data=b"x").render(w)
    assert content_type(w) == "text/custom"


def test_render_string():
    w = ResponseRecorder()
    String("hello %s %d").write_content_type(w)
    assert content_type(w) == "text/plain; charset=UTF-8"
    String("hola %s %d", ["manu", 2]).render(w)
    assert w.text == "hola manu 2"


def test_render_string_len_zero():
    w = ResponseRecorder()
    String("hola %s %d", []).render(w)
    assert w.text == "hola %s %d"
    assert content_type(w) == "text/plain; charset=UTF-8"


def test_write_string_helper():
    w = ResponseRecorder()
    write_string(w, "%d-%d", (1, 2))
    assert w.text == "1-2"


def test_render_reader():
    w = ResponseRecorder()
    body = b"#!PNG some raw data"
    headers = {
        "Content-Disposition": 'attachment; filename="filename.png"',
        "x-request-id": "requestId",
    }
    Reader("image/png", len(body), io.BytesIO(body), headers).render(w)
    assert w.body == body
    assert content_type(w) == "image/png"
    assert w.header().get("Content-Length") == str(len(body))
    assert w.header().get("Content-Disposition") == headers["Content-Disposition"]
    assert w.header().get("x-request-id") == "requestId"
    assert "Content-Length" not in headers


def test_render_reader_no_content_length():
    w = ResponseRecorder()
    body = b"#!PNG some raw data"
    headers = {"x-request-id": "requestId"}
    Reader("image/png", -1, io.BytesIO(body), headers).render(w)
    assert w.body == body
    assert "Content-Length" not in w.header()
    assert w.header().get("x-request-id") == "requestId"


def test_render_reader_keeps_existing_header():
    w = ResponseRecorder()
    w.header().set("X-Request-Id", "first")
    Reader("text/plain", -1, io.BytesIO(b"a"), {"X-Request-Id": "second"}).render(w)
    assert w.header().get("X-Request-Id") == "first"


def test_render_msgpack():
    w = ResponseRecorder()
    MsgPack({"foo": "bar"}).write_content_type(w)
    assert content_type(w) == "application/msgpack"
    MsgPack({"foo": "bar"}).render(w)
    assert w.body == b"\x81\xa3foo\xa3bar"


def test_write_msgpack_error():
    with pytest.raises(TypeError):
        write_msgpack(ResponseRecorder(), object())