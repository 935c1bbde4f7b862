"""Tests for the encoder registry: resolution tiers, charsets and body kinds."""

from __future__ import annotations

import io
import xml.etree.ElementTree as ET
from pathlib import Path

import pytest
from pydantic import BaseModel

from restpipe.codec.content_type import ContentType
from restpipe.codec.encoders import EncoderRegistry
from restpipe.codec.entity import BodyKind, RequestEntity, classify_body
from restpipe.exceptions import InvalidUsageError, UnencodableBodyError
from restpipe.models import EncoderConfig


class _User(BaseModel):
    name: str
    age: int


def _make_registry(**kwargs) -> EncoderRegistry:
    return EncoderRegistry(EncoderConfig(**kwargs))


class TestClassifyBody:
    @pytest.mark.parametrize(
        "value, kind",
        [
            (b"x", BodyKind.BYTES),
            ("x", BodyKind.TEXT),
            (io.BytesIO(b"x"), BodyKind.STREAM),
            (Path("x"), BodyKind.FILE),
            ({"a": 1}, BodyKind.STRUCTURED),
            ([1, 2], BodyKind.STRUCTURED),
            (ET.Element("a"), BodyKind.STRUCTURED),
            (lambda out: None, BodyKind.DEFERRED_WRITER),
            (42, BodyKind.OPAQUE),
        ],
    )
    def test_kinds(self, value: object, kind: BodyKind) -> None:
        assert classify_body(value) is kind


class TestResolve:
    def test_exact_match(self) -> None:
        registry = _make_registry()
        assert registry.resolve("application/json") == registry.encode_json

    def test_family_match(self) -> None:
        registry = _make_registry()
        assert registry.resolve("application/hal+json") == registry.encode_json
        assert registry.resolve("application/rss+xml") == registry.encode_xml

    def test_textual_heuristic(self) -> None:
        registry = _make_registry()
        assert registry.resolve("text/csv") == registry.encode_text

    def test_binary_fallback(self) -> None:
        registry = _make_registry()
        assert registry.resolve("image/png") == registry.encode_stream
        assert registry.resolve(None) == registry.encode_stream

    def test_custom_routing_from_config(self) -> None:
        config = EncoderConfig().encode_content_type_as("application/vnd.acme", ContentType.JSON)
        registry = EncoderRegistry(config)
        entity = registry.encode("application/vnd.acme", {"a": 1})
        assert entity.content == b'{"a":1}'
        assert "application/vnd.acme" in registry

    def test_register_family(self) -> None:
        registry = _make_registry()

        def encoder(content_type, body) -> RequestEntity:
            return RequestEntity(b"custom", content_type, None, 6)

        registry.register(ContentType.XML, encoder)
        assert registry.encode("text/xml", "<a/>").content == b"custom"

    def test_registered_content_types(self) -> None:
        registry = _make_registry()
        registry.register("Application/Vnd.Acme", registry.encode_json)
        registered = registry.registered_content_types()
        assert "application/vnd.acme" in registered
        assert "application/json" in registered
        assert registered == sorted(registered)


class TestCharset:
    def test_explicit_parameter_wins(self) -> None:
        entity = _make_registry().encode("text/plain; charset=UTF-16", "hi")
        assert entity.charset == "UTF-16"
        assert entity.content == "hi".encode("UTF-16")
        assert entity.content_type == "text/plain; charset=UTF-16"

    def test_per_type_default(self) -> None:
        entity = _make_registry().encode("application/json", "é")
        assert entity.charset == "UTF-8"
        assert entity.content == "é".encode("utf-8")
        assert entity.content_type == "application/json; charset=UTF-8"

    def test_global_default(self) -> None:
        entity = _make_registry().encode("text/plain", "é")
        assert entity.charset == "ISO-8859-1"
        assert entity.content == b"\xe9"

    def test_append_disabled(self) -> None:
        registry = _make_registry(append_default_charset_to_content_type=False)
        assert registry.encode("text/plain", "x").content_type == "text/plain"

    def test_configured_default_for_type(self) -> None:
        config = EncoderConfig().with_default_charset_for_content_type("UTF-16", "text/csv")
        entity = EncoderRegistry(config).encode("text/csv", "a,b")
        assert entity.charset == "UTF-16"

    @pytest.mark.parametrize(
        "content_type",
        ["application/vnd.api+json", "application/javascript", "text/javascript"],
    )
    def test_json_family_defaults_to_utf8(self, content_type: str) -> None:
        entity = _make_registry().encode(content_type, {"name": "名"})
        assert entity.charset == "UTF-8"
        assert entity.content == '{"name":"名"}'.encode("utf-8")
        assert entity.content_type == f"{content_type}; charset=UTF-8"

    def test_text_outside_charset_raises(self) -> None:
        with pytest.raises(UnencodableBodyError, match="ISO-8859-1") as exc_info:
            _make_registry().encode("text/plain", "名")
        assert exc_info.value.charset == "ISO-8859-1"
        assert "text/plain" in str(exc_info.value)

    def test_form_outside_charset_raises(self) -> None:
        with pytest.raises(UnencodableBodyError, match="cannot represent"):
            _make_registry().encode("application/x-www-form-urlencoded", {"name": "名"})

    def test_text_stream_outside_charset_raises(self) -> None:
        entity = _make_registry().encode("application/octet-stream", io.StringIO("名"))
        with pytest.raises(UnencodableBodyError):
            b"".join(entity.content)

    def test_unknown_charset(self) -> None:
        with pytest.raises(InvalidUsageError, match="Unknown charset"):
            _make_registry().encode("text/plain; charset=bogus", "x")


class TestBinaryEncoder:
    def test_bytes(self) -> None:
        entity = _make_registry().encode("application/octet-stream", b"\x00\x01")
        assert entity.content == b"\x00\x01"
        assert entity.length == 2
        assert entity.charset is None

    def test_file(self, tmp_path: Path) -> None:
        path = tmp_path / "blob.bin"
        path.write_bytes(b"abc")
        entity = _make_registry().encode("image/png", path)
        assert entity.content == b"abc"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(InvalidUsageError, match="not found"):
            _make_registry().encode("image/png", tmp_path / "missing")

    def test_deferred_writer(self) -> None:
        entity = _make_registry().encode("image/png", lambda out: out.write(b"written"))
        assert entity.content == b"written"

    def test_non_bytesio_stream_is_lazy(self) -> None:
        class _Reader:
            def __init__(self) -> None:
                self._data = [b"ab", b"cd"]

            def read(self, size: int = -1) -> bytes:
                return self._data.pop(0) if self._data else b""

        entity = _make_registry().encode("image/png", _Reader())
        assert entity.length == -1
        assert not entity.is_repeatable
        assert b"".join(entity.content) == b"abcd"

    def test_opaque_value_rejected(self) -> None:
        with pytest.raises(UnencodableBodyError) as exc_info:
            _make_registry().encode("image/png", 42)
        message = str(exc_info.value)
        assert "int" in message
        assert "image/png" in message
        assert "a byte stream" in message


class TestTextEncoder:
    def test_stream_is_read(self) -> None:
        entity = _make_registry().encode("text/plain", io.StringIO("hello"))
        assert entity.content == b"hello"

    def test_file_is_read(self, tmp_path: Path) -> None:
        path = tmp_path / "note.txt"
        path.write_text("note", encoding="ISO-8859-1")
        assert _make_registry().encode("text/plain", path).content == b"note"

    def test_other_values_use_str(self) -> None:
        assert _make_registry().encode("text/plain", 42).content == b"42"


class TestFormEncoder:
    def test_mapping(self) -> None:
        entity = _make_registry().encode(
            ContentType.URLENC, {"a": "x y", "tags": ["p", "q"], "empty": None}
        )
        assert entity.content == b"a=x+y&tags=p&tags=q&empty="
        assert entity.content_type == "application/x-www-form-urlencoded; charset=ISO-8859-1"

    def test_string_passes_through(self) -> None:
        assert _make_registry().encode(ContentType.URLENC, "a=1&b=2").content == b"a=1&b=2"


class TestJsonEncoder:
    def test_compact_mapping(self) -> None:
        entity = _make_registry().encode("application/json", {"name": "Ann", "ids": [1, 2]})
        assert entity.content == b'{"name":"Ann","ids":[1,2]}'

    def test_pydantic_model(self) -> None:
        entity = _make_registry().encode("application/json", _User(name="Bo", age=3))
        assert entity.content == b'{"name":"Bo","age":3}'

    def test_string_is_assumed_valid(self) -> None:
        assert _make_registry().encode("application/json", '{"a":1}').content == b'{"a":1}'

    def test_element_rejected(self) -> None:
        with pytest.raises(UnencodableBodyError, match="JSON"):
            _make_registry().encode("application/json", ET.Element("a"))

    def test_unserializable_rejected(self) -> None:
        with pytest.raises(UnencodableBodyError):
            _make_registry().encode("application/json", {"a": object()})


class TestXmlEncoder:
    def test_element(self) -> None:
        root = ET.Element("a")
        ET.SubElement(root, "b").text = "1"
        entity = _make_registry().encode("application/xml", root)
        assert entity.content == b"<a><b>1</b></a>"

    def test_mapping(self) -> None:
        body = {"order": {"@id": "7", "item": ["a", "b"], "note": None}}
        entity = _make_registry().encode("application/xml", body)
        assert entity.content == b'<order id="7"><item>a</item><item>b</item><note /></order>'

    def test_mapping_with_two_roots_rejected(self) -> None:
        with pytest.raises(UnencodableBodyError, match="XML"):
            _make_registry().encode("application/xml", {"a": 1, "b": 2})

    def test_list_rejected(self) -> None:
        with pytest.raises(UnencodableBodyError):
            _make_registry().encode("text/xml", [1, 2])
