"""Content-type keyed registry of request-body encoders.

An *encoder* is a callable ``(content_type, body) -> RequestEntity``. The
:class:`EncoderRegistry` maps content types to encoders and resolves a
request's content type in four tiers, always in this order:

1. exact match on the content type with its parameters stripped;
2. membership in a known :class:`~restpipe.codec.content_type.ContentType`
   family (``text/json`` and ``application/hal+json`` use the JSON encoder);
3. textual heuristic: ``text/*`` or ``*+text`` use the plain-text encoder;
4. the binary encoder, which accepts bytes, streams, files and deferred
   writers and rejects anything else with an :class:`UnencodableBodyError`.

Textual encoders resolve their charset from the content type's ``charset``
parameter, then the per-content-type default of :class:`EncoderConfig`, then
its global default.
"""

from __future__ import annotations

import io
import json
import logging
import xml.etree.ElementTree as ET
from collections.abc import Callable, Iterator, Mapping
from pathlib import Path
from typing import IO, Any, Optional, Union
from urllib.parse import urlencode

from pydantic import BaseModel

from restpipe.codec.content_type import ContentType, ContentTypeKey, charset_of, is_textual
from restpipe.codec.entity import BodyKind, RequestEntity, classify_body
from restpipe.codec.xml_body import mapping_to_xml
from restpipe.exceptions import InvalidUsageError, UnencodableBodyError
from restpipe.models import EncoderConfig

logger = logging.getLogger(__name__)

Encoder = Callable[[Optional[str], Any], RequestEntity]

_CHUNK_SIZE = 64 * 1024


def _iter_stream(stream: IO[Any], charset: str, content_type: Optional[str]) -> Iterator[bytes]:
    while True:
        chunk = stream.read(_CHUNK_SIZE)
        if not chunk:
            return
        if isinstance(chunk, str):
            try:
                chunk = chunk.encode(charset)
            except UnicodeEncodeError as exc:
                raise UnencodableBodyError(
                    stream, content_type, "a byte stream", charset
                ) from exc
        yield chunk


def _call_writer(writer: Callable[[Any], Any], buffer: Union[io.StringIO, io.BytesIO]) -> Any:
    writer(buffer)
    return buffer.getvalue()


class EncoderRegistry:
    """Registry mapping content types to body encoders.

    Custom routings from :attr:`EncoderConfig.content_encoders` are applied at
    construction time. The registry is read-mostly: :meth:`register` is meant
    for setup, before requests are in flight.

    Args:
        config: Charset defaults and custom content-type routings.

    Example::

        registry = EncoderRegistry()
        entity = registry.encode("application/json", {"name": "Ann"})
        entity.content  # b'{"name":"Ann"}'
    """

    def __init__(self, config: Optional[EncoderConfig] = None) -> None:
        self._config = config or EncoderConfig()
        self._encoders: dict[ContentTypeKey, Encoder] = self._build_default_encoders()
        for content_type, family in self._config.content_encoders.items():
            self.register(content_type, self.resolve(family.value))

    @property
    def config(self) -> EncoderConfig:
        return self._config

    def _build_default_encoders(self) -> dict[ContentTypeKey, Encoder]:
        encoders: dict[ContentTypeKey, Encoder] = {
            ContentTypeKey(ContentType.BINARY): self.encode_stream,
            ContentTypeKey(ContentType.TEXT): self.encode_text,
            ContentTypeKey(ContentType.URLENC): self.encode_form,
            ContentTypeKey(ContentType.HTML): self.encode_xml,
        }
        for alias in ContentType.XML.aliases:
            encoders[ContentTypeKey(alias)] = self.encode_xml
        for alias in ContentType.JSON.aliases:
            encoders[ContentTypeKey(alias)] = self.encode_json
        return encoders

    # ------------------------------------------------------------------ #
    # Registry
    # ------------------------------------------------------------------ #

    def register(self, content_type: Union[str, ContentType], encoder: Encoder) -> None:
        """Register *encoder* for a content type or for every alias of a family."""
        if isinstance(content_type, ContentType):
            for alias in content_type.aliases:
                self._encoders[ContentTypeKey(alias)] = encoder
        else:
            self._encoders[ContentTypeKey(content_type)] = encoder

    def resolve(self, content_type: Optional[Union[str, ContentType]]) -> Encoder:
        """Return the encoder for *content_type*; never fails.

        Falls back through exact match, family, textual heuristic and
        finally the binary encoder.
        """
        if content_type is None:
            return self._encoders[ContentTypeKey(ContentType.BINARY)]
        key = ContentTypeKey(content_type)
        encoder = self._encoders.get(key)
        if encoder is None:
            family = key.family
            if family is not None:
                encoder = self._encoders.get(ContentTypeKey(family))
        if encoder is None and is_textual(key.normalized):
            encoder = self.encode_text
        if encoder is None:
            logger.debug("No encoder for '%s', falling back to binary", key.raw)
            encoder = self._encoders[ContentTypeKey(ContentType.BINARY)]
        return encoder

    def encode(self, content_type: Optional[Union[str, ContentType]], body: Any) -> RequestEntity:
        """Resolve the encoder for *content_type* and encode *body* with it."""
        ct = str(content_type) if content_type is not None else None
        return self.resolve(content_type)(ct, body)

    def registered_content_types(self) -> list[str]:
        return sorted(key.normalized for key in self._encoders)

    def __contains__(self, content_type: object) -> bool:
        if not isinstance(content_type, (str, ContentType)):
            return False
        return ContentTypeKey(content_type) in self._encoders

    # ------------------------------------------------------------------ #
    # Charset handling
    # ------------------------------------------------------------------ #

    def charset_for(self, content_type: Optional[str]) -> str:
        """Explicit charset parameter, else per-type default, else global default."""
        explicit = charset_of(content_type)
        if explicit:
            return explicit
        if self._config.has_default_charset_for_content_type(content_type):
            return self._config.default_charset_for_content_type(content_type)
        return self._config.default_content_charset

    def _header_for(self, content_type: Optional[str], charset: str) -> Optional[str]:
        if content_type is None or charset_of(content_type):
            return content_type
        if not self._config.append_default_charset_to_content_type:
            return content_type
        return f"{content_type}; charset={charset}"

    def _text_entity(self, content_type: Optional[str], data: Union[str, bytes]) -> RequestEntity:
        if isinstance(data, bytes):
            return RequestEntity(data, content_type, charset_of(content_type), len(data))
        charset = self.charset_for(content_type)
        try:
            payload = data.encode(charset)
        except LookupError as exc:
            raise InvalidUsageError(f"Unknown charset '{charset}' for '{content_type}'") from exc
        except UnicodeEncodeError as exc:
            raise UnencodableBodyError(data, content_type, "text", charset) from exc
        return RequestEntity(payload, self._header_for(content_type, charset), charset, len(payload))

    def _read_file(self, path: Any, content_type: Optional[str]) -> str:
        try:
            return Path(path).read_text(encoding=self.charset_for(content_type))
        except FileNotFoundError as exc:
            raise InvalidUsageError(f"File {path} not found") from exc

    def _read_textual(self, kind: BodyKind, body: Any, content_type: Optional[str]) -> Any:
        """Materialize file, stream and writer bodies; other kinds pass through."""
        if kind is BodyKind.FILE:
            return self._read_file(body, content_type)
        if kind is BodyKind.STREAM:
            return body.read()
        if kind is BodyKind.DEFERRED_WRITER:
            return _call_writer(body, io.StringIO())
        if kind is BodyKind.BYTES:
            return bytes(body)
        return body

    # ------------------------------------------------------------------ #
    # Encoders
    # ------------------------------------------------------------------ #

    def encode_stream(self, content_type: Optional[str], body: Any) -> RequestEntity:
        """Encode bytes, binary streams, files and deferred writers verbatim."""
        kind = classify_body(body)
        if kind is BodyKind.BYTES:
            data = bytes(body)
            return RequestEntity(data, content_type, None, len(data))
        if kind is BodyKind.STREAM:
            if isinstance(body, io.BytesIO):
                data = body.read()
                return RequestEntity(data, content_type, None, len(data))
            charset = self.charset_for(content_type)
            return RequestEntity(_iter_stream(body, charset, content_type), content_type, None, -1)
        if kind is BodyKind.FILE:
            try:
                data = Path(body).read_bytes()
            except FileNotFoundError as exc:
                raise InvalidUsageError(f"File {body} not found") from exc
            return RequestEntity(data, content_type, None, len(data))
        if kind is BodyKind.DEFERRED_WRITER:
            data = _call_writer(body, io.BytesIO())
            return RequestEntity(data, content_type, None, len(data))
        raise UnencodableBodyError(body, content_type, "a byte stream")

    def encode_text(self, content_type: Optional[str], body: Any) -> RequestEntity:
        """Encode text; files and streams are read fully, other values use ``str()``."""
        kind = classify_body(body)
        data = self._read_textual(kind, body, content_type)
        if kind in (BodyKind.STRUCTURED, BodyKind.OPAQUE):
            data = str(data)
        return self._text_entity(content_type, data)

    def encode_form(self, content_type: Optional[str], body: Any) -> RequestEntity:
        """Encode a mapping as ``application/x-www-form-urlencoded``.

        Sequence values expand into repeated fields and ``None`` becomes an
        empty value. Non-mapping bodies are treated as already-encoded text.
        """
        if not isinstance(body, Mapping):
            return self.encode_text(content_type, body)
        pairs: list[tuple[str, str]] = []
        for key, value in body.items():
            values = value if isinstance(value, (list, tuple)) else [value]
            pairs.extend((str(key), "" if item is None else str(item)) for item in values)
        charset = self.charset_for(content_type)
        try:
            encoded = urlencode(pairs, encoding=charset)
        except LookupError as exc:
            raise InvalidUsageError(f"Unknown charset '{charset}' for '{content_type}'") from exc
        except UnicodeEncodeError as exc:
            raise UnencodableBodyError(body, content_type, "a form", charset) from exc
        return self._text_entity(content_type, encoded)

    def encode_xml(self, content_type: Optional[str], body: Any) -> RequestEntity:
        """Encode XML from text, files, streams, writers, mappings or elements."""
        kind = classify_body(body)
        if kind is BodyKind.STRUCTURED:
            if isinstance(body, ET.Element):
                return self._text_entity(content_type, ET.tostring(body, encoding="unicode"))
            if isinstance(body, Mapping):
                try:
                    return self._text_entity(content_type, mapping_to_xml(body))
                except ValueError as exc:
                    raise UnencodableBodyError(body, content_type, "XML") from exc
            raise UnencodableBodyError(body, content_type, "XML")
        if kind is BodyKind.OPAQUE:
            raise UnencodableBodyError(body, content_type, "XML")
        return self._text_entity(content_type, self._read_textual(kind, body, content_type))

    def encode_json(self, content_type: Optional[str], body: Any) -> RequestEntity:
        """Encode JSON; strings and bytes are assumed to be valid JSON already."""
        kind = classify_body(body)
        if kind is BodyKind.STRUCTURED:
            if isinstance(body, ET.Element):
                raise UnencodableBodyError(body, content_type, "JSON")
            model = body.model_dump(mode="json") if isinstance(body, BaseModel) else body
            try:
                text = json.dumps(model, ensure_ascii=False, separators=(",", ":"))
            except (TypeError, ValueError) as exc:
                raise UnencodableBodyError(body, content_type, "JSON") from exc
            return self._text_entity(content_type, text)
        if kind is BodyKind.OPAQUE:
            raise UnencodableBodyError(body, content_type, "JSON")
        return self._text_entity(content_type, self._read_textual(kind, body, content_type))
