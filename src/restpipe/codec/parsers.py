"""Content-type keyed registry of response-body parsers.

The inverse of :mod:`restpipe.codec.encoders`: a *parser* is a callable
``(entity, charset) -> value`` registered per content-type family. Lookup
uses the same tiers as the encoder registry (exact, family, textual
heuristic, binary), so an unknown type is always readable as a byte stream.

Parsed values by family:

* JSON -> Python values from :func:`json.loads`
* XML -> :class:`xml.etree.ElementTree.Element`
* TEXT / HTML -> ``str``
* URLENC -> ``dict`` of name to value, repeated names collected into lists
* BINARY -> the raw byte stream, left for the response handler to buffer
"""

from __future__ import annotations

import json
import logging
import xml.etree.ElementTree as ET
from collections.abc import Callable
from typing import Any, Optional, Union
from urllib.parse import parse_qsl

from restpipe.codec.content_type import ContentType, ContentTypeKey, charset_of, is_textual
from restpipe.codec.entity import ResponseEntity
from restpipe.models import DecoderConfig

logger = logging.getLogger(__name__)

Parser = Callable[[ResponseEntity, str], Any]


def parse_stream(entity: ResponseEntity, charset: str) -> Any:
    return entity.stream


def parse_text(entity: ResponseEntity, charset: str) -> str:
    return entity.read().decode(charset)


def parse_json(entity: ResponseEntity, charset: str) -> Any:
    return json.loads(parse_text(entity, charset))


def parse_xml(entity: ResponseEntity, charset: str) -> ET.Element:
    # The XML declaration, when present, takes precedence over charset.
    return ET.fromstring(entity.read())


def parse_form(entity: ResponseEntity, charset: str) -> dict[str, Union[str, list[str]]]:
    """Parse a form-encoded body, merging repeated names into lists."""
    result: dict[str, Union[str, list[str]]] = {}
    for name, value in parse_qsl(parse_text(entity, charset), keep_blank_values=True):
        existing = result.get(name)
        if existing is None:
            result[name] = value
        elif isinstance(existing, list):
            existing.append(value)
        else:
            result[name] = [existing, value]
    return result


class ParserRegistry:
    """Registry mapping content types to response parsers.

    Args:
        config: Response charset defaults.
    """

    def __init__(self, config: Optional[DecoderConfig] = None) -> None:
        self._config = config or DecoderConfig()
        self._parsers: dict[ContentTypeKey, Parser] = {
            ContentTypeKey(ContentType.BINARY): parse_stream,
            ContentTypeKey(ContentType.TEXT): parse_text,
            ContentTypeKey(ContentType.HTML): parse_text,
            ContentTypeKey(ContentType.URLENC): parse_form,
        }
        for alias in ContentType.XML.aliases:
            self._parsers[ContentTypeKey(alias)] = parse_xml
        for alias in ContentType.JSON.aliases:
            self._parsers[ContentTypeKey(alias)] = parse_json

    @property
    def config(self) -> DecoderConfig:
        return self._config

    def register(self, content_type: Union[str, ContentType], parser: Parser) -> None:
        """Register *parser* for a content type or every alias of a family."""
        if isinstance(content_type, ContentType):
            for alias in content_type.aliases:
                self._parsers[ContentTypeKey(alias)] = parser
        else:
            self._parsers[ContentTypeKey(content_type)] = parser

    def resolve(self, content_type: Optional[Union[str, ContentType]]) -> Parser:
        if content_type is None:
            return self._parsers[ContentTypeKey(ContentType.BINARY)]
        key = ContentTypeKey(content_type)
        parser = self._parsers.get(key)
        if parser is None and key.family is not None:
            parser = self._parsers.get(ContentTypeKey(key.family))
        if parser is None and is_textual(key.normalized):
            parser = parse_text
        if parser is None:
            parser = self._parsers[ContentTypeKey(ContentType.BINARY)]
        return parser

    def charset_for(self, content_type: Optional[str]) -> str:
        """Charset parameter of *content_type*, else the configured default."""
        return charset_of(content_type) or self._config.charset_for(content_type)

    def parse(self, content_type: Optional[str], entity: ResponseEntity) -> Any:
        """Parse *entity* as *content_type*.

        Raises:
            ValueError, LookupError, xml.etree.ElementTree.ParseError: When
                the body is not valid for the content type. The caller
                decides whether that is fatal.
        """
        charset = charset_of(entity.content_type) or self.charset_for(content_type)
        logger.debug("Parsing response as '%s' (charset %s)", content_type, charset)
        return self.resolve(content_type)(entity, charset)
