"""Content negotiation: content-type families, entities, encoders, parsers, compression.

Modules:
    content_type: :class:`ContentType` families and :class:`ContentTypeKey`.
    entity: :class:`RequestEntity`, :class:`ResponseEntity` and body
        classification.
    encoders: :class:`~restpipe.codec.encoders.EncoderRegistry`.
    parsers: :class:`~restpipe.codec.parsers.ParserRegistry`.
    compression: :class:`~restpipe.codec.compression.CompressionRegistry`.
    xml_body: mapping to XML conversion.

Only the leaf modules are re-exported here; the registries depend on
:mod:`restpipe.models`, which itself imports :mod:`content_type`.
"""

from restpipe.codec.content_type import ContentType, ContentTypeKey, charset_of, strip_parameters
from restpipe.codec.entity import BodyKind, RequestEntity, ResponseEntity, classify_body

__all__ = [
    "BodyKind",
    "ContentType",
    "ContentTypeKey",
    "RequestEntity",
    "ResponseEntity",
    "charset_of",
    "classify_body",
    "strip_parameters",
]
