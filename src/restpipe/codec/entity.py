"""Request and response entities plus request-body classification.

A caller may hand the pipeline almost anything as a request body. Rather
than sprinkling ``isinstance`` checks across every encoder, the body is
classified once into a :class:`BodyKind` by :func:`classify_body` and each
encoder dispatches on that tag. :attr:`BodyKind.OPAQUE` is the catch-all
variant; only the binary encoder may accept it, and only to reject it with a
descriptive error.
"""

from __future__ import annotations

import enum
import io
import os
import xml.etree.ElementTree as ET
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import IO, Any, Optional, Union

from pydantic import BaseModel

Content = Union[bytes, Iterable[bytes]]


class BodyKind(enum.Enum):
    """Closed set of request-body shapes understood by the encoders."""

    BYTES = "bytes"
    TEXT = "text"
    STREAM = "stream"
    FILE = "file"
    STRUCTURED = "structured"
    DEFERRED_WRITER = "deferred_writer"
    OPAQUE = "opaque"


def classify_body(value: Any) -> BodyKind:
    """Return the :class:`BodyKind` tag for a request body value.

    * ``bytes`` / ``bytearray`` / ``memoryview`` -> ``BYTES``
    * ``str`` -> ``TEXT``
    * anything with a ``read`` method (file objects, ``BytesIO``,
      ``StringIO``) -> ``STREAM``
    * ``os.PathLike`` -> ``FILE``
    * mappings, lists, tuples, pydantic models and XML elements -> ``STRUCTURED``
    * other callables -> ``DEFERRED_WRITER``; they are called with a
      writable buffer and write the body into it
    * everything else -> ``OPAQUE``
    """
    if isinstance(value, (bytes, bytearray, memoryview)):
        return BodyKind.BYTES
    if isinstance(value, str):
        return BodyKind.TEXT
    if hasattr(value, "read") and callable(value.read):
        return BodyKind.STREAM
    if isinstance(value, os.PathLike):
        return BodyKind.FILE
    if isinstance(value, (Mapping, list, tuple, BaseModel, ET.Element)):
        return BodyKind.STRUCTURED
    if callable(value):
        return BodyKind.DEFERRED_WRITER
    return BodyKind.OPAQUE


@dataclass(frozen=True)
class RequestEntity:
    """A request payload with its declared content type and charset.

    Attributes:
        content: The payload, either fully materialized ``bytes`` or an
            iterable of byte chunks for streamed bodies.
        content_type: The ``Content-Type`` header value to emit.
        charset: Charset used to produce textual payloads, ``None`` for
            binary payloads.
        length: Payload length in bytes, ``-1`` when unknown.
    """

    content: Content
    content_type: Optional[str]
    charset: Optional[str] = None
    length: int = -1

    @property
    def is_repeatable(self) -> bool:
        """Whether the payload can be read more than once."""
        return isinstance(self.content, bytes)

    def body_bytes(self) -> bytes:
        """Return the materialized payload.

        Raises:
            ValueError: If the entity streams its content.
        """
        if not isinstance(self.content, bytes):
            raise ValueError("Streaming request entity cannot be read as bytes")
        return self.content


class ResponseEntity:
    """Response body stream together with its entity headers.

    Args:
        stream: Binary file-like object yielding the body.
        content_type: The response ``Content-Type`` header, if any.
        content_encoding: The response ``Content-Encoding`` header, if any.
        content_length: Declared length in bytes, ``-1`` when unknown.
    """

    def __init__(
        self,
        stream: IO[bytes],
        content_type: Optional[str] = None,
        content_encoding: Optional[str] = None,
        content_length: int = -1,
    ) -> None:
        self.stream = stream
        self.content_type = content_type
        self.content_encoding = content_encoding
        self.content_length = content_length

    @classmethod
    def from_bytes(
        cls,
        data: bytes,
        content_type: Optional[str] = None,
        content_encoding: Optional[str] = None,
    ) -> ResponseEntity:
        return cls(io.BytesIO(data), content_type, content_encoding, len(data))

    def is_empty(self) -> bool:
        """Whether the body is known to be empty, peeking without consuming."""
        if self.content_length == 0:
            return True
        peek = getattr(self.stream, "peek", None)
        return peek is not None and not peek(1)

    def read(self) -> bytes:
        """Read the remaining stream fully."""
        return self.stream.read()

    def close(self) -> None:
        self.stream.close()

    def __repr__(self) -> str:
        return (
            f"ResponseEntity(content_type={self.content_type!r}, "
            f"content_encoding={self.content_encoding!r}, length={self.content_length})"
        )
