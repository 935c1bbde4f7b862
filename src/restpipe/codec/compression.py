"""Content-encoding negotiation and transparent response decompression.

Each :class:`ContentEncoding` names one compression token (``gzip``,
``deflate``) and knows how to wrap a compressed byte stream in a
decompressing one. :class:`CompressionRegistry` installs one
:class:`CompressionInterceptor` per enabled token into an
:class:`~restpipe.client.interceptors.InterceptorChain`:

* on the request side it merges the token into ``Accept-Encoding``,
  appending to (never replacing) a caller-supplied value;
* on the response side it checks ``Content-Encoding`` and, when the token
  is listed, swaps the entity's stream for a decompressing one whose length
  is reported as unknown (``-1``).

Empty bodies are passed through untouched, so ``Content-Encoding: gzip``
on a zero-length response yields an empty stream instead of a header error.
A body that is corrupt or ends before its compressed stream does raises
:class:`~restpipe.exceptions.TransportError` while it is read.
"""

from __future__ import annotations

import io
import logging
import zlib
from typing import IO, TYPE_CHECKING, Optional

from restpipe.client.interceptors import Interceptor, InterceptorChain
from restpipe.codec.entity import ResponseEntity
from restpipe.exceptions import TransportError
from restpipe.models import DecoderConfig

if TYPE_CHECKING:
    from restpipe.client.request import PreparedRequest
    from restpipe.client.response import ResponseDecorator

logger = logging.getLogger(__name__)

ACCEPT_ENCODING = "Accept-Encoding"
CONTENT_ENCODING = "Content-Encoding"

_CHUNK_SIZE = 64 * 1024


def split_tokens(value: Optional[str]) -> list[str]:
    """Split a comma-separated header value into trimmed, non-empty tokens."""
    if not value:
        return []
    return [token.strip() for token in value.split(",") if token.strip()]


class _DecompressingReader(io.RawIOBase):
    """Raw stream that inflates *source* on the fly."""

    def __init__(self, source: IO[bytes], wbits: int) -> None:
        self._source = source
        self._decompressor = zlib.decompressobj(wbits)
        self._pending = b""
        self._eof = False

    def readable(self) -> bool:
        return True

    def _fill(self) -> None:
        while not self._pending and not self._eof:
            chunk = self._source.read(_CHUNK_SIZE)
            try:
                if chunk:
                    self._pending = self._decompressor.decompress(chunk)
                    continue
                self._pending = self._decompressor.flush()
            except zlib.error as exc:
                raise TransportError(f"Corrupt compressed response body ({exc})") from exc
            self._eof = True
            if not self._decompressor.eof:
                raise TransportError("Compressed response body ended before the end of its stream")

    def readinto(self, buffer: bytearray) -> int:  # type: ignore[override]
        self._fill()
        size = min(len(buffer), len(self._pending))
        buffer[:size] = self._pending[:size]
        self._pending = self._pending[size:]
        return size

    def close(self) -> None:
        if not self.closed:
            self._source.close()
        super().close()


class ContentEncoding:
    """A negotiable compression token and its decompressor."""

    token: str = ""
    wbits: int = zlib.MAX_WBITS

    def wrap(self, stream: IO[bytes]) -> IO[bytes]:
        """Return a stream yielding the decompressed bytes of *stream*."""
        return io.BufferedReader(_DecompressingReader(stream, self.wbits))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.token!r})"


class GzipEncoding(ContentEncoding):
    token = "gzip"
    wbits = zlib.MAX_WBITS | 16


class DeflateEncoding(ContentEncoding):
    """``deflate`` decoding.

    Args:
        nowrap: Treat bodies as raw DEFLATE data without the zlib header,
            as some servers send them.
    """

    token = "deflate"

    def __init__(self, nowrap: bool = False) -> None:
        self.nowrap = nowrap
        self.wbits = -zlib.MAX_WBITS if nowrap else zlib.MAX_WBITS


class CompressionInterceptor(Interceptor):
    """Request/response interceptor pair for a single :class:`ContentEncoding`."""

    def __init__(self, encoding: ContentEncoding) -> None:
        self.encoding = encoding

    @property
    def name(self) -> str:
        return f"compression:{self.encoding.token}"

    def process_request(self, request: PreparedRequest) -> None:
        tokens = split_tokens(request.headers.get(ACCEPT_ENCODING))
        if self.encoding.token not in (token.lower() for token in tokens):
            tokens.append(self.encoding.token)
        request.set_header(ACCEPT_ENCODING, ", ".join(tokens))

    def process_response(self, response: ResponseDecorator) -> None:
        entity = response.entity
        if entity is None:
            return
        declared = split_tokens(response.headers.get(CONTENT_ENCODING))
        if self.encoding.token not in (token.lower() for token in declared):
            return
        if entity.is_empty():
            logger.debug("Empty %s body, skipping decompression", self.encoding.token)
            return
        remaining = [token for token in declared if token.lower() != self.encoding.token]
        logger.debug("Decompressing %s response body", self.encoding.token)
        response.entity = ResponseEntity(
            self.encoding.wrap(entity.stream),
            content_type=entity.content_type,
            content_encoding=", ".join(remaining) or None,
            content_length=-1,
        )


class CompressionRegistry:
    """Maps compression tokens to :class:`ContentEncoding` implementations.

    Args:
        config: Decoder settings; ``use_no_wrap_for_inflate_decoding``
            selects raw DEFLATE for the ``deflate`` token.

    Example::

        registry = CompressionRegistry()
        registry.with_encodings(assembler.interceptors, "gzip")
    """

    def __init__(self, config: Optional[DecoderConfig] = None) -> None:
        config = config or DecoderConfig()
        self._encodings: dict[str, ContentEncoding] = {}
        self.register(GzipEncoding())
        self.register(DeflateEncoding(nowrap=config.use_no_wrap_for_inflate_decoding))

    def register(self, encoding: ContentEncoding) -> None:
        self._encodings[encoding.token.lower()] = encoding

    def get(self, token: str) -> Optional[ContentEncoding]:
        return self._encodings.get(token.strip().lower())

    def tokens(self) -> list[str]:
        return list(self._encodings)

    def interceptors(self, *tokens: str) -> list[CompressionInterceptor]:
        """Build interceptors for *tokens*; unknown tokens are skipped."""
        result: list[CompressionInterceptor] = []
        seen: set[str] = set()
        for token in tokens:
            encoding = self.get(token)
            if encoding is None:
                logger.debug("Ignoring unsupported content encoding '%s'", token)
                continue
            if encoding.token in seen:
                continue
            seen.add(encoding.token)
            result.append(CompressionInterceptor(encoding))
        return result

    def with_encodings(self, chain: InterceptorChain, *tokens: str) -> None:
        """Replace the compression interceptors in *chain* with ones for *tokens*.

        Calling this with no tokens disables compression negotiation.
        """
        chain.remove_if(lambda interceptor: isinstance(interceptor, CompressionInterceptor))
        for interceptor in self.interceptors(*tokens):
            chain.add(interceptor)
