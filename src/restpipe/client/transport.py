"""Transport boundary: sends a :class:`PreparedRequest`, returns a raw response.

:class:`HttpxTransport` sends through :class:`httpx.Client` with
``stream=True`` and exposes the *undecoded* body bytes, leaving
``Content-Encoding`` handling to the compression interceptors. It never
adds headers of its own beyond ``Host`` and ``Content-Length``.

Network failures surface as :class:`~restpipe.exceptions.TransportError`.
No retries are performed.
"""

from __future__ import annotations

import io
import logging
from collections.abc import Iterator
from typing import Optional, Protocol

import httpx

from restpipe.client.request import HEAD, PreparedRequest
from restpipe.client.response import ResponseDecorator
from restpipe.codec.entity import ResponseEntity
from restpipe.exceptions import TransportError
from restpipe.models import TransportConfig

logger = logging.getLogger(__name__)

# Statuses that never carry a body.
_NO_BODY_STATUSES = frozenset({204, 304})


class Transport(Protocol):
    """What the assembler needs from a transport."""

    def send(self, request: PreparedRequest) -> ResponseDecorator: ...

    def close(self) -> None: ...


class _RawBodyStream(io.RawIOBase):
    """Lazily pulls undecoded body chunks from a streaming httpx response."""

    def __init__(self, response: httpx.Response) -> None:
        self._response = response
        self._chunks: Iterator[bytes] = response.iter_raw()
        self._pending = b""

    def readable(self) -> bool:
        return True

    def readinto(self, buffer: bytearray) -> int:  # type: ignore[override]
        while not self._pending:
            try:
                self._pending = next(self._chunks)
            except StopIteration:
                return 0
            except httpx.HTTPError as exc:
                raise TransportError(f"Failed reading response body: {exc}") from exc
        size = min(len(buffer), len(self._pending))
        buffer[:size] = self._pending[:size]
        self._pending = self._pending[size:]
        return size

    def close(self) -> None:
        if not self.closed:
            self._response.close()
        super().close()


def _content_length(headers: httpx.Headers) -> int:
    try:
        return int(headers.get("content-length", -1))
    except ValueError:
        return -1


class HttpxTransport:
    """Transport backed by :class:`httpx.Client`.

    Args:
        config: Timeout, TLS verification, redirect and proxy settings.
        transport: Optional httpx transport, e.g. :class:`httpx.MockTransport`
            in tests.

    Example::

        transport = HttpxTransport(TransportConfig(timeout=5))
        response = transport.send(prepared)
    """

    def __init__(
        self,
        config: Optional[TransportConfig] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._config = config or TransportConfig()
        self._transport = transport
        self._client = self._build_client()

    def _build_client(self) -> httpx.Client:
        return httpx.Client(
            timeout=self._config.timeout,
            verify=self._config.verify_ssl,
            follow_redirects=self._config.follow_redirects,
            proxy=self._config.proxy,
            transport=self._transport,
        )

    @property
    def config(self) -> TransportConfig:
        return self._config

    @property
    def proxy(self) -> Optional[str]:
        return self._config.proxy

    def set_proxy(self, proxy: Optional[str]) -> None:
        """Route subsequent requests through *proxy* (``None`` disables it)."""
        self._client.close()
        self._config = self._config.model_copy(update={"proxy": proxy})
        self._client = self._build_client()

    def send(self, request: PreparedRequest) -> ResponseDecorator:
        content = request.entity.content if request.entity is not None else None
        httpx_request = httpx.Request(
            request.method,
            request.url,
            headers=request.headers,
            content=content,
        )
        logger.debug("Sending %s %s", request.method, request.url)
        try:
            response = self._client.send(httpx_request, stream=True)
        except httpx.HTTPError as exc:
            raise TransportError(f"{request.method} {request.url} failed: {exc}") from exc

        headers = response.headers
        status = response.status_code
        if request.method == HEAD or status < 200 or status in _NO_BODY_STATUSES:
            entity = None
        elif response.is_stream_consumed:
            # Built in memory, so httpx has already decoded the body.
            headers = httpx.Headers(
                [(k, v) for k, v in headers.raw if k.lower() != b"content-encoding"]
            )
            entity = ResponseEntity.from_bytes(response.content, headers.get("content-type"))
        else:
            entity = ResponseEntity(
                io.BufferedReader(_RawBodyStream(response)),
                content_type=headers.get("content-type"),
                content_encoding=headers.get("content-encoding"),
                content_length=_content_length(headers),
            )
        logger.debug("Received %s for %s %s", status, request.method, request.url)
        return ResponseDecorator(
            status,
            reason=response.reason_phrase,
            headers=headers,
            entity=entity,
            request=request,
            http_version=response.http_version,
            on_close=response.close,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> HttpxTransport:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
