"""Decorated HTTP response handed to interceptors and status handlers.

:class:`ResponseDecorator` wraps what the transport returned (status, reason,
headers and an optional :class:`~restpipe.codec.entity.ResponseEntity`) and
carries the parsed body in :attr:`ResponseDecorator.data` once the assembler
has parsed it. :func:`render_response` bridges a finished response to the
CLI output system.
"""

from __future__ import annotations

import io
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Optional

import httpx

from restpipe.codec.entity import ResponseEntity

if TYPE_CHECKING:
    from restpipe.client.request import PreparedRequest
    from restpipe.output import OutputManager


class ResponseDecorator:
    """Status line, headers, entity and parsed data of one response.

    Args:
        status_code: Numeric HTTP status.
        reason: Reason phrase, possibly empty.
        headers: Response headers.
        entity: Body stream and entity headers, ``None`` when the response
            has no body.
        request: The request that produced this response.
        http_version: Protocol version for :attr:`status_line`.
        on_close: Called once by :meth:`close` to release the connection.
    """

    def __init__(
        self,
        status_code: int,
        reason: str = "",
        headers: Optional[httpx.Headers] = None,
        entity: Optional[ResponseEntity] = None,
        request: Optional[PreparedRequest] = None,
        http_version: str = "HTTP/1.1",
        on_close: Optional[Callable[[], None]] = None,
    ) -> None:
        self.status_code = status_code
        self.reason = reason or ""
        self.headers = headers if headers is not None else httpx.Headers()
        self.entity = entity
        self.request = request
        self.http_version = http_version
        self.data: Any = None
        self.parsed_as: Optional[str] = None
        self._on_close = on_close
        self._closed = False

    @property
    def status_line(self) -> str:
        return f"{self.http_version} {self.status_code} {self.reason}".rstrip()

    @property
    def content_type(self) -> Optional[str]:
        return self.headers.get("content-type")

    @property
    def is_success(self) -> bool:
        return 100 <= self.status_code < 400

    def get_header(self, name: str) -> Optional[str]:
        return self.headers.get(name)

    def get_headers(self, name: str) -> list[str]:
        return self.headers.get_list(name)

    def close(self) -> None:
        """Release the body stream and the underlying connection."""
        if self._closed:
            return
        self._closed = True
        try:
            if self.entity is not None:
                self.entity.close()
        finally:
            if self._on_close is not None:
                self._on_close()

    def __repr__(self) -> str:
        return f"<ResponseDecorator [{self.status_code}] parsed_as={self.parsed_as!r}>"


def render_response(data: Any, response: ResponseDecorator, output: OutputManager) -> None:
    """Print the status line to stderr and *data* to stdout.

    Args:
        data: The value returned by the status handler.
        response: The response the data came from.
        output: The CLI output manager.
    """
    output.info(response.status_line)
    if data is None:
        return
    if isinstance(data, io.IOBase):
        data = data.read()
    output.format_response(data, response.parsed_as or response.content_type)
