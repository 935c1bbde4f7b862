"""Request assembly, execution and status dispatch.

:class:`RequestAssembler` turns a :class:`~restpipe.client.request.RequestSpec`
into a wire request and routes the response to a handler:

1. resolve the URI (default URI, optional absolute override, relative
   path, query parameters) through :class:`~restpipe.uri.UriBuilder`;
2. merge headers, encode the body with the
   :class:`~restpipe.codec.encoders.EncoderRegistry` and set ``Accept`` /
   ``Content-Type``;
3. run the request interceptors (compression negotiation, then signers);
4. send through the transport;
5. run the response interceptors (decompression);
6. parse the body with the :class:`~restpipe.codec.parsers.ParserRegistry`;
7. dispatch to the handler resolved by the
   :class:`~restpipe.client.dispatch.StatusHandlerTable`.

The response is always closed once the handler returns, which is why the
default success handler buffers streamed bodies.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from collections.abc import Mapping
from typing import Any, Optional, Union

import httpx

from restpipe.auth.manager import AuthManager
from restpipe.client.dispatch import Handler, StatusHandlerTable
from restpipe.client.interceptors import InterceptorChain
from restpipe.client.request import (
    DELETE,
    GET,
    HEAD,
    OPTIONS,
    PATCH,
    POST,
    PUT,
    PreparedRequest,
    RequestSpec,
    method_allows_body,
)
from restpipe.client.response import ResponseDecorator
from restpipe.client.transport import HttpxTransport, Transport
from restpipe.codec.compression import CompressionRegistry
from restpipe.codec.content_type import ContentType, charset_of, strip_parameters
from restpipe.codec.encoders import EncoderRegistry
from restpipe.codec.entity import BodyKind, ResponseEntity, classify_body
from restpipe.codec.parsers import ParserRegistry, parse_stream
from restpipe.exceptions import ConfigStateError, ResponseParseError
from restpipe.models import PipelineConfig
from restpipe.uri import UriBuilder, UriLike

logger = logging.getLogger(__name__)

ACCEPT = "Accept"
CONTENT_TYPE = "Content-Type"

_PARSE_ERRORS = (ValueError, LookupError, ET.ParseError)


def _family(content_type: Optional[str]) -> Optional[ContentType]:
    return ContentType.from_content_type(content_type) if content_type else None


def _is_concrete(content_type: Optional[str]) -> bool:
    """Whether *content_type* names something other than ``*/*``."""
    return bool(content_type) and _family(content_type) is not ContentType.ANY


def _is_well_formed(content_type: Optional[str]) -> bool:
    if not content_type:
        return False
    bare = strip_parameters(content_type)
    kind, _, subtype = bare.partition("/")
    return bool(kind.strip()) and bool(subtype.strip())


def _infer_content_type(body: Any) -> str:
    """Content type for a body sent without one."""
    kind = classify_body(body)
    if kind is BodyKind.TEXT:
        return ContentType.TEXT.value
    if kind is BodyKind.STRUCTURED:
        if isinstance(body, ET.Element):
            return ContentType.XML.value
        return ContentType.JSON.value
    return ContentType.BINARY.value


class RequestAssembler:
    """Builds, sends and dispatches requests against a default URI.

    Args:
        default_uri: Base URI for requests that do not give their own.
        config: Immutable pipeline configuration.
        transport: A :class:`~restpipe.client.transport.Transport`, or an
            :class:`httpx.BaseTransport` (e.g. :class:`httpx.MockTransport`)
            to send through.
        headers: Default headers sent with every request.
        content_type: Default expected response content type.
        handlers: Default status handlers.

    Example::

        assembler = RequestAssembler("https://api.example.com/v1/")
        assembler.handlers[404] = lambda response: None
        user = assembler.post(
            path="users", body={"name": "Ann"}, content_type="application/json"
        )
    """

    def __init__(
        self,
        default_uri: Optional[UriLike] = None,
        *,
        config: Optional[PipelineConfig] = None,
        transport: Union[Transport, httpx.BaseTransport, None] = None,
        headers: Optional[Mapping[str, Any]] = None,
        content_type: Optional[str] = None,
        handlers: Optional[Mapping[Any, Handler]] = None,
    ) -> None:
        self._config = config or PipelineConfig()
        self._default_uri: Optional[UriBuilder] = None
        self._headers: dict[str, tuple[str, Any]] = {}
        self._content_type = str(content_type or self._config.default_content_type)
        self._request_content_type = self._config.default_request_content_type

        self.encoders = EncoderRegistry(self._config.encoder)
        self.parsers = ParserRegistry(self._config.decoder)
        self.compression = CompressionRegistry(self._config.decoder)
        self.interceptors = InterceptorChain()
        self.compression.with_encodings(self.interceptors, *self._config.decoder.content_decoders)
        self.handlers = StatusHandlerTable(handlers)
        self.auth = AuthManager(self)

        if transport is None or isinstance(transport, httpx.BaseTransport):
            self._transport: Transport = HttpxTransport(self._config.transport, transport)
        else:
            self._transport = transport

        if default_uri is not None:
            self.set_uri(default_uri)
        if headers:
            self.set_headers(headers)

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> RequestAssembler:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        self._transport.close()

    # ------------------------------------------------------------------ #
    # Defaults
    # ------------------------------------------------------------------ #

    @property
    def config(self) -> PipelineConfig:
        return self._config

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def default_uri(self) -> Optional[UriBuilder]:
        return self._default_uri

    def _to_uri(self, uri: UriLike) -> UriBuilder:
        return UriBuilder.convert(
            uri,
            url_encoding_enabled=self._config.url_encoding_enabled,
            charset=self._config.encoder.default_query_parameter_charset,
        )

    def set_uri(self, uri: Optional[UriLike]) -> None:
        """Set (or with ``None`` clear) the default URI."""
        self._default_uri = self._to_uri(uri) if uri is not None else None

    @property
    def headers(self) -> dict[str, Any]:
        return dict(self._headers.values())

    def set_headers(self, headers: Mapping[str, Any]) -> None:
        """Merge *headers* into the defaults; a ``None`` value removes a header."""
        for name, value in headers.items():
            if value is None:
                self._headers.pop(name.lower(), None)
            else:
                self._headers[name.lower()] = (name, value)

    @property
    def content_type(self) -> str:
        return self._content_type

    def set_content_type(self, content_type: Union[str, ContentType, None]) -> None:
        self._content_type = str(content_type or ContentType.ANY)

    @property
    def request_content_type(self) -> Optional[str]:
        return self._request_content_type

    def set_request_content_type(self, content_type: Union[str, ContentType, None]) -> None:
        self._request_content_type = str(content_type) if content_type else None

    def set_content_encoding(self, *tokens: str) -> None:
        """Negotiate exactly *tokens* (e.g. ``"gzip"``); no tokens disables it."""
        self.compression.with_encodings(self.interceptors, *tokens)

    def set_proxy(self, host: str, port: Optional[int] = None, scheme: str = "http") -> None:
        """Send subsequent requests through an HTTP proxy."""
        set_proxy = getattr(self._transport, "set_proxy", None)
        if set_proxy is None:
            raise ConfigStateError(
                f"Transport {type(self._transport).__name__} does not support proxies"
            )
        authority = f"{host}:{port}" if port is not None else host
        set_proxy(f"{scheme}://{authority}")

    # ------------------------------------------------------------------ #
    # Verbs
    # ------------------------------------------------------------------ #

    def get(self, **kwargs: Any) -> Any:
        return self.request(GET, **kwargs)

    def post(self, **kwargs: Any) -> Any:
        return self.request(POST, **kwargs)

    def put(self, **kwargs: Any) -> Any:
        return self.request(PUT, **kwargs)

    def patch(self, **kwargs: Any) -> Any:
        return self.request(PATCH, **kwargs)

    def delete(self, **kwargs: Any) -> Any:
        return self.request(DELETE, **kwargs)

    def head(self, **kwargs: Any) -> Any:
        return self.request(HEAD, **kwargs)

    def options(self, **kwargs: Any) -> Any:
        return self.request(OPTIONS, **kwargs)

    def request(self, method: str, **kwargs: Any) -> Any:
        """Build a :class:`RequestSpec` from *kwargs* and :meth:`execute` it."""
        return self.execute(RequestSpec(method=method, **kwargs))

    # ------------------------------------------------------------------ #
    # Assembly
    # ------------------------------------------------------------------ #

    def _resolve_uri(self, spec: RequestSpec) -> UriBuilder:
        uri = self._to_uri(spec.uri) if spec.uri is not None else self._default_uri
        if uri is None:
            raise ConfigStateError("No URI given and no default URI is set")
        if spec.path:
            uri = uri.with_path(spec.path)
        if spec.query:
            uri = uri.add_query_params(spec.query)
        return uri

    def _request_content_type_for(
        self, spec: RequestSpec, method: str, declared_header: Optional[str]
    ) -> Optional[str]:
        for candidate in (
            spec.request_content_type,
            spec.content_type,
            declared_header,
            self._request_content_type,
        ):
            if _is_concrete(candidate):
                return str(candidate)
        if method in (POST, PATCH):
            return ContentType.URLENC.value
        if _is_concrete(self._content_type):
            return self._content_type
        return None

    def response_content_type_for(self, spec: RequestSpec) -> str:
        return str(spec.content_type or self._content_type)

    def prepare(self, spec: RequestSpec) -> PreparedRequest:
        """Assemble *spec* into a :class:`PreparedRequest` without sending it.

        Raises:
            ConfigStateError: If there is no URI, or a body is given for a
                verb that does not carry one.
        """
        method = spec.method.upper()
        request = PreparedRequest(method=method, uri=self._resolve_uri(spec))
        for name, value in self._headers.values():
            request.set_header(name, value)
        for name, value in spec.headers.items():
            request.set_header(name, value)

        response_type = self.response_content_type_for(spec)
        if ACCEPT not in request.headers:
            family = _family(response_type)
            request.set_header(ACCEPT, family.accept_header if family else response_type)

        declared = request.headers.get(CONTENT_TYPE)
        request_type = self._request_content_type_for(spec, method, declared)

        if spec.body is not None:
            allowed = spec.has_body if spec.has_body is not None else method_allows_body(method)
            if not allowed:
                raise ConfigStateError(
                    f"{method} requests do not carry a body; pass has_body=True to send one"
                )
            encode_as = request_type or _infer_content_type(spec.body)
            logger.debug("Encoding %s body as '%s'", type(spec.body).__name__, encode_as)
            request.entity = self.encoders.encode(encode_as, spec.body)

        # A caller-supplied multipart type carries the boundary; keep it.
        if not (declared and declared.lower().startswith("multipart/")):
            if request.entity is not None and request.entity.content_type:
                request.set_header(CONTENT_TYPE, request.entity.content_type)
            elif request.entity is None and request_type and not declared:
                request.set_header(CONTENT_TYPE, request_type)
        return request

    # ------------------------------------------------------------------ #
    # Execution
    # ------------------------------------------------------------------ #

    def execute(self, spec: RequestSpec) -> Any:
        """Assemble, sign, send, parse and dispatch *spec*.

        Returns:
            Whatever the resolved status handler returns.

        Raises:
            HttpResponseError: From the default failure handler.
            ResponseParseError: If a forced content type cannot be parsed.
            TransportError: On network failures.
        """
        handlers = self.handlers.merged(spec.handlers)
        request = self.prepare(spec)
        self.interceptors.run_request(request)
        response = self._transport.send(request)
        try:
            self.interceptors.run_response(response)
            self._parse(response, self.response_content_type_for(spec))
            return handlers.dispatch(response)
        finally:
            response.close()

    def _parse(self, response: ResponseDecorator, response_type: str) -> None:
        entity = response.entity
        if entity is None or entity.is_empty():
            response.data = None
            return

        forced = _is_concrete(response_type)
        if forced:
            parse_as = response_type
        elif _is_well_formed(response.content_type):
            parse_as = str(response.content_type)
        else:
            fallback = self._config.default_parser or ContentType.BINARY
            logger.debug(
                "Missing or malformed Content-Type %r, parsing as %s",
                response.content_type,
                fallback.value,
            )
            parse_as = fallback.value
        response.parsed_as = parse_as

        parser = self.parsers.resolve(parse_as)
        if parser is parse_stream:
            response.data = entity.stream
            return

        raw = entity.read()
        charset = charset_of(response.content_type) or self.parsers.charset_for(parse_as)
        try:
            response.data = parser(ResponseEntity.from_bytes(raw, entity.content_type), charset)
        except _PARSE_ERRORS as exc:
            if forced and response.is_success:
                raise ResponseParseError(response, raw, exc) from exc
            logger.warning(
                "Could not parse %s body as '%s' (%s); returning raw bytes",
                response.status_code,
                parse_as,
                exc,
            )
            response.data = raw
            response.parsed_as = ContentType.BINARY.value
