"""Per-request configuration and the assembled, ready-to-send request.

:class:`RequestSpec` is the declarative description a caller hands to
:meth:`~restpipe.client.assembler.RequestAssembler.execute`. Every field
left as ``None`` falls back to the assembler's defaults.

:class:`PreparedRequest` is what the assembler produces from a spec: a
final URI, merged headers and an encoded entity. It is owned by the thread
executing the request; interceptors and signers mutate it in place right
before it goes to the transport.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Optional, Union

import httpx

from restpipe.codec.entity import RequestEntity
from restpipe.uri import UriBuilder

GET = "GET"
POST = "POST"
PUT = "PUT"
DELETE = "DELETE"
HEAD = "HEAD"
TRACE = "TRACE"
OPTIONS = "OPTIONS"
PATCH = "PATCH"

STANDARD_METHODS = frozenset({GET, POST, PUT, DELETE, HEAD, TRACE, OPTIONS, PATCH})

# Standard verbs that carry a body unless told otherwise. Custom verbs do too.
METHODS_WITH_BODY = frozenset({POST, PUT, PATCH, DELETE})


def method_allows_body(method: str) -> bool:
    method = method.upper()
    return method in METHODS_WITH_BODY or method not in STANDARD_METHODS


@dataclass
class RequestSpec:
    """Declarative description of a single request.

    Attributes:
        method: HTTP verb; unknown verbs are sent as custom methods.
        uri: Absolute URI overriding the assembler's default URI.
        path: Path resolved against the URI as a relative reference.
        query: Query parameters added to the URI; sequence values repeat.
        headers: Headers merged over the assembler defaults. ``None``
            removes a header, a list emits it repeatedly.
        content_type: Expected response content type. Also used for the
            request body when :attr:`request_content_type` is unset.
        request_content_type: Content type of the request body.
        body: Request body, encoded by the content-type's encoder.
        has_body: Force whether the verb may carry a body.
        handlers: Per-request status handlers layered over the defaults.
    """

    method: str = GET
    uri: Optional[Union[str, UriBuilder, httpx.URL]] = None
    path: Optional[str] = None
    query: Optional[Mapping[str, Any]] = None
    headers: Mapping[str, Any] = field(default_factory=dict)
    content_type: Optional[str] = None
    request_content_type: Optional[str] = None
    body: Any = None
    has_body: Optional[bool] = None
    handlers: Mapping[Any, Callable[..., Any]] = field(default_factory=dict)


@dataclass
class PreparedRequest:
    """A fully assembled request, as it will be sent."""

    method: str
    uri: UriBuilder
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    entity: Optional[RequestEntity] = None

    @property
    def url(self) -> str:
        return str(self.uri)

    def set_header(self, name: str, value: Any) -> None:
        """Set, replace or (with ``None``) remove a header.

        A list or tuple value emits the header once per item.
        """
        lowered = name.lower()
        pairs: list[tuple[Any, Any]] = [
            (k, v) for k, v in self.headers.raw if k.decode("latin-1").lower() != lowered
        ]
        if isinstance(value, (list, tuple)):
            pairs.extend((name, str(item)) for item in value)
        elif value is not None:
            pairs.append((name, str(value)))
        self.headers = httpx.Headers(pairs)

    def __repr__(self) -> str:
        return f"PreparedRequest({self.method} {self.url})"
