"""restpipe -- HTTP request construction, content negotiation and status dispatch.

Callers describe a request declaratively (verb, URI, headers, query and form
parameters, body, content type); restpipe builds the wire request, encodes
the body for its content type, negotiates compression, signs the final
request, sends it, decompresses and parses the response, and routes it to a
handler chosen by status code.

Typical usage::

    from restpipe import RequestAssembler

    with RequestAssembler("https://api.example.com/v1/") as api:
        user = api.post(path="users", body={"name": "Ann"}, content_type="application/json")

Modules:
    uri: :class:`UriBuilder`, the immutable URI value.
    codec: content-type families, encoders, parsers and compression.
    client: assembler, transport, status dispatch.
    auth: Basic, OAuth 1.0a and bearer request signers.
    models: immutable pydantic configuration.
    exceptions: error hierarchy with CLI exit codes.
    app: the ``restpipe`` command line.
"""

__version__ = "0.1.0"

from restpipe.client.assembler import RequestAssembler  # noqa: E402
from restpipe.client.dispatch import Status, StatusHandlerTable  # noqa: E402
from restpipe.client.request import RequestSpec  # noqa: E402
from restpipe.client.response import ResponseDecorator  # noqa: E402
from restpipe.codec.content_type import ContentType  # noqa: E402
from restpipe.exceptions import (  # noqa: E402
    ConfigStateError,
    HttpResponseError,
    InvalidUsageError,
    ResponseParseError,
    RestPipeError,
    TransportError,
    UnencodableBodyError,
    UriSyntaxError,
)
from restpipe.models import (  # noqa: E402
    DecoderConfig,
    EncoderConfig,
    OAuthConfig,
    OAuthSignature,
    PipelineConfig,
    TransportConfig,
)
from restpipe.uri import NO_VALUE, UriBuilder  # noqa: E402

__all__ = [
    "NO_VALUE",
    "ConfigStateError",
    "ContentType",
    "DecoderConfig",
    "EncoderConfig",
    "HttpResponseError",
    "InvalidUsageError",
    "OAuthConfig",
    "OAuthSignature",
    "PipelineConfig",
    "RequestAssembler",
    "RequestSpec",
    "ResponseDecorator",
    "ResponseParseError",
    "RestPipeError",
    "Status",
    "StatusHandlerTable",
    "TransportConfig",
    "TransportError",
    "UnencodableBodyError",
    "UriBuilder",
    "UriSyntaxError",
    "__version__",
]
