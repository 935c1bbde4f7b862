"""Canonical Pydantic models for restpipe configuration.

This is the single source of truth for configuration shapes. Every model is
frozen: a configuration value is created once, handed to a
:class:`~restpipe.client.assembler.RequestAssembler` at construction time and
shared read-only between requests. Changes are made by deriving a new value
(the ``with_*`` helpers below, or :meth:`pydantic.BaseModel.model_copy`),
never by mutating one in place.

Models:
    :class:`EncoderConfig` -- request body and query-string charsets, custom
    content-type routing.
    :class:`DecoderConfig` -- enabled compression tokens and response charsets.
    :class:`OAuthConfig` -- shared-secret signing options.
    :class:`TransportConfig` -- timeouts, TLS verification, redirects, proxy.
    :class:`PipelineConfig` -- the aggregate handed to the assembler.
"""

from __future__ import annotations

import enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from restpipe.codec.content_type import ContentType

ISO_8859_1 = "ISO-8859-1"
UTF_8 = "UTF-8"


def _json_charsets() -> dict[str, str]:
    return {"application/json": UTF_8, "text/json": UTF_8}


def _normalize(content_type: str | ContentType) -> str:
    return str(content_type).split(";", 1)[0].strip().lower()


def _lookup_charset(charsets: dict[str, str], content_type: str) -> Optional[str]:
    """Exact per-type default, else the default registered for the type's family."""
    bare = _normalize(content_type)
    if bare in charsets:
        return charsets[bare]
    family = ContentType.from_content_type(bare)
    if family is None or family is ContentType.ANY:
        return None
    return charsets.get(family.value)


class OAuthSignature(str, enum.Enum):
    """Where signing material is placed on the outgoing request."""

    HEADER = "header"
    QUERY_STRING = "query_string"


# --- Encoding ---


class EncoderConfig(BaseModel):
    """How request bodies and query parameters are encoded.

    Example::

        config = (
            EncoderConfig()
            .with_default_charset_for_content_type("UTF-16", "text/plain")
            .encode_content_type_as("application/vnd.acme", ContentType.JSON)
        )
    """

    model_config = ConfigDict(frozen=True)

    default_content_charset: str = Field(
        default=ISO_8859_1,
        min_length=1,
        description="Charset for textual bodies without a charset or per-type default",
    )
    default_query_parameter_charset: str = Field(
        default=UTF_8, min_length=1, description="Charset used to percent-encode query parameters"
    )
    content_type_default_charsets: dict[str, str] = Field(
        default_factory=_json_charsets,
        description="Lowercased, parameter-free content type -> default charset",
    )
    content_encoders: dict[str, ContentType] = Field(
        default_factory=dict,
        description="Custom content type -> family whose encoder should serialize it",
    )
    append_default_charset_to_content_type: bool = Field(
        default=True,
        description="Append '; charset=...' to textual Content-Type headers lacking one",
    )

    def has_default_charset_for_content_type(self, content_type: Optional[str]) -> bool:
        if not content_type or not content_type.strip():
            return False
        return _lookup_charset(self.content_type_default_charsets, content_type) is not None

    def default_charset_for_content_type(self, content_type: Optional[str]) -> str:
        """Per-content-type default charset, falling back to :attr:`default_content_charset`."""
        if not content_type or not content_type.strip():
            return self.default_content_charset
        charset = _lookup_charset(self.content_type_default_charsets, content_type)
        return charset or self.default_content_charset

    def with_default_charset_for_content_type(
        self, charset: str, content_type: str | ContentType
    ) -> EncoderConfig:
        """Return a copy with *charset* as the default for *content_type*.

        A :class:`~restpipe.codec.content_type.ContentType` family sets the
        charset for every alias of the family.
        """
        charsets = dict(self.content_type_default_charsets)
        keys = content_type.aliases if isinstance(content_type, ContentType) else (content_type,)
        for key in keys:
            charsets[_normalize(key)] = charset.strip()
        return self.model_copy(update={"content_type_default_charsets": charsets})

    def encode_content_type_as(self, content_type: str, family: ContentType) -> EncoderConfig:
        """Return a copy that serializes *content_type* with *family*'s encoder."""
        encoders = dict(self.content_encoders)
        encoders[_normalize(content_type)] = family
        return self.model_copy(update={"content_encoders": encoders})


class DecoderConfig(BaseModel):
    """How responses are decompressed and decoded."""

    model_config = ConfigDict(frozen=True)

    content_decoders: tuple[str, ...] = Field(
        default=("gzip", "deflate"), description="Compression tokens negotiated by default"
    )
    use_no_wrap_for_inflate_decoding: bool = Field(
        default=False, description="Treat 'deflate' bodies as raw DEFLATE without a zlib header"
    )
    default_content_charset: str = Field(default=ISO_8859_1, min_length=1)
    content_type_default_charsets: dict[str, str] = Field(default_factory=_json_charsets)

    def charset_for(self, content_type: Optional[str]) -> str:
        """Default charset used to decode a body of *content_type*."""
        if not content_type:
            return self.default_content_charset
        charset = _lookup_charset(self.content_type_default_charsets, content_type)
        return charset or self.default_content_charset


class OAuthConfig(BaseModel):
    """Options for shared-secret (OAuth 1.0a) request signing."""

    model_config = ConfigDict(frozen=True)

    signature_method: str = Field(
        default="HMAC-SHA1", description="HMAC-SHA1, HMAC-SHA256 or PLAINTEXT"
    )


class TransportConfig(BaseModel):
    """Settings forwarded to the underlying httpx client."""

    model_config = ConfigDict(frozen=True)

    timeout: float = Field(default=30, description="Connect/read timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify TLS certificates")
    follow_redirects: bool = Field(default=True)
    proxy: Optional[str] = Field(default=None, description="Proxy URL, e.g. http://proxy:3128")


class PipelineConfig(BaseModel):
    """Aggregate configuration for a :class:`~restpipe.client.assembler.RequestAssembler`.

    Example::

        config = PipelineConfig(url_encoding_enabled=False)
        assembler = RequestAssembler("https://api.example.com", config=config)
    """

    model_config = ConfigDict(frozen=True)

    url_encoding_enabled: bool = Field(
        default=True, description="Percent-encode query parameter names and values"
    )
    default_content_type: str = Field(
        default=ContentType.ANY.value,
        description="Expected response content type; */* means use the server's header",
    )
    default_request_content_type: Optional[str] = Field(
        default=None, description="Request body content type when it differs from the response"
    )
    default_parser: Optional[ContentType] = Field(
        default=None,
        description="Parser used when the server sends no Content-Type and any type is accepted",
    )
    encoder: EncoderConfig = Field(default_factory=EncoderConfig)
    decoder: DecoderConfig = Field(default_factory=DecoderConfig)
    oauth: OAuthConfig = Field(default_factory=OAuthConfig)
    transport: TransportConfig = Field(default_factory=TransportConfig)
