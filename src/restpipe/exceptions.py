"""Exception hierarchy for restpipe.

All exceptions inherit from :class:`RestPipeError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`restpipe.exit_codes`.
Every error propagates to the caller of
:meth:`~restpipe.client.assembler.RequestAssembler.execute`; the CLI in
:func:`restpipe.app.main` catches ``RestPipeError`` and exits with the
appropriate code.

Subclass hierarchy::

    RestPipeError (exit 1)
    +-- InvalidUsageError     (exit 2)
    |   +-- UriSyntaxError    (exit 2)
    |   +-- UnencodableBodyError (exit 2)
    +-- ConfigStateError      (exit 2)
    +-- ConfigError           (exit 2)
    +-- HttpResponseError     (exit 3 / 4 / 5 by status)
    +-- ResponseParseError    (exit 7)
    +-- TransportError        (exit 6)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from restpipe.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CLIENT_ERROR,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_PARSE_ERROR,
    EXIT_SERVER_ERROR,
)

if TYPE_CHECKING:
    from restpipe.client.response import ResponseDecorator


class RestPipeError(Exception):
    """Base exception for all restpipe errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`restpipe.exit_codes`.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(RestPipeError):
    """Raised for invalid arguments, e.g. a status code outside 100-999."""

    exit_code = EXIT_INVALID_USAGE


class UriSyntaxError(InvalidUsageError):
    """Raised when a scheme, host, port, path or fragment is malformed.

    Args:
        message: Description of the problem.
        fragment: The offending part of the URI, echoed in the message.
    """

    def __init__(self, message: str, fragment: str = ""):
        self.fragment = fragment
        if fragment:
            message = f"{message}: {fragment!r}"
        super().__init__(message)


class UnencodableBodyError(InvalidUsageError):
    """Raised when no encoder can serialize a request body.

    The message names the body's type and the content type being encoded,
    and shows how to route the content type through another encoder.

    Args:
        value: The body that could not be encoded.
        content_type: The content type it was being encoded as.
        family: Human-readable name of the encoder that rejected it.
        charset: Set when the value is text that *charset* cannot represent.
    """

    def __init__(
        self,
        value: Any,
        content_type: Optional[str],
        family: str = "a byte stream",
        charset: Optional[str] = None,
    ):
        from restpipe.codec.content_type import strip_parameters

        self.value_type = type(value).__name__
        self.content_type = content_type
        self.charset = charset
        bare = strip_parameters(content_type or "") or "<none>"
        if charset is not None:
            message = (
                f"Don't know how to encode {self.value_type} value as {family} "
                f"for content-type '{content_type}': it contains characters "
                f"that charset '{charset}' cannot represent.\n\n"
                "Please declare a charset on the content-type or use "
                "EncoderConfig.with_default_charset_for_content_type.\n"
                "For example: EncoderConfig().with_default_charset_for_content_type("
                f'"UTF-8", "{bare}")'
            )
        else:
            message = (
                f"Don't know how to encode {self.value_type} value as {family} "
                f"for content-type '{content_type}'.\n\n"
                "Please use EncoderConfig.encode_content_type_as to specify how to "
                "serialize data for this content-type.\n"
                f'For example: EncoderConfig().encode_content_type_as("{bare}", ContentType.TEXT)'
            )
        super().__init__(message)


class ConfigStateError(RestPipeError):
    """Raised when an operation is attempted without its prerequisite.

    Examples are signing without a default URI or setting a body on a verb
    that does not carry one.
    """

    exit_code = EXIT_INVALID_USAGE


class HttpResponseError(RestPipeError):
    """Raised by the default failure handler for 4xx / 5xx responses.

    This is the expected representation of an error response. Callers catch
    it and inspect :attr:`status_code`, :attr:`status_line` and :attr:`body`.

    Args:
        response: The decorated response that triggered the failure.
    """

    def __init__(self, response: ResponseDecorator):
        self.response = response
        self.status_code = response.status_code
        self.status_line = response.status_line
        self.body = response.data
        if self.status_code in (401, 403):
            exit_code = EXIT_AUTH_FAILURE
        elif self.status_code >= 500:
            exit_code = EXIT_SERVER_ERROR
        else:
            exit_code = EXIT_CLIENT_ERROR
        super().__init__(self.status_line, exit_code=exit_code)


class ResponseParseError(RestPipeError):
    """Raised when a response body cannot be parsed under its content type.

    The raw bytes are retained so the caller can inspect the body manually.

    Args:
        response: The decorated response whose body failed to parse.
        raw: The raw (decompressed) body bytes.
        cause: The underlying parser exception.
    """

    exit_code = EXIT_PARSE_ERROR

    def __init__(self, response: ResponseDecorator, raw: bytes, cause: BaseException):
        self.response = response
        self.raw = raw
        self.cause = cause
        super().__init__(
            f"Failed to parse response of {response.status_line} as "
            f"'{response.parsed_as}': {cause}"
        )


class TransportError(RestPipeError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused)."""

    exit_code = EXIT_CONNECTION_ERROR


class ConfigError(RestPipeError):
    """Raised when a configuration file or credential source cannot be read."""

    exit_code = EXIT_INVALID_USAGE
