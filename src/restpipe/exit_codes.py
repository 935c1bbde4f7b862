"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~restpipe.exceptions.RestPipeError` subclass.
Shell wrappers and CI scripts can inspect the exit code of ``restpipe send``
to determine the failure class without parsing stderr.

Example::

    $ restpipe send GET https://api.example.com/missing
    $ echo $?
    4   # EXIT_CLIENT_ERROR -- the server answered with a 4xx status
"""

EXIT_SUCCESS = 0
"""The request completed and the response was dispatched successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""Invalid arguments, malformed URI, unencodable body or missing precondition."""

EXIT_AUTH_FAILURE = 3
"""The server rejected the credentials (HTTP 401 / 403)."""

EXIT_CLIENT_ERROR = 4
"""The server answered with an HTTP 4xx status."""

EXIT_SERVER_ERROR = 5
"""The server answered with an HTTP 5xx status."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_PARSE_ERROR = 7
"""The response body could not be parsed under its resolved content type."""
