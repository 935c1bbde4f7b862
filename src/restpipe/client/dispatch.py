"""Status-code based routing of responses to handlers.

A :class:`StatusHandlerTable` maps dispatch keys to handlers. A key is
either a literal status code (``404``, ``"404"``) or a :class:`Status`
bucket (``Status.SUCCESS`` / ``"success"``, ``Status.FAILURE`` /
``"failure"``). For a response with status ``c`` the handler is resolved in
three tiers:

1. the handler registered for the literal code ``c``;
2. the handler registered for the bucket ``c`` falls into
   (success 100-399, failure 400-999);
3. the built-in default: :func:`default_success_handler` or
   :func:`default_failure_handler`.

Codes outside 100-999 are rejected with
:class:`~restpipe.exceptions.InvalidUsageError`.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable, Iterator, Mapping
from typing import TYPE_CHECKING, Any, Optional, Union

from restpipe.exceptions import HttpResponseError, InvalidUsageError

if TYPE_CHECKING:
    from restpipe.client.response import ResponseDecorator

logger = logging.getLogger(__name__)

Handler = Callable[["ResponseDecorator"], Any]
DispatchKey = Union[int, str, "Status"]

MIN_STATUS = 100
MAX_STATUS = 999


def _check_status(code: int) -> int:
    if not MIN_STATUS <= code <= MAX_STATUS:
        raise InvalidUsageError(f"Unknown status code: {code} (expected {MIN_STATUS}-{MAX_STATUS})")
    return code


class Status(str, enum.Enum):
    """Success / failure buckets for status codes."""

    SUCCESS = "success"
    FAILURE = "failure"

    def matches(self, code: int) -> bool:
        _check_status(code)
        if self is Status.SUCCESS:
            return code < 400
        return code >= 400

    @classmethod
    def find(cls, code: int) -> Status:
        """Return the bucket *code* belongs to."""
        _check_status(code)
        return cls.SUCCESS if code < 400 else cls.FAILURE


def buffer_data(response: ResponseDecorator) -> Any:
    """Replace a streamed :attr:`ResponseDecorator.data` with its bytes."""
    data = response.data
    if hasattr(data, "read") and callable(data.read):
        data = data.read()
        response.data = data
    return data


def default_success_handler(response: ResponseDecorator) -> Any:
    """Return the parsed body, fully buffering it if it is still a stream.

    The connection is released as soon as the handler returns, so a live
    stream must never escape.
    """
    return buffer_data(response)


def default_failure_handler(response: ResponseDecorator) -> Any:
    """Raise :class:`~restpipe.exceptions.HttpResponseError` for *response*.

    The body is buffered first so it stays readable on the exception.
    """
    buffer_data(response)
    raise HttpResponseError(response)


def normalize_key(key: DispatchKey) -> str:
    """Turn a dispatch key into its canonical string form.

    Raises:
        InvalidUsageError: For out-of-range codes or unknown bucket names.
    """
    if isinstance(key, Status):
        return key.value
    if isinstance(key, bool):
        raise InvalidUsageError(f"Invalid response handler key: {key!r}")
    if isinstance(key, int):
        return str(_check_status(key))
    if isinstance(key, str):
        text = key.strip().lower()
        if text.isdigit():
            return str(_check_status(int(text)))
        if text in (Status.SUCCESS.value, Status.FAILURE.value):
            return text
    raise InvalidUsageError(
        f"Invalid response handler key: {key!r}; use a status code, 'success' or 'failure'"
    )


class StatusHandlerTable:
    """Mapping from dispatch keys to response handlers.

    Example::

        table = StatusHandlerTable()
        table[404] = lambda response: None
        table[Status.FAILURE] = lambda response: response.status_line
    """

    def __init__(self, handlers: Optional[Mapping[DispatchKey, Handler]] = None) -> None:
        self._handlers: dict[str, Handler] = {}
        for key, handler in (handlers or {}).items():
            self[key] = handler

    def __setitem__(self, key: DispatchKey, handler: Handler) -> None:
        self._handlers[normalize_key(key)] = handler

    def __getitem__(self, key: DispatchKey) -> Handler:
        return self._handlers[normalize_key(key)]

    def __delitem__(self, key: DispatchKey) -> None:
        del self._handlers[normalize_key(key)]

    def __contains__(self, key: object) -> bool:
        try:
            return normalize_key(key) in self._handlers  # type: ignore[arg-type]
        except InvalidUsageError:
            return False

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._handlers))

    def __len__(self) -> int:
        return len(self._handlers)

    def get(self, key: DispatchKey) -> Optional[Handler]:
        return self._handlers.get(normalize_key(key))

    def copy(self) -> StatusHandlerTable:
        table = StatusHandlerTable()
        table._handlers = dict(self._handlers)
        return table

    def merged(self, overrides: Optional[Mapping[DispatchKey, Handler]]) -> StatusHandlerTable:
        """Return a new table with *overrides* layered on top of this one."""
        table = self.copy()
        for key, handler in (overrides or {}).items():
            table[key] = handler
        return table

    def resolve(self, code: int) -> Handler:
        """Find the handler for status *code* (literal, then bucket, then default)."""
        _check_status(code)
        handler = self._handlers.get(str(code))
        if handler is not None:
            return handler
        bucket = Status.find(code)
        handler = self._handlers.get(bucket.value)
        if handler is not None:
            return handler
        return default_success_handler if bucket is Status.SUCCESS else default_failure_handler

    def dispatch(self, response: ResponseDecorator) -> Any:
        handler = self.resolve(response.status_code)
        logger.debug(
            "Dispatching %s to %s", response.status_code, getattr(handler, "__name__", handler)
        )
        return handler(response)
