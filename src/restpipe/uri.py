"""Immutable URI value with query-parameter encode / merge rules.

:class:`UriBuilder` holds a scheme, authority, path, raw query string and
fragment. Every ``with_*`` / query method returns a *new* builder, so a value
handed to the transport can never change underneath it.

Encoding policy is fixed per instance: with ``url_encoding_enabled=True``
parameter names and values are percent-encoded exactly once (spaces become
``%20``, never ``+``); with ``False`` the caller's strings are assumed to be
valid already and pass through verbatim. Adding or removing parameters
keeps the existing query tokens as they are and encodes only the new pairs.
Reading the query back (:meth:`UriBuilder.get_query`) only splits
``name=value`` tokens and never decodes.

Example::

    uri = UriBuilder("http://h/a/b/").with_path("../c").set_query({"q": ["x y", "z"]})
    str(uri)  # 'http://h/a/c?q=x%20y&q=z'
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Any, Optional, Union
from urllib.parse import quote_plus, urljoin, urlsplit, urlunsplit

import httpx

from restpipe.exceptions import InvalidUsageError, UriSyntaxError

_PARAMETER_SEPARATOR = "&"
_NAME_VALUE_SEPARATOR = "="

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*$")
_HOST_RE = re.compile(r"^(\[[0-9A-Fa-f:.]+\]|[A-Za-z0-9\-._~%!$&'()*+,;=]+)$")
_INVALID_CHARS_RE = re.compile(r"[\x00-\x20\x7f<>\"\\^`|]")
_BAD_PERCENT_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")


class _NoValue:
    """Sentinel type for flag-style query parameters (``?verbose``)."""

    _instance: Optional[_NoValue] = None

    def __new__(cls) -> _NoValue:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NO_VALUE"

    def __bool__(self) -> bool:
        return False


NO_VALUE = _NoValue()
"""Query parameter value that serializes as a bare ``name`` without ``=``."""

QueryPair = tuple[str, Any]
UriLike = Union[str, "UriBuilder", httpx.URL]


def encode_component(content: str, charset: str) -> str:
    """Percent-encode *content*, writing spaces as ``%20`` rather than ``+``."""
    try:
        encoded = quote_plus(content, safe="*", encoding=charset)
    except LookupError as exc:
        raise InvalidUsageError(f"Unknown query parameter charset '{charset}'") from exc
    return encoded.replace("+", "%20")


def _check_chars(value: str, what: str) -> None:
    if _INVALID_CHARS_RE.search(value) or _BAD_PERCENT_RE.search(value):
        raise UriSyntaxError(f"Illegal character in {what}", value)


def _expand(params: Mapping[Any, Any]) -> list[QueryPair]:
    pairs: list[QueryPair] = []
    for key, value in params.items():
        if isinstance(value, (list, tuple)):
            pairs.extend((str(key), item) for item in value)
        else:
            pairs.append((str(key), value))
    return pairs


def _parse_tokens(raw: Optional[str]) -> list[str]:
    if not raw:
        return []
    return [token for token in raw.split(_PARAMETER_SEPARATOR) if token]


def _token_name(token: str) -> str:
    return token.partition(_NAME_VALUE_SEPARATOR)[0].strip()


def _parse_query(raw: Optional[str]) -> list[QueryPair]:
    pairs: list[QueryPair] = []
    for token in _parse_tokens(raw):
        name, sep, value = token.partition(_NAME_VALUE_SEPARATOR)
        pairs.append((name.strip(), value.strip() if sep else NO_VALUE))
    return pairs


class UriBuilder:
    """Immutable URI with RFC 3986 path resolution and query helpers.

    Args:
        uri: Base URI as a string, another :class:`UriBuilder` or an
            :class:`httpx.URL`.
        url_encoding_enabled: Percent-encode query names and values when
            set. Fixed for the lifetime of the builder and of every builder
            derived from it.
        charset: Charset used for percent-encoding.

    Raises:
        UriSyntaxError: If *uri* is malformed.
    """

    __slots__ = (
        "_scheme",
        "_userinfo",
        "_host",
        "_port",
        "_path",
        "_query",
        "_fragment",
        "_url_encoding_enabled",
        "_charset",
    )

    def __init__(
        self,
        uri: UriLike,
        url_encoding_enabled: bool = True,
        charset: str = "UTF-8",
    ) -> None:
        if isinstance(uri, UriBuilder):
            uri = str(uri)
        text = str(uri)
        _check_chars(text, "URI")
        try:
            parts = urlsplit(text)
            port = parts.port
        except ValueError as exc:
            raise UriSyntaxError(f"Malformed URI ({exc})", text) from exc
        if parts.scheme and not _SCHEME_RE.match(parts.scheme):
            raise UriSyntaxError("Illegal scheme", parts.scheme)
        netloc = parts.netloc
        userinfo, _, hostport = netloc.rpartition("@")
        host = parts.hostname
        if host is not None and hostport.startswith("["):
            host = f"[{host}]"
        elif host is not None:
            # urlsplit lowercases the host; keep what the caller wrote
            host = hostport.split(":", 1)[0] if ":" in hostport else hostport
        if host and not _HOST_RE.match(host):
            raise UriSyntaxError("Illegal host", host)
        self._scheme: Optional[str] = parts.scheme or None
        self._userinfo: Optional[str] = userinfo or None
        self._host: Optional[str] = host or None
        self._port: Optional[int] = port
        self._path: str = parts.path
        self._query: Optional[str] = parts.query if "?" in text.split("#", 1)[0] else None
        self._fragment: Optional[str] = parts.fragment if "#" in text else None
        self._url_encoding_enabled = url_encoding_enabled
        self._charset = charset

    @classmethod
    def convert(
        cls, uri: UriLike, url_encoding_enabled: bool = True, charset: str = "UTF-8"
    ) -> UriBuilder:
        """Return *uri* unchanged when it is already a builder, else wrap it."""
        if isinstance(uri, UriBuilder):
            return uri
        return cls(uri, url_encoding_enabled, charset)

    def _copy(self, **changes: Any) -> UriBuilder:
        clone = object.__new__(UriBuilder)
        for slot in self.__slots__:
            object.__setattr__(clone, slot, changes.get(slot[1:], getattr(self, slot)))
        return clone

    def __setattr__(self, name: str, value: Any) -> None:
        if hasattr(self, "_charset"):
            raise AttributeError("UriBuilder is immutable; use the with_* methods")
        object.__setattr__(self, name, value)

    # ------------------------------------------------------------------ #
    # Accessors
    # ------------------------------------------------------------------ #

    @property
    def scheme(self) -> Optional[str]:
        return self._scheme

    @property
    def host(self) -> Optional[str]:
        return self._host

    @property
    def port(self) -> Optional[int]:
        return self._port

    @property
    def path(self) -> str:
        return self._path

    @property
    def raw_query(self) -> Optional[str]:
        return self._query

    @property
    def fragment(self) -> Optional[str]:
        return self._fragment

    @property
    def url_encoding_enabled(self) -> bool:
        return self._url_encoding_enabled

    @property
    def charset(self) -> str:
        return self._charset

    # ------------------------------------------------------------------ #
    # Authority / fragment edits
    # ------------------------------------------------------------------ #

    def with_scheme(self, scheme: str) -> UriBuilder:
        if not scheme or not _SCHEME_RE.match(scheme):
            raise UriSyntaxError("Illegal scheme", scheme or "")
        return self._copy(scheme=scheme)

    def with_host(self, host: str) -> UriBuilder:
        if not host or not _HOST_RE.match(host):
            raise UriSyntaxError("Illegal host", host or "")
        return self._copy(host=host)

    def with_port(self, port: Optional[int]) -> UriBuilder:
        """Set the port; ``None`` or ``-1`` removes it."""
        if port is None or port == -1:
            return self._copy(port=None)
        if not isinstance(port, int) or not 0 <= port <= 65535:
            raise UriSyntaxError("Illegal port", str(port))
        return self._copy(port=port)

    def with_fragment(self, fragment: Optional[str]) -> UriBuilder:
        if fragment is not None:
            _check_chars(fragment, "fragment")
            if "#" in fragment:
                raise UriSyntaxError("Illegal character in fragment", fragment)
        return self._copy(fragment=fragment)

    def with_path(self, path: Optional[str]) -> UriBuilder:
        """Resolve *path* as a URI reference against the current URI.

        The current query and fragment are carried over, so ``"../c"``
        walks up from the current path and ``"/x"`` replaces it, exactly
        as a browser would resolve a relative link.
        """
        reference = path or ""
        _check_chars(reference, "path")
        if "?" in reference or "#" in reference:
            raise UriSyntaxError("Path must not contain a query or fragment", reference)
        if self._query is not None:
            reference += "?" + self._query
        if self._fragment is not None:
            reference += "#" + self._fragment
        resolved = urljoin(str(self._copy(query=None, fragment=None)), reference)
        return UriBuilder(resolved, self._url_encoding_enabled, self._charset)

    # ------------------------------------------------------------------ #
    # Query parameters
    # ------------------------------------------------------------------ #

    def _format(self, pairs: Iterable[QueryPair]) -> list[str]:
        parts: list[str] = []
        for name, value in pairs:
            encoded = encode_component(name, self._charset) if self._url_encoding_enabled else name
            if value is NO_VALUE:
                parts.append(encoded)
                continue
            text = "" if value is None else str(value)
            if self._url_encoding_enabled:
                text = encode_component(text, self._charset)
            parts.append(f"{encoded}{_NAME_VALUE_SEPARATOR}{text}")
        return parts

    def _with_tokens(self, tokens: list[str]) -> UriBuilder:
        query = _PARAMETER_SEPARATOR.join(tokens) if tokens else None
        if query is not None:
            _check_chars(query, "query")
        return self._copy(query=query)

    def _tokens(self) -> list[str]:
        # already encoded; edits keep them verbatim and only encode new pairs
        return _parse_tokens(self._query)

    def query_pairs(self) -> list[QueryPair]:
        """The current query as ``(name, raw_value)`` pairs, in order."""
        return _parse_query(self._query)

    def set_query(self, params: Optional[Mapping[Any, Any]]) -> UriBuilder:
        """Replace the query string with *params*.

        Sequence values expand into repeated ``name=value`` pairs and
        :data:`NO_VALUE` produces a bare ``name``. An empty or ``None``
        mapping leaves the query untouched.
        """
        if not params:
            return self
        return self._with_tokens(self._format(_expand(params)))

    def add_query_params(self, params: Mapping[Any, Any]) -> UriBuilder:
        """Append *params* after the existing query parameters.

        Existing parameters are kept exactly as they appear in the query.
        """
        if not params:
            return self
        return self._with_tokens(self._tokens() + self._format(_expand(params)))

    def add_query_param(self, name: str, value: Any = NO_VALUE) -> UriBuilder:
        return self.add_query_params({name: value})

    def add_raw_query(self, query: str) -> UriBuilder:
        """Append already-encoded ``name=value`` tokens verbatim."""
        return self._with_tokens(self._tokens() + _parse_tokens(query))

    def remove_query_param(self, name: str) -> UriBuilder:
        """Remove every occurrence of *name* from the query.

        Raises:
            InvalidUsageError: If *name* is not present.
        """
        tokens = self._tokens()
        kept = [token for token in tokens if _token_name(token) != name]
        if len(kept) == len(tokens):
            raise InvalidUsageError(f"Param '{name}' not found")
        return self._with_tokens(kept)

    def has_query_param(self, name: str) -> bool:
        return any(pair_name == name for pair_name, _ in self.query_pairs())

    def get_query(self) -> dict[str, Any]:
        """Parse the raw query into a mapping without decoding.

        Repeated names are merged into a list that keeps their order. Flag
        parameters map to :data:`NO_VALUE`.
        """
        params: dict[str, Any] = {}
        for name, value in self.query_pairs():
            if name not in params:
                params[name] = value
            elif isinstance(params[name], list):
                params[name].append(value)
            else:
                params[name] = [params[name], value]
        return params

    # ------------------------------------------------------------------ #
    # Conversion
    # ------------------------------------------------------------------ #

    @property
    def netloc(self) -> str:
        netloc = self._host or ""
        if self._port is not None:
            netloc = f"{netloc}:{self._port}"
        if self._userinfo:
            netloc = f"{self._userinfo}@{netloc}"
        return netloc

    def to_string(self) -> str:
        text = urlunsplit((self._scheme or "", self.netloc, self._path, "", ""))
        if self._query is not None:
            text += "?" + self._query
        if self._fragment is not None:
            text += "#" + self._fragment
        return text

    def to_url(self) -> httpx.URL:
        return httpx.URL(self.to_string())

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"UriBuilder({self.to_string()!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, UriBuilder):
            return self.to_string() == other.to_string()
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.to_string())
