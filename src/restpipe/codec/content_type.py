"""Content-type families, normalized lookup keys and charset helpers.

A *content-type family* is a canonical media type together with every header
string considered synonymous with it. ``application/json``,
``text/javascript`` and ``application/vnd.api+json`` all belong to
:attr:`ContentType.JSON`, so they share one encoder and one parser.

:class:`ContentTypeKey` keeps the original header string for emission while
comparing on the lowercased, parameter-free form.
"""

from __future__ import annotations

import enum
from typing import Optional

_PLUS_XML = "+xml"
_PLUS_JSON = "+json"
_PLUS_HTML = "+html"


def strip_parameters(content_type: str) -> str:
    """Return *content_type* without any ``;param=value`` suffix, trimmed."""
    return content_type.split(";", 1)[0].strip()


def charset_of(content_type: Optional[str]) -> Optional[str]:
    """Extract the ``charset`` parameter from a content-type string.

    Returns:
        The charset with surrounding quotes removed, or ``None`` when the
        content type declares none.
    """
    if not content_type:
        return None
    for part in content_type.split(";")[1:]:
        name, _, value = part.partition("=")
        if name.strip().lower() == "charset":
            value = value.strip().strip('"').strip("'")
            return value or None
    return None


class ContentType(str, enum.Enum):
    """Enumeration of the known content-type families.

    The enum value is the canonical header string. :attr:`aliases` lists
    every string that belongs to the family, canonical string first.
    """

    ANY = "*/*"
    TEXT = "text/plain"
    JSON = "application/json"
    XML = "application/xml"
    HTML = "text/html"
    URLENC = "application/x-www-form-urlencoded"
    BINARY = "application/octet-stream"

    @property
    def aliases(self) -> tuple[str, ...]:
        return _ALIASES[self]

    @property
    def accept_header(self) -> str:
        """All aliases joined for use as an ``Accept`` header value."""
        return ", ".join(self.aliases)

    def with_charset(self, charset: str) -> str:
        """Return the canonical string with a ``charset`` parameter appended."""
        if not charset or not charset.strip():
            raise ValueError("charset cannot be empty")
        return f"{self.value}; charset={charset.strip()}"

    def matches(self, content_type: Optional[str]) -> bool:
        """Whether *content_type* is literally one of this family's aliases."""
        if not content_type or not content_type.strip():
            return False
        candidate = content_type.strip().lower()
        return any(alias == candidate for alias in self.aliases)

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_content_type(cls, content_type: Optional[str]) -> Optional[ContentType]:
        """Find the family *content_type* belongs to.

        Parameters are ignored and the comparison is case-insensitive.
        Besides exact alias membership, the ``+xml``, ``+json`` and
        ``+html`` structured-syntax suffixes select their families.

        Returns:
            The matching family or ``None``.
        """
        if content_type is None:
            return None
        bare = strip_parameters(content_type.lower())
        if bare in _ALIASES[cls.XML] or bare.endswith(_PLUS_XML):
            return cls.XML
        if bare in _ALIASES[cls.JSON] or bare.endswith(_PLUS_JSON):
            return cls.JSON
        if bare in _ALIASES[cls.TEXT]:
            return cls.TEXT
        if bare in _ALIASES[cls.HTML] or bare.endswith(_PLUS_HTML):
            return cls.HTML
        if bare in _ALIASES[cls.URLENC]:
            return cls.URLENC
        if bare in _ALIASES[cls.BINARY]:
            return cls.BINARY
        if bare in _ALIASES[cls.ANY]:
            return cls.ANY
        return None


_ALIASES: dict[ContentType, tuple[str, ...]] = {
    ContentType.ANY: ("*/*",),
    ContentType.TEXT: ("text/plain",),
    ContentType.JSON: (
        "application/json",
        "application/javascript",
        "text/javascript",
        "text/json",
    ),
    ContentType.XML: ("application/xml", "text/xml", "application/xhtml+xml"),
    ContentType.HTML: ("text/html",),
    ContentType.URLENC: ("application/x-www-form-urlencoded",),
    ContentType.BINARY: ("application/octet-stream",),
}


def is_textual(content_type: Optional[str]) -> bool:
    """Heuristic for unregistered types: ``text/*`` or a type ending in ``+text``."""
    if not content_type:
        return False
    bare = strip_parameters(content_type).lower()
    return bare.startswith("text/") or bare.endswith("+text")


class ContentTypeKey:
    """Normalized content-type used as a registry key.

    Two keys are equal iff their parameter-free forms match
    case-insensitively. :attr:`raw` keeps the string as supplied so it can be
    emitted in a header unchanged.

    Args:
        content_type: A content-type string or :class:`ContentType`.
    """

    __slots__ = ("raw", "normalized")

    def __init__(self, content_type: str | ContentType) -> None:
        raw = content_type.value if isinstance(content_type, ContentType) else str(content_type)
        self.raw = raw
        self.normalized = strip_parameters(raw).lower()

    @property
    def charset(self) -> Optional[str]:
        return charset_of(self.raw)

    @property
    def family(self) -> Optional[ContentType]:
        return ContentType.from_content_type(self.normalized)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ContentTypeKey):
            return self.normalized == other.normalized
        if isinstance(other, str):
            return self.normalized == strip_parameters(other).lower()
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.normalized)

    def __str__(self) -> str:
        return self.raw

    def __repr__(self) -> str:
        return f"ContentTypeKey({self.raw!r})"
