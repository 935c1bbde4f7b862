"""Preemptive HTTP Basic authentication.

:class:`BasicSigner` sends ``Authorization: Basic <base64(user:password)>``
per :rfc:`7617` on every request to the host and port it was scoped to;
requests to other authorities (e.g. after a redirect to another host)
are left untouched.
"""

from __future__ import annotations

import base64
from typing import Optional

from restpipe.auth.base import RequestSigner
from restpipe.client.request import PreparedRequest
from restpipe.uri import UriBuilder

_DEFAULT_PORTS = {"http": 80, "https": 443}


def _effective_port(scheme: Optional[str], port: Optional[int]) -> Optional[int]:
    if port is not None:
        return port
    return _DEFAULT_PORTS.get((scheme or "").lower())


class BasicSigner(RequestSigner):
    """Authenticate via HTTP Basic authentication.

    Args:
        username: User name; must not contain a colon.
        password: Password.
        host: Host the credentials are valid for.
        port: Port the credentials are valid for, ``None`` for the
            scheme's default.
        scheme: Scheme used to derive the default port.
    """

    def __init__(
        self,
        username: str,
        password: str,
        host: str,
        port: Optional[int] = None,
        scheme: Optional[str] = "http",
    ) -> None:
        if ":" in username:
            raise ValueError("Basic auth user name must not contain a colon")
        self._host = host.lower()
        self._port = _effective_port(scheme, port)
        raw = f"{username}:{password}"
        encoded = base64.b64encode(raw.encode("utf-8")).decode("ascii")
        self._header = f"Basic {encoded}"

    @classmethod
    def for_uri(cls, username: str, password: str, uri: UriBuilder) -> BasicSigner:
        return cls(username, password, uri.host or "", uri.port, uri.scheme)

    @property
    def kind(self) -> str:
        return "basic"

    def applies_to(self, uri: UriBuilder) -> bool:
        if (uri.host or "").lower() != self._host:
            return False
        return _effective_port(uri.scheme, uri.port) == self._port

    def sign(self, request: PreparedRequest) -> None:
        if self.applies_to(request.uri):
            request.set_header("Authorization", self._header)
