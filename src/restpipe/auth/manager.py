"""Auth manager -- installs and replaces request signers on an assembler.

The :class:`AuthManager` is the configuration surface of the signing
subsystem. Each method builds a :class:`~restpipe.auth.base.RequestSigner`
and installs it into the owning assembler's interceptor chain, after
removing every signer of the same kind. Calling :meth:`AuthManager.oauth`
twice therefore leaves exactly one OAuth signer, built from the second set
of credentials. Passing ``None`` credentials only removes the existing
signer.

Shared-secret and bearer signing share the ``"oauth"`` kind, so installing
one replaces the other.

See Also:
    :class:`~restpipe.client.assembler.RequestAssembler` -- exposes an
    :class:`AuthManager` as its ``auth`` attribute.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from restpipe.auth.base import RequestSigner
from restpipe.auth.basic import BasicSigner
from restpipe.auth.bearer import BearerSigner
from restpipe.auth.oauth1 import OAuth1Signer
from restpipe.exceptions import ConfigStateError
from restpipe.models import OAuthSignature
from restpipe.uri import UriBuilder

if TYPE_CHECKING:
    from restpipe.client.assembler import RequestAssembler

logger = logging.getLogger(__name__)


class AuthManager:
    """Installs signers into a :class:`RequestAssembler`.

    Example::

        assembler = RequestAssembler("https://api.example.com")
        assembler.auth.oauth("key", "secret", "token", "token-secret")
        assembler.auth.oauth2("bearer-token")  # replaces the OAuth 1 signer
    """

    def __init__(self, assembler: RequestAssembler) -> None:
        self._assembler = assembler

    def _require_uri(self) -> UriBuilder:
        uri = self._assembler.default_uri
        if uri is None:
            raise ConfigStateError(
                "Cannot install a request signer: no default URI is set on the assembler"
            )
        return uri

    def _remove(self, kind: str) -> int:
        return self._assembler.interceptors.remove_if(
            lambda interceptor: isinstance(interceptor, RequestSigner) and interceptor.kind == kind
        )

    def install(self, signer: RequestSigner) -> None:
        """Install *signer*, replacing any signer of the same kind."""
        self._require_uri()
        removed = self._remove(signer.kind)
        logger.debug("Installing %s signer (replaced %d)", signer.kind, removed)
        self._assembler.interceptors.add(signer)

    def signers(self) -> list[RequestSigner]:
        return [i for i in self._assembler.interceptors if isinstance(i, RequestSigner)]

    def basic(self, username: Optional[str], password: Optional[str] = None) -> None:
        """Preemptive Basic auth scoped to the default URI's host and port."""
        uri = self._require_uri()
        if username is None:
            self._remove("basic")
            return
        self.install(BasicSigner.for_uri(username, password or "", uri))

    def oauth(
        self,
        consumer_key: Optional[str],
        consumer_secret: Optional[str] = None,
        access_token: Optional[str] = None,
        secret_token: Optional[str] = None,
        signature: OAuthSignature = OAuthSignature.HEADER,
    ) -> None:
        """Shared-secret (OAuth 1.0a) signing."""
        self._require_uri()
        if consumer_key is None:
            self._remove("oauth")
            return
        signature_method = self._assembler.config.oauth.signature_method
        self.install(
            OAuth1Signer(
                consumer_key,
                consumer_secret or "",
                access_token or "",
                secret_token or "",
                signature=signature,
                signature_method=signature_method,
            )
        )

    def oauth2(
        self, access_token: Optional[str], signature: OAuthSignature = OAuthSignature.HEADER
    ) -> None:
        """Bearer-token signing."""
        self._require_uri()
        if access_token is None:
            self._remove("oauth")
            return
        self.install(BearerSigner(access_token, signature))

    def clear(self) -> None:
        """Remove every installed signer."""
        self._assembler.interceptors.remove_if(lambda i: isinstance(i, RequestSigner))
