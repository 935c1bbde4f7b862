"""Shared-secret (OAuth 1.0a) request signing backed by :mod:`oauthlib`.

The signature base string is computed over the verb, the final request URI
and, when the assembled entity is form-encoded, the decoded form parameters
taken from the entity itself. Bodies of any other content type do not take
part in the signature.

The ``oauth_*`` parameters are placed in the ``Authorization`` header or
appended to the query string, depending on
:class:`~restpipe.models.OAuthSignature`. In query mode only the
``oauth_*`` tokens are appended; the rest of the query is left as built.
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urlsplit

from oauthlib import oauth1

from restpipe.auth.base import RequestSigner
from restpipe.client.request import GET, HEAD, PreparedRequest
from restpipe.codec.content_type import ContentType, strip_parameters
from restpipe.models import ISO_8859_1, OAuthSignature

logger = logging.getLogger(__name__)

_SIGNATURE_TYPES = {
    OAuthSignature.HEADER: oauth1.SIGNATURE_TYPE_AUTH_HEADER,
    OAuthSignature.QUERY_STRING: oauth1.SIGNATURE_TYPE_QUERY,
}


def _oauth_tokens(signed_uri: str) -> str:
    """Return only the ``oauth_*`` tokens oauthlib appended to *signed_uri*."""
    query = urlsplit(signed_uri).query
    return "&".join(token for token in query.split("&") if token.startswith("oauth_"))


def form_body(request: PreparedRequest) -> Optional[str]:
    """Return the decoded form body of *request*, or ``None`` if it has none.

    Only materialized entities declared as
    ``application/x-www-form-urlencoded`` qualify.
    """
    entity = request.entity
    if entity is None or not entity.is_repeatable or not entity.content_type:
        return None
    if not ContentType.URLENC.matches(strip_parameters(entity.content_type)):
        return None
    return entity.body_bytes().decode(entity.charset or ISO_8859_1)


class OAuth1Signer(RequestSigner):
    """Sign requests with consumer and access-token shared secrets.

    Args:
        consumer_key: Consumer (client) key.
        consumer_secret: Consumer (client) secret.
        access_token: Access token (resource owner key).
        secret_token: Access token secret (resource owner secret).
        signature: Header or query-string placement.
        signature_method: ``HMAC-SHA1``, ``HMAC-SHA256`` or ``PLAINTEXT``.

    Example::

        signer = OAuth1Signer("key", "secret", "token", "token-secret")
        signer.sign(prepared)
        prepared.headers["Authorization"]  # 'OAuth oauth_nonce="...", ...'
    """

    def __init__(
        self,
        consumer_key: str,
        consumer_secret: str,
        access_token: str,
        secret_token: str,
        signature: OAuthSignature = OAuthSignature.HEADER,
        signature_method: str = oauth1.SIGNATURE_HMAC_SHA1,
    ) -> None:
        self.consumer_key = consumer_key
        self._consumer_secret = consumer_secret
        self._access_token = access_token
        self._secret_token = secret_token
        self.signature = signature
        self.signature_method = signature_method

    @property
    def kind(self) -> str:
        return "oauth"

    def _client(self) -> oauth1.Client:
        return oauth1.Client(
            self.consumer_key,
            client_secret=self._consumer_secret,
            resource_owner_key=self._access_token,
            resource_owner_secret=self._secret_token,
            signature_method=self.signature_method,
            signature_type=_SIGNATURE_TYPES[self.signature],
        )

    def sign(self, request: PreparedRequest) -> None:
        body = form_body(request)
        headers: dict[str, str] = {}
        if body and request.method not in (GET, HEAD):
            headers["Content-Type"] = ContentType.URLENC.value
        else:
            body = None
        logger.debug("Signing %s %s with OAuth 1.0a", request.method, request.url)
        signed_uri, signed_headers, _ = self._client().sign(
            request.url, http_method=request.method, body=body, headers=headers
        )
        if self.signature is OAuthSignature.QUERY_STRING:
            request.uri = request.uri.add_raw_query(_oauth_tokens(signed_uri))
        else:
            request.set_header("Authorization", signed_headers["Authorization"])
