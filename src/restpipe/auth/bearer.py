"""Bearer token (OAuth 2) signing.

:class:`BearerSigner` either sends ``Authorization: Bearer <token>`` or
appends the token as an ``access_token`` query parameter (:rfc:`6750`).
There is no canonicalization step and no token exchange; the token must
already be available.
"""

from __future__ import annotations

from restpipe.auth.base import RequestSigner
from restpipe.client.request import PreparedRequest
from restpipe.models import OAuthSignature

ACCESS_TOKEN_PARAM = "access_token"


class BearerSigner(RequestSigner):
    """Authenticate via a bearer token.

    Args:
        token: The access token.
        signature: Header or query-string placement.
    """

    def __init__(self, token: str, signature: OAuthSignature = OAuthSignature.HEADER) -> None:
        if not token:
            raise ValueError("Bearer signing requires a non-empty token")
        self._token = token
        self._signature = signature

    @property
    def kind(self) -> str:
        return "oauth"

    def sign(self, request: PreparedRequest) -> None:
        if self._signature is OAuthSignature.QUERY_STRING:
            uri = request.uri
            if uri.has_query_param(ACCESS_TOKEN_PARAM):
                uri = uri.remove_query_param(ACCESS_TOKEN_PARAM)
            request.uri = uri.add_query_param(ACCESS_TOKEN_PARAM, self._token)
        else:
            request.set_header("Authorization", f"Bearer {self._token}")
