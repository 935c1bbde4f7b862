"""Request signing for restpipe.

This package provides the signing strategies applied to a fully assembled
request just before it is sent:

- :class:`RequestSigner` -- abstract base class for signing strategies.
- :class:`BasicSigner` -- preemptive HTTP Basic, scoped to one host/port.
- :class:`OAuth1Signer` -- shared-secret (OAuth 1.0a) signing.
- :class:`BearerSigner` -- bearer-token (OAuth 2) signing.
- :class:`AuthManager` -- installs signers on an assembler, replacing any
  signer of the same kind.

Typical usage::

    assembler = RequestAssembler("https://api.example.com")
    assembler.auth.oauth("key", "secret", "token", "token-secret")
"""

from restpipe.auth.base import RequestSigner
from restpipe.auth.basic import BasicSigner
from restpipe.auth.bearer import BearerSigner
from restpipe.auth.manager import AuthManager
from restpipe.auth.oauth1 import OAuth1Signer

__all__ = [
    "AuthManager",
    "BasicSigner",
    "BearerSigner",
    "OAuth1Signer",
    "RequestSigner",
]
