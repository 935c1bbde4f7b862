"""Abstract base class for request signers.

A :class:`RequestSigner` is an
:class:`~restpipe.client.interceptors.Interceptor` that adds or replaces
authentication material on a fully assembled request, right before it is
sent. Signing always works on the request *as it will be sent*: the final
URI and the already-encoded entity, never the caller's original input.

Signers are grouped by :attr:`~RequestSigner.kind`. Installing a signer
through :class:`~restpipe.auth.manager.AuthManager` first removes every
installed signer of the same kind, so repeated configuration calls replace
rather than stack.

To implement a new strategy, subclass :class:`RequestSigner`, set
:attr:`kind` and implement :meth:`sign`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from restpipe.client.interceptors import Interceptor
from restpipe.client.request import PreparedRequest


class RequestSigner(Interceptor, ABC):
    """Base class for all signing strategies."""

    @property
    @abstractmethod
    def kind(self) -> str:
        """Return the signer kind; one signer per kind is installed at a time.

        Returns:
            A lowercase string such as ``"basic"`` or ``"oauth"``.
        """
        ...

    @abstractmethod
    def sign(self, request: PreparedRequest) -> None:
        """Add authentication material to *request* in place."""
        ...

    @property
    def name(self) -> str:
        return f"signer:{self.kind}"

    def process_request(self, request: PreparedRequest) -> None:
        self.sign(request)
