"""Interceptor base class and the ordered chain that runs them.

This module provides two core components:

* :class:`Interceptor` -- base class for anything that decorates an
  outgoing :class:`~restpipe.client.request.PreparedRequest` or an incoming
  :class:`~restpipe.client.response.ResponseDecorator`. Both hooks default
  to no-ops so subclasses only override what they need.
* :class:`InterceptorChain` -- runs request hooks and response hooks across
  all installed interceptors in installation order.

Compression handling and request signers are both interceptors. Installing
one of them again first removes the existing instance of the same kind via
:meth:`InterceptorChain.remove_if`, so repeated configuration never stacks.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from restpipe.client.request import PreparedRequest
    from restpipe.client.response import ResponseDecorator

logger = logging.getLogger(__name__)


class Interceptor:
    """Base class for request and response interceptors."""

    @property
    def name(self) -> str:
        return type(self).__name__

    def process_request(self, request: PreparedRequest) -> None:
        """Called with the fully assembled request just before it is sent."""

    def process_response(self, response: ResponseDecorator) -> None:
        """Called with the raw response before it is parsed and dispatched."""


class InterceptorChain:
    """Ordered collection of interceptors.

    Request hooks and response hooks both run in installation order. The
    chain is configured during setup and read by every request, so
    modifications while requests are in flight need external locking.
    """

    def __init__(self, interceptors: list[Interceptor] | None = None) -> None:
        self._interceptors = list(interceptors or [])

    def add(self, interceptor: Interceptor) -> None:
        logger.debug("Installing interceptor %s", interceptor.name)
        self._interceptors.append(interceptor)

    def remove_if(self, predicate: Callable[[Interceptor], bool]) -> int:
        """Remove every interceptor matching *predicate*.

        Returns:
            The number of interceptors removed.
        """
        kept = [i for i in self._interceptors if not predicate(i)]
        removed = len(self._interceptors) - len(kept)
        self._interceptors = kept
        return removed

    def run_request(self, request: PreparedRequest) -> PreparedRequest:
        for interceptor in self._interceptors:
            interceptor.process_request(request)
        return request

    def run_response(self, response: ResponseDecorator) -> ResponseDecorator:
        for interceptor in self._interceptors:
            interceptor.process_response(response)
        return response

    def __iter__(self) -> Iterator[Interceptor]:
        return iter(list(self._interceptors))

    def __len__(self) -> int:
        return len(self._interceptors)
