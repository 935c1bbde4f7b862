"""Shared test fixtures for restpipe.

Provides a mock-transport backed assembler factory, an echo handler that
reflects the received request back as JSON, and automatic reset of the
global output state. These fixtures are discovered by pytest and available
to all test modules without explicit imports.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from restpipe.client.assembler import RequestAssembler
from restpipe.models import PipelineConfig
from restpipe.output import reset_output

BASE_URL = "http://api.example.com/v1/"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time, which go stale once CliRunner restores the streams.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Mock transport helpers
# ---------------------------------------------------------------------------


def echo_handler(request: httpx.Request) -> httpx.Response:
    """Reflect method, URL, headers and body of *request* as a JSON document."""
    return httpx.Response(
        200,
        json={
            "method": request.method,
            "url": str(request.url),
            "headers": [[k, v] for k, v in request.headers.multi_items()],
            "body": request.content.decode("latin-1"),
        },
    )


def header_values(echoed: dict[str, Any], name: str) -> list[str]:
    """All values of header *name* in an echoed request."""
    return [v for k, v in echoed["headers"] if k.lower() == name.lower()]


@pytest.fixture
def make_assembler() -> Callable[..., RequestAssembler]:
    """Factory building assemblers that send through an httpx.MockTransport."""
    created: list[RequestAssembler] = []

    def _make(
        handler: Callable[[httpx.Request], httpx.Response] = echo_handler,
        uri: Any = BASE_URL,
        config: PipelineConfig | None = None,
        **kwargs: Any,
    ) -> RequestAssembler:
        assembler = RequestAssembler(
            uri, config=config, transport=httpx.MockTransport(handler), **kwargs
        )
        created.append(assembler)
        return assembler

    yield _make
    for assembler in created:
        assembler.close()


@pytest.fixture
def echo_assembler(make_assembler: Callable[..., RequestAssembler]) -> RequestAssembler:
    return make_assembler()


def json_body(echoed: dict[str, Any]) -> Any:
    return json.loads(echoed["body"])
