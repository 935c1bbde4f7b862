"""Tests for status buckets, handler resolution and the default handlers."""

from __future__ import annotations

import io

import httpx
import pytest

from restpipe.client.dispatch import (
    Status,
    StatusHandlerTable,
    default_failure_handler,
    default_success_handler,
    normalize_key,
)
from restpipe.client.response import ResponseDecorator
from restpipe.exceptions import HttpResponseError, InvalidUsageError


def _make_response(status: int, data: object = None, reason: str = "") -> ResponseDecorator:
    response = ResponseDecorator(status, reason, httpx.Headers())
    response.data = data
    return response


class TestStatus:
    @pytest.mark.parametrize("code", [100, 200, 302, 399])
    def test_success_range(self, code: int) -> None:
        assert Status.find(code) is Status.SUCCESS
        assert Status.SUCCESS.matches(code)
        assert not Status.FAILURE.matches(code)

    @pytest.mark.parametrize("code", [400, 404, 500, 999])
    def test_failure_range(self, code: int) -> None:
        assert Status.find(code) is Status.FAILURE

    @pytest.mark.parametrize("code", [99, 1000, -1])
    def test_out_of_range(self, code: int) -> None:
        with pytest.raises(InvalidUsageError):
            Status.find(code)


class TestNormalizeKey:
    def test_forms(self) -> None:
        assert normalize_key(404) == "404"
        assert normalize_key(" 404 ") == "404"
        assert normalize_key("SUCCESS") == "success"
        assert normalize_key(Status.FAILURE) == "failure"

    @pytest.mark.parametrize("key", ["teapot", True, 3.5, 1000])
    def test_invalid(self, key: object) -> None:
        with pytest.raises(InvalidUsageError):
            normalize_key(key)  # type: ignore[arg-type]


class TestResolution:
    def test_literal_code_beats_bucket(self) -> None:
        table = StatusHandlerTable()
        table[404] = lambda r: "missing"
        table["failure"] = lambda r: "failed"
        assert table.dispatch(_make_response(404)) == "missing"
        assert table.dispatch(_make_response(500)) == "failed"

    def test_bucket_then_default(self) -> None:
        table = StatusHandlerTable({Status.SUCCESS: lambda r: "ok"})
        assert table.dispatch(_make_response(204)) == "ok"
        with pytest.raises(HttpResponseError):
            table.dispatch(_make_response(418))

    def test_default_success(self) -> None:
        assert StatusHandlerTable().resolve(200) is default_success_handler
        assert StatusHandlerTable().resolve(503) is default_failure_handler

    def test_out_of_range_dispatch(self) -> None:
        with pytest.raises(InvalidUsageError):
            StatusHandlerTable().resolve(1001)

    def test_merged_does_not_mutate(self) -> None:
        base = StatusHandlerTable({200: lambda r: "base"})
        merged = base.merged({200: lambda r: "override", "failure": lambda r: None})
        assert base.dispatch(_make_response(200)) == "base"
        assert merged.dispatch(_make_response(200)) == "override"
        assert "failure" not in base
        assert len(merged) == 2

    def test_mapping_protocol(self) -> None:
        table = StatusHandlerTable()
        table["201"] = default_success_handler
        assert 201 in table
        assert table[201] is default_success_handler
        assert list(table) == ["201"]
        del table[201]
        assert table.get(201) is None
        assert "bogus" not in table


class TestDefaultHandlers:
    def test_success_buffers_stream(self) -> None:
        response = _make_response(200, io.BytesIO(b"payload"))
        assert default_success_handler(response) == b"payload"
        assert response.data == b"payload"

    def test_success_passes_parsed_value(self) -> None:
        assert default_success_handler(_make_response(200, {"a": 1})) == {"a": 1}

    def test_failure_raises_with_buffered_body(self) -> None:
        response = _make_response(404, io.BytesIO(b"not here"), "Not Found")
        with pytest.raises(HttpResponseError) as exc_info:
            default_failure_handler(response)
        error = exc_info.value
        assert error.status_code == 404
        assert error.status_line == "HTTP/1.1 404 Not Found"
        assert error.body == b"not here"
        assert error.exit_code == 4

    @pytest.mark.parametrize("code, exit_code", [(401, 3), (403, 3), (500, 5), (422, 4)])
    def test_exit_codes(self, code: int, exit_code: int) -> None:
        with pytest.raises(HttpResponseError) as exc_info:
            default_failure_handler(_make_response(code))
        assert exc_info.value.exit_code == exit_code
