"""Tests for the ``restpipe`` command line."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import httpx
import pytest
from typer.testing import CliRunner

from restpipe import __version__
from restpipe import app as app_module
from restpipe.app import app
from restpipe.client import assembler as assembler_module
from restpipe.client.transport import HttpxTransport
from restpipe.models import TransportConfig

runner = CliRunner()


@pytest.fixture
def sent(monkeypatch: pytest.MonkeyPatch) -> list[httpx.Request]:
    """Route CLI requests through a MockTransport and record them."""
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.url.path.endswith("/missing"):
            return httpx.Response(404, text="no such thing")
        if request.url.path.endswith("/secret"):
            return httpx.Response(401, text="denied")
        return httpx.Response(200, json={"method": request.method, "ok": True})

    def _transport(config: TransportConfig, transport=None) -> HttpxTransport:
        return HttpxTransport(config, httpx.MockTransport(handler))

    monkeypatch.setattr(assembler_module, "HttpxTransport", _transport)
    return requests


class TestGlobalOptions:
    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_sigint_handler_installed(self, monkeypatch: pytest.MonkeyPatch) -> None:
        installed: dict[int, Any] = {}

        def _record(signum: int, handler: Any) -> None:
            installed[signum] = handler

        monkeypatch.setattr(app_module.signal, "signal", _record)
        app_module._setup_signal_handlers()
        assert list(installed) == [app_module.signal.SIGINT]
        with pytest.raises(SystemExit) as exc_info:
            installed[app_module.signal.SIGINT](app_module.signal.SIGINT, None)
        assert exc_info.value.code == 130

    def test_help_lists_send(self) -> None:
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "send" in result.stdout


class TestSend:
    def test_get_json(self, sent: list[httpx.Request]) -> None:
        result = runner.invoke(
            app, ["--json", "--quiet", "send", "GET", "http://api.example.com/v1/"]
        )
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == {"method": "GET", "ok": True}

    def test_path_query_and_headers(self, sent: list[httpx.Request]) -> None:
        result = runner.invoke(
            app,
            [
                "--quiet",
                "send",
                "GET",
                "http://api.example.com/v1/",
                "--path",
                "items",
                "--query",
                "q=a b",
                "--query",
                "q=c",
                "--query",
                "verbose",
                "-H",
                "X-Trace: 1",
            ],
        )
        assert result.exit_code == 0, result.output
        request = sent[0]
        assert str(request.url) == "http://api.example.com/v1/items?q=a%20b&q=c&verbose"
        assert request.headers["x-trace"] == "1"

    def test_post_body_with_content_type(self, sent: list[httpx.Request]) -> None:
        result = runner.invoke(
            app,
            [
                "send",
                "POST",
                "http://api.example.com/",
                "--request-content-type",
                "application/json",
                "--body",
                '{"name":"Ann"}',
            ],
        )
        assert result.exit_code == 0, result.output
        assert sent[0].content == b'{"name":"Ann"}'
        assert sent[0].headers["content-type"] == "application/json; charset=UTF-8"

    def test_body_file(self, sent: list[httpx.Request], tmp_path: Path) -> None:
        path = tmp_path / "payload.bin"
        path.write_bytes(b"\x00\x01")
        result = runner.invoke(
            app,
            [
                "send",
                "PUT",
                "http://api.example.com/",
                "--request-content-type",
                "application/octet-stream",
                "--body-file",
                str(path),
            ],
        )
        assert result.exit_code == 0, result.output
        assert sent[0].content == b"\x00\x01"

    def test_body_and_body_file_conflict(self, sent: list[httpx.Request], tmp_path: Path) -> None:
        path = tmp_path / "x"
        path.write_text("x")
        result = runner.invoke(
            app,
            ["send", "PUT", "http://h/", "--body", "x", "--body-file", str(path)],
        )
        assert result.exit_code == 2
        assert sent == []

    def test_bearer_from_env(
        self, sent: list[httpx.Request], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("RESTPIPE_TEST_BEARER", "tok")
        result = runner.invoke(
            app, ["send", "GET", "http://h/", "--bearer", "env:RESTPIPE_TEST_BEARER"]
        )
        assert result.exit_code == 0, result.output
        assert sent[0].headers["authorization"] == "Bearer tok"

    def test_oauth1_in_query(self, sent: list[httpx.Request]) -> None:
        result = runner.invoke(
            app, ["send", "GET", "http://h/", "--oauth1", "ck:cs:at:ts", "--sign-in-query"]
        )
        assert result.exit_code == 0, result.output
        assert "oauth_consumer_key=ck" in str(sent[0].url)
        assert "authorization" not in sent[0].headers

    def test_oauth1_malformed(self, sent: list[httpx.Request]) -> None:
        result = runner.invoke(app, ["send", "GET", "http://h/", "--oauth1", "only:two"])
        assert result.exit_code == 2
        assert sent == []

    def test_basic(self, sent: list[httpx.Request]) -> None:
        result = runner.invoke(app, ["send", "GET", "http://h/", "--basic", "ann:pw"])
        assert result.exit_code == 0, result.output
        assert sent[0].headers["authorization"].startswith("Basic ")

    def test_encoding_option(self, sent: list[httpx.Request]) -> None:
        result = runner.invoke(app, ["send", "GET", "http://h/", "--encoding", "gzip"])
        assert result.exit_code == 0, result.output
        assert sent[0].headers["accept-encoding"] == "gzip"

    def test_not_found_exit_code(self, sent: list[httpx.Request]) -> None:
        result = runner.invoke(app, ["send", "GET", "http://h/missing"])
        assert result.exit_code == 4
        assert "no such thing" in result.output

    def test_unauthorized_exit_code(self, sent: list[httpx.Request]) -> None:
        result = runner.invoke(app, ["send", "GET", "http://h/secret"])
        assert result.exit_code == 3

    def test_body_on_get_is_sent(self, sent: list[httpx.Request]) -> None:
        result = runner.invoke(app, ["send", "GET", "http://h/", "--body", "x"])
        assert result.exit_code == 0, result.output
        assert sent[0].content == b"x"

    def test_body_outside_charset(self, sent: list[httpx.Request]) -> None:
        result = runner.invoke(
            app,
            ["send", "PUT", "http://h/", "--request-content-type", "text/plain", "--body", "名"],
        )
        assert result.exit_code == 2
        assert sent == []

    def test_bad_header(self, sent: list[httpx.Request]) -> None:
        result = runner.invoke(app, ["send", "GET", "http://h/", "-H", "no-colon"])
        assert result.exit_code == 2

    def test_bad_uri(self, sent: list[httpx.Request]) -> None:
        result = runner.invoke(app, ["send", "GET", "http://h/a b"])
        assert result.exit_code == 2

    def test_config_file(self, sent: list[httpx.Request], tmp_path: Path) -> None:
        path = tmp_path / "restpipe.json"
        path.write_text(json.dumps({"url_encoding_enabled": False}))
        result = runner.invoke(
            app,
            ["send", "GET", "http://h/", "--config", str(path), "--query", "q=a%2Fb"],
        )
        assert result.exit_code == 0, result.output
        assert str(sent[0].url) == "http://h/?q=a%2Fb"

    def test_missing_config_file(self, sent: list[httpx.Request], tmp_path: Path) -> None:
        result = runner.invoke(
            app, ["send", "GET", "http://h/", "--config", str(tmp_path / "nope.json")]
        )
        assert result.exit_code == 2
