"""Tests for the output formatting system.

Covers:
- OutputFormat resolution (auto -> rich/plain based on TTY)
- NO_COLOR / TERM=dumb color disabling
- stdout vs stderr discipline
- Quiet and verbose modes
- JSON and plain rendering of parsed bodies (dicts, text, bytes, XML)
- Global instance management
"""

from __future__ import annotations

import json
import xml.etree.ElementTree as ET

import pytest

from restpipe import output as output_module
from restpipe.output import (
    OutputFormat,
    OutputManager,
    _should_disable_color,
    get_output,
    reset_output,
    set_output,
)


@pytest.fixture(autouse=True)
def _reset_global_output():
    """Ensure the global output instance is reset between tests."""
    reset_output()
    yield
    reset_output()


@pytest.fixture()
def non_tty(monkeypatch):
    """Patch stdout.isatty() to return False."""
    monkeypatch.setattr("restpipe.output._is_tty", lambda: False)


@pytest.fixture()
def tty(monkeypatch):
    """Patch stdout.isatty() to return True."""
    monkeypatch.setattr("restpipe.output._is_tty", lambda: True)


class TestOutputFormatResolution:
    def test_auto_resolves_to_plain_when_not_tty(self, non_tty):
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.PLAIN

    def test_auto_resolves_to_rich_when_tty(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.RICH

    def test_no_color_flag_forces_plain(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        mgr = OutputManager(format=OutputFormat.AUTO, no_color=True)
        assert mgr.format == OutputFormat.PLAIN

    def test_explicit_json_stays_json(self, non_tty):
        assert OutputManager(format=OutputFormat.JSON).format == OutputFormat.JSON

    def test_quiet_and_verbose_flags(self, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, quiet=True, verbose=True)
        assert mgr.is_quiet
        assert mgr.is_verbose
        assert not OutputManager(format=OutputFormat.PLAIN).is_quiet


class TestColorDisabling:
    def test_no_color_env_any_value(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color() is True

    def test_term_dumb_disables_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color() is True

    def test_normal_term_keeps_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        assert _should_disable_color() is False


class TestStdoutStderrDiscipline:
    def test_print_data_goes_to_stdout(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).print_data("hello world")
        captured = capfd.readouterr()
        assert "hello world" in captured.out
        assert captured.err == ""

    def test_diagnostics_go_to_stderr(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, verbose=True)
        mgr.info("some info")
        mgr.warning("be careful")
        mgr.error("something broke")
        mgr.debug("debug info")
        captured = capfd.readouterr()
        assert captured.out == ""
        for text in ("some info", "Warning: be careful", "Error: something broke", "debug info"):
            assert text in captured.err

    def test_quiet_suppresses_info_only(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        mgr.info("hidden")
        mgr.error("shown")
        captured = capfd.readouterr()
        assert "hidden" not in captured.err
        assert "shown" in captured.err

    def test_debug_needs_verbose(self, capfd, non_tty):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).debug("hidden")
        assert capfd.readouterr().err == ""


class TestFormatResponse:
    def test_json_dict(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON, no_color=True).format_response({"a": 1})
        assert json.loads(capfd.readouterr().out) == {"a": 1}

    def test_json_from_text_body(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.JSON, no_color=True)
        mgr.format_response(b'{"b": [1, 2]}')
        assert json.loads(capfd.readouterr().out) == {"b": [1, 2]}

    def test_json_wraps_plain_text(self, capfd, non_tty):
        OutputManager(format=OutputFormat.JSON, no_color=True).format_response("hi")
        assert json.loads(capfd.readouterr().out) == "hi"

    def test_plain_dict_and_list(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.format_response({"a": 1})
        mgr.format_response([{"x": 1, "y": 2}, "z"])
        assert capfd.readouterr().out == "a\t1\n1\t2\nz\n"

    def test_plain_xml_element(self, capfd, non_tty):
        root = ET.Element("a")
        root.text = "1"
        OutputManager(format=OutputFormat.PLAIN, no_color=True).format_response(root)
        assert capfd.readouterr().out == "<a>1</a>\n"

    def test_rich_text_body(self, capfd, non_tty):
        mgr = OutputManager(format=OutputFormat.RICH, no_color=True)
        mgr.format_response("plain words", "text/plain")
        assert "plain words" in capfd.readouterr().out


class TestGlobalInstance:
    def test_get_output_creates_default(self):
        assert isinstance(get_output(), OutputManager)
        assert get_output() is get_output()

    def test_set_and_reset(self):
        mgr = OutputManager(format=OutputFormat.JSON)
        set_output(mgr)
        assert get_output() is mgr
        reset_output()
        assert get_output() is not mgr

    def test_convenience_error(self, capfd, non_tty):
        set_output(OutputManager(format=OutputFormat.PLAIN, no_color=True))
        output_module.error("bad")
        assert "Error: bad" in capfd.readouterr().err
