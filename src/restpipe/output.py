"""Output formatting for the CLI with strict stdout/stderr discipline.

* **stdout** -- the response body only, so it can be piped.
* **stderr** -- status line, warnings, errors and debug messages.
* **TTY detection** -- Rich formatting when stdout is an interactive
  terminal, plain text when piped to another process.
* **Colour control** -- respects ``NO_COLOR``, ``TERM=dumb``, and the
  ``--no-color`` CLI flag.

:class:`OutputManager` holds the format preferences and consoles; it is
created once in :func:`restpipe.app.main_callback` and installed via
:func:`set_output`.
"""

from __future__ import annotations

import json
import os
import sys
import xml.etree.ElementTree as ET
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.syntax import Syntax

from restpipe.codec.content_type import ContentType


class OutputFormat(str, Enum):
    """Enumeration of supported output formats.

    ``AUTO`` resolves to ``RICH`` when stdout is an interactive TTY and colour
    is not disabled, or to ``PLAIN`` otherwise.
    """

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


def _syntax_lexer(content_type: Optional[str]) -> Optional[str]:
    family = ContentType.from_content_type(content_type)
    if family is ContentType.JSON:
        return "json"
    if family is ContentType.XML:
        return "xml"
    if family is ContentType.HTML:
        return "html"
    return None


def _to_text(data: Any) -> str:
    if isinstance(data, ET.Element):
        return ET.tostring(data, encoding="unicode")
    if isinstance(data, (bytes, bytearray)):
        return bytes(data).decode("utf-8", errors="replace")
    return str(data)


class OutputManager:
    """Central manager for all CLI output.

    Args:
        format: Desired output format. ``AUTO`` resolves based on TTY
            detection.
        no_color: Disable all colour and Rich markup.
        quiet: Suppress informational messages on stderr.
        verbose: Enable debug-level messages on stderr.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose

        if format == OutputFormat.AUTO:
            self._format = (
                OutputFormat.RICH if _is_tty() and not self._no_color else OutputFormat.PLAIN
            )
        else:
            self._format = format

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=(self._format == OutputFormat.RICH),
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    # ------------------------------------------------------------------ #
    # Data output (stdout)
    # ------------------------------------------------------------------ #

    def format_response(self, data: Any, content_type: Optional[str] = None) -> None:
        """Render a parsed response body to stdout in the active format.

        Args:
            data: Parsed body -- dict, list, str, bytes or an XML element.
            content_type: Content type the body was parsed as; picks the
                syntax highlighter in Rich mode.
        """
        if self._format == OutputFormat.JSON:
            self._print_json(data)
        elif self._format == OutputFormat.PLAIN:
            self._print_plain(data)
        else:
            self._print_rich(data, content_type)

    def print_data(self, text: str) -> None:
        """Print raw text to stdout with a trailing newline."""
        print(text, file=sys.stdout, flush=True)

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        """Print an informational message to stderr. Suppressed by ``--quiet``."""
        if not self._quiet:
            if self._no_color:
                print(message, file=sys.stderr, flush=True)
            else:
                self._stderr.print(message, markup=False)

    def warning(self, message: str) -> None:
        """Print a yellow warning to stderr. NOT suppressed by ``--quiet``."""
        if self._no_color:
            print(f"Warning: {message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print(f"[yellow]Warning:[/yellow] {message}")

    def error(self, message: str) -> None:
        """Print a bold-red error to stderr. Never suppressed."""
        if self._no_color:
            print(f"Error: {message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print(f"[bold red]Error:[/bold red] {message}")

    def debug(self, message: str) -> None:
        """Print a debug message to stderr. Only shown with ``--verbose``."""
        if self._verbose:
            if self._no_color:
                print(f"[debug] {message}", file=sys.stderr, flush=True)
            else:
                self._stderr.print(f"[dim][debug] {message}[/dim]")

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _print_json(self, data: Any) -> None:
        if isinstance(data, (dict, list, int, float, bool)) or data is None:
            self.print_data(json.dumps(data, indent=2, ensure_ascii=False, default=str))
            return
        text = _to_text(data)
        try:
            parsed = json.loads(text)
        except (json.JSONDecodeError, TypeError):
            self.print_data(json.dumps(text, ensure_ascii=False))
            return
        self.print_data(json.dumps(parsed, indent=2, ensure_ascii=False, default=str))

    def _print_plain(self, data: Any) -> None:
        if isinstance(data, dict):
            for key, value in data.items():
                self.print_data(f"{key}\t{value}")
        elif isinstance(data, list):
            for item in data:
                if isinstance(item, dict):
                    self.print_data("\t".join(str(v) for v in item.values()))
                else:
                    self.print_data(str(item))
        else:
            self.print_data(_to_text(data))

    def _print_rich(self, data: Any, content_type: Optional[str]) -> None:
        if isinstance(data, (dict, list)):
            json_str = json.dumps(data, indent=2, ensure_ascii=False, default=str)
            self._stdout.print(Syntax(json_str, "json", theme="monokai", word_wrap=True))
            return
        text = _to_text(data)
        lexer = _syntax_lexer(content_type)
        if lexer:
            self._stdout.print(Syntax(text, lexer, theme="monokai", word_wrap=True))
        else:
            self._stdout.print(text, markup=False)


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """True when ``NO_COLOR`` is set (any value) or ``TERM=dumb``."""
    if os.environ.get("NO_COLOR") is not None:
        return True
    return os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Global output instance (set during app startup)
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the global :class:`OutputManager`, creating a default one lazily."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Reset the global :class:`OutputManager`; used by the test suite."""
    global _output
    _output = None


def error(message: str) -> None:
    """Print error to stderr via the global OutputManager."""
    get_output().error(message)
