"""Typer application and CLI entry point for restpipe.

``restpipe send METHOD URI`` assembles a single request from command-line
options, executes it through a :class:`~restpipe.client.assembler.RequestAssembler`
and prints the parsed body to stdout and the status line to stderr.

Errors map to exit codes via :mod:`restpipe.exit_codes`: an error response
exits with 3 (401/403), 4 (other 4xx) or 5 (5xx) after printing its body.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``.
"""

from __future__ import annotations

import logging
import signal
import sys
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from restpipe import __version__
from restpipe.exit_codes import EXIT_GENERIC_FAILURE

app = typer.Typer(
    name="restpipe",
    help="Build, sign and send HTTP requests with content negotiation.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"restpipe {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool, no_color: bool) -> None:
    root = logging.getLogger("restpipe")
    for handler in list(root.handlers):
        root.removeHandler(handler)
    if not verbose:
        root.setLevel(logging.WARNING)
        return
    handler = RichHandler(
        console=Console(file=sys.stderr, no_color=no_color, stderr=True),
        show_time=False,
        show_path=False,
    )
    root.addHandler(handler)
    root.setLevel(logging.DEBUG)


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", help="Suppress non-essential output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
) -> None:
    """Initialise output and logging from the global flags."""
    from restpipe.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))
    _configure_logging(verbose, no_color)

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


def _parse_queries(values: list[str]) -> dict[str, Any]:
    """Turn ``name=value`` / ``name`` options into a multi-value mapping."""
    from restpipe.uri import NO_VALUE

    params: dict[str, Any] = {}
    for item in values:
        name, sep, value = item.partition("=")
        params.setdefault(name, []).append(value if sep else NO_VALUE)
    return params


def _parse_headers(values: list[str]) -> dict[str, Any]:
    from restpipe.exceptions import InvalidUsageError

    headers: dict[str, Any] = {}
    for item in values:
        name, sep, value = item.partition(":")
        if not sep or not name.strip():
            raise InvalidUsageError(f"Header must be 'Name: value', got {item!r}")
        existing = headers.get(name.strip())
        value = value.strip()
        if existing is None:
            headers[name.strip()] = value
        elif isinstance(existing, list):
            existing.append(value)
        else:
            headers[name.strip()] = [existing, value]
    return headers


def _split_oauth1(raw: str) -> tuple[str, str, str, str]:
    from restpipe.exceptions import InvalidUsageError

    parts = raw.split(":")
    if len(parts) != 4:
        raise InvalidUsageError(
            "OAuth 1 credentials must be 'CONSUMER_KEY:CONSUMER_SECRET:TOKEN:TOKEN_SECRET'"
        )
    return parts[0], parts[1], parts[2], parts[3]


@app.command("send")
def send_command(
    method: str = typer.Argument(..., help="HTTP verb, e.g. GET or POST."),
    uri: str = typer.Argument(..., help="Absolute base URI."),
    path: Optional[str] = typer.Option(None, "--path", help="Path resolved against URI."),
    query: list[str] = typer.Option([], "--query", help="Query parameter name=value (repeatable)."),
    header: list[str] = typer.Option([], "--header", "-H", help="Header 'Name: value' (repeatable)."),
    content_type: Optional[str] = typer.Option(
        None, "--content-type", "-t", help="Content type for the body and the response."
    ),
    request_content_type: Optional[str] = typer.Option(
        None, "--request-content-type", help="Content type for the request body only."
    ),
    body: Optional[str] = typer.Option(None, "--body", "-d", help="Request body text."),
    body_file: Optional[Path] = typer.Option(None, "--body-file", help="Read the body from a file."),
    encoding: list[str] = typer.Option(
        [], "--encoding", help="Compression token to negotiate (repeatable)."
    ),
    no_url_encoding: bool = typer.Option(
        False, "--no-url-encoding", help="Send query parameters verbatim."
    ),
    basic: Optional[str] = typer.Option(None, "--basic", help="Credential source for user:password."),
    bearer: Optional[str] = typer.Option(None, "--bearer", help="Credential source for a bearer token."),
    oauth1: Optional[str] = typer.Option(
        None, "--oauth1", help="Credential source for KEY:SECRET:TOKEN:TOKEN_SECRET."
    ),
    sign_in_query: bool = typer.Option(
        False, "--sign-in-query", help="Put OAuth material in the query string."
    ),
    config_file: Optional[Path] = typer.Option(None, "--config", help="PipelineConfig JSON file."),
) -> None:
    """Send one request and print the response body."""
    from restpipe.client.assembler import RequestAssembler
    from restpipe.client.dispatch import default_success_handler
    from restpipe.client.request import RequestSpec
    from restpipe.client.response import ResponseDecorator, render_response
    from restpipe.config import load_pipeline_config, resolve_credential
    from restpipe.exceptions import HttpResponseError, InvalidUsageError, RestPipeError
    from restpipe.models import OAuthSignature
    from restpipe.output import get_output

    output = get_output()

    def _print_success(response: ResponseDecorator) -> Any:
        data = default_success_handler(response)
        render_response(data, response, output)
        return data

    try:
        if body is not None and body_file is not None:
            raise InvalidUsageError("Use either --body or --body-file, not both")
        config = load_pipeline_config(config_file)
        if no_url_encoding:
            config = config.model_copy(update={"url_encoding_enabled": False})
        signature = OAuthSignature.QUERY_STRING if sign_in_query else OAuthSignature.HEADER

        with RequestAssembler(uri, config=config) as assembler:
            if encoding:
                assembler.set_content_encoding(*encoding)
            if basic:
                username, _, password = resolve_credential(basic).partition(":")
                assembler.auth.basic(username, password)
            if oauth1:
                assembler.auth.oauth(*_split_oauth1(resolve_credential(oauth1)), signature=signature)
            if bearer:
                assembler.auth.oauth2(resolve_credential(bearer), signature=signature)

            spec = RequestSpec(
                method=method,
                path=path,
                query=_parse_queries(query) or None,
                headers=_parse_headers(header),
                content_type=content_type,
                request_content_type=request_content_type,
                body=body_file if body_file is not None else body,
                has_body=True if (body is not None or body_file is not None) else None,
                handlers={"success": _print_success},
            )
            assembler.execute(spec)
    except HttpResponseError as exc:
        render_response(exc.body, exc.response, output)
        output.error(str(exc))
        raise typer.Exit(exc.exit_code)
    except RestPipeError as exc:
        output.error(str(exc))
        raise typer.Exit(exc.exit_code)


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def main() -> None:
    """CLI entry point invoked by the ``restpipe`` console script.

    :class:`~restpipe.exceptions.RestPipeError` instances escaping the
    command cause a clean exit with the error's ``exit_code``; anything
    else exits with a generic failure.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from restpipe.exceptions import RestPipeError
        from restpipe.output import error

        if isinstance(exc, RestPipeError):
            error(str(exc))
            sys.exit(exc.exit_code)
        error(f"Unexpected error: {exc}")
        sys.exit(EXIT_GENERIC_FAILURE)


__all__ = ["app", "main"]
