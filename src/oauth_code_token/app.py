"""Typer application and CLI entry point for oauth-code-token.

This module defines the single ``oauth-code-token`` command. It resolves
the configuration (``--config`` file over environment variables), installs
the global :class:`~oauth_code_token.output.OutputManager`, runs one
:class:`~oauth_code_token.flow.orchestrator.FlowOrchestrator` attempt and
prints the token response to stdout.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers and invokes the Typer app.
Unhandled exceptions are written to a crash log under the data directory.

See Also:
    :mod:`oauth_code_token.config`: Settings resolution.
    :mod:`oauth_code_token.output`: Output formatting initialised in :func:`run`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from oauth_code_token import __version__
from oauth_code_token.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INTERRUPTED,
    EXIT_SUCCESS,
)

PROGRAM_NAME = "oauth-code-token"

_EPILOG = """\
[bold]Configuration parameters[/bold]

Read from the JSON file given with --config (-c) or from environment
variables; config file values take precedence.

  AUTH_ENDPOINT   (required)
  TOKEN_ENDPOINT  (required)
  CLIENT_ID       (required)
  CLIENT_SECRET   (optional)
  SCOPE           (required, comma separated)
  REDIRECT_URL    (required, e.g. http://localhost:4321/callback)
  SPA             (optional, true/false)

The program listens on localhost on the port given in REDIRECT_URL.
To log in, open http://localhost:<port>/ in a browser.
"""


app = typer.Typer(
    name=PROGRAM_NAME,
    help="Get a token using the OAuth 2.0 Authorization Code flow with PKCE.",
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.command(epilog=_EPILOG)
def run(
    config_file: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="JSON file with the required settings.",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    open_browser: bool = typer.Option(
        False, "--open", help="Open the login page in the default browser."
    ),
    timeout: float = typer.Option(
        30.0, "--timeout", min=1.0, help="Token request timeout in seconds."
    ),
    idle_timeout: float = typer.Option(
        300.0,
        "--idle-timeout",
        min=0.0,
        help="Give up after this many idle seconds (0 waits forever).",
    ),
    json_output: bool = typer.Option(
        False, "--json", help="Indented JSON output without colour."
    ),
    output_file: Optional[str] = typer.Option(
        None, "-o", "--output", help="Write the token response to a file."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", help="Enable debug output."
    ),
) -> None:
    """Get a token using the OAuth 2.0 Authorization Code flow with PKCE.

    Starts a listener on the port of REDIRECT_URL, waits for the browser
    login to complete and prints the token endpoint's response.

    Raises:
        typer.Exit: With the exit code matching the outcome (0 when the
            token endpoint returned a 2xx response).
    """
    from oauth_code_token.config import resolve_flow_config
    from oauth_code_token.exceptions import OAuthCodeTokenError
    from oauth_code_token.flow import FlowOrchestrator
    from oauth_code_token.models import ResultSource
    from oauth_code_token.output import (
        OutputFormat,
        OutputManager,
        error,
        print_body,
        set_output,
        success,
        suggest,
    )

    set_output(
        OutputManager(
            format=OutputFormat.JSON if json_output else OutputFormat.AUTO,
            no_color=no_color,
            quiet=quiet,
            verbose=verbose,
            output_file=output_file,
        )
    )

    try:
        config = resolve_flow_config(config_file)
    except OAuthCodeTokenError as exc:
        error(str(exc))
        suggest(f"Run {PROGRAM_NAME} --help to get more details.")
        raise typer.Exit(code=exc.exit_code) from None

    try:
        result = FlowOrchestrator(
            config,
            timeout=timeout,
            idle_timeout=idle_timeout,
            open_browser=open_browser,
        ).run()
    except OAuthCodeTokenError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    print_body(result.body)

    if result.ok:
        success("Token retrieved.")
        raise typer.Exit(code=EXIT_SUCCESS)
    if result.source == ResultSource.LOCAL:
        error("The token request could not be completed.")
        raise typer.Exit(code=EXIT_CONNECTION_ERROR)
    error(f"The token endpoint returned HTTP {result.status_code}.")
    raise typer.Exit(code=EXIT_AUTH_FAILURE)


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from oauth_code_token.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``oauth-code-token`` console script.

    Unhandled :class:`~oauth_code_token.exceptions.OAuthCodeTokenError`
    instances cause a clean exit with the error's ``exit_code``. All other
    exceptions produce a crash log and a generic failure exit.

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
        sys.exit(EXIT_INTERRUPTED)
    except Exception as exc:
        from oauth_code_token.exceptions import OAuthCodeTokenError
        from oauth_code_token.output import error

        if isinstance(exc, OAuthCodeTokenError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
