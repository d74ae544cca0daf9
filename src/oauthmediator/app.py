"""Typer application and CLI entry point for oauthmediator.

The ``oauth-mediator`` command lets an operator run the same token exchange
the mediator performs inside the gateway, against a real token endpoint,
without deploying a pipeline::

    oauth-mediator token --config mediator.json
    oauth-mediator --verbose token -e https://auth.example.com/token \\
        -k env:API_KEY -s env:API_SECRET --grant-type client_credentials

The token response goes to stdout; token exchange events go to stderr when
``--verbose`` is set. Exit codes come from :mod:`oauthmediator.exit_codes`.

See Also:
    :mod:`oauthmediator.config`: Config files and value descriptors.
    :mod:`oauthmediator.output`: Output formatting initialised in
    :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
from pathlib import Path
from typing import Any, Optional

import typer

from oauthmediator import __version__
from oauthmediator.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="oauth-mediator",
    help="Request OAuth2 access tokens the way the gateway mediator does.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"oauth-mediator {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show token exchange diagnostics."
    ),
) -> None:
    """Initialise the global :class:`~oauthmediator.output.OutputManager` from CLI flags."""
    from oauthmediator.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))


@app.command("token")
def token_command(
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="JSON file with the mediator configuration."
    ),
    endpoint: Optional[str] = typer.Option(
        None, "--endpoint", "-e", help="Token endpoint URL."
    ),
    key: Optional[str] = typer.Option(
        None, "--key", "-k", help="Consumer key (literal, env:VAR or file:/path)."
    ),
    secret: Optional[str] = typer.Option(
        None, "--secret", "-s", help="Consumer secret (literal, env:VAR or file:/path)."
    ),
    username: Optional[str] = typer.Option(
        None, "--username", "-u", help="Resource owner username (password grant)."
    ),
    password: Optional[str] = typer.Option(
        None, "--password", help="Resource owner password (password grant)."
    ),
    grant_type: Optional[str] = typer.Option(
        None, "--grant-type", "-g", help="password or client_credentials."
    ),
    scope: Optional[str] = typer.Option(
        None, "--scope", help="Requested scope."
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Request timeout in seconds."
    ),
) -> None:
    """Request an access token and print the token response.

    Options override values read from ``--config``. Exits with code 3 when
    the endpoint does not issue a token.
    """
    from oauthmediator.client import send_token_request
    from oauthmediator.config import (
        build_token_request,
        load_mediator_config,
        merge_overrides,
    )
    from oauthmediator.exceptions import AuthError, InvalidUsageError, MediatorError
    from oauthmediator.models import GrantType
    from oauthmediator.output import OutputSink, error, get_output, info, warning

    try:
        base = load_mediator_config(config_file) if config_file is not None else None
        if base is None:
            missing = [
                flag
                for flag, value in (
                    ("--endpoint", endpoint),
                    ("--key", key),
                    ("--secret", secret),
                )
                if value is None
            ]
            if missing:
                raise InvalidUsageError(
                    f"Missing required option(s): {', '.join(missing)} "
                    "(or pass --config)"
                )

        config = merge_overrides(
            base,
            token_endpoint=endpoint,
            api_key=key,
            api_secret=secret,
            username=username,
            password=password,
            grant_type=grant_type,
            scope=scope,
            timeout=timeout,
        )
        request = build_token_request(config)

        if request.grant_type == GrantType.CLIENT_CREDENTIALS.value and (
            request.username is not None or request.password is not None
        ):
            warning("username/password are ignored for the client_credentials grant")

        info(f"Requesting token from {request.endpoint}")
        token = send_token_request(request, timeout=config.timeout, sink=OutputSink())
        if token is None:
            raise AuthError(f"No token issued by {request.endpoint}")
    except MediatorError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    get_output().format_response(token.model_dump(exclude_none=True))


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def main() -> None:
    """CLI entry point invoked by the ``oauth-mediator`` console script.

    Unhandled :class:`~oauthmediator.exceptions.MediatorError` instances
    cause a clean exit with the error's ``exit_code``. Anything else is
    reported and exits with :data:`EXIT_GENERIC_FAILURE`.
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
        from oauthmediator.exceptions import MediatorError
        from oauthmediator.output import error

        error(str(exc))
        if isinstance(exc, MediatorError):
            sys.exit(exc.exit_code)
        sys.exit(EXIT_GENERIC_FAILURE)
