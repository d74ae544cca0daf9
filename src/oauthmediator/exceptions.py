"""Exception hierarchy for oauthmediator.

All exceptions inherit from :class:`MediatorError`, which carries an
``exit_code`` attribute mapped to a constant from
:mod:`oauthmediator.exit_codes`. The CLI entry point in
:func:`oauthmediator.app.main` catches ``MediatorError`` and exits with the
appropriate code.

"No token" outcomes (unsupported grant, non-200 status) are *not*
exceptions: :func:`~oauthmediator.client.request_token` returns ``None`` for
them. Everything else escalates.

Subclass hierarchy::

    MediatorError (exit 1)
    +-- InvalidUsageError   (exit 2)
    |   +-- TokenRequestError (exit 2)
    +-- AuthError           (exit 3)
    +-- ConnectionError_    (exit 6)
    +-- TokenParseError     (exit 7)
    +-- ConfigError         (exit 1)
"""

from oauthmediator.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_RESPONSE_PARSE_ERROR,
)


class MediatorError(Exception):
    """Base exception for all oauthmediator errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(MediatorError):
    """Raised for invalid CLI arguments or missing required parameters."""

    exit_code = EXIT_INVALID_USAGE


class TokenRequestError(InvalidUsageError):
    """Raised when a token request cannot be built (e.g. password grant without a username)."""


class AuthError(MediatorError):
    """Raised by the CLI when the token endpoint did not issue a token."""

    exit_code = EXIT_AUTH_FAILURE


class ConnectionError_(MediatorError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class TokenParseError(MediatorError, ValueError):
    """Raised when a 200 response body is not valid JSON or not a token response."""

    exit_code = EXIT_RESPONSE_PARSE_ERROR


class ConfigError(MediatorError):
    """Raised for configuration problems (missing file, invalid JSON, bad credential sources)."""

    exit_code = EXIT_GENERIC_FAILURE
