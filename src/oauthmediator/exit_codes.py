"""Numeric process exit codes for the ``oauth-mediator`` CLI.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~oauthmediator.exceptions.MediatorError` subclass.
Scripts that probe a token endpoint can inspect the exit code to tell a
rejected credential apart from an unreachable endpoint.

Example::

    $ oauth-mediator token --config mediator.json
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- the endpoint did not issue a token
"""

EXIT_SUCCESS = 0
"""A token was issued."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred (including configuration problems)."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_AUTH_FAILURE = 3
"""No token was issued (unsupported grant or non-200 response)."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_RESPONSE_PARSE_ERROR = 7
"""The token endpoint answered 200 with a body that is not a valid token response."""
