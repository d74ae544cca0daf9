"""HTTP client module for oauthmediator.

Provides the synchronous token requestor that performs the OAuth2
password or client_credentials exchange against a token endpoint.

Functions:
    :func:`request_token` -- positional entry point returning a
    :class:`~oauthmediator.models.TokenResponse` or ``None``.
    :func:`send_token_request` -- same exchange driven by a
    :class:`~oauthmediator.models.TokenRequest`.

Example::

    from oauthmediator.client import request_token

    token = request_token(url, key, secret, user, pw, "password")
"""

from oauthmediator.client.token_client import (
    basic_authorization,
    build_form_body,
    parse_token_response,
    request_token,
    send_token_request,
)

__all__ = [
    "basic_authorization",
    "build_form_body",
    "parse_token_response",
    "request_token",
    "send_token_request",
]
