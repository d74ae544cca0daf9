"""Synchronous OAuth2 token requests over :mod:`httpx`.

This module provides :func:`request_token`, which exchanges a consumer
key/secret (and, for the password grant, resource-owner credentials) for an
access token with a single POST to the token endpoint:

- **Grant validation** -- anything outside
  :data:`~oauthmediator.models.SUPPORTED_GRANTS` returns ``None`` before any
  network I/O.
- **Form body** -- each value is form-URL-encoded on its own and joined into
  ``?grant_type=...&...``; the leading ``?`` is part of the body.
- **Basic auth** -- ``Authorization: Basic base64(key:secret)``.
- **Response mapping** -- HTTP 200 bodies are parsed into
  :class:`~oauthmediator.models.TokenResponse`; every other status returns
  ``None``.

Transport failures raise :class:`~oauthmediator.exceptions.ConnectionError_`
and malformed 200 bodies raise
:class:`~oauthmediator.exceptions.TokenParseError`. There is no retry.
"""

from __future__ import annotations

import base64
import json
from typing import Optional, Union
from urllib.parse import quote_plus

import httpx
from pydantic import ValidationError

from oauthmediator.diagnostics import DiagnosticEvent, DiagnosticSink, default_sink
from oauthmediator.exceptions import ConnectionError_, TokenParseError, TokenRequestError
from oauthmediator.models import (
    SUPPORTED_GRANTS,
    GrantType,
    TokenRequest,
    TokenResponse,
    grant_value,
)

AUTHORIZATION_HEADER = "Authorization"
CONTENT_TYPE_HEADER = "Content-Type"
CONTENT_LENGTH_HEADER = "Content-Length"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
DEFAULT_TIMEOUT = 30.0


def _encode(value: str) -> str:
    return quote_plus(value, encoding="utf-8")


def build_form_body(request: TokenRequest) -> str:
    """Assemble the form-encoded body for *request*.

    Args:
        request: A request whose grant type is supported.

    Returns:
        ``?grant_type=password&username=<u>&password=<p>[&scope=<s>]`` or
        ``?grant_type=client_credentials[&scope=<s>]``.

    Raises:
        TokenRequestError: If the password grant lacks a username or password.
    """
    body = "?grant_type=" + _encode(request.grant_type)

    if request.grant_type == GrantType.PASSWORD.value:
        if request.username is None or request.password is None:
            raise TokenRequestError(
                "The password grant requires both a username and a password"
            )
        body += "&username=" + _encode(request.username)
        body += "&password=" + _encode(request.password)

    if request.scope:
        body += "&scope=" + _encode(request.scope)
    return body


def basic_authorization(consumer_key: str, consumer_secret: str) -> str:
    """Return the ``Basic`` Authorization header value for a key/secret pair."""
    raw = f"{consumer_key}:{consumer_secret}".encode("utf-8")
    return "Basic " + base64.b64encode(raw).decode("ascii")


def build_headers(request: TokenRequest, body: bytes) -> dict[str, str]:
    """Headers sent with every token request."""
    return {
        AUTHORIZATION_HEADER: basic_authorization(
            request.consumer_key, request.consumer_secret
        ),
        CONTENT_TYPE_HEADER: FORM_CONTENT_TYPE,
        CONTENT_LENGTH_HEADER: str(len(body)),
    }


def parse_token_response(text: str) -> TokenResponse:
    """Deserialise a token endpoint body.

    Args:
        text: The full response body.

    Returns:
        The mapped :class:`~oauthmediator.models.TokenResponse`.

    Raises:
        TokenParseError: If *text* is not JSON, not a JSON object, or lacks
            an ``access_token``.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise TokenParseError(f"Token response is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise TokenParseError(
            f"Token response must be a JSON object, got {type(data).__name__}"
        )

    try:
        return TokenResponse.model_validate(data)
    except ValidationError as exc:
        raise TokenParseError(f"Invalid token response: {exc}") from exc


def _report_unsupported_grant(
    sink: DiagnosticSink, endpoint: str, grant_type: Optional[str]
) -> None:
    sink.emit(DiagnosticEvent(
        "grant_unsupported",
        f"No supported grant for token endpoint {endpoint} "
        f"and grant type {grant_type!r}",
        {"endpoint": endpoint, "grant_type": grant_type},
    ))


def send_token_request(
    request: TokenRequest,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    sink: Optional[DiagnosticSink] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> Optional[TokenResponse]:
    """Perform the token exchange described by *request*.

    Args:
        request: The token request parameters.
        timeout: Timeout in seconds for the underlying HTTP client.
        sink: Receiver of diagnostic events. Defaults to a
            :class:`~oauthmediator.diagnostics.LoggingSink`.
        transport: Optional :mod:`httpx` transport (used in tests to stand
            in for the token endpoint).

    Returns:
        The parsed token, or ``None`` when the grant type is unsupported or
        the endpoint answers with anything other than HTTP 200.

    Raises:
        TokenRequestError: If the password grant lacks credentials.
        ConnectionError_: On network-level failures.
        TokenParseError: If a 200 body is not a valid token response.
    """
    sink = sink or default_sink()
    endpoint = request.endpoint

    if not request.is_supported():
        _report_unsupported_grant(sink, endpoint, request.grant_type)
        return None

    sink.emit(DiagnosticEvent(
        "token_request_started",
        f"Initializing token generation request: [token-endpoint] {endpoint}",
        {"endpoint": endpoint, "grant_type": request.grant_type},
    ))

    body = build_form_body(request).encode("utf-8")
    headers = build_headers(request, body)

    sink.emit(DiagnosticEvent(
        "token_request_sent",
        f"Requesting access token from the token endpoint: {endpoint}",
        {"endpoint": endpoint},
    ))

    try:
        with httpx.Client(timeout=timeout, transport=transport) as client:
            response = client.post(endpoint, content=body, headers=headers)
    except httpx.TransportError as exc:
        raise ConnectionError_(
            f"Token request to {endpoint} failed: {exc}"
        ) from exc

    status = response.status_code
    sink.emit(DiagnosticEvent(
        "token_response_received",
        f"Response code received from the token endpoint = {status}",
        {"endpoint": endpoint, "status_code": status},
    ))

    if status != 200:
        sink.emit(DiagnosticEvent(
            "token_request_rejected",
            f"Token endpoint returned status {status}; no token issued",
            {"endpoint": endpoint, "status_code": status, "body": response.text},
        ))
        return None

    try:
        text = response.content.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise TokenParseError(f"Token response is not valid UTF-8: {exc}") from exc

    sink.emit(DiagnosticEvent(
        "token_response_body",
        f"Response: [status-code] {status} [message] {text}",
        {"endpoint": endpoint, "status_code": status, "body": text},
    ))
    return parse_token_response(text)


def request_token(
    endpoint: str,
    consumer_key: str,
    consumer_secret: str,
    username: Optional[str],
    password: Optional[str],
    grant_type: Union[GrantType, str],
    scope: Optional[str] = None,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    sink: Optional[DiagnosticSink] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> Optional[TokenResponse]:
    """Request an OAuth2 access token.

    Thin positional wrapper around :func:`send_token_request`.

    Args:
        endpoint: Token endpoint URL.
        consumer_key: API consumer key.
        consumer_secret: API consumer secret.
        username: Resource owner username (password grant only).
        password: Resource owner password (password grant only).
        grant_type: ``"password"`` or ``"client_credentials"`` (or the
            matching :class:`~oauthmediator.models.GrantType`).
        scope: Optional scope, sent only when non-empty.
        timeout: Timeout in seconds for the underlying HTTP client.
        sink: Receiver of diagnostic events.
        transport: Optional :mod:`httpx` transport.

    Returns:
        The parsed token, or ``None`` if no token was issued.

    Raises:
        TokenRequestError: If the arguments do not form a valid request
            for a supported grant.

    Example::

        token = request_token(
            "https://auth.example.com/token", "key", "secret",
            None, None, "client_credentials",
        )
        if token is not None:
            headers = {"Authorization": f"Bearer {token.access_token}"}
    """
    sink = sink or default_sink()
    value = grant_value(grant_type)
    if value not in SUPPORTED_GRANTS:
        _report_unsupported_grant(sink, endpoint, value)
        return None

    try:
        request = TokenRequest(
            endpoint=endpoint,
            consumer_key=consumer_key,
            consumer_secret=consumer_secret,
            username=username,
            password=password,
            grant_type=value,
            scope=scope,
        )
    except ValidationError as exc:
        raise TokenRequestError(f"Invalid token request for {endpoint}: {exc}") from exc
    return send_token_request(request, timeout=timeout, sink=sink, transport=transport)
