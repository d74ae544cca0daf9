"""Tests for the synchronous token requestor."""

from __future__ import annotations

import base64
import logging
from unittest.mock import patch
from urllib.parse import parse_qs

import httpx
import pytest

from oauthmediator.client import (
    basic_authorization,
    build_form_body,
    parse_token_response,
    request_token,
    send_token_request,
)
from oauthmediator.diagnostics import CollectingSink
from oauthmediator.exceptions import ConnectionError_, TokenParseError, TokenRequestError
from oauthmediator.models import GrantType, TokenRequest


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _password_token(endpoint, **kwargs):
    """Call request_token with the password grant against *endpoint*."""
    params = {
        "username": "alice",
        "password": "s3cret",
        "scope": None,
    }
    params.update(kwargs)
    return request_token(
        endpoint.url,
        "my-key",
        "my-secret",
        params["username"],
        params["password"],
        "password",
        params["scope"],
        transport=endpoint.transport,
        sink=CollectingSink(),
    )


def _client_credentials_token(endpoint, scope=None, sink=None):
    return request_token(
        endpoint.url,
        "my-key",
        "my-secret",
        None,
        None,
        "client_credentials",
        scope,
        transport=endpoint.transport,
        sink=sink or CollectingSink(),
    )


# ---------------------------------------------------------------------------
# Grant validation
# ---------------------------------------------------------------------------


class TestUnsupportedGrant:
    @pytest.mark.parametrize(
        "grant_type",
        ["authorization_code", "refresh_token", "PASSWORD", "Client_Credentials", ""],
    )
    def test_returns_none_without_network_call(self, token_endpoint, grant_type: str) -> None:
        sink = CollectingSink()
        result = request_token(
            token_endpoint.url, "k", "s", "u", "p", grant_type,
            transport=token_endpoint.transport, sink=sink,
        )

        assert result is None
        assert token_endpoint.requests == []
        assert sink.names() == ["grant_unsupported"]

    def test_unsupported_grant_event_fields(self, token_endpoint) -> None:
        sink = CollectingSink()
        request_token(
            token_endpoint.url, "k", "s", None, None, "implicit",
            transport=token_endpoint.transport, sink=sink,
        )
        event = sink.find("grant_unsupported")
        assert event is not None
        assert event.fields == {"endpoint": token_endpoint.url, "grant_type": "implicit"}

    def test_unsupported_grant_skips_credential_checks(self, token_endpoint) -> None:
        """An unsupported grant never reaches body construction."""
        assert request_token(
            token_endpoint.url, "k", "s", None, None, "device_code",
            transport=token_endpoint.transport, sink=CollectingSink(),
        ) is None

    def test_grant_type_enum_accepted(self, token_endpoint) -> None:
        result = request_token(
            token_endpoint.url, "k", "s", None, None, GrantType.CLIENT_CREDENTIALS,
            transport=token_endpoint.transport, sink=CollectingSink(),
        )
        assert result is not None
        assert token_endpoint.last_body == "?grant_type=client_credentials"

    def test_unsupported_grant_with_missing_credentials(self, token_endpoint) -> None:
        sink = CollectingSink()
        result = request_token(
            token_endpoint.url, None, None, None, None, "implicit",
            transport=token_endpoint.transport, sink=sink,
        )

        assert result is None
        assert token_endpoint.requests == []
        assert sink.names() == ["grant_unsupported"]

    def test_none_grant_type_is_unsupported(self, token_endpoint) -> None:
        sink = CollectingSink()
        assert request_token(
            token_endpoint.url, "k", "s", None, None, None,
            transport=token_endpoint.transport, sink=sink,
        ) is None
        assert sink.find("grant_unsupported").fields["grant_type"] is None

    def test_missing_consumer_key_raises_request_error(self, token_endpoint) -> None:
        with pytest.raises(TokenRequestError, match="Invalid token request"):
            request_token(
                token_endpoint.url, None, "s", None, None, "client_credentials",
                transport=token_endpoint.transport, sink=CollectingSink(),
            )
        assert token_endpoint.requests == []


# ---------------------------------------------------------------------------
# Request body
# ---------------------------------------------------------------------------


class TestRequestBody:
    def test_password_grant_body(self, token_endpoint) -> None:
        _password_token(token_endpoint)
        assert token_endpoint.last_body == "?grant_type=password&username=alice&password=s3cret"

    def test_password_grant_body_with_scope(self, token_endpoint) -> None:
        _password_token(token_endpoint, scope="read write")
        assert token_endpoint.last_body == (
            "?grant_type=password&username=alice&password=s3cret&scope=read+write"
        )

    def test_client_credentials_body(self, token_endpoint) -> None:
        _client_credentials_token(token_endpoint)
        assert token_endpoint.last_body == "?grant_type=client_credentials"

    def test_client_credentials_body_with_scope(self, token_endpoint) -> None:
        _client_credentials_token(token_endpoint, scope="api:read")
        assert token_endpoint.last_body == "?grant_type=client_credentials&scope=api%3Aread"

    def test_empty_scope_not_sent(self, token_endpoint) -> None:
        _client_credentials_token(token_endpoint, scope="")
        assert "scope" not in token_endpoint.last_body

    def test_client_credentials_ignores_user_credentials(self, token_endpoint) -> None:
        request_token(
            token_endpoint.url, "k", "s", "alice", "s3cret", "client_credentials",
            transport=token_endpoint.transport, sink=CollectingSink(),
        )
        assert token_endpoint.last_body == "?grant_type=client_credentials"

    def test_reserved_characters_round_trip(self, token_endpoint) -> None:
        _password_token(token_endpoint, username="bob+admin@example.com", password="p@ss word&")
        body = token_endpoint.last_body

        assert "password=p%40ss+word%26" in body
        assert "username=bob%2Badmin%40example.com" in body
        decoded = parse_qs(body.lstrip("?"))
        assert decoded["username"] == ["bob+admin@example.com"]
        assert decoded["password"] == ["p@ss word&"]

    def test_non_ascii_values_encoded_as_utf8(self, token_endpoint) -> None:
        _password_token(token_endpoint, username="josé", password="über")
        decoded = parse_qs(token_endpoint.last_body.lstrip("?"))
        assert decoded["username"] == ["josé"]
        assert decoded["password"] == ["über"]
        assert "username=jos%C3%A9" in token_endpoint.last_body

    def test_password_grant_requires_username(self, token_endpoint) -> None:
        with pytest.raises(TokenRequestError, match="username and a password"):
            _password_token(token_endpoint, username=None)
        assert token_endpoint.requests == []

    def test_password_grant_requires_password(self, token_endpoint) -> None:
        with pytest.raises(TokenRequestError):
            _password_token(token_endpoint, password=None)
        assert token_endpoint.requests == []

    def test_build_form_body_directly(self, token_url: str) -> None:
        request = TokenRequest(
            endpoint=token_url,
            consumer_key="k",
            consumer_secret="s",
            grant_type="client_credentials",
            scope="a b",
        )
        assert build_form_body(request) == "?grant_type=client_credentials&scope=a+b"


# ---------------------------------------------------------------------------
# Request headers / transport
# ---------------------------------------------------------------------------


class TestRequestHeaders:
    def test_method_and_url(self, token_endpoint) -> None:
        _client_credentials_token(token_endpoint)
        request = token_endpoint.requests[0]
        assert request.method == "POST"
        assert str(request.url) == token_endpoint.url
        assert request.url.query == b""

    @pytest.mark.parametrize("grant", ["password", "client_credentials"])
    def test_basic_authorization_for_every_grant(self, token_endpoint, grant: str) -> None:
        request_token(
            token_endpoint.url, "my-key", "my-secret", "alice", "pw", grant,
            transport=token_endpoint.transport, sink=CollectingSink(),
        )
        expected = "Basic " + base64.b64encode(b"my-key:my-secret").decode("ascii")
        assert token_endpoint.requests[0].headers["Authorization"] == expected

    def test_content_type_and_length(self, token_endpoint) -> None:
        _password_token(token_endpoint, password="p@ss word&")
        request = token_endpoint.requests[0]
        assert request.headers["Content-Type"] == "application/x-www-form-urlencoded"
        assert request.headers["Content-Length"] == str(len(request.content))

    def test_basic_authorization_helper(self) -> None:
        value = basic_authorization("client", "s3cr:et")
        assert value.startswith("Basic ")
        assert base64.b64decode(value[6:]) == b"client:s3cr:et"

    def test_timeout_passed_to_client(self, token_endpoint) -> None:
        with patch(
            "oauthmediator.client.token_client.httpx.Client", wraps=httpx.Client
        ) as client_cls:
            send_token_request(
                TokenRequest(
                    endpoint=token_endpoint.url,
                    consumer_key="k",
                    consumer_secret="s",
                    grant_type="client_credentials",
                ),
                timeout=4.5,
                transport=token_endpoint.transport,
                sink=CollectingSink(),
            )
        assert client_cls.call_args.kwargs["timeout"] == 4.5

    def test_single_attempt_only(self, endpoint_factory) -> None:
        endpoint = endpoint_factory(status_code=503, body={"error": "unavailable"})
        assert _client_credentials_token(endpoint) is None
        assert len(endpoint.requests) == 1


# ---------------------------------------------------------------------------
# Response handling
# ---------------------------------------------------------------------------


class TestResponseHandling:
    def test_success_returns_token(self, endpoint_factory) -> None:
        endpoint = endpoint_factory(body={"access_token": "abc123", "expires_in": 3600})
        token = _client_credentials_token(endpoint)

        assert token is not None
        assert token.access_token == "abc123"
        assert token.expires_in == 3600
        assert token.refresh_token is None

    def test_full_token_response(self, endpoint_factory) -> None:
        endpoint = endpoint_factory(body={
            "access_token": "at",
            "token_type": "Bearer",
            "expires_in": 120,
            "refresh_token": "rt",
            "scope": "default",
            "id_token": "idt",
        })
        token = _password_token(endpoint)
        assert token is not None
        assert (token.token_type, token.refresh_token, token.scope, token.id_token) == (
            "Bearer", "rt", "default", "idt",
        )

    def test_unknown_fields_ignored(self, endpoint_factory) -> None:
        endpoint = endpoint_factory(body={"access_token": "x", "not_before": 5, "nested": {"a": 1}})
        token = _client_credentials_token(endpoint)
        assert token is not None
        assert token.access_token == "x"
        assert not hasattr(token, "not_before")

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 500, 503])
    def test_error_status_returns_none(self, endpoint_factory, status: int) -> None:
        endpoint = endpoint_factory(status_code=status, body={"error": "invalid_client"})
        assert _client_credentials_token(endpoint) is None

    def test_non_200_success_status_returns_none(self, endpoint_factory) -> None:
        endpoint = endpoint_factory(status_code=201)
        assert _client_credentials_token(endpoint) is None

    def test_redirect_not_followed(self, endpoint_factory) -> None:
        endpoint = endpoint_factory(
            status_code=302, body="", headers={"location": "https://elsewhere.example.com/token"},
        )
        assert _client_credentials_token(endpoint) is None
        assert len(endpoint.requests) == 1

    def test_invalid_json_raises(self, endpoint_factory) -> None:
        endpoint = endpoint_factory(body="<html>not json</html>")
        with pytest.raises(TokenParseError, match="not valid JSON"):
            _client_credentials_token(endpoint)

    def test_parse_error_is_value_error(self, endpoint_factory) -> None:
        endpoint = endpoint_factory(body="{broken")
        with pytest.raises(ValueError):
            _client_credentials_token(endpoint)

    def test_json_array_raises(self, endpoint_factory) -> None:
        endpoint = endpoint_factory(body="[1, 2]")
        with pytest.raises(TokenParseError, match="JSON object"):
            _client_credentials_token(endpoint)

    def test_missing_access_token_raises(self, endpoint_factory) -> None:
        endpoint = endpoint_factory(body={"token_type": "Bearer"})
        with pytest.raises(TokenParseError, match="Invalid token response"):
            _client_credentials_token(endpoint)

    def test_parse_token_response_helper(self) -> None:
        token = parse_token_response('{"access_token": "t", "expires_in": 10}')
        assert token.access_token == "t"
        assert token.expires_in == 10


# ---------------------------------------------------------------------------
# Transport faults
# ---------------------------------------------------------------------------


class TestTransportFaults:
    def test_connect_error_propagates(self, endpoint_factory) -> None:
        endpoint = endpoint_factory(error=httpx.ConnectError("Connection refused"))
        with pytest.raises(ConnectionError_, match="Connection refused") as exc_info:
            _client_credentials_token(endpoint)
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    def test_timeout_propagates(self, endpoint_factory) -> None:
        endpoint = endpoint_factory(error=httpx.ReadTimeout("timed out"))
        with pytest.raises(ConnectionError_):
            _password_token(endpoint)


# ---------------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------------


class TestDiagnostics:
    def test_success_event_sequence(self, token_endpoint) -> None:
        sink = CollectingSink()
        _client_credentials_token(token_endpoint, sink=sink)
        assert sink.names() == [
            "token_request_started",
            "token_request_sent",
            "token_response_received",
            "token_response_body",
        ]
        assert sink.find("token_response_received").fields["status_code"] == 200

    def test_rejection_event_carries_status_and_body(self, endpoint_factory) -> None:
        endpoint = endpoint_factory(status_code=401, body={"error": "invalid_client"})
        sink = CollectingSink()
        _client_credentials_token(endpoint, sink=sink)

        event = sink.find("token_request_rejected")
        assert event is not None
        assert event.fields["status_code"] == 401
        assert "invalid_client" in event.fields["body"]
        assert sink.find("token_response_body") is None

    def test_default_sink_logs_at_debug(self, token_endpoint, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.DEBUG, logger="oauthmediator.client")
        request_token(
            token_endpoint.url, "k", "s", None, None, "client_credentials",
            transport=token_endpoint.transport,
        )
        messages = [r.getMessage() for r in caplog.records if r.name == "oauthmediator.client"]
        assert any(m.startswith("token_request_started") for m in messages)
        assert any("Response code received from the token endpoint = 200" in m for m in messages)
        assert all(r.levelno == logging.DEBUG for r in caplog.records if r.name == "oauthmediator.client")
