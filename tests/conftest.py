"""Shared test fixtures for oauthmediator.

Provides a scriptable stand-in for the token endpoint (served through
:class:`httpx.MockTransport`) and resets the global output manager between
tests.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Optional

import httpx
import pytest

from oauthmediator.output import reset_output


TOKEN_URL = "https://auth.example.com/oauth2/token"


class FakeTokenEndpoint:
    """Records every request and answers with a fixed status and body.

    Tests address it at :attr:`url`.

    Args:
        status_code: HTTP status returned for every request.
        body: Response body. Dicts are serialised as JSON.
        error: If set, raised instead of answering (simulates transport faults).
    """

    def __init__(
        self,
        status_code: int = 200,
        body: Any = None,
        error: Optional[Exception] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        if body is None:
            body = {"access_token": "abc123", "token_type": "Bearer", "expires_in": 3600}
        self.status_code = status_code
        self.body = body
        self.error = error
        self.headers = headers or {}
        self.requests: list[httpx.Request] = []
        self.url = TOKEN_URL

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        content = self.body if isinstance(self.body, str) else json.dumps(self.body)
        return httpx.Response(
            status_code=self.status_code,
            headers={"content-type": "application/json", **self.headers},
            content=content.encode("utf-8"),
        )

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    @property
    def last_body(self) -> str:
        return self.requests[-1].content.decode("utf-8")


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time, which go stale once CliRunner restores the streams.
    """
    yield
    reset_output()


@pytest.fixture
def endpoint_factory() -> Callable[..., FakeTokenEndpoint]:
    """Factory for :class:`FakeTokenEndpoint` instances."""
    return FakeTokenEndpoint


@pytest.fixture
def token_endpoint() -> FakeTokenEndpoint:
    """A token endpoint that issues ``abc123`` valid for an hour."""
    return FakeTokenEndpoint()


@pytest.fixture
def token_url() -> str:
    """URL the fake token endpoint is addressed at."""
    return TOKEN_URL
