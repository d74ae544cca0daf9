"""Canonical Pydantic models shared across all oauthmediator modules.

The models fall into two groups:

**Token exchange models** -- one call's worth of data:
    :class:`GrantType`, :class:`TokenRequest`, and :class:`TokenResponse`.

**Configuration models** -- what the surrounding pipeline hands the mediator:
    :class:`MediatorConfig`.

All models use Pydantic v2. :class:`TokenResponse` ignores unknown keys so
that any token endpoint's JSON object maps onto it.
"""

from __future__ import annotations

import enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class GrantType(str, enum.Enum):
    """OAuth2 grant types the mediator can request a token with."""

    PASSWORD = "password"
    CLIENT_CREDENTIALS = "client_credentials"


SUPPORTED_GRANTS: frozenset[str] = frozenset(g.value for g in GrantType)
"""Read-only allow-list of grant type strings. Matching is case-sensitive."""


def grant_value(grant_type: Union[GrantType, str, None]) -> Optional[str]:
    """Return the plain string for *grant_type*.

    ``GrantType`` members hash by member name rather than by value, so they
    must be unwrapped before a membership test against
    :data:`SUPPORTED_GRANTS`.
    """
    if isinstance(grant_type, GrantType):
        return grant_type.value
    return grant_type


# --- Token exchange ---


class TokenRequest(BaseModel):
    """Parameters of a single token request.

    ``grant_type`` is kept as a plain string so that unsupported values can
    be represented and rejected before any network I/O.

    Example::

        TokenRequest(
            endpoint="https://auth.example.com/token",
            consumer_key="key",
            consumer_secret="secret",
            grant_type="client_credentials",
        )
    """

    model_config = ConfigDict(frozen=True)

    endpoint: str = Field(description="Token endpoint URL")
    consumer_key: str
    consumer_secret: str
    username: Optional[str] = Field(
        default=None, description="Resource owner username (password grant only)"
    )
    password: Optional[str] = Field(
        default=None, description="Resource owner password (password grant only)"
    )
    grant_type: str = Field(description="password or client_credentials")
    scope: Optional[str] = None

    def is_supported(self) -> bool:
        """Whether :attr:`grant_type` is in :data:`SUPPORTED_GRANTS`."""
        return self.grant_type in SUPPORTED_GRANTS


class TokenResponse(BaseModel):
    """Structured token endpoint reply.

    Only ``access_token`` is required. Fields the endpoint does not send
    stay ``None``; fields this model does not declare are dropped.
    """

    model_config = ConfigDict(extra="ignore")

    access_token: str
    token_type: Optional[str] = None
    expires_in: Optional[int] = None
    refresh_token: Optional[str] = None
    scope: Optional[str] = None
    id_token: Optional[str] = None


# --- Configuration ---


class MediatorConfig(BaseModel):
    """Inbound configuration of an :class:`~oauthmediator.mediator.OAuthMediator`.

    Every string field may be a credential source descriptor understood by
    :func:`~oauthmediator.config.resolve_credential` (``env:VAR``,
    ``file:/path``, ``property:NAME``) or a literal value.

    Example::

        MediatorConfig(
            token_endpoint="https://auth.example.com/token",
            api_key="env:API_KEY",
            api_secret="file:~/.secrets/api_secret",
            grant_type="password",
            username="property:backend.user",
            password="property:backend.password",
        )
    """

    token_endpoint: str = Field(description="OAuth2 token endpoint URL")
    api_key: str = Field(description="Consumer key (client id)")
    api_secret: str = Field(description="Consumer secret (client secret)")
    username: Optional[str] = None
    password: Optional[str] = None
    grant_type: str = Field(default=GrantType.CLIENT_CREDENTIALS.value)
    scope: Optional[str] = None
    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    header_name: str = Field(
        default="Authorization",
        description="Transport header that receives the Bearer token",
    )
