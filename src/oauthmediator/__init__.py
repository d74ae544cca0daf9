"""oauthmediator -- OAuth2 token mediator for API-gateway pipelines.

This package issues OAuth2 access tokens (password or client_credentials
grant) with a single synchronous POST to a token endpoint and parses the
JSON reply into a typed :class:`~oauthmediator.models.TokenResponse`. It is
meant to run as one step of a gateway's mediation sequence: the
:class:`~oauthmediator.mediator.OAuthMediator` attaches the issued token to
each outgoing message as a Bearer header.

Typical usage::

    from oauthmediator import request_token

    token = request_token(
        "https://auth.example.com/token", "key", "secret",
        "alice", "s3cret", "password", scope="read",
    )

Modules:
    client: The token requestor built on httpx.
    mediator: Pipeline step and message context.
    models: Pydantic models shared across the package.
    config: Config files and credential source resolution.
    diagnostics: Injectable diagnostic sinks.
    exceptions: Exception hierarchy with exit-code mapping.
    app: ``oauth-mediator`` command line.
"""

__version__ = "0.1.0"

from oauthmediator.client import request_token, send_token_request  # noqa: E402
from oauthmediator.mediator import MessageContext, OAuthMediator  # noqa: E402
from oauthmediator.models import (  # noqa: E402
    SUPPORTED_GRANTS,
    GrantType,
    MediatorConfig,
    TokenRequest,
    TokenResponse,
)

__all__ = [
    "GrantType",
    "MediatorConfig",
    "MessageContext",
    "OAuthMediator",
    "SUPPORTED_GRANTS",
    "TokenRequest",
    "TokenResponse",
    "request_token",
    "send_token_request",
]
