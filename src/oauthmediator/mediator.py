"""Pipeline step that attaches an OAuth2 Bearer token to a message.

:class:`OAuthMediator` is the unit the API gateway inserts into its
mediation sequence. For every message it resolves its configuration against
the message's :class:`MessageContext`, requests a token via
:func:`~oauthmediator.client.send_token_request`, and writes
``Bearer <access_token>`` into the outgoing transport headers.

Nothing is cached between messages: every call to :meth:`OAuthMediator.mediate`
performs one token exchange.

See Also:
    :mod:`oauthmediator.config` for the ``env:``/``file:``/``property:``
    value descriptors accepted in :class:`~oauthmediator.models.MediatorConfig`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from oauthmediator.client import send_token_request
from oauthmediator.config import build_token_request
from oauthmediator.diagnostics import DiagnosticEvent, DiagnosticSink, default_sink
from oauthmediator.models import MediatorConfig, TokenResponse

TOKEN_RESPONSE_PROPERTY = "oauth.token_response"
ERROR_PROPERTY = "oauth.error"
TOKEN_UNAVAILABLE = "token_unavailable"


@dataclass
class MessageContext:
    """The slice of a pipeline message the mediator reads and writes.

    Attributes:
        headers: Outgoing transport headers (mutable).
        properties: Pipeline properties, used for ``property:`` lookups and
            to publish the token response.
    """

    headers: dict[str, str] = field(default_factory=dict)
    properties: dict[str, Any] = field(default_factory=dict)


class OAuthMediator:
    """Fetch a token per message and inject it as a Bearer header.

    Args:
        config: Token endpoint, credentials, grant type, and scope.
        sink: Receiver of diagnostic events from the mediator and the
            token client.
        transport: Optional :mod:`httpx` transport for the token request.

    Example::

        mediator = OAuthMediator(MediatorConfig(
            token_endpoint="https://auth.example.com/token",
            api_key="env:API_KEY",
            api_secret="env:API_SECRET",
        ))
        ctx = MessageContext()
        if mediator.mediate(ctx):
            forward(ctx.headers)
    """

    def __init__(
        self,
        config: MediatorConfig,
        sink: Optional[DiagnosticSink] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._config = config
        self._sink = sink or default_sink()
        self._transport = transport

    @property
    def config(self) -> MediatorConfig:
        return self._config

    def fetch_token(self, context: MessageContext) -> Optional[TokenResponse]:
        """Resolve the configuration against *context* and request a token.

        Raises:
            ConfigError: If a configured value can't be resolved.
            ConnectionError_: On network-level failures.
            TokenParseError: If the endpoint's 200 body is malformed.
        """
        request = build_token_request(self._config, context.properties)
        return send_token_request(
            request,
            timeout=self._config.timeout,
            sink=self._sink,
            transport=self._transport,
        )

    def mediate(self, context: MessageContext) -> bool:
        """Attach a Bearer token to *context*.

        Returns:
            ``True`` when a token was issued and the header set; ``False``
            when no token is available, in which case ``oauth.error`` is set
            on the context properties and the pipeline should stop the flow.
        """
        token = self.fetch_token(context)
        if token is None:
            context.properties[ERROR_PROPERTY] = TOKEN_UNAVAILABLE
            self._sink.emit(DiagnosticEvent(
                "mediation_failed",
                "No access token available; message left without credentials",
                {"header": self._config.header_name},
            ))
            return False

        context.headers[self._config.header_name] = f"Bearer {token.access_token}"
        context.properties[TOKEN_RESPONSE_PROPERTY] = token
        context.properties.pop(ERROR_PROPERTY, None)
        return True
