"""Diagnostic events and the sinks that receive them.

The token client never talks to a logger directly. It builds a
:class:`DiagnosticEvent` for each step of the exchange and hands it to a
:class:`DiagnosticSink`. Three sinks ship with the package:

* :class:`LoggingSink` -- the default; writes each event to the standard
  :mod:`logging` logger ``oauthmediator.client`` at DEBUG level.
* :class:`CollectingSink` -- keeps events in a list so callers and tests can
  inspect what happened.
* :class:`NullSink` -- drops everything.

Any object with an ``emit(event)`` method satisfies the protocol; the CLI
uses one that forwards to :meth:`~oauthmediator.output.OutputManager.debug`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, runtime_checkable

logger = logging.getLogger("oauthmediator.client")


@dataclass(frozen=True)
class DiagnosticEvent:
    """A single step of a token exchange.

    Attributes:
        name: Stable event identifier (e.g. ``"token_response_received"``).
        message: Human-readable description.
        fields: Structured details such as ``endpoint`` or ``status_code``.
    """

    name: str
    message: str
    fields: dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class DiagnosticSink(Protocol):
    """Receiver of :class:`DiagnosticEvent` instances."""

    def emit(self, event: DiagnosticEvent) -> None: ...


class LoggingSink:
    """Write events to a :class:`logging.Logger` at DEBUG level.

    Args:
        log: Logger to write to. Defaults to ``oauthmediator.client``.
    """

    def __init__(self, log: Optional[logging.Logger] = None) -> None:
        self._log = log or logger

    def emit(self, event: DiagnosticEvent) -> None:
        if self._log.isEnabledFor(logging.DEBUG):
            self._log.debug(
                "%s: %s",
                event.name,
                event.message,
                extra={"event": event.name, "event_fields": event.fields},
            )


class CollectingSink:
    """Record every event in :attr:`events`."""

    def __init__(self) -> None:
        self.events: list[DiagnosticEvent] = []

    def emit(self, event: DiagnosticEvent) -> None:
        self.events.append(event)

    def names(self) -> list[str]:
        """Event names in emission order."""
        return [e.name for e in self.events]

    def find(self, name: str) -> Optional[DiagnosticEvent]:
        """Return the first event called *name*, or ``None``."""
        for event in self.events:
            if event.name == name:
                return event
        return None


class NullSink:
    """Discard every event."""

    def emit(self, event: DiagnosticEvent) -> None:
        pass


def default_sink() -> DiagnosticSink:
    """Return the sink used when a caller does not supply one."""
    return LoggingSink()
