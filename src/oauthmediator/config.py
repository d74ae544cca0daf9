"""Configuration loading and credential source resolution.

This module turns what the surrounding pipeline (or an operator) supplies
into a ready-to-send :class:`~oauthmediator.models.TokenRequest`:

* **Config files** -- :func:`load_mediator_config` reads a JSON file into a
  :class:`~oauthmediator.models.MediatorConfig`.
* **Precedence** -- :func:`merge_overrides` layers explicit values (CLI
  flags) over file values, which in turn sit over model defaults.
* **Credential resolution** -- :func:`resolve_credential` reads values from
  env vars, files, or message context properties, and passes anything else
  through as a literal.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Mapping, Optional

from oauthmediator.exceptions import ConfigError
from oauthmediator.models import MediatorConfig, TokenRequest


# --- Config files ---


def load_mediator_config(path: str | Path) -> MediatorConfig:
    """Load and validate a mediator configuration from a JSON file.

    Args:
        path: Location of the JSON file.

    Returns:
        The deserialised :class:`~oauthmediator.models.MediatorConfig`.

    Raises:
        ConfigError: If the file does not exist, contains invalid JSON, or
            fails Pydantic validation.
    """
    path = Path(path).expanduser()
    if not path.is_file():
        raise ConfigError(f"Mediator config not found at {path}")
    try:
        text = path.read_text(encoding="utf-8")
        data = json.loads(text)
        return MediatorConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid mediator config at {path}: {exc}") from exc


def merge_overrides(
    config: Optional[MediatorConfig], **overrides: Any
) -> MediatorConfig:
    """Apply non-``None`` *overrides* on top of *config*.

    Precedence (high to low):
        1. Explicit overrides (CLI flags)
        2. Values from *config* (config file)
        3. Model defaults

    Raises:
        ConfigError: If required fields are still missing after merging.
    """
    data: dict[str, Any] = config.model_dump() if config is not None else {}
    data.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return MediatorConfig.model_validate(data)
    except ValueError as exc:
        raise ConfigError(f"Incomplete mediator configuration: {exc}") from exc


# --- Credential source resolution ---


def resolve_credential(
    source: str, properties: Optional[Mapping[str, Any]] = None
) -> str:
    """Resolve a configuration value from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace
        - ``"property:NAME"`` -- reads ``properties["NAME"]`` from the
          message context
        - anything else -- returned unchanged

    Args:
        source: The source descriptor string.
        properties: Message context properties for ``property:`` lookups.

    Returns:
        The resolved string.

    Raises:
        ConfigError: If the source can't be resolved.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigError(
                f"Environment variable '{var_name}' is not set (source: {source})"
            )
        return value

    if source.startswith("file:"):
        file_path = source[5:]
        path = Path(file_path).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc

    if source.startswith("property:"):
        name = source[9:]
        if properties is None or properties.get(name) is None:
            raise ConfigError(
                f"Message context property '{name}' is not set (source: {source})"
            )
        return str(properties[name])

    return source


def _resolve_optional(
    source: Optional[str], properties: Optional[Mapping[str, Any]]
) -> Optional[str]:
    if source is None:
        return None
    return resolve_credential(source, properties)


def build_token_request(
    config: MediatorConfig, properties: Optional[Mapping[str, Any]] = None
) -> TokenRequest:
    """Resolve every field of *config* into a :class:`TokenRequest`.

    Args:
        config: The mediator configuration (values may be source descriptors).
        properties: Message context properties for ``property:`` lookups.

    Returns:
        A fully resolved token request.

    Raises:
        ConfigError: If any source descriptor can't be resolved.
    """
    return TokenRequest(
        endpoint=resolve_credential(config.token_endpoint, properties),
        consumer_key=resolve_credential(config.api_key, properties),
        consumer_secret=resolve_credential(config.api_secret, properties),
        username=_resolve_optional(config.username, properties),
        password=_resolve_optional(config.password, properties),
        grant_type=resolve_credential(config.grant_type, properties),
        scope=_resolve_optional(config.scope, properties),
    )
