"""Configuration helpers for the skynet-utils CLI."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from skynet_utils.transport import (
    API_KEY_ENV_VAR,
    DEFAULT_PORTAL_URL,
    PORTAL_URL_ENV_VAR,
    normalize_portal_url,
)

DEFAULT_CONFIG_PATH = Path.home() / ".skynet_utils" / "config.toml"


@dataclass(frozen=True)
class CLIConfig:
    portal_url: str = DEFAULT_PORTAL_URL
    api_key: str | None = None
    user_agent: str | None = None
    timeout: float = 30.0
    retries: int = 2


class ConfigError(ValueError):
    """Raised when CLI config is invalid."""


def _load_toml(path: Path) -> dict[str, Any]:
    raw = path.read_text(encoding="utf-8")

    try:  # Python 3.11+
        import tomllib  # type: ignore[attr-defined]
        try:
            return tomllib.loads(raw)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"invalid TOML in {path}: {exc}") from exc
    except ModuleNotFoundError:
        try:
            import tomli
        except ModuleNotFoundError as exc:
            raise ConfigError("toml parser unavailable; install tomli for Python < 3.11") from exc
        try:
            return tomli.loads(raw)
        except tomli.TOMLDecodeError as exc:
            raise ConfigError(f"invalid TOML in {path}: {exc}") from exc


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value).strip() or None


def load_cli_config(path: str | Path | None = None) -> CLIConfig:
    config_path = Path(path) if path else DEFAULT_CONFIG_PATH
    parsed: dict[str, Any] = _load_toml(config_path) if config_path.exists() else {}

    section = parsed.get("cli")
    if isinstance(section, dict):
        source = section
    elif section is None:
        source = parsed
    else:
        raise ConfigError("[cli] must be a table")

    env_portal_url = os.getenv(PORTAL_URL_ENV_VAR)
    configured_portal_url = str(source.get("portal_url", DEFAULT_PORTAL_URL)).strip()
    portal_url = env_portal_url.strip() if env_portal_url else configured_portal_url
    if not portal_url:
        raise ConfigError("portal_url must not be empty")

    env_api_key = os.getenv(API_KEY_ENV_VAR)
    api_key = _optional_str(env_api_key) if env_api_key else _optional_str(source.get("api_key"))

    try:
        timeout = float(source.get("timeout", 30.0))
    except (TypeError, ValueError) as exc:
        raise ConfigError("timeout must be a number") from exc
    if timeout <= 0:
        raise ConfigError("timeout must be positive")

    retries = source.get("retries", 2)
    if isinstance(retries, bool) or not isinstance(retries, int) or retries < 0:
        raise ConfigError("retries must be a non-negative integer")

    return CLIConfig(
        portal_url=normalize_portal_url(portal_url),
        api_key=api_key,
        user_agent=_optional_str(source.get("user_agent")),
        timeout=timeout,
        retries=retries,
    )
