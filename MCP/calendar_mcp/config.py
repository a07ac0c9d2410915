"""Common configuration for the Google Calendar MCP server."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

# OAuth scopes that the server needs.
CALENDAR_SCOPES = [
    "https://www.googleapis.com/auth/calendar",
    "https://www.googleapis.com/auth/calendar.events",
]

GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"

# Out-of-band redirect used by the copy/paste authorization helper.
OOB_REDIRECT_URI = "urn:ietf:wg:oauth:2.0:oob"

# Fallbacks for MCP_GOOGLE_CAL_AUTH_PORT, MCP_GOOGLE_CAL_HOST and MCP_GOOGLE_CAL_PORT.
DEFAULT_AUTH_REDIRECT_PORT = 8080
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 9079
DEFAULT_HTTP_PREFIX = "/api/calendar"

REQUIRED_SERVER_VARS = (
    "GOOGLE_CLIENT_ID",
    "GOOGLE_CLIENT_SECRET",
    "GOOGLE_REDIRECT_URI",
    "GOOGLE_REFRESH_TOKEN",
)

REQUIRED_AUTHORIZE_VARS = (
    "GOOGLE_CLIENT_ID",
    "GOOGLE_CLIENT_SECRET",
)


class ConfigurationMissingError(RuntimeError):
    """Raised when required startup configuration is absent."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__(
            f"Missing required environment variables: {', '.join(self.missing)}"
        )


@dataclass(frozen=True, slots=True)
class Settings:
    """Process configuration, built once at startup and passed explicitly."""

    client_id: str
    client_secret: str
    redirect_uri: str
    refresh_token: str | None = None
    calendar_id: str = "primary"
    time_zone: str = "UTC"
    api_timeout: float = 30.0

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.time_zone)

    def redacted(self) -> dict[str, object]:
        return {
            "clientId": self.client_id[:5] + "...",
            "clientSecret": self.client_secret[:5] + "...",
            "redirectUri": self.redirect_uri,
            "hasRefreshToken": bool(self.refresh_token),
        }


def _missing(environ: Mapping[str, str], names: tuple[str, ...]) -> list[str]:
    return [name for name in names if not environ.get(name)]


def _port(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name) or str(default)
    try:
        port = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer port, got {raw!r}") from exc
    if not 0 <= port <= 65535:
        raise ValueError(f"{name} must be between 0 and 65535, got {port}")
    return port


def listen_address(environ: Mapping[str, str] | None = None) -> tuple[str, int]:
    """Host and port for the HTTP wrapper, read when called so ``.env`` values apply."""
    if environ is None:
        environ = os.environ
    host = environ.get("MCP_GOOGLE_CAL_HOST") or DEFAULT_HOST
    return host, _port(environ, "MCP_GOOGLE_CAL_PORT", DEFAULT_PORT)


def auth_redirect_port(environ: Mapping[str, str] | None = None) -> int:
    """Port the loopback OAuth helper listens on."""
    if environ is None:
        environ = os.environ
    return _port(environ, "MCP_GOOGLE_CAL_AUTH_PORT", DEFAULT_AUTH_REDIRECT_PORT)


def load_settings(
    environ: Mapping[str, str] | None = None,
    *,
    require_refresh_token: bool = True,
) -> Settings:
    """
    Build :class:`Settings` from environment variables.

    Args:
        environ: Mapping to read from. Defaults to ``os.environ``.
        require_refresh_token: When False only the client id and secret are
            required, which is all the authorization helper needs.

    Raises:
        ConfigurationMissingError: If any required variable is unset or empty.
        ValueError: If an optional variable holds an unusable value.
    """
    if environ is None:
        environ = os.environ

    required = REQUIRED_SERVER_VARS if require_refresh_token else REQUIRED_AUTHORIZE_VARS
    missing = _missing(environ, required)
    if missing:
        raise ConfigurationMissingError(missing)

    time_zone = environ.get("GOOGLE_CALENDAR_TIMEZONE") or "UTC"
    try:
        ZoneInfo(time_zone)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown time zone in GOOGLE_CALENDAR_TIMEZONE: {time_zone}") from exc

    timeout_raw = environ.get("GOOGLE_API_TIMEOUT") or "30"
    try:
        api_timeout = float(timeout_raw)
    except ValueError as exc:
        raise ValueError(f"GOOGLE_API_TIMEOUT must be a number, got {timeout_raw!r}") from exc
    if api_timeout <= 0:
        raise ValueError("GOOGLE_API_TIMEOUT must be positive.")

    return Settings(
        client_id=environ["GOOGLE_CLIENT_ID"],
        client_secret=environ["GOOGLE_CLIENT_SECRET"],
        redirect_uri=environ.get("GOOGLE_REDIRECT_URI") or OOB_REDIRECT_URI,
        refresh_token=environ.get("GOOGLE_REFRESH_TOKEN") or None,
        calendar_id=environ.get("GOOGLE_CALENDAR_ID") or "primary",
        time_zone=time_zone,
        api_timeout=api_timeout,
    )
