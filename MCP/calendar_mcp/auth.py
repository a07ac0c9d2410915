"""OAuth credential management for the Google Calendar MCP server."""

from __future__ import annotations

from typing import Any, Iterable

from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow, InstalledAppFlow

from .config import CALENDAR_SCOPES, GOOGLE_TOKEN_URI, Settings

GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"


def build_credentials(settings: Settings, scopes: Iterable[str] = CALENDAR_SCOPES) -> Credentials:
    """
    Create user credentials from the configured refresh token.

    No access token is fetched here; the transport refreshes it on the first
    request, so a revoked token surfaces as an API-call failure.
    """
    if not settings.refresh_token:
        raise ValueError("A refresh token is required to build calendar credentials.")
    return Credentials(
        token=None,
        refresh_token=settings.refresh_token,
        client_id=settings.client_id,
        client_secret=settings.client_secret,
        token_uri=GOOGLE_TOKEN_URI,
        scopes=list(scopes),
    )


def client_config(settings: Settings) -> dict[str, Any]:
    """Client secrets in the ``installed`` layout the oauthlib flows expect."""
    return {
        "installed": {
            "client_id": settings.client_id,
            "client_secret": settings.client_secret,
            "auth_uri": GOOGLE_AUTH_URI,
            "token_uri": GOOGLE_TOKEN_URI,
            "redirect_uris": [settings.redirect_uri],
        }
    }


class RefreshTokenExchange:
    """Copy/paste authorization-code exchange that yields a refresh token."""

    def __init__(self, settings: Settings, scopes: Iterable[str] = CALENDAR_SCOPES) -> None:
        self._flow = Flow.from_client_config(
            client_config(settings),
            scopes=list(scopes),
            redirect_uri=settings.redirect_uri,
        )

    def authorization_url(self) -> str:
        # Offline access plus a forced consent screen is what makes Google
        # return a refresh token on every run.
        url, _state = self._flow.authorization_url(access_type="offline", prompt="consent")
        return url

    def exchange(self, code: str) -> str | None:
        """Trade the pasted authorization code for tokens, returning the refresh token."""
        self._flow.fetch_token(code=code.strip())
        return self._flow.credentials.refresh_token


def run_local_server_authorization(
    settings: Settings,
    redirect_port: int,
    scopes: Iterable[str] = CALENDAR_SCOPES,
) -> str | None:
    """Loopback variant of the exchange for clients registered as desktop apps."""
    flow = InstalledAppFlow.from_client_config(client_config(settings), list(scopes))
    creds = flow.run_local_server(
        host="localhost",
        port=redirect_port,
        authorization_prompt_message="Authorize access to Google Calendar: {url}",
        success_message="Authorization completed. You may close this tab.",
        access_type="offline",
        prompt="consent",
    )
    return creds.refresh_token
