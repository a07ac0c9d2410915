"""
Pytest configuration and fixtures for the calendar tools.

The Google discovery resource is replaced by a ``MagicMock`` so every test
can inspect the exact request that would have been sent.
"""

from unittest.mock import MagicMock

import pytest

from calendar_mcp.calendar_service import GoogleCalendarService
from calendar_mcp.config import Settings
from calendar_mcp.operations import CalendarOperations

SERVER_ENV = {
    "GOOGLE_CLIENT_ID": "client-id-123",
    "GOOGLE_CLIENT_SECRET": "client-secret-456",
    "GOOGLE_REDIRECT_URI": "http://localhost:3000/oauth2callback",
    "GOOGLE_REFRESH_TOKEN": "refresh-token-789",
}


@pytest.fixture
def settings():
    return Settings(
        client_id=SERVER_ENV["GOOGLE_CLIENT_ID"],
        client_secret=SERVER_ENV["GOOGLE_CLIENT_SECRET"],
        redirect_uri=SERVER_ENV["GOOGLE_REDIRECT_URI"],
        refresh_token=SERVER_ENV["GOOGLE_REFRESH_TOKEN"],
    )


@pytest.fixture
def google_service():
    """Mock of ``build('calendar', 'v3')``; configure ``events.return_value``."""
    return MagicMock()


@pytest.fixture
def events_api(google_service):
    return google_service.events.return_value


@pytest.fixture
def calendar_api(google_service):
    return GoogleCalendarService(service=google_service)


@pytest.fixture
def operations(settings, calendar_api):
    return CalendarOperations(settings, calendar_api)


@pytest.fixture
def server_env(monkeypatch):
    for name, value in SERVER_ENV.items():
        monkeypatch.setenv(name, value)
    for name in (
        "GOOGLE_CALENDAR_ID",
        "GOOGLE_CALENDAR_TIMEZONE",
        "GOOGLE_API_TIMEOUT",
        "MCP_GOOGLE_CAL_HOST",
        "MCP_GOOGLE_CAL_PORT",
        "MCP_GOOGLE_CAL_AUTH_PORT",
    ):
        monkeypatch.delenv(name, raising=False)
    return dict(SERVER_ENV)
