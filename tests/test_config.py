"""Tests for startup configuration."""

import pytest

from calendar_mcp.config import (
    DEFAULT_AUTH_REDIRECT_PORT,
    DEFAULT_HOST,
    DEFAULT_PORT,
    OOB_REDIRECT_URI,
    ConfigurationMissingError,
    auth_redirect_port,
    listen_address,
    load_settings,
)

from conftest import SERVER_ENV


def test_load_settings_from_mapping():
    settings = load_settings(dict(SERVER_ENV, GOOGLE_CALENDAR_TIMEZONE="America/New_York"))

    assert settings.client_id == "client-id-123"
    assert settings.refresh_token == "refresh-token-789"
    assert settings.calendar_id == "primary"
    assert settings.time_zone == "America/New_York"
    assert settings.api_timeout == 30.0


def test_missing_variables_are_listed():
    environ = dict(SERVER_ENV)
    del environ["GOOGLE_REDIRECT_URI"]
    environ["GOOGLE_REFRESH_TOKEN"] = ""

    with pytest.raises(ConfigurationMissingError) as excinfo:
        load_settings(environ)

    assert excinfo.value.missing == ["GOOGLE_REDIRECT_URI", "GOOGLE_REFRESH_TOKEN"]
    assert "GOOGLE_REDIRECT_URI, GOOGLE_REFRESH_TOKEN" in str(excinfo.value)


def test_authorize_only_needs_client_credentials():
    settings = load_settings(
        {"GOOGLE_CLIENT_ID": "id", "GOOGLE_CLIENT_SECRET": "secret"},
        require_refresh_token=False,
    )

    assert settings.refresh_token is None
    assert settings.redirect_uri == OOB_REDIRECT_URI


@pytest.mark.parametrize(
    "name, value",
    [
        ("GOOGLE_CALENDAR_TIMEZONE", "Mars/Olympus_Mons"),
        ("GOOGLE_API_TIMEOUT", "soon"),
        ("GOOGLE_API_TIMEOUT", "0"),
    ],
)
def test_invalid_optional_values(name, value):
    with pytest.raises(ValueError):
        load_settings(dict(SERVER_ENV, **{name: value}))


def test_redacted_summary_hides_secrets(settings):
    summary = settings.redacted()

    assert summary["clientSecret"] == "clien..."
    assert summary["hasRefreshToken"] is True
    assert "refresh-token-789" not in str(summary)


def test_listen_address_defaults():
    assert listen_address({}) == (DEFAULT_HOST, DEFAULT_PORT)
    assert auth_redirect_port({}) == DEFAULT_AUTH_REDIRECT_PORT


def test_listen_address_from_environment():
    environ = {"MCP_GOOGLE_CAL_HOST": "0.0.0.0", "MCP_GOOGLE_CAL_PORT": "9555", "MCP_GOOGLE_CAL_AUTH_PORT": "8181"}

    assert listen_address(environ) == ("0.0.0.0", 9555)
    assert auth_redirect_port(environ) == 8181


def test_listen_address_reads_environment_when_called(monkeypatch):
    monkeypatch.setenv("MCP_GOOGLE_CAL_PORT", "9556")

    assert listen_address()[1] == 9556


@pytest.mark.parametrize("value", ["http", "9.5", "-1", "70000"])
def test_malformed_port_names_the_variable(value):
    with pytest.raises(ValueError, match="MCP_GOOGLE_CAL_PORT"):
        listen_address({"MCP_GOOGLE_CAL_PORT": value})
