"""Command-line helper that exchanges an authorization code for a refresh token."""

from __future__ import annotations

import sys
from typing import Callable, TextIO

from dotenv import find_dotenv, load_dotenv
from loguru import logger

from .auth import RefreshTokenExchange, run_local_server_authorization
from .config import ConfigurationMissingError, auth_redirect_port, load_settings


def main(
    *,
    local_server: bool = False,
    read_code: Callable[[str], str] = input,
    out: TextIO | None = None,
) -> int:
    out = out or sys.stdout

    try:
        settings = load_settings(require_refresh_token=False)
        redirect_port = auth_redirect_port()
    except ConfigurationMissingError as exc:
        logger.error(str(exc))
        return 1
    except ValueError as exc:
        logger.error(f"Invalid configuration: {exc}")
        return 1

    try:
        if local_server:
            refresh_token = run_local_server_authorization(settings, redirect_port)
        else:
            exchange = RefreshTokenExchange(settings)
            print("\nOpen the following URL in your browser and complete the authorization:\n", file=out)
            print(exchange.authorization_url(), file=out)
            print("\nAfter authorizing, paste the code below.\n", file=out)
            code = read_code("Authorization code: ")
            refresh_token = exchange.exchange(code)
    except Exception as exc:  # noqa: BLE001 - report any oauthlib/transport failure
        logger.error(f"Failed to exchange the authorization code for tokens: {exc}")
        return 1

    if not refresh_token:
        logger.warning(
            "No refresh_token was returned. Revoke the app's access and retry; "
            "the request already asks for offline access with a consent prompt."
        )
        return 1

    print("\nYour new refresh token is:\n", file=out)
    print(refresh_token, file=out)
    print("\nSave this token in your .env as GOOGLE_REFRESH_TOKEN.", file=out)
    return 0


if __name__ == "__main__":
    load_dotenv(find_dotenv(usecwd=True))
    sys.exit(main())
