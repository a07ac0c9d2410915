"""CLI entry point for the Google Calendar MCP server."""

from __future__ import annotations

import argparse
import json
import os
import sys

import uvicorn
from dotenv import find_dotenv, load_dotenv
from loguru import logger

from .authorize import main as authorize_main
from .config import (
    DEFAULT_HTTP_PREFIX,
    ConfigurationMissingError,
    Settings,
    listen_address,
    load_settings,
)
from .operations import Operation
from .server import build_operations, create_app, create_mcp_server


def build_parser() -> argparse.ArgumentParser:
    # Resolved here rather than at import so values from .env apply.
    default_host, default_port = listen_address()

    parser = argparse.ArgumentParser(
        prog="python -m calendar_mcp",
        description="Run the Google Calendar MCP server, a single tool call, or the authorization helper.",
    )
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("serve", help="Serve MCP over stdin/stdout (default).")

    call_parser = subparsers.add_parser(
        "call",
        help="Run one operation and print its JSON result.",
    )
    call_parser.add_argument(
        "operation",
        help=f"Operation name: {', '.join(op.value for op in Operation)}.",
    )
    call_parser.add_argument(
        "arguments",
        nargs="?",
        default="{}",
        help="JSON object with the operation arguments (default: {}).",
    )

    http_parser = subparsers.add_parser(
        "http",
        help="Serve the operations as JSON endpoints plus the MCP SSE transport.",
    )
    http_parser.add_argument(
        "--host",
        default=default_host,
        help=f"Host interface to bind (default: {default_host}).",
    )
    http_parser.add_argument(
        "--port",
        type=int,
        default=default_port,
        help=f"TCP port to listen on (default: {default_port}).",
    )
    http_parser.add_argument(
        "--prefix",
        default=DEFAULT_HTTP_PREFIX,
        help=f"Path prefix for the JSON endpoints (default: {DEFAULT_HTTP_PREFIX}).",
    )

    authorize_parser = subparsers.add_parser(
        "authorize",
        help="Exchange an OAuth authorization code for a refresh token.",
    )
    authorize_parser.add_argument(
        "--local-server",
        action="store_true",
        help="Receive the code on a loopback redirect instead of pasting it.",
    )

    return parser


def configure_logging(level: str | None = None) -> None:
    # stdout carries the MCP stream and `call` output, so logs go to stderr only.
    logger.remove()
    logger.add(sys.stderr, level=(level or os.getenv("LOG_LEVEL") or "INFO").upper())


def _load_settings_or_exit() -> Settings:
    try:
        settings = load_settings()
    except ConfigurationMissingError as exc:
        logger.error(str(exc))
        raise SystemExit(1) from exc
    except ValueError as exc:
        logger.error(f"Invalid configuration: {exc}")
        raise SystemExit(1) from exc
    logger.info(f"Starting server with env vars: {settings.redacted()}")
    return settings


def run_call(operation: str, raw_arguments: str) -> int:
    settings = _load_settings_or_exit()
    try:
        arguments = json.loads(raw_arguments)
    except json.JSONDecodeError as exc:
        print(f"Error: arguments are not valid JSON: {exc}", file=sys.stderr)
        return 1

    try:
        result = build_operations(settings).call(operation, arguments)
    except Exception as exc:  # noqa: BLE001 - every failure maps to exit status 1
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(result.model_dump_json(indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    load_dotenv(find_dotenv(usecwd=True))
    configure_logging()

    try:
        parser = build_parser()
    except ValueError as exc:
        logger.error(f"Invalid configuration: {exc}")
        return 1
    args = parser.parse_args(argv)

    command = args.command or "serve"

    if command == "authorize":
        return authorize_main(local_server=args.local_server)

    if command == "call":
        return run_call(args.operation, args.arguments)

    settings = _load_settings_or_exit()
    operations = build_operations(settings)

    if command == "http":
        calendar_server = create_mcp_server(operations, host=args.host)
        uvicorn.run(
            create_app(operations, calendar_server, prefix=args.prefix),
            host=args.host,
            port=args.port,
            log_level="info",
        )
        return 0

    logger.info("Google Calendar MCP Server running on stdio")
    create_mcp_server(operations).run(transport="stdio")
    return 0


if __name__ == "__main__":
    sys.exit(main())
