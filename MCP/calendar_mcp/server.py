"""Definition of the Google Calendar MCP server and its HTTP wrapper."""

from __future__ import annotations

import json
from typing import Any, Awaitable, Callable

import anyio
from loguru import logger
from mcp.server.fastmcp import FastMCP
from starlette.applications import Starlette
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Mount, Route

from .auth import build_credentials
from .calendar_service import GoogleCalendarService, UpstreamFailureError
from .config import DEFAULT_HTTP_PREFIX, Settings
from .models import InvalidInputError
from .operations import (
    OPERATION_DESCRIPTIONS,
    CalendarOperations,
    Operation,
    UnknownOperationError,
    tool_definitions,
)

SERVER_NAME = "google-calendar-server"

INSTRUCTIONS = (
    "Tools that let you browse, create, update, and delete Google Calendar events "
    "and find free time slots for the authorized Google account. Times are ISO-8601 "
    "strings; find_free_time takes a duration in minutes."
)


def build_operations(settings: Settings) -> CalendarOperations:
    """Wire credentials, the API wrapper and the dispatcher from one settings object."""
    calendar_api = GoogleCalendarService(
        build_credentials(settings),
        timeout=settings.api_timeout,
    )
    return CalendarOperations(settings, calendar_api)


def create_mcp_server(operations: CalendarOperations, host: str | None = None) -> FastMCP:
    """
    Register one MCP tool per :class:`Operation`.

    Tool parameters keep the camelCase wire names. Every tool forwards to
    ``operations.call`` in a worker thread; a raised exception becomes a
    failed tool result and the server keeps serving.
    """
    server_settings: dict[str, Any] = {"host": host} if host else {}
    calendar_server = FastMCP(SERVER_NAME, instructions=INSTRUCTIONS, **server_settings)

    async def run(operation: Operation, arguments: dict[str, Any]) -> str:
        supplied = {key: value for key, value in arguments.items() if value is not None}
        try:
            result = await anyio.to_thread.run_sync(operations.call, operation.value, supplied)
        except Exception as exc:
            logger.error(f"Error executing tool {operation.value}: {exc}")
            raise
        return result.text

    async def list_events(
        timeMin: str | None = None,
        timeMax: str | None = None,
        maxResults: int | None = None,
    ) -> str:
        """
        List events ordered by start time.

        Args:
            timeMin: Start time (ISO string). Defaults to now.
            timeMax: End time (ISO string).
            maxResults: Maximum number of events to return. Defaults to 10.
        """
        return await run(
            Operation.LIST_EVENTS,
            {"timeMin": timeMin, "timeMax": timeMax, "maxResults": maxResults},
        )

    async def create_event(
        summary: str,
        startTime: str,
        endTime: str,
        description: str | None = None,
        attendees: list[str] | None = None,
    ) -> str:
        return await run(
            Operation.CREATE_EVENT,
            {
                "summary": summary,
                "startTime": startTime,
                "endTime": endTime,
                "description": description,
                "attendees": attendees,
            },
        )

    async def update_event(
        eventId: str,
        summary: str | None = None,
        description: str | None = None,
        startTime: str | None = None,
        endTime: str | None = None,
    ) -> str:
        """Fields left out keep the existing event's values."""
        return await run(
            Operation.UPDATE_EVENT,
            {
                "eventId": eventId,
                "summary": summary,
                "description": description,
                "startTime": startTime,
                "endTime": endTime,
            },
        )

    async def delete_event(eventId: str) -> str:
        return await run(Operation.DELETE_EVENT, {"eventId": eventId})

    async def find_free_time(timeMin: str, timeMax: str, duration: int) -> str:
        """
        Find gaps of at least ``duration`` minutes between timeMin and timeMax.

        Args:
            timeMin: Start of time range (ISO string).
            timeMax: End of time range (ISO string).
            duration: Desired duration in minutes.
        """
        return await run(
            Operation.FIND_FREE_TIME,
            {"timeMin": timeMin, "timeMax": timeMax, "duration": duration},
        )

    tools: dict[Operation, Callable[..., Awaitable[str]]] = {
        Operation.LIST_EVENTS: list_events,
        Operation.CREATE_EVENT: create_event,
        Operation.UPDATE_EVENT: update_event,
        Operation.DELETE_EVENT: delete_event,
        Operation.FIND_FREE_TIME: find_free_time,
    }
    unregistered = set(Operation) - set(tools)
    if unregistered:
        raise RuntimeError(f"No tool registered for: {sorted(op.value for op in unregistered)}")

    for operation, tool in tools.items():
        calendar_server.add_tool(
            tool,
            name=operation.value,
            description=OPERATION_DESCRIPTIONS[operation],
        )

    return calendar_server


def _error_response(status_code: int, kind: str, exc: Exception, **extra: Any) -> JSONResponse:
    return JSONResponse({"error": str(exc), "kind": kind, **extra}, status_code=status_code)


def create_app(
    operations: CalendarOperations,
    calendar_server: FastMCP | None = None,
    prefix: str = DEFAULT_HTTP_PREFIX,
) -> Starlette:
    """
    Return a Starlette app exposing the operations as JSON endpoints.

    ``GET {prefix}/tools`` lists the tool definitions and
    ``POST {prefix}/{operation}`` runs one operation with the JSON body as its
    arguments. When ``calendar_server`` is given, its SSE app is mounted
    underneath, serving ``/sse`` and ``/messages/``.
    """
    prefix = "/" + prefix.strip("/") if prefix.strip("/") else ""

    async def list_tools_endpoint(request: Request) -> JSONResponse:
        return JSONResponse({"tools": tool_definitions()})

    async def call_operation(request: Request) -> JSONResponse:
        name = request.path_params["operation"]
        body = await request.body()
        try:
            arguments = json.loads(body) if body else {}
        except json.JSONDecodeError as exc:
            return _error_response(400, "InvalidInput", exc, field="body")

        try:
            result = await run_in_threadpool(operations.call, name, arguments)
        except InvalidInputError as exc:
            return _error_response(400, "InvalidInput", exc, field=exc.field)
        except UnknownOperationError as exc:
            return _error_response(404, "UnknownOperation", exc)
        except UpstreamFailureError as exc:
            status = exc.status if exc.status and 400 <= exc.status < 600 else 502
            return _error_response(status, "UpstreamFailure", exc)

        return JSONResponse(result.model_dump())

    routes: list[Any] = [
        Route(f"{prefix}/tools", list_tools_endpoint, methods=["GET"]),
        Route(f"{prefix}/{{operation}}", call_operation, methods=["POST"]),
    ]
    if calendar_server is not None:
        routes.append(Mount("/", app=calendar_server.sse_app()))

    return Starlette(routes=routes)
