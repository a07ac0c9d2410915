"""Dispatch of named calendar operations onto the Google Calendar service."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Mapping

from loguru import logger

from .calendar_service import GoogleCalendarService, event_time
from .config import Settings
from .free_time import busy_intervals_from_events, find_free_time
from .models import (
    CreateEventInput,
    DeleteEventInput,
    EventOutput,
    FindFreeTimeInput,
    InvalidInputError,
    ListEventsInput,
    ToolInput,
    ToolResult,
    UpdateEventInput,
)

# Google's ceiling for a single events.list page.
BUSY_EVENTS_LIMIT = 2500


class UnknownOperationError(LookupError):
    """Raised when a tool name is not one of :class:`Operation`."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown tool: {name}")


class Operation(str, Enum):
    LIST_EVENTS = "list_events"
    CREATE_EVENT = "create_event"
    UPDATE_EVENT = "update_event"
    DELETE_EVENT = "delete_event"
    FIND_FREE_TIME = "find_free_time"

    @classmethod
    def parse(cls, name: str) -> Operation:
        try:
            return cls(name)
        except ValueError:
            raise UnknownOperationError(name) from None


OPERATION_INPUTS: dict[Operation, type[ToolInput]] = {
    Operation.LIST_EVENTS: ListEventsInput,
    Operation.CREATE_EVENT: CreateEventInput,
    Operation.UPDATE_EVENT: UpdateEventInput,
    Operation.DELETE_EVENT: DeleteEventInput,
    Operation.FIND_FREE_TIME: FindFreeTimeInput,
}

OPERATION_DESCRIPTIONS: dict[Operation, str] = {
    Operation.LIST_EVENTS: "List calendar events within a specified time range",
    Operation.CREATE_EVENT: "Create a new calendar event",
    Operation.UPDATE_EVENT: "Update an existing calendar event",
    Operation.DELETE_EVENT: "Delete a calendar event",
    Operation.FIND_FREE_TIME: "Find available time slots in the calendar",
}


def tool_definitions() -> list[dict[str, Any]]:
    """Name, description and JSON input schema for every operation."""
    return [
        {
            "name": operation.value,
            "description": OPERATION_DESCRIPTIONS[operation],
            "inputSchema": OPERATION_INPUTS[operation].tool_schema(),
        }
        for operation in Operation
    ]


class CalendarOperations:
    """Validates tool arguments and maps each operation to calendar calls."""

    def __init__(self, settings: Settings, calendar_api: GoogleCalendarService) -> None:
        self._settings = settings
        self._calendar_api = calendar_api
        self._handlers: dict[Operation, Callable[[Any], ToolResult]] = {
            Operation.LIST_EVENTS: self.list_events,
            Operation.CREATE_EVENT: self.create_event,
            Operation.UPDATE_EVENT: self.update_event,
            Operation.DELETE_EVENT: self.delete_event,
            Operation.FIND_FREE_TIME: self.find_free_time,
        }
        unhandled = set(Operation) - set(self._handlers)
        if unhandled:
            raise RuntimeError(f"No handler registered for: {sorted(op.value for op in unhandled)}")

    @property
    def calendar_id(self) -> str:
        return self._settings.calendar_id

    def call(self, name: str, arguments: Mapping[str, Any] | None = None) -> ToolResult:
        operation = Operation.parse(name)
        request = OPERATION_INPUTS[operation].parse_arguments(arguments)
        logger.debug(f"Running {operation.value} on calendar '{self.calendar_id}'")
        return self._handlers[operation](request)

    def list_events(self, request: ListEventsInput) -> ToolResult:
        time_min = self._localize(request.time_min) or datetime.now(timezone.utc)
        events = self._calendar_api.list_events(
            calendar_id=self.calendar_id,
            max_results=request.max_results,
            time_min=time_min,
            time_max=self._localize(request.time_max),
        )

        formatted = "\n\n".join(
            f"• {event.get('summary')}\n"
            f"  Start: {event_time(event.get('start'))}\n"
            f"  End: {event_time(event.get('end'))}\n"
            f"  ID: {event.get('id')}"
            for event in events
        )
        text = (
            f"Found {len(events)} events:\n\n{formatted}"
            if events
            else "No events found in the specified time range."
        )
        logger.info(f"Fetched {len(events)} events from calendar '{self.calendar_id}'.")
        return ToolResult(
            text=text,
            data=[EventOutput.from_google(event).model_dump(by_alias=True) for event in events],
        )

    def create_event(self, request: CreateEventInput) -> ToolResult:
        body: dict[str, Any] = {
            "summary": request.summary,
            "start": self._event_boundary(request.start_time),
            "end": self._event_boundary(request.end_time),
        }
        if request.description is not None:
            body["description"] = request.description
        if request.attendees:
            body["attendees"] = [{"email": email} for email in request.attendees]

        created = self._calendar_api.create_event(calendar_id=self.calendar_id, body=body)
        result = EventOutput.from_google(created)
        logger.info(f"Created event '{result.id}' in calendar '{self.calendar_id}'.")
        return ToolResult(
            text=f"Event created successfully!\nID: {result.id}\nLink: {result.html_link}",
            data=result.model_dump(by_alias=True),
        )

    def update_event(self, request: UpdateEventInput) -> ToolResult:
        existing = self._calendar_api.get_event(
            calendar_id=self.calendar_id, event_id=request.event_id
        )

        body: dict[str, Any] = {
            "summary": request.summary or existing.get("summary"),
            "description": request.description or existing.get("description"),
        }
        if request.start_time is not None:
            body["start"] = self._event_boundary(request.start_time)
        if request.end_time is not None:
            body["end"] = self._event_boundary(request.end_time)

        updated = self._calendar_api.update_event(
            calendar_id=self.calendar_id,
            event_id=request.event_id,
            body=body,
        )
        logger.info(f"Updated event '{request.event_id}' in calendar '{self.calendar_id}'.")
        return ToolResult(
            text=f"Event {request.event_id} updated successfully!",
            data=EventOutput.from_google(updated).model_dump(by_alias=True),
        )

    def delete_event(self, request: DeleteEventInput) -> ToolResult:
        self._calendar_api.delete_event(calendar_id=self.calendar_id, event_id=request.event_id)
        logger.info(f"Deleted event '{request.event_id}' from calendar '{self.calendar_id}'.")
        return ToolResult(
            text=f"Event {request.event_id} deleted successfully!",
            data={"deleted": True, "eventId": request.event_id, "calendarId": self.calendar_id},
        )

    def find_free_time(self, request: FindFreeTimeInput) -> ToolResult:
        window_start = self._localize(request.time_min)
        window_end = self._localize(request.time_max)
        if window_end < window_start:
            raise InvalidInputError("timeMax", "must not be earlier than timeMin")

        events = self._calendar_api.list_events(
            calendar_id=self.calendar_id,
            max_results=BUSY_EVENTS_LIMIT,
            time_min=window_start,
            time_max=window_end,
        )
        busy = busy_intervals_from_events(events, window_start.tzinfo)
        slots = find_free_time(window_start, window_end, request.duration, busy)

        formatted = "\n".join(f"• {slot.start.isoformat()} - {slot.end.isoformat()}" for slot in slots)
        text = (
            f"Found {len(slots)} available time slots:\n\n{formatted}"
            if slots
            else (
                f"No available time slots found for duration of {request.duration} "
                "minutes in the specified range."
            )
        )
        logger.info(f"Found {len(slots)} free slots across {len(busy)} busy intervals.")
        return ToolResult(text=text, data=[slot.as_dict() for slot in slots])

    def _localize(self, value: datetime | None) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=self._settings.zone)
        return value

    def _event_boundary(self, value: datetime) -> dict[str, str]:
        return {
            "dateTime": self._localize(value).isoformat(),
            "timeZone": self._settings.time_zone,
        }
