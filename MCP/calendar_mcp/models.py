"""Pydantic models shared by the calendar tools."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .calendar_service import event_time


class InvalidInputError(ValueError):
    """Raised when tool arguments fail validation; names the offending field."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.message = message
        super().__init__(f"Invalid value for '{field}': {message}")


class ToolInput(BaseModel):
    """Base for tool argument records; wire names are camelCase aliases."""

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def parse_arguments(cls: type[ModelT], arguments: Mapping[str, Any] | None) -> ModelT:
        try:
            return cls.model_validate(arguments if arguments is not None else {})
        except ValidationError as exc:
            error = exc.errors()[0]
            field = ".".join(str(part) for part in error["loc"]) or "arguments"
            raise InvalidInputError(field, error["msg"]) from exc

    @classmethod
    def tool_schema(cls) -> dict[str, Any]:
        schema = cls.model_json_schema(by_alias=True)
        schema.pop("title", None)
        schema.setdefault("properties", {})
        return schema


ModelT = TypeVar("ModelT", bound=ToolInput)


def _strip_zulu(value: Any) -> Any:
    if isinstance(value, str) and value.endswith("Z"):
        return value[:-1] + "+00:00"
    return value


class ListEventsInput(ToolInput):
    time_min: datetime | None = Field(
        default=None,
        alias="timeMin",
        description="Start time (ISO string). Defaults to now.",
    )
    time_max: datetime | None = Field(
        default=None,
        alias="timeMax",
        description="End time (ISO string).",
    )
    max_results: int = Field(
        default=10,
        ge=1,
        le=2500,
        alias="maxResults",
        description="Maximum number of events to return.",
    )

    @field_validator("time_min", "time_max", mode="before")
    @classmethod
    def adjust_times(cls, value: Any) -> Any:
        return _strip_zulu(value)


class CreateEventInput(ToolInput):
    summary: str = Field(description="Event title")
    description: str | None = Field(default=None, description="Event description")
    start_time: datetime = Field(alias="startTime", description="Event start time (ISO string)")
    end_time: datetime = Field(alias="endTime", description="Event end time (ISO string)")
    attendees: list[str] | None = Field(
        default=None,
        description="List of attendee email addresses",
    )

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def adjust_times(cls, value: Any) -> Any:
        return _strip_zulu(value)


class UpdateEventInput(ToolInput):
    event_id: str = Field(alias="eventId", min_length=1, description="ID of the event to update")
    summary: str | None = Field(default=None, description="New event title")
    description: str | None = Field(default=None, description="New event description")
    start_time: datetime | None = Field(
        default=None,
        alias="startTime",
        description="New start time (ISO string)",
    )
    end_time: datetime | None = Field(
        default=None,
        alias="endTime",
        description="New end time (ISO string)",
    )

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def adjust_times(cls, value: Any) -> Any:
        return _strip_zulu(value)


class DeleteEventInput(ToolInput):
    event_id: str = Field(alias="eventId", min_length=1, description="ID of the event to delete")


class FindFreeTimeInput(ToolInput):
    time_min: datetime = Field(alias="timeMin", description="Start of time range (ISO string)")
    time_max: datetime = Field(alias="timeMax", description="End of time range (ISO string)")
    duration: int = Field(gt=0, description="Desired duration in minutes")

    @field_validator("time_min", "time_max", mode="before")
    @classmethod
    def adjust_times(cls, value: Any) -> Any:
        return _strip_zulu(value)


class EventOutput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    summary: str | None = None
    description: str | None = None
    start: str | None = None
    end: str | None = None
    status: str | None = None
    html_link: str | None = Field(default=None, alias="htmlLink")

    @classmethod
    def from_google(cls, event: Mapping[str, Any]) -> EventOutput:
        payload = dict(event)
        payload["start"] = event_time(event.get("start"))
        payload["end"] = event_time(event.get("end"))
        return cls.model_validate(payload)


class ToolResult(BaseModel):
    """Human-readable text plus the structured payload behind it."""

    text: str
    data: Any = None
