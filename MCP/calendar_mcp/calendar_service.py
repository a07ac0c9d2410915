"""High-level helpers that wrap the Google Calendar API."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping

import httplib2
from google.auth.credentials import Credentials
from google.auth.exceptions import GoogleAuthError
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from loguru import logger


class UpstreamFailureError(RuntimeError):
    """Raised when the Google Calendar API (or its token endpoint) rejects a call."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class GoogleCalendarService:
    """Thin wrapper around the Google Calendar REST API."""

    def __init__(
        self,
        credentials: Credentials | None = None,
        *,
        timeout: float = 30.0,
        service: Any | None = None,
    ) -> None:
        if credentials is None and service is None:
            raise ValueError("Either credentials or a prebuilt service is required.")
        self._credentials = credentials
        self._timeout = timeout
        self._service = service

    def list_events(
        self,
        *,
        calendar_id: str,
        max_results: int,
        time_min: datetime | None,
        time_max: datetime | None,
        single_events: bool = True,
        order_by_start_time: bool = True,
    ) -> list[Mapping[str, Any]]:
        request_kwargs: dict[str, Any] = {
            "calendarId": calendar_id,
            "maxResults": max_results,
            "singleEvents": single_events,
        }
        if time_min:
            request_kwargs["timeMin"] = to_rfc3339(time_min)
        if time_max:
            request_kwargs["timeMax"] = to_rfc3339(time_max)
        if order_by_start_time:
            request_kwargs["orderBy"] = "startTime"

        response = self._execute(self._build_service().events().list(**request_kwargs))
        return response.get("items", [])

    def get_event(self, *, calendar_id: str, event_id: str) -> Mapping[str, Any]:
        return self._execute(
            self._build_service().events().get(calendarId=calendar_id, eventId=event_id)
        )

    def create_event(self, *, calendar_id: str, body: Mapping[str, Any]) -> Mapping[str, Any]:
        return self._execute(
            self._build_service().events().insert(calendarId=calendar_id, body=dict(body))
        )

    def update_event(
        self,
        *,
        calendar_id: str,
        event_id: str,
        body: Mapping[str, Any],
    ) -> Mapping[str, Any]:
        # patch leaves fields absent from the body untouched on the server
        return self._execute(
            self._build_service()
            .events()
            .patch(calendarId=calendar_id, eventId=event_id, body=dict(body))
        )

    def delete_event(self, *, calendar_id: str, event_id: str) -> None:
        self._execute(
            self._build_service().events().delete(calendarId=calendar_id, eventId=event_id)
        )

    def _execute(self, request) -> Any:
        try:
            return request.execute(num_retries=0)
        except HttpError as exc:
            status = getattr(exc.resp, "status", None)
            logger.error(f"Google Calendar API returned {status}: {exc}")
            raise UpstreamFailureError(f"Google Calendar API error: {exc}", status) from exc
        except GoogleAuthError as exc:
            # Typically a revoked or expired refresh token.
            logger.error(f"Google authorization failed: {exc}")
            raise UpstreamFailureError(f"Google authorization failed: {exc}") from exc
        except (httplib2.HttpLib2Error, OSError) as exc:
            logger.error(f"Could not reach Google Calendar: {exc}")
            raise UpstreamFailureError(f"Could not reach Google Calendar: {exc}") from exc

    def _build_service(self):
        if self._service is not None:
            return self._service

        http = AuthorizedHttp(self._credentials, http=httplib2.Http(timeout=self._timeout))
        try:
            self._service = build(
                "calendar",
                "v3",
                http=http,
                cache_discovery=False,
                static_discovery=True,
            )
        except HttpError as exc:
            raise UpstreamFailureError(str(exc), getattr(exc.resp, "status", None)) from exc
        return self._service


def to_rfc3339(value: datetime) -> str:
    """Ensure a datetime is timezone aware and convert to RFC3339."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def event_time(entry: Any) -> str | None:
    """Return the ``dateTime`` or all-day ``date`` of an event boundary."""
    if isinstance(entry, Mapping):
        return entry.get("dateTime") or entry.get("date")
    if isinstance(entry, str):
        return entry
    return None
