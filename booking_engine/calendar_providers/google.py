"""Google Calendar source implementation.

Uses the rep's own OAuth access token (obtained by the CRM's "connect
Google Calendar" flow) to talk to the Calendar API v3.  The token is used
as-is: an expired or revoked token surfaces as ``ExternalSourceError``
rather than being refreshed here.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, time, timedelta, tzinfo
from functools import partial
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from booking_engine.config import settings
from booking_engine.errors import ExternalSourceError

from .base import CalendarCredentials, CalendarEvent, ExternalCalendarSource, ExternalEvent

logger = logging.getLogger(__name__)


class GoogleCalendarSource(ExternalCalendarSource):
    """ExternalCalendarSource backed by Google Calendar API v3.

    *timezone_name* is used for event bodies and for all-day events; the
    aggregator re-anchors all-day events in the engine's own timezone.
    """

    def __init__(
        self,
        calendar_id: str | None = None,
        timezone_name: str | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        self._calendar_id = calendar_id or settings.google_calendar_id
        self._timezone_name = timezone_name or settings.calendar_timezone
        self._tz = ZoneInfo(self._timezone_name)
        self._timeout = timeout_seconds or settings.calendar_timeout_seconds

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _build_service(self, credentials: CalendarCredentials) -> Any:
        if not credentials.access_token:
            raise ExternalSourceError("Google Calendar access token is missing")
        # No refresh_token/client secret: google-auth must not refresh on our behalf.
        creds = Credentials(token=credentials.access_token)
        return build("calendar", "v3", credentials=creds, cache_discovery=False)

    async def _execute(self, request: Any, action: str) -> Any:
        """Run a Google API request in the default thread pool, once, with a timeout."""
        loop = asyncio.get_running_loop()
        try:
            return await asyncio.wait_for(
                loop.run_in_executor(None, partial(request.execute, num_retries=0)),
                timeout=self._timeout,
            )
        except HttpError as exc:
            raise ExternalSourceError(
                f"Google Calendar {action} failed: HTTP {exc.resp.status}"
            ) from exc
        except asyncio.TimeoutError as exc:
            raise ExternalSourceError(
                f"Google Calendar {action} timed out after {self._timeout:g}s"
            ) from exc
        except ExternalSourceError:
            raise
        except Exception as exc:
            raise ExternalSourceError(f"Google Calendar {action} failed: {exc}") from exc

    @staticmethod
    def _to_rfc3339(dt: datetime) -> str:
        """Convert a datetime to an RFC 3339 string with timezone."""
        if dt.tzinfo is None:
            raise ValueError("Google Calendar requires timezone-aware datetimes")
        return dt.isoformat()

    def _event_body(self, event: CalendarEvent) -> dict[str, Any]:
        return {
            "summary": event.summary,
            "description": event.description,
            "location": event.location,
            "start": {
                "dateTime": self._to_rfc3339(event.start),
                "timeZone": self._timezone_name,
            },
            "end": {
                "dateTime": self._to_rfc3339(event.end),
                "timeZone": self._timezone_name,
            },
        }

    # ------------------------------------------------------------------
    # ExternalCalendarSource interface
    # ------------------------------------------------------------------

    async def list_events(
        self,
        credentials: CalendarCredentials,
        time_min: datetime,
        time_max: datetime,
    ) -> list[ExternalEvent]:
        """List single (expanded) events overlapping the window, following pagination."""
        service = self._build_service(credentials)
        events: list[ExternalEvent] = []
        page_token: str | None = None

        while True:
            response = await self._execute(
                service.events().list(
                    calendarId=self._calendar_id,
                    timeMin=self._to_rfc3339(time_min),
                    timeMax=self._to_rfc3339(time_max),
                    singleEvents=True,
                    orderBy="startTime",
                    pageToken=page_token,
                ),
                "list",
            )
            for item in response.get("items", []):
                event = parse_google_event(item, self._tz)
                if event is None:
                    logger.debug("Skipping event %s without usable bounds", item.get("id"))
                    continue
                events.append(event)

            page_token = response.get("nextPageToken")
            if not page_token:
                break

        logger.debug(
            "Fetched %d events from calendar %s between %s and %s",
            len(events), self._calendar_id, time_min, time_max,
        )
        return events

    async def create_event(
        self, credentials: CalendarCredentials, event: CalendarEvent
    ) -> str:
        service = self._build_service(credentials)
        result = await self._execute(
            service.events().insert(
                calendarId=self._calendar_id, body=self._event_body(event)
            ),
            "create",
        )
        logger.info("Created event %s on calendar %s", result["id"], self._calendar_id)
        return result["id"]

    async def update_event(
        self, credentials: CalendarCredentials, event_id: str, event: CalendarEvent
    ) -> str:
        service = self._build_service(credentials)
        result = await self._execute(
            service.events().update(
                calendarId=self._calendar_id,
                eventId=event_id,
                body=self._event_body(event),
            ),
            "update",
        )
        logger.info("Updated event %s on calendar %s", event_id, self._calendar_id)
        return result.get("id", event_id)


def _event_tz(bound: dict[str, Any], default: tzinfo) -> tzinfo:
    name = bound.get("timeZone")
    if not name:
        return default
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return default


def parse_google_event(item: dict[str, Any], tz: tzinfo) -> ExternalEvent | None:
    """Map a Calendar API event resource to an ``ExternalEvent``.

    Timed events use ``dateTime``; all-day events use ``date`` with an
    exclusive end date.  Returns None for events lacking either bound.
    """
    start = item.get("start") or {}
    end = item.get("end") or {}

    if start.get("dateTime") and end.get("dateTime"):
        start_dt = datetime.fromisoformat(start["dateTime"])
        end_dt = datetime.fromisoformat(end["dateTime"])
        if start_dt.tzinfo is None:
            start_dt = start_dt.replace(tzinfo=_event_tz(start, tz))
        if end_dt.tzinfo is None:
            end_dt = end_dt.replace(tzinfo=_event_tz(end, tz))
        all_day = False
    elif start.get("date"):
        first_day = date.fromisoformat(start["date"])
        last_day = (
            date.fromisoformat(end["date"]) if end.get("date")
            else first_day + timedelta(days=1)
        )
        start_dt = datetime.combine(first_day, time.min, tzinfo=tz)
        end_dt = datetime.combine(last_day, time.min, tzinfo=tz)
        all_day = True
    else:
        return None

    return ExternalEvent(
        id=item.get("id", ""),
        start=start_dt,
        end=end_dt,
        title=item.get("summary", ""),
        location=item.get("location", ""),
        description=item.get("description", ""),
        all_day=all_day,
    )
