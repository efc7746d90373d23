"""Abstract base class for external calendar sources.

Defines the interface the engine uses to read busy events from, and mirror
bookings into, a rep's external calendar.  Any calendar backend (Google,
Outlook, etc.) implements this ABC.  Implementations raise
``ExternalSourceError`` for every failure.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class CalendarCredentials:
    """OAuth tokens for the rep's calendar.

    The engine never refreshes tokens itself; ``refresh_token`` is carried
    for callers that manage the OAuth flow.
    """

    access_token: str
    refresh_token: Optional[str] = None


@dataclass
class ExternalEvent:
    """An event read from the external calendar.

    All-day events have ``all_day=True`` and span midnight to midnight in
    the working timezone.
    """

    id: str
    start: datetime
    end: datetime
    title: str = ""
    location: str = ""
    description: str = ""
    all_day: bool = False


@dataclass
class CalendarEvent:
    """Payload for creating or updating a mirrored event."""

    summary: str
    start: datetime
    end: datetime
    description: str = ""
    location: str = ""


class ExternalCalendarSource(ABC):
    """Abstract external calendar backend."""

    @abstractmethod
    async def list_events(
        self,
        credentials: CalendarCredentials,
        time_min: datetime,
        time_max: datetime,
    ) -> list[ExternalEvent]:
        """Return events intersecting ``[time_min, time_max)``."""

    @abstractmethod
    async def create_event(
        self, credentials: CalendarCredentials, event: CalendarEvent
    ) -> str:
        """Create an event and return its provider-specific id."""

    @abstractmethod
    async def update_event(
        self, credentials: CalendarCredentials, event_id: str, event: CalendarEvent
    ) -> str:
        """Replace an existing event and return its id."""
