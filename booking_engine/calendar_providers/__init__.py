"""External calendar source abstractions and implementations."""

from .base import CalendarCredentials, CalendarEvent, ExternalCalendarSource, ExternalEvent

__all__ = ["CalendarCredentials", "CalendarEvent", "ExternalCalendarSource", "ExternalEvent"]
