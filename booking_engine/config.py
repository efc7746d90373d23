"""Application configuration via environment variables."""

from __future__ import annotations

import logging
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic_settings import BaseSettings

log = logging.getLogger("booking_engine.config")


class Settings(BaseSettings):
    # Google Calendar
    google_calendar_id: str = "primary"
    calendar_timezone: str = "America/Chicago"
    calendar_timeout_seconds: float = 10.0

    # Slot generation
    slot_granularity_minutes: int = 15
    allowed_durations: list[int] = [15, 30, 45, 60, 90, 120]
    allow_midnight_crossing: bool = False

    # API auth
    api_key: str = ""

    # Server
    host: str = "127.0.0.1"
    port: int = 8080
    debug: bool = False

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.calendar_timezone)

    def validate_startup(self) -> list[str]:
        """Validate configuration at startup. Returns warnings, raises on errors."""
        warnings: list[str] = []

        try:
            ZoneInfo(self.calendar_timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(
                f"CALENDAR_TIMEZONE {self.calendar_timezone!r} is not a known IANA timezone."
            )

        if self.slot_granularity_minutes <= 0 or 1440 % self.slot_granularity_minutes:
            raise ValueError(
                "SLOT_GRANULARITY_MINUTES must be a positive divisor of 1440."
            )

        if not self.api_key:
            if self.debug:
                warnings.append("API_KEY not set. Booking APIs are open (DEBUG=true).")
            else:
                warnings.append(
                    "API_KEY not set. Booking APIs are locked in production. "
                    "Set API_KEY in .env to enable access."
                )

        if self.allow_midnight_crossing:
            warnings.append(
                "ALLOW_MIDNIGHT_CROSSING is on: slots may end on the following day."
            )

        return warnings


settings = Settings()
