"""Pydantic models for stored appointments and booking requests."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, tzinfo
from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, ValidationInfo, field_validator

from booking_engine.errors import BookingValidationError
from booking_engine.intervals import TimeInterval

ALLOWED_DURATIONS: tuple[int, ...] = (15, 30, 45, 60, 90, 120)


class AppointmentRecord(BaseModel):
    """An appointment as persisted by the local appointment store."""

    id: str
    prospect_id: str
    rep_id: str
    scheduled_date: date
    scheduled_time: time
    duration_minutes: int = 45
    place: Optional[str] = None
    notes: Optional[str] = None
    external_ref_id: Optional[str] = None  # mirrored calendar event id
    status: str = "confirmed"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def starts_at(self, tz: tzinfo) -> datetime:
        return datetime.combine(self.scheduled_date, self.scheduled_time, tzinfo=tz)

    def ends_at(self, tz: tzinfo) -> datetime:
        return self.starts_at(tz) + timedelta(minutes=self.duration_minutes)

    def to_interval(self, tz: tzinfo) -> TimeInterval:
        return TimeInterval.from_duration(self.starts_at(tz), self.duration_minutes)


class BookingRequest(BaseModel):
    """Fields submitted to create or edit a booking.

    ``appointment_id`` is set when editing an existing appointment.
    ``title`` becomes the mirrored calendar event's summary (usually the
    prospect's business name).
    """

    model_config = {"str_strip_whitespace": True}

    appointment_id: Optional[str] = None
    prospect_id: str = Field(min_length=1)
    rep_id: str = Field(min_length=1)
    scheduled_date: date
    scheduled_time: time
    duration_minutes: int
    place: Optional[str] = None
    notes: Optional[str] = None
    title: Optional[str] = None
    status: Optional[str] = None  # store default applies when omitted

    @field_validator("scheduled_time")
    @classmethod
    def _whole_minutes(cls, value: time) -> time:
        if value.second or value.microsecond:
            raise ValueError("time must be given as HH:MM")
        return value.replace(tzinfo=None)

    @field_validator("duration_minutes")
    @classmethod
    def _allowed_duration(cls, value: int, info: ValidationInfo) -> int:
        allowed = ALLOWED_DURATIONS
        if info.context and info.context.get("allowed_durations"):
            allowed = tuple(info.context["allowed_durations"])
        if value not in allowed:
            raise ValueError(
                f"duration must be one of {', '.join(str(d) for d in allowed)} minutes"
            )
        return value

    @property
    def is_edit(self) -> bool:
        return bool(self.appointment_id)

    def store_fields(self) -> dict[str, Any]:
        """Fields written to the local appointment store.

        ``status`` is only written when the caller set it, so an edit keeps
        the stored status and a create gets the store's default.
        """
        exclude = {"appointment_id", "title"}
        if self.status is None:
            exclude.add("status")
        return self.model_dump(exclude=exclude)


def parse_booking_request(
    fields: BookingRequest | Mapping[str, Any],
    allowed_durations: tuple[int, ...] | list[int] = ALLOWED_DURATIONS,
) -> BookingRequest:
    """Validate raw booking fields, raising ``BookingValidationError``."""
    if isinstance(fields, BookingRequest):
        data: Mapping[str, Any] = fields.model_dump()
    else:
        data = fields
    try:
        return BookingRequest.model_validate(
            data, context={"allowed_durations": list(allowed_durations)}
        )
    except ValidationError as exc:
        errors = {}
        for err in exc.errors():
            field = ".".join(str(part) for part in err["loc"]) or "__root__"
            errors.setdefault(field, err["msg"])
        raise BookingValidationError(errors) from exc
