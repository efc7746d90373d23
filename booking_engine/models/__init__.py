"""Data models for the booking engine."""

from .appointment import (
    ALLOWED_DURATIONS,
    AppointmentRecord,
    BookingRequest,
    parse_booking_request,
)
from .availability import AvailabilityRequest, AvailabilityResult, ExternalStatus
from .booking import BookingOutcome, BookingState, BookingStatus, SyncFailureReason

__all__ = [
    "ALLOWED_DURATIONS",
    "AppointmentRecord",
    "AvailabilityRequest",
    "AvailabilityResult",
    "BookingOutcome",
    "BookingRequest",
    "BookingState",
    "BookingStatus",
    "ExternalStatus",
    "SyncFailureReason",
    "parse_booking_request",
]
