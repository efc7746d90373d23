"""Appointment availability and booking engine for field sales reps."""

from booking_engine.engine import SchedulingEngine
from booking_engine.errors import (
    BookingEngineError,
    BookingValidationError,
    ExternalSourceError,
    LocalStoreError,
)

__all__ = [
    "BookingEngineError",
    "BookingValidationError",
    "ExternalSourceError",
    "LocalStoreError",
    "SchedulingEngine",
]
