"""Error taxonomy for the availability and booking engine.

Only validation and local-store errors ever reach the caller.  External
calendar errors are caught by the aggregator and the coordinator and turned
into flags on their results.
"""

from __future__ import annotations


class BookingEngineError(Exception):
    """Base class for all engine errors."""


class BookingValidationError(BookingEngineError):
    """Booking fields are missing or invalid.  Raised before any write."""

    def __init__(self, errors: dict[str, str]) -> None:
        self.errors = errors
        detail = "; ".join(f"{field}: {msg}" for field, msg in errors.items())
        super().__init__(f"Invalid booking fields: {detail}")


class LocalStoreError(BookingEngineError):
    """The authoritative appointment store failed to read or write."""


class ExternalSourceError(BookingEngineError):
    """The external calendar failed (network, token, API or timeout)."""


class InvalidTransitionError(BookingEngineError):
    """A booking run attempted a transition its state machine does not allow."""
