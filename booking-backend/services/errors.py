from __future__ import annotations

from typing import Dict, Optional


class BookingError(Exception):
    """Base class for failures surfaced to booking callers."""

    code = "booking_error"


class ValidationError(BookingError):
    code = "validation_error"

    def __init__(self, errors: Dict[str, str]) -> None:
        self.errors = dict(errors)
        fields = ", ".join(sorted(self.errors))
        super().__init__(f"Invalid booking request: {fields}")


class ServiceNotFound(BookingError):
    code = "service_not_found"


class AppointmentNotFound(BookingError):
    code = "appointment_not_found"


class SlotAlreadyBooked(BookingError):
    """Another booking already occupies the requested slot; re-fetch availability."""

    code = "slot_already_booked"


class InvalidStatusTransition(BookingError):
    code = "invalid_transition"


class SubmissionInProgress(BookingError):
    code = "submission_in_progress"


class TransientStoreError(BookingError):
    """Network or store failure. Safe to retry after re-validating availability."""

    code = "store_unavailable"
    retryable = True

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StoreConflict(Exception):
    """Raised by the store client when a write violates a uniqueness constraint."""

    def __init__(self, message: str, constraint: Optional[str] = None) -> None:
        super().__init__(message)
        self.constraint = constraint
