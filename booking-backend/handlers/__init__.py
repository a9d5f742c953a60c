"""Caller-facing booking operations; each module exposes an async ``execute``."""

from . import (  # noqa: F401
    book_appointment,
    fetch_slots,
    get_business,
    list_appointments,
    list_dates,
    save_working_hours,
    update_status,
)
