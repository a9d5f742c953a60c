from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Optional
from uuid import uuid4

from services.availability import reconcile_selection
from services.booking import BookingCoordinator
from services.errors import SlotAlreadyBooked, SubmissionInProgress, ValidationError
from services.models import Appointment, CandidateSlot, ClientInfo


@dataclass
class BookingSession:
    """One requester's progress through the booking flow."""

    business_id: str
    session_id: str = field(default_factory=lambda: uuid4().hex)
    service_id: str | None = None
    selected_date: str = ""
    selected_time: str = ""
    client_name: str = ""
    client_email: str = ""
    client_phone: str = ""
    notes: str = ""
    accepted_terms: bool = False
    appointment: Optional[Appointment] = None
    created_at: float = field(default_factory=time.time)
    submitting: bool = False
    submit_lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    def select(self, *, service_id: str | None = None, date_value: str | None = None, time_value: str | None = None) -> None:
        if service_id is not None and service_id != self.service_id:
            self.service_id = service_id
            self.selected_time = ""
        if date_value is not None and date_value != self.selected_date:
            self.selected_date = date_value
            self.selected_time = ""
        if time_value is not None:
            self.selected_time = time_value

    def apply_bookable_dates(self, dates: Iterable[date]) -> None:
        values = [value.isoformat() for value in dates]
        if not values:
            self.selected_date = ""
            self.selected_time = ""
            return
        if self.selected_date not in values:
            self.selected_date = values[0]
            self.selected_time = ""

    def apply_slots(self, slots: List[CandidateSlot]) -> None:
        if self.selected_time and reconcile_selection(slots, self.selected_time) is None:
            self.selected_time = ""

    def client_info(self) -> ClientInfo:
        return ClientInfo(
            name=self.client_name,
            email=self.client_email,
            phone=self.client_phone,
            notes=self.notes or None,
            accepted_terms=self.accepted_terms,
        )

    async def submit(self, coordinator: BookingCoordinator) -> Appointment:
        if self.submitting or self.submit_lock.locked():
            raise SubmissionInProgress("A booking submission is already in progress")
        async with self.submit_lock:
            self.submitting = True
            try:
                appointment = await coordinator.submit_booking(
                    self.business_id,
                    self.service_id or "",
                    self.selected_date,
                    self.selected_time,
                    self.client_info(),
                )
            except SlotAlreadyBooked:
                self.selected_time = ""
                raise
            except ValidationError as exc:
                if "time" in exc.errors:
                    self.selected_time = ""
                raise
            finally:
                self.submitting = False
        self.appointment = appointment
        return appointment

    def reset(self) -> None:
        self.service_id = None
        self.selected_date = ""
        self.selected_time = ""
        self.client_name = ""
        self.client_email = ""
        self.client_phone = ""
        self.notes = ""
        self.accepted_terms = False
        self.appointment = None
        self.submitting = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "business_id": self.business_id,
            "service_id": self.service_id,
            "date": self.selected_date,
            "time": self.selected_time,
            "appointment": self.appointment.to_dict() if self.appointment else None,
        }
