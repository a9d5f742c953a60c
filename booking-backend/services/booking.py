from __future__ import annotations

import logging
import re
from datetime import date, datetime, time
from typing import Dict, Optional, Tuple, Union

from .availability import AvailabilityService
from .errors import (
    AppointmentNotFound,
    InvalidStatusTransition,
    ServiceNotFound,
    SlotAlreadyBooked,
    StoreConflict,
    ValidationError,
)
from .models import Appointment, AppointmentStatus, ClientInfo, Service
from .notifications import NotificationDispatcher
from .store import BookingStore
from .time_parser import TimeParser

LOG = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")

ALLOWED_TRANSITIONS: Dict[AppointmentStatus, Tuple[AppointmentStatus, ...]] = {
    AppointmentStatus.new: (AppointmentStatus.confirmed, AppointmentStatus.cancelled),
    AppointmentStatus.confirmed: (AppointmentStatus.cancelled, AppointmentStatus.completed),
    AppointmentStatus.cancelled: (),
    AppointmentStatus.completed: (),
}


def can_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, ())


def validate_client(client: ClientInfo) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    if not (client.name or "").strip():
        errors["client_name"] = "Name is required"
    email = (client.email or "").strip()
    if not email:
        errors["client_email"] = "Email is required"
    elif not EMAIL_PATTERN.fullmatch(email):
        errors["client_email"] = "Email address is invalid"
    if not (client.phone or "").strip():
        errors["client_phone"] = "Phone number is required"
    if not client.accepted_terms:
        errors["terms"] = "Terms must be accepted"
    return errors


class BookingCoordinator:
    """Validates slot selections and performs the at-most-once appointment write.

    Availability is read and then written without a lock. The store's unique index on
    active ``(business_id, appointment_date, appointment_time)`` decides races; a
    conflict surfaces as ``SlotAlreadyBooked`` and callers must re-fetch slots.
    """

    def __init__(
        self,
        db: BookingStore,
        availability: AvailabilityService,
        strict_slot_check: bool = False,
        notifier: Optional[NotificationDispatcher] = None,
        parser: Optional[TimeParser] = None,
    ) -> None:
        self._db = db
        self._availability = availability
        self._strict = strict_slot_check
        self._notifier = notifier
        self._parser = parser or TimeParser()

    async def _resolve_service(self, business_id: str, service_id: str, errors: Dict[str, str]) -> Optional[Service]:
        if not service_id:
            errors["service_id"] = "Service is required"
            return None
        try:
            return await self._availability.get_service(business_id, service_id)
        except ServiceNotFound:
            errors["service_id"] = "Service does not exist"
            return None

    async def submit_booking(
        self,
        business_id: str,
        service_id: str,
        booking_date: Union[date, str, None],
        booking_time: Union[time, str, None],
        client: ClientInfo,
        now: Optional[datetime] = None,
    ) -> Appointment:
        errors = validate_client(client)
        service = await self._resolve_service(business_id, service_id, errors)

        target_date: Optional[date] = None
        if isinstance(booking_date, datetime):
            target_date = booking_date.date()
        elif isinstance(booking_date, date):
            target_date = booking_date
        elif booking_date:
            try:
                target_date = date.fromisoformat(str(booking_date).strip())
            except ValueError:
                errors["date"] = "Date is invalid"
        else:
            errors["date"] = "Date is required"

        target_time: Optional[time] = None
        if booking_time:
            target_time = self._parser.parse_time(booking_time)
            if target_time is None:
                errors["time"] = "Time is invalid"
        else:
            errors["time"] = "Time is required"

        if errors:
            LOG.info("booking rejected by validation", extra={"business_id": business_id, "fields": sorted(errors)})
            raise ValidationError(errors)

        slot_value = target_time.strftime("%H:%M")
        slots = await self._availability.get_available_slots(
            business_id, target_date, service.duration_minutes, now
        )
        selected = next((slot for slot in slots if slot.value == slot_value), None)
        if selected is None:
            raise ValidationError({"time": "Selected time is not available"})
        if selected.is_booked:
            LOG.warning(
                "slot already booked at validation",
                extra={"business_id": business_id, "date": target_date.isoformat(), "time": slot_value},
            )
            raise SlotAlreadyBooked(f"{target_date.isoformat()} {slot_value} is no longer available")

        if self._strict:
            occupant = await self._db.find_active_appointment(business_id, target_date, selected.start)
            if occupant:
                LOG.warning(
                    "slot taken before write",
                    extra={"business_id": business_id, "date": target_date.isoformat(), "time": slot_value},
                )
                raise SlotAlreadyBooked(f"{target_date.isoformat()} {slot_value} is no longer available")

        payload = {
            "business_id": business_id,
            "service_id": service.id,
            "client_name": client.name.strip(),
            "client_email": client.email.strip(),
            "client_phone": client.phone.strip() or None,
            "appointment_date": target_date.isoformat(),
            "appointment_time": selected.start.strftime("%H:%M:%S"),
            "status": AppointmentStatus.new.value,
            "notes": client.notes.strip() if client.notes and client.notes.strip() else None,
        }
        LOG.info(
            "submitting booking",
            extra={"business_id": business_id, "service_id": service.id, "date": payload["appointment_date"], "time": slot_value},
        )
        try:
            record = await self._db.create_appointment(payload)
        except StoreConflict as exc:
            LOG.warning(
                "booking conflict",
                extra={"business_id": business_id, "date": payload["appointment_date"], "time": slot_value},
            )
            raise SlotAlreadyBooked(f"{target_date.isoformat()} {slot_value} is no longer available") from exc

        appointment = Appointment.from_record(record)
        LOG.info("booking created", extra={"appointment_id": appointment.id, "business_id": business_id})
        if self._notifier:
            await self._notifier.booking_created(appointment)
        return appointment

    async def update_status(self, appointment_id: str, status: Union[AppointmentStatus, str]) -> Appointment:
        try:
            target = AppointmentStatus(status)
        except ValueError as exc:
            raise ValidationError({"status": f"Unknown status '{status}'"}) from exc

        record = await self._db.get_appointment(appointment_id)
        if not record:
            raise AppointmentNotFound(f"Appointment {appointment_id} not found")
        current = AppointmentStatus(record["status"])
        if not can_transition(current, target):
            raise InvalidStatusTransition(f"Cannot move appointment from {current.value} to {target.value}")

        updated = await self._db.update_appointment_status(
            appointment_id, target.value, expected_status=current.value
        )
        if not updated:
            # Someone else changed the status between our read and write.
            raise InvalidStatusTransition(
                f"Appointment {appointment_id} is no longer {current.value}; reload and retry"
            )
        LOG.info(
            "appointment status changed",
            extra={"appointment_id": appointment_id, "from": current.value, "to": target.value},
        )
        return Appointment.from_record(updated)

    async def confirm(self, appointment_id: str) -> Appointment:
        return await self.update_status(appointment_id, AppointmentStatus.confirmed)

    async def cancel(self, appointment_id: str) -> Appointment:
        return await self.update_status(appointment_id, AppointmentStatus.cancelled)

    async def complete(self, appointment_id: str) -> Appointment:
        return await self.update_status(appointment_id, AppointmentStatus.completed)
