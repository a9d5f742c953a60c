from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class AppointmentStatus(str, Enum):
    new = "new"
    confirmed = "confirmed"
    cancelled = "cancelled"
    completed = "completed"


# Statuses that occupy a slot.
ACTIVE_STATUSES: Tuple[AppointmentStatus, ...] = (AppointmentStatus.new, AppointmentStatus.confirmed)


def _as_number(value: Any) -> float:
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return value
    return 0


@dataclass(frozen=True)
class WorkingHourRule:
    business_id: str
    day_of_week: int
    is_open: bool
    start_time: Optional[str] = None
    end_time: Optional[str] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "WorkingHourRule":
        return cls(
            business_id=str(record.get("business_id") or ""),
            day_of_week=int(record.get("day_of_week") if record.get("day_of_week") is not None else -1),
            is_open=bool(record.get("is_open")),
            start_time=record.get("start_time"),
            end_time=record.get("end_time"),
        )


@dataclass(frozen=True)
class Service:
    id: str
    business_id: str
    name: str
    duration_minutes: float
    price: float = 0
    currency: str = ""
    description: str = ""
    category: Optional[str] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Service":
        """Build a service from a ``services`` row, filling the blanks the setup wizard leaves."""
        return cls(
            id=str(record["id"]),
            business_id=str(record.get("business_id") or ""),
            name=record.get("name") or "",
            duration_minutes=_as_number(record.get("duration")),
            price=_as_number(record.get("price")),
            currency=record.get("currency") or "",
            description=record.get("description") or "",
            category=record.get("category") or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "duration": self.duration_minutes,
            "price": self.price,
            "currency": self.currency,
            "category": self.category,
        }


@dataclass(frozen=True)
class Business:
    id: str
    name: str
    business_type: str
    booking_url: str
    description: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Business":
        return cls(
            id=str(record["id"]),
            name=record.get("name") or "",
            business_type=record.get("business_type") or "",
            booking_url=record.get("booking_url") or "",
            description=record.get("description"),
            address=record.get("address"),
            phone=record.get("phone"),
            email=record.get("email"),
            website=record.get("website"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "business_type": self.business_type,
            "booking_url": self.booking_url,
            "description": self.description,
            "address": self.address,
            "phone": self.phone,
            "email": self.email,
            "website": self.website,
        }


@dataclass(frozen=True)
class Appointment:
    id: str
    business_id: str
    service_id: str
    client_name: str
    client_email: str
    date: date
    time: time
    status: AppointmentStatus = AppointmentStatus.new
    client_phone: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[str] = None

    @property
    def occupies_slot(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Appointment":
        raw_date = record["appointment_date"]
        raw_time = record["appointment_time"]
        return cls(
            id=str(record["id"]),
            business_id=str(record["business_id"]),
            service_id=str(record["service_id"]),
            client_name=record.get("client_name") or "",
            client_email=record.get("client_email") or "",
            date=raw_date if isinstance(raw_date, date) else date.fromisoformat(raw_date),
            time=raw_time if isinstance(raw_time, time) else time.fromisoformat(raw_time),
            status=AppointmentStatus(record.get("status") or AppointmentStatus.new.value),
            client_phone=record.get("client_phone"),
            notes=record.get("notes"),
            created_at=record.get("created_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "service_id": self.service_id,
            "client_name": self.client_name,
            "client_email": self.client_email,
            "client_phone": self.client_phone,
            "appointment_date": self.date.isoformat(),
            "appointment_time": self.time.strftime("%H:%M"),
            "status": self.status.value,
            "notes": self.notes,
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class ClientInfo:
    name: str
    email: str
    phone: str = ""
    notes: Optional[str] = None
    accepted_terms: bool = False


@dataclass(frozen=True)
class Interval:
    start: datetime
    end: datetime

    @property
    def duration_minutes(self) -> float:
        return (self.end - self.start).total_seconds() / 60


@dataclass(frozen=True)
class DayHours:
    date: date
    intervals: Tuple[Interval, ...] = field(default_factory=tuple)
    has_defined_hours: bool = False

    @property
    def is_closed(self) -> bool:
        return self.has_defined_hours and not self.intervals


@dataclass(frozen=True)
class CandidateSlot:
    start: time
    end: time
    is_booked: bool = False

    @property
    def value(self) -> str:
        return self.start.strftime("%H:%M")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": self.value,
            "end": self.end.strftime("%H:%M"),
            "is_booked": self.is_booked,
        }
