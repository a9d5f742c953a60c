from __future__ import annotations

import asyncio
import os
from datetime import date, datetime, time
from typing import Any, Dict, List, Optional
from uuid import uuid4

import pytest

os.environ.setdefault("SUPABASE_URL", "https://example.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-key")

from services import AvailabilityService, BookingCoordinator, SlotGenerator  # noqa: E402
from services.errors import StoreConflict  # noqa: E402
from services.models import ACTIVE_STATUSES  # noqa: E402

BUSINESS_ID = "biz-1"
SERVICE_ID = "svc-30"
TZ = "America/New_York"

# 2030-01-07 is a Monday.
MONDAY = date(2030, 1, 7)
ACTIVE = {status.value for status in ACTIVE_STATUSES}


def _time_key(value: Any) -> str:
    if isinstance(value, time):
        return value.strftime("%H:%M:%S")
    text = str(value)
    return text if len(text) == 8 else f"{text}:00"


class InMemoryStore:
    """Store fake with the same active-slot uniqueness the SQL index provides."""

    def __init__(self) -> None:
        self.working_hours: List[Dict[str, Any]] = []
        self.services: List[Dict[str, Any]] = []
        self.appointments: List[Dict[str, Any]] = []
        self.insert_delay = 0.0
        self.inserts = 0
        self.fail_with: Optional[Exception] = None

    def add_rule(self, day_of_week: int, start: Optional[str], end: Optional[str], is_open: bool = True) -> None:
        self.working_hours.append(
            {
                "business_id": BUSINESS_ID,
                "day_of_week": day_of_week,
                "is_open": is_open,
                "start_time": start,
                "end_time": end,
            }
        )

    def add_service(self, service_id: str = SERVICE_ID, duration: Any = 30) -> None:
        self.services.append(
            {
                "id": service_id,
                "business_id": BUSINESS_ID,
                "name": "Haircut",
                "duration": duration,
                "price": 25,
                "currency": "USD",
            }
        )

    def add_appointment(self, on_date: date, at: str, status: str = "new") -> Dict[str, Any]:
        record = {
            "id": uuid4().hex,
            "business_id": BUSINESS_ID,
            "service_id": SERVICE_ID,
            "client_name": "Existing",
            "client_email": "existing@example.com",
            "client_phone": "555",
            "appointment_date": on_date.isoformat(),
            "appointment_time": _time_key(at),
            "status": status,
            "notes": None,
        }
        self.appointments.append(record)
        return record

    def _check(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    async def list_working_hours(self, business_id: str) -> List[Dict[str, Any]]:
        self._check()
        return [dict(row) for row in self.working_hours if row["business_id"] == business_id]

    async def list_services(self, business_id: str) -> List[Dict[str, Any]]:
        self._check()
        return [dict(row) for row in self.services if row["business_id"] == business_id]

    async def get_service(self, business_id: str, service_id: str) -> Optional[Dict[str, Any]]:
        self._check()
        for row in self.services:
            if row["business_id"] == business_id and row["id"] == service_id:
                return dict(row)
        return None

    async def list_booked_times(self, business_id: str, on_date: date) -> List[Dict[str, Any]]:
        self._check()
        return [
            {"appointment_time": row["appointment_time"]}
            for row in self.appointments
            if row["business_id"] == business_id
            and row["appointment_date"] == on_date.isoformat()
            and row["status"] in ACTIVE
        ]

    async def find_active_appointment(self, business_id: str, on_date: date, at_time: time) -> Optional[Dict[str, Any]]:
        self._check()
        for row in self.appointments:
            if (
                row["business_id"] == business_id
                and row["appointment_date"] == on_date.isoformat()
                and row["appointment_time"] == _time_key(at_time)
                and row["status"] in ACTIVE
            ):
                return dict(row)
        return None

    async def create_appointment(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        self._check()
        if self.insert_delay:
            await asyncio.sleep(self.insert_delay)
        key = (payload["business_id"], payload["appointment_date"], _time_key(payload["appointment_time"]))
        for row in self.appointments:
            if row["status"] in ACTIVE and (
                row["business_id"],
                row["appointment_date"],
                row["appointment_time"],
            ) == key:
                raise StoreConflict("duplicate key value violates unique constraint")
        record = dict(payload, id=uuid4().hex, created_at=datetime(2030, 1, 1).isoformat())
        record["appointment_time"] = _time_key(payload["appointment_time"])
        self.appointments.append(record)
        self.inserts += 1
        return dict(record)

    async def get_appointment(self, appointment_id: str) -> Optional[Dict[str, Any]]:
        self._check()
        for row in self.appointments:
            if row["id"] == appointment_id:
                return dict(row)
        return None

    async def update_appointment_status(
        self,
        appointment_id: str,
        status: str,
        expected_status: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        self._check()
        for row in self.appointments:
            if row["id"] != appointment_id:
                continue
            if expected_status and row["status"] != expected_status:
                return None
            row["status"] = status
            return dict(row)
        return None


@pytest.fixture
def store() -> InMemoryStore:
    db = InMemoryStore()
    # Monday: morning and afternoon shifts.
    db.add_rule(1, "09:00:00", "12:00:00")
    db.add_rule(1, "14:00", "17:00")
    # Tuesday explicitly closed.
    db.add_rule(2, None, None, is_open=False)
    db.add_service()
    return db


@pytest.fixture
def generator() -> SlotGenerator:
    return SlotGenerator(TZ)


@pytest.fixture
def past_now() -> datetime:
    """A moment well before MONDAY so no slot is filtered as past."""
    return datetime(2030, 1, 1, 8, 0)


@pytest.fixture
def availability(store: InMemoryStore, generator: SlotGenerator) -> AvailabilityService:
    return AvailabilityService(store, generator)


@pytest.fixture
def coordinator(store: InMemoryStore, availability: AvailabilityService) -> BookingCoordinator:
    return BookingCoordinator(store, availability)
