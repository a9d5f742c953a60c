from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Iterable, List, Optional, Set

from .errors import ServiceNotFound
from .models import CandidateSlot, Service, WorkingHourRule
from .slot_generator import SlotGenerator
from .store import BookingStore
from .time_parser import TimeParser
from .working_hours import WorkingHoursResolver

LOG = logging.getLogger(__name__)


def reconcile_selection(slots: Iterable[CandidateSlot], selected_time: Optional[str]) -> Optional[str]:
    """Return ``selected_time`` if it is still a free slot, else ``None``."""
    if not selected_time:
        return None
    normalized = TimeParser().normalize(selected_time)
    for slot in slots:
        if slot.value == normalized and not slot.is_booked:
            return selected_time
    return None


class AvailabilityService:
    """Composes schedule resolution, slot generation and booked-slot lookups."""

    def __init__(
        self,
        db: BookingStore,
        slot_generator: SlotGenerator,
        resolver: Optional[WorkingHoursResolver] = None,
        parser: Optional[TimeParser] = None,
        window_days: int = 21,
    ) -> None:
        self._db = db
        self._slots = slot_generator
        self._parser = parser or TimeParser()
        self._resolver = resolver or WorkingHoursResolver(self._parser)
        self._window_days = window_days

    @property
    def slot_generator(self) -> SlotGenerator:
        return self._slots

    async def load_rules(self, business_id: str) -> List[WorkingHourRule]:
        records = await self._db.list_working_hours(business_id)
        return [WorkingHourRule.from_record(record) for record in records]

    async def list_services(self, business_id: str) -> List[Service]:
        records = await self._db.list_services(business_id)
        return [Service.from_record(record) for record in records]

    async def get_service(self, business_id: str, service_id: str) -> Service:
        record = await self._db.get_service(business_id, service_id)
        if not record:
            raise ServiceNotFound(f"Service {service_id} not found for business {business_id}")
        return Service.from_record(record)

    async def list_bookable_dates(
        self,
        business_id: str,
        window_days: Optional[int] = None,
        start: Optional[date] = None,
    ) -> List[date]:
        rules = await self.load_rules(business_id)
        if not rules:
            return []
        start = start or self._slots.today()
        return self._resolver.bookable_dates(rules, start, window_days if window_days is not None else self._window_days)

    async def booked_times(self, business_id: str, target_date: date) -> Set[str]:
        booked: Set[str] = set()
        for record in await self._db.list_booked_times(business_id, target_date):
            value = self._parser.normalize(record.get("appointment_time"))
            if value is None:
                LOG.warning(
                    "ignoring appointment with unparseable time",
                    extra={"business_id": business_id, "date": target_date.isoformat(), "raw": record},
                )
                continue
            booked.add(value)
        return booked

    async def get_available_slots(
        self,
        business_id: str,
        target_date: date,
        duration_minutes: float,
        now: Optional[datetime] = None,
    ) -> List[CandidateSlot]:
        rules = await self.load_rules(business_id)
        day = self._resolver.resolve_day(rules, target_date)
        candidates = self._slots.generate_slots(day.intervals, duration_minutes, target_date, now)
        if not candidates:
            LOG.info(
                "no candidate slots",
                extra={"business_id": business_id, "date": target_date.isoformat(), "closed": day.is_closed},
            )
            return []
        booked = await self.booked_times(business_id, target_date)
        return [
            CandidateSlot(start=slot.start, end=slot.end, is_booked=slot.value in booked)
            for slot in candidates
        ]

    async def get_slots_for_service(
        self,
        business_id: str,
        target_date: date,
        service_id: str,
        now: Optional[datetime] = None,
    ) -> List[CandidateSlot]:
        service = await self.get_service(business_id, service_id)
        return await self.get_available_slots(business_id, target_date, service.duration_minutes, now)
