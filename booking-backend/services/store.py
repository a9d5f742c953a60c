from __future__ import annotations

from datetime import date, time
from typing import Any, Dict, List, Optional, Protocol


class BookingStore(Protocol):
    """Store operations the booking core depends on.

    ``SupabaseClient`` implements this against PostgREST; tests inject an in-memory fake.
    ``create_appointment`` must raise ``StoreConflict`` when an active appointment already
    holds the same business, date and time.
    """

    async def list_working_hours(self, business_id: str) -> List[Dict[str, Any]]: ...

    async def list_services(self, business_id: str) -> List[Dict[str, Any]]: ...

    async def get_service(self, business_id: str, service_id: str) -> Optional[Dict[str, Any]]: ...

    async def list_booked_times(self, business_id: str, on_date: date) -> List[Dict[str, Any]]: ...

    async def find_active_appointment(
        self, business_id: str, on_date: date, at_time: time
    ) -> Optional[Dict[str, Any]]: ...

    async def create_appointment(self, payload: Dict[str, Any]) -> Dict[str, Any]: ...

    async def get_appointment(self, appointment_id: str) -> Optional[Dict[str, Any]]: ...

    async def update_appointment_status(
        self,
        appointment_id: str,
        status: str,
        expected_status: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]: ...
