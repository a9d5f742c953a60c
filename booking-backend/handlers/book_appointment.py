from __future__ import annotations

from typing import Any, Dict, Optional

from services.booking import BookingCoordinator
from services.models import ClientInfo


async def execute(
    coordinator: BookingCoordinator,
    business_id: str,
    service_id: str,
    date: str,
    time: str,
    client_name: str,
    client_email: str,
    client_phone: str = "",
    notes: Optional[str] = None,
    accepted_terms: bool = False,
) -> Dict[str, Any]:
    client = ClientInfo(
        name=client_name,
        email=client_email,
        phone=client_phone,
        notes=notes,
        accepted_terms=accepted_terms,
    )
    record = await coordinator.submit_booking(business_id, service_id, date, time, client)
    return record.to_dict()
