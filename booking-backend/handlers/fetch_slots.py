from __future__ import annotations

from typing import Any, Dict, List, Optional

from dateutil import parser

from services.availability import AvailabilityService


async def execute(
    availability: AvailabilityService,
    business_id: str,
    service_id: str,
    date: Optional[str] = None,
) -> List[Dict[str, Any]]:
    if date:
        parsed_date = parser.isoparse(date).date()
    else:
        parsed_date = availability.slot_generator.today()
    slots = await availability.get_slots_for_service(business_id, parsed_date, service_id)
    return [slot.to_dict() for slot in slots]
