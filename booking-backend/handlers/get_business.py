from __future__ import annotations

from typing import Any, Dict, Optional

from services.availability import AvailabilityService
from services.models import Business
from services.supabase_client import SupabaseClient


async def execute(
    db: SupabaseClient,
    availability: AvailabilityService,
    booking_url: str,
) -> Optional[Dict[str, Any]]:
    record = await db.get_business_by_url(booking_url.strip())
    if not record:
        return None
    business = Business.from_record(record)
    services = await availability.list_services(business.id)
    return {
        "business": business.to_dict(),
        "services": [service.to_dict() for service in services],
    }
