from __future__ import annotations

from typing import List, Optional

from services.availability import AvailabilityService


async def execute(
    availability: AvailabilityService,
    business_id: str,
    window_days: Optional[int] = None,
) -> List[str]:
    dates = await availability.list_bookable_dates(business_id, window_days=window_days)
    return [value.isoformat() for value in dates]
