from __future__ import annotations

from typing import Any, Dict

from services.booking import BookingCoordinator


async def execute(coordinator: BookingCoordinator, appointment_id: str, status: str) -> Dict[str, Any]:
    record = await coordinator.update_status(appointment_id, status)
    return record.to_dict()
