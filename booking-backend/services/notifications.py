from __future__ import annotations

import logging
from typing import Iterable, List

from .models import Appointment

LOG = logging.getLogger(__name__)

SUPPORTED_CHANNELS = ("email", "sms", "whatsapp")


class NotificationDispatcher:
    """Placeholder for booking notifications. Logs intent; delivers nothing."""

    def __init__(self, channels: Iterable[str] = ("email",)) -> None:
        self.channels = [channel for channel in channels if channel in SUPPORTED_CHANNELS]

    async def booking_created(self, appointment: Appointment) -> List[str]:
        for channel in self.channels:
            LOG.info(
                "notification skipped (not implemented)",
                extra={"channel": channel, "appointment_id": appointment.id, "business_id": appointment.business_id},
            )
        return list(self.channels)
