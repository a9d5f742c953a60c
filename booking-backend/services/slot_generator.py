from __future__ import annotations

import math
from datetime import date, datetime, timedelta
from typing import Any, Iterable, List, Optional
from zoneinfo import ZoneInfo

from .models import CandidateSlot, Interval

DEFAULT_SLOT_MINUTES = 30


class SlotGenerator:
    """Generates deterministic appointment slots inside open intervals."""

    def __init__(
        self,
        timezone_name: str = "America/Los_Angeles",
        default_minutes: int = DEFAULT_SLOT_MINUTES,
    ) -> None:
        self.zone = ZoneInfo(timezone_name)
        self.default_minutes = default_minutes

    def now(self) -> datetime:
        return datetime.now(tz=self.zone)

    def today(self) -> date:
        return self.now().date()

    def local_now(self, now: Optional[datetime] = None) -> datetime:
        """Wall-clock ``now`` in the business zone, without tzinfo."""
        now = now or self.now()
        if now.tzinfo is not None:
            now = now.astimezone(self.zone)
        return now.replace(tzinfo=None)

    def _service_length(self, duration_minutes: Any) -> timedelta:
        if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, (int, float)):
            return timedelta(minutes=self.default_minutes)
        if not math.isfinite(duration_minutes) or duration_minutes <= 0:
            return timedelta(minutes=self.default_minutes)
        return timedelta(minutes=duration_minutes)

    def generate_slots(
        self,
        intervals: Iterable[Interval],
        duration_minutes: Any,
        target_date: date,
        now: Optional[datetime] = None,
    ) -> List[CandidateSlot]:
        service_len = self._service_length(duration_minutes)
        current = self.local_now(now)
        is_today = target_date == current.date()
        slots: List[CandidateSlot] = []
        for interval in sorted(intervals, key=lambda item: item.start):
            cursor = interval.start
            while cursor + service_len <= interval.end:
                if not (is_today and cursor < current):
                    slots.append(CandidateSlot(start=cursor.time(), end=(cursor + service_len).time()))
                cursor += service_len
        return slots
