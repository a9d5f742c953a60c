from __future__ import annotations

import logging
from datetime import date, datetime, time
from typing import Optional, Union

LOG = logging.getLogger(__name__)

TIME_FORMATS = ("%H:%M:%S", "%H:%M")

RawTime = Union[str, time, None]


class TimeParser:
    """Tolerant wall-clock parser for the time strings stored with schedules and appointments.

    Failure is reported as ``None`` so callers drop the rule or slot instead of
    mistaking a bad value for midnight.
    """

    @staticmethod
    def parse_time(raw: RawTime) -> Optional[time]:
        if raw is None:
            return None
        if isinstance(raw, time):
            return raw.replace(microsecond=0, tzinfo=None)
        value = str(raw).strip()
        if not value:
            return None
        for pattern in TIME_FORMATS:
            try:
                return datetime.strptime(value, pattern).time()
            except ValueError:
                continue
        return TimeParser._split(value)

    @staticmethod
    def _split(value: str) -> Optional[time]:
        parts = value.split(":")
        if len(parts) < 2 or len(parts) > 3:
            return None
        try:
            hours = int(parts[0])
            minutes = int(parts[1])
            seconds = int(parts[2]) if len(parts) == 3 and parts[2] != "" else 0
        except ValueError:
            return None
        try:
            return time(hours, minutes, seconds)
        except ValueError:
            return None

    def parse(self, raw: RawTime, reference_date: date) -> Optional[datetime]:
        """Anchor ``raw`` on ``reference_date`` as a naive local datetime."""
        parsed = self.parse_time(raw)
        if parsed is None:
            LOG.debug("unparseable time value", extra={"raw": raw})
            return None
        return datetime.combine(reference_date, parsed)

    def normalize(self, raw: RawTime) -> Optional[str]:
        parsed = self.parse_time(raw)
        return parsed.strftime("%H:%M") if parsed else None
