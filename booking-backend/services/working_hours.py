from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from .models import DayHours, Interval, WorkingHourRule
from .time_parser import TimeParser

LOG = logging.getLogger(__name__)

DAY_NAME_TO_INDEX = {
    "sunday": 0,
    "monday": 1,
    "tuesday": 2,
    "wednesday": 3,
    "thursday": 4,
    "friday": 5,
    "saturday": 6,
}


def day_of_week(value: date) -> int:
    """Weekday index with Sunday as 0."""
    return (value.weekday() + 1) % 7


class WorkingHoursResolver:
    """Maps a weekly rule set onto concrete calendar dates."""

    def __init__(self, parser: Optional[TimeParser] = None) -> None:
        self._parser = parser or TimeParser()

    def _interval(self, rule: WorkingHourRule, target: date) -> Optional[Interval]:
        if not rule.is_open or not rule.start_time or not rule.end_time:
            return None
        start = self._parser.parse(rule.start_time, target)
        end = self._parser.parse(rule.end_time, target)
        if start is None or end is None:
            LOG.warning(
                "dropping working hour rule with unparseable times",
                extra={"business_id": rule.business_id, "start": rule.start_time, "end": rule.end_time},
            )
            return None
        if start >= end:
            LOG.warning(
                "dropping inverted working hour rule",
                extra={"business_id": rule.business_id, "start": rule.start_time, "end": rule.end_time},
            )
            return None
        return Interval(start=start, end=end)

    def resolve_day(self, rules: Iterable[WorkingHourRule], target: date) -> DayHours:
        weekday = day_of_week(target)
        day_rules = [rule for rule in rules if rule.day_of_week == weekday]
        intervals = [interval for interval in (self._interval(rule, target) for rule in day_rules) if interval]
        intervals.sort(key=lambda interval: interval.start)
        return DayHours(date=target, intervals=tuple(intervals), has_defined_hours=bool(day_rules))

    def bookable_dates(
        self,
        rules: Sequence[WorkingHourRule],
        start: date,
        window_days: int = 21,
    ) -> List[date]:
        dates: List[date] = []
        for offset in range(max(window_days, 0)):
            target = start + timedelta(days=offset)
            if self.resolve_day(rules, target).intervals:
                dates.append(target)
        return dates


def _normalize_slot_time(value: Optional[str]) -> Optional[str]:
    if not value or not str(value).strip():
        return None
    parsed = TimeParser.parse_time(value)
    return parsed.strftime("%H:%M:%S") if parsed else None


def _seconds(value: str) -> int:
    parsed = datetime.strptime(value, "%H:%M:%S")
    return parsed.hour * 3600 + parsed.minute * 60 + parsed.second


def build_working_hour_rows(
    business_id: str,
    weekly: Mapping[str, Mapping[str, Any]],
) -> List[Dict[str, Any]]:
    """Turn the setup wizard's weekly map into ``working_hours`` rows.

    Closed days, and open days whose slots all fail validation, produce a single
    closed marker row so the day still counts as configured.
    """
    rows: List[Dict[str, Any]] = []
    for day_name, schedule in weekly.items():
        index = DAY_NAME_TO_INDEX.get(str(day_name).lower())
        if index is None:
            continue
        seen = set()
        cleaned = []
        for slot in schedule.get("slots") or []:
            start = _normalize_slot_time((slot or {}).get("start"))
            end = _normalize_slot_time((slot or {}).get("end"))
            if not start or not end or _seconds(start) >= _seconds(end):
                continue
            if (start, end) in seen:
                continue
            seen.add((start, end))
            cleaned.append((start, end))

        if not schedule.get("is_open", schedule.get("isOpen")) or not cleaned:
            rows.append(
                {
                    "business_id": business_id,
                    "day_of_week": index,
                    "is_open": False,
                    "start_time": None,
                    "end_time": None,
                }
            )
            continue
        for start, end in cleaned:
            rows.append(
                {
                    "business_id": business_id,
                    "day_of_week": index,
                    "is_open": True,
                    "start_time": start,
                    "end_time": end,
                }
            )
    return rows
