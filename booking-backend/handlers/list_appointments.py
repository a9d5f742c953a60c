from __future__ import annotations

from typing import Any, Dict, List, Optional

from dateutil import parser

from services.errors import ValidationError
from services.models import Appointment
from services.supabase_client import SupabaseClient


async def execute(
    db: SupabaseClient,
    business_id: str,
    status: Optional[str] = None,
    date: Optional[str] = None,
) -> List[Dict[str, Any]]:
    on_date = None
    if date:
        try:
            on_date = parser.isoparse(date).date()
        except ValueError as exc:
            raise ValidationError({"date": f"Invalid date: {date}"}) from exc
    records = await db.list_appointments(business_id, status=status, on_date=on_date)
    return [Appointment.from_record(record).to_dict() for record in records]
