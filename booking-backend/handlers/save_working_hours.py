from __future__ import annotations

from typing import Any, Dict, List, Mapping

from services.supabase_client import SupabaseClient
from services.working_hours import build_working_hour_rows


async def execute(
    db: SupabaseClient,
    business_id: str,
    weekly: Mapping[str, Mapping[str, Any]],
) -> List[Dict[str, Any]]:
    rows = build_working_hour_rows(business_id, weekly)
    return await db.replace_working_hours(business_id, rows)
