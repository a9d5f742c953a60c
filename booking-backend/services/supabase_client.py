from __future__ import annotations

import asyncio
import logging
import os
from datetime import date, time
from typing import Any, Dict, Iterable, List, Optional

import httpx

from .errors import StoreConflict, TransientStoreError
from .models import ACTIVE_STATUSES

LOG = logging.getLogger(__name__)

APPOINTMENT_COLUMNS = (
    "id,business_id,service_id,client_name,client_email,client_phone,"
    "appointment_date,appointment_time,status,notes,created_at,updated_at"
)
UNIQUE_VIOLATION = "23505"


class SupabaseClient:
    """Lightweight Supabase PostgREST helper with async httpx under the hood."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = 20.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url or os.getenv("SUPABASE_URL")
        self._api_key = api_key or os.getenv("SUPABASE_KEY")
        if not self._base_url or not self._api_key:
            raise RuntimeError("SUPABASE_URL and SUPABASE_KEY must be configured")
        self._rest_url = f"{self._base_url.rstrip('/')}/rest/v1"
        self._client = httpx.AsyncClient(
            base_url=self._rest_url,
            headers={
                "apikey": self._api_key,
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
                "Accept": "application/json",
                "Prefer": "return=representation",
            },
            timeout=timeout,
            transport=transport,
        )
        self._lock = asyncio.Lock()

    async def close(self) -> None:
        await self._client.aclose()

    async def health(self) -> bool:
        try:
            response = await self._client.get("/businesses", params={"select": "id", "limit": 1})
            response.raise_for_status()
            return True
        except httpx.HTTPError as exc:
            LOG.error("Supabase health check failed: %s", exc)
            return False

    @staticmethod
    def _in(values: Iterable[str]) -> str:
        return f"in.({','.join(values)})"

    @staticmethod
    def _conflict_from(response: httpx.Response) -> Optional[StoreConflict]:
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        code = body.get("code")
        # 409 also covers foreign-key (23503) and exclusion (23P01) violations
        if code == UNIQUE_VIOLATION or (response.status_code == 409 and not code):
            return StoreConflict(body.get("message") or "duplicate key value", constraint=body.get("details"))
        return None

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        LOG.debug("supabase request", extra={"method": method, "path": path, "kwargs": kwargs})
        try:
            async with self._lock:
                response = await self._client.request(method, path, **kwargs)
        except httpx.TransportError as exc:
            LOG.error("Supabase transport failure: %s %s: %s", method, path, exc)
            raise TransientStoreError(f"store unreachable: {exc}") from exc
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code == 404:
                LOG.warning("Supabase endpoint missing: %s %s", method, path)
                # treat missing table/view as empty result so callers keep working
                return []
            conflict = self._conflict_from(exc.response)
            if conflict is not None:
                raise conflict from exc
            LOG.error(
                "Supabase request failed",
                extra={"method": method, "path": path, "status": exc.response.status_code},
            )
            raise TransientStoreError(
                f"store returned {exc.response.status_code}",
                status_code=exc.response.status_code,
            ) from exc
        LOG.debug(
            "supabase response",
            extra={"method": method, "path": path, "status": response.status_code},
        )
        if response.status_code == 204 or not response.content:
            return []
        return response.json()

    async def list_working_hours(self, business_id: str) -> List[Dict[str, Any]]:
        return await self._request(
            "GET",
            "/working_hours",
            params={"business_id": f"eq.{business_id}", "select": "*"},
        )

    async def replace_working_hours(self, business_id: str, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Swap the weekly schedule in one transaction via ``sql/002_replace_working_hours.sql``."""
        payload = [
            {key: row.get(key) for key in ("day_of_week", "is_open", "start_time", "end_time")}
            for row in rows
        ]
        return await self._request(
            "POST",
            "/rpc/replace_working_hours",
            json={"p_business_id": business_id, "p_rows": payload},
        )

    async def get_business_by_url(self, booking_url: str) -> Optional[Dict[str, Any]]:
        if not booking_url:
            return None
        data = await self._request(
            "GET",
            "/businesses",
            params={"booking_url": f"eq.{booking_url}", "select": "*", "limit": 1},
        )
        return data[0] if data else None

    async def list_services(self, business_id: str) -> List[Dict[str, Any]]:
        return await self._request(
            "GET",
            "/services",
            params={"business_id": f"eq.{business_id}", "select": "*"},
        )

    async def get_service(self, business_id: str, service_id: str) -> Optional[Dict[str, Any]]:
        data = await self._request(
            "GET",
            "/services",
            params={"business_id": f"eq.{business_id}", "id": f"eq.{service_id}", "select": "*"},
        )
        return data[0] if data else None

    async def list_appointments(
        self,
        business_id: str,
        status: Optional[str] = None,
        on_date: Optional[date] = None,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {
            "business_id": f"eq.{business_id}",
            "select": APPOINTMENT_COLUMNS,
            "order": "appointment_date.asc,appointment_time.asc",
        }
        if status:
            params["status"] = f"eq.{status}"
        if on_date:
            params["appointment_date"] = f"eq.{on_date.isoformat()}"
        return await self._request("GET", "/appointments", params=params)

    async def list_booked_times(self, business_id: str, on_date: date) -> List[Dict[str, Any]]:
        params = {
            "select": "appointment_time",
            "business_id": f"eq.{business_id}",
            "appointment_date": f"eq.{on_date.isoformat()}",
            "status": self._in(status.value for status in ACTIVE_STATUSES),
        }
        return await self._request("GET", "/appointments", params=params)

    async def find_active_appointment(
        self, business_id: str, on_date: date, at_time: time
    ) -> Optional[Dict[str, Any]]:
        params = {
            "select": "id,appointment_time,status",
            "business_id": f"eq.{business_id}",
            "appointment_date": f"eq.{on_date.isoformat()}",
            "appointment_time": f"eq.{at_time.strftime('%H:%M:%S')}",
            "status": self._in(status.value for status in ACTIVE_STATUSES),
            "limit": 1,
        }
        data = await self._request("GET", "/appointments", params=params)
        return data[0] if data else None

    async def create_appointment(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        data = await self._request(
            "POST",
            "/appointments",
            params={"select": APPOINTMENT_COLUMNS},
            json=payload,
        )
        return data[0]

    async def get_appointment(self, appointment_id: str) -> Optional[Dict[str, Any]]:
        data = await self._request(
            "GET",
            "/appointments",
            params={"id": f"eq.{appointment_id}", "select": APPOINTMENT_COLUMNS},
        )
        return data[0] if data else None

    async def update_appointment_status(
        self,
        appointment_id: str,
        status: str,
        expected_status: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        params = {"id": f"eq.{appointment_id}", "select": APPOINTMENT_COLUMNS}
        if expected_status:
            params["status"] = f"eq.{expected_status}"
        data = await self._request("PATCH", "/appointments", params=params, json={"status": status})
        return data[0] if data else None
