from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from pydantic import BaseModel, Field

from handlers import (
    book_appointment,
    fetch_slots,
    get_business,
    list_appointments,
    list_dates,
    save_working_hours,
    update_status,
)
from services import (
    AvailabilityService,
    BookingCoordinator,
    NotificationDispatcher,
    SlotGenerator,
    SupabaseClient,
)
from services.errors import (
    AppointmentNotFound,
    BookingError,
    InvalidStatusTransition,
    ServiceNotFound,
    SlotAlreadyBooked,
    SubmissionInProgress,
    TransientStoreError,
    ValidationError,
)
from settings import get_settings


logger = logging.getLogger("booking.api")
if not logger.handlers:
    logging.basicConfig(level=logging.INFO)

settings = get_settings()


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    yield
    logger.info("API shutdown requested; closing Supabase client")
    if get_container.cache_info().currsize:
        await get_container().db.close()


app = FastAPI(
    title="Appointment Booking Backend",
    version="1.0.0",
    lifespan=lifespan,
    default_response_class=ORJSONResponse,
)

origins = settings.cors_origins or ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@dataclass
class Container:
    db: SupabaseClient
    availability: AvailabilityService
    coordinator: BookingCoordinator


@lru_cache(maxsize=1)
def get_container() -> Container:
    db = SupabaseClient(settings.supabase_url, settings.supabase_key, timeout=settings.store_timeout)
    availability = AvailabilityService(
        db,
        SlotGenerator(settings.default_timezone, settings.default_slot_minutes),
        window_days=settings.booking_window_days,
    )
    coordinator = BookingCoordinator(
        db,
        availability,
        strict_slot_check=settings.strict_slot_check,
        notifier=NotificationDispatcher(settings.notification_channels),
    )
    return Container(db=db, availability=availability, coordinator=coordinator)


class TimeSlotModel(BaseModel):
    start: str = Field(..., max_length=8)
    end: str = Field(..., max_length=8)


class DayScheduleModel(BaseModel):
    is_open: bool = False
    slots: List[TimeSlotModel] = Field(default_factory=list)


class BookingRequest(BaseModel):
    service_id: str
    date: str = Field(..., description="ISO calendar date, YYYY-MM-DD")
    time: str = Field(..., description="Slot start, HH:MM")
    client_name: str = Field(..., max_length=120)
    client_email: str = Field(..., max_length=254)
    client_phone: str = Field(default="", max_length=32)
    notes: Optional[str] = Field(default=None, max_length=2000)
    accepted_terms: bool = False


class StatusUpdate(BaseModel):
    status: str


_STATUS_BY_ERROR = (
    (ValidationError, 422),
    (ServiceNotFound, 404),
    (AppointmentNotFound, 404),
    (SlotAlreadyBooked, 409),
    (InvalidStatusTransition, 409),
    (SubmissionInProgress, 409),
    (TransientStoreError, 503),
)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError) -> ORJSONResponse:
    status_code = next((code for kind, code in _STATUS_BY_ERROR if isinstance(exc, kind)), 400)
    detail: Dict[str, Any] = {"code": exc.code, "message": str(exc)}
    if isinstance(exc, ValidationError):
        detail["errors"] = exc.errors
    if isinstance(exc, TransientStoreError):
        detail["retryable"] = True
    logger.info(
        "booking error response",
        extra={"path": request.url.path, "status": status_code, "code": exc.code},
    )
    return ORJSONResponse(status_code=status_code, content={"detail": detail})


@app.get("/api/health")
async def health(container: Container = Depends(get_container)) -> Dict[str, Any]:
    logger.debug("/api/health invoked")
    supabase_ok = await container.db.health()
    status = "ok" if supabase_ok else "degraded"
    return {"status": status, "supabase": supabase_ok}


@app.get("/api/config")
async def get_config() -> Dict[str, Any]:
    return {
        "default_timezone": settings.default_timezone,
        "booking_window_days": settings.booking_window_days,
        "default_slot_minutes": settings.default_slot_minutes,
    }


@app.get("/api/booking/{booking_url}")
async def booking_page(booking_url: str, container: Container = Depends(get_container)) -> Dict[str, Any]:
    logger.info("resolving booking page", extra={"booking_url": booking_url})
    result = await get_business.execute(container.db, container.availability, booking_url)
    if result is None:
        raise HTTPException(status_code=404, detail="Business not found")
    return result


@app.get("/api/businesses/{business_id}/dates")
async def bookable_dates(
    business_id: str,
    window_days: Optional[int] = None,
    container: Container = Depends(get_container),
) -> List[str]:
    if window_days is not None and not 1 <= window_days <= 90:
        raise HTTPException(status_code=422, detail="window_days must be between 1 and 90")
    logger.info("listing bookable dates", extra={"business_id": business_id, "window_days": window_days})
    return await list_dates.execute(container.availability, business_id, window_days=window_days)


@app.get("/api/businesses/{business_id}/slots")
async def slots(
    business_id: str,
    service_id: str,
    date: Optional[str] = None,
    container: Container = Depends(get_container),
) -> List[Dict[str, Any]]:
    logger.info("fetching slots", extra={"business_id": business_id, "date": date, "service_id": service_id})
    try:
        return await fetch_slots.execute(container.availability, business_id, service_id, date=date)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=f"Invalid date: {date}") from exc


@app.post("/api/businesses/{business_id}/appointments", status_code=201)
async def create_appointment(
    business_id: str,
    payload: BookingRequest,
    container: Container = Depends(get_container),
) -> Dict[str, Any]:
    logger.info(
        "booking requested",
        extra={"business_id": business_id, "service_id": payload.service_id, "date": payload.date, "time": payload.time},
    )
    return await book_appointment.execute(container.coordinator, business_id, **payload.model_dump())


@app.get("/api/businesses/{business_id}/appointments")
async def appointments(
    business_id: str,
    status: Optional[str] = None,
    date: Optional[str] = None,
    container: Container = Depends(get_container),
) -> List[Dict[str, Any]]:
    logger.info("listing appointments", extra={"business_id": business_id, "status": status, "date": date})
    return await list_appointments.execute(container.db, business_id, status=status, date=date)


@app.put("/api/businesses/{business_id}/working-hours")
async def replace_working_hours(
    business_id: str,
    weekly: Dict[str, DayScheduleModel],
    container: Container = Depends(get_container),
) -> List[Dict[str, Any]]:
    logger.info("replacing working hours", extra={"business_id": business_id, "days": sorted(weekly)})
    payload = {day: schedule.model_dump() for day, schedule in weekly.items()}
    return await save_working_hours.execute(container.db, business_id, payload)


@app.patch("/api/appointments/{appointment_id}/status")
async def change_status(
    appointment_id: str,
    payload: StatusUpdate,
    container: Container = Depends(get_container),
) -> Dict[str, Any]:
    logger.info("status change requested", extra={"appointment_id": appointment_id, "status": payload.status})
    return await update_status.execute(container.coordinator, appointment_id, payload.status)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api:app", host="0.0.0.0", port=8000, reload=True)
