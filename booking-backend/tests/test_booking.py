import asyncio
from datetime import time

import pytest

from services import BookingCoordinator, NotificationDispatcher
from services.booking import can_transition, validate_client
from services.errors import (
    AppointmentNotFound,
    InvalidStatusTransition,
    SlotAlreadyBooked,
    TransientStoreError,
    ValidationError,
)
from services.models import AppointmentStatus, ClientInfo

from .conftest import BUSINESS_ID, MONDAY, SERVICE_ID


def client(**overrides):
    values = dict(
        name="  Ada Lovelace ",
        email="ada@example.com",
        phone=" 555-0100 ",
        notes="  first visit ",
        accepted_terms=True,
    )
    values.update(overrides)
    return ClientInfo(**values)


class TestValidateClient:
    def test_valid(self):
        assert validate_client(client()) == {}

    def test_reports_every_field(self):
        errors = validate_client(ClientInfo(name=" ", email="nope", phone="", accepted_terms=False))
        assert set(errors) == {"client_name", "client_email", "client_phone", "terms"}

    def test_missing_email(self):
        assert validate_client(client(email=""))["client_email"] == "Email is required"


class TestSubmitBooking:
    async def test_creates_new_appointment(self, coordinator, store):
        appointment = await coordinator.submit_booking(BUSINESS_ID, SERVICE_ID, "2030-01-07", "9:30", client())
        assert appointment.status is AppointmentStatus.new
        assert appointment.date == MONDAY
        assert appointment.time == time(9, 30)
        assert appointment.client_name == "Ada Lovelace"
        assert appointment.client_phone == "555-0100"
        assert appointment.notes == "first visit"
        assert store.appointments[-1]["appointment_time"] == "09:30:00"

    async def test_blank_notes_stored_as_null(self, coordinator, store):
        await coordinator.submit_booking(BUSINESS_ID, SERVICE_ID, MONDAY, time(9, 0), client(notes="   "))
        assert store.appointments[-1]["notes"] is None

    async def test_validation_happens_before_any_write(self, coordinator, store):
        with pytest.raises(ValidationError) as excinfo:
            await coordinator.submit_booking(BUSINESS_ID, "", "", "", client(accepted_terms=False))
        assert set(excinfo.value.errors) == {"service_id", "date", "time", "terms"}
        assert store.inserts == 0

    async def test_unknown_service_and_bad_values(self, coordinator):
        with pytest.raises(ValidationError) as excinfo:
            await coordinator.submit_booking(BUSINESS_ID, "missing", "07/01/2030", "noonish", client())
        assert excinfo.value.errors == {
            "service_id": "Service does not exist",
            "date": "Date is invalid",
            "time": "Time is invalid",
        }

    async def test_time_outside_schedule_rejected(self, coordinator, store):
        with pytest.raises(ValidationError) as excinfo:
            await coordinator.submit_booking(BUSINESS_ID, SERVICE_ID, "2030-01-07", "12:30", client())
        assert "time" in excinfo.value.errors
        with pytest.raises(ValidationError):
            await coordinator.submit_booking(BUSINESS_ID, SERVICE_ID, "2030-01-08", "09:00", client())
        assert store.inserts == 0

    async def test_booked_slot_rejected_before_write(self, coordinator, store):
        store.add_appointment(MONDAY, "10:00")
        with pytest.raises(SlotAlreadyBooked):
            await coordinator.submit_booking(BUSINESS_ID, SERVICE_ID, "2030-01-07", "10:00", client())
        assert store.inserts == 0

    async def test_cancelled_slot_can_be_rebooked(self, coordinator, store):
        store.add_appointment(MONDAY, "10:00", status="cancelled")
        appointment = await coordinator.submit_booking(BUSINESS_ID, SERVICE_ID, "2030-01-07", "10:00", client())
        assert appointment.time == time(10, 0)

    async def test_concurrent_submissions_book_exactly_once(self, coordinator, store):
        store.insert_delay = 0.01
        results = await asyncio.gather(
            coordinator.submit_booking(BUSINESS_ID, SERVICE_ID, "2030-01-07", "11:00", client()),
            coordinator.submit_booking(BUSINESS_ID, SERVICE_ID, "2030-01-07", "11:00", client(name="Grace")),
            return_exceptions=True,
        )
        created = [result for result in results if not isinstance(result, Exception)]
        rejected = [result for result in results if isinstance(result, SlotAlreadyBooked)]
        assert len(created) == 1 and len(rejected) == 1
        assert created[0].status is AppointmentStatus.new
        active = [row for row in store.appointments if row["appointment_time"] == "11:00:00"]
        assert len(active) == 1

    async def test_store_failure_is_transient(self, coordinator, store):
        store.fail_with = TransientStoreError("down")
        with pytest.raises(TransientStoreError) as excinfo:
            await coordinator.submit_booking(BUSINESS_ID, SERVICE_ID, "2030-01-07", "09:00", client())
        assert excinfo.value.retryable


class TestStrictSlotCheck:
    async def _hide_bookings(self, *args, **kwargs):
        return []

    async def test_strict_mode_checks_before_insert(self, store, availability):
        store.add_appointment(MONDAY, "09:00")
        store.list_booked_times = self._hide_bookings
        coordinator = BookingCoordinator(store, availability, strict_slot_check=True)
        with pytest.raises(SlotAlreadyBooked):
            await coordinator.submit_booking(BUSINESS_ID, SERVICE_ID, "2030-01-07", "09:00", client())
        assert store.inserts == 0

    async def test_default_mode_relies_on_store_conflict(self, store, availability):
        store.add_appointment(MONDAY, "09:00")
        store.list_booked_times = self._hide_bookings
        coordinator = BookingCoordinator(store, availability)
        with pytest.raises(SlotAlreadyBooked):
            await coordinator.submit_booking(BUSINESS_ID, SERVICE_ID, "2030-01-07", "09:00", client())
        assert store.inserts == 0


class TestNotifications:
    async def test_dispatcher_called_after_booking(self, store, availability):
        notifier = NotificationDispatcher(["email", "sms", "carrier-pigeon"])
        assert notifier.channels == ["email", "sms"]
        coordinator = BookingCoordinator(store, availability, notifier=notifier)
        appointment = await coordinator.submit_booking(BUSINESS_ID, SERVICE_ID, "2030-01-07", "15:00", client())
        assert await notifier.booking_created(appointment) == ["email", "sms"]


class TestStatusTransitions:
    @pytest.mark.parametrize(
        "current,target,allowed",
        [
            ("new", "confirmed", True),
            ("new", "cancelled", True),
            ("confirmed", "cancelled", True),
            ("confirmed", "completed", True),
            ("new", "completed", False),
            ("cancelled", "new", False),
            ("cancelled", "confirmed", False),
            ("completed", "cancelled", False),
            ("confirmed", "confirmed", False),
        ],
    )
    def test_state_machine(self, current, target, allowed):
        assert can_transition(AppointmentStatus(current), AppointmentStatus(target)) is allowed

    async def test_confirm_then_complete(self, coordinator, store):
        record = store.add_appointment(MONDAY, "09:00")
        assert (await coordinator.confirm(record["id"])).status is AppointmentStatus.confirmed
        assert (await coordinator.complete(record["id"])).status is AppointmentStatus.completed
        with pytest.raises(InvalidStatusTransition):
            await coordinator.cancel(record["id"])

    async def test_cancel_frees_slot(self, coordinator, availability, store, past_now):
        record = store.add_appointment(MONDAY, "10:00")
        await coordinator.cancel(record["id"])
        slots = await availability.get_available_slots(BUSINESS_ID, MONDAY, 30, past_now)
        assert not next(slot for slot in slots if slot.value == "10:00").is_booked

    async def test_concurrent_status_change_detected(self, coordinator, store):
        record = store.add_appointment(MONDAY, "09:00")
        original = store.get_appointment

        async def stale_read(appointment_id):
            snapshot = await original(appointment_id)
            record["status"] = "cancelled"
            return snapshot

        store.get_appointment = stale_read
        with pytest.raises(InvalidStatusTransition):
            await coordinator.confirm(record["id"])
        assert record["status"] == "cancelled"

    async def test_unknown_appointment_and_status(self, coordinator):
        with pytest.raises(AppointmentNotFound):
            await coordinator.cancel("nope")
        with pytest.raises(ValidationError):
            await coordinator.update_status("nope", "archived")
