"""Service layer for the appointment booking backend."""

from .supabase_client import SupabaseClient  # noqa: F401
from .slot_generator import SlotGenerator  # noqa: F401
from .time_parser import TimeParser  # noqa: F401
from .working_hours import WorkingHoursResolver, build_working_hour_rows  # noqa: F401
from .availability import AvailabilityService, reconcile_selection  # noqa: F401
from .booking import BookingCoordinator  # noqa: F401
from .notifications import NotificationDispatcher  # noqa: F401
