"""Availability and slot scheduling engine for mentorship bookings."""

from .booking import SlotSelection, book_selection, select_time
from .client import (
    BackendAuthError,
    BackendConnectionError,
    BackendError,
    BackendNotFoundError,
    BackendRequestError,
    BookingClient,
    MentorProfileClient,
    MentorshipApiClient,
    SlotExpansionClient,
    TemplateStorageClient,
)
from .config import Settings, get_settings
from .conflicts import ConflictDetector, SlotConflict
from .enums import ConflictKind, ConflictScope, NextOccurrenceMode, SaveOperation, Weekday
from .materializer import SlotMaterializer
from .models import (
    AvailabilityRule,
    DateSpecific,
    DaySchedule,
    ExpandedSlot,
    GroupPricingTable,
    ItemFailure,
    MaterializedSlot,
    Recurring,
    SaveResult,
    WeeklySchedule,
)
from .schedule import SavePlan, ScheduleAggregator
from .validator import RuleValidator

__all__ = [
    "AvailabilityRule",
    "BackendAuthError",
    "BackendConnectionError",
    "BackendError",
    "BackendNotFoundError",
    "BackendRequestError",
    "BookingClient",
    "ConflictDetector",
    "ConflictKind",
    "ConflictScope",
    "DateSpecific",
    "DaySchedule",
    "ExpandedSlot",
    "GroupPricingTable",
    "ItemFailure",
    "MaterializedSlot",
    "MentorProfileClient",
    "MentorshipApiClient",
    "NextOccurrenceMode",
    "Recurring",
    "RuleValidator",
    "SaveOperation",
    "SavePlan",
    "SaveResult",
    "ScheduleAggregator",
    "Settings",
    "SlotConflict",
    "SlotExpansionClient",
    "SlotMaterializer",
    "SlotSelection",
    "TemplateStorageClient",
    "Weekday",
    "WeeklySchedule",
    "book_selection",
    "get_settings",
    "select_time",
]
