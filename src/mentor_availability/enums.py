"""
Core enums for the mentor availability engine.

Weekday symbols, recurrence discriminators and conflict classifications
shared by the validator, conflict detector, aggregator and materializer.
"""

from enum import Enum


class Weekday(str, Enum):
    """
    Weekday symbols used as day buckets in a weekly schedule.

    Ordering follows ``datetime.date.weekday()`` (Monday == 0), which is also
    the integer the template-storage backend sends on the wire.
    """

    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @property
    def number(self) -> int:
        return _WEEKDAY_ORDER.index(self)

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @property
    def short_label(self) -> str:
        return self.value[:3].upper()

    @classmethod
    def from_index(cls, index: int) -> "Weekday":
        if not 0 <= index <= 6:
            raise ValueError(f"Weekday index must be between 0 and 6, got {index}")
        return _WEEKDAY_ORDER[index]

    @classmethod
    def ordered(cls) -> tuple["Weekday", ...]:
        return _WEEKDAY_ORDER


_WEEKDAY_ORDER: tuple[Weekday, ...] = tuple(Weekday)


class RecurrenceKind(str, Enum):
    """Discriminator for the recurring / date-specific rule union."""

    RECURRING = "recurring"
    DATE = "date"


class NextOccurrenceMode(str, Enum):
    """
    Tie-break used by ``next_occurrence`` when the start date already matches.

    SHOW_TODAY is used on read/display paths. SKIP_TODAY is used when
    proposing a default date for a new rule so a same-day slot that may
    already have passed is never suggested.
    """

    SHOW_TODAY = "show_today"
    SKIP_TODAY = "skip_today"


class ConflictKind(str, Enum):
    """Disallowed overlap classifications."""

    DUPLICATE_SOLO = "duplicate_solo"
    DUPLICATE_GROUP = "duplicate_group"


class ConflictScope(str, Enum):
    """
    Comparison set used by the conflict detector.

    WEEKDAY compares every rule filed under the same weekday bucket.
    CALENDAR_DATE only compares rules that can land on the same real date.
    """

    WEEKDAY = "weekday"
    CALENDAR_DATE = "calendar_date"


class SaveOperation(str, Enum):
    """Persistence operations issued by a schedule save."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
