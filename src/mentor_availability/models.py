"""
Availability data model.

Rules are immutable pydantic models; the recurring / date-specific split is a
discriminated union so a rule can never carry both a weekday and a date, or
neither. Schedules are rebuilt on every mutation instead of being patched in
place.
"""

import datetime
from decimal import Decimal
from typing import Annotated, Any, Dict, Iterable, Iterator, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
import pytz

from .enums import SaveOperation, Weekday
from .time_utils import format_hhmm, parse_iso_date, time_to_minutes, weekday_of

# Type aliases for clarity
DateType = datetime.date
TimeType = datetime.time
DateTimeType = datetime.datetime

SOLO_TIER = 1
# Size assumed for templates that only carry the legacy ``is_group`` flag
LEGACY_GROUP_TIER = 2


class Recurring(BaseModel):
    """Repeats every week on a fixed weekday."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["recurring"] = "recurring"
    day_of_week: Weekday


class DateSpecific(BaseModel):
    """Applies to exactly one calendar date."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["date"] = "date"
    specific_date: DateType


Recurrence = Annotated[Union[Recurring, DateSpecific], Field(discriminator="kind")]


def _truncate_to_minute(value: TimeType) -> TimeType:
    return value.replace(second=0, microsecond=0, tzinfo=None)


class AvailabilityRule(BaseModel):
    """
    A single availability template owned by a mentor.

    ``group_tier`` of None or 1 means a solo session; n > 1 means a group
    session of up to n participants. Ordering and duration are not enforced
    here: unsaved rules may be temporarily invalid while being edited, and the
    validator reports each problem individually.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: Optional[str] = None
    recurrence: Recurrence
    start_time: TimeType
    end_time: TimeType
    group_tier: Optional[int] = Field(default=None, ge=1)

    @field_validator("start_time", "end_time")
    @classmethod
    def minute_resolution(cls, v: TimeType) -> TimeType:
        return _truncate_to_minute(v)

    @property
    def duration_minutes(self) -> int:
        return time_to_minutes(self.end_time) - time_to_minutes(self.start_time)

    @property
    def is_recurring(self) -> bool:
        return isinstance(self.recurrence, Recurring)

    @property
    def is_persisted(self) -> bool:
        return self.id is not None

    @property
    def tier(self) -> int:
        return self.group_tier or SOLO_TIER

    @property
    def is_solo(self) -> bool:
        return self.tier <= SOLO_TIER

    @property
    def specific_date(self) -> Optional[DateType]:
        if isinstance(self.recurrence, DateSpecific):
            return self.recurrence.specific_date
        return None

    @property
    def day_of_week(self) -> Optional[Weekday]:
        if isinstance(self.recurrence, Recurring):
            return self.recurrence.day_of_week
        return None

    @property
    def day_bucket(self) -> Weekday:
        """Weekday this rule belongs under (UTC weekday of its date when date-specific)."""
        if isinstance(self.recurrence, Recurring):
            return self.recurrence.day_of_week
        return weekday_of(self.recurrence.specific_date)

    @property
    def time_range(self) -> str:
        return f"{format_hhmm(self.start_time)}-{format_hhmm(self.end_time)}"

    def content(self) -> Dict[str, Any]:
        """Everything except the identifier; used to detect unsaved edits."""
        return self.model_dump(exclude={"id"}, mode="json")

    def to_wire(self) -> Dict[str, Any]:
        """Payload sent to the template-storage backend."""
        payload: Dict[str, Any] = {
            "start_time": format_hhmm(self.start_time),
            "end_time": format_hhmm(self.end_time),
            "slot_duration_minutes": self.duration_minutes,
            "group_tier": None if self.is_solo else self.group_tier,
        }
        if isinstance(self.recurrence, Recurring):
            payload["recurrence"] = "weekly"
            payload["weekday"] = self.recurrence.day_of_week.number
        else:
            payload["recurrence"] = "date"
            payload["specific_date"] = self.recurrence.specific_date.isoformat()
        return payload

    @classmethod
    def from_wire(cls, payload: Dict[str, Any]) -> "AvailabilityRule":
        """Build a rule from a template-storage response item."""
        recurrence: Union[Recurring, DateSpecific]
        specific = payload.get("specific_date")
        if specific:
            recurrence = DateSpecific(specific_date=parse_iso_date(specific))
        else:
            weekday = payload.get("weekday")
            if weekday is None:
                raise ValueError(f"Template {payload.get('id')} has neither weekday nor specific_date")
            recurrence = Recurring(day_of_week=Weekday.from_index(int(weekday)))

        # Backend may send HH:MM:SS
        start = str(payload["start_time"])[:5]
        end = str(payload["end_time"])[:5]
        tier = payload.get("group_tier")
        if not tier and payload.get("is_group"):
            # Older templates only flag group slots; the size lives elsewhere, if anywhere
            tier = payload.get("max_participants") or LEGACY_GROUP_TIER
        rule_id = payload.get("id")
        return cls(
            id=str(rule_id) if rule_id is not None else None,
            recurrence=recurrence,
            start_time=start,
            end_time=end,
            group_tier=int(tier) if tier else None,
        )


class DaySchedule(BaseModel):
    """One weekday bucket of a mentor's schedule."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    day: Weekday
    enabled: bool = False
    rules: Tuple[AvailabilityRule, ...] = ()

    @property
    def visible_rules(self) -> Tuple[AvailabilityRule, ...]:
        """Rules shown to the mentor; a disabled day renders no slots."""
        return self.rules if self.enabled else ()

    def with_rules(self, rules: Iterable[AvailabilityRule]) -> "DaySchedule":
        return self.model_copy(update={"rules": tuple(rules)})


class WeeklySchedule(BaseModel):
    """
    Mapping of every weekday to its DaySchedule.

    Always complete: missing weekdays are filled with disabled empty days.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    days: Dict[Weekday, DaySchedule] = Field(default_factory=dict)

    @model_validator(mode="after")
    def fill_missing_days(self) -> "WeeklySchedule":
        for day in Weekday.ordered():
            existing = self.days.get(day)
            if existing is None:
                self.days[day] = DaySchedule(day=day)
            elif existing.day != day:
                raise ValueError(f"DaySchedule for {existing.day.value} filed under {day.value}")
        return self

    @classmethod
    def empty(cls) -> "WeeklySchedule":
        return cls()

    @classmethod
    def from_rules(cls, rules: Iterable[AvailabilityRule]) -> "WeeklySchedule":
        """
        Build a schedule from persisted rules.

        Each rule is filed under its day bucket; days holding at least one
        rule are enabled.
        """
        grouped: Dict[Weekday, List[AvailabilityRule]] = {day: [] for day in Weekday.ordered()}
        for rule in rules:
            grouped[rule.day_bucket].append(rule)
        return cls(
            days={
                day: DaySchedule(day=day, enabled=bool(day_rules), rules=tuple(day_rules))
                for day, day_rules in grouped.items()
            }
        )

    def __getitem__(self, day: Weekday) -> DaySchedule:
        return self.days[day]

    def iter_days(self) -> Iterator[DaySchedule]:
        return (self.days[day] for day in Weekday.ordered())

    def replace_day(self, day_schedule: DaySchedule) -> "WeeklySchedule":
        days = dict(self.days)
        days[day_schedule.day] = day_schedule
        return WeeklySchedule(days=days)

    def enabled_days(self) -> List[DaySchedule]:
        return [day for day in self.iter_days() if day.enabled]

    def all_rules(self) -> List[AvailabilityRule]:
        return [rule for day in self.iter_days() for rule in day.rules]

    def rule_count(self, *, enabled_only: bool = False) -> int:
        days = self.enabled_days() if enabled_only else list(self.iter_days())
        return sum(len(day.rules) for day in days)


class ExpandedSlot(BaseModel):
    """One concrete occurrence returned by the slot-expansion backend."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    start_instant: DateTimeType
    group_tier: Optional[int] = None

    @field_validator("start_instant")
    @classmethod
    def ensure_aware(cls, v: DateTimeType) -> DateTimeType:
        if v.tzinfo is None:
            # Assume UTC if no timezone info
            return pytz.UTC.localize(v)
        return v

    @classmethod
    def from_wire(cls, payload: Dict[str, Any]) -> "ExpandedSlot":
        tier = payload.get("group_tier")
        if tier is None and payload.get("is_group"):
            tier = payload.get("max_participants")
        return cls(start_instant=payload["start_at"], group_tier=tier)


class MaterializedSlot(BaseModel):
    """
    Mentee-facing bookable times for a single calendar date.

    ``display_times``, ``start_instants`` and ``group_tiers`` are parallel and
    always the same length. ``start_instants`` is the only value ever passed
    on to booking creation.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    date: DateType
    day_label: str
    display_times: Tuple[str, ...]
    start_instants: Tuple[DateTimeType, ...]
    group_tiers: Tuple[Optional[int], ...]

    @model_validator(mode="after")
    def parallel_lengths(self) -> "MaterializedSlot":
        lengths = {len(self.display_times), len(self.start_instants), len(self.group_tiers)}
        if len(lengths) != 1:
            raise ValueError("display_times, start_instants and group_tiers must have equal length")
        return self

    def __len__(self) -> int:
        return len(self.start_instants)

    def is_group(self, index: int) -> bool:
        tier = self.group_tiers[index]
        return tier is not None and tier > SOLO_TIER

    @property
    def badges(self) -> Tuple[str, ...]:
        return tuple(
            f"Group of {tier}" if self.is_group(i) else "Solo" for i, tier in enumerate(self.group_tiers)
        )


class GroupPricingTable(BaseModel):
    """Tier size -> price, as configured on the mentor profile."""

    model_config = ConfigDict(frozen=True)

    prices: Dict[int, Decimal] = Field(default_factory=dict)

    @field_validator("prices", mode="before")
    @classmethod
    def coerce_keys(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return {int(k): Decimal(str(price)) for k, price in v.items() if price is not None}
        return v

    def offerable_tiers(self) -> List[int]:
        """Group sizes that can be attached to a new rule (price > 0)."""
        return sorted(tier for tier, price in self.prices.items() if tier > SOLO_TIER and price > 0)

    def is_offerable(self, tier: Optional[int]) -> bool:
        if tier is None or tier <= SOLO_TIER:
            return True
        return tier in self.offerable_tiers()


class ItemFailure(BaseModel):
    """A single create/update/delete that failed during save."""

    model_config = ConfigDict(frozen=True)

    operation: SaveOperation
    rule_id: Optional[str] = None
    day: Weekday
    time_range: str
    message: str


class SaveResult(BaseModel):
    """Aggregate outcome of a schedule save, including partial failures."""

    created: int = 0
    updated: int = 0
    deleted: int = 0
    skipped: int = 0
    failures: List[ItemFailure] = Field(default_factory=list)
    schedule: Optional[WeeklySchedule] = None

    @property
    def ok(self) -> bool:
        return not self.failures

    def summary(self) -> str:
        text = f"created {self.created}, updated {self.updated}, removed {self.deleted}"
        if self.failures:
            text += f" ({len(self.failures)} failed)"
        return text
