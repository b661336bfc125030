from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal

from pydantic import ValidationError
import pytest
import pytz

from builders import NEXT_MONDAY, on_date, recurring
from mentor_availability.enums import Weekday
from mentor_availability.models import (
    AvailabilityRule,
    DaySchedule,
    ExpandedSlot,
    GroupPricingTable,
    MaterializedSlot,
    SaveResult,
    WeeklySchedule,
)


class TestAvailabilityRule:
    def test_recurring_wire_payload(self) -> None:
        rule = recurring(Weekday.WEDNESDAY, "09:00", "10:00", tier=3, rule_id="tpl-9")
        assert rule.to_wire() == {
            "recurrence": "weekly",
            "weekday": 2,
            "start_time": "09:00",
            "end_time": "10:00",
            "slot_duration_minutes": 60,
            "group_tier": 3,
        }

    def test_date_specific_wire_payload_is_solo(self) -> None:
        rule = on_date(NEXT_MONDAY, "14:00", "14:45", tier=1)
        payload = rule.to_wire()
        assert payload["recurrence"] == "date"
        assert payload["specific_date"] == "2025-01-13"
        assert payload["group_tier"] is None
        assert "weekday" not in payload

    def test_from_wire_accepts_seconds(self) -> None:
        rule = AvailabilityRule.from_wire(
            {"id": 42, "weekday": 0, "start_time": "09:00:00", "end_time": "10:00:00", "group_tier": None}
        )
        assert rule.id == "42"
        assert rule.day_of_week == Weekday.MONDAY
        assert rule.start_time == time(9, 0)
        assert rule.is_solo

    def test_from_wire_prefers_specific_date(self) -> None:
        rule = AvailabilityRule.from_wire(
            {"id": "a", "weekday": 3, "specific_date": "2025-01-13", "start_time": "09:00", "end_time": "09:30"}
        )
        assert rule.specific_date == date(2025, 1, 13)
        assert rule.day_bucket == Weekday.MONDAY
        assert not rule.is_recurring

    def test_from_wire_legacy_group_flag(self) -> None:
        flagged = AvailabilityRule.from_wire(
            {"id": "g1", "weekday": 1, "start_time": "09:00", "end_time": "10:00", "is_group": True}
        )
        sized = AvailabilityRule.from_wire(
            {
                "id": "g2",
                "weekday": 1,
                "start_time": "09:00",
                "end_time": "10:00",
                "is_group": True,
                "max_participants": 5,
            }
        )
        plain = AvailabilityRule.from_wire(
            {"id": "s1", "weekday": 1, "start_time": "09:00", "end_time": "10:00", "is_group": False}
        )

        assert not flagged.is_solo
        assert flagged.group_tier == 2
        assert sized.group_tier == 5
        assert plain.is_solo

    def test_from_wire_requires_a_recurrence(self) -> None:
        with pytest.raises(ValueError):
            AvailabilityRule.from_wire({"id": "a", "start_time": "09:00", "end_time": "10:00"})

    def test_cannot_carry_weekday_and_date(self) -> None:
        with pytest.raises(ValidationError):
            AvailabilityRule(
                recurrence={"kind": "date", "specific_date": "2025-01-13", "day_of_week": "monday"},
                start_time="09:00",
                end_time="10:00",
            )

    def test_is_immutable(self) -> None:
        rule = recurring(Weekday.MONDAY, "09:00", "10:00")
        with pytest.raises(ValidationError):
            rule.start_time = time(8, 0)

    def test_minute_resolution(self) -> None:
        rule = recurring(Weekday.MONDAY, "09:00:45", "10:00:10")
        assert rule.start_time == time(9, 0)
        assert rule.time_range == "09:00-10:00"

    def test_content_ignores_id(self) -> None:
        a = recurring(Weekday.MONDAY, "09:00", "10:00", rule_id="tpl-1")
        b = recurring(Weekday.MONDAY, "09:00", "10:00")
        assert a.content() == b.content()

    def test_rejects_zero_tier(self) -> None:
        with pytest.raises(ValidationError):
            recurring(Weekday.MONDAY, "09:00", "10:00", tier=0)


class TestWeeklySchedule:
    def test_always_has_seven_days(self) -> None:
        schedule = WeeklySchedule.empty()
        assert [day.day for day in schedule.iter_days()] == list(Weekday.ordered())
        assert not any(day.enabled for day in schedule.iter_days())

        partial = WeeklySchedule(days={Weekday.FRIDAY: DaySchedule(day=Weekday.FRIDAY, enabled=True)})
        assert len(partial.days) == 7
        assert partial[Weekday.FRIDAY].enabled

    def test_rejects_misfiled_day(self) -> None:
        with pytest.raises(ValidationError):
            WeeklySchedule(days={Weekday.FRIDAY: DaySchedule(day=Weekday.MONDAY)})

    def test_from_rules_groups_by_bucket(self) -> None:
        schedule = WeeklySchedule.from_rules(
            [
                recurring(Weekday.MONDAY, "09:00", "10:00", rule_id="1"),
                on_date(NEXT_MONDAY, "11:00", "12:00", rule_id="2"),
                recurring(Weekday.SATURDAY, "09:00", "10:00", rule_id="3"),
            ]
        )
        assert [day.day for day in schedule.enabled_days()] == [Weekday.MONDAY, Weekday.SATURDAY]
        assert len(schedule[Weekday.MONDAY].rules) == 2
        assert schedule.rule_count() == 3

    def test_disabled_day_hides_rules(self) -> None:
        schedule = WeeklySchedule.from_rules([recurring(Weekday.MONDAY, "09:00", "10:00", rule_id="1")])
        disabled = schedule.replace_day(schedule[Weekday.MONDAY].model_copy(update={"enabled": False}))

        assert disabled[Weekday.MONDAY].visible_rules == ()
        assert disabled.rule_count() == 1
        assert disabled.rule_count(enabled_only=True) == 0
        # The original value is untouched
        assert schedule[Weekday.MONDAY].enabled


class TestExpandedSlot:
    def test_from_wire(self) -> None:
        slot = ExpandedSlot.from_wire({"start_at": "2025-12-17T09:00:00Z", "group_tier": 3, "extra": True})
        assert slot.start_instant == datetime(2025, 12, 17, 9, 0, tzinfo=pytz.UTC)
        assert slot.group_tier == 3

    def test_legacy_group_fields(self) -> None:
        slot = ExpandedSlot.from_wire({"start_at": "2025-12-17T09:00:00Z", "is_group": True, "max_participants": 4})
        assert slot.group_tier == 4

    def test_naive_instant_is_utc(self) -> None:
        slot = ExpandedSlot(start_instant=datetime(2025, 12, 17, 23, 30))
        assert slot.start_instant.tzinfo is not None
        assert slot.start_instant.utcoffset().total_seconds() == 0


class TestMaterializedSlot:
    instant = datetime(2025, 12, 17, 9, 0, tzinfo=pytz.UTC)

    def test_parallel_lengths_enforced(self) -> None:
        with pytest.raises(ValidationError):
            MaterializedSlot(
                date=date(2025, 12, 17),
                day_label="WED",
                display_times=("09:00 AM", "10:00 AM"),
                start_instants=(self.instant,),
                group_tiers=(None,),
            )

    def test_badges(self) -> None:
        slot = MaterializedSlot(
            date=date(2025, 12, 17),
            day_label="WED",
            display_times=("09:00 AM", "09:00 AM"),
            start_instants=(self.instant, self.instant),
            group_tiers=(None, 3),
        )
        assert len(slot) == 2
        assert slot.badges == ("Solo", "Group of 3")
        assert not slot.is_group(0)
        assert slot.is_group(1)


class TestGroupPricing:
    def test_offerable_tiers(self) -> None:
        table = GroupPricingTable(prices={"5": "40", "3": 25.5, "1": 10, "8": 0, "10": None})
        assert table.prices[3] == Decimal("25.5")
        assert table.offerable_tiers() == [3, 5]
        assert table.is_offerable(None)
        assert table.is_offerable(1)
        assert not table.is_offerable(8)
        assert not table.is_offerable(10)


class TestSaveResult:
    def test_summary(self) -> None:
        assert SaveResult(created=2, updated=1, deleted=3).summary() == "created 2, updated 1, removed 3"
        assert SaveResult().ok
