from __future__ import annotations

import pytest

from builders import NEXT_MONDAY, on_date, recurring
from mentor_availability.conflicts import ConflictDetector, classify, overlaps
from mentor_availability.enums import ConflictKind, ConflictScope, Weekday
from mentor_availability.exceptions import DuplicateGroupSlotException, DuplicateSoloSlotException
from mentor_availability.models import AvailabilityRule
from mentor_availability.time_utils import add_days

MON = Weekday.MONDAY


@pytest.fixture
def detector() -> ConflictDetector:
    return ConflictDetector()


class TestOverlap:
    def test_touching_edges_do_not_overlap(self) -> None:
        assert not overlaps(recurring(MON, "10:00", "11:00"), recurring(MON, "11:00", "12:00"))

    def test_partial_overlap(self) -> None:
        assert overlaps(recurring(MON, "10:00", "11:00"), recurring(MON, "10:30", "11:30"))

    def test_nested_and_identical(self) -> None:
        outer = recurring(MON, "09:00", "10:00")
        assert overlaps(outer, recurring(MON, "09:15", "09:45"))
        assert overlaps(outer, recurring(MON, "09:00", "10:00"))

    def test_classify(self) -> None:
        solo = recurring(MON, "10:00", "11:00")
        group3 = recurring(MON, "10:00", "11:00", tier=3)
        group5 = recurring(MON, "10:00", "11:00", tier=5)

        assert classify(solo, recurring(MON, "10:00", "11:00", tier=1)) == ConflictKind.DUPLICATE_SOLO
        assert classify(group3, recurring(MON, "10:30", "11:30", tier=3)) == ConflictKind.DUPLICATE_GROUP
        assert classify(solo, group3) is None
        assert classify(group3, group5) is None


class TestDetector:
    def test_overlapping_solos_conflict(self, detector) -> None:
        a = recurring(MON, "10:00", "11:00")
        b = recurring(MON, "10:30", "11:30")
        assert detector.conflicts(a, b) == ConflictKind.DUPLICATE_SOLO
        assert detector.conflicts(b, a) == ConflictKind.DUPLICATE_SOLO

    def test_solo_and_group_may_coincide(self, detector) -> None:
        a = recurring(MON, "10:00", "11:00")
        b = recurring(MON, "10:00", "11:00", tier=4)
        assert detector.conflicts(a, b) is None
        assert detector.find_conflicts(MON, [a, b]) == []

    def test_different_group_sizes_may_coincide(self, detector) -> None:
        a = recurring(MON, "10:00", "11:00", tier=3)
        b = recurring(MON, "10:00", "11:00", tier=5)
        assert detector.find_conflicts(MON, [a, b]) == []

    def test_same_rule_never_conflicts_with_itself(self, detector) -> None:
        rule = recurring(MON, "10:00", "11:00")
        assert detector.conflicts(rule, rule) is None

    def test_equal_but_distinct_rules_conflict(self, detector) -> None:
        assert detector.conflicts(recurring(MON, "10:00", "11:00"), recurring(MON, "10:00", "11:00")) is not None

    def test_back_to_back_solos(self, detector) -> None:
        rules = [
            recurring(MON, "09:00", "10:00"),
            recurring(MON, "10:00", "11:00"),
            recurring(MON, "11:00", "12:00"),
        ]
        assert detector.find_conflicts(MON, rules) == []

    def test_group_conflict_message(self, detector) -> None:
        rules = [recurring(MON, "10:00", "11:00", tier=3), recurring(MON, "10:30", "11:30", tier=3)]
        found = detector.find_conflicts(MON, rules)

        assert len(found) == 1
        conflict = found[0]
        assert (conflict.first_index, conflict.second_index) == (0, 1)
        exc = conflict.to_exception()
        assert isinstance(exc, DuplicateGroupSlotException)
        assert exc.message == "Monday: group-of-3 slots 10:00-11:00 and 10:30-11:30 overlap"
        assert exc.details["group_tier"] == 3

    def test_solo_conflict_message(self, detector) -> None:
        rules = [recurring(MON, "10:00", "11:00"), recurring(MON, "10:30", "11:30")]
        exc = detector.find_conflicts(MON, rules)[0].to_exception()

        assert isinstance(exc, DuplicateSoloSlotException)
        assert exc.code == "DUPLICATE_SOLO_SLOT"
        assert exc.message == "Monday: solo slots 10:00-11:00 and 10:30-11:30 overlap"

    def test_every_pair_reported(self, detector) -> None:
        rules = [
            recurring(MON, "09:00", "10:00"),
            recurring(MON, "09:30", "10:30"),
            recurring(MON, "09:45", "10:15"),
        ]
        found = detector.find_conflicts(MON, rules)
        assert [(c.first_index, c.second_index) for c in found] == [(0, 1), (0, 2), (1, 2)]


class TestScope:
    def test_weekday_scope_compares_different_dates(self, detector) -> None:
        a = on_date(NEXT_MONDAY, "10:00", "11:00")
        b = on_date(add_days(NEXT_MONDAY, 7), "10:00", "11:00")
        assert detector.conflicts(a, b) == ConflictKind.DUPLICATE_SOLO

    def test_weekday_scope_compares_recurring_with_dated(self, detector) -> None:
        a = recurring(MON, "10:00", "11:00")
        b = on_date(NEXT_MONDAY, "10:30", "11:30")
        assert detector.conflicts(a, b) == ConflictKind.DUPLICATE_SOLO

    def test_calendar_date_scope_skips_different_dates(self) -> None:
        detector = ConflictDetector(ConflictScope.CALENDAR_DATE)
        a = on_date(NEXT_MONDAY, "10:00", "11:00")
        b = on_date(add_days(NEXT_MONDAY, 7), "10:00", "11:00")
        c = on_date(NEXT_MONDAY, "10:30", "11:30")

        assert detector.conflicts(a, b) is None
        assert detector.conflicts(a, c) == ConflictKind.DUPLICATE_SOLO

    def test_calendar_date_scope_keeps_recurring_pairs(self) -> None:
        detector = ConflictDetector(ConflictScope.CALENDAR_DATE)
        a = recurring(MON, "10:00", "11:00")
        b = on_date(NEXT_MONDAY, "10:30", "11:30")
        assert detector.conflicts(a, b) == ConflictKind.DUPLICATE_SOLO


def test_legacy_group_template_coexists_with_solo() -> None:
    legacy = AvailabilityRule.from_wire(
        {"id": "g1", "weekday": 0, "start_time": "10:00", "end_time": "11:00", "is_group": True}
    )
    assert ConflictDetector().conflicts(legacy, recurring(MON, "10:00", "11:00")) is None
