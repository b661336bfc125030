"""
Conflict detection for availability rules filed under one weekday.

Overlap uses half-open intervals, so touching edges (10:00-11:00 and
11:00-12:00) never conflict. Only duplicates of the same kind of offer are
disallowed: two solo slots, or two group slots of the same size. A solo slot
and a group slot (or two different group sizes) at the same time may coexist;
whichever a mentee books first wins.
"""

from dataclasses import dataclass
from itertools import combinations
import logging
from typing import List, Optional, Sequence

from .enums import ConflictKind, ConflictScope, Weekday
from .exceptions import DuplicateGroupSlotException, DuplicateSoloSlotException, SlotConflictException
from .models import AvailabilityRule
from .time_utils import time_to_minutes

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SlotConflict:
    """A disallowed overlap between two rules on the same day."""

    day: Weekday
    kind: ConflictKind
    first: AvailabilityRule
    second: AvailabilityRule
    first_index: int
    second_index: int

    def to_exception(self) -> SlotConflictException:
        if self.kind == ConflictKind.DUPLICATE_SOLO:
            return DuplicateSoloSlotException(self.day.label, self.first.time_range, self.second.time_range)
        return DuplicateGroupSlotException(
            self.day.label,
            self.first.time_range,
            self.second.time_range,
            self.first.tier,
        )


def overlaps(a: AvailabilityRule, b: AvailabilityRule) -> bool:
    """Half-open interval intersection; also catches nesting and identical ranges."""
    a_start, a_end = time_to_minutes(a.start_time), time_to_minutes(a.end_time)
    b_start, b_end = time_to_minutes(b.start_time), time_to_minutes(b.end_time)
    return a_start < b_end and b_start < a_end


def classify(a: AvailabilityRule, b: AvailabilityRule) -> Optional[ConflictKind]:
    """Kind of conflict two overlapping rules would form, ignoring their times."""
    if a.is_solo and b.is_solo:
        return ConflictKind.DUPLICATE_SOLO
    if not a.is_solo and not b.is_solo and a.tier == b.tier:
        return ConflictKind.DUPLICATE_GROUP
    return None


class ConflictDetector:
    """
    Finds disallowed overlaps among the rules of one weekday bucket.

    With the WEEKDAY scope every rule in the bucket is compared with every
    other, recurring or date-specific. The CALENDAR_DATE scope skips pairs of
    date-specific rules on different dates, since they can never coincide.
    """

    def __init__(self, scope: ConflictScope = ConflictScope.WEEKDAY):
        self.scope = scope

    def can_coincide(self, a: AvailabilityRule, b: AvailabilityRule) -> bool:
        if self.scope == ConflictScope.WEEKDAY:
            return True
        if a.is_recurring or b.is_recurring:
            return a.day_bucket == b.day_bucket
        return a.specific_date == b.specific_date

    def conflicts(self, a: AvailabilityRule, b: AvailabilityRule) -> Optional[ConflictKind]:
        """
        Conflict kind between two distinct rules, or None.

        Symmetric in its arguments. Passing the same rule object twice never
        reports a conflict.
        """
        if a is b:
            return None
        if not self.can_coincide(a, b) or not overlaps(a, b):
            return None
        return classify(a, b)

    def find_conflicts(self, day: Weekday, rules: Sequence[AvailabilityRule]) -> List[SlotConflict]:
        """
        Check every unordered pair of rules filed under ``day``.

        Returns:
            One SlotConflict per colliding pair, in rule order
        """
        found: List[SlotConflict] = []
        for (i, first), (j, second) in combinations(enumerate(rules), 2):
            kind = self.conflicts(first, second)
            if kind is not None:
                found.append(SlotConflict(day, kind, first, second, i, j))

        if found:
            logger.info(
                "Found %d slot conflict(s) on %s: %s",
                len(found),
                day.value,
                ", ".join(f"{c.first.time_range}/{c.second.time_range}" for c in found),
            )
        return found
