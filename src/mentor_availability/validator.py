"""
Rule validator for availability templates.

Checks a single rule in isolation:
- Time ordering (end after start)
- Duration cap
- Date-specific rules filed under the weekday their date falls on
- New date-specific rules not in the past (operating time zone)

Each violation is reported as its own exception so every problem can be
shown to the mentor, not just the first.
"""

from datetime import date
import logging
from typing import List, Optional

from .base import BaseService
from .enums import Weekday
from .exceptions import (
    DurationExceededException,
    InvertedRangeException,
    PastSlotException,
    UnsupportedTierException,
    ValidationException,
    WeekdayDateMismatchException,
)
from .models import AvailabilityRule, GroupPricingTable
from .time_utils import format_hhmm, operating_now, weekday_of

logger = logging.getLogger(__name__)


class RuleValidator(BaseService):
    """Validates availability rules before they reach the template backend."""

    @property
    def max_duration_minutes(self) -> int:
        return self.settings.max_slot_duration_minutes

    def validate(self, rule: AvailabilityRule, filed_under: Optional[Weekday] = None) -> List[ValidationException]:
        """
        Collect every violation for ``rule``.

        Args:
            rule: The rule to check
            filed_under: Day bucket holding the rule (defaults to its own bucket)

        Returns:
            List of violations, empty when the rule is well-formed
        """
        day = filed_under or rule.day_bucket
        label = day.label
        start = format_hhmm(rule.start_time)
        end = format_hhmm(rule.end_time)
        errors: List[ValidationException] = []

        duration = rule.duration_minutes
        if duration <= 0:
            errors.append(InvertedRangeException(label, start, end))
        elif duration > self.max_duration_minutes:
            errors.append(DurationExceededException(label, start, end, duration, self.max_duration_minutes))

        specific = rule.specific_date
        if specific is not None:
            mismatch = self._weekday_mismatch(day, specific)
            if mismatch is not None:
                errors.append(mismatch)

            # Persisted rules may be edited without re-triggering the past check
            if not rule.is_persisted and self._is_past(specific, rule):
                errors.append(
                    PastSlotException(label, specific.isoformat(), start, self.settings.operating_timezone)
                )

        if errors:
            self.logger.debug(
                "Rule %s on %s failed validation: %s",
                rule.time_range,
                day.value,
                [error.code for error in errors],
            )
        return errors

    def ensure_valid(self, rule: AvailabilityRule, filed_under: Optional[Weekday] = None) -> None:
        """Raise the first violation, if any."""
        errors = self.validate(rule, filed_under)
        if errors:
            raise errors[0]

    def check_specific_date(self, filed_under: Weekday, specific_date: date) -> None:
        """
        Immediate feedback when a date is picked for a rule.

        Raises:
            WeekdayDateMismatchException: The date is not a ``filed_under`` day
        """
        mismatch = self._weekday_mismatch(filed_under, specific_date)
        if mismatch is not None:
            raise mismatch

    def check_tier(self, tier: Optional[int], pricing: Optional[GroupPricingTable]) -> None:
        """
        Ensure a group tier is priced on the mentor profile.

        Solo is always allowed. Without a pricing table every tier is accepted.
        """
        if pricing is None or pricing.is_offerable(tier):
            return
        raise UnsupportedTierException(tier or 0, pricing.offerable_tiers())

    def _weekday_mismatch(self, day: Weekday, specific_date: date) -> Optional[WeekdayDateMismatchException]:
        actual = weekday_of(specific_date)
        if actual == day:
            return None
        return WeekdayDateMismatchException(day.label, specific_date.isoformat(), actual.label)

    def _is_past(self, specific_date: date, rule: AvailabilityRule) -> bool:
        now = operating_now(self.settings.operating_tz, self.clock)
        today = now.date()
        if specific_date < today:
            return True
        if specific_date == today:
            return rule.start_time < now.time().replace(second=0, microsecond=0, tzinfo=None)
        return False
