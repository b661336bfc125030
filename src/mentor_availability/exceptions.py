"""
Domain-specific exceptions for the mentor availability engine.

These exceptions carry user-facing messages plus the day, date and times
implicated, so callers can surface each problem individually.
"""

from typing import Any, Dict, List, Optional, Sequence


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "code": self.code,
            "details": self.details,
        }


class ValidationException(DomainException):
    """Raised when business validation fails."""


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""


class ServiceException(DomainException):
    """Raised when a service operation fails."""


# Rule validation


class MalformedTimeException(ValidationException):
    """Raised when a time string is not zero-padded 24-hour HH:MM."""

    def __init__(self, value: Any):
        super().__init__(
            message=f"Invalid time '{value}': expected HH:MM (24-hour, zero-padded)",
            code="MALFORMED_TIME",
            details={"value": str(value)},
        )


class MalformedDateException(ValidationException):
    """Raised when a date string is not a real YYYY-MM-DD calendar date."""

    def __init__(self, value: Any):
        super().__init__(
            message=f"Invalid date '{value}': expected YYYY-MM-DD",
            code="MALFORMED_DATE",
            details={"value": str(value)},
        )


class InvertedRangeException(ValidationException):
    """Raised when a slot does not end after it starts."""

    def __init__(self, day: str, start_time: str, end_time: str):
        super().__init__(
            message=f"{day}: end time {end_time} must be after start time {start_time}",
            code="INVERTED_RANGE",
            details={"day": day, "start_time": start_time, "end_time": end_time},
        )


class DurationExceededException(ValidationException):
    """Raised when a slot is longer than the allowed maximum."""

    def __init__(self, day: str, start_time: str, end_time: str, duration_minutes: int, max_minutes: int):
        super().__init__(
            message=(
                f"{day}: slot {start_time}-{end_time} is {duration_minutes} minutes; "
                f"slots cannot exceed {max_minutes} minutes"
            ),
            code="DURATION_EXCEEDED",
            details={
                "day": day,
                "start_time": start_time,
                "end_time": end_time,
                "duration_minutes": duration_minutes,
                "max_minutes": max_minutes,
            },
        )


class WeekdayDateMismatchException(ValidationException):
    """Raised when a specific date does not fall on the day it is filed under."""

    def __init__(self, day: str, specific_date: str, actual_day: str):
        super().__init__(
            message=f"{specific_date} is a {actual_day}, not a {day}. Pick a {day} date.",
            code="WEEKDAY_DATE_MISMATCH",
            details={"day": day, "date": specific_date, "actual_day": actual_day},
        )


class PastSlotException(ValidationException):
    """Raised when a new date-specific slot is already in the past."""

    def __init__(self, day: str, specific_date: str, start_time: str, timezone: str):
        super().__init__(
            message=f"{day}: cannot add a slot in the past ({specific_date} {start_time}, {timezone})",
            code="PAST_SLOT",
            details={
                "day": day,
                "date": specific_date,
                "start_time": start_time,
                "timezone": timezone,
            },
        )


class UnsupportedTierException(BusinessRuleException):
    """Raised when a group tier has no price configured on the mentor profile."""

    def __init__(self, tier: int, offerable: Sequence[int]):
        super().__init__(
            message=f"Group of {tier} is not offered; set a price for it first",
            code="UNSUPPORTED_TIER",
            details={"tier": tier, "offerable_tiers": list(offerable)},
        )


# Conflicts


class SlotConflictException(ConflictException):
    """Base for disallowed overlaps between two slots on the same day."""

    def __init__(
        self,
        message: str,
        code: str,
        day: str,
        first_range: str,
        second_range: str,
        group_tier: Optional[int] = None,
    ):
        super().__init__(
            message=message,
            code=code,
            details={
                "day": day,
                "first_slot": first_range,
                "second_slot": second_range,
                "group_tier": group_tier,
            },
        )


class DuplicateSoloSlotException(SlotConflictException):
    """Raised when two overlapping solo slots exist on the same day."""

    def __init__(self, day: str, first_range: str, second_range: str):
        super().__init__(
            message=f"{day}: solo slots {first_range} and {second_range} overlap",
            code="DUPLICATE_SOLO_SLOT",
            day=day,
            first_range=first_range,
            second_range=second_range,
        )


class DuplicateGroupSlotException(SlotConflictException):
    """Raised when two overlapping group slots of the same size exist on the same day."""

    def __init__(self, day: str, first_range: str, second_range: str, group_tier: int):
        super().__init__(
            message=(
                f"{day}: group-of-{group_tier} slots {first_range} and {second_range} overlap"
            ),
            code="DUPLICATE_GROUP_SLOT",
            day=day,
            first_range=first_range,
            second_range=second_range,
            group_tier=group_tier,
        )


# Schedule editing


class SlotIndexError(NotFoundException):
    """Raised when a (day, index) pair does not address a slot."""

    def __init__(self, day: str, index: int):
        super().__init__(
            message=f"No slot at position {index} on {day}",
            code="SLOT_NOT_FOUND",
            details={"day": day, "index": index},
        )


class ScheduleValidationError(ValidationException):
    """
    Raised by save() when local validation or conflict detection fails.

    Carries every violation found so they can be surfaced together. No
    network call has been made when this is raised.
    """

    def __init__(self, errors: List[DomainException]):
        self.errors = list(errors)
        summary = "; ".join(error.message for error in self.errors)
        super().__init__(
            message=f"Schedule has {len(self.errors)} problem(s): {summary}",
            code="SCHEDULE_INVALID",
            details={"errors": [error.to_dict() for error in self.errors]},
        )


class SaveInProgressException(ConflictException):
    """Raised when save() is called while another save is still running."""

    def __init__(self) -> None:
        super().__init__(
            message="A save is already in progress",
            code="SAVE_IN_PROGRESS",
        )


class ContractViolationException(ServiceException):
    """
    Raised when the backend returns no rules after a save that should have
    left some behind. Distinct from "no availability configured".
    """

    def __init__(self, expected_rules: int, loaded_rules: int = 0, result: Any = None):
        self.result = result
        super().__init__(
            message=(
                f"Backend returned {loaded_rules} availability rules after saving {expected_rules}; "
                "the template listing or weekday tagging contract was not honored"
            ),
            code="CONTRACT_VIOLATION",
            details={"expected_rules": expected_rules, "loaded_rules": loaded_rules},
        )


class ScheduleReloadException(ServiceException):
    """
    Raised when the writes of a save went through but re-fetching the
    schedule afterwards failed. ``result`` carries the outcome of the writes.
    """

    def __init__(self, reason: str, result: Any = None):
        self.result = result
        super().__init__(
            message=f"Availability was saved but could not be reloaded: {reason}",
            code="RELOAD_FAILED",
            details={"reason": reason},
        )
