"""
Schedule aggregator for a mentor's weekly availability.

Owns the in-memory WeeklySchedule for one editing session, mediates every
mutation, and reconciles the result against the template backend on save:
- Local validation and conflict detection before any network call
- Deletes, then creates, then updates (items within a phase run concurrently)
- Per-item failures reported, never rolled back
- Full re-fetch afterwards; local state is never trusted after a save

Every mutation replaces ``schedule`` with a new value instead of modifying
the old one.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import date, time
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple, Union

from .base import BaseService
from .collaborators import PricingSource, TemplateStore
from .config import Settings
from .conflicts import ConflictDetector
from .enums import NextOccurrenceMode, SaveOperation, Weekday
from .exceptions import (
    ContractViolationException,
    DomainException,
    SaveInProgressException,
    ScheduleReloadException,
    ScheduleValidationError,
    SlotIndexError,
    ValidationException,
)
from .models import (
    SOLO_TIER,
    AvailabilityRule,
    DateSpecific,
    DaySchedule,
    GroupPricingTable,
    ItemFailure,
    Recurring,
    SaveResult,
    WeeklySchedule,
)
from .time_utils import Clock, add_minutes, next_occurrence, operating_today, parse_hhmm, parse_iso_date
from .validator import RuleValidator

logger = logging.getLogger(__name__)

RuleRef = Tuple[Weekday, AvailabilityRule]

_TIME_FIELDS = {
    "start": "start_time",
    "start_time": "start_time",
    "end": "end_time",
    "end_time": "end_time",
}


@dataclass
class SavePlan:
    """Partition of the schedule into backend operations."""

    creates: List[RuleRef] = field(default_factory=list)
    updates: List[RuleRef] = field(default_factory=list)
    deletes: List[RuleRef] = field(default_factory=list)
    unchanged: List[RuleRef] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.creates or self.updates or self.deletes)


class ScheduleAggregator(BaseService):
    """
    Editing session over one mentor's availability templates.

    Args:
        store: Template-storage backend
        settings: Engine settings
        clock: Callable returning the current aware UTC datetime
        validator: Rule validator (built from settings when omitted)
        detector: Conflict detector (built from settings when omitted)
        pricing: Group pricing table used to gate group tiers
    """

    def __init__(
        self,
        store: TemplateStore,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
        validator: Optional[RuleValidator] = None,
        detector: Optional[ConflictDetector] = None,
        pricing: Optional[GroupPricingTable] = None,
    ):
        super().__init__(settings, clock)
        self.store = store
        self.validator = validator or RuleValidator(self.settings, self.clock)
        self.detector = detector or ConflictDetector(self.settings.conflict_scope)
        self.pricing = pricing
        self.schedule = WeeklySchedule.empty()
        self._persisted: Dict[str, AvailabilityRule] = {}
        self._dirty = False
        self._saving = False

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def has_changes(self) -> bool:
        return self._dirty

    @property
    def is_saving(self) -> bool:
        return self._saving

    def day(self, day: Weekday) -> DaySchedule:
        return self.schedule[day]

    def slot_count(self, day: Weekday) -> int:
        """Slots rendered for ``day``; zero while the day is disabled."""
        return len(self.schedule[day].visible_rules)

    def to_payload(self) -> List[Dict[str, Any]]:
        """Wire payload for every rule in an enabled day."""
        return [rule.to_wire() for day in self.schedule.enabled_days() for rule in day.rules]

    def _today(self) -> date:
        return operating_today(self.settings.operating_tz, self.clock)

    def _rebuild(self, rules: Sequence[AvailabilityRule]) -> WeeklySchedule:
        self.schedule = WeeklySchedule.from_rules(rules)
        self._persisted = {rule.id: rule for rule in rules if rule.id is not None}
        self._dirty = False
        return self.schedule

    def _rule_at(self, day: Weekday, index: int) -> AvailabilityRule:
        rules = self.schedule[day].rules
        if not 0 <= index < len(rules):
            raise SlotIndexError(day.value, index)
        return rules[index]

    def _put_rule(self, day: Weekday, index: int, rule: AvailabilityRule) -> AvailabilityRule:
        rules = list(self.schedule[day].rules)
        rules[index] = rule
        self.schedule = self.schedule.replace_day(self.schedule[day].with_rules(rules))
        self._dirty = True
        return rule

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @BaseService.measure_operation("load_schedule")
    async def load(self) -> WeeklySchedule:
        """Fetch every persisted rule and rebuild the schedule from scratch."""
        rules = await self.store.list()
        self.log_operation("load_schedule", rule_count=len(rules))
        return self._rebuild(rules)

    async def load_pricing(self, source: PricingSource) -> GroupPricingTable:
        self.pricing = await source.get_group_pricing()
        return self.pricing

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def toggle_day(self, day: Weekday, enabled: bool) -> WeeklySchedule:
        """Enable or disable a day. Rules are kept until save reconciles them."""
        current = self.schedule[day]
        if current.enabled != enabled:
            self.schedule = self.schedule.replace_day(current.model_copy(update={"enabled": enabled}))
            self._dirty = True
        return self.schedule

    def add_slot(self, day: Weekday) -> AvailabilityRule:
        """
        Append a new solo, date-specific slot at the default time.

        The date is the next ``day`` strictly after today, so a slot that may
        already have passed is never proposed.
        """
        start = parse_hhmm(self.settings.default_slot_start)
        rule = AvailabilityRule(
            recurrence=DateSpecific(
                specific_date=next_occurrence(day, self._today(), NextOccurrenceMode.SKIP_TODAY)
            ),
            start_time=start,
            end_time=add_minutes(start, self.settings.default_slot_length_minutes),
        )
        current = self.schedule[day]
        self.schedule = self.schedule.replace_day(current.with_rules([*current.rules, rule]))
        self._dirty = True
        return rule

    def update_time(self, day: Weekday, index: int, field_name: str, value: Union[str, time]) -> AvailabilityRule:
        """
        Change the start or end of a slot.

        Args:
            field_name: "start" or "end"
            value: "HH:MM" (24-hour, zero-padded) or a time

        Raises:
            MalformedTimeException: ``value`` is not a valid time
        """
        attr = _TIME_FIELDS.get(field_name)
        if attr is None:
            raise ValidationException(
                f"Unknown time field '{field_name}'",
                code="UNKNOWN_FIELD",
                details={"field": field_name},
            )
        rule = self._rule_at(day, index)
        return self._put_rule(day, index, rule.model_copy(update={attr: parse_hhmm(value)}))

    def update_tier(self, day: Weekday, index: int, tier: Optional[int]) -> AvailabilityRule:
        """
        Set the session tier (None or 1 for solo, n > 1 for a group of n).

        Raises:
            UnsupportedTierException: The group size has no price configured
        """
        rule = self._rule_at(day, index)
        self.validator.check_tier(tier, self.pricing)
        group_tier = tier if tier is not None and tier > SOLO_TIER else None
        return self._put_rule(day, index, rule.model_copy(update={"group_tier": group_tier}))

    def update_specific_date(self, day: Weekday, index: int, specific_date: Union[str, date]) -> AvailabilityRule:
        """
        Pin a slot to a calendar date.

        Raises:
            MalformedDateException: ``specific_date`` is not a YYYY-MM-DD date
            WeekdayDateMismatchException: The date is not a ``day``; the
                schedule is left unchanged
        """
        rule = self._rule_at(day, index)
        picked = parse_iso_date(specific_date)
        self.validator.check_specific_date(day, picked)
        return self._put_rule(
            day, index, rule.model_copy(update={"recurrence": DateSpecific(specific_date=picked)})
        )

    def set_recurrence_mode(self, day: Weekday, index: int, is_recurring: bool) -> AvailabilityRule:
        """
        Switch a slot between weekly recurrence and a single date.

        Switching to a single date proposes the next ``day`` after today.
        """
        rule = self._rule_at(day, index)
        if rule.is_recurring == is_recurring:
            return rule
        recurrence: Union[Recurring, DateSpecific]
        if is_recurring:
            recurrence = Recurring(day_of_week=day)
        else:
            recurrence = DateSpecific(
                specific_date=next_occurrence(day, self._today(), NextOccurrenceMode.SKIP_TODAY)
            )
        return self._put_rule(day, index, rule.model_copy(update={"recurrence": recurrence}))

    @BaseService.measure_operation("remove_slot")
    async def remove_slot(self, day: Weekday, index: int) -> AvailabilityRule:
        """
        Remove a slot.

        Persisted slots are deleted on the backend immediately; the slot is
        only removed locally once that delete succeeds. A failed delete
        propagates and leaves the slot in place.
        """
        rule = self._rule_at(day, index)
        if rule.id is not None:
            try:
                await self.store.delete(rule.id)
            except Exception as exc:
                self.logger.warning(f"Failed to delete slot {rule.id} ({day.value} {rule.time_range}): {exc}")
                raise
            self._persisted.pop(rule.id, None)

        # Re-read: the slot may have been edited while the delete was in flight
        if rule.id is not None:
            rules = [existing for existing in self.schedule[day].rules if existing.id != rule.id]
        else:
            rules = [existing for existing in self.schedule[day].rules if existing is not rule]
        self.schedule = self.schedule.replace_day(self.schedule[day].with_rules(rules))
        if rule.id is None:
            self._dirty = True
        return rule

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    def validate_all(self) -> List[DomainException]:
        """Every rule violation and slot conflict across enabled days."""
        errors: List[DomainException] = []
        for day_schedule in self.schedule.enabled_days():
            for rule in day_schedule.rules:
                errors.extend(self.validator.validate(rule, day_schedule.day))
            conflicts = self.detector.find_conflicts(day_schedule.day, day_schedule.rules)
            errors.extend(conflict.to_exception() for conflict in conflicts)
        return errors

    def plan(self) -> SavePlan:
        """
        Partition the schedule into backend operations.

        - enabled day, no id: create
        - enabled day, id, edited since load: update
        - enabled day, id, unchanged: skipped
        - disabled day, id: delete (disabled new rules are dropped)
        """
        plan = SavePlan()
        for day_schedule in self.schedule.iter_days():
            for rule in day_schedule.rules:
                ref = (day_schedule.day, rule)
                if not day_schedule.enabled:
                    if rule.id is not None:
                        plan.deletes.append(ref)
                elif rule.id is None:
                    plan.creates.append(ref)
                elif self._is_modified(rule):
                    plan.updates.append(ref)
                else:
                    plan.unchanged.append(ref)
        return plan

    def _is_modified(self, rule: AvailabilityRule) -> bool:
        original = self._persisted.get(rule.id or "")
        return original is None or original.content() != rule.content()

    @BaseService.measure_operation("save_schedule")
    async def save(self) -> SaveResult:
        """
        Validate, reconcile with the backend, then reload.

        Raises:
            SaveInProgressException: Another save is still running
            ScheduleValidationError: Local validation or conflicts; nothing was sent
            ContractViolationException: Backend listed no rules after a save
                that should have left some
            ScheduleReloadException: Writes went through but the reload failed

        Successful writes are applied locally before the reload, so a failed
        reload can be retried without repeating them. Both reload errors carry
        the SaveResult as ``result``.
        """
        if self._saving:
            raise SaveInProgressException()
        self._saving = True
        try:
            errors = self.validate_all()
            if errors:
                self.logger.info(f"Save blocked by {len(errors)} validation problem(s)")
                raise ScheduleValidationError(errors)

            plan = self.plan()
            self.log_operation(
                "save_schedule",
                creates=len(plan.creates),
                updates=len(plan.updates),
                deletes=len(plan.deletes),
                unchanged=len(plan.unchanged),
            )
            result = SaveResult(skipped=len(plan.unchanged))

            deleted = await self._run_phase(
                SaveOperation.DELETE,
                plan.deletes,
                lambda rule: self.store.delete(rule.id or ""),
                result,
            )
            created = await self._run_phase(SaveOperation.CREATE, plan.creates, self.store.create, result)
            updated = await self._run_phase(
                SaveOperation.UPDATE,
                plan.updates,
                lambda rule: self.store.update(rule.id or "", rule),
                result,
            )
            result.deleted, result.created, result.updated = len(deleted), len(created), len(updated)
            self._apply_writes(deleted, created, updated)
            # Failed creates and updates are still pending locally until a reload replaces them
            self._dirty = bool(result.failures)

            try:
                rules = await self.store.list()
            except Exception as exc:
                self.logger.error(f"Reload after save failed ({result.summary()}): {exc}")
                raise ScheduleReloadException(str(exc) or type(exc).__name__, result=result) from exc

            expected = result.created + len(plan.updates) + len(plan.unchanged)
            if expected > 0 and not rules:
                self.logger.error(
                    f"Backend listed no availability after save ({result.summary()}, expected {expected})"
                )
                raise ContractViolationException(expected_rules=expected, loaded_rules=0, result=result)

            result.schedule = self._rebuild(rules)
            if result.failures:
                self.logger.warning(f"Availability saved with failures: {result.summary()}")
            else:
                self.logger.info(f"Availability saved: {result.summary()}")
            return result
        finally:
            self._saving = False

    def _apply_writes(
        self,
        deleted: List[Tuple[RuleRef, Any]],
        created: List[Tuple[RuleRef, Any]],
        updated: List[Tuple[RuleRef, Any]],
    ) -> None:
        """
        Fold successful writes into local state ahead of the reload.

        Created rules take the id the backend assigned, deleted rules leave
        the schedule, and updated rules become the new baseline, so retrying
        after a failed reload never repeats a write that already landed.
        """
        deleted_ids = {rule.id for (_, rule), _ in deleted}
        stored_by_local = {
            id(local): stored for (_, local), stored in created if isinstance(stored, AvailabilityRule)
        }

        schedule = self.schedule
        for day_schedule in schedule.iter_days():
            rules = [
                stored_by_local.get(id(rule), rule) for rule in day_schedule.rules if rule.id not in deleted_ids
            ]
            if rules != list(day_schedule.rules):
                schedule = schedule.replace_day(day_schedule.with_rules(rules))
        self.schedule = schedule

        for rule_id in deleted_ids:
            self._persisted.pop(rule_id, None)
        for stored in stored_by_local.values():
            if stored.id is not None:
                self._persisted[stored.id] = stored
        for (_, rule), _ in updated:
            if rule.id is not None:
                self._persisted[rule.id] = rule

    async def _run_phase(
        self,
        operation: SaveOperation,
        refs: List[RuleRef],
        call: Callable[[AvailabilityRule], Awaitable[Any]],
        result: SaveResult,
    ) -> List[Tuple[RuleRef, Any]]:
        """Run one phase concurrently; record each failure and return the successful refs with their outcome."""
        if not refs:
            return []
        outcomes = await asyncio.gather(*(call(rule) for _, rule in refs), return_exceptions=True)
        succeeded: List[Tuple[RuleRef, Any]] = []
        for (day, rule), outcome in zip(refs, outcomes):
            if isinstance(outcome, Exception):
                self.logger.warning(
                    f"Failed to {operation.value} slot {day.value} {rule.time_range}: {outcome}"
                )
                result.failures.append(
                    ItemFailure(
                        operation=operation,
                        rule_id=rule.id,
                        day=day,
                        time_range=rule.time_range,
                        message=str(outcome) or type(outcome).__name__,
                    )
                )
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                succeeded.append(((day, rule), outcome))
        return succeeded
