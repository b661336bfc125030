"""Builders and fakes shared across the availability tests."""

from __future__ import annotations

from datetime import date, datetime, time
from itertools import count
from typing import Optional

import pytz

from mentor_availability.enums import Weekday
from mentor_availability.models import AvailabilityRule, DateSpecific, Recurring

# Wednesday 2025-01-08 10:00 UTC
FIXED_NOW = datetime(2025, 1, 8, 10, 0, tzinfo=pytz.UTC)
MONDAY = date(2025, 1, 6)
NEXT_MONDAY = date(2025, 1, 13)
NEXT_TUESDAY = date(2025, 1, 14)


def fixed_clock(now: datetime = FIXED_NOW):
    return lambda: now


def recurring(day: Weekday, start: str, end: str, tier: Optional[int] = None, rule_id: Optional[str] = None):
    return AvailabilityRule(
        id=rule_id,
        recurrence=Recurring(day_of_week=day),
        start_time=time.fromisoformat(start),
        end_time=time.fromisoformat(end),
        group_tier=tier,
    )


def on_date(day: date, start: str, end: str, tier: Optional[int] = None, rule_id: Optional[str] = None):
    return AvailabilityRule(
        id=rule_id,
        recurrence=DateSpecific(specific_date=day),
        start_time=time.fromisoformat(start),
        end_time=time.fromisoformat(end),
        group_tier=tier,
    )


class FakeTemplateStore:
    """In-memory template backend that records every call in order."""

    def __init__(self, rules=None):
        self._ids = count(1)
        self.rules: dict[str, AvailabilityRule] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail_on: set[tuple[str, str]] = set()
        self.list_returns_empty = False
        for rule in rules or []:
            self.seed(rule)

    def seed(self, rule: AvailabilityRule) -> AvailabilityRule:
        if rule.id is None:
            rule = rule.model_copy(update={"id": f"tpl-{next(self._ids)}"})
        self.rules[rule.id] = rule
        return rule

    def _maybe_fail(self, op: str, key: str) -> None:
        if (op, key) in self.fail_on:
            raise RuntimeError(f"{op} failed for {key}")

    @property
    def mutations(self) -> list[tuple[str, str]]:
        return [call for call in self.calls if call[0] != "list"]

    def count(self, op: str) -> int:
        return sum(1 for call in self.calls if call[0] == op)

    async def list(self):
        self.calls.append(("list", ""))
        if self.list_returns_empty:
            return []
        return list(self.rules.values())

    async def create(self, rule):
        self.calls.append(("create", rule.time_range))
        self._maybe_fail("create", rule.time_range)
        return self.seed(rule)

    async def update(self, rule_id, rule):
        self.calls.append(("update", rule_id))
        self._maybe_fail("update", rule_id)
        stored = rule.model_copy(update={"id": rule_id})
        self.rules[rule_id] = stored
        return stored

    async def delete(self, rule_id):
        self.calls.append(("delete", rule_id))
        self._maybe_fail("delete", rule_id)
        self.rules.pop(rule_id, None)


