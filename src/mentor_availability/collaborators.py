"""Contracts for the backend services the engine talks to."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from .models import AvailabilityRule, ExpandedSlot, GroupPricingTable


@runtime_checkable
class TemplateStore(Protocol):
    """Persists availability rules; the single source of truth for a schedule."""

    async def list(self) -> List[AvailabilityRule]: ...

    async def create(self, rule: AvailabilityRule) -> AvailabilityRule: ...

    async def update(self, rule_id: str, rule: AvailabilityRule) -> AvailabilityRule: ...

    async def delete(self, rule_id: str) -> None: ...


@runtime_checkable
class SlotExpander(Protocol):
    """Expands stored rules into concrete future occurrences for a date window."""

    async def expand(self, mentor_id: str, from_date: date, to_date: date) -> List[ExpandedSlot]: ...


@runtime_checkable
class BookingCreator(Protocol):
    """Creates a booking for an exact slot instant."""

    async def create_booking(
        self,
        mentor_id: str,
        start_instant: datetime,
        participants: int,
        duration_minutes: int,
        notes: Optional[str] = None,
    ) -> Dict[str, Any]: ...


@runtime_checkable
class PricingSource(Protocol):
    """Supplies the mentor's group pricing table (read-only)."""

    async def get_group_pricing(self) -> GroupPricingTable: ...
