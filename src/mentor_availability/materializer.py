"""
Slot materializer for the mentee-facing booking view.

Turns the backend's flat list of expanded occurrences into one
MaterializedSlot per calendar date. Date keys and day labels come from UTC
fields of each instant, never local time, so a slot near midnight is never
shown under the wrong day.
"""

from datetime import date, datetime, timedelta
import logging
from itertools import groupby
from typing import Iterable, List, Optional

import pytz

from .base import BaseService
from .collaborators import SlotExpander
from .config import Settings
from .models import ExpandedSlot, MaterializedSlot
from .time_utils import Clock, format_am_pm, operating_today, utc_date_of, weekday_of

logger = logging.getLogger(__name__)


class SlotMaterializer(BaseService):
    """Groups and annotates expanded slots; output is read-only and recomputed on every call."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
        display_tz: pytz.BaseTzInfo = pytz.UTC,
    ):
        super().__init__(settings, clock)
        self.display_tz = display_tz

    def format_display_time(self, instant: datetime) -> str:
        return format_am_pm(instant.astimezone(self.display_tz).time(), pad_hour=True)

    def materialize(self, slots: Iterable[ExpandedSlot]) -> List[MaterializedSlot]:
        """
        Group occurrences by UTC calendar date.

        Returns:
            MaterializedSlots sorted by date, each with times in ascending order
        """
        ordered = sorted(slots, key=lambda slot: slot.start_instant)
        result: List[MaterializedSlot] = []
        for slot_date, group in groupby(ordered, key=lambda slot: utc_date_of(slot.start_instant)):
            entries = list(group)
            result.append(
                MaterializedSlot(
                    date=slot_date,
                    day_label=weekday_of(slot_date).short_label,
                    display_times=tuple(self.format_display_time(entry.start_instant) for entry in entries),
                    start_instants=tuple(entry.start_instant for entry in entries),
                    group_tiers=tuple(entry.group_tier for entry in entries),
                )
            )
        return result

    @BaseService.measure_operation("fetch_slots")
    async def fetch(
        self,
        expander: SlotExpander,
        mentor_id: str,
        from_date: Optional[date] = None,
        days: Optional[int] = None,
    ) -> List[MaterializedSlot]:
        """
        Expand a mentor's availability over the lookahead window and materialize it.

        Args:
            expander: Slot-expansion backend
            mentor_id: Mentor whose slots to show
            from_date: First date of the window (defaults to today)
            days: Window length (defaults to ``lookahead_days``)
        """
        start = from_date or operating_today(self.settings.operating_tz, self.clock)
        end = start + timedelta(days=days if days is not None else self.settings.lookahead_days)
        expanded = await expander.expand(mentor_id, start, end)
        materialized = self.materialize(expanded)
        self.logger.debug(
            f"Materialized {len(expanded)} slots into {len(materialized)} dates for mentor {mentor_id}"
        )
        return materialized
