"""Hand-off of a mentee's selected slot to booking creation."""

from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Any, Dict, Optional

from .collaborators import BookingCreator
from .exceptions import BusinessRuleException, SlotIndexError
from .models import SOLO_TIER, MaterializedSlot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SlotSelection:
    """A single time picked from a MaterializedSlot."""

    slot: MaterializedSlot
    index: int

    def __post_init__(self) -> None:
        if not 0 <= self.index < len(self.slot):
            raise SlotIndexError(self.slot.date.isoformat(), self.index)

    @property
    def start_instant(self) -> datetime:
        return self.slot.start_instants[self.index]

    @property
    def display_time(self) -> str:
        return self.slot.display_times[self.index]

    @property
    def group_tier(self) -> Optional[int]:
        return self.slot.group_tiers[self.index]

    @property
    def capacity(self) -> int:
        return self.group_tier or SOLO_TIER


def select_time(slot: MaterializedSlot, display_time: str) -> SlotSelection:
    """Select by the label shown to the mentee; the instant still comes from ``start_instants``."""
    try:
        index = slot.display_times.index(display_time)
    except ValueError:
        raise SlotIndexError(slot.date.isoformat(), -1) from None
    return SlotSelection(slot, index)


async def book_selection(
    creator: BookingCreator,
    mentor_id: str,
    selection: SlotSelection,
    participants: int = 1,
    duration_minutes: int = 60,
    notes: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Create a booking for the selected slot's exact instant.

    Raises:
        BusinessRuleException: More participants than the slot supports
    """
    if participants < 1 or participants > selection.capacity:
        raise BusinessRuleException(
            f"This slot supports up to {selection.capacity} participant(s)",
            code="PARTICIPANTS_EXCEEDED",
            details={"participants": participants, "capacity": selection.capacity},
        )
    logger.info(
        f"Booking mentor {mentor_id} at {selection.start_instant.isoformat()} "
        f"for {participants} participant(s)"
    )
    return await creator.create_booking(
        mentor_id,
        selection.start_instant,
        participants,
        duration_minutes,
        notes,
    )
