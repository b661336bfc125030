from __future__ import annotations

import pytest

from builders import FakeTemplateStore, fixed_clock
from mentor_availability.config import Settings
from mentor_availability.schedule import ScheduleAggregator


@pytest.fixture
def settings() -> Settings:
    return Settings(
        api_base_url="https://api.mentorship.test",
        api_token="svc",
        operating_timezone="UTC",
    )


@pytest.fixture
def clock():
    return fixed_clock()


@pytest.fixture
def store() -> FakeTemplateStore:
    return FakeTemplateStore()


@pytest.fixture
def aggregator(store, settings, clock) -> ScheduleAggregator:
    return ScheduleAggregator(store, settings=settings, clock=clock)
