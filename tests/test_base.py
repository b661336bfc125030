import logging

import pytest

from mentor_availability.base import BaseService


class _SampleService(BaseService):
    @BaseService.measure_operation("sync_op")
    def sync_op(self, value):
        if value < 0:
            raise ValueError("negative")
        return value * 2

    @BaseService.measure_operation("async_op")
    async def async_op(self, value):
        return value + 1


@pytest.fixture
def sample_service(settings, clock):
    service = _SampleService(settings, clock)
    service.reset_metrics()
    yield service
    service.reset_metrics()


def test_injected_settings_and_clock(sample_service, settings, clock):
    assert sample_service.settings is settings
    assert sample_service.clock is clock
    assert sample_service.logger.name == "_SampleService"


def test_sync_operation_metrics(sample_service):
    assert sample_service.sync_op(2) == 4
    with pytest.raises(ValueError):
        sample_service.sync_op(-1)

    metrics = sample_service.get_metrics()["sync_op"]
    assert metrics["count"] == 2
    assert metrics["success_rate"] == 0.5
    assert metrics["failure_count"] == 1


@pytest.mark.asyncio
async def test_async_operation_metrics(sample_service):
    assert await sample_service.async_op(1) == 2
    assert sample_service.get_metrics()["async_op"]["count"] == 1


def test_slow_operation_warning(sample_service, monkeypatch, caplog):
    ticks = iter([0.0, 2.5])
    monkeypatch.setattr("mentor_availability.base.time.perf_counter", lambda: next(ticks, 2.5))

    with caplog.at_level(logging.WARNING, logger="_SampleService"):
        sample_service.sync_op(1)

    assert "Slow operation detected: sync_op took 2.50s" in caplog.text
