"""
Base service pattern for the availability engine.

Provides common functionality for all service classes including:
- Settings and clock injection
- Logging
- Performance measurement of named operations
"""

import asyncio
from functools import wraps
import logging
import time
from typing import Any, Callable, Dict, Optional, TypeVar, cast

from .config import Settings, get_settings
from .time_utils import Clock, utc_now

logger = logging.getLogger(__name__)

SLOW_OPERATION_SECONDS = 1.0

F = TypeVar("F", bound=Callable[..., Any])


class BaseService:
    """
    Base class for engine services.

    Services are stateless apart from the settings, the clock used for
    "now" and an in-process operation metrics table.
    """

    # Class-level metrics storage
    _class_metrics: Dict[str, Dict[str, Dict[str, Any]]] = {}

    def __init__(self, settings: Optional[Settings] = None, clock: Optional[Clock] = None):
        """
        Initialize base service.

        Args:
            settings: Engine settings (defaults to the cached environment settings)
            clock: Callable returning the current aware UTC datetime
        """
        self.settings = settings or get_settings()
        self.clock: Clock = clock or utc_now
        self.logger = logging.getLogger(self.__class__.__name__)

    @staticmethod
    def measure_operation(operation_name: str) -> Callable[[F], F]:
        """
        Decorator to measure operation performance.

        Usage:
            @BaseService.measure_operation("save_schedule")
            async def save(self):
                ...
        """

        def decorator(func: F) -> F:
            if not asyncio.iscoroutinefunction(func):

                @wraps(func)
                def wrapper(self: "BaseService", *args: Any, **kwargs: Any) -> Any:
                    start_time = time.perf_counter()
                    success = False
                    try:
                        result = func(self, *args, **kwargs)
                        success = True
                        return result
                    finally:
                        self._finish_measurement(operation_name, start_time, success)

                return cast(F, wrapper)

            @wraps(func)
            async def async_wrapper(self: "BaseService", *args: Any, **kwargs: Any) -> Any:
                start_time = time.perf_counter()
                success = False
                try:
                    result = await func(self, *args, **kwargs)
                    success = True
                    return result
                finally:
                    self._finish_measurement(operation_name, start_time, success)

            return cast(F, async_wrapper)

        return decorator

    def _finish_measurement(self, operation_name: str, start_time: float, success: bool) -> None:
        elapsed = time.perf_counter() - start_time
        self._record_metric(operation_name, elapsed, success)
        if elapsed > SLOW_OPERATION_SECONDS:
            self.logger.warning(f"Slow operation detected: {operation_name} took {elapsed:.2f}s")

    def log_operation(self, operation: str, **context: Any) -> None:
        """Log an operation with context."""
        self.logger.info(f"Operation: {operation}", extra={"operation": operation, **context})

    def _record_metric(self, operation: str, elapsed: float, success: bool) -> None:
        metrics = BaseService._class_metrics.setdefault(self.__class__.__name__, {})
        metric_data = metrics.setdefault(
            operation,
            {
                "count": 0,
                "total_time": 0.0,
                "success_count": 0,
                "failure_count": 0,
                "max_time": 0.0,
            },
        )
        metric_data["count"] += 1
        metric_data["total_time"] += elapsed
        metric_data["max_time"] = max(metric_data["max_time"], elapsed)
        if success:
            metric_data["success_count"] += 1
        else:
            metric_data["failure_count"] += 1

    def get_metrics(self) -> Dict[str, Any]:
        """
        Get performance metrics for this service.

        Returns:
            Dictionary with metrics for each measured operation
        """
        metrics = BaseService._class_metrics.get(self.__class__.__name__, {})
        result = {}
        for operation, data in metrics.items():
            count = data["count"]
            if count == 0:
                continue
            result[operation] = {
                "count": count,
                "avg_time": data["total_time"] / count,
                "max_time": data["max_time"],
                "success_rate": data["success_count"] / count,
                "failure_count": data["failure_count"],
            }
        return result

    def reset_metrics(self) -> None:
        """Reset all metrics for this service."""
        BaseService._class_metrics.pop(self.__class__.__name__, None)
