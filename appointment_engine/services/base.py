# appointment_engine/services/base.py
"""
Base Service Pattern for the appointment engine.

Every engine service shares one session, the process settings and a clock.
Services own the transaction boundaries: repositories flush, services
commit. Storage failures surface as ServiceException; domain errors raised
inside a transaction roll it back and propagate unchanged.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import wraps
import logging
import time
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import Settings, get_settings
from ..core.exceptions import RepositoryException, ServiceException
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

F = TypeVar("F", bound=Callable[..., Any])


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class OperationStats:
    """In-process timings for one measured operation."""

    count: int = 0
    success_count: int = 0
    total_time: float = 0.0
    min_time: float = float("inf")
    max_time: float = 0.0

    @property
    def failure_count(self) -> int:
        return self.count - self.success_count

    def record(self, elapsed: float, success: bool) -> None:
        self.count += 1
        self.total_time += elapsed
        self.min_time = min(self.min_time, elapsed)
        self.max_time = max(self.max_time, elapsed)
        if success:
            self.success_count += 1

    def summary(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "avg_time": self.total_time / self.count,
            "min_time": self.min_time,
            "max_time": self.max_time,
            "total_time": self.total_time,
            "success_rate": self.success_count / self.count,
            "success_count": self.success_count,
            "failure_count": self.failure_count,
        }


class BaseService:
    """
    Base class for the engine's services.

    Attributes:
        db: Session shared with the service's repositories
        config: Engine settings
        clock: Source of the current UTC time
    """

    # Keyed by service class name, then operation name
    _class_metrics: Dict[str, Dict[str, OperationStats]] = {}

    def __init__(
        self,
        db: Session,
        *,
        config: Optional[Settings] = None,
        clock: Optional[Clock] = None,
    ):
        self.db = db
        self.config = config or get_settings()
        self.clock = clock or utc_now
        self.logger = logging.getLogger(self.__class__.__name__)

    def now(self) -> datetime:
        return self.clock()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Commit the enclosed unit of work, or roll all of it back.

        Usage:
            with self.slot_lock.hold(slot_id):
                with self.transaction():
                    self.capacity_ledger.reserve_seat(slot_id)
                    self.booking_repository.create(...)
        """
        try:
            yield self.db
            self.db.commit()
        except (SQLAlchemyError, RepositoryException) as e:
            self.logger.error(f"Transaction failed: {str(e)}")
            self.db.rollback()
            raise ServiceException(f"Database operation failed: {str(e)}") from e
        except Exception as e:
            self.logger.debug(f"Transaction rolled back: {type(e).__name__}: {str(e)}")
            self.db.rollback()
            raise

    @staticmethod
    def measure_operation(operation_name: str) -> Callable[[F], F]:
        """
        Time a service method and report it to Prometheus.

        Calls slower than ``config.slow_operation_threshold_seconds`` are
        logged as warnings.
        """

        def decorator(func: F) -> F:
            func._operation_name = operation_name  # type: ignore[attr-defined]
            func._is_measured = True  # type: ignore[attr-defined]

            @wraps(func)
            def wrapper(self: "BaseService", *args: Any, **kwargs: Any) -> Any:
                started = time.perf_counter()
                error_type: Optional[str] = None
                try:
                    return func(self, *args, **kwargs)
                except Exception as e:
                    error_type = type(e).__name__
                    raise
                finally:
                    elapsed = time.perf_counter() - started
                    self._record_metric(operation_name, elapsed, error_type is None)
                    if elapsed > self.config.slow_operation_threshold_seconds:
                        self.logger.warning(
                            f"Slow operation detected: {operation_name} took {elapsed:.2f}s"
                        )
                    prometheus_metrics.record_service_operation(
                        service=self.__class__.__name__,
                        operation=operation_name,
                        duration=elapsed,
                        status="error" if error_type else "success",
                        error_type=error_type,
                    )

            return cast(F, wrapper)

        return decorator

    def log_operation(self, operation: str, **context: Any) -> None:
        self.logger.info(f"Operation: {operation}", extra={"operation": operation, **context})

    def _record_metric(self, operation: str, elapsed: float, success: bool) -> None:
        stats = BaseService._class_metrics.setdefault(self.__class__.__name__, {})
        stats.setdefault(operation, OperationStats()).record(elapsed, success)

    def get_metrics(self) -> Dict[str, Any]:
        """Per-operation timings and success rates recorded in this process."""
        stats = BaseService._class_metrics.get(self.__class__.__name__, {})
        return {name: s.summary() for name, s in stats.items() if s.count}

    def reset_metrics(self) -> None:
        BaseService._class_metrics.pop(self.__class__.__name__, None)
        self.logger.info(f"Metrics reset for {self.__class__.__name__}")
