"""Rate limiter interfaces.

Consumers (LLM clients, HTTP routes) depend on this abstraction rather than
the in-memory scheduler, so the admission strategy can change without
touching call sites.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar, Union

T = TypeVar("T")

# A zero-argument unit of work. Normally an ``async def`` function or a lambda
# returning a coroutine; plain return values are passed through as well.
Operation = Callable[[], Union[Awaitable[T], T]]


@dataclass(frozen=True)
class RateLimiterConfig:
    """Snapshot of a limiter's live configuration.

    Attributes:
        max_operations_per_window: Operations admitted per rolling one-second
            window.
        queue_warning_threshold: Queue length at which a backpressure warning
            is emitted.
    """

    max_operations_per_window: int
    queue_warning_threshold: int


@dataclass(frozen=True)
class LimiterStats:
    """Point-in-time observability snapshot.

    Attributes:
        queue_length: Operations submitted but not yet started.
        in_flight: Operations started and not yet finished.
        submitted: Total operations ever submitted.
        completed: Total operations that finished successfully.
        failed: Total operations that raised.
        config: Configuration at the time of the snapshot.
    """

    queue_length: int
    in_flight: int
    submitted: int
    completed: int
    failed: int
    config: RateLimiterConfig

    def as_dict(self) -> dict[str, Any]:
        return {
            "queue_length": self.queue_length,
            "in_flight": self.in_flight,
            "submitted": self.submitted,
            "completed": self.completed,
            "failed": self.failed,
            "max_operations_per_window": self.config.max_operations_per_window,
            "queue_warning_threshold": self.config.queue_warning_threshold,
        }


class AbstractRateLimiter(ABC):
    """Interface for client-side admission control of outbound operations."""

    @abstractmethod
    async def execute(self, operation: Operation[T]) -> T:
        """Run ``operation`` once admission allows it.

        Args:
            operation: Zero-argument callable producing the result (usually
                by returning a coroutine).

        Returns:
            Whatever the operation returns.

        Raises:
            Exception: Whatever the operation raises, unchanged.
        """
        raise NotImplementedError

    @abstractmethod
    def get_queue_length(self) -> int:
        """Return how many submitted operations have not started yet."""
        raise NotImplementedError

    @abstractmethod
    def set_max_operations_per_window(self, value: int) -> None:
        raise NotImplementedError

    @abstractmethod
    def set_queue_warning_threshold(self, value: int) -> None:
        raise NotImplementedError

    @abstractmethod
    def get_config(self) -> RateLimiterConfig:
        raise NotImplementedError

    @abstractmethod
    def get_stats(self) -> LimiterStats:
        raise NotImplementedError
