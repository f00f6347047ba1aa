"""In-memory queued rate limiter for outbound operations.

Admission is measured against a rolling one-second window. Work that cannot
be admitted straight away waits in a FIFO queue and is promoted by a
background asyncio task that ticks at a fixed interval.

Notes:
- Per-process only: each worker process throttles independently.
- Thread-safe bookkeeping: a single lock guards window, queue, config and
  counters. It is never held while a user operation runs.
- One event loop at a time: submitting from a second loop while the first
  is still running raises ``RuntimeError``. Once the first loop has stopped,
  its queued work is failed and the limiter moves to the new loop.
"""

from __future__ import annotations

import asyncio
import contextvars
import inspect
import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable

from throttle.adapters.rate_limit.base import (
    AbstractRateLimiter,
    LimiterStats,
    Operation,
    RateLimiterConfig,
    T,
)
from throttle.core.errors import LimiterClosedError, ValidationAppError

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 1.0
DEFAULT_TICK_INTERVAL_SECONDS = 0.1


@dataclass
class _WindowState:
    window_start: float
    admitted_count: int = 0


@dataclass
class _PendingOperation:
    operation: Operation[Any]
    future: asyncio.Future[Any]
    submitted_at: float
    context: contextvars.Context


def _require_int(name: str, value: Any) -> int:
    """Reject anything that is not a plain integer.

    ``bool`` is an ``int`` subclass but never a meaningful rate.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationAppError(
            code="invalid_limiter_config",
            message=f"{name} must be an integer",
            details={"field": name, "actual_value": repr(value)},
        )
    return value


def _resolve(future: asyncio.Future[Any], *, result: Any = None, exc: BaseException | None = None) -> None:
    # A future is settled at most once; a caller that stopped waiting may
    # already have cancelled it.
    if future.done():
        return
    if isinstance(exc, asyncio.CancelledError):
        future.cancel()
    elif exc is not None:
        future.set_exception(exc)
    else:
        future.set_result(result)


def _is_fatal(exc: BaseException) -> bool:
    return isinstance(exc, (KeyboardInterrupt, SystemExit))


class RateLimiter(AbstractRateLimiter):
    """Queue outbound operations so at most N start per rolling second.

    Example:
        >>> limiter = RateLimiter(5, 10)
        >>> image = await limiter.execute(lambda: client.generate(prompt))

    The limiter is transparent on the result path: ``execute`` returns what
    the operation returns and raises what it raises. It only changes when the
    operation starts.
    """

    def __init__(
        self,
        max_operations_per_window: int = 5,
        queue_warning_threshold: int = 10,
        *,
        tick_interval_seconds: float = DEFAULT_TICK_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the limiter.

        Args:
            max_operations_per_window: Operations admitted per rolling
                one-second window. ``0`` pauses admission (see
                ``set_max_operations_per_window``).
            queue_warning_threshold: Queue length that triggers a warning.
            tick_interval_seconds: Scheduler promotion interval.
            clock: Monotonic time source in seconds.

        Raises:
            ValidationAppError: If a config value is not an integer.
            ValueError: If tick_interval_seconds is not positive.
        """
        rate = _require_int("max_operations_per_window", max_operations_per_window)
        threshold = _require_int("queue_warning_threshold", queue_warning_threshold)
        if tick_interval_seconds <= 0:
            raise ValueError("tick_interval_seconds must be > 0")

        self._clock = clock
        self._tick_interval = tick_interval_seconds
        self._lock = threading.RLock()
        self._config = RateLimiterConfig(
            max_operations_per_window=rate,
            queue_warning_threshold=threshold,
        )
        self._window = _WindowState(window_start=clock())
        self._queue: deque[_PendingOperation] = deque()
        self._warning_armed = True

        self._in_flight = 0
        self._submitted = 0
        self._completed = 0
        self._failed = 0

        self._scheduler: asyncio.Task[None] | None = None
        self._scheduler_loop: asyncio.AbstractEventLoop | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._closed = False

        self._warn_if_misconfigured("max_operations_per_window", rate)
        self._warn_if_misconfigured("queue_warning_threshold", threshold)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def execute(self, operation: Operation[T]) -> T:
        """Run ``operation`` now if the window allows it, otherwise queue it.

        Queued callers suspend until the scheduler promotes and finishes
        their operation. Cancelling the caller only discards interest in the
        result; the operation still runs when its turn comes.

        Raises:
            LimiterClosedError: If the limiter has been closed.
            RuntimeError: If the limiter is still serving another running
                event loop.
            Exception: Anything the operation raises, unchanged.
        """
        if self._closed:
            raise LimiterClosedError(
                code="rate_limiter_closed",
                message="Rate limiter is closed and no longer accepts operations",
            )
        loop = asyncio.get_running_loop()
        self._ensure_scheduler(loop)

        crossed = False
        with self._lock:
            now = self._clock()
            self._submitted += 1
            self._roll_window(now)

            # Never overtake queued work, even if the window has room.
            if not self._queue and self._has_capacity():
                self._admit()
                pending = None
            else:
                pending = _PendingOperation(
                    operation=operation,
                    future=loop.create_future(),
                    submitted_at=now,
                    context=contextvars.copy_context(),
                )
                self._queue.append(pending)
                queue_length = len(self._queue)
                threshold = self._config.queue_warning_threshold
                crossed = self._check_warning_crossing(queue_length)

        if pending is None:
            return await self._run_admitted(operation)

        logger.debug(
            "rate_limiter.queued",
            extra={"queue_length": queue_length},
        )
        if crossed:
            self._emit_queue_warning(queue_length, threshold)

        return await asyncio.shield(pending.future)

    def get_queue_length(self) -> int:
        with self._lock:
            return len(self._queue)

    def set_max_operations_per_window(self, value: int) -> None:
        """Change the admission rate for future decisions.

        Operations already admitted are unaffected. A value ``<= 0`` pauses
        admission: nothing new starts, the queue keeps growing, and the
        scheduler resumes promotion on the first tick after a positive value
        is set again.
        """
        value = _require_int("max_operations_per_window", value)
        with self._lock:
            previous = self._config.max_operations_per_window
            self._config = replace(self._config, max_operations_per_window=value)
        self._log_reconfigured("max_operations_per_window", previous, value)

    def set_queue_warning_threshold(self, value: int) -> None:
        """Change the queue length at which backpressure is reported.

        A value ``<= 0`` behaves like ``1``: every enqueue onto an empty
        queue counts as a crossing.
        """
        value = _require_int("queue_warning_threshold", value)
        with self._lock:
            previous = self._config.queue_warning_threshold
            self._config = replace(self._config, queue_warning_threshold=value)
            if len(self._queue) < self._effective_threshold():
                self._warning_armed = True
        self._log_reconfigured("queue_warning_threshold", previous, value)

    def get_config(self) -> RateLimiterConfig:
        with self._lock:
            return self._config

    def get_stats(self) -> LimiterStats:
        with self._lock:
            return LimiterStats(
                queue_length=len(self._queue),
                in_flight=self._in_flight,
                submitted=self._submitted,
                completed=self._completed,
                failed=self._failed,
                config=self._config,
            )

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        """Start the scheduler on the running event loop (idempotent).

        ``execute`` does this implicitly; calling it up front only moves the
        task creation to a convenient point, e.g. application startup.
        """
        if self._closed:
            raise LimiterClosedError(
                code="rate_limiter_closed",
                message="Rate limiter is closed and cannot be restarted",
            )
        self._ensure_scheduler(asyncio.get_running_loop())

    async def aclose(self, *, drain: bool = True) -> None:
        """Stop accepting work and shut the scheduler down.

        Args:
            drain: When true, wait until every queued and in-flight operation
                has finished before stopping. If admission is paused, queued
                work is failed instead. When false, queued operations
                are failed with ``LimiterClosedError``; in-flight ones finish
                on their own.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True

        if drain:
            if self.get_queue_length():
                self._ensure_scheduler(asyncio.get_running_loop())
            while True:
                if self.get_config().max_operations_per_window <= 0:
                    # Nothing queued can ever start; fail it rather than hang.
                    self._abandon_queue()
                with self._lock:
                    busy = bool(self._queue) or self._in_flight > 0
                if not busy:
                    break
                await asyncio.sleep(self._tick_interval)
        else:
            self._abandon_queue()

        await self._stop_scheduler()
        logger.info("rate_limiter.closed", extra={"drained": drain})

    async def __aenter__(self) -> "RateLimiter":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Admission bookkeeping (callers hold self._lock)
    # ------------------------------------------------------------------

    def _roll_window(self, now: float) -> None:
        if now - self._window.window_start >= WINDOW_SECONDS:
            self._window = _WindowState(window_start=now)

    def _has_capacity(self) -> bool:
        # Non-positive rates admit nothing; no arithmetic on the rate itself.
        return self._window.admitted_count < self._config.max_operations_per_window

    def _admit(self) -> None:
        self._window.admitted_count += 1
        self._in_flight += 1

    def _effective_threshold(self) -> int:
        return max(1, self._config.queue_warning_threshold)

    def _check_warning_crossing(self, queue_length: int) -> bool:
        if self._warning_armed and queue_length >= self._effective_threshold():
            self._warning_armed = False
            return True
        return False

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def _run_admitted(self, operation: Operation[T]) -> T:
        failed = True
        try:
            result = operation()
            if inspect.isawaitable(result):
                result = await result
            failed = False
            return result
        finally:
            self._record_completion(failed)

    def _promote_ready(self) -> None:
        """Move as many queued operations into execution as capacity allows."""
        ready: list[_PendingOperation] = []
        with self._lock:
            self._roll_window(self._clock())
            while self._queue and self._has_capacity():
                ready.append(self._queue.popleft())
                self._admit()
            remaining = len(self._queue)
            if remaining < self._effective_threshold():
                self._warning_armed = True

        if ready:
            logger.debug(
                "rate_limiter.promoted",
                extra={"promoted": len(ready), "queue_length": remaining},
            )
        # Invoked in dequeue order, so queued work starts FIFO. Everything in
        # ready is already admitted, so a KeyboardInterrupt or SystemExit is
        # re-raised only after the rest have started.
        fatal: BaseException | None = None
        for pending in ready:
            try:
                self._invoke(pending)
            except BaseException as exc:
                fatal = fatal or exc
        if fatal is not None:
            raise fatal

    def _invoke(self, pending: _PendingOperation) -> None:
        try:
            result = pending.context.run(pending.operation)
        except BaseException as exc:
            self._record_completion(failed=True)
            _resolve(pending.future, exc=exc)
            if _is_fatal(exc):
                raise
            return

        if not inspect.isawaitable(result):
            self._record_completion(failed=False)
            _resolve(pending.future, result=result)
            return

        loop = pending.future.get_loop()
        task = loop.create_task(
            self._await_pending(pending, result),
            context=pending.context,
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _await_pending(self, pending: _PendingOperation, awaitable: Awaitable[Any]) -> None:
        failed = True
        try:
            value = await awaitable
            failed = False
        except asyncio.CancelledError:
            pending.future.cancel()
            raise
        except BaseException as exc:
            logger.debug(
                "rate_limiter.operation_failed",
                extra={"error_type": type(exc).__name__},
            )
            _resolve(pending.future, exc=exc)
            if _is_fatal(exc):
                raise
        else:
            _resolve(pending.future, result=value)
        finally:
            self._record_completion(failed)

    def _record_completion(self, failed: bool) -> None:
        with self._lock:
            self._in_flight -= 1
            if failed:
                self._failed += 1
            else:
                self._completed += 1

    # ------------------------------------------------------------------
    # Scheduler lifecycle
    # ------------------------------------------------------------------

    def _ensure_scheduler(self, loop: asyncio.AbstractEventLoop) -> None:
        with self._lock:
            previous = self._scheduler_loop
            if (
                self._scheduler is not None
                and not self._scheduler.done()
                and previous is loop
            ):
                return
            if previous is not None and previous is not loop:
                if previous.is_running() and not previous.is_closed():
                    raise RuntimeError(
                        "RateLimiter is bound to another running event loop; "
                        "use one limiter per event loop"
                    )
                if self._scheduler is not None and not previous.is_closed():
                    # Must not wake up later and promote this loop's work.
                    self._scheduler.cancel()
                self._release_foreign_operations(loop)
            self._scheduler = loop.create_task(
                self._run_scheduler(),
                name="rate-limiter-scheduler",
            )
            self._scheduler_loop = loop

    def _release_foreign_operations(self, loop: asyncio.AbstractEventLoop) -> None:
        """Fail queued work submitted on an event loop that has stopped.

        Only called once the previous scheduler loop is no longer running,
        so nothing else can promote these operations. Callers on a loop that
        is merely idle get ``LimiterClosedError``; futures of a closed loop
        cannot be resolved and are counted as failed.
        """
        kept: deque[_PendingOperation] = deque()
        released: list[_PendingOperation] = []
        for pending in self._queue:
            if pending.future.get_loop() is loop:
                kept.append(pending)
            else:
                released.append(pending)
        if not released:
            return

        self._queue = kept
        self._failed += len(released)
        for pending in released:
            if not pending.future.get_loop().is_closed():
                _resolve(
                    pending.future,
                    exc=LimiterClosedError(
                        code="rate_limiter_loop_stopped",
                        message="Event loop stopped before the operation was started",
                    ),
                )
        if len(self._queue) < self._effective_threshold():
            self._warning_armed = True
        logger.warning(
            "rate_limiter.orphaned_operations",
            extra={"orphaned": len(released)},
        )

    async def _run_scheduler(self) -> None:
        logger.debug(
            "rate_limiter.scheduler_started",
            extra={"tick_interval_s": self._tick_interval},
        )
        while True:
            await asyncio.sleep(self._tick_interval)
            try:
                self._promote_ready()
            except Exception:
                logger.exception("rate_limiter.tick_failed")

    async def _stop_scheduler(self) -> None:
        with self._lock:
            scheduler, self._scheduler = self._scheduler, None
            self._scheduler_loop = None
        if scheduler is None or scheduler.done():
            return
        scheduler.cancel()
        try:
            await scheduler
        except asyncio.CancelledError:
            pass

    def _abandon_queue(self) -> None:
        with self._lock:
            abandoned = list(self._queue)
            self._queue.clear()
        if not abandoned:
            return
        logger.warning(
            "rate_limiter.abandoned_operations",
            extra={"abandoned": len(abandoned)},
        )
        for pending in abandoned:
            _resolve(
                pending.future,
                exc=LimiterClosedError(
                    code="rate_limiter_closed",
                    message="Rate limiter closed before the operation was started",
                    details={"queue_length": len(abandoned)},
                ),
            )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------

    def _emit_queue_warning(self, queue_length: int, threshold: int) -> None:
        logger.warning(
            "RateLimiter: Queue length has reached %d (threshold %d)",
            queue_length,
            threshold,
            extra={
                "event": "rate_limiter.queue_warning",
                "queue_length": queue_length,
                "threshold": threshold,
            },
        )

    def _log_reconfigured(self, setting: str, previous: int, current: int) -> None:
        logger.info(
            "rate_limiter.reconfigured",
            extra={"setting": setting, "previous": previous, "current": current},
        )
        self._warn_if_misconfigured(setting, current)

    @staticmethod
    def _warn_if_misconfigured(setting: str, value: int) -> None:
        if value > 0:
            return
        logger.warning(
            "rate_limiter.misconfigured",
            extra={
                "setting": setting,
                "value": value,
                "hint": "a non-positive rate pauses admission, a non-positive threshold behaves like 1",
            },
        )
