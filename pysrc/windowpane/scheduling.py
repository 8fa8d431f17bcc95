"""Periodic task scheduling for wall-clock driven windows.

{py:obj}`windowpane.windows.TimedWindow` registers a task with a
{py:obj}`Scheduler` that re-runs it on a fixed period, on a thread
independent of whoever is feeding values into the window.

{py:obj}`ThreadScheduler` is the built-in implementation. It runs each
task on its own daemon thread at a fixed rate: the next firing is
planned from when the previous one was _scheduled_, not from when it
finished, so a slow firing is followed by catch-up firings rather
than drift.

Exceptions raised by a task never escape onto the scheduler thread
unnoticed. Each failure is logged, counted in
`windowpane_task_errors_total` and kept on the
{py:obj}`ScheduledTask` handle. Whether the task keeps running after
a failure is decided by `stop_on_error`.

In tests, use {py:obj}`windowpane.testing.ManualScheduler` instead so
time only moves when you say so.

"""

import itertools
import logging
import threading
import time
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Callable, Dict, List, Optional

from typing_extensions import override

from windowpane._metrics import TASK_ERRORS
from windowpane.errors import WindowConfigError, _check_duration

__all__ = [
    "ScheduledTask",
    "Scheduler",
    "ThreadScheduler",
]

logger = logging.getLogger(__name__)

ZERO_TD: timedelta = timedelta(seconds=0)
"""A zero length of time."""


def _task_name(task: Callable[[], None]) -> str:
    return getattr(task, "__qualname__", None) or repr(task)


def _check_schedule(initial_delay: timedelta, period: timedelta) -> None:
    if not isinstance(initial_delay, timedelta):
        msg = f"`initial_delay` must be a `timedelta`; got {initial_delay!r}"
        raise WindowConfigError(msg)
    if initial_delay < ZERO_TD:
        msg = f"`initial_delay` can't be negative; got {initial_delay!r}"
        raise WindowConfigError(msg)
    _check_duration("period", period)


class ScheduledTask:
    """Handle to a task registered with a {py:obj}`Scheduler`.

    Cancelling the handle stops all future firings. A firing that is
    already running when you cancel is allowed to complete.

    """

    def __init__(
        self,
        task: Callable[[], None],
        period: timedelta,
        name: Optional[str] = None,
        stop_on_error: bool = False,
        label: Optional[str] = None,
    ) -> None:
        """Init.

        :arg task: Called with no arguments on each firing.

        :arg period: Time between firings.

        :arg name: Used in logs. Defaults to the task's qualified
            name.

        :arg stop_on_error: Cancel after the first failed firing
            instead of continuing on schedule.

        :arg label: Value of the `task` label on
            `windowpane_task_errors_total`. Should be shared by all
            tasks of the same kind. Defaults to the task's qualified
            name.

        """
        self.name = name if name is not None else _task_name(task)
        self.label = label if label is not None else _task_name(task)
        self.period = period
        self.stop_on_error = stop_on_error
        self.failures = 0
        """Number of firings that raised."""
        self.last_error: Optional[BaseException] = None
        """Exception from the most recent failed firing, if any."""
        self._task = task
        self._cancelled = threading.Event()

    @property
    def cancelled(self) -> bool:
        """If {py:obj}`cancel` has been called."""
        return self._cancelled.is_set()

    def cancel(self) -> None:
        """Stop future firings.

        Safe to call more than once and from within the task itself.

        """
        if not self._cancelled.is_set():
            self._cancelled.set()
            logger.debug("Cancelled scheduled task %r", self.name)

    def _wait(self, timeout: float) -> bool:
        return self._cancelled.wait(timeout)

    def _fire(self) -> None:
        """Run the task once, containing and reporting any failure."""
        try:
            self._task()
        except Exception as ex:
            self.failures += 1
            self.last_error = ex
            TASK_ERRORS.labels(task=self.label).inc()
            if self.stop_on_error:
                logger.exception(
                    "Scheduled task %r failed; not running it again", self.name
                )
                self.cancel()
            else:
                logger.exception(
                    "Scheduled task %r failed; it will run again in %s",
                    self.name,
                    self.period,
                )

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "active"
        return f"<ScheduledTask {self.name!r} every {self.period} {state}>"


class Scheduler(ABC):
    """Runs tasks periodically on a thread of its own."""

    @abstractmethod
    def schedule(
        self,
        task: Callable[[], None],
        initial_delay: timedelta,
        period: timedelta,
        name: Optional[str] = None,
        label: Optional[str] = None,
    ) -> ScheduledTask:
        """Run `task` every `period`, first after `initial_delay`.

        :arg task: Called with no arguments on each firing.

        :arg initial_delay: Time until the first firing. Zero means
            as soon as possible.

        :arg period: Time between firings. Must be positive.

        :arg name: Used in logs.

        :arg label: Used as the metric label for failures; see
            {py:obj}`ScheduledTask`.

        :returns: A handle which can cancel the task.

        """
        ...

    def cancel(self, handle: ScheduledTask) -> None:
        """Stop future firings of a task.

        :arg handle: Returned by {py:obj}`schedule`.

        """
        handle.cancel()

    @abstractmethod
    def shutdown(self) -> None:
        """Cancel every task and release any threads."""
        ...


class ThreadScheduler(Scheduler):
    """Run each task at a fixed rate on its own daemon thread.

    Threads are daemons, so a forgotten task never keeps the
    interpreter alive, but you should still cancel tasks (or
    {py:obj}`shutdown` the scheduler) when you are done with them.
    A task's thread exits soon after it is cancelled and the scheduler
    then forgets both.

    :arg stop_on_error: If a firing raises, cancel that task instead
        of continuing. Defaults to continuing; either way the failure
        is logged.

    :arg name: Prefix for thread names.

    """

    def __init__(self, stop_on_error: bool = False, name: str = "windowpane") -> None:
        """Init."""
        self.stop_on_error = stop_on_error
        self.name = name
        self._lock = threading.Lock()
        self._thread_ids = itertools.count()
        self._threads: Dict[ScheduledTask, threading.Thread] = {}

    @property
    def tasks(self) -> List[ScheduledTask]:
        """Tasks that have not been cancelled."""
        with self._lock:
            return [handle for handle in self._threads if not handle.cancelled]

    @override
    def schedule(
        self,
        task: Callable[[], None],
        initial_delay: timedelta,
        period: timedelta,
        name: Optional[str] = None,
        label: Optional[str] = None,
    ) -> ScheduledTask:
        _check_schedule(initial_delay, period)
        handle = ScheduledTask(task, period, name, self.stop_on_error, label)
        with self._lock:
            thread = threading.Thread(
                target=self._run,
                args=(handle, initial_delay),
                name=f"{self.name}-{next(self._thread_ids)}",
                daemon=True,
            )
            self._threads[handle] = thread
        thread.start()
        logger.debug(
            "Scheduled task %r every %s after %s on thread %r",
            handle.name,
            period,
            initial_delay,
            thread.name,
        )
        return handle

    def _run(self, handle: ScheduledTask, initial_delay: timedelta) -> None:
        try:
            period = handle.period.total_seconds()
            next_at = time.monotonic() + initial_delay.total_seconds()
            # `_wait` returns `True` once cancelled.
            while not handle._wait(max(0.0, next_at - time.monotonic())):
                handle._fire()
                next_at += period
        finally:
            with self._lock:
                self._threads.pop(handle, None)

    @override
    def shutdown(self, timeout: Optional[float] = None) -> None:
        """Cancel every task and wait for their threads to finish.

        :arg timeout: Seconds to wait for each thread. `None` waits
            for in-flight firings to complete.

        """
        with self._lock:
            threads, self._threads = self._threads, {}
        for handle in threads:
            handle.cancel()
        current = threading.current_thread()
        for thread in threads.values():
            # A task may shut down its own scheduler.
            if thread is not current:
                thread.join(timeout)
