"""Helper tools for testing windows without waiting on real time."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from typing_extensions import override

from windowpane.scheduling import ScheduledTask, Scheduler, _check_schedule

__all__ = [
    "ManualScheduler",
    "TimeTestingGetter",
]


@dataclass
class TimeTestingGetter:
    """Wrapper to provide a modifyable system clock for unit tests."""

    now: datetime

    def advance(self, td: timedelta) -> None:
        """Advance the current time.

        :arg td: By this amount.

        """
        self.now += td

    def get(self) -> datetime:
        """Return the "current time".

        Use this if you need a getter.

        :returns: The "current time".

        """
        return self.now


@dataclass
class _Entry:
    next_at: datetime
    handle: ScheduledTask


@dataclass
class ManualScheduler(Scheduler):
    """Scheduler whose time only moves when you advance it.

    Due tasks are fired synchronously on the calling thread, in order
    of their due time, from {py:obj}`run_pending` and
    {py:obj}`advance`. Nothing fires from {py:obj}`schedule` itself,
    even with a zero initial delay; call {py:obj}`run_pending` to run
    those first firings.

    Failures are handled exactly as {py:obj}`ScheduledTask` does for
    real schedulers: logged and recorded on the handle.

    ```python
    >>> from datetime import datetime, timedelta, timezone
    >>> from windowpane.testing import ManualScheduler
    >>> sched = ManualScheduler(datetime(2024, 1, 1, tzinfo=timezone.utc))
    >>> fired = []
    >>> task = sched.schedule(
    ...     lambda: fired.append(sched.now), timedelta(0), timedelta(seconds=5)
    ... )
    >>> sched.advance(timedelta(seconds=10))
    3
    >>> [at.second for at in fired]
    [0, 5, 10]

    ```

    :arg now: Starting time.

    :arg stop_on_error: Passed to each {py:obj}`ScheduledTask`.

    """

    now: datetime = field(
        default_factory=lambda: datetime(2024, 1, 1, tzinfo=timezone.utc)
    )
    stop_on_error: bool = False
    _entries: List[_Entry] = field(default_factory=list, init=False, repr=False)

    def get(self) -> datetime:
        """Return the scheduler's "current time".

        Pass this as a `now_getter` so clocks agree with the schedule.

        :returns: The "current time".

        """
        return self.now

    @property
    def tasks(self) -> List[ScheduledTask]:
        """Tasks which have not been cancelled."""
        return [entry.handle for entry in self._entries if not entry.handle.cancelled]

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
        self._entries.append(_Entry(self.now + initial_delay, handle))
        return handle

    def _next_due(self) -> Optional[_Entry]:
        due = [
            entry
            for entry in self._entries
            if not entry.handle.cancelled and entry.next_at <= self.now
        ]
        return min(due, key=lambda entry: entry.next_at, default=None)

    def run_pending(self) -> int:
        """Fire every task that is due at the current time.

        A task that fell behind by more than one period fires once per
        missed period, as fixed-rate scheduling does.

        :returns: Number of firings.

        """
        fired = 0
        entry = self._next_due()
        while entry is not None:
            entry.next_at += entry.handle.period
            entry.handle._fire()
            fired += 1
            entry = self._next_due()
        self._entries = [entry for entry in self._entries if not entry.handle.cancelled]
        return fired

    def advance(self, td: timedelta) -> int:
        """Move time forward, firing tasks as they come due.

        Time is stepped to each due time in turn, so tasks observe
        {py:obj}`now` as it would be at that firing.

        :arg td: By this amount.

        :returns: Number of firings.

        """
        until = self.now + td
        fired = self.run_pending()
        while True:
            upcoming = [
                entry.next_at
                for entry in self._entries
                if not entry.handle.cancelled and entry.next_at <= until
            ]
            if not upcoming:
                break
            self.now = min(upcoming)
            fired += self.run_pending()
        self.now = until
        return fired

    @override
    def shutdown(self) -> None:
        for entry in self._entries:
            entry.handle.cancel()
        self._entries = []
