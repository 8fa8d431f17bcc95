"""Clocks that decide when a window is complete.

A clock is an immutable threshold-crossing detector: each
{py:obj}`Clock.tick` returns an advanced clock,
{py:obj}`Clock.is_elapsed` says whether the threshold has been
reached and {py:obj}`Clock.reset` returns the clock to its baseline.
Windows hold the current clock in a cell and replace it on every step.

{py:obj}`CountingClock` is a logical clock, ticked once per value by
{py:obj}`windowpane.windows.MonotonicWindow`:

```python
>>> from windowpane.clocks import CountingClock
>>> clock = CountingClock(2)
>>> clock = clock.tick()
>>> clock.is_elapsed()
False
>>> clock = clock.tick()
>>> clock.is_elapsed()
True
>>> clock.reset()
CountingClock(period=2, count=0)

```

{py:obj}`WallClock` samples the time on every tick, which is what
{py:obj}`windowpane.windows.TimedWindow` uses on its schedule.

"""

import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Callable, TypeVar

from typing_extensions import Self, override

from windowpane.errors import _check_duration, _check_positive

__all__ = [
    "Clock",
    "CountingClock",
    "WallClock",
    "is_elapsed",
    "reset",
    "tick",
]


def _get_system_utc() -> datetime:
    return datetime.now(timezone.utc)


class Clock(ABC):
    """Abstract class defining a sense of when a window is done.

    Subclasses must be effectively immutable: {py:obj}`tick` and
    {py:obj}`reset` return new instances and never modify `self`. The
    frozen dataclasses in this module are the usual way to get that.

    """

    @abstractmethod
    def tick(self) -> Self:
        """Advance by one unit of this clock's own definition.

        :returns: The advanced clock.

        """
        ...

    @abstractmethod
    def is_elapsed(self) -> bool:
        """If the threshold has been reached.

        :returns: `True` when the window should be emitted.

        """
        ...

    @abstractmethod
    def reset(self) -> Self:
        """Return to the post-construction baseline.

        :returns: The reset clock.

        """
        ...


@dataclass(frozen=True)
class CountingClock(Clock):
    """Elapses once it has been ticked `period` times.

    :arg period: Number of ticks until elapsed.

    :arg count: Ticks so far. You should only set this when building
        a partially advanced clock by hand.

    """

    period: int
    count: int = 0

    def __post_init__(self) -> None:
        _check_positive("period", self.period)

    @override
    def tick(self) -> "CountingClock":
        return replace(self, count=self.count + 1)

    @override
    def is_elapsed(self) -> bool:
        return self.count >= self.period

    @override
    def reset(self) -> "CountingClock":
        return replace(self, count=0)


@dataclass(frozen=True)
class WallClock(Clock):
    """Elapses once `period` of time has passed since it started.

    The time is only sampled on {py:obj}`tick`, so the clock only
    notices time passing as often as it is ticked.

    All times are aware datetimes in UTC by default.

    :arg period: Duration until elapsed.

    :arg now_getter: Return the current time. Defaults to the current
        system time in UTC. Tests can pass
        {py:obj}`windowpane.testing.TimeTestingGetter.get`.

    """

    period: timedelta
    now_getter: Callable[[], datetime] = field(
        default=_get_system_utc, repr=False, compare=False
    )
    started: datetime = field(init=False)
    """When the current period started."""
    now: datetime = field(init=False)
    """Time sampled on the last tick."""

    def __post_init__(self) -> None:
        _check_duration("period", self.period)
        now = self.now_getter()
        # Frozen, so go around `__setattr__` for the derived fields.
        object.__setattr__(self, "started", now)
        object.__setattr__(self, "now", now)

    def _with(self, started: datetime, now: datetime) -> "WallClock":
        # `copy` skips `__post_init__`, so `now_getter` is not called.
        clock = copy.copy(self)
        object.__setattr__(clock, "started", started)
        object.__setattr__(clock, "now", now)
        return clock

    @override
    def tick(self) -> "WallClock":
        return self._with(self.started, self.now_getter())

    @override
    def is_elapsed(self) -> bool:
        return self.now - self.started >= self.period

    @override
    def reset(self) -> "WallClock":
        return self._with(self.now, self.now)


C = TypeVar("C", bound=Clock)


def tick(clock: C) -> C:
    """Advance a clock; see {py:obj}`Clock.tick`."""
    return clock.tick()


def is_elapsed(clock: Clock) -> bool:
    """See {py:obj}`Clock.is_elapsed`."""
    return clock.is_elapsed()


def reset(clock: C) -> C:
    """Reset a clock; see {py:obj}`Clock.reset`."""
    return clock.reset()
