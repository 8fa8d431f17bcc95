"""Window handlers.

Each window is a small stateful object that accepts one value at a
time. As a side effect of accepting values, it calls an **emit
function** with the result of an **aggregate function** whenever its
policy decides a window is complete.

All four windows share the same shape: construct once, then call the
window with each value. The aggregate function receives a
{py:obj}`windowpane.buffers.RingBuffer` and must not modify it.

{py:obj}`SlidingWindow` emits on every value once it has seen `size`
values, each time over the most recent `size`:

```python
>>> from windowpane.windows import SlidingWindow
>>> out = []
>>> window = SlidingWindow(2, sum, out.append)
>>> for x in [1, 2, 3, 4]:
...     window(x)
>>> out
[3, 5, 7]

```

{py:obj}`TumblingWindow` emits and starts over every `size` values:

```python
>>> from windowpane.windows import TumblingWindow
>>> out = []
>>> window = TumblingWindow(2, sum, out.append)
>>> for x in [1, 2, 3, 4]:
...     window(x)
>>> out
[3, 7]

```

{py:obj}`MonotonicWindow` ticks a clock on every value and emits
when the clock elapses. The value that makes the clock elapse is not
part of the window it closes; it opens the next one:

```python
>>> from windowpane.clocks import CountingClock
>>> from windowpane.windows import MonotonicWindow
>>> out = []
>>> window = MonotonicWindow(CountingClock(3), list, out.append)
>>> for x in [1, 2, 3, 4, 5, 6]:
...     window(x)
>>> out
[[1, 2], [3, 4, 5]]

```

{py:obj}`TimedWindow` ticks its clock on a schedule instead, from a
background thread, so emission is decoupled from how fast values
arrive. It must be cancelled when you are done with it.

"""

import logging
import threading
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Any, Callable, Generic, Optional, TypeVar

from typing_extensions import Self, TypeAlias, override

from windowpane._metrics import EMISSIONS
from windowpane.buffers import RingBuffer
from windowpane.clocks import Clock
from windowpane.errors import WindowConfigError, _check_duration, _check_positive
from windowpane.scheduling import ZERO_TD, ScheduledTask, Scheduler, ThreadScheduler

__all__ = [
    "MonotonicWindow",
    "SlidingWindow",
    "TimedWindow",
    "TumblingWindow",
    "Window",
]

logger = logging.getLogger(__name__)

V = TypeVar("V")
"""Type of incoming values."""


W = TypeVar("W")
"""Type of aggregate results."""


Aggregate: TypeAlias = Callable[[RingBuffer[V]], W]
Emit: TypeAlias = Callable[[W], Any]


def _check_clock(clock: Any) -> None:
    for method in ("tick", "is_elapsed", "reset"):
        if not callable(getattr(clock, method, None)):
            msg = (
                f"clock must provide `tick`, `is_elapsed` and `reset`; "
                f"{clock!r} has no `{method}`"
            )
            raise WindowConfigError(msg)


def _emit_result(kind: str, emit: Emit[W], result: W, count: int) -> None:
    logger.debug("%s window emitting aggregate of %d values", kind, count)
    emit(result)
    EMISSIONS.labels(window=kind).inc()


class Window(ABC, Generic[V]):
    """Abstract class for a value-consuming window handler.

    Calling the window is the same as calling {py:obj}`on_value`.

    """

    @abstractmethod
    def on_value(self, value: V) -> None:
        """Accept the next value of the stream.

        Any exception raised by the aggregate or emit function while
        handling this value is propagated to the caller.

        :arg value: Any value.

        """
        ...

    def __call__(self, value: V) -> None:
        self.on_value(value)


class SlidingWindow(Window[V], Generic[V, W]):
    """Fixed-size overlapping windows that advance one value at a time.

    The first `size - 1` values are silently buffered. From then on,
    every value emits an aggregate over the most recent `size` values
    in arrival order; the oldest value is evicted to make room. The
    buffer is never reset.

    The buffer passed to `aggregate` is the live buffer. If you want
    to keep the values, return a copy (e.g. `list`) from `aggregate`.

    Not thread-safe; feed it from one thread at a time.

    :arg size: Number of values in each window. Must be positive.

    :arg aggregate: Called with the buffer to summarize the window.

    :arg emit: Called with each aggregate.

    """

    def __init__(self, size: int, aggregate: Aggregate[V, W], emit: Emit[W]) -> None:
        """Init."""
        _check_positive("size", size)
        self.size = size
        self._aggregate = aggregate
        self._emit = emit
        self._buffer: RingBuffer[V] = RingBuffer(size)

    @property
    def buffer(self) -> RingBuffer[V]:
        """Values currently in the window."""
        return self._buffer

    @override
    def on_value(self, value: V) -> None:
        self._buffer.append(value)
        if self._buffer.is_full():
            result = self._aggregate(self._buffer)
            _emit_result("sliding", self._emit, result, len(self._buffer))


class TumblingWindow(Window[V], Generic[V, W]):
    """Fixed-size windows that do not overlap.

    Values are buffered until `size` have arrived, then an aggregate
    over those values is emitted and a fresh, empty buffer is started.
    Each value is part of exactly one emitted window.

    If `aggregate` or `emit` raises, the full buffer is kept; the next
    value will evict the oldest and emit again.

    Not thread-safe; feed it from one thread at a time.

    :arg size: Number of values in each window. Must be positive.

    :arg aggregate: Called with the buffer to summarize the window.

    :arg emit: Called with each aggregate.

    """

    def __init__(self, size: int, aggregate: Aggregate[V, W], emit: Emit[W]) -> None:
        """Init."""
        _check_positive("size", size)
        self.size = size
        self._aggregate = aggregate
        self._emit = emit
        self._buffer: RingBuffer[V] = RingBuffer(size)

    @property
    def buffer(self) -> RingBuffer[V]:
        """Values accumulated since the last emission."""
        return self._buffer

    @override
    def on_value(self, value: V) -> None:
        self._buffer.append(value)
        if self._buffer.is_full():
            result = self._aggregate(self._buffer)
            _emit_result("tumbling", self._emit, result, len(self._buffer))
            self._buffer = RingBuffer(self.size)


class MonotonicWindow(Window[V], Generic[V, W]):
    """Windows closed by a logical clock ticked once per value.

    On each value, the clock is ticked first. If it has elapsed, an
    aggregate over the values buffered so far is emitted, the buffer
    is emptied and the clock is reset. Only then is the value added
    to the buffer.

    This means the value that makes the clock elapse is **not** part
    of the aggregate it triggers; it becomes the first value of the
    next window. The clock can thus be driven by the number or content
    of ticks rather than by the buffer.

    The buffer is unbounded.

    Not thread-safe; feed it from one thread at a time.

    :arg clock: Starting clock. Anything with `tick`, `is_elapsed`
        and `reset` works; see {py:obj}`windowpane.clocks.Clock`.

    :arg aggregate: Called with the buffer to summarize the window.

    :arg emit: Called with each aggregate.

    """

    def __init__(self, clock: Clock, aggregate: Aggregate[V, W], emit: Emit[W]) -> None:
        """Init."""
        _check_clock(clock)
        self._clock = clock
        self._aggregate = aggregate
        self._emit = emit
        self._buffer: RingBuffer[V] = RingBuffer()

    @property
    def clock(self) -> Clock:
        """Current state of the clock."""
        return self._clock

    @property
    def buffer(self) -> RingBuffer[V]:
        """Values accumulated since the last emission."""
        return self._buffer

    @override
    def on_value(self, value: V) -> None:
        self._clock = self._clock.tick()
        if self._clock.is_elapsed():
            result = self._aggregate(self._buffer)
            _emit_result("monotonic", self._emit, result, len(self._buffer))
            self._buffer = RingBuffer()
            self._clock = self._clock.reset()

        self._buffer.append(value)


class TimedWindow(Window[V], Generic[V, W]):
    """Windows closed by a clock that is ticked on a schedule.

    Two actors share this window's state:

    - Callers: each call only appends the value to the buffer.

    - The scheduler: a task registered at construction fires every
      `tick_period`, starting immediately. Each firing ticks the
      clock and, if it has elapsed, aggregates the buffer, empties it
      and resets the clock, then emits the aggregate.

    So emission is decoupled from value arrival. A quiet period still
    emits, with `aggregate` applied to an empty buffer, and a burst of
    values between two firings lands in one window however many there
    are.

    Appending and the tick-aggregate-empty-reset step share one lock,
    so a value is always in exactly one emitted window; none can slip
    in between aggregation and emptying. `emit` runs on the scheduler
    thread after the lock is released, so a slow `emit` delays later
    firings but never blocks callers.

    An exception from `aggregate` leaves the buffer and elapsed clock
    as they were, so the next firing tries again over the same values
    plus any new ones. An exception from `emit` loses that window's
    aggregate. Either way it is reported by the scheduler; see
    {py:obj}`windowpane.scheduling`.

    Call {py:obj}`cancel` (or use the window as a context manager)
    to stop the background task. Afterwards the window still accepts
    values, but they just accumulate.

    :arg clock: Starting clock, usually a
        {py:obj}`windowpane.clocks.WallClock`. Anything with `tick`,
        `is_elapsed` and `reset` works.

    :arg tick_period: How often the clock is ticked. Must be a
        positive `timedelta`.

    :arg aggregate: Called with the buffer to summarize the window.

    :arg emit: Called with each aggregate, on the scheduler's thread.

    :arg scheduler: Runs the periodic task. Defaults to a private
        {py:obj}`windowpane.scheduling.ThreadScheduler` which is shut
        down on {py:obj}`cancel`.

    """

    def __init__(
        self,
        clock: Clock,
        tick_period: timedelta,
        aggregate: Aggregate[V, W],
        emit: Emit[W],
        scheduler: Optional[Scheduler] = None,
    ) -> None:
        """Init."""
        _check_clock(clock)
        _check_duration("tick_period", tick_period)
        self.tick_period = tick_period
        self._aggregate = aggregate
        self._emit = emit
        self._lock = threading.Lock()
        self._clock = clock
        self._buffer: RingBuffer[V] = RingBuffer()

        if scheduler is None:
            self._scheduler: Scheduler = ThreadScheduler(name="windowpane-timed")
            self._owns_scheduler = True
        else:
            self._scheduler = scheduler
            self._owns_scheduler = False

        # Schedule last; the first firing may happen immediately.
        self.task: ScheduledTask = self._scheduler.schedule(
            self._on_tick,
            ZERO_TD,
            tick_period,
            name=f"TimedWindow-{id(self):x}",
            label="timed_window",
        )

    @property
    def clock(self) -> Clock:
        """Current state of the clock."""
        with self._lock:
            return self._clock

    @property
    def buffer(self) -> RingBuffer[V]:
        """Copy of the values accumulated since the last emission."""
        with self._lock:
            buffer: RingBuffer[V] = RingBuffer()
            for value in self._buffer:
                buffer.append(value)
            return buffer

    @property
    def cancelled(self) -> bool:
        """If the background task has been cancelled."""
        return self.task.cancelled

    @override
    def on_value(self, value: V) -> None:
        with self._lock:
            self._buffer.append(value)

    def _on_tick(self) -> None:
        with self._lock:
            self._clock = self._clock.tick()
            if not self._clock.is_elapsed():
                return

            result = self._aggregate(self._buffer)
            count = len(self._buffer)
            self._buffer = RingBuffer()
            self._clock = self._clock.reset()

        _emit_result("timed", self._emit, result, count)

    def cancel(self) -> None:
        """Permanently stop emitting.

        A firing already in progress completes. If the window created
        its own scheduler, that scheduler is shut down too.

        """
        self._scheduler.cancel(self.task)
        if self._owns_scheduler:
            self._scheduler.shutdown()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.cancel()
