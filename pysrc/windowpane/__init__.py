"""Windowpane provides windowing primitives for streaming event
processing.

A **window** is a stateful handler that consumes a stream of values
one at a time and periodically calls an **emit function** with an
**aggregate** over a bounded, recent part of that stream. Windows are
building blocks: where the values come from and what happens to the
aggregates is up to you.

# Window Types

There are four kinds of window, which differ in _when_ they emit and
_what_ survives into the next window.

- `windowpane.windows.SlidingWindow`: fixed size, overlapping. Emits
  on every value once full, over the last `size` values.

- `windowpane.windows.TumblingWindow`: fixed size, non-overlapping.
  Emits and starts over every `size` values.

- `windowpane.windows.MonotonicWindow`: no size. Ticks a logical
  clock on every value and emits when the clock elapses.

- `windowpane.windows.TimedWindow`: like the monotonic window, but
  the clock is ticked on a wall-clock schedule by a background
  thread.

# Getting Started

Every window takes an aggregate function, which is given the buffered
values, and an emit function, which is given the aggregate. Let's sum
pairs of numbers.

>>> from windowpane import SlidingWindow, TumblingWindow
>>> sums = []
>>> window = TumblingWindow(2, sum, sums.append)

Now feed it values by calling it.

>>> for x in [1, 2, 3, 4, 5]:
...     window(x)
>>> sums
[3, 7]

The `5` is waiting in the buffer for a partner.

>>> window.buffer
RingBuffer([5], capacity=2)

A sliding window of the same size overlaps instead.

>>> sums = []
>>> window = SlidingWindow(2, sum, sums.append)
>>> for x in [1, 2, 3, 4, 5]:
...     window(x)
>>> sums
[3, 5, 7, 9]

# Clocks

Monotonic and timed windows are closed by a `windowpane.clocks.Clock`.
`windowpane.clocks.CountingClock` counts ticks and
`windowpane.clocks.WallClock` measures elapsed time. You can write
your own by subclassing `windowpane.clocks.Clock`, e.g. to close a
window on a marker value.

# Timed Windows and Threads

A `windowpane.windows.TimedWindow` runs a background task, so you
must cancel it when you are done. Using it as a context manager does
that for you:

```
with TimedWindow(
    WallClock(timedelta(minutes=1)), timedelta(seconds=1), len, print
) as window:
    for event in events:
        window(event)
```

See `windowpane.scheduling` for how failures in the background task
are reported, and `windowpane.testing` for a scheduler you can drive
by hand in tests.

# Logging and Metrics

Log records go to the `windowpane` logger; see
`windowpane.tracing`. Emissions and failed scheduled firings are
counted in Prometheus metrics; see `windowpane._metrics`.

"""  # noqa: D205

from windowpane.buffers import RingBuffer
from windowpane.clocks import Clock, CountingClock, WallClock
from windowpane.errors import WindowConfigError
from windowpane.scheduling import ScheduledTask, Scheduler, ThreadScheduler
from windowpane.windows import (
    MonotonicWindow,
    SlidingWindow,
    TimedWindow,
    TumblingWindow,
    Window,
)

__all__ = [
    "Clock",
    "CountingClock",
    "MonotonicWindow",
    "RingBuffer",
    "ScheduledTask",
    "Scheduler",
    "SlidingWindow",
    "ThreadScheduler",
    "TimedWindow",
    "TumblingWindow",
    "WallClock",
    "Window",
    "WindowConfigError",
]
