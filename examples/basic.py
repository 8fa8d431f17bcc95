from statistics import mean
from typing import List

from windowpane.clocks import CountingClock
from windowpane.windows import MonotonicWindow, SlidingWindow, TumblingWindow

# from windowpane.tracing import setup_tracing

# setup_tracing(log_level="TRACE")


def spread(values) -> int:
    return max(values) - min(values)


def show(label: str):
    def emit(result):
        print(f"{label}: {result}")

    return emit


readings: List[int] = [3, 5, 4, 8, 12, 9, 7, 7, 10, 2]

moving_avg = SlidingWindow(3, mean, show("moving average"))
blocks = TumblingWindow(4, spread, show("spread per block"))
batches = MonotonicWindow(CountingClock(5), list, show("batch"))

for reading in readings:
    moving_avg(reading)
    blocks(reading)
    batches(reading)
