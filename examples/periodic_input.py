import random
import threading
from datetime import timedelta

from windowpane.clocks import WallClock
from windowpane.tracing import setup_tracing
from windowpane.windows import TimedWindow

setup_tracing(log_level="INFO")


def summarize(values):
    return len(values), sum(values)


def emit(count_total):
    count, total = count_total
    print(f"{count} events totalling {total} in the last second")


stop = threading.Event()

# Tick every 100ms; emit once a full second has passed.
with TimedWindow(
    WallClock(timedelta(seconds=1)), timedelta(milliseconds=100), summarize, emit
) as window:

    def produce():
        while not stop.is_set():
            window(random.randint(1, 10))
            # Bursty arrivals; emission cadence is unaffected.
            stop.wait(random.uniform(0.0, 0.05))

    producer = threading.Thread(target=produce, name="producer")
    producer.start()
    stop.wait(5.0)
    stop.set()
    producer.join()
