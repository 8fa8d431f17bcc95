import logging
import threading
import time
from datetime import timedelta

from pytest import raises
from windowpane.errors import WindowConfigError
from windowpane.scheduling import ScheduledTask, ThreadScheduler

ZERO_TD = timedelta(seconds=0)
PERIOD = timedelta(milliseconds=10)
# Generous so slow CI machines don't flake.
TIMEOUT = 5.0


class _Counter:
    def __init__(self, until: int, fail: bool = False):
        self.count = 0
        self.until = until
        self.fail = fail
        self.done = threading.Event()
        self.threads = set()

    def __call__(self):
        self.count += 1
        self.threads.add(threading.current_thread().name)
        if self.count >= self.until:
            self.done.set()
        if self.fail:
            msg = "boom"
            raise RuntimeError(msg)


def _sleep(td: timedelta) -> None:
    threading.Event().wait(td.total_seconds())


def test_task_fires_repeatedly_on_another_thread(thread_scheduler):
    counter = _Counter(until=3)
    thread_scheduler.schedule(counter, ZERO_TD, PERIOD)
    assert counter.done.wait(TIMEOUT)
    thread_scheduler.shutdown()

    assert counter.count >= 3
    assert counter.threads == {"pytest-0"}


def test_cancel_stops_future_firings(thread_scheduler):
    counter = _Counter(until=1)
    handle = thread_scheduler.schedule(counter, ZERO_TD, PERIOD)
    assert counter.done.wait(TIMEOUT)

    thread_scheduler.cancel(handle)
    thread_scheduler.shutdown()
    seen = counter.count
    assert handle.cancelled

    # Give a live thread plenty of chances to fire again.
    _sleep(10 * PERIOD)
    assert counter.count == seen


def test_failure_is_logged_and_task_continues(thread_scheduler, caplog):
    counter = _Counter(until=3, fail=True)
    with caplog.at_level(logging.ERROR, logger="windowpane.scheduling"):
        handle = thread_scheduler.schedule(counter, ZERO_TD, PERIOD, name="flaky")
        assert counter.done.wait(TIMEOUT)
        thread_scheduler.shutdown()

    assert handle.failures >= 3
    assert isinstance(handle.last_error, RuntimeError)
    assert any("flaky" in record.getMessage() for record in caplog.records)


def test_stop_on_error_cancels_after_first_failure():
    sched = ThreadScheduler(stop_on_error=True)
    counter = _Counter(until=1, fail=True)
    try:
        handle = sched.schedule(counter, ZERO_TD, PERIOD)
        assert counter.done.wait(TIMEOUT)
        _sleep(10 * PERIOD)
    finally:
        sched.shutdown()

    assert handle.cancelled
    assert handle.failures == 1
    assert counter.count == 1


def test_initial_delay_postpones_first_firing(thread_scheduler):
    counter = _Counter(until=1)
    thread_scheduler.schedule(counter, timedelta(seconds=60), PERIOD)
    assert not counter.done.wait(10 * PERIOD.total_seconds())
    thread_scheduler.shutdown()

    assert counter.count == 0


def test_shutdown_cancels_every_task(thread_scheduler):
    handles = [
        thread_scheduler.schedule(_Counter(until=1), ZERO_TD, PERIOD)
        for _ in range(3)
    ]
    thread_scheduler.shutdown()
    assert all(handle.cancelled for handle in handles)


def test_task_may_cancel_itself(thread_scheduler):
    fired = threading.Event()
    handles = []

    def once():
        handles[0].cancel()
        fired.set()

    handles.append(thread_scheduler.schedule(once, timedelta(milliseconds=50), PERIOD))
    assert fired.wait(TIMEOUT)
    assert handles[0].cancelled


def test_non_positive_period_raises(thread_scheduler):
    with raises(WindowConfigError):
        thread_scheduler.schedule(_Counter(until=1), ZERO_TD, ZERO_TD)


def test_negative_initial_delay_raises(thread_scheduler):
    with raises(WindowConfigError):
        thread_scheduler.schedule(_Counter(until=1), timedelta(seconds=-1), PERIOD)


def test_int_period_raises(thread_scheduler):
    with raises(WindowConfigError):
        thread_scheduler.schedule(_Counter(until=1), ZERO_TD, 1)
    assert thread_scheduler.tasks == []


def test_int_initial_delay_raises(thread_scheduler):
    with raises(WindowConfigError):
        thread_scheduler.schedule(_Counter(until=1), 0, PERIOD)


def test_finished_threads_are_forgotten(thread_scheduler):
    handles = [
        thread_scheduler.schedule(_Counter(until=1), ZERO_TD, PERIOD)
        for _ in range(10)
    ]
    for handle in handles:
        thread_scheduler.cancel(handle)
    assert thread_scheduler.tasks == []

    deadline = time.monotonic() + TIMEOUT
    while thread_scheduler._threads and time.monotonic() < deadline:
        _sleep(PERIOD)
    assert thread_scheduler._threads == {}


def test_task_name_defaults_to_qualname():
    def my_task():
        pass

    handle = ScheduledTask(my_task, PERIOD)
    assert handle.name.endswith("my_task")
    assert "active" in repr(handle)
    handle.cancel()
    handle.cancel()
    assert "cancelled" in repr(handle)


def test_label_defaults_to_qualname_and_is_independent_of_name():
    def my_task():
        pass

    handle = ScheduledTask(my_task, PERIOD, name="my_task-1")
    assert handle.name == "my_task-1"
    assert handle.label.endswith("my_task")

    handle = ScheduledTask(my_task, PERIOD, name="my_task-2", label="mine")
    assert handle.label == "mine"
