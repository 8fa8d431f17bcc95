from datetime import datetime, timedelta, timezone

from pytest import raises
from windowpane.errors import WindowConfigError
from windowpane.testing import ManualScheduler, TimeTestingGetter

ZERO_TD = timedelta(seconds=0)
START = datetime(2024, 1, 1, tzinfo=timezone.utc)


def test_time_testing_getter_advances():
    source = TimeTestingGetter(START)
    source.advance(timedelta(seconds=3))
    assert source.get() == START + timedelta(seconds=3)


def test_schedule_does_not_fire_until_run():
    sched = ManualScheduler(START)
    fired = []
    sched.schedule(lambda: fired.append(sched.now), ZERO_TD, timedelta(seconds=1))
    assert fired == []
    assert sched.run_pending() == 1
    assert fired == [START]


def test_advance_fires_at_each_due_time():
    sched = ManualScheduler(START)
    fired = []
    sched.schedule(
        lambda: fired.append(sched.now), timedelta(seconds=2), timedelta(seconds=3)
    )

    assert sched.advance(timedelta(seconds=9)) == 3
    assert fired == [
        START + timedelta(seconds=2),
        START + timedelta(seconds=5),
        START + timedelta(seconds=8),
    ]
    assert sched.now == START + timedelta(seconds=9)


def test_advance_interleaves_tasks_by_due_time():
    sched = ManualScheduler(START)
    fired = []
    sched.schedule(lambda: fired.append("fast"), ZERO_TD, timedelta(seconds=1))
    sched.schedule(lambda: fired.append("slow"), ZERO_TD, timedelta(seconds=2))

    sched.advance(timedelta(seconds=2))
    assert fired == ["fast", "slow", "fast", "fast", "slow"]


def test_cancelled_task_does_not_fire():
    sched = ManualScheduler(START)
    fired = []
    handle = sched.schedule(lambda: fired.append(1), ZERO_TD, timedelta(seconds=1))
    sched.cancel(handle)
    assert sched.advance(timedelta(seconds=5)) == 0
    assert fired == []
    assert sched.tasks == []


def test_failure_is_recorded_and_task_continues():
    sched = ManualScheduler(START)

    def boom():
        msg = "boom"
        raise RuntimeError(msg)

    handle = sched.schedule(boom, ZERO_TD, timedelta(seconds=1))
    assert sched.advance(timedelta(seconds=2)) == 3
    assert handle.failures == 3
    assert not handle.cancelled


def test_stop_on_error_cancels_task():
    sched = ManualScheduler(START, stop_on_error=True)

    def boom():
        msg = "boom"
        raise RuntimeError(msg)

    handle = sched.schedule(boom, ZERO_TD, timedelta(seconds=1))
    assert sched.advance(timedelta(seconds=2)) == 1
    assert handle.cancelled
    assert str(handle.last_error) == "boom"


def test_shutdown_cancels_all():
    sched = ManualScheduler(START)
    handle = sched.schedule(lambda: None, ZERO_TD, timedelta(seconds=1))
    sched.shutdown()
    assert handle.cancelled
    assert sched.tasks == []


def test_bad_period_raises():
    sched = ManualScheduler(START)
    with raises(WindowConfigError):
        sched.schedule(lambda: None, ZERO_TD, ZERO_TD)


def test_int_period_raises():
    sched = ManualScheduler(START)
    with raises(WindowConfigError):
        sched.schedule(lambda: None, ZERO_TD, 5)
    assert sched.tasks == []
