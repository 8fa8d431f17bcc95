"""`pytest` config for `pytests/`.

This sets up our fixtures.

"""

from datetime import datetime, timezone

from pytest import fixture
from windowpane.scheduling import ThreadScheduler
from windowpane.testing import ManualScheduler


@fixture
def start():
    """A fixed starting time for schedules and clocks."""
    return datetime(2024, 1, 1, tzinfo=timezone.utc)


@fixture
def manual_scheduler(start):
    """Scheduler that only fires when the test advances it."""
    sched = ManualScheduler(start)
    yield sched
    sched.shutdown()


@fixture
def thread_scheduler():
    """Real background-thread scheduler, shut down after the test."""
    sched = ThreadScheduler(name="pytest")
    yield sched
    sched.shutdown(timeout=5.0)
