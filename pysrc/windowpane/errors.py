"""Utilities for error handling."""

from datetime import timedelta
from typing import Any


class WindowConfigError(ValueError):
    """A window, clock, buffer or schedule was configured wrongly.

    Raised at construction time, before any value is accepted, so
    that a bad size or period never results in a half-working window.

    """

    pass


def _check_positive(name: str, value: Any) -> None:
    """Fail fast unless `value` is greater than its type's zero.

    Works for `int` sizes and `timedelta` periods alike.

    """
    # `bool` is an `int`, but `size=True` is never what was meant.
    if isinstance(value, bool):
        msg = f"`{name}` must be a positive number or duration; got {value!r}"
        raise WindowConfigError(msg)

    try:
        is_positive = value > type(value)(0)
    except TypeError as ex:
        msg = f"`{name}` must be a positive number or duration; got {value!r}"
        raise WindowConfigError(msg) from ex

    if not is_positive:
        msg = f"`{name}` must be positive; got {value!r}"
        raise WindowConfigError(msg)


def _check_duration(name: str, value: Any) -> None:
    """Fail fast unless `value` is a positive `timedelta`."""
    if not isinstance(value, timedelta):
        msg = f"`{name}` must be a `timedelta`; got {value!r}"
        raise WindowConfigError(msg)
    _check_positive(name, value)
