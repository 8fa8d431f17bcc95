"""Capacity-bounded FIFO buffers that back every window.

A {py:obj}`RingBuffer` is what an aggregate function receives. It
iterates in insertion order, knows its length and supports indexing,
so most aggregates can be plain builtins:

```python
>>> from windowpane.buffers import RingBuffer
>>> buf = RingBuffer(3)
>>> for x in [1, 2, 3, 4]:
...     buf.append(x)
>>> buf
RingBuffer([2, 3, 4], capacity=3)
>>> sum(buf)
9
>>> buf.is_full()
True

```

"""

from collections import deque
from typing import Any, Deque, Generic, Iterator, List, Optional, TypeVar

from windowpane.errors import _check_positive

V = TypeVar("V")
"""Type of buffered values."""


class RingBuffer(Generic[V]):
    """An ordered FIFO buffer with a fixed capacity.

    When a value is appended to a full buffer, the oldest value is
    evicted first, so `len(buffer) <= capacity` always holds.

    Aggregate functions must treat the buffer as read-only. Use
    {py:obj}`snapshot` if you need a copy that outlives the window's
    next step.

    :arg capacity: Maximum number of values held. `None` means the
        buffer is unbounded and is never full.

    """

    __slots__ = ("_values",)

    def __init__(self, capacity: Optional[int] = None) -> None:
        """Init."""
        if capacity is not None:
            _check_positive("capacity", capacity)
        self._values: Deque[V] = deque(maxlen=capacity)

    @property
    def capacity(self) -> Optional[int]:
        """Maximum number of values held, or `None` if unbounded."""
        return self._values.maxlen

    def append(self, value: V) -> None:
        """Insert a value at the tail, evicting the head if full.

        :arg value: Any value.

        """
        self._values.append(value)

    def is_full(self) -> bool:
        """If the next append would evict a value.

        :returns: Always `False` for an unbounded buffer.

        """
        maxlen = self._values.maxlen
        return maxlen is not None and len(self._values) >= maxlen

    def clear(self) -> None:
        """Drop all values; capacity is unchanged."""
        self._values.clear()

    def snapshot(self) -> List[V]:
        """Copy of the current values in insertion order.

        :returns: A new list, safe to keep after the buffer changes.

        """
        return list(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[V]:
        return iter(self._values)

    def __getitem__(self, index: int) -> V:
        return self._values[index]

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, RingBuffer):
            return (
                self.capacity == other.capacity and self._values == other._values
            )
        if isinstance(other, (list, tuple)):
            return list(self._values) == list(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"RingBuffer({list(self._values)!r}, capacity={self.capacity!r})"
