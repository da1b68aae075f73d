"""Ordered, optionally bounded collection of frames.

By default the set behaves as a FIFO queue. ``sort()`` reorders it in place
with an injected ``comparer(a, b) -> int`` (negative, zero or positive, like
a classic ``cmp`` function).
"""

from __future__ import annotations

from functools import cmp_to_key
from typing import Callable, Iterator, Optional

from .frame import Frame

Comparer = Callable[[Frame, Frame], int]

UNBOUNDED = -1


class FrameSet:
    """FIFO collection of frames with an optional maximum size."""

    def __init__(self, max_size: int = UNBOUNDED, comparer: Optional[Comparer] = None):
        self._frames: list[Frame] = []
        self._max_size = max_size
        self._comparer = comparer

    def __iter__(self) -> Iterator[Frame]:
        yield from self._frames

    def __len__(self) -> int:
        return len(self._frames)

    def __contains__(self, frame: object) -> bool:
        return any(f is frame for f in self._frames)

    def __repr__(self) -> str:
        return f"<FrameSet size={self.size} max_size={self._max_size}>"

    def clear(self) -> None:
        self._frames.clear()

    def enqueue(self, frame: Frame) -> bool:
        """Append ``frame`` unless the set is full.

        Returns False when the frame was dropped.
        """
        if self.full:
            return False
        self._frames.append(frame)
        return True

    def dequeue(self) -> Optional[Frame]:
        if not self._frames:
            return None
        return self._frames.pop(0)

    @property
    def front(self) -> Optional[Frame]:
        return self._frames[0] if self._frames else None

    @property
    def back(self) -> Optional[Frame]:
        return self._frames[-1] if self._frames else None

    @property
    def empty(self) -> bool:
        return not self._frames

    @property
    def full(self) -> bool:
        return self._max_size >= 0 and len(self._frames) >= self._max_size

    @property
    def size(self) -> int:
        return len(self._frames)

    @property
    def max_size(self) -> int:
        return self._max_size

    @max_size.setter
    def max_size(self, value: int) -> None:
        self._max_size = value

    @property
    def comparer(self) -> Optional[Comparer]:
        return self._comparer

    @comparer.setter
    def comparer(self, func: Optional[Comparer]) -> None:
        self._comparer = func

    def remove(self, frame: Frame) -> None:
        """Remove ``frame`` by identity; unknown frames are ignored."""
        self._frames = [f for f in self._frames if f is not frame]

    def sort(self) -> None:
        if self._comparer is None:
            return
        self._frames.sort(key=cmp_to_key(self._comparer))

    def filter(self, predicate: Callable[[Frame], bool]) -> "FrameSet":
        """Return a new, detached set holding the frames matching ``predicate``.

        The copy shares ``max_size`` and the comparer but not the backing
        list, so enqueueing into or removing from it leaves this set intact.
        """
        filtered = FrameSet(self._max_size, self._comparer)
        filtered._frames = [f for f in self._frames if predicate(f)]
        return filtered
