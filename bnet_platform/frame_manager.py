"""State-aware façade over a single FrameSet."""

from __future__ import annotations

from typing import Optional

from .frame import Frame, FrameState
from .frame_set import FrameSet


class FrameManager:
    """Classify, add and remove frames held in one ``FrameSet``.

    Frames inside the sets returned by ``get_waiting``/``get_active`` are the
    live objects; only the containers are detached copies.
    """

    def __init__(self, frame_set: FrameSet):
        self._frame_set = frame_set

    @property
    def frame_set(self) -> FrameSet:
        return self._frame_set

    def get_waiting(self) -> FrameSet:
        return self._frame_set.filter(lambda f: f.state == FrameState.WAITING)

    def get_active(self) -> FrameSet:
        return self._frame_set.filter(lambda f: f.state == FrameState.ACTIVE)

    def add_frame(self, frame: Frame) -> bool:
        return self._frame_set.enqueue(frame)

    def remove_frame(self, frame: Frame) -> None:
        self._frame_set.remove(frame)

    def clear(self) -> None:
        self._frame_set.clear()

    def get_frame(self) -> Optional[Frame]:
        """Return the next waiting frame without changing its state."""
        return self.get_waiting().front
