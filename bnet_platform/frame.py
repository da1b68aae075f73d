"""Frame: one unit of queued, in-flight or completed request work."""

from __future__ import annotations

import itertools
from enum import IntEnum
from typing import TYPE_CHECKING, Any, Callable, Optional

from contracts.v1.schemas import Request, Response

from .errors import FrameStateError

if TYPE_CHECKING:
    from .platform_request import PlatformRequest


class FrameState(IntEnum):
    """Frame states, ordered; a frame only ever moves forward."""

    NONE = 0
    WAITING = 1
    ACTIVE = 2
    DONE = 3


class Frame:
    """Pure data/state holder for a single platform call."""

    _ids = itertools.count(1)

    def __init__(self, request: Optional[Request] = None):
        self._id = Frame.generate_id()
        self._state = FrameState.NONE
        self._settled = False
        self._resolve: Optional[Callable[[Any], None]] = None
        self._reject: Optional[Callable[[BaseException], None]] = None

        self.request = request
        self.response: Optional[Response] = None
        self.platform_request: Optional["PlatformRequest"] = None

    def __repr__(self) -> str:
        return f"<Frame id={self._id} state={self._state.name}>"

    @property
    def id(self) -> int:
        return self._id

    @property
    def state(self) -> FrameState:
        return self._state

    @state.setter
    def state(self, value: FrameState) -> None:
        value = FrameState(value)
        if value < self._state:
            raise FrameStateError(
                f"Frame {self._id} cannot move from {self._state.name} back to {value.name}"
            )
        self._state = value

    @property
    def settled(self) -> bool:
        return self._settled

    def bind(
        self,
        resolve: Callable[[Any], None],
        reject: Callable[[BaseException], None],
    ) -> None:
        """Attach the callbacks that settle the caller-facing awaitable."""
        self._resolve = resolve
        self._reject = reject

    def resolve(self, value: Any) -> None:
        self._mark_settled()
        if self._resolve is not None:
            self._resolve(value)

    def reject(self, error: BaseException) -> None:
        self._mark_settled()
        if self._reject is not None:
            self._reject(error)

    def _mark_settled(self) -> None:
        if self._settled:
            raise FrameStateError(f"Frame {self._id} has already been settled")
        self._settled = True

    @staticmethod
    def generate_id() -> int:
        """Return a fresh process-wide frame id."""
        return next(Frame._ids)
