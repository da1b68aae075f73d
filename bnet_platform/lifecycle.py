"""Request lifecycle state machine helpers.

A ``PlatformRequest`` emits its events in one of three fixed sequences::

    beforeSend, httpFail,    httpDone, error,                   done
    beforeSend, httpSuccess, httpDone, responseParsed, success, done
    beforeSend, httpSuccess, httpDone, error,                   done

The table below encodes those sequences; emitting anything else raises.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from .errors import LifecycleError


class LifecycleEvent(str, Enum):
    BEFORE_SEND = "beforeSend"
    HTTP_SUCCESS = "httpSuccess"
    HTTP_FAIL = "httpFail"
    HTTP_DONE = "httpDone"
    RESPONSE_PARSED = "responseParsed"
    SUCCESS = "success"
    ERROR = "error"
    DONE = "done"


_TRANSITIONS: dict[Optional[LifecycleEvent], frozenset[LifecycleEvent]] = {
    None: frozenset({LifecycleEvent.BEFORE_SEND}),
    LifecycleEvent.BEFORE_SEND: frozenset({LifecycleEvent.HTTP_SUCCESS, LifecycleEvent.HTTP_FAIL}),
    LifecycleEvent.HTTP_SUCCESS: frozenset({LifecycleEvent.HTTP_DONE}),
    LifecycleEvent.HTTP_FAIL: frozenset({LifecycleEvent.HTTP_DONE}),
    LifecycleEvent.HTTP_DONE: frozenset({LifecycleEvent.RESPONSE_PARSED, LifecycleEvent.ERROR}),
    LifecycleEvent.RESPONSE_PARSED: frozenset({LifecycleEvent.SUCCESS}),
    LifecycleEvent.SUCCESS: frozenset({LifecycleEvent.DONE}),
    LifecycleEvent.ERROR: frozenset({LifecycleEvent.DONE}),
    LifecycleEvent.DONE: frozenset(),
}


def allowed_next_events(current: Optional[LifecycleEvent]) -> frozenset[LifecycleEvent]:
    """Return the events that may follow ``current`` (None = nothing emitted yet)."""
    return _TRANSITIONS[current]


def is_terminal_event(event: Optional[LifecycleEvent]) -> bool:
    return event is LifecycleEvent.DONE


def advance(
    current: Optional[LifecycleEvent],
    event: LifecycleEvent,
    *,
    history: tuple[LifecycleEvent, ...] = (),
) -> LifecycleEvent:
    """Validate the transition ``current -> event`` and return the new state.

    ``history`` is consulted for the one context-dependent rule: after an
    ``httpFail`` the only way forward from ``httpDone`` is ``error``.
    """
    if event not in _TRANSITIONS[current]:
        shown = current.value if current is not None else "<start>"
        raise LifecycleError(f"Illegal lifecycle transition {shown} -> {event.value}")
    if event is LifecycleEvent.RESPONSE_PARSED and LifecycleEvent.HTTP_FAIL in history:
        raise LifecycleError("responseParsed cannot follow a failed HTTP call")
    return event
