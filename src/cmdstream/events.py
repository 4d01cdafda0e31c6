"""Named event publish/subscribe.

Listeners run synchronously on the thread calling emit(), in registration
order. A listener exception propagates to the emitter; later listeners for
that emit are not called. There is no replay: a listener registered after an
event fired never sees it.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from enum import Enum
from typing import Any, Callable, DefaultDict, Union

__all__ = ["ProcessEvent", "EventEmitter", "Listener", "EventName"]

Listener = Callable[..., Any]


class ProcessEvent(str, Enum):
    """Events emitted by a Process.

    - STDOUT / STDERR: decoded chunk read from that stream
    - OUTPUT: decoded chunk read from either stream, before the stream event
    - EXIT: the Result, once the child terminated
    - ERROR: the exception that aborted the run
    """

    STDOUT = "stdout"
    STDERR = "stderr"
    OUTPUT = "output"
    EXIT = "exit"
    ERROR = "error"


EventName = Union[ProcessEvent, str]


def _event_key(event: EventName) -> str:
    """Normalise an event name so a ProcessEvent and its value match."""
    if isinstance(event, ProcessEvent):
        return event.value
    return str(event)


class EventEmitter:
    """Synchronous pub/sub keyed by event name.

    Any string is a valid event name; ProcessEvent covers the built-in ones.

    Example:
        ```python
        emitter = EventEmitter()
        emitter.on("stdout", print)

        @emitter.on(ProcessEvent.EXIT)
        def done(result):
            ...

        emitter.emit("stdout", "hello")
        ```
    """

    def __init__(self) -> None:
        self._listeners: DefaultDict[str, list[Listener]] = defaultdict(list)
        self._listeners_lock = threading.Lock()

    def on(self, event: EventName, listener: Listener | None = None) -> Any:
        """Register a listener for an event.

        Args:
            event: Event name
            listener: Callable invoked with the emitted arguments. When
                omitted, a decorator registering the decorated function is
                returned.

        Returns:
            The listener (or a decorator when listener is None)
        """
        if listener is None:
            def decorator(func: Listener) -> Listener:
                return self.on(event, func)

            return decorator

        with self._listeners_lock:
            self._listeners[_event_key(event)].append(listener)
        return listener

    def listeners(self, event: EventName) -> list[Listener]:
        """Return a copy of the listeners registered for an event."""
        with self._listeners_lock:
            return list(self._listeners.get(_event_key(event), ()))

    def emit(self, event: EventName, *args: Any) -> None:
        """Call every listener of an event in registration order.

        Args:
            event: Event name
            *args: Arguments passed to each listener
        """
        for listener in self.listeners(event):
            listener(*args)
