"""cmdstream exception classes.

State machine misuse (AlreadyStartedError, NotStartedError, NotFinishedError,
NoPidError) is raised synchronously to the caller. Faults of the background
run (SpawnError, StreamReadError) are emitted as ``error`` events and then
re-raised to whoever waits for the process.
"""

from __future__ import annotations

__all__ = [
    "ProcessError",
    "AlreadyStartedError",
    "NotStartedError",
    "NotFinishedError",
    "NoPidError",
    "SpawnError",
    "StreamReadError",
    "SignalError",
]


class ProcessError(Exception):
    """Base class for cmdstream errors."""
    pass


class AlreadyStartedError(ProcessError):
    """start() called on a process that was already started."""

    def __init__(self) -> None:
        super().__init__("Already started")


class NotStartedError(ProcessError):
    """Query made before start()."""

    def __init__(self) -> None:
        super().__init__("Process not started")


class NotFinishedError(ProcessError):
    """Result requested before the process finished."""

    def __init__(self) -> None:
        super().__init__("Process not finished")


class NoPidError(ProcessError):
    """PID requested before the child was spawned."""

    def __init__(self) -> None:
        super().__init__("No PID available")


class SpawnError(ProcessError):
    """The OS failed to launch the child.

    Attributes:
        command: Command line that failed to launch
        cause: Underlying OSError
    """

    def __init__(self, command: str, cause: BaseException) -> None:
        self.command = command
        self.cause = cause
        super().__init__(f"Failed to spawn {command!r}: {cause}")


class StreamReadError(ProcessError):
    """Reading from a child pipe failed other than at end-of-stream.

    Attributes:
        stream: Stream name (stdout/stderr)
        cause: Underlying exception
    """

    def __init__(self, stream: str, cause: BaseException) -> None:
        self.stream = stream
        self.cause = cause
        super().__init__(f"Failed to read {stream}: {cause}")


class SignalError(ProcessError):
    """Signal could not be delivered because the pid is gone.

    Attributes:
        pid: Target process id
        signal: Signal number
    """

    def __init__(self, pid: int, signal: int, reason: str = "no such process") -> None:
        self.pid = pid
        self.signal = signal
        super().__init__(f"Cannot send signal {signal} to pid={pid}: {reason}")
