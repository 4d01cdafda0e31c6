"""cmdstream - run a command and observe its output as it arrives.

Usage:
    import cmdstream

    result = cmdstream.run("make test", env={"CI": "1"})
    print(result.success, result.output)

    process = cmdstream.create("tail -n 100 app.log")
    process.on("stdout", print)
    process.start()
    result = process.wait_for()
"""

from __future__ import annotations

from typing import Any

__version__ = "0.1.0"

from .errors import (
    AlreadyStartedError,
    NoPidError,
    NotFinishedError,
    NotStartedError,
    ProcessError,
    SignalError,
    SpawnError,
    StreamReadError,
)
from .events import EventEmitter, ProcessEvent
from .runtime import Process, ProcessOptions, ProcessState, Result

__all__ = [
    "__version__",
    "create",
    "run",
    "EventEmitter",
    "Process",
    "ProcessEvent",
    "ProcessOptions",
    "ProcessState",
    "Result",
    "ProcessError",
    "AlreadyStartedError",
    "NotStartedError",
    "NotFinishedError",
    "NoPidError",
    "SpawnError",
    "StreamReadError",
    "SignalError",
]


def create(command: Any, **options: Any) -> Process:
    """Build a Process for a command without starting it.

    Args:
        command: Shell command line, or a sequence of arguments
        **options: ProcessOptions fields (env, cwd, events, ...)
    """
    return ProcessOptions(command, **options).create()


def run(command: Any, **options: Any) -> Result:
    """Run a command to completion and return its Result."""
    return create(command, **options).run()
