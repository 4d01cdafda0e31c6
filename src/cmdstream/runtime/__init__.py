"""Runtime module for child process execution and output capture.

Runs a command on a background thread, drains stdout and stderr
concurrently, and reports progress through events.
"""

from __future__ import annotations

from .options import ProcessOptions
from .process import Process, ProcessState
from .result import Result

__all__ = [
    "Process",
    "ProcessOptions",
    "ProcessState",
    "Result",
]
