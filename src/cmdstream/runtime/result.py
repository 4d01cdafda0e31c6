"""Immutable snapshot of a finished process."""

from __future__ import annotations

import signal as _signal
from dataclasses import dataclass
from typing import Any

__all__ = ["Result"]


@dataclass(frozen=True)
class Result:
    """Captured output and exit status of a finished process.

    Attributes:
        stdout: Everything the child wrote to standard output
        stderr: Everything the child wrote to standard error
        output: Both streams interleaved in the order they were drained
        exit_status: Return code; -N when the child was killed by signal N
        pid: Process id of the child
    """

    stdout: str
    stderr: str
    output: str
    exit_status: int
    pid: int

    @property
    def success(self) -> bool:
        """True when the child exited with status 0."""
        return self.exit_status == 0

    @property
    def signal(self) -> _signal.Signals | None:
        """Signal that terminated the child, if any."""
        if self.exit_status >= 0:
            return None
        try:
            return _signal.Signals(-self.exit_status)
        except ValueError:
            return None

    def to_dict(self) -> dict[str, Any]:
        """Serialise to a JSON-friendly dict."""
        sig = self.signal
        return {
            "pid": self.pid,
            "exit_status": self.exit_status,
            "success": self.success,
            "signal": sig.name if sig is not None else None,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "output": self.output,
        }

    def __repr__(self) -> str:
        return (
            f"Result(pid={self.pid}, "
            f"exit_status={self.exit_status}, "
            f"stdout={len(self.stdout)} chars, "
            f"stderr={len(self.stderr)} chars)"
        )
