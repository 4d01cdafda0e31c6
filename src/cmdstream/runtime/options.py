"""Description of the command a Process runs."""

from __future__ import annotations

import os
import shlex
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Union

from ..config import get_config
from ..events import EventName, Listener

if TYPE_CHECKING:
    from .process import Process

__all__ = ["ProcessOptions"]

EventRegistrations = Union[
    Mapping[EventName, Listener],
    Iterable[tuple[EventName, Listener]],
]


def _normalize_command(command: str | Sequence[str]) -> str:
    if isinstance(command, (str, bytes, os.PathLike)):
        return os.fsdecode(command)
    return shlex.join(str(arg) for arg in command)


def _normalize_events(events: EventRegistrations | None) -> tuple[tuple[EventName, Listener], ...]:
    if not events:
        return ()
    items = events.items() if isinstance(events, Mapping) else events
    pairs = []
    for name, listener in items:
        if not callable(listener):
            raise TypeError(f"Listener for event {name!r} is not callable: {listener!r}")
        pairs.append((name, listener))
    return tuple(pairs)


@dataclass(frozen=True)
class ProcessOptions:
    """Immutable description of a command to run.

    Attributes:
        command: Shell command line. A sequence of arguments is joined with
            shlex.join, so each element reaches the child as one argument.
        env: Environment overrides. Keys and values are coerced to str.
        cwd: Working directory for the child (None = inherit)
        events: (event name, listener) pairs attached to the Process before
            it can emit anything. A mapping is accepted too.
        inherit_env: Start from a snapshot of os.environ (taken here, once)
            and apply env on top of it. When False, env is the whole
            environment.
        encoding: Encoding used to decode output (None = configured default)
        errors: Decode error handler

    Example:
        options = ProcessOptions(
            "make test",
            env={"CI": 1},
            cwd="/workspace",
            events={"stdout": print},
        )
        result = options.create().run()
    """

    command: str
    env: Mapping[str, str] = field(default_factory=dict)
    cwd: Path | None = None
    events: tuple[tuple[EventName, Listener], ...] = ()
    inherit_env: bool = True
    encoding: str | None = None
    errors: str = "replace"

    def __post_init__(self) -> None:
        """Coerce fields; the instance is frozen, so use object.__setattr__."""
        environment: dict[str, str] = dict(os.environ) if self.inherit_env else {}
        environment.update({str(k): str(v) for k, v in (self.env or {}).items()})

        object.__setattr__(self, "command", _normalize_command(self.command))
        object.__setattr__(self, "env", MappingProxyType(environment))
        object.__setattr__(self, "events", _normalize_events(self.events))
        if self.cwd is not None and not isinstance(self.cwd, Path):
            object.__setattr__(self, "cwd", Path(self.cwd))
        if self.encoding is None:
            object.__setattr__(self, "encoding", get_config().encoding)

    def create(self, **kwargs: Any) -> Process:
        """Create a Process for these options."""
        from .process import Process

        return Process(self, **kwargs)

    def __repr__(self) -> str:
        return (
            f"ProcessOptions(command={self.command!r}, "
            f"cwd={self.cwd}, "
            f"env={len(self.env)} vars, "
            f"events={[name for name, _ in self.events]})"
        )
