"""Child process engine with concurrent stdout/stderr capture.

This module provides:
- A start/running/finished state machine around one child process
- Draining of both output pipes without deadlocking on either
- Events per chunk (output, then stdout/stderr) and at termination (exit)
- Blocking and async waits for the immutable Result

Key design points:
- start() returns at once; spawn, drain and reaping happen on one daemon
  thread that runs an anyio event loop
- Each pipe gets a reader task on that loop. The loop's selector is the
  readiness wait, so neither pipe can block the other and nothing spins
- Listeners run on the background thread, in registration order. A slow
  listener stalls the drain, and with it all later capture and the Result
- Interleaving of stdout and stderr in ``output`` follows readiness order.
  When both pipes become ready together the order is not guaranteed to match
  the order the child wrote in
- There is no timeout. kill() only signals the child; the drain continues
  until both pipes reach end-of-stream
"""

from __future__ import annotations

import codecs
import logging
import os
import signal
import threading
from concurrent.futures import Future
from enum import Enum

import anyio
from anyio import to_thread
from anyio.abc import ByteReceiveStream
from anyio.abc import Process as ChildProcess

from ..config import get_config
from ..errors import (
    AlreadyStartedError,
    NoPidError,
    NotFinishedError,
    NotStartedError,
    SignalError,
    SpawnError,
    StreamReadError,
)
from ..events import EventEmitter, ProcessEvent
from .options import ProcessOptions
from .result import Result

__all__ = ["Process", "ProcessState"]

logger = logging.getLogger(__name__)


class ProcessState(str, Enum):
    """Lifecycle of a Process. Transitions only move forward."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    FINISHED = "finished"


def _resolve_signal(sig: int | str | signal.Signals) -> int:
    """Turn 9, "KILL", "sigkill" or signal.SIGKILL into a signal number."""
    if isinstance(sig, int):
        return int(sig)
    name = str(sig).strip().upper()
    if name.isdigit():
        return int(name)
    if not name.startswith("SIG"):
        name = f"SIG{name}"
    try:
        return signal.Signals[name].value
    except KeyError:
        raise ValueError(f"Unknown signal: {sig!r}") from None


class Process(EventEmitter):
    """One run of a command, observable through events.

    Events:
        output: decoded chunk from either stream
        stdout / stderr: the same chunk, emitted right after ``output``
        exit: the Result
        error: the exception that aborted the run

    Example:
        process = ProcessOptions("make test").create()
        process.on("stdout", sys.stdout.write)
        process.start()
        ...
        result = process.wait_for()
        if not result.success:
            print(result.stderr)

    Attributes:
        options: What to run
    """

    def __init__(
        self,
        options: ProcessOptions,
        *,
        chunk_size: int | None = None,
        backend: str | None = None,
    ) -> None:
        """Create a process; nothing is spawned until start().

        Args:
            options: What to run
            chunk_size: Maximum bytes per pipe read (default from config)
            backend: anyio backend for the drain loop (default from config)
        """
        super().__init__()
        config = get_config()
        self.options = options
        self._chunk_size = chunk_size or config.chunk_size
        self._backend = backend or config.backend
        self._default_kill_signal = config.kill_signal

        self._stdout: list[str] = []
        self._stderr: list[str] = []
        self._combined: list[str] = []

        self._state_lock = threading.Lock()
        self._future: Future[Result] | None = None
        self._pid: int | None = None
        self._exit_status: int | None = None
        self._reaped = False
        self._result: Result | None = None

        for event, listener in options.events:
            self.on(event, listener)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def started(self) -> bool:
        return self._future is not None

    @property
    def finished(self) -> bool:
        with self._state_lock:
            return self._result is not None

    @property
    def state(self) -> ProcessState:
        with self._state_lock:
            if self._result is not None:
                return ProcessState.FINISHED
            if self._pid is not None:
                return ProcessState.RUNNING
            return ProcessState.NOT_STARTED

    @property
    def pid(self) -> int:
        """PID of the child.

        Raises:
            NoPidError: If the child has not been spawned yet
        """
        with self._state_lock:
            if self._pid is None:
                raise NoPidError()
            return self._pid

    @property
    def output(self) -> dict[str, str]:
        """Output captured so far (stdout, stderr, combined)."""
        return {
            "stdout": "".join(self._stdout),
            "stderr": "".join(self._stderr),
            "combined": "".join(self._combined),
        }

    def running(self) -> bool:
        """Whether the child has been spawned and not yet terminated.

        Raises:
            NotStartedError: If start() was never called
        """
        future = self._require_started()
        with self._state_lock:
            return self._pid is not None and self._exit_status is None and not future.done()

    def result(self) -> Result:
        """Return the Result of a finished process.

        A run that failed never finishes, so this keeps raising
        NotFinishedError for it.

        Raises:
            NotStartedError: If start() was never called
            NotFinishedError: If the process has not finished
        """
        self._require_started()
        with self._state_lock:
            if self._result is None:
                raise NotFinishedError()
            return self._result

    def _require_started(self) -> Future[Result]:
        future = self._future
        if future is None:
            raise NotStartedError()
        return future

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    def start(self) -> Future[Result]:
        """Spawn the background thread that runs the command.

        Returns:
            Future resolved with the Result, or with the exception that
            aborted the run

        Raises:
            AlreadyStartedError: If the process was started before
        """
        with self._state_lock:
            if self._future is not None:
                raise AlreadyStartedError()
            future: Future[Result] = Future()
            future.set_running_or_notify_cancel()
            self._future = future

        thread = threading.Thread(
            target=self._run_in_thread,
            args=(future,),
            name=f"cmdstream-{id(self):x}",
            daemon=True,
        )
        thread.start()
        return future

    def wait_for(self) -> Result:
        """Block until the run completes and return its Result.

        Safe to call repeatedly and from several threads.

        Raises:
            NotStartedError: If start() was never called
            SpawnError, StreamReadError: If the run failed, or whatever a
                listener raised during the run
        """
        return self._require_started().result()

    async def wait_for_async(self) -> Result:
        """wait_for() for async callers; the event loop is not blocked.

        Cancellable: inside ``anyio.fail_after()`` or a cancelled scope the
        wait is abandoned while the run itself carries on.
        """
        future = self._require_started()
        return await to_thread.run_sync(future.result, abandon_on_cancel=True)

    def run(self) -> Result:
        """Start (unless already started) and wait for the Result."""
        if not self.started:
            try:
                self.start()
            except AlreadyStartedError:
                pass
        return self.wait_for()

    def kill(self, sig: int | str | signal.Signals | None = None) -> None:
        """Send a signal to the child.

        The drain loop is not interrupted; it ends once the child closes its
        pipes.

        Args:
            sig: Signal number, signal.Signals, or name with or without the
                SIG prefix (default from config, TERM)

        Raises:
            NoPidError: If the child has not been spawned yet
            SignalError: If the child is already gone
            ValueError: If the signal name is unknown
        """
        signum = _resolve_signal(self._default_kill_signal if sig is None else sig)
        pid = self.pid
        future = self._future
        with self._state_lock:
            reaped = self._reaped
        if reaped or (future is not None and future.done()):
            # The child was reaped; its pid may belong to someone else now
            raise SignalError(pid, signum, "process already exited")
        try:
            os.kill(pid, signum)
        except ProcessLookupError as e:
            raise SignalError(pid, signum) from e
        logger.debug(f"Sent signal {signum} to pid={pid}")

    # ------------------------------------------------------------------
    # Background run
    # ------------------------------------------------------------------

    def _run_in_thread(self, future: Future[Result]) -> None:
        try:
            result = anyio.run(self._execute, backend=self._backend)
        except Exception as e:
            logger.warning(f"Process failed command={self.options.command!r}: {e}")
            try:
                self.emit(ProcessEvent.ERROR, e)
            except Exception as listener_error:
                # The run's own fault is what waiters get
                logger.warning(f"error listener failed: {listener_error!r}")
            future.set_exception(e)
        except BaseException as e:
            future.set_exception(e)
            raise
        else:
            future.set_result(result)

    async def _execute(self) -> Result:
        options = self.options
        try:
            process = await anyio.open_process(
                options.command,
                cwd=options.cwd,
                env=dict(options.env),
            )
        except OSError as e:
            raise SpawnError(options.command, e) from e

        with self._state_lock:
            self._pid = process.pid
        logger.debug(f"Started subprocess pid={process.pid} cwd={options.cwd}")

        try:
            if process.stdin is not None:
                await process.stdin.aclose()
            await self._drain(process)
            returncode = await process.wait()
            with self._state_lock:
                self._reaped = True
        except BaseException:
            self._kill_quietly(process)
            raise
        finally:
            with anyio.CancelScope(shield=True):
                await process.aclose()
            with self._state_lock:
                self._reaped = True

        logger.debug(f"Subprocess completed pid={process.pid} returncode={returncode}")

        result = Result(
            stdout="".join(self._stdout),
            stderr="".join(self._stderr),
            output="".join(self._combined),
            exit_status=returncode,
            pid=process.pid,
        )
        with self._state_lock:
            self._exit_status = returncode
            self._result = result

        self.emit(ProcessEvent.EXIT, result)
        return result

    async def _drain(self, process: ChildProcess) -> None:
        """Read both pipes until both reach end-of-stream."""
        failures: list[Exception] = []
        streams = (
            (ProcessEvent.STDOUT, process.stdout),
            (ProcessEvent.STDERR, process.stderr),
        )
        async with anyio.create_task_group() as tg:
            for event, stream in streams:
                if stream is not None:
                    tg.start_soon(self._pump, event, stream, failures, tg.cancel_scope)

        # Raised here, outside the task group, so callers get the error itself
        # rather than an exception group
        if failures:
            raise failures[0]

    async def _pump(
        self,
        event: ProcessEvent,
        stream: ByteReceiveStream,
        failures: list[Exception],
        scope: anyio.CancelScope,
    ) -> None:
        decoder = codecs.getincrementaldecoder(self.options.encoding)(errors=self.options.errors)
        try:
            while True:
                try:
                    data = await stream.receive(self._chunk_size)
                except anyio.EndOfStream:
                    break
                except (anyio.BrokenResourceError, anyio.ClosedResourceError, OSError) as e:
                    raise StreamReadError(event.value, e) from e
                self._deliver(event, decoder.decode(data))

            self._deliver(event, decoder.decode(b"", final=True))
            await stream.aclose()
        except Exception as e:
            failures.append(e)
            scope.cancel()

    def _deliver(self, event: ProcessEvent, chunk: str) -> None:
        if not chunk:
            return
        # Buffers are updated before any listener sees the chunk
        self._combined.append(chunk)
        if event is ProcessEvent.STDOUT:
            self._stdout.append(chunk)
        else:
            self._stderr.append(chunk)
        self.emit(ProcessEvent.OUTPUT, chunk)
        self.emit(event, chunk)

    @staticmethod
    def _kill_quietly(process: ChildProcess) -> None:
        if process.returncode is not None:
            return
        try:
            process.kill()
        except ProcessLookupError:
            pass

    def __repr__(self) -> str:
        return f"Process(command={self.options.command!r}, state={self.state.value})"
