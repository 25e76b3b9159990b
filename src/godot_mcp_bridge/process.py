"""
Subprocess management for Godot.

Three ways of running Godot are supported:

- one-shot commands run to completion (operations, version queries),
- detached processes that are started and forgotten (the editor),
- a single supervised process whose output is captured line by line while
  it runs (``run_project``). Starting a new supervised process kills the
  previous one.
"""

import asyncio
import logging
import os
import signal
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .errors import ExecutionFailure

logger = logging.getLogger(__name__)

# Grace period for a killed process and its readers to wind down.
KILL_GRACE_SECONDS = 5.0
READ_CHUNK_SIZE = 65536


@dataclass
class CommandResult:
    """Output of a one-shot command."""

    stdout: str
    stderr: str
    returncode: Optional[int]
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return not self.timed_out and self.returncode == 0


class ProcessState(Enum):
    STARTING = "starting"
    RUNNING = "running"
    EXITED = "exited"
    KILLED = "killed"


class SupervisedProcess:
    """A long-running Godot process with incrementally captured output."""

    def __init__(self, binary: str, args: list[str]):
        self.binary = binary
        self.args = list(args)
        self.state = ProcessState.STARTING
        self.output: list[str] = []
        self.errors: list[str] = []
        self.returncode: Optional[int] = None
        self.process: Optional[asyncio.subprocess.Process] = None
        self._readers: list[asyncio.Task] = []
        self._watcher: Optional[asyncio.Task] = None

    @property
    def pid(self) -> Optional[int]:
        return self.process.pid if self.process else None

    @property
    def is_running(self) -> bool:
        return self.state in (ProcessState.STARTING, ProcessState.RUNNING)

    def snapshot(self) -> tuple[list[str], list[str]]:
        return list(self.output), list(self.errors)

    async def _pump(self, stream: asyncio.StreamReader, sink: list[str], label: str) -> None:
        while True:
            line = await _read_line(stream)
            if not line:
                break
            text = line.decode("utf-8", errors="replace").rstrip("\r\n")
            sink.append(text)
            if text.strip():
                logger.debug("[godot %s] %s", label, text)

    def kill(self) -> None:
        """Send the kill signal without waiting. Safe to call repeatedly."""
        if self.state in (ProcessState.EXITED, ProcessState.KILLED):
            return
        self.state = ProcessState.KILLED
        if self.process is not None and self.process.returncode is None:
            try:
                self.process.kill()
            except ProcessLookupError:
                pass

    async def wait_closed(self, timeout: float = KILL_GRACE_SECONDS) -> None:
        """Wait for the process and its output readers to finish."""
        tasks = list(self._readers)
        if self._watcher is not None:
            tasks.append(self._watcher)
        if not tasks:
            return
        _, pending = await asyncio.wait(tasks, timeout=timeout)
        for task in pending:
            task.cancel()


class ProcessOrchestrator:
    """
    Runs Godot subprocesses and owns the single supervised-process slot.

    The slot is last-writer-wins: ``start`` unconditionally kills whatever
    is currently running.
    """

    def __init__(self, kill_grace: float = KILL_GRACE_SECONDS):
        self.kill_grace = kill_grace
        self._active: Optional[SupervisedProcess] = None

    @property
    def active(self) -> Optional[SupervisedProcess]:
        return self._active

    # One-shot commands

    async def run_command(self, command_line: str, timeout: Optional[float] = None) -> CommandResult:
        """
        Run a shell command to completion.

        A non-zero exit status is reported in the result, not raised. On
        timeout the process is killed and whatever it printed so far is
        returned with ``timed_out`` set.

        Raises:
            ExecutionFailure: If the shell could not be started at all
        """
        logger.debug("Running command: %s", command_line)
        try:
            # Own session, so a timeout can kill the shell together with Godot.
            proc = await asyncio.create_subprocess_shell(
                command_line,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=sys.platform != "win32",
            )
        except OSError as e:
            raise ExecutionFailure(
                f"Could not start process: {e}",
                ["Ensure Godot is installed correctly"],
            ) from e

        stdout_chunks: list[bytes] = []
        stderr_chunks: list[bytes] = []
        readers = [
            asyncio.create_task(_drain(proc.stdout, stdout_chunks)),
            asyncio.create_task(_drain(proc.stderr, stderr_chunks)),
        ]

        timed_out = False
        try:
            await asyncio.wait_for(proc.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            timed_out = True
            logger.warning("Command timed out after %ss: %s", timeout, command_line)
            _kill_process_tree(proc)
            try:
                await asyncio.wait_for(proc.wait(), timeout=self.kill_grace)
            except asyncio.TimeoutError:
                pass

        _, pending = await asyncio.wait(readers, timeout=self.kill_grace)
        for task in pending:
            task.cancel()

        return CommandResult(
            stdout=b"".join(stdout_chunks).decode("utf-8", errors="replace"),
            stderr=b"".join(stderr_chunks).decode("utf-8", errors="replace"),
            returncode=proc.returncode,
            timed_out=timed_out,
        )

    # Detached processes

    async def launch(self, binary: str, args: list[str]) -> asyncio.subprocess.Process:
        """Start a process that is not tracked or captured (e.g. the editor)."""
        logger.debug("Launching detached: %s %s", binary, " ".join(args))
        try:
            return await asyncio.create_subprocess_exec(
                binary,
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as e:
            raise ExecutionFailure(
                f"Could not start process: {e}",
                ["Ensure Godot is installed correctly"],
            ) from e

    # Supervised process

    async def start(self, binary: str, args: list[str]) -> SupervisedProcess:
        """
        Start a supervised process, killing any existing one first.

        Raises:
            ExecutionFailure: If the process could not be started
        """
        previous = self._active
        if previous is not None:
            logger.debug("Killing existing Godot process before starting a new one")
            self._active = None
            previous.kill()
            await previous.wait_closed(self.kill_grace)

        handle = SupervisedProcess(binary, args)
        logger.debug("Starting supervised process: %s %s", binary, " ".join(args))
        try:
            handle.process = await asyncio.create_subprocess_exec(
                binary,
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            handle.state = ProcessState.EXITED
            raise ExecutionFailure(
                f"Failed to start Godot process: {e}",
                ["Ensure Godot is installed correctly"],
            ) from e

        handle.state = ProcessState.RUNNING
        handle._readers = [
            asyncio.create_task(handle._pump(handle.process.stdout, handle.output, "stdout")),
            asyncio.create_task(handle._pump(handle.process.stderr, handle.errors, "stderr")),
        ]
        handle._watcher = asyncio.create_task(self._watch(handle))
        self._active = handle
        return handle

    async def _watch(self, handle: SupervisedProcess) -> None:
        returncode = await handle.process.wait()
        handle.returncode = returncode
        logger.debug("Godot process %s exited with code %s", handle.pid, returncode)
        if handle.state == ProcessState.RUNNING:
            handle.state = ProcessState.EXITED
        # A newer process may already own the slot.
        if self._active is handle:
            self._active = None

    def get_output(self, handle: Optional[SupervisedProcess] = None) -> Optional[tuple[list[str], list[str]]]:
        """Return (output, errors) so far, or None if nothing is tracked."""
        handle = handle or self._active
        if handle is None:
            return None
        return handle.snapshot()

    async def stop(self, handle: Optional[SupervisedProcess] = None) -> Optional[tuple[list[str], list[str]]]:
        """
        Kill the supervised process and return everything it printed.

        Returns None if there is no process to stop.
        """
        handle = handle or self._active
        if handle is None:
            return None
        if self._active is handle:
            self._active = None
        handle.kill()
        await handle.wait_closed(self.kill_grace)
        return handle.snapshot()

    def kill_active(self) -> None:
        """Synchronously kill the supervised process; used on shutdown."""
        handle = self._active
        self._active = None
        if handle is not None:
            logger.debug("Killing active Godot process")
            handle.kill()


async def _read_line(stream: asyncio.StreamReader) -> bytes:
    """
    Read one line of any length, or b"" at EOF.

    ``StreamReader.readline`` discards a line longer than the reader limit;
    here the oversized part is read out in chunks and joined instead.
    """
    pending = b""
    while True:
        try:
            return pending + await stream.readuntil(b"\n")
        except asyncio.IncompleteReadError as e:
            return pending + e.partial
        except asyncio.LimitOverrunError as e:
            pending += await stream.read(max(e.consumed, 1))


def _kill_process_tree(proc: asyncio.subprocess.Process) -> None:
    """Kill ``proc`` and, on POSIX, every process in its session."""
    if sys.platform != "win32":
        try:
            os.killpg(proc.pid, signal.SIGKILL)
            return
        except ProcessLookupError:
            return
        except PermissionError:
            logger.debug("Cannot signal process group %s, killing the leader only", proc.pid)
    try:
        proc.kill()
    except ProcessLookupError:
        pass


async def _drain(stream: Optional[asyncio.StreamReader], sink: list[bytes]) -> None:
    if stream is None:
        return
    while True:
        chunk = await stream.read(READ_CHUNK_SIZE)
        if not chunk:
            break
        sink.append(chunk)
