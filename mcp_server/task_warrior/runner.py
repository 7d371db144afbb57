"""Run the task executable as a subprocess with timeout and cancellation."""

import asyncio
import logging
import os
import shlex
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Sequence

from .errors import InfrastructureError, InfrastructureReason

logger = logging.getLogger(__name__)

TERMINATE_GRACE_SECONDS = 2.0


@dataclass(frozen=True)
class ProcessOutcome:
    """Captured result of one finished invocation."""
    exit_code: int
    stdout: str
    stderr: str
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


class ProcessRunner:
    """
    Spawns one task process per call.

    Holds only immutable settings, so a single runner can serve any number
    of concurrent requests. Configuration that applies to every call
    (data location, taskrc) is added here rather than by the command
    builder.
    """

    def __init__(
        self,
        executable: str = "task",
        timeout_seconds: float = 30.0,
        data_location: Optional[Path] = None,
        taskrc: Optional[Path] = None,
    ):
        self.executable = executable
        self.timeout_seconds = timeout_seconds
        self.data_location = data_location
        self.taskrc = taskrc

    def _base_args(self) -> Sequence[str]:
        if self.data_location is not None:
            return (f"rc.data.location={self.data_location}",)
        return ()

    def _environment(self) -> Optional[Dict[str, str]]:
        if self.taskrc is None:
            return None
        env = os.environ.copy()
        env["TASKRC"] = str(self.taskrc)
        return env

    async def run(self, args: Sequence[str]) -> ProcessOutcome:
        """
        Execute the task executable with ``args`` and capture its output.

        Raises:
            InfrastructureError: executable missing, spawn failure or timeout
        """
        argv = [self.executable, *self._base_args(), *args]
        logger.debug(f"Running {shlex.join(argv)}")
        started = time.monotonic()

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self._environment(),
            )
        except FileNotFoundError as error:
            raise InfrastructureError(
                InfrastructureReason.EXECUTABLE_NOT_FOUND,
                f"Task executable not found: {self.executable}. Is Taskwarrior installed and on PATH?",
                executable=self.executable,
            ) from error
        except OSError as error:
            raise InfrastructureError(
                InfrastructureReason.PROCESS_SPAWN_FAILED,
                f"Failed to run {self.executable}: {error}",
                executable=self.executable,
            ) from error

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            await _terminate_process(process)
            raise InfrastructureError(
                InfrastructureReason.TIMEOUT,
                f"{self.executable} did not finish within {self.timeout_seconds:g} seconds",
                executable=self.executable,
            ) from None
        except asyncio.CancelledError:
            # No awaiting here: the surrounding scope is already cancelled
            _kill_process(process)
            logger.info(f"Cancelled {self.executable} (pid {process.pid})")
            raise

        outcome = ProcessOutcome(
            exit_code=process.returncode,
            stdout=stdout.decode("utf-8", errors="replace").strip(),
            stderr=stderr.decode("utf-8", errors="replace").strip(),
            duration_seconds=time.monotonic() - started,
        )
        logger.debug(f"{self.executable} exited {outcome.exit_code} in {outcome.duration_seconds:.3f}s")
        return outcome


def _kill_process(process: asyncio.subprocess.Process) -> None:
    if process.returncode is not None:
        return
    try:
        process.kill()
    except ProcessLookupError:
        return


async def _terminate_process(process: asyncio.subprocess.Process) -> None:
    if process.returncode is not None:
        return
    try:
        process.terminate()
    except ProcessLookupError:
        return
    try:
        await asyncio.wait_for(process.wait(), timeout=TERMINATE_GRACE_SECONDS)
    except asyncio.TimeoutError:
        _kill_process(process)
        await process.wait()
