"""External command execution for toolchain discovery and setup tasks.

Every probe the wizard issues (``which -a g++``, ``python --version``,
``code --install-extension ...``) goes through CommandRunner. The runner
fails soft: a missing binary, a non-zero exit or a timeout yields an empty
result and a log line, never an exception. Discovery must keep going when a
probe command simply does not exist on the current platform.

The runner also tracks every child process it is currently waiting on, so a
cancellation request from another thread can terminate them, including
version probes running in parallel on a shared runner.
"""

import logging
import shlex
import subprocess
import sys
import threading
from collections.abc import Sequence
from contextlib import suppress
from dataclasses import dataclass
from typing import Optional, Union

logger = logging.getLogger(__name__)

# Default timeout for a single external command (seconds)
DEFAULT_COMMAND_TIMEOUT = 10.0

# Return codes reported for failures that never produced an exit status
RETURNCODE_NOT_FOUND = 127
RETURNCODE_TIMEOUT = -1

Command = Union[str, Sequence[str]]


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one external command.

    Attributes:
        returncode: Process exit status (127 if the binary was missing, -1 on timeout)
        stdout: Captured standard output
        stderr: Captured standard error
        cancelled: True if the process was terminated via CommandRunner.terminate()
    """

    returncode: int
    stdout: str = ""
    stderr: str = ""
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        """Whether the command exited cleanly."""
        return self.returncode == 0 and not self.cancelled

    @property
    def lines(self) -> list[str]:
        """Non-blank stdout lines, stripped."""
        return [line.strip() for line in self.stdout.splitlines() if line.strip()]


def split_command(command: Command, windows: Optional[bool] = None) -> list[str]:
    """Turn a command string or argv sequence into an argv list.

    Args:
        command: Command string ("which -a g++") or argv sequence
        windows: Use Windows quoting rules (defaults to the current platform)

    Returns:
        Argv list suitable for subprocess (shell=False)

    Examples:
        >>> split_command("which -a g++", windows=False)
        ['which', '-a', 'g++']
        >>> split_command(["/opt/my gcc/bin/g++", "--version"])
        ['/opt/my gcc/bin/g++', '--version']
    """
    if isinstance(command, str):
        if windows is None:
            windows = sys.platform == "win32"
        return shlex.split(command, posix=not windows)
    return list(command)


class CommandRunner:
    """Runs external commands, capturing stdout, failing soft.

    Example:
        >>> runner = CommandRunner(timeout=2.0)
        >>> runner.run("which -a python3")
        ['/usr/bin/python3']
    """

    def __init__(self, timeout: float = DEFAULT_COMMAND_TIMEOUT):
        """Initialize CommandRunner.

        Args:
            timeout: Per-command timeout in seconds (must be > 0)

        Raises:
            ValueError: If timeout is not positive
        """
        if timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout}")

        self.timeout = timeout
        self._lock = threading.Lock()
        self._running: dict[int, subprocess.Popen] = {}
        self._terminated: set[int] = set()

    def execute(
        self,
        command: Command,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> CommandResult:
        """Execute a command and return its full result.

        Never raises: launch errors and timeouts are converted into a
        CommandResult with a synthetic return code.

        Args:
            command: Command string or argv sequence (never run through a shell)
            timeout: Override the runner timeout for this call
            cancel_event: When set, the command is not started (or is terminated)

        Returns:
            CommandResult for the command
        """
        if timeout is None:
            timeout = self.timeout

        try:
            argv = split_command(command)
        except ValueError as e:
            logger.warning(f"Could not parse command {command!r}: {e}")
            return CommandResult(returncode=RETURNCODE_NOT_FOUND, stderr=str(e))

        if not argv:
            return CommandResult(returncode=RETURNCODE_NOT_FOUND)

        if cancel_event is not None and cancel_event.is_set():
            return CommandResult(returncode=RETURNCODE_TIMEOUT, cancelled=True)

        try:
            process = subprocess.Popen(
                argv,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                stdin=subprocess.DEVNULL,
                text=True,
            )
        except (FileNotFoundError, PermissionError) as e:
            logger.debug(f"Command not available: {argv[0]} ({e})")
            return CommandResult(returncode=RETURNCODE_NOT_FOUND, stderr=str(e))
        except OSError as e:
            logger.warning(f"Failed to launch {argv[0]}: {e}")
            return CommandResult(returncode=RETURNCODE_NOT_FOUND, stderr=str(e))

        with self._lock:
            self._running[id(process)] = process
            # Cancelled between launch and registration - terminate() could not see it
            if cancel_event is not None and cancel_event.is_set():
                self._terminated.add(id(process))
                with suppress(OSError):
                    process.terminate()

        try:
            stdout, stderr = process.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            process.kill()
            stdout, stderr = process.communicate()
            logger.warning(f"{argv[0]} timed out after {timeout}s")
            return CommandResult(returncode=RETURNCODE_TIMEOUT, stdout=stdout or "", stderr=stderr or "")
        finally:
            with self._lock:
                self._running.pop(id(process), None)
                cancelled = id(process) in self._terminated
                self._terminated.discard(id(process))

        if cancelled:
            logger.info(f"{argv[0]} was terminated")
        elif process.returncode != 0:
            logger.debug(f"{argv[0]} exited with status {process.returncode}")

        return CommandResult(
            returncode=process.returncode,
            stdout=stdout or "",
            stderr=stderr or "",
            cancelled=cancelled,
        )

    def run(
        self,
        command: Command,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> list[str]:
        """Run a command and return its non-blank output lines.

        Args:
            command: Command string or argv sequence
            timeout: Override the runner timeout for this call
            cancel_event: See execute()

        Returns:
            One entry per non-blank stdout line, or [] on any failure
        """
        result = self.execute(command, timeout=timeout, cancel_event=cancel_event)
        if not result.ok:
            return []
        return result.lines

    def terminate(self) -> bool:
        """Terminate every in-flight child process.

        Returns:
            True if at least one running process was signalled, False if nothing was running
        """
        with self._lock:
            live = [process for process in self._running.values() if process.poll() is None]
            self._terminated.update(id(process) for process in live)

        signalled = False
        for process in live:
            try:
                process.terminate()
            except OSError as e:
                logger.warning(f"Failed to terminate child process {process.pid}: {e}")
                continue
            signalled = True
        return signalled


_default_runner: Optional[CommandRunner] = None
_default_runner_lock = threading.Lock()


def get_default_runner() -> CommandRunner:
    """Get or create the shared CommandRunner."""
    global _default_runner  # noqa: PLW0603 - Singleton pattern

    if _default_runner is None:
        with _default_runner_lock:
            if _default_runner is None:
                _default_runner = CommandRunner()

    return _default_runner


def run_command(command: Command) -> list[str]:
    """Run a command with the shared runner (see CommandRunner.run)."""
    return get_default_runner().run(command)
