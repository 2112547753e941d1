"""Sequenced setup tasks with progress reporting and cooperative cancellation.

SetupOrchestrator runs a fixed, ordered list of SetupTask objects:

    idle --run()--> running --all tasks done--> completed
                            --cancel()-------> cancelled

For each task it emits the task's message, runs the task effect, advances the
completion counter, emits the new percentage and pauses briefly so a consumer
can render the update. A failing effect is reported as a status line and the
sequence moves on. cancel() may be called from another thread: it terminates
the runner's in-flight subprocess, no further tasks start, and the terminal
complete signal still fires exactly once with outcome "cancelled".
"""

import logging
import threading
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from oiinit.core.progress import ProgressReporter, ProgressState
from oiinit.core.runner import CommandRunner

logger = logging.getLogger(__name__)

# Pause after each progress update (seconds)
DEFAULT_STEP_DELAY = 0.1

START_MESSAGE = "Starting environment initialization..."
DONE_MESSAGE = "Environment initialization complete!"
CANCEL_MESSAGE = "Initialization cancelled."


class OrchestratorState(str, Enum):
    """Lifecycle states of a setup run."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class SetupTask:
    """One step of the setup sequence.

    Attributes:
        name: Short task name used in failure messages
        message: Status line emitted when the task starts
        effect: Callable doing the work; receives a TaskContext
    """

    name: str
    message: str
    effect: Callable[["TaskContext"], Any]


class TaskContext:
    """What a running task effect can see and do.

    Effects emit sub-step status lines through status() (these never advance
    the counter) and must check `cancelled` between sub-steps.
    """

    def __init__(self, orchestrator: "SetupOrchestrator", task: SetupTask):
        self._orchestrator = orchestrator
        self.task = task

    @property
    def cancelled(self) -> bool:
        return self._orchestrator.cancel_event.is_set()

    @property
    def cancel_event(self) -> threading.Event:
        return self._orchestrator.cancel_event

    def status(self, text: str) -> None:
        self._orchestrator.reporter.status(text)

    def wait(self, seconds: float) -> bool:
        """Sleep for up to `seconds`, waking early on cancellation.

        Returns:
            True if cancellation was requested
        """
        if seconds <= 0:
            return self.cancelled
        return self._orchestrator.cancel_event.wait(seconds)


class SetupOrchestrator:
    """Runs setup tasks strictly in order.

    Example:
        >>> orchestrator = SetupOrchestrator(tasks, reporter, runner=runner)
        >>> orchestrator.run()
        <OrchestratorState.COMPLETED: 'completed'>
    """

    def __init__(
        self,
        tasks: Sequence[SetupTask],
        reporter: ProgressReporter,
        runner: Optional[CommandRunner] = None,
        step_delay: float = DEFAULT_STEP_DELAY,
    ):
        """Initialize SetupOrchestrator.

        Args:
            tasks: Ordered task list (must not be empty)
            reporter: Status channel
            runner: Runner whose in-flight subprocess cancel() terminates
            step_delay: Pause after each progress update (seconds)

        Raises:
            ValueError: If tasks is empty
        """
        if not tasks:
            raise ValueError("At least one setup task is required")

        self.tasks = tuple(tasks)
        self.reporter = reporter
        self.runner = runner
        self.step_delay = step_delay

        self.state = OrchestratorState.IDLE
        self.progress = ProgressState(total_tasks=len(self.tasks))
        self.current_task: Optional[SetupTask] = None
        self.cancel_event = threading.Event()

        self._lock = threading.Lock()
        self._complete_sent = False

    @property
    def total_tasks(self) -> int:
        return self.progress.total_tasks

    def run(self) -> OrchestratorState:
        """Run every task and emit the terminal signal.

        Returns:
            Final state (COMPLETED or CANCELLED)

        Raises:
            RuntimeError: If the orchestrator was already started
        """
        with self._lock:
            if self.state is not OrchestratorState.IDLE:
                raise RuntimeError(f"Setup already {self.state.value}")
            self.state = OrchestratorState.RUNNING
            self.progress = ProgressState(total_tasks=len(self.tasks))

        logger.info(f"Starting setup sequence ({self.total_tasks} tasks)")
        self.reporter.status(START_MESSAGE)
        self.reporter.progress(self.progress.percent)

        for task in self.tasks:
            if self.cancel_event.is_set():
                break

            self.current_task = task
            self.reporter.status(task.message)

            try:
                task.effect(TaskContext(self, task))
            except Exception as e:
                # Non-fatal: report and carry on with the next task
                logger.error(f"Task {task.name} failed: {e}")
                self.reporter.status(f"{task.name} failed: {e}")

            if self.cancel_event.is_set():
                break

            self.reporter.progress(self.progress.advance())
            self._pause()

        self.current_task = None
        return self._finish()

    def cancel(self) -> bool:
        """Request cancellation of a running sequence.

        Returns:
            True if the request was accepted, False if nothing is running
        """
        with self._lock:
            if self.state is not OrchestratorState.RUNNING:
                return False
            self.cancel_event.set()

        logger.info("Cancellation requested")
        if self.runner is not None and self.runner.terminate():
            logger.info("Terminated in-flight subprocess")
        return True

    def _pause(self) -> None:
        if self.step_delay > 0:
            self.cancel_event.wait(self.step_delay)

    def _finish(self) -> OrchestratorState:
        with self._lock:
            if self.progress.completed_tasks == self.total_tasks:
                # A cancel arriving after the last task has nothing left to stop
                self.state = OrchestratorState.COMPLETED
            else:
                self.state = OrchestratorState.CANCELLED
            state = self.state

        if state is OrchestratorState.CANCELLED:
            self.reporter.status(CANCEL_MESSAGE)
        else:
            self.reporter.status(DONE_MESSAGE)

        self._signal_complete(state)
        logger.info(f"Setup sequence {state.value} ({self.progress.completed_tasks}/{self.total_tasks})")
        return state

    def _signal_complete(self, state: OrchestratorState) -> None:
        with self._lock:
            if self._complete_sent:
                return
            self._complete_sent = True
        self.reporter.complete(state.value)
