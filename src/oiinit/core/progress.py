"""Progress reporting for the setup wizard.

The orchestrator and selector never talk to a UI directly. They hand
ProgressMessage values to a ProgressReporter, which forwards them to a sink.
Delivery is fire-and-forget: no acknowledgement, no buffering, and a failing
sink is logged and ignored so reporting can never break a session.

Sinks:
- RecordingSink: keeps every message in memory (tests, summaries)
- LoggingSink: writes messages to the `logging` module
- ConsoleSink: renders messages on a rich Console
- FanOutSink: forwards to several sinks in order
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from rich.console import Console
from rich.markup import escape

logger = logging.getLogger(__name__)


class MessageKind(str, Enum):
    """Kinds of messages a sink can receive."""

    OUTPUT = "initialization-output"
    PROGRESS = "initialization-progress"
    COMPLETE = "initialization-complete"
    GO_TO_STEP = "go-to-step"
    INFO = "info"
    ERROR = "error"


@dataclass(frozen=True)
class ProgressMessage:
    """One message on the status channel."""

    kind: MessageKind
    payload: Any = None


class ProgressSink(Protocol):
    """Anything that can receive status-channel messages."""

    def send(self, message: ProgressMessage) -> None: ...


@dataclass
class ProgressState:
    """Fractional completion of a fixed task sequence.

    Attributes:
        total_tasks: Number of tasks in the sequence (fixed, > 0)
        completed_tasks: Tasks finished so far (only grows)

    Examples:
        >>> state = ProgressState(total_tasks=3)
        >>> state.percent
        0
        >>> state.advance()
        33
        >>> state.advance()
        66
        >>> state.advance()
        100
    """

    total_tasks: int
    completed_tasks: int = 0

    def __post_init__(self) -> None:
        if self.total_tasks <= 0:
            raise ValueError(f"total_tasks must be positive, got {self.total_tasks}")
        if not 0 <= self.completed_tasks <= self.total_tasks:
            raise ValueError(f"completed_tasks must be within 0..{self.total_tasks}, got {self.completed_tasks}")

    @property
    def percent(self) -> int:
        """Completion percentage, floored and capped at 100."""
        return min(100, (100 * self.completed_tasks) // self.total_tasks)

    def advance(self) -> int:
        """Mark one more task complete and return the new percentage."""
        if self.completed_tasks < self.total_tasks:
            self.completed_tasks += 1
        return self.percent


class ProgressReporter:
    """Fire-and-forget front for a ProgressSink.

    Example:
        >>> sink = RecordingSink()
        >>> reporter = ProgressReporter(sink)
        >>> reporter.status("Setting locale...")
        >>> reporter.progress(25)
        >>> sink.outputs
        ['Setting locale...']
    """

    def __init__(self, sink: ProgressSink):
        self.sink = sink

    def send(self, kind: MessageKind, payload: Any = None) -> None:
        """Deliver one message; sink failures are logged, never raised."""
        try:
            self.sink.send(ProgressMessage(kind=kind, payload=payload))
        except Exception as e:
            logger.warning(f"Progress sink failed on {kind.value}: {e}")

    def status(self, text: str) -> None:
        self.send(MessageKind.OUTPUT, text)

    def progress(self, percent: int) -> None:
        self.send(MessageKind.PROGRESS, max(0, min(100, int(percent))))

    def complete(self, outcome: str) -> None:
        self.send(MessageKind.COMPLETE, outcome)

    def go_to_step(self, step: int) -> None:
        self.send(MessageKind.GO_TO_STEP, step)

    def info(self, text: str) -> None:
        self.send(MessageKind.INFO, text)

    def error(self, text: str) -> None:
        self.send(MessageKind.ERROR, text)


class RecordingSink:
    """Sink that records every message (thread-safe)."""

    def __init__(self) -> None:
        self.messages: list[ProgressMessage] = []
        self._lock = threading.Lock()

    def send(self, message: ProgressMessage) -> None:
        with self._lock:
            self.messages.append(message)

    def payloads(self, kind: MessageKind) -> list[Any]:
        """Payloads of every recorded message of one kind, in order."""
        with self._lock:
            return [m.payload for m in self.messages if m.kind is kind]

    @property
    def outputs(self) -> list[str]:
        return self.payloads(MessageKind.OUTPUT)

    @property
    def percents(self) -> list[int]:
        return self.payloads(MessageKind.PROGRESS)

    @property
    def completions(self) -> list[str]:
        return self.payloads(MessageKind.COMPLETE)

    @property
    def errors(self) -> list[str]:
        return self.payloads(MessageKind.ERROR)


class LoggingSink:
    """Sink that writes messages to a logger."""

    def __init__(self, log: logging.Logger | None = None):
        self.log = log if log is not None else logger

    def send(self, message: ProgressMessage) -> None:
        if message.kind is MessageKind.ERROR:
            self.log.error(f"{message.payload}")
        elif message.kind is MessageKind.PROGRESS:
            self.log.debug(f"Progress: {message.payload}%")
        else:
            self.log.info(f"{message.kind.value}: {message.payload}")


class ConsoleSink:
    """Sink that renders status lines and percentages on a rich Console."""

    def __init__(self, console: Console | None = None):
        self.console = console if console is not None else Console()

    def send(self, message: ProgressMessage) -> None:
        kind = message.kind
        if kind is MessageKind.OUTPUT:
            self.console.print(str(message.payload), markup=False, highlight=False)
        elif kind is MessageKind.PROGRESS:
            self.console.print(_progress_bar(message.payload), style="dim", markup=False, highlight=False)
        elif kind is MessageKind.COMPLETE:
            style = "green" if message.payload == "completed" else "yellow"
            self.console.print(f"[{style}]Initialization {message.payload}.[/{style}]")
        elif kind is MessageKind.INFO:
            self.console.print(f"[green]v[/green] {escape(str(message.payload))}", highlight=False)
        elif kind is MessageKind.ERROR:
            self.console.print(f"[red]{escape(str(message.payload))}[/red]", highlight=False)


class FanOutSink:
    """Sink that forwards every message to several sinks."""

    def __init__(self, *sinks: ProgressSink):
        self.sinks = list(sinks)

    def send(self, message: ProgressMessage) -> None:
        for sink in self.sinks:
            sink.send(message)


def _progress_bar(percent: int, width: int = 30) -> str:
    """Render a text progress bar.

    Examples:
        >>> _progress_bar(50, width=10)
        '[#####-----]  50%'
    """
    filled = (width * percent) // 100
    return f"[{'#' * filled}{'-' * (width - filled)}] {percent:3d}%"
