"""Core setup engine.

This module contains the components every wizard run is built from:
- runner: Fail-soft external command execution
- scanner: Toolchain discovery with version probing
- progress: Status channel (reporter + sinks)
- orchestrator: Ordered setup tasks with cancellation
"""

from oiinit.core.orchestrator import OrchestratorState, SetupOrchestrator, SetupTask, TaskContext
from oiinit.core.progress import (
    ConsoleSink,
    FanOutSink,
    LoggingSink,
    MessageKind,
    ProgressMessage,
    ProgressReporter,
    ProgressState,
    RecordingSink,
)
from oiinit.core.runner import CommandResult, CommandRunner, run_command
from oiinit.core.scanner import ScanResult, ToolchainCandidate, ToolchainKind, ToolchainScanner, scan_toolchains

__all__ = [
    # Runner
    "CommandResult",
    "CommandRunner",
    "run_command",
    # Scanner
    "ScanResult",
    "ToolchainCandidate",
    "ToolchainKind",
    "ToolchainScanner",
    "scan_toolchains",
    # Progress
    "ConsoleSink",
    "FanOutSink",
    "LoggingSink",
    "MessageKind",
    "ProgressMessage",
    "ProgressReporter",
    "ProgressState",
    "RecordingSink",
    # Orchestrator
    "OrchestratorState",
    "SetupOrchestrator",
    "SetupTask",
    "TaskContext",
]
