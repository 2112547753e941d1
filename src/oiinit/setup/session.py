"""Setup session state.

A SetupSession is one run of the wizard, from first display to the terminal
signal. It is passed explicitly to every operation instead of living in
module globals; the ResolvedSettings it owns are discarded with it unless the
orchestrator persists them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from oiinit.config import WizardConfig
from oiinit.core.progress import LoggingSink, ProgressReporter
from oiinit.core.runner import CommandRunner
from oiinit.core.scanner import ScanResult, ToolchainKind, ToolchainScanner
from oiinit.integrations.installer import CompanionInstaller
from oiinit.setup.config_writer import SettingsStore

if TYPE_CHECKING:
    from oiinit.setup.selector import Prompter


@dataclass(frozen=True)
class ToolchainSelection:
    """A resolved toolchain path."""

    path: str


@dataclass(frozen=True)
class WorkspaceSelection:
    """A resolved workspace folder."""

    path: str


@dataclass
class ResolvedSettings:
    """Choices confirmed during one session.

    Attributes:
        cpp: Chosen C++ compiler (None if skipped)
        python: Chosen Python interpreter (None if skipped)
        workspace: Chosen workspace folder (None if not chosen)
    """

    cpp: Optional[ToolchainSelection] = None
    python: Optional[ToolchainSelection] = None
    workspace: Optional[WorkspaceSelection] = None

    def get(self, kind: ToolchainKind) -> Optional[ToolchainSelection]:
        return self.cpp if kind is ToolchainKind.CPP else self.python

    def set(self, kind: ToolchainKind, path: str) -> None:
        selection = ToolchainSelection(path=path)
        if kind is ToolchainKind.CPP:
            self.cpp = selection
        else:
            self.python = selection

    def configured_kinds(self) -> list[ToolchainKind]:
        """Toolchain families with a resolved path, in fixed order."""
        return [kind for kind in ToolchainKind if self.get(kind) is not None]


@dataclass
class SetupSession:
    """Everything one wizard run needs.

    Use SetupSession.create() to wire the default collaborators from a
    WizardConfig; tests construct it directly with fakes.
    """

    config: WizardConfig
    reporter: ProgressReporter
    runner: CommandRunner
    store: SettingsStore
    installer: CompanionInstaller
    scanner: ToolchainScanner
    prompter: Optional[Prompter] = None
    settings: ResolvedSettings = field(default_factory=ResolvedSettings)
    last_scan: Optional[ScanResult] = None

    @classmethod
    def create(
        cls,
        config: Optional[WizardConfig] = None,
        reporter: Optional[ProgressReporter] = None,
        prompter: Optional[Prompter] = None,
        runner: Optional[CommandRunner] = None,
    ) -> SetupSession:
        """Build a session with default collaborators."""
        if config is None:
            config = WizardConfig()
        if reporter is None:
            reporter = ProgressReporter(LoggingSink())
        if runner is None:
            runner = CommandRunner(timeout=config.command_timeout)

        return cls(
            config=config,
            reporter=reporter,
            runner=runner,
            store=SettingsStore(config.resolved_settings_path()),
            installer=CompanionInstaller(runner, editor_command=config.editor_command),
            scanner=ToolchainScanner(runner=runner, version_timeout=config.version_timeout),
            prompter=prompter,
        )

    def scan(self, refresh: bool = False) -> ScanResult:
        """Scan toolchains once per session (refresh=True forces a rescan)."""
        if self.last_scan is None or refresh:
            self.last_scan = self.scanner.scan()
        return self.last_scan
