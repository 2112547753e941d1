"""Interactive toolchain selection.

Presents scanned candidates plus the fallback actions and resolves the user's
single choice into a SelectionOutcome:

    [1] g++ (GCC) 13.2.0 - /usr/bin/g++        scanned path
    [2] Select g++ path manually...
    [3] Download and configure for me...
    [4] Skip for now

Dismissing the menu (Ctrl+C / EOF) counts as skipping. The download action
is a simulation: it waits a fixed delay and assigns a known placeholder path.

All user interaction goes through a Prompter, so the flow can be driven by
the rich terminal prompter or by a scripted prompter in tests.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Protocol

from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm, Prompt
from rich.table import Table
from rich.text import Text

from oiinit.core.progress import ProgressReporter
from oiinit.core.scanner import ToolchainCandidate, ToolchainKind
from oiinit.setup.session import ResolvedSettings, SetupSession, WorkspaceSelection

logger = logging.getLogger(__name__)

# Duration of the simulated download (seconds)
SIMULATED_DOWNLOAD_DELAY = 3.0

# Paths assigned by the simulated download
SIMULATED_PATHS = {
    ToolchainKind.CPP: "C:\\MinGW\\bin\\g++.exe",
    ToolchainKind.PYTHON: "/usr/bin/python",
}

# What the simulated download claims to fetch
DOWNLOAD_NAMES = {
    ToolchainKind.CPP: "MinGW/Clang",
    ToolchainKind.PYTHON: "Python",
}

# Tool name shown in menu labels
TOOL_NAMES = {
    ToolchainKind.CPP: "g++",
    ToolchainKind.PYTHON: "Python",
}

SCANNED_DESCRIPTION = "scanned path"


class SelectionAction(str, Enum):
    """How a toolchain path was resolved."""

    CHOSEN = "chosen"
    MANUAL = "manual"
    SIMULATED_DOWNLOAD = "simulated_download"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class MenuItem:
    """One entry of the selection menu."""

    label: str
    action: SelectionAction
    path: Optional[str] = None
    description: str = ""


@dataclass(frozen=True)
class SelectionOutcome:
    """Result of one toolchain selection.

    Attributes:
        action: How the path was resolved
        path: Resolved path (None when skipped)
    """

    action: SelectionAction
    path: Optional[str] = None

    @classmethod
    def skipped(cls) -> SelectionOutcome:
        return cls(action=SelectionAction.SKIPPED)

    @property
    def is_skipped(self) -> bool:
        return self.action is SelectionAction.SKIPPED


class Prompter(Protocol):
    """User interaction used by the selection flow."""

    def choose(self, title: str, items: list[MenuItem]) -> Optional[int]:
        """Return the index of the chosen item, or None if dismissed."""
        ...

    def browse_file(self, title: str) -> Optional[str]:
        """Return a file path, or None if dismissed."""
        ...

    def browse_folder(self, title: str) -> Optional[str]:
        """Return a folder path, or None if dismissed."""
        ...

    def confirm(self, question: str, default: bool = True) -> bool: ...


def build_menu(kind: ToolchainKind, candidates: list[ToolchainCandidate]) -> list[MenuItem]:
    """Build the selection menu: candidates first, then the fallback actions.

    Examples:
        >>> [item.action.value for item in build_menu(ToolchainKind.PYTHON, [])]
        ['manual', 'simulated_download', 'skipped']
    """
    items = [
        MenuItem(
            label=candidate.label,
            action=SelectionAction.CHOSEN,
            path=candidate.path,
            description=SCANNED_DESCRIPTION,
        )
        for candidate in candidates
    ]
    items.append(MenuItem(label=f"Select {TOOL_NAMES[kind]} path manually...", action=SelectionAction.MANUAL))
    items.append(MenuItem(label="Download and configure for me...", action=SelectionAction.SIMULATED_DOWNLOAD))
    items.append(MenuItem(label="Skip for now", action=SelectionAction.SKIPPED))
    return items


def simulate_download(
    kind: ToolchainKind,
    reporter: ProgressReporter,
    delay: float = SIMULATED_DOWNLOAD_DELAY,
    sleep: Callable[[float], None] = time.sleep,
) -> SelectionOutcome:
    """Pretend to download a toolchain and return its placeholder path."""
    name = DOWNLOAD_NAMES[kind]
    reporter.status(f"Downloading and configuring {name}...")
    if delay > 0:
        sleep(delay)

    path = SIMULATED_PATHS[kind]
    reporter.status(f"  - {name} downloaded and configured. Path: {path}")
    reporter.info(f"Simulated download and configuration of {kind.label}.")
    return SelectionOutcome(action=SelectionAction.SIMULATED_DOWNLOAD, path=path)


def select_toolchain(
    kind: ToolchainKind,
    candidates: list[ToolchainCandidate],
    prompter: Prompter,
    reporter: ProgressReporter,
    download_delay: float = SIMULATED_DOWNLOAD_DELAY,
    sleep: Callable[[float], None] = time.sleep,
) -> SelectionOutcome:
    """Let the user resolve one toolchain family to a path.

    Args:
        kind: Toolchain family
        candidates: Scanned candidates for that family
        prompter: User interaction
        reporter: Status channel
        download_delay: Duration of the simulated download (seconds)
        sleep: Sleep function (injectable for tests)

    Returns:
        SelectionOutcome (skipped if the menu or file browser is dismissed)
    """
    items = build_menu(kind, candidates)
    title = f"Configure {kind.label} environment"
    if candidates:
        title += f" ({len(candidates)} found)"

    index = prompter.choose(title, items)
    if index is None:
        logger.debug(f"{kind.label} selection dismissed")
        return SelectionOutcome.skipped()
    if not 0 <= index < len(items):
        raise ValueError(f"Invalid menu choice: {index}")

    item = items[index]

    if item.action is SelectionAction.CHOSEN:
        reporter.info(f"{kind.label} environment set to: {item.path}")
        return SelectionOutcome(action=SelectionAction.CHOSEN, path=item.path)

    if item.action is SelectionAction.MANUAL:
        path = prompter.browse_file(f"Select {TOOL_NAMES[kind]} executable")
        if not path:
            return SelectionOutcome.skipped()
        reporter.info(f"{kind.label} environment set to: {path}")
        return SelectionOutcome(action=SelectionAction.MANUAL, path=path)

    if item.action is SelectionAction.SIMULATED_DOWNLOAD:
        return simulate_download(kind, reporter, delay=download_delay, sleep=sleep)

    return SelectionOutcome.skipped()


def apply_outcome(settings: ResolvedSettings, kind: ToolchainKind, outcome: SelectionOutcome) -> None:
    """Record a selection in the session settings (nothing on skip)."""
    if outcome.is_skipped or not outcome.path:
        return
    settings.set(kind, outcome.path)


def configure_toolchain(session: SetupSession, kind: ToolchainKind) -> SelectionOutcome:
    """Scan, prompt and record one toolchain family for a session.

    Errors are reported on the session's status channel, never raised. An
    interrupt (Ctrl+C) skips the family as if the menu had been dismissed.
    """
    try:
        if session.prompter is None:
            raise RuntimeError("no prompter attached to session")

        if session.last_scan is None:
            session.reporter.status("Scanning for installed compilers and interpreters...")
        scan = session.scan()
        outcome = select_toolchain(
            kind,
            scan.for_kind(kind),
            session.prompter,
            session.reporter,
            download_delay=session.config.download_delay,
        )
        apply_outcome(session.settings, kind, outcome)
        return outcome

    except KeyboardInterrupt:
        # Ctrl+C during the scan or a download dismisses this family only
        logger.info(f"{kind.label} configuration interrupted")
        session.reporter.info(f"Skipped {kind.label} environment")
        return SelectionOutcome.skipped()

    except Exception as e:
        logger.error(f"Error configuring {kind.label}: {e}")
        session.reporter.error(f"Error configuring {kind.label} environment: {e}")
        return SelectionOutcome.skipped()


def select_workspace(session: SetupSession) -> Optional[str]:
    """Ask for a workspace folder and record it in the session settings."""
    if session.prompter is None:
        return None

    folder = session.prompter.browse_folder("Select workspace folder")
    if not folder:
        return None

    session.settings.workspace = WorkspaceSelection(path=folder)
    session.reporter.info(f"Workspace set to: {folder}")
    return folder


class RichPrompter:
    """Terminal prompter built on rich."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console if console is not None else Console()

    def choose(self, title: str, items: list[MenuItem]) -> Optional[int]:
        table = Table(title=title, show_header=True, title_justify="left")
        table.add_column("#", style="bold", width=3)
        table.add_column("Option")
        table.add_column("Details", style="dim")
        for i, item in enumerate(items, 1):
            table.add_row(str(i), Text(item.label), Text(item.description))
        self.console.print(table)

        try:
            choice = Prompt.ask(
                "Enter a number",
                choices=[str(i) for i in range(1, len(items) + 1)],
                console=self.console,
            )
        except (EOFError, KeyboardInterrupt):
            self.console.print()
            return None
        return int(choice) - 1

    def browse_file(self, title: str) -> Optional[str]:
        return self._ask_path(title, Path.is_file, "Not a file")

    def browse_folder(self, title: str) -> Optional[str]:
        return self._ask_path(title, Path.is_dir, "Not a folder")

    def confirm(self, question: str, default: bool = True) -> bool:
        try:
            return Confirm.ask(question, default=default, console=self.console)
        except (EOFError, KeyboardInterrupt):
            self.console.print()
            return False

    def _ask_path(self, title: str, check: Callable[[Path], bool], problem: str) -> Optional[str]:
        while True:
            try:
                raw = Prompt.ask(f"{title} [dim](empty to cancel)[/dim]", default="", show_default=False, console=self.console)
            except (EOFError, KeyboardInterrupt):
                self.console.print()
                return None

            raw = raw.strip().strip('"')
            if not raw:
                return None

            path = Path(raw).expanduser()
            if check(path):
                return str(path)
            self.console.print(f"[red]{problem}:[/red] {escape(str(path))}", highlight=False)
