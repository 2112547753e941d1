"""Wizard message loop and display helpers.

The wizard front end (terminal CLI, or any other UI) talks to the back end by
sending WizardMessage values; SetupWizard.dispatch() routes each one to its
handler. Handlers can be invoked directly with synthetic messages in tests.

Commands:
    configure-languages   {"languages": ["cpp", "python"]}
    select-folder         {}
    initialize            {}
    cancel-initialization {}
    open-workspace        {}
    continue-config       {}

Any unexpected exception inside a handler is caught and reported as a
one-line error message; the session stays usable.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional

from oiinit.core.orchestrator import OrchestratorState, SetupOrchestrator
from oiinit.core.scanner import ToolchainKind
from oiinit.setup.selector import SIMULATED_PATHS, SelectionOutcome, configure_toolchain, select_workspace
from oiinit.setup.session import ResolvedSettings, SetupSession
from oiinit.setup.tasks import build_orchestrator

logger = logging.getLogger(__name__)

# Wizard page shown after toolchains are configured
WORKSPACE_STEP = 2


class WizardCommand(str, Enum):
    """Messages the wizard back end understands."""

    CONFIGURE_LANGUAGES = "configure-languages"
    SELECT_FOLDER = "select-folder"
    INITIALIZE = "initialize"
    CANCEL_INITIALIZATION = "cancel-initialization"
    OPEN_WORKSPACE = "open-workspace"
    CONTINUE_CONFIG = "continue-config"


@dataclass(frozen=True)
class WizardMessage:
    """One message from the front end."""

    command: str
    payload: dict[str, Any] = field(default_factory=dict)


class SetupWizard:
    """Dispatches front-end messages for one SetupSession.

    Example:
        >>> wizard = SetupWizard(session)
        >>> wizard.dispatch(WizardMessage("configure-languages", {"languages": ["python"]}))
        >>> wizard.dispatch(WizardMessage("initialize"))
    """

    def __init__(self, session: SetupSession):
        self.session = session
        self.orchestrator: Optional[SetupOrchestrator] = None
        self.closed = False
        self._lock = threading.Lock()
        self._handlers: dict[WizardCommand, Callable[[dict[str, Any]], Any]] = {
            WizardCommand.CONFIGURE_LANGUAGES: self.handle_configure_languages,
            WizardCommand.SELECT_FOLDER: self.handle_select_folder,
            WizardCommand.INITIALIZE: self.handle_initialize,
            WizardCommand.CANCEL_INITIALIZATION: self.handle_cancel_initialization,
            WizardCommand.OPEN_WORKSPACE: self.handle_open_workspace,
            WizardCommand.CONTINUE_CONFIG: self.handle_continue_config,
        }

    def dispatch(self, message: WizardMessage) -> Any:
        """Route a message to its handler.

        Returns:
            The handler's result, or None if the handler failed
        """
        try:
            command = WizardCommand(message.command)
            logger.debug(f"Dispatching {command.value}")
            return self._handlers[command](message.payload or {})
        except Exception as e:
            logger.error(f"Wizard command {message.command!r} failed: {e}")
            self.session.reporter.error(f"Operation failed: {e}")
            return None

    def handle_configure_languages(self, payload: dict[str, Any]) -> dict[ToolchainKind, SelectionOutcome]:
        languages = payload.get("languages", [])
        if not isinstance(languages, (list, tuple)):
            raise ValueError("languages must be a list")

        unknown = [lang for lang in languages if lang not in {kind.value for kind in ToolchainKind}]
        if unknown:
            logger.warning(f"Ignoring unknown languages: {', '.join(map(str, unknown))}")

        outcomes: dict[ToolchainKind, SelectionOutcome] = {}
        for kind in ToolchainKind:
            if kind.value in languages:
                outcomes[kind] = configure_toolchain(self.session, kind)

        self.session.reporter.go_to_step(WORKSPACE_STEP)
        return outcomes

    def handle_select_folder(self, payload: dict[str, Any]) -> Optional[str]:
        return select_workspace(self.session)

    def prepare_initialization(self) -> SetupOrchestrator:
        """Build the orchestrator the next initialize command will run.

        An orchestrator already prepared and not yet started is reused, and a
        cancel request made against it is honoured once it runs.

        Raises:
            RuntimeError: If an initialization is already running
        """
        with self._lock:
            current = self.orchestrator
            if current is not None and current.state is OrchestratorState.RUNNING:
                raise RuntimeError("initialization is already running")
            if current is None or current.state is not OrchestratorState.IDLE:
                self.orchestrator = build_orchestrator(self.session)
            return self.orchestrator

    def handle_initialize(self, payload: dict[str, Any]) -> OrchestratorState:
        return self.prepare_initialization().run()

    def handle_cancel_initialization(self, payload: dict[str, Any]) -> bool:
        orchestrator = self.orchestrator
        if orchestrator is not None and orchestrator.state is OrchestratorState.IDLE:
            # Not started yet: run() checks the event before its first task
            orchestrator.cancel_event.set()
            orchestrator.cancel()
            logger.info("Cancel requested before initialization started")
            return True

        if orchestrator is None or not orchestrator.cancel():
            logger.info("Cancel requested but no initialization is running")
            return False
        return True

    def handle_open_workspace(self, payload: dict[str, Any]) -> bool:
        opened = False
        workspace = self.session.settings.workspace
        if workspace is not None and workspace.path:
            opened = self.session.installer.open_folder(workspace.path)
            if not opened:
                self.session.reporter.error(f"Error opening workspace: {workspace.path}")
        self.closed = True
        return opened

    def handle_continue_config(self, payload: dict[str, Any]) -> None:
        self.closed = True
        path = self.session.config.resolved_settings_path()
        self.session.reporter.info(f"You can continue configuring oiinit in {path}")


def format_settings_review(settings: ResolvedSettings, settings_path: Optional[Path] = None) -> str:
    """Format resolved settings for the review step.

    Args:
        settings: Choices confirmed so far
        settings_path: Where the settings will be saved (optional)

    Returns:
        Formatted summary

    Examples:
        >>> settings = ResolvedSettings()
        >>> settings.set(ToolchainKind.PYTHON, "/usr/bin/python3")
        >>> review = format_settings_review(settings)
        >>> "✓ Python interpreter: /usr/bin/python3" in review
        True
        >>> "✗ C++ compiler: not configured" in review
        True
    """
    lines = ["Configuration Summary:"]

    for kind, noun in ((ToolchainKind.CPP, "compiler"), (ToolchainKind.PYTHON, "interpreter")):
        selection = settings.get(kind)
        if selection is not None:
            lines.append(f"✓ {kind.label} {noun}: {selection.path}")
        else:
            lines.append(f"✗ {kind.label} {noun}: not configured")

    if settings.workspace is not None:
        lines.append(f"✓ Workspace: {settings.workspace.path}")
    else:
        lines.append("✗ Workspace: not selected")

    if settings_path is not None:
        lines.append("")
        lines.append(f"Settings will be written to: {settings_path}")

    return "\n".join(lines)


def validate_resolved_settings(settings: ResolvedSettings) -> list[str]:
    """Check resolved paths before initialization.

    Simulated download paths are placeholders and are not checked.

    Returns:
        List of warnings (empty if everything looks usable)
    """
    warnings: list[str] = []

    for kind in settings.configured_kinds():
        path = settings.get(kind).path
        if path == SIMULATED_PATHS[kind]:
            continue
        if not Path(path).is_file():
            warnings.append(f"{kind.label} path does not exist: {path}")

    if settings.workspace is not None and not Path(settings.workspace.path).is_dir():
        warnings.append(f"Workspace folder does not exist: {settings.workspace.path}")

    return warnings
