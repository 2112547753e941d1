"""Wizard session and setup flow.

This module contains the wizard-specific layers on top of the core engine:
- config_writer: YAML settings store
- launch_state: First-run flag
- session: Per-run state (ResolvedSettings, SetupSession)
- selector: Interactive toolchain selection
- tasks: The fixed initialization sequence
- wizard: Message dispatch and review helpers
"""

from oiinit.setup.config_writer import SettingsStore, WriteResult, write_settings
from oiinit.setup.launch_state import LaunchState
from oiinit.setup.selector import RichPrompter, SelectionAction, SelectionOutcome, configure_toolchain, select_toolchain
from oiinit.setup.session import ResolvedSettings, SetupSession, ToolchainSelection, WorkspaceSelection
from oiinit.setup.tasks import build_orchestrator, default_tasks
from oiinit.setup.wizard import SetupWizard, WizardCommand, WizardMessage, format_settings_review

__all__ = [
    # Settings store
    "SettingsStore",
    "WriteResult",
    "write_settings",
    # Launch state
    "LaunchState",
    # Session
    "ResolvedSettings",
    "SetupSession",
    "ToolchainSelection",
    "WorkspaceSelection",
    # Selector
    "RichPrompter",
    "SelectionAction",
    "SelectionOutcome",
    "configure_toolchain",
    "select_toolchain",
    # Tasks
    "build_orchestrator",
    "default_tasks",
    # Wizard
    "SetupWizard",
    "WizardCommand",
    "WizardMessage",
    "format_settings_review",
]
