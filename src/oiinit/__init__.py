"""
oiinit - first-run toolchain setup wizard.

Package structure:
- oiinit.core: Command runner, toolchain scanner, progress reporting, task orchestration
- oiinit.setup: Session, interactive selection, settings store, setup tasks, wizard loop
- oiinit.integrations: Editor CLI integration (companion packages, workspaces)

Public API:
- scan_toolchains(): Discover C++ compilers and Python interpreters
- SetupSession: State for one wizard run
- SetupWizard: Message-dispatch front for a session
"""

from oiinit.core.scanner import ScanResult, ToolchainCandidate, ToolchainKind, scan_toolchains
from oiinit.setup.session import ResolvedSettings, SetupSession
from oiinit.setup.wizard import SetupWizard, WizardCommand, WizardMessage

__version__ = "0.1.0"

__all__ = [
    "scan_toolchains",
    "ScanResult",
    "ToolchainCandidate",
    "ToolchainKind",
    "ResolvedSettings",
    "SetupSession",
    "SetupWizard",
    "WizardCommand",
    "WizardMessage",
]
